"""
Unit tests for payload construction and message building.
"""

import itertools
import json
import uuid

import pytest

from brokerbench.core import TIMESTAMP_HEADER, decode_timestamp_header
from brokerbench.workload import MessageFactory, PayloadBuilder, derive_pad_seed, generate


class TestPayloadBuilder:
    """Test size-targeted JSON payloads."""

    def test_size_close_to_target(self):
        """Padded payloads land within the overhead margin below the target."""
        builder = PayloadBuilder(target_bytes=512, overhead_margin=20)
        for idx in (1, 42, 999, 100000):
            size = len(builder.build("OrderPlaced", idx, derive_pad_seed(12345, idx)).encode("utf-8"))
            assert 512 - 20 <= size <= 512

    def test_record_fields(self):
        """The record carries id, type, sequence, timestamps and body."""
        builder = PayloadBuilder()
        record = json.loads(builder.build("PaymentSettled", 1234, 7, emitted_at_ms=1700000000000))

        uuid.UUID(record["id"])
        assert record["type"] == "PaymentSettled"
        assert record["sequence"] == 1234
        assert record["ts_ms"] == 1700000000000
        assert "T" in record["ts"]
        assert record["data"] == {"amount": 234.5, "items": 4}

    def test_pad_is_deterministic(self):
        """Same pad seed, same padding; different seed, different padding."""
        builder = PayloadBuilder()
        first = builder.build_record("OrderPlaced", 5, pad_seed=100)
        second = builder.build_record("OrderPlaced", 5, pad_seed=100)
        other = builder.build_record("OrderPlaced", 5, pad_seed=101)

        assert first["pad"] == second["pad"]
        assert first["pad"] != other["pad"]
        assert first["id"] != second["id"]

    def test_pad_is_lowercase_letters(self):
        """Padding only uses a-z."""
        record = PayloadBuilder().build_record("OrderPlaced", 1, pad_seed=9)
        assert record["pad"]
        assert all("a" <= c <= "z" for c in record["pad"])

    def test_small_target_is_not_truncated(self):
        """A target below the unpadded size yields the unpadded record."""
        builder = PayloadBuilder(target_bytes=50)
        record = builder.build_record("OrderPlaced", 1, pad_seed=1)
        payload = builder.build("OrderPlaced", 1, pad_seed=1)

        assert "pad" not in record
        assert len(payload.encode("utf-8")) > 50

    def test_zero_target(self):
        """A zero target is accepted and simply skips padding."""
        assert "pad" not in PayloadBuilder(target_bytes=0).build_record("a", 1, 1)

    def test_negative_sizes_rejected(self):
        """Negative target or margin is invalid."""
        with pytest.raises(ValueError):
            PayloadBuilder(target_bytes=-1)
        with pytest.raises(ValueError):
            PayloadBuilder(overhead_margin=-1)

    def test_custom_body_factory(self):
        """The body can be supplied by the caller."""
        builder = PayloadBuilder(body_factory=lambda msg_type, idx: {"kind": msg_type, "n": idx})
        record = builder.build_record("X", 3, pad_seed=0)
        assert record["data"] == {"kind": "X", "n": 3}

    def test_derive_pad_seed(self):
        """Pad seeds are the run seed offset by the message index."""
        assert derive_pad_seed(12345, 3) == 12348
        assert derive_pad_seed(12345, 3) != derive_pad_seed(12345, 4)


class TestMessageFactory:
    """Test index-to-message construction."""

    def setup_method(self):
        self.sequence = generate(2000, 42)
        self.factory = MessageFactory(
            self.sequence, PayloadBuilder(), seed=42, clock=lambda: 1700000000123
        )

    def test_type_follows_sequence(self):
        """Index i uses the i-th label (1-based)."""
        message = self.factory(1)
        assert message.msg_type == self.sequence[0]
        assert message.index == 1
        assert json.loads(message.value)["type"] == self.sequence[0]

    def test_key_buckets(self):
        """Keys are `<type>-<index mod 1000>`."""
        message = self.factory(1007)
        assert message.key == f"{self.sequence[1006]}-7"

    def test_timestamp_header(self):
        """The emission time travels as an 8-byte header matching the payload."""
        message = self.factory(10)
        assert len(message.headers) == 1

        name, value = message.headers[0]
        assert name == TIMESTAMP_HEADER
        assert decode_timestamp_header(value) == 1700000000123
        assert json.loads(message.value)["ts_ms"] == 1700000000123

    def test_padding_reproducible_across_factories(self):
        """Two factories with the same seed build identical padding per index."""
        other = MessageFactory(self.sequence, PayloadBuilder(), seed=42, clock=lambda: 0)
        assert json.loads(self.factory(55).value)["pad"] == json.loads(other(55).value)["pad"]

    def test_header_time_read_after_payload_build(self):
        """The header clock reading follows the payload's own timestamp."""
        ticks = itertools.count(1000)
        factory = MessageFactory(self.sequence, PayloadBuilder(), seed=42, clock=lambda: next(ticks))

        message = factory(3)

        assert json.loads(message.value)["ts_ms"] == 1000
        assert decode_timestamp_header(message.headers[0][1]) == 1001
