"""Size-targeted JSON payload construction."""

import json
import logging
import uuid
from typing import Any, Callable, Dict, Optional, Sequence

import numpy as np

from ..core.timestamps import TIMESTAMP_HEADER, encode_timestamp_header, epoch_ms, utc_iso_now
from .models import OutboundMessage
from .sequencer import seeded_generator

logger = logging.getLogger(__name__)

DEFAULT_TARGET_BYTES = 512
# Room left for the "pad" key and quoting when the padded record is re-serialized.
DEFAULT_OVERHEAD_MARGIN = 20
KEY_BUCKETS = 1000

_ALPHABET_START = ord("a")
_ALPHABET_SIZE = 26


def derive_pad_seed(seed: int, sequence_index: int) -> int:
    """Per-message padding seed: reproducible per message, distinct across messages."""
    return seed + sequence_index


def default_body(msg_type: str, sequence_index: int) -> Dict[str, Any]:
    return {"amount": (sequence_index % 1000) + 0.5, "items": sequence_index % 5}


def _serialize(record: Dict[str, Any]) -> str:
    return json.dumps(record, separators=(",", ":"), ensure_ascii=False)


def _utf8_len(text: str) -> int:
    return len(text.encode("utf-8"))


def pad_text(pad_seed: int, length: int) -> str:
    """Deterministic lowercase letters from a generator seeded by ``pad_seed``."""
    if length <= 0:
        return ""
    rng = seeded_generator(pad_seed)
    letters = rng.integers(0, _ALPHABET_SIZE, size=length, dtype=np.uint8) + _ALPHABET_START
    return letters.tobytes().decode("ascii")


class PayloadBuilder:
    """Builds JSON payloads whose UTF-8 size is close to ``target_bytes``.

    Padding is computed once from the unpadded serialization, so the result
    lands within ``overhead_margin`` bytes below the target rather than
    iterating to an exact size. Payloads whose unpadded form already reaches
    the target are returned unpadded and untruncated.
    """

    def __init__(
        self,
        target_bytes: int = DEFAULT_TARGET_BYTES,
        overhead_margin: int = DEFAULT_OVERHEAD_MARGIN,
        body_factory: Optional[Callable[[str, int], Dict[str, Any]]] = None,
    ):
        if target_bytes < 0:
            raise ValueError(f"target_bytes must be >= 0, got {target_bytes}")
        if overhead_margin < 0:
            raise ValueError(f"overhead_margin must be >= 0, got {overhead_margin}")
        self.target_bytes = target_bytes
        self.overhead_margin = overhead_margin
        self.body_factory = body_factory or default_body

    def build_record(
        self,
        msg_type: str,
        sequence_index: int,
        pad_seed: int,
        emitted_at_ms: Optional[int] = None,
    ) -> Dict[str, Any]:
        """Build the structured record, padded when it is below the target."""
        record = {
            "id": str(uuid.uuid4()),
            "type": msg_type,
            "sequence": sequence_index,
            "ts": utc_iso_now(),
            "ts_ms": emitted_at_ms if emitted_at_ms is not None else epoch_ms(),
            "data": self.body_factory(msg_type, sequence_index),
        }

        pad_needed = self.target_bytes - _utf8_len(_serialize(record)) - self.overhead_margin
        if pad_needed > 0:
            record["pad"] = pad_text(pad_seed, pad_needed)
        return record

    def build(
        self,
        msg_type: str,
        sequence_index: int,
        pad_seed: int,
        emitted_at_ms: Optional[int] = None,
    ) -> str:
        """Build and serialize a payload for one workload index."""
        return _serialize(self.build_record(msg_type, sequence_index, pad_seed, emitted_at_ms))


class MessageFactory:
    """Turns a 1-based workload index into an OutboundMessage.

    Shared by all dispatch workers; it only reads the pre-generated type
    sequence, so concurrent use needs no locking.
    """

    def __init__(
        self,
        type_sequence: Sequence[str],
        payload_builder: PayloadBuilder,
        seed: int,
        header_name: str = TIMESTAMP_HEADER,
        clock: Callable[[], int] = epoch_ms,
    ):
        self.type_sequence = type_sequence
        self.payload_builder = payload_builder
        self.seed = seed
        self.header_name = header_name
        self.clock = clock

    def __call__(self, index: int) -> OutboundMessage:
        msg_type = self.type_sequence[index - 1]
        value = self.payload_builder.build(
            msg_type, index, derive_pad_seed(self.seed, index), emitted_at_ms=self.clock()
        )
        # Header time is read after the payload is built, right before submission.
        emitted_ms = self.clock()
        return OutboundMessage(
            key=f"{msg_type}-{index % KEY_BUCKETS}",
            value=value,
            headers=[(self.header_name, encode_timestamp_header(emitted_ms))],
            index=index,
            msg_type=msg_type,
        )
