"""
Integration tests: producer and consumer benchmarks over a shared in-memory broker.
"""

import json
import threading
from collections import Counter

import pytest

from brokerbench.channels import InMemoryBroker
from brokerbench.consumption import StopReason
from brokerbench.core import TIMESTAMP_HEADER, decode_timestamp_header
from brokerbench.orchestration import ConsumerBenchmark, ProducerBenchmark
from brokerbench.workload import generate

TOPIC = "bench-topic"


def memory_config(tmp_path, total=1000, concurrency=4, seed=42, **metrics):
    metrics_config = {"output_summary_csv_path": str(tmp_path / "benchmark_summary.csv")}
    metrics_config.update(metrics)
    return {
        "broker": {"type": "memory", "topic": TOPIC},
        "workload": {"total": total, "seed": seed},
        "dispatch": {"concurrency": concurrency},
        "consumer": {"expected": total, "poll_timeout_s": 0.1},
        "metrics_config": metrics_config,
    }


def type_by_sequence(broker):
    result = {}
    for record in broker.records(TOPIC):
        payload = json.loads(record.value)
        result[payload["sequence"]] = payload["type"]
    return result


class TestProduceThenConsume:
    """End-to-end run: 1000 messages, 4 workers, seed 42."""

    @pytest.fixture
    def produced(self, tmp_path):
        broker = InMemoryBroker()
        summary = ProducerBenchmark(memory_config(tmp_path), memory_broker=broker).run()
        return broker, summary, tmp_path

    def test_producer_summary(self, produced):
        _, summary, _ = produced

        assert summary.broker == "memory"
        assert summary.concurrency == 4
        assert summary.total == 1000
        assert summary.acked == 1000
        assert summary.failed == 0
        assert summary.outstanding_after_flush == 0
        assert summary.throughput > 0
        assert 0 <= summary.p50_ms <= summary.p95_ms

    def test_every_index_delivered_once_with_expected_type(self, produced):
        broker, _, _ = produced
        sequence = generate(1000, 42)

        types = type_by_sequence(broker)
        assert broker.size(TOPIC) == 1000
        assert sorted(types) == list(range(1, 1001))
        assert all(types[idx] == sequence[idx - 1] for idx in types)

    def test_records_carry_key_and_header(self, produced):
        broker, _, _ = produced
        for record in broker.records(TOPIC):
            payload = json.loads(record.value)
            assert record.key.decode() == f"{payload['type']}-{payload['sequence'] % 1000}"
            assert decode_timestamp_header(record.last_header(TIMESTAMP_HEADER)) >= payload["ts_ms"]

    def test_summary_csv_written(self, produced):
        _, _, tmp_path = produced
        lines = (tmp_path / "benchmark_summary.csv").read_text().splitlines()
        assert len(lines) == 2
        assert lines[1].startswith("memory,4,1000,")

    def test_consumer_correlates_all_messages(self, produced, tmp_path):
        broker, _, _ = produced
        report = ConsumerBenchmark(memory_config(tmp_path), memory_broker=broker).run()

        assert report.consumed == 1000
        assert report.e2e_samples == 1000
        assert report.stop_reason == StopReason.TARGET_REACHED
        assert report.e2e.p95 >= report.e2e.p50

    def test_mix_counts_and_recorded_samples(self, tmp_path):
        """The seed-42 mix lands near 70/20/10 and every ack leaves one latency sample."""
        counts = Counter(generate(1000, 42))
        # Within three standard deviations of the binomial expectation.
        assert abs(counts["OrderPlaced"] - 700) <= 44
        assert abs(counts["PaymentSettled"] - 200) <= 38
        assert abs(counts["InventoryAdjusted"] - 100) <= 28

        benchmark = ProducerBenchmark(memory_config(tmp_path), memory_broker=InMemoryBroker())
        summary = benchmark.run()

        assert summary.acked == 1000
        assert len(benchmark.recorder) == 1000
        ordered = benchmark.recorder.sorted_samples()
        assert len(ordered) == 1000
        assert all(a <= b for a, b in zip(ordered, ordered[1:]))

    def test_consumer_with_custom_percentiles(self, produced, tmp_path):
        """Consumer summaries keep p50 and p95 when other percentiles are configured."""
        broker, _, _ = produced
        config = memory_config(tmp_path, percentiles_to_calculate=[0.9, 0.99])

        report = ConsumerBenchmark(config, memory_broker=broker).run()

        assert report.e2e_samples == 1000
        assert report.e2e.p50 is not None
        assert report.e2e.p95 >= report.e2e.p50
        assert "p99" in report.e2e.percentiles


class TestDeterminism:
    """The logical workload does not depend on concurrency."""

    def test_same_types_across_concurrency(self, tmp_path):
        mappings = []
        for concurrency in (1, 8):
            broker = InMemoryBroker()
            ProducerBenchmark(
                memory_config(tmp_path, total=300, concurrency=concurrency), memory_broker=broker
            ).run()
            mappings.append(type_by_sequence(broker))

        assert mappings[0] == mappings[1]


class TestConcurrentConsumer:
    """Consumer running while the producer is still dispatching."""

    def test_consumer_started_first(self, tmp_path):
        broker = InMemoryBroker()
        config = memory_config(tmp_path, total=500)
        results = {}

        consumer = ConsumerBenchmark(config, memory_broker=broker)
        thread = threading.Thread(target=lambda: results.setdefault("report", consumer.run()))
        thread.start()

        summary = ProducerBenchmark(config, memory_broker=broker).run()
        thread.join(timeout=30)

        assert not thread.is_alive()
        assert summary.acked == 500
        assert results["report"].consumed == 500
        assert results["report"].e2e_samples == 500


class TestOutputs:
    """Optional JSON and raw-sample outputs."""

    def test_json_and_samples(self, tmp_path):
        config = memory_config(
            tmp_path,
            total=100,
            output_summary_json_path=str(tmp_path / "summary.json"),
            output_samples_csv_path=str(tmp_path / "samples.csv"),
        )
        ProducerBenchmark(config).run()

        data = json.loads((tmp_path / "summary.json").read_text())
        assert data["summary"]["acked"] == 100
        assert data["latency"]["count"] == 100
        assert sum(data["mix"]["observed"].values()) == 100
        assert len((tmp_path / "samples.csv").read_text().splitlines()) == 101
