"""Benchmark orchestrators for producer runs, consumer runs and sweeps."""

import asyncio
import copy
import json
import logging
import time
from pprint import pformat
from typing import Any, Dict, List, Optional, Sequence, Tuple

import yaml

from ..channels import InMemoryBroker, ProducerChannel, create_consumer_channel, create_producer_channel
from ..consumption import CancellationToken, ConsumptionLoop, ConsumptionReport, E2ECorrelator
from ..dispatch import DispatchPool, DispatchReport
from ..metrics import BenchmarkSummary, LatencyRecorder, with_summary_percentiles
from ..metrics.report import write_samples_csv, write_summary_csv, write_summary_json
from ..utils.config_loader import build_config
from ..utils.config_validator import validate_config
from ..workload import MessageFactory, PayloadBuilder, WorkloadSequencer, WorkloadSpec, mix_report

logger = logging.getLogger(__name__)


class ProducerBenchmark:
    """Runs one producer benchmark: generate, dispatch, flush, summarize."""

    def __init__(
        self,
        config_data: Optional[Dict[str, Any]] = None,
        memory_broker: Optional[InMemoryBroker] = None,
    ):
        """Initialize the benchmark from a (possibly partial) configuration.

        Args:
            config_data: Configuration dictionary; missing keys take defaults
            memory_broker: Broker instance shared with consumers when type is "memory"

        Raises:
            ConfigurationError: If the merged configuration is invalid
        """
        self.config = validate_config(build_config(config_data))
        self.memory_broker = memory_broker

        self.recorder: Optional[LatencyRecorder] = None
        self.dispatch_report: Optional[DispatchReport] = None
        self.mix_report: Dict[str, Any] = {}

        logger.info("ProducerBenchmark initialized")

    def run(self) -> BenchmarkSummary:
        """Run the benchmark and write the configured outputs.

        Returns:
            BenchmarkSummary for the run
        """
        broker_cfg = self.config["broker"]
        workload_cfg = self.config["workload"]
        dispatch_cfg = self.config["dispatch"]

        total = workload_cfg["total"]
        seed = workload_cfg["seed"]
        concurrency = dispatch_cfg["concurrency"]

        logger.info("=" * 60)
        logger.info("STARTING PRODUCER BENCHMARK")
        logger.info("=" * 60)
        logger.debug(f"Configuration: {pformat(self.config)}")
        logger.info(
            f"Broker: {broker_cfg['type']}, Bootstrap: {broker_cfg['bootstrap']}, "
            f"Topic: {broker_cfg['topic']}, Concurrency: {concurrency}, Total: {total}"
        )

        spec = WorkloadSpec.from_weights(total, seed, workload_cfg["mix"])
        type_sequence = WorkloadSequencer(spec).generate()
        self.mix_report = mix_report(type_sequence, spec.mix_weights)
        logger.info(f"Message mix: {self.mix_report['observed']}")

        payload_builder = PayloadBuilder(
            target_bytes=workload_cfg["target_bytes"],
            overhead_margin=workload_cfg["overhead_margin"],
        )
        factory = MessageFactory(type_sequence, payload_builder, seed)
        self.recorder = LatencyRecorder("produce")

        channel = create_producer_channel(broker_cfg, self.memory_broker)
        try:
            start = time.perf_counter()
            self.dispatch_report, outstanding = asyncio.run(
                self._dispatch(channel, factory, concurrency, total, dispatch_cfg["flush_timeout_s"])
            )
            elapsed_s = time.perf_counter() - start
        finally:
            channel.close()

        summary = self._summarize(elapsed_s, outstanding)
        self._write_outputs(summary)

        logger.info("=" * 60)
        logger.info("PRODUCER BENCHMARK COMPLETED")
        logger.info("=" * 60)

        return summary

    async def _dispatch(
        self,
        channel: ProducerChannel,
        factory: MessageFactory,
        concurrency: int,
        total: int,
        flush_timeout_s: float,
    ) -> Tuple[DispatchReport, int]:
        pool = DispatchPool(channel, self.config["broker"]["topic"], self.recorder, factory)
        report = await pool.run(concurrency, total)

        # Flush off the loop so delivery callbacks can still be resolved on it.
        loop = asyncio.get_running_loop()
        outstanding = await loop.run_in_executor(None, channel.flush, flush_timeout_s)
        return report, outstanding

    def _summarize(self, elapsed_s: float, outstanding: int) -> BenchmarkSummary:
        total = self.config["workload"]["total"]
        latency = self.recorder.summarize(
            with_summary_percentiles(self.config["metrics_config"]["percentiles_to_calculate"])
        )
        throughput = total / elapsed_s if elapsed_s > 0 and total > 0 else 0.0

        summary = BenchmarkSummary(
            broker=self.config["broker"]["type"],
            concurrency=self.config["dispatch"]["concurrency"],
            total=total,
            throughput=throughput,
            p50_ms=latency.p50,
            p95_ms=latency.p95,
            acked=self.dispatch_report.acked,
            failed=self.dispatch_report.failed,
            outstanding_after_flush=outstanding,
            elapsed_s=elapsed_s,
        )

        logger.info(f"Throughput: {throughput:.1f} msgs/s over {elapsed_s:.2f}s")
        if latency.has_data:
            logger.info(f"Ack latency p50={latency.p50:.2f} ms, p95={latency.p95:.2f} ms")
        else:
            logger.warning("No acknowledged messages, latency percentiles unavailable")
        if summary.failed:
            logger.warning(f"{summary.failed} of {total} submissions failed")
        return summary

    def _write_outputs(self, summary: BenchmarkSummary) -> None:
        metrics_cfg = self.config["metrics_config"]

        csv_path = metrics_cfg.get("output_summary_csv_path")
        if csv_path:
            write_summary_csv(summary, csv_path)

        json_path = metrics_cfg.get("output_summary_json_path")
        if json_path:
            latency = self.recorder.summarize(
                with_summary_percentiles(metrics_cfg["percentiles_to_calculate"])
            )
            write_summary_json(
                {
                    "summary": summary.to_dict(),
                    "latency": latency.to_dict(),
                    "mix": self.mix_report,
                    "dispatch": {
                        "acked": self.dispatch_report.acked,
                        "failed": self.dispatch_report.failed,
                        "per_worker": self.dispatch_report.per_worker,
                    },
                },
                json_path,
            )

        samples_path = metrics_cfg.get("output_samples_csv_path")
        if samples_path:
            write_samples_csv(self.recorder, samples_path)

    @classmethod
    def from_yaml_file(cls, config_path: str, **kwargs) -> "ProducerBenchmark":
        """Create a benchmark from a YAML configuration file."""
        with open(config_path, "r") as f:
            config_data = yaml.safe_load(f)

        return cls(config_data, **kwargs)

    @classmethod
    def from_json_file(cls, config_path: str, **kwargs) -> "ProducerBenchmark":
        """Create a benchmark from a JSON configuration file."""
        with open(config_path, "r") as f:
            config_data = json.load(f)

        return cls(config_data, **kwargs)


class ConsumerBenchmark:
    """Runs the consumer side and reports end-to-end latency."""

    def __init__(
        self,
        config_data: Optional[Dict[str, Any]] = None,
        memory_broker: Optional[InMemoryBroker] = None,
        cancellation: Optional[CancellationToken] = None,
    ):
        self.config = validate_config(build_config(config_data))
        self.memory_broker = memory_broker
        self.cancellation = cancellation or CancellationToken()
        self.recorder: Optional[LatencyRecorder] = None

    def run(self) -> ConsumptionReport:
        broker_cfg = self.config["broker"]
        consumer_cfg = self.config["consumer"]

        logger.info("=" * 60)
        logger.info("STARTING CONSUMER BENCHMARK")
        logger.info("=" * 60)
        logger.info(
            f"Broker: {broker_cfg['type']}, Bootstrap: {broker_cfg['bootstrap']}, "
            f"Topic: {broker_cfg['topic']}, Group: {broker_cfg['group_id']}"
        )

        self.recorder = LatencyRecorder("e2e")
        loop = ConsumptionLoop(
            create_consumer_channel(broker_cfg, self.memory_broker),
            broker_cfg["topic"],
            E2ECorrelator(self.recorder),
            expected=consumer_cfg["expected"],
            poll_timeout_s=consumer_cfg["poll_timeout_s"],
            progress_every=consumer_cfg["progress_every"],
            cancellation=self.cancellation,
        )
        report = loop.run(
            with_summary_percentiles(self.config["metrics_config"]["percentiles_to_calculate"])
        )

        logger.info(f"Consumed {report.consumed} messages ({report.e2e_samples} with E2E header)")
        if report.e2e.has_data:
            logger.info(f"E2E latency p50={report.e2e.p50:.2f} ms, p95={report.e2e.p95:.2f} ms")
        else:
            logger.info("no E2E header samples found.")

        logger.info("=" * 60)
        logger.info("CONSUMER BENCHMARK COMPLETED")
        logger.info("=" * 60)
        return report


def run_concurrency_sweep(
    config_data: Optional[Dict[str, Any]],
    levels: Sequence[int],
    memory_broker: Optional[InMemoryBroker] = None,
) -> List[BenchmarkSummary]:
    """Run the same workload once per concurrency level.

    Per-run output files are disabled; callers persist the comparison table.
    """
    if not levels:
        raise ValueError("At least one concurrency level is required")

    base = build_config(config_data)
    summaries = []
    for level in levels:
        run_config = copy.deepcopy(base)
        run_config["dispatch"]["concurrency"] = level
        for key in ("output_summary_csv_path", "output_summary_json_path", "output_samples_csv_path"):
            run_config["metrics_config"][key] = None

        logger.info(f"Sweep: running concurrency={level}")
        summaries.append(ProducerBenchmark(run_config, memory_broker=memory_broker).run())
    return summaries
