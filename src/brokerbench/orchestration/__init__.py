"""Benchmark orchestration module."""

from .benchmark_orchestrator import ConsumerBenchmark, ProducerBenchmark, run_concurrency_sweep

__all__ = ["ConsumerBenchmark", "ProducerBenchmark", "run_concurrency_sweep"]
