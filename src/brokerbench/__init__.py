"""BrokerBench: throughput and latency benchmarking for message brokers."""

__version__ = "0.1.0"
