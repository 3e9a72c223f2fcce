"""Data models for latency summaries and benchmark results."""

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, Optional


def percentile_key(p: float) -> str:
    """Name a percentile the way reports do: 0.5 -> "p50", 0.999 -> "p99.9"."""
    value = round(p * 100, 6)
    if value == int(value):
        return f"p{int(value)}"
    return f"p{value:g}"


@dataclass
class LatencySummary:
    """Nearest-rank summary of one recorder's samples.

    An empty recorder yields ``count == 0`` with every statistic set to None,
    which keeps "no data" distinguishable from a measured zero.
    """

    name: str
    count: int
    percentiles: Dict[str, Optional[float]] = field(default_factory=dict)
    mean: Optional[float] = None
    min: Optional[float] = None
    max: Optional[float] = None

    @property
    def has_data(self) -> bool:
        return self.count > 0

    @property
    def p50(self) -> Optional[float]:
        return self.percentiles.get("p50")

    @property
    def p95(self) -> Optional[float]:
        return self.percentiles.get("p95")

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class BenchmarkSummary:
    """Producer-side result row for one run."""

    broker: str
    concurrency: int
    total: int
    throughput: float  # messages per second over the whole run
    p50_ms: Optional[float]
    p95_ms: Optional[float]

    acked: int = 0
    failed: int = 0
    outstanding_after_flush: int = 0
    elapsed_s: float = 0.0

    def to_row(self) -> Dict[str, Any]:
        """The delimited-output columns, in order."""
        return {
            "broker": self.broker,
            "concurrency": self.concurrency,
            "total": self.total,
            "throughput": self.throughput,
            "p50_ms": self.p50_ms,
            "p95_ms": self.p95_ms,
        }

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
