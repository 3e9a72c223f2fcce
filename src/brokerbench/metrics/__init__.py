"""Latency recording and reporting module."""

from .models import BenchmarkSummary, LatencySummary
from .recorder import (
    LatencyRecorder,
    nearest_rank_index,
    percentile_nearest_rank,
    with_summary_percentiles,
)

__all__ = [
    "BenchmarkSummary",
    "LatencySummary",
    "LatencyRecorder",
    "nearest_rank_index",
    "percentile_nearest_rank",
    "with_summary_percentiles",
]
