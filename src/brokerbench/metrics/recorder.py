"""Concurrent latency sample collection and nearest-rank summarization."""

import logging
import math
import threading
from typing import List, Sequence

import numpy as np

from .models import LatencySummary, percentile_key

logger = logging.getLogger(__name__)

DEFAULT_PERCENTILES = (0.5, 0.95)


def with_summary_percentiles(percentiles: Sequence[float]) -> List[float]:
    """Configured percentiles plus p50 and p95, which every summary reports."""
    return sorted(set(percentiles) | set(DEFAULT_PERCENTILES))


def nearest_rank_index(p: float, n: int) -> int:
    """0-based index of the nearest-rank percentile ``p`` among ``n`` sorted samples.

    Uses ``ceil(p * n) - 1`` clamped to ``[0, n - 1]``.
    """
    if n <= 0:
        raise ValueError("nearest-rank index is undefined for an empty sample set")
    if not 0.0 <= p <= 1.0:
        raise ValueError(f"Percentile must be within [0, 1], got {p}")
    return min(n - 1, max(0, math.ceil(p * n) - 1))


def percentile_nearest_rank(sorted_values: Sequence[float], p: float) -> float:
    """Pick the nearest-rank percentile from an ascending sequence."""
    return float(sorted_values[nearest_rank_index(p, len(sorted_values))])


class LatencyRecorder:
    """Append-only collector of latency samples in milliseconds.

    ``record`` may be called from any number of concurrent workers. Samples are
    never read until ``summarize``, which must only run after every producer
    of samples has finished.
    """

    def __init__(self, name: str = "latency"):
        self.name = name
        self._samples: List[float] = []
        self._lock = threading.Lock()

    def record(self, sample_ms: float) -> None:
        with self._lock:
            self._samples.append(float(sample_ms))

    def __len__(self) -> int:
        with self._lock:
            return len(self._samples)

    def samples(self) -> List[float]:
        """Snapshot copy of the samples in arrival order."""
        with self._lock:
            return list(self._samples)

    def sorted_samples(self) -> np.ndarray:
        return np.sort(np.asarray(self.samples(), dtype=np.float64))

    def summarize(self, percentiles: Sequence[float] = DEFAULT_PERCENTILES) -> LatencySummary:
        """Sort the samples and compute nearest-rank percentiles."""
        keys = [percentile_key(p) for p in percentiles]
        values = self.sorted_samples()
        n = len(values)

        if n == 0:
            logger.debug(f"Recorder '{self.name}' has no samples")
            return LatencySummary(
                name=self.name,
                count=0,
                percentiles={key: None for key in keys},
            )

        return LatencySummary(
            name=self.name,
            count=n,
            percentiles={
                key: percentile_nearest_rank(values, p) for key, p in zip(keys, percentiles)
            },
            mean=float(np.mean(values)),
            min=float(values[0]),
            max=float(values[-1]),
        )
