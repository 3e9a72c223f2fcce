"""Deterministic message-type sequence generation."""

import logging
from typing import Any, Dict, Optional, Sequence, Tuple

import numpy as np
from scipy import stats

from .models import DEFAULT_MIX, MixEntry, WorkloadSpec

logger = logging.getLogger(__name__)

_SEED_MODULUS = 2 ** 64


def seeded_generator(seed: int) -> np.random.Generator:
    """Create an independent generator for one logical unit of randomness.

    Negative seeds are folded into the unsigned 64-bit range, which numpy
    requires.
    """
    return np.random.default_rng(seed % _SEED_MODULUS)


class WorkloadSequencer:
    """Generates the ordered message-type labels for a workload.

    The sequence depends only on (total, seed, mix): the same inputs give the
    same labels in every process, whatever concurrency later consumes them.
    """

    def __init__(self, spec: WorkloadSpec):
        self.spec = spec
        self._labels = np.array(spec.labels, dtype=object)
        self._cumulative = np.array(
            [entry.cumulative_probability for entry in spec.mix_weights], dtype=np.float64
        )

    def generate(self) -> Tuple[str, ...]:
        """Generate the label sequence for the configured spec."""
        total = self.spec.total_count
        if total == 0:
            return ()

        rng = seeded_generator(self.spec.seed)
        draws = rng.random(total)

        # First bucket whose cumulative probability is strictly above the draw.
        buckets = np.searchsorted(self._cumulative, draws, side="right")
        np.clip(buckets, 0, len(self._cumulative) - 1, out=buckets)

        sequence = tuple(self._labels[buckets].tolist())
        logger.debug(f"Generated type sequence of {total} labels (seed={self.spec.seed})")
        return sequence


def generate(
    total: int, seed: int, mix: Optional[Tuple[MixEntry, ...]] = None
) -> Tuple[str, ...]:
    """Generate a deterministic label sequence of exactly ``total`` items."""
    if total < 0:
        raise ValueError(f"total must be >= 0, got {total}")
    spec = WorkloadSpec(total_count=total, seed=seed, mix_weights=mix or DEFAULT_MIX)
    return WorkloadSequencer(spec).generate()


def mix_report(
    sequence: Sequence[str], mix: Tuple[MixEntry, ...] = DEFAULT_MIX
) -> Dict[str, Any]:
    """Compare a realized sequence against the configured mix.

    Returns observed and expected counts per label, the observed fractions,
    and a chi-square goodness-of-fit p-value (None when it cannot be computed).
    """
    spec = WorkloadSpec(total_count=len(sequence), seed=0, mix_weights=mix)
    expected_fractions = spec.expected_fractions()
    n = len(sequence)

    labels = list(expected_fractions.keys())
    observed = {label: 0 for label in labels}
    for label in sequence:
        observed[label] = observed.get(label, 0) + 1

    expected = {label: expected_fractions[label] * n for label in labels}

    p_value = None
    testable = [label for label in labels if expected[label] > 0]
    observed_counts = [observed[label] for label in testable]
    expected_counts = [expected[label] for label in testable]
    observed_sum = sum(observed_counts)
    if observed_sum > 0 and len(testable) > 1:
        # chisquare needs matching totals; labels outside the mix are left out.
        scale = observed_sum / sum(expected_counts)
        result = stats.chisquare(observed_counts, [e * scale for e in expected_counts])
        p_value = float(result.pvalue)

    return {
        "total": n,
        "observed": observed,
        "expected": expected,
        "observed_fractions": {
            label: (count / n if n else 0.0) for label, count in observed.items()
        },
        "chi_square_p_value": p_value,
    }
