"""Data models for workload generation."""

import math
from dataclasses import dataclass, field
from typing import Dict, List, Tuple

_CUMULATIVE_TOLERANCE = 1e-9


@dataclass(frozen=True)
class MixEntry:
    """One row of the cumulative message-type table."""

    label: str
    cumulative_probability: float


DEFAULT_MIX: Tuple[MixEntry, ...] = (
    MixEntry("OrderPlaced", 0.70),
    MixEntry("PaymentSettled", 0.90),
    MixEntry("InventoryAdjusted", 1.0),
)


def cumulative_mix(weights: Dict[str, float]) -> Tuple[MixEntry, ...]:
    """Build a cumulative table from plain per-label weights.

    Weights are normalized, so {"a": 7, "b": 3} and {"a": 0.7, "b": 0.3}
    give the same table. Insertion order is kept.
    """
    if not weights:
        raise ValueError("Message mix must contain at least one label")
    if any(w < 0 for w in weights.values()):
        raise ValueError(f"Message mix weights must be non-negative: {weights}")

    total_weight = float(sum(weights.values()))
    if total_weight <= 0:
        raise ValueError("Message mix weights must sum to a positive value")

    entries = []
    running = 0.0
    for label, weight in weights.items():
        running += weight / total_weight
        entries.append(MixEntry(label, running))

    # Pin the last bucket to exactly 1.0 so float drift never leaves a gap.
    last = entries[-1]
    entries[-1] = MixEntry(last.label, 1.0)
    return tuple(entries)


def validate_mix(mix: Tuple[MixEntry, ...]) -> List[str]:
    """Return the list of problems with a cumulative table (empty if valid)."""
    errors = []
    if not mix:
        return ["Message mix is empty"]

    previous = 0.0
    for entry in mix:
        p = entry.cumulative_probability
        if math.isnan(p) or p < 0.0 or p > 1.0 + _CUMULATIVE_TOLERANCE:
            errors.append(f"Cumulative probability for {entry.label} out of range: {p}")
        elif p < previous:
            errors.append(
                f"Cumulative probabilities must be non-decreasing "
                f"({entry.label}: {p} < {previous})"
            )
        previous = max(previous, p)

    final = mix[-1].cumulative_probability
    if abs(final - 1.0) > _CUMULATIVE_TOLERANCE:
        errors.append(f"Final cumulative probability must be 1.0, got {final}")

    return errors


@dataclass(frozen=True)
class WorkloadSpec:
    """Immutable description of one benchmark run's logical workload."""

    total_count: int
    seed: int
    mix_weights: Tuple[MixEntry, ...] = field(default=DEFAULT_MIX)

    def __post_init__(self):
        if self.total_count < 0:
            raise ValueError(f"total_count must be >= 0, got {self.total_count}")
        errors = validate_mix(self.mix_weights)
        if errors:
            raise ValueError("; ".join(errors))

    @classmethod
    def from_weights(
        cls, total_count: int, seed: int, weights: Dict[str, float]
    ) -> "WorkloadSpec":
        """Create a WorkloadSpec from plain per-label weights."""
        return cls(total_count=total_count, seed=seed, mix_weights=cumulative_mix(weights))

    @property
    def labels(self) -> Tuple[str, ...]:
        return tuple(entry.label for entry in self.mix_weights)

    def expected_fractions(self) -> Dict[str, float]:
        """Per-label probability implied by the cumulative table."""
        fractions = {}
        previous = 0.0
        for entry in self.mix_weights:
            fractions[entry.label] = fractions.get(entry.label, 0.0) + (
                entry.cumulative_probability - previous
            )
            previous = entry.cumulative_probability
        return fractions


@dataclass
class OutboundMessage:
    """A fully built message ready to be handed to a producer channel."""

    key: str
    value: str
    headers: List[Tuple[str, bytes]] = field(default_factory=list)
    index: int = 0
    msg_type: str = ""
