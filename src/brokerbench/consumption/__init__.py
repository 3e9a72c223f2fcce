"""Consumer-side measurement module."""

from .loop import (
    CancellationToken,
    ConsumptionLoop,
    ConsumptionReport,
    E2ECorrelator,
    LoopState,
    StopReason,
)

__all__ = [
    "CancellationToken",
    "ConsumptionLoop",
    "ConsumptionReport",
    "E2ECorrelator",
    "LoopState",
    "StopReason",
]
