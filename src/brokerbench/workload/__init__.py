"""Workload generation module."""

from .models import DEFAULT_MIX, MixEntry, OutboundMessage, WorkloadSpec, cumulative_mix
from .payload_builder import MessageFactory, PayloadBuilder, derive_pad_seed
from .sequencer import WorkloadSequencer, generate, mix_report

__all__ = [
    "DEFAULT_MIX",
    "MixEntry",
    "OutboundMessage",
    "WorkloadSpec",
    "cumulative_mix",
    "MessageFactory",
    "PayloadBuilder",
    "derive_pad_seed",
    "WorkloadSequencer",
    "generate",
    "mix_report",
]
