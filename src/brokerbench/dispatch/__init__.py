"""Concurrent dispatch module."""

from .pool import DispatchPool, DispatchReport, DispatchResult, IndexClaimer

__all__ = ["DispatchPool", "DispatchReport", "DispatchResult", "IndexClaimer"]
