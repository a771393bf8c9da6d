"""
Points indexer service.

Accrues balance-times-time points for every holder of the tracked token.
"""

from .core import PointsIndexerService
from .pending import PendingWriteSet
from .registry import AccountRegistryState
from .runner import BatchRunner

__all__ = [
    "AccountRegistryState",
    "BatchRunner",
    "PendingWriteSet",
    "PointsIndexerService",
]
