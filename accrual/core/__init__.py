"""
Core accrual functionality.

Calculator, state-transition engine, sweep rules and their data models.
"""

from accrual.core.calculator import PointsCalculator
from accrual.core.engine import AccrualEngine
from accrual.core.exceptions import InvariantViolationError
from accrual.core.models import (
    AccountState,
    AccrualResult,
    OutOfOrderPolicy,
    SnapshotState,
    TriggerKind,
    snapshot_key,
)
from accrual.core.scheduler import SweepScheduler

__all__ = [
    "PointsCalculator",
    "AccrualEngine",
    "SweepScheduler",
    "InvariantViolationError",
    "AccountState",
    "AccrualResult",
    "OutOfOrderPolicy",
    "SnapshotState",
    "TriggerKind",
    "snapshot_key",
]
