"""
Token Points Accrual.

Standalone package for balance-times-time loyalty points.

Example:
    >>> from decimal import Decimal
    >>> from accrual import AccrualEngine, TriggerKind
    >>>
    >>> engine = AccrualEngine()
    >>> first = engine.accrue("0xabc", 1000, Decimal("100"), TriggerKind.TRANSFER)
    >>> later = engine.accrue(
    ...     "0xabc", 87400, Decimal("70"), TriggerKind.TRANSFER,
    ...     prior_account=first.account, prior_snapshot=first.snapshot,
    ... )
    >>> later.snapshot.points
    Decimal('100000')
"""

from accrual.constants import (
    DEFAULT_ACCRUAL_PRECISION,
    DEFAULT_DAILY_POINT_RATE,
    DEFAULT_SWEEP_INTERVAL_SECONDS,
    MAIN_REGISTRY_ID,
    SECONDS_PER_DAY,
    SECONDS_PER_HOUR,
    ZERO_ADDRESS,
)
from accrual.core import (
    AccountState,
    AccrualEngine,
    AccrualResult,
    InvariantViolationError,
    OutOfOrderPolicy,
    PointsCalculator,
    SnapshotState,
    SweepScheduler,
    TriggerKind,
    snapshot_key,
)
from accrual.utils import format_balance, format_points


__version__ = "1.0.0"
__all__ = [
    # Core
    "PointsCalculator",
    "AccrualEngine",
    "SweepScheduler",
    # Models
    "AccountState",
    "SnapshotState",
    "AccrualResult",
    "TriggerKind",
    "OutOfOrderPolicy",
    "InvariantViolationError",
    "snapshot_key",
    # Constants
    "ZERO_ADDRESS",
    "SECONDS_PER_DAY",
    "SECONDS_PER_HOUR",
    "DEFAULT_DAILY_POINT_RATE",
    "DEFAULT_SWEEP_INTERVAL_SECONDS",
    "DEFAULT_ACCRUAL_PRECISION",
    "MAIN_REGISTRY_ID",
    # Formatters
    "format_points",
    "format_balance",
]
