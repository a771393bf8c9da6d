"""
Application enums.
"""

from enum import Enum


class BalanceFallbackPolicy(str, Enum):
    """What the pipeline does when a balance lookup keeps failing."""

    LAST_KNOWN = "last_known"  # Prior snapshot balance, snapshot flagged degraded
    FAIL_BATCH = "fail_batch"  # Abort the batch, nothing is committed
