"""
Exception handling utilities.

Defines categorized exception types for proper error handling in the
points pipeline.
"""

from sqlalchemy.exc import SQLAlchemyError
from web3.exceptions import Web3Exception

from accrual.core.exceptions import InvariantViolationError


class PointsIndexerError(Exception):
    """Base class for points pipeline failures."""
    pass


class BalanceLookupError(PointsIndexerError):
    """Balance lookup failed after all retries."""

    def __init__(self, address: str, block_number: int, reason: str) -> None:
        self.address = address
        self.block_number = block_number
        self.reason = reason
        super().__init__(
            f"balanceOf({address}) at block {block_number} failed: {reason}"
        )


class BatchCommitError(PointsIndexerError):
    """Store write failed, the whole batch was rolled back."""
    pass


# Exception categories based on handling strategy

# Fatal for one event only - skip it and continue the batch
EVENT_FATAL = (
    InvariantViolationError,
)

# Recoverable by retrying the batch from scratch
BATCH_RETRYABLE = (
    BatchCommitError,
    SQLAlchemyError,
)

# RPC failures, retried inside the lookup wrapper
RPC_RETRYABLE = (
    Web3Exception,
    ConnectionError,
    OSError,
)


def is_batch_retryable(exc: Exception) -> bool:
    """
    Check if a failed batch may be retried.

    Args:
        exc: Exception to check

    Returns:
        True if the batch can be re-run from scratch
    """
    return isinstance(exc, BATCH_RETRYABLE)


__all__ = [
    "BATCH_RETRYABLE",
    "BalanceLookupError",
    "BatchCommitError",
    "EVENT_FATAL",
    "InvariantViolationError",
    "PointsIndexerError",
    "RPC_RETRYABLE",
    "is_batch_retryable",
]
