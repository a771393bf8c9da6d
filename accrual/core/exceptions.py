"""Accrual errors."""


class InvariantViolationError(ValueError):
    """Raised when an observation breaks an accrual precondition.

    Fatal for the single observation only; callers skip and report it.
    """
