"""Utility functions for accrual output."""

from accrual.utils.formatters import format_balance, format_points

__all__ = [
    "format_balance",
    "format_points",
]
