"""
Standard type definitions for database models.

Balances and point totals are unbounded decimals produced by the accrual
math. Fixed DECIMAL(p, s) columns would round them, so they are stored as
their canonical string form and read back as Decimal.
"""

from decimal import Decimal

from sqlalchemy import String
from sqlalchemy.types import TypeDecorator


class ExactDecimal(TypeDecorator):
    """Decimal stored as a string, round-trips without loss."""

    impl = String(100)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if not isinstance(value, Decimal):
            value = Decimal(value)
        return str(value)

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return Decimal(value)


# Balance in token units (raw base units when token_decimals is 0)
BalanceType = ExactDecimal()

# Accrued points, up to the configured accrual precision
PointsType = ExactDecimal()
