"""
Pure business logic calculator for points accrual.

This module contains standalone calculation logic without any
dependencies on database, ORM, or app-specific code. Every quantity is a
Decimal evaluated in a local context so repeated accrual never drifts.
"""

from decimal import Context, Decimal, localcontext

from accrual.constants import (
    DEFAULT_ACCRUAL_PRECISION,
    DEFAULT_DAILY_POINT_RATE,
    SECONDS_PER_DAY,
)


class PointsCalculator:
    """
    Calculator for balance-times-time points accrual.

    Points accrue continuously per second:
    points += balance * daily_point_rate * elapsed_seconds / 86400
    """

    def __init__(
        self,
        daily_point_rate: Decimal = DEFAULT_DAILY_POINT_RATE,
        precision: int = DEFAULT_ACCRUAL_PRECISION,
    ) -> None:
        """
        Initialize calculator.

        Args:
            daily_point_rate: Points per whole token per day
            precision: Significant digits of the decimal context

        Raises:
            ValueError: If rate is negative or precision is not positive
        """
        if daily_point_rate < 0:
            raise ValueError(f"Daily point rate must be >= 0, got {daily_point_rate}")
        if precision <= 0:
            raise ValueError(f"Precision must be positive, got {precision}")

        self.daily_point_rate = Decimal(daily_point_rate)
        self.precision = precision

    def _context(self) -> Context:
        return Context(prec=self.precision)

    @property
    def points_per_second(self) -> Decimal:
        """
        Points earned per token per second.

        Example:
            >>> PointsCalculator(Decimal("86400")).points_per_second
            Decimal('1')
        """
        with localcontext(self._context()):
            return self.daily_point_rate / SECONDS_PER_DAY

    def calculate_accrued_points(
        self,
        balance: Decimal,
        elapsed_seconds: int,
    ) -> Decimal:
        """
        Calculate points earned by holding a balance for a period.

        Multiplications run before the single division, so whole days are
        exact and partial days round once in the last digit.

        Args:
            balance: Balance held during the period
            elapsed_seconds: Length of the period

        Returns:
            Points earned (0 for empty balance or period)

        Example:
            >>> calc = PointsCalculator()
            >>> calc.calculate_accrued_points(Decimal("100"), 86400)
            Decimal('100000')
        """
        if balance <= 0:
            return Decimal("0")

        if elapsed_seconds <= 0:
            return Decimal("0")

        with localcontext(self._context()):
            return (balance * self.daily_point_rate * elapsed_seconds) / SECONDS_PER_DAY

    def calculate_next_points(
        self,
        prior_points: Decimal,
        prior_balance: Decimal,
        last_timestamp: int,
        observed_timestamp: int,
    ) -> Decimal:
        """
        Calculate the point total at a new observation.

        Args:
            prior_points: Points at the previous snapshot
            prior_balance: Balance at the previous snapshot
            last_timestamp: Previous snapshot timestamp (0 = none)
            observed_timestamp: Timestamp of the new observation

        Returns:
            New point total. 0 for a first observation, prior points for
            a same-instant or older observation.
        """
        if last_timestamp == 0:
            return Decimal("0")

        if observed_timestamp <= last_timestamp:
            return prior_points

        accrued = self.calculate_accrued_points(
            prior_balance, observed_timestamp - last_timestamp
        )
        with localcontext(self._context()):
            return prior_points + accrued

    def calculate_next_mint_amount(
        self,
        prior_mint_amount: Decimal,
        mint_contribution: Decimal | None,
    ) -> Decimal:
        """
        Add a mint contribution to the cumulative mint total.

        Args:
            prior_mint_amount: Mint total at the previous snapshot
            mint_contribution: Amount minted by this observation, if any

        Returns:
            New mint total (never lower than the prior total)
        """
        if not mint_contribution or mint_contribution <= 0:
            return prior_mint_amount

        with localcontext(self._context()):
            return prior_mint_amount + mint_contribution
