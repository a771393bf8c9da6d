"""Tests for display formatting of points and balances."""

from decimal import Decimal

from accrual import format_balance, format_points


class TestFormatPoints:
    """Tests for format_points."""

    def test_truncates_instead_of_rounding(self) -> None:
        """Test display never shows more points than were earned."""
        assert format_points(Decimal("4166." + "6" * 45 + "7")) == "4,166.6666"

    def test_whole_days(self) -> None:
        """Test whole numbers keep thousands separators."""
        assert format_points(Decimal("100000"), places=0) == "100,000"

    def test_zero(self) -> None:
        """Test zero points."""
        assert format_points(Decimal("0"), places=2) == "0.00"


class TestFormatBalance:
    """Tests for format_balance."""

    def test_strips_trailing_zeros(self) -> None:
        """Test trailing zeros are dropped without scientific notation."""
        assert format_balance(Decimal("70.000")) == "70"

    def test_symbol_suffix(self) -> None:
        """Test symbol is appended."""
        assert format_balance(Decimal("0.50"), "LBTC") == "0.5 LBTC"
