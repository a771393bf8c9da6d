"""
Formatting utilities for points and balances.

Used for log lines and operator output; never for stored values.
"""

from decimal import ROUND_DOWN, Decimal


def format_points(value: Decimal, places: int = 4) -> str:
    """
    Format a point total for display, truncated to a fixed number of places.

    Args:
        value: Point total
        places: Digits after the decimal point

    Returns:
        Formatted string with thousands separators

    Example:
        >>> format_points(Decimal("4166.666666666666666666666667"))
        '4,166.6666'
        >>> format_points(Decimal("100000"), places=0)
        '100,000'
    """
    quantum = Decimal(1).scaleb(-places)
    truncated = value.quantize(quantum, rounding=ROUND_DOWN)
    return f"{truncated:,}"


def format_balance(value: Decimal, symbol: str = "") -> str:
    """
    Format a token balance for display.

    Args:
        value: Balance
        symbol: Optional token symbol suffix

    Returns:
        Normalized balance string

    Example:
        >>> format_balance(Decimal("70.000"), "LBTC")
        '70 LBTC'
    """
    text = f"{value.normalize():f}"
    return f"{text} {symbol}" if symbol else text
