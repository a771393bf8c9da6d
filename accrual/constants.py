"""
Default constants for points accrual.

Rates, time units and precision shared by the calculator, the accrual
engine and the sweep scheduler.
"""

from decimal import Decimal

# EVM zero address: mint source / burn destination, never an account
ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"

SECONDS_PER_HOUR = 60 * 60
SECONDS_PER_DAY = 24 * SECONDS_PER_HOUR

# Points earned per whole token held for one day
DEFAULT_DAILY_POINT_RATE = Decimal("1000")

# Registry-wide re-accrual period
DEFAULT_SWEEP_INTERVAL_SECONDS = SECONDS_PER_HOUR

# Significant digits of the decimal context used for accrual
DEFAULT_ACCRUAL_PRECISION = 50

# Registry singleton id
MAIN_REGISTRY_ID = "main"
