"""
Shared fixtures for unit tests.

This module provides common fixtures used across multiple test modules:
- PointsCalculator with default rate and precision
- AccrualEngine under each out-of-order policy
- Account addresses
"""

import pytest

from accrual import AccrualEngine, OutOfOrderPolicy, PointsCalculator


@pytest.fixture
def calculator():
    """
    Create PointsCalculator with the default 1000 points/token/day.

    Returns:
        PointsCalculator: Calculator instance for testing
    """
    return PointsCalculator()


@pytest.fixture
def engine(calculator):
    """
    Create AccrualEngine with the default record_balance policy.

    Args:
        calculator: Default calculator

    Returns:
        AccrualEngine: Engine instance for testing
    """
    return AccrualEngine(calculator=calculator)


@pytest.fixture
def skip_engine(calculator):
    """Create AccrualEngine that drops out-of-order observations."""
    return AccrualEngine(calculator=calculator, out_of_order_policy=OutOfOrderPolicy.SKIP)


@pytest.fixture
def alice():
    """Lowercase account address."""
    return "0x" + "a1" * 20


@pytest.fixture
def bob():
    """Second lowercase account address."""
    return "0x" + "b2" * 20
