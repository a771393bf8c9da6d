"""Pytest configuration and shared fixtures for all tests."""

import os
import sys
from pathlib import Path

# Minimal environment for Settings(); must be set before any tracker import
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("RPC_URL", "http://localhost:8545")
os.environ.setdefault("TOKEN_CONTRACT_ADDRESS", "0x8236a87084f8B84306f72007F36F2618A5634494")
os.environ.setdefault("CHAIN_ID", "1")
os.environ.setdefault("BALANCE_RETRY_BASE_DELAY", "0")
os.environ.setdefault("REDIS_HOST", "localhost")

# Add project root to PYTHONPATH
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

import pytest
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock


@pytest.fixture
def mock_session():
    """Mock AsyncSession for tests without a database."""
    session = AsyncMock()
    session.execute = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.close = AsyncMock()
    session.merge = AsyncMock(side_effect=lambda entity: entity)
    session.add = MagicMock()
    session.add_all = MagicMock()
    return session


@pytest.fixture
def mock_balance_lookup():
    """Mock balance collaborator returning 100 for every lookup."""
    lookup = AsyncMock()
    lookup.get_balance = AsyncMock(return_value=Decimal("100"))
    return lookup


@pytest.fixture
def mock_web3():
    """Mock Web3 instance with a balanceOf contract call."""
    w3 = MagicMock()
    contract = MagicMock()
    contract.functions.balanceOf.return_value.call.return_value = 10**18
    w3.eth.contract.return_value = contract
    w3.eth.block_number = 1_000
    return w3


@pytest.fixture
def sample_wallet_address():
    """Sample valid wallet address for testing."""
    return "0x742d35Cc6634C0532925a3b844Bc9e7595f0bEb0"


@pytest.fixture
def sample_transaction_hash():
    """Sample transaction hash for testing."""
    return "0x1234567890abcdef1234567890abcdef1234567890abcdef1234567890abcdef"
