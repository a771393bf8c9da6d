"""
Shared fixtures for integration tests.

Runs the real repositories and service against an in-memory SQLite
database; only the blockchain collaborators are replaced.
"""

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from pipeline_helpers import ScriptedBalances
from tracker.models import Base


@pytest_asyncio.fixture
async def session_maker():
    """Fresh in-memory database per test."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )

    await engine.dispose()


@pytest.fixture
def balances():
    """Scripted balance collaborator."""
    return ScriptedBalances()
