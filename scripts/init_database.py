#!/usr/bin/env python3
"""
Create the points tables and seed the indexer cursor.

Usage:
    python scripts/init_database.py [--start-block N]

For managed databases prefer `alembic upgrade head`; this script is for
local and test setups.
"""

import argparse
import asyncio
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from loguru import logger

from tracker.config.settings import settings
from tracker.models import Base
from tracker.repositories.sync_state_repository import SyncStateRepository
from jobs.utils.database import create_task_engine, create_task_session_maker

# Configure logger for script
logger.remove()
logger.add(sys.stderr, level="INFO")


async def init_database(start_block: int) -> None:
    """Create all tables and the sync cursor for the tracked token."""
    engine = create_task_engine()

    try:
        async with engine.begin() as conn:
            logger.info("Creating tables (checkfirst=True)...")
            await conn.run_sync(Base.metadata.create_all, checkfirst=True)

        session_maker = create_task_session_maker(engine)
        async with session_maker() as session:
            state = await SyncStateRepository(session).get_or_create(
                settings.token_contract_address, start_block=start_block
            )
            await session.commit()
    finally:
        await engine.dispose()

    logger.success(
        f"Database ready; indexing {settings.token_contract_address} "
        f"resumes after block {state.last_synced_block}"
    )


def main() -> None:
    parser = argparse.ArgumentParser(description="Initialize the points database")
    parser.add_argument(
        "--start-block",
        type=int,
        default=settings.indexer_start_block,
        help="First block to index when no cursor exists yet",
    )
    args = parser.parse_args()
    asyncio.run(init_database(args.start_block))


if __name__ == "__main__":
    main()
