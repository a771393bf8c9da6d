#!/usr/bin/env python3
"""
Points Indexer Runner.

Runs the points indexer in the foreground: catches up from the committed
cursor to the safe head one chunk at a time, then optionally keeps
following new blocks.

Usage:
    python scripts/run_points_indexer.py               # catch up and exit
    python scripts/run_points_indexer.py --follow      # keep running
    python scripts/run_points_indexer.py --points 0xabc...
"""

import argparse
import asyncio
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from loguru import logger

from accrual.utils.formatters import format_balance, format_points
from tracker.config.settings import settings
from tracker.services.points_indexer import PointsIndexerService
from tracker.utils.logging import setup_logging
from jobs.tasks.points_indexer_task import run_points_indexer
from jobs.utils.database import create_task_engine, create_task_session_maker


async def catch_up(max_blocks: int, follow: bool, poll_interval: float) -> None:
    """Process ranges until the safe head, then poll if following."""
    total_batches = 0
    while True:
        stats = await run_points_indexer(max_blocks=max_blocks)
        if stats:
            total_batches += 1
            continue

        if not follow:
            break
        await asyncio.sleep(poll_interval)

    logger.success(f"Caught up after {total_batches} batches")


async def show_points(address: str) -> None:
    """Print the latest snapshot and recent transfers of an account."""
    engine = create_task_engine()
    session_maker = create_task_session_maker(engine)
    try:
        async with session_maker() as session:
            service = PointsIndexerService(session, balance_lookup=None)
            latest = await service.get_account_points(address)
            if latest is None:
                logger.info(f"No snapshots for {address}")
                return
            history = await service.get_snapshot_history(address)
            logger.info(
                f"{address}: points={format_points(latest.points)} "
                f"balance={format_balance(latest.balance)} "
                f"minted={format_balance(latest.mint_amount)} "
                f"at t={latest.timestamp} ({len(history)} snapshots)"
            )
            for row in await service.get_account_transfers(address, limit=10):
                kind = "mint" if row.is_mint else "transfer"
                logger.info(
                    f"  block {row.block_number} #{row.log_index} {kind}: "
                    f"{row.from_address} -> {row.to_address} {format_balance(row.value)}"
                )
    finally:
        await engine.dispose()


def main():
    parser = argparse.ArgumentParser(
        description="Run the token points indexer"
    )
    parser.add_argument(
        "--follow",
        action="store_true",
        help="Keep polling for new blocks after catching up"
    )
    parser.add_argument(
        "--max-blocks",
        type=int,
        default=settings.indexer_chunk_size,
        help="Blocks per batch"
    )
    parser.add_argument(
        "--poll-interval",
        type=float,
        default=15.0,
        help="Seconds between polls when following"
    )
    parser.add_argument(
        "--points",
        metavar="ADDRESS",
        help="Show the accrued points of an address and exit"
    )

    args = parser.parse_args()
    setup_logging(settings.log_level)

    if args.points:
        asyncio.run(show_points(args.points))
        return

    asyncio.run(catch_up(args.max_blocks, args.follow, args.poll_interval))


if __name__ == "__main__":
    main()
