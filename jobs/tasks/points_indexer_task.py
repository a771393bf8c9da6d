"""
Points Indexer Background Task.

Advances the points indexer by one range of final blocks per run:
1. Read the committed cursor
2. Fetch Transfer logs up to the safe head
3. Process the range as one batch (retried from scratch on failure)

Enqueue it periodically from any scheduler; a run
with nothing new is a no-op.
"""

import dramatiq
from loguru import logger

from tracker.config.constants import DRAMATIQ_TIME_LIMIT_INDEXER
from tracker.config.settings import settings
from tracker.repositories.sync_state_repository import SyncStateRepository
from tracker.services.blockchain import TokenBalanceReader, Web3TransferSource, create_web3
from tracker.services.points_indexer import BatchRunner
from jobs.async_runner import run_async
from jobs.broker import broker  # noqa: F401
from jobs.utils.database import create_task_engine, create_task_session_maker


@dramatiq.actor(max_retries=2, time_limit=DRAMATIQ_TIME_LIMIT_INDEXER)  # 10 min timeout
def index_points() -> dict:
    """
    Index the next range of blocks.

    Returns:
        Batch statistics, or an empty dict when there was nothing to do
    """
    logger.info("[PointsIndexer Task] Starting run...")
    try:
        return run_async(run_points_indexer())
    except Exception as e:
        logger.exception(f"[PointsIndexer Task] Run failed: {e}")
        raise  # For dramatiq retry


async def run_points_indexer(max_blocks: int | None = None) -> dict:
    """
    Process one range of blocks after the committed cursor.

    Args:
        max_blocks: Cap on the range length (default: one log chunk)

    Returns:
        Batch statistics, empty when the cursor is already at the safe head
    """
    engine = create_task_engine()
    session_maker = create_task_session_maker(engine)

    w3 = create_web3(settings.rpc_url, poa=settings.rpc_poa_chain)
    source = Web3TransferSource(
        w3,
        settings.token_contract_address,
        decimals=settings.token_decimals,
        chunk_size=settings.indexer_chunk_size,
        confirmations=settings.finality_confirmations,
    )
    balances = TokenBalanceReader(
        w3,
        settings.token_contract_address,
        decimals=settings.token_decimals,
        max_retries=settings.balance_lookup_max_retries,
        timeout=settings.balance_lookup_timeout,
        retry_base_delay=settings.balance_retry_base_delay,
    )

    try:
        async with session_maker() as session:
            state = await SyncStateRepository(session).get_for_token(
                settings.token_contract_address
            )
        from_block = (
            state.last_synced_block + 1 if state else settings.indexer_start_block
        )

        head = await source.safe_head()
        to_block = min(head, from_block + (max_blocks or settings.indexer_chunk_size) - 1)
        if from_block > to_block:
            logger.debug(f"[PointsIndexer Task] Up to date at block {from_block - 1}")
            return {}

        blocks = await source.fetch_range(from_block, to_block)
        runner = BatchRunner(session_maker, balances)
        return await runner.run(blocks)
    finally:
        source.cleanup()
        balances.cleanup()
        await engine.dispose()
