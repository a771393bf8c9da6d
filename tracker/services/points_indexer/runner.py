"""
Batch runner.

Runs a batch through PointsIndexerService and retries it from scratch
when it fails in a retryable way.
"""

from collections.abc import Callable

from loguru import logger
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from tracker.config.settings import settings
from tracker.repositories.sync_state_repository import SyncStateRepository
from tracker.services.blockchain.transfer_source import BlockData
from tracker.utils.exceptions import is_batch_retryable

from .core import PointsIndexerService


class BatchRunner:
    """
    Sequential batch executor.

    Every attempt opens a new session and a new service, so the retried
    batch re-reads durable state and starts with an empty pending set.
    """

    def __init__(
        self,
        session_factory: Callable[[], AsyncSession],
        balance_lookup,
        max_attempts: int | None = None,
        **service_options,
    ) -> None:
        """
        Initialize runner.

        Args:
            session_factory: async_sessionmaker or compatible callable
            balance_lookup: Balance collaborator shared by all attempts
            max_attempts: Attempts per batch (default from settings)
            **service_options: Passed to PointsIndexerService
        """
        self.session_factory = session_factory
        self.balance_lookup = balance_lookup
        self.max_attempts = max_attempts or settings.batch_commit_max_attempts
        self.service_options = service_options

    def _token_address(self) -> str:
        return (
            self.service_options.get("token_address")
            or settings.token_contract_address
        ).lower()

    async def run(self, blocks: list[BlockData]) -> dict[str, int]:
        """
        Process a batch, retrying failed attempts.

        Args:
            blocks: Contiguous blocks with decoded transfers

        Returns:
            Statistics of the successful attempt

        Raises:
            Exception: The last error once attempts are exhausted, or any
                non-retryable error immediately
        """
        last_error: Exception | None = None

        for attempt in range(1, self.max_attempts + 1):
            try:
                async with self.session_factory() as session:
                    service = PointsIndexerService(
                        session, self.balance_lookup, **self.service_options
                    )
                    stats = await service.process_batch(blocks)
            except Exception as e:
                if not is_batch_retryable(e):
                    logger.error(f"[PointsIndexer] Batch aborted: {e}")
                    await self._record_error(str(e))
                    raise
                last_error = e
                logger.warning(
                    f"[PointsIndexer] Batch attempt {attempt}/{self.max_attempts} "
                    f"failed: {e}"
                )
                continue

            if attempt > 1:
                logger.success(f"[PointsIndexer] Batch succeeded on attempt {attempt}")
            return stats

        logger.error(
            f"[PointsIndexer] Batch failed after {self.max_attempts} attempts: {last_error}"
        )
        await self._record_error(str(last_error))
        raise last_error

    async def _record_error(self, error: str) -> None:
        try:
            async with self.session_factory() as session:
                await SyncStateRepository(session).record_error(
                    self._token_address(),
                    error,
                    start_block=settings.indexer_start_block,
                )
                await session.commit()
        except SQLAlchemyError as e:
            logger.error(f"[PointsIndexer] Could not record batch error: {e}")
