"""
Sync state repository.

Reads and advances the points indexer cursor.
"""

from sqlalchemy.ext.asyncio import AsyncSession

from tracker.models.indexer_sync_state import IndexerSyncState
from tracker.repositories.base import BaseRepository


class SyncStateRepository(BaseRepository[IndexerSyncState]):
    """Repository for indexer sync state."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository."""
        super().__init__(IndexerSyncState, session)

    async def get_for_token(self, token_address: str) -> IndexerSyncState | None:
        """Get the cursor of a token, if indexing has started."""
        return await self.get_by(token_address=token_address.lower())

    async def get_or_create(
        self, token_address: str, start_block: int = 0
    ) -> IndexerSyncState:
        """
        Get the cursor of a token, creating it on first use.

        Args:
            token_address: Tracked contract
            start_block: First block to index for a new cursor

        Returns:
            Sync state row
        """
        state = await self.get_for_token(token_address)
        if state:
            return state

        state = IndexerSyncState(
            token_address=token_address.lower(),
            first_synced_block=start_block,
            # Nothing below start_block is ever indexed
            last_synced_block=max(start_block - 1, 0),
            total_transfers=0,
            error_count=0,
        )
        self.session.add(state)
        await self.session.flush()
        return state

    async def advance(
        self,
        token_address: str,
        first_block: int,
        last_block: int,
        transfer_count: int,
    ) -> IndexerSyncState:
        """
        Move the cursor forward after a processed batch.

        Args:
            token_address: Tracked contract
            first_block: First block of the batch
            last_block: Last block of the batch
            transfer_count: Transfers recorded by the batch

        Returns:
            Updated sync state
        """
        state = await self.get_or_create(token_address, start_block=first_block)
        if last_block > state.last_synced_block:
            state.last_synced_block = last_block
        state.total_transfers += transfer_count
        await self.session.flush()
        return state

    async def record_error(
        self, token_address: str, error: str, start_block: int = 0
    ) -> None:
        """Store the last failure for operators."""
        state = await self.get_or_create(token_address, start_block=start_block)
        state.error_count += 1
        state.last_error = error[:2000]
        await self.session.flush()
