"""
Snapshot repository.

Data access layer for account snapshots.
"""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from tracker.models.snapshot import Snapshot
from tracker.repositories.base import BaseRepository


class SnapshotRepository(BaseRepository[Snapshot]):
    """Repository for snapshots."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository."""
        super().__init__(Snapshot, session)

    async def get_at(self, account_id: str, timestamp: int) -> Snapshot | None:
        """
        Get the snapshot of an account at an exact second.

        Args:
            account_id: Lowercase address
            timestamp: Snapshot timestamp

        Returns:
            Snapshot or None
        """
        return await self.get_by_id(f"{account_id}-{timestamp}")

    async def get_history(
        self,
        account_id: str,
        from_timestamp: int | None = None,
        to_timestamp: int | None = None,
        limit: int | None = None,
    ) -> list[Snapshot]:
        """
        Get snapshots of an account in timestamp order.

        Args:
            account_id: Lowercase address
            from_timestamp: Inclusive lower bound
            to_timestamp: Inclusive upper bound
            limit: Max results

        Returns:
            Snapshots, oldest first
        """
        stmt = select(Snapshot).where(Snapshot.account_id == account_id)

        if from_timestamp is not None:
            stmt = stmt.where(Snapshot.timestamp >= from_timestamp)
        if to_timestamp is not None:
            stmt = stmt.where(Snapshot.timestamp <= to_timestamp)

        stmt = stmt.order_by(Snapshot.timestamp.asc())
        if limit:
            stmt = stmt.limit(limit)

        result = await self.session.execute(stmt)
        return list(result.scalars().all())
