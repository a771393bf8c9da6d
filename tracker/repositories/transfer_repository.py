"""
Token transfer repository.

Data access layer for recorded Transfer events.
"""

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from tracker.models.token_transfer import TokenTransfer
from tracker.repositories.base import BaseRepository, chunked


class TransferRepository(BaseRepository[TokenTransfer]):
    """Repository for token transfers."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository."""
        super().__init__(TokenTransfer, session)

    async def get_existing_ids(self, transfer_ids: list[str]) -> set[str]:
        """
        Find which transfer ids are already recorded.

        Args:
            transfer_ids: Candidate ids

        Returns:
            Subset of ids present in the store
        """
        existing: set[str] = set()
        for chunk in chunked(transfer_ids):
            stmt = select(TokenTransfer.id).where(TokenTransfer.id.in_(chunk))
            result = await self.session.execute(stmt)
            existing.update(result.scalars().all())
        return existing

    async def get_by_address(
        self,
        address: str,
        limit: int = 100,
    ) -> list[TokenTransfer]:
        """
        Get transfers involving an address, newest first.

        Args:
            address: Wallet address
            limit: Max results

        Returns:
            List of transfers
        """
        addr = address.lower()

        query = (
            select(TokenTransfer)
            .where(
                or_(
                    TokenTransfer.from_address == addr,
                    TokenTransfer.to_address == addr,
                )
            )
            .order_by(
                TokenTransfer.block_number.desc(),
                TokenTransfer.log_index.desc(),
            )
            .limit(limit)
        )

        result = await self.session.execute(query)
        return list(result.scalars().all())
