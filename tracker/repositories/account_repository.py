"""
Account repository.

Data access layer for tracked accounts.
"""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from tracker.models.account import Account
from tracker.repositories.base import BaseRepository, chunked


class AccountRepository(BaseRepository[Account]):
    """Repository for accounts."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository."""
        super().__init__(Account, session)

    async def get_many(self, account_ids: list[str]) -> dict[str, Account]:
        """
        Load several accounts, one query per chunk of ids.

        Args:
            account_ids: Lowercase addresses

        Returns:
            Mapping of address to account, missing ids omitted
        """
        accounts: dict[str, Account] = {}
        for chunk in chunked(account_ids):
            stmt = select(Account).where(Account.id.in_(chunk))
            result = await self.session.execute(stmt)
            accounts.update((account.id, account) for account in result.scalars().all())
        return accounts
