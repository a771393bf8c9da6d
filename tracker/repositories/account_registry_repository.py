"""
Account registry repository.

Loads and saves the registry header and its member set.
"""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from tracker.models.account_registry import AccountRegistry, AccountRegistryMember
from tracker.repositories.base import BaseRepository, chunked


class AccountRegistryRepository(BaseRepository[AccountRegistry]):
    """Repository for the account registry."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository."""
        super().__init__(AccountRegistry, session)

    async def get_member_ids(self, registry_id: str) -> set[str]:
        """
        Get all account ids registered in a registry.

        Reads the whole member table; only the sweep needs this.

        Args:
            registry_id: Registry id

        Returns:
            Set of lowercase addresses
        """
        stmt = select(AccountRegistryMember.account_id).where(
            AccountRegistryMember.registry_id == registry_id
        )
        result = await self.session.execute(stmt)
        return set(result.scalars().all())

    async def get_members_among(
        self, registry_id: str, account_ids: list[str]
    ) -> set[str]:
        """
        Find which of the given accounts are registered.

        Primary-key lookups over the ids only; the rest of the registry
        is never read.

        Args:
            registry_id: Registry id
            account_ids: Candidate lowercase addresses

        Returns:
            Subset of account_ids that are members
        """
        members: set[str] = set()
        for chunk in chunked(account_ids):
            stmt = select(AccountRegistryMember.account_id).where(
                AccountRegistryMember.registry_id == registry_id,
                AccountRegistryMember.account_id.in_(chunk),
            )
            result = await self.session.execute(stmt)
            members.update(result.scalars().all())
        return members

    async def save(
        self,
        registry_id: str,
        last_global_sweep_timestamp: int,
        new_member_ids: set[str],
    ) -> None:
        """
        Persist the registry header and newly added members.

        Members are only ever added, so the caller passes just the ids
        that were not present when the registry was loaded.

        Args:
            registry_id: Registry id
            last_global_sweep_timestamp: Sweep time to store
            new_member_ids: Accounts registered during this batch
        """
        await self.upsert(
            AccountRegistry(
                id=registry_id,
                last_global_sweep_timestamp=last_global_sweep_timestamp,
            )
        )
        # Header row must exist before members reference it
        await self.session.flush()

        self.session.add_all(
            AccountRegistryMember(registry_id=registry_id, account_id=account_id)
            for account_id in sorted(new_member_ids)
        )
