"""
Queries Mixin.

Read-side access to accrued points.
"""

from accrual.core.models import SnapshotState
from tracker.models.token_transfer import TokenTransfer
from tracker.validators.address import normalize_address

from .mappers import snapshot_from_row


class QueriesMixin:
    """Mixin providing query methods."""

    async def get_account_points(self, address: str) -> SnapshotState | None:
        """
        Get the latest snapshot of an account.

        Args:
            address: Wallet address (any case)

        Returns:
            Latest snapshot, or None if the account was never seen
        """
        account_id = normalize_address(address)
        account = await self.account_repo.get_by_id(account_id)
        if account is None or account.last_snapshot_timestamp == 0:
            return None

        row = await self.snapshot_repo.get_at(account_id, account.last_snapshot_timestamp)
        return snapshot_from_row(row) if row else None

    async def get_snapshot_history(
        self,
        address: str,
        from_timestamp: int | None = None,
        to_timestamp: int | None = None,
        limit: int | None = None,
    ) -> list[SnapshotState]:
        """
        Get snapshots of an account, oldest first.

        Args:
            address: Wallet address (any case)
            from_timestamp: Inclusive lower bound
            to_timestamp: Inclusive upper bound
            limit: Max results

        Returns:
            List of snapshots
        """
        rows = await self.snapshot_repo.get_history(
            normalize_address(address),
            from_timestamp=from_timestamp,
            to_timestamp=to_timestamp,
            limit=limit,
        )
        return [snapshot_from_row(row) for row in rows]

    async def get_registered_count(self) -> int:
        """Get the number of accounts in the registry."""
        return len(await self.registry_repo.get_member_ids(self.registry_id))

    async def get_account_transfers(
        self, address: str, limit: int = 100
    ) -> list[TokenTransfer]:
        """Get recorded transfers sent or received by an account, newest first."""
        return await self.transfer_repo.get_by_address(
            normalize_address(address), limit=limit
        )
