"""
Accrual Mixin.

Resolves prior state (pending batch first, then the store) and runs the
accrual engine for one observation.
"""

from decimal import Decimal

from loguru import logger

from accrual.constants import ZERO_ADDRESS
from accrual.core.models import (
    AccountState,
    AccrualResult,
    SnapshotState,
    TriggerKind,
    snapshot_key,
)
from tracker.utils.security import mask_address

from .mappers import account_from_row, snapshot_from_row
from .pending import PendingWriteSet


class AccrualMixin:
    """Mixin providing the Accrue operation."""

    async def load_account(
        self, pending: PendingWriteSet, account_id: str
    ) -> AccountState | None:
        """
        Get the latest known state of an account.

        Args:
            pending: Current batch's write set
            account_id: Lowercase address

        Returns:
            Pending account if the batch touched it, else the stored one
        """
        account = pending.get_account(account_id)
        if account is not None:
            return account

        row = await self.account_repo.get_by_id(account_id)
        return account_from_row(row) if row else None

    async def load_snapshot(
        self, pending: PendingWriteSet, account_id: str, timestamp: int
    ) -> SnapshotState | None:
        """Get the snapshot of an account at an exact second."""
        key = snapshot_key(account_id, timestamp)
        snapshot = pending.get_snapshot(key)
        if snapshot is not None:
            return snapshot

        row = await self.snapshot_repo.get_by_id(key)
        return snapshot_from_row(row) if row else None

    async def last_known_balance(
        self, pending: PendingWriteSet, account_id: str
    ) -> Decimal:
        """
        Balance of the account's latest snapshot.

        Used in place of a balance lookup that kept failing.

        Returns:
            Latest snapshot balance, or 0 for a never-seen account
        """
        account = await self.load_account(pending, account_id)
        if account is None or account.last_snapshot_timestamp == 0:
            return Decimal("0")

        snapshot = await self.load_snapshot(
            pending, account_id, account.last_snapshot_timestamp
        )
        return snapshot.balance if snapshot else Decimal("0")

    async def accrue(
        self,
        pending: PendingWriteSet,
        account_id: str,
        observed_timestamp: int,
        observed_balance: Decimal,
        trigger: TriggerKind,
        mint_contribution: Decimal | None = None,
        degraded: bool = False,
    ) -> AccrualResult | None:
        """
        Apply one observation to an account and stage the result.

        Args:
            pending: Current batch's write set, updated in place
            account_id: Lowercase address
            observed_timestamp: Block timestamp of the observation
            observed_balance: Balance at that block
            trigger: Transfer or TimeInterval
            mint_contribution: Minted amount for the receiving side of a mint
            degraded: Balance is a substitute for a failed lookup

        Returns:
            Accrual result, or None for the zero address

        Raises:
            InvariantViolationError: If the observation is malformed
        """
        if account_id == ZERO_ADDRESS:
            return None

        prior_account = await self.load_account(pending, account_id)
        last_timestamp = prior_account.last_snapshot_timestamp if prior_account else 0

        prior_snapshot = None
        if last_timestamp:
            prior_snapshot = await self.load_snapshot(pending, account_id, last_timestamp)

        existing_snapshot = None
        if last_timestamp and observed_timestamp < last_timestamp:
            existing_snapshot = await self.load_snapshot(
                pending, account_id, observed_timestamp
            )

        result = self.engine.accrue(
            account_id=account_id,
            observed_timestamp=observed_timestamp,
            observed_balance=observed_balance,
            trigger=trigger,
            prior_account=prior_account,
            prior_snapshot=prior_snapshot,
            mint_contribution=mint_contribution,
            existing_snapshot=existing_snapshot,
            degraded=degraded,
        )
        if result is None:
            return None

        if result.out_of_order:
            pending.out_of_order += 1
            dropped = (
                f", mint of {mint_contribution} not applied" if mint_contribution else ""
            )
            logger.warning(
                f"[PointsIndexer] Out-of-order observation for "
                f"{mask_address(account_id)}: t={observed_timestamp} < "
                f"last={last_timestamp} ({self.engine.out_of_order_policy.value})"
                f"{dropped}"
            )

        if result.snapshot is not None and result.snapshot.degraded and not result.out_of_order:
            pending.degraded += 1

        pending.apply(result)
        return result
