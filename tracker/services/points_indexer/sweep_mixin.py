"""
Sweep Mixin.

Account registration and the periodic registry-wide re-accrual.
"""

import asyncio
from decimal import Decimal

from loguru import logger

from accrual.core.models import AccountState, AccrualResult, TriggerKind
from tracker.utils.enums import BalanceFallbackPolicy
from tracker.utils.exceptions import BalanceLookupError
from tracker.utils.security import mask_address

from .mappers import account_from_row
from .pending import PendingWriteSet
from .registry import AccountRegistryState

class SweepMixin:
    """Mixin providing registry and sweep operations."""

    async def load_registry(self, account_ids: set[str]) -> AccountRegistryState:
        """
        Load the registry header and the membership of the given accounts.

        The full member set is not read here; see maybe_sweep.

        Args:
            account_ids: Accounts the batch touches

        Returns:
            Fresh registry state, empty if none was ever saved
        """
        row = await self.registry_repo.get_by_id(self.registry_id)
        if row is None:
            return AccountRegistryState(self.registry_id)

        members = await self.registry_repo.get_members_among(
            self.registry_id, sorted(account_ids)
        )
        return AccountRegistryState(
            self.registry_id,
            accounts=members,
            last_global_sweep_timestamp=row.last_global_sweep_timestamp,
        )

    def register(self, registry: AccountRegistryState, account_id: str) -> bool:
        """
        Add an account to the registry (idempotent).

        Returns:
            True if the account was newly registered
        """
        added = registry.add(account_id)
        if added:
            logger.debug(f"[Sweep] Registered {mask_address(account_id)}")
        return added

    async def lookup_balances(
        self, pairs: list[tuple[str, int]]
    ) -> dict[tuple[str, int], Decimal | None]:
        """
        Resolve balances for distinct (address, block) pairs concurrently.

        Args:
            pairs: Addresses and the block to read each at

        Returns:
            Balance per pair; None where the lookup failed and the
            fallback policy allows substitution

        Raises:
            BalanceLookupError: On failure under the fail_batch policy
        """
        semaphore = asyncio.Semaphore(self.lookup_concurrency)

        async def _lookup(address: str, block_number: int):
            async with semaphore:
                try:
                    balance = await self.balance_lookup.get_balance(address, block_number)
                except BalanceLookupError as e:
                    if self.balance_fallback_policy == BalanceFallbackPolicy.FAIL_BATCH:
                        raise
                    logger.warning(
                        f"[Balance] Lookup failed for {mask_address(address)} at "
                        f"block {block_number}, using last known balance: {e.reason}"
                    )
                    balance = None
            return (address, block_number), balance

        tasks = [
            asyncio.ensure_future(_lookup(address, block)) for address, block in pairs
        ]
        try:
            results = await asyncio.gather(*tasks)
        except Exception:
            # Stop the lookups still in flight and collect their outcomes
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise
        return dict(results)

    async def _load_accounts(
        self, pending: PendingWriteSet, account_ids: set[str]
    ) -> dict[str, AccountState]:
        accounts: dict[str, AccountState] = {}
        missing = []
        for account_id in account_ids:
            account = pending.get_account(account_id)
            if account is not None:
                accounts[account_id] = account
            else:
                missing.append(account_id)

        rows = await self.account_repo.get_many(sorted(missing))
        for account_id, row in rows.items():
            accounts[account_id] = account_from_row(row)
        return accounts

    async def maybe_sweep(
        self,
        pending: PendingWriteSet,
        registry: AccountRegistryState,
        current_timestamp: int,
        block_number: int,
    ) -> list[AccrualResult]:
        """
        Re-accrue every due account if a sweep interval has passed.

        Args:
            pending: Current batch's write set, updated in place
            registry: Registry loaded for this batch
            current_timestamp: Timestamp of the batch's last block
            block_number: Number of the batch's last block

        Returns:
            Results of the accounts swept (empty when the sweep is not due)
        """
        if not self.scheduler.is_sweep_due(
            registry.last_global_sweep_timestamp, current_timestamp
        ):
            return []

        registry.mark_swept(current_timestamp)

        # Full registry walk, at most once per sweep interval
        members = await self.registry_repo.get_member_ids(registry.id)
        members |= registry.added

        accounts = await self._load_accounts(pending, members)
        due = sorted(
            account_id
            for account_id, account in accounts.items()
            if self.scheduler.is_account_due(
                account.last_snapshot_timestamp, current_timestamp
            )
        )
        if not due:
            logger.debug(f"[Sweep] No accounts due at t={current_timestamp}")
            return []

        balances = await self.lookup_balances(
            [(account_id, block_number) for account_id in due]
        )

        results = []
        for account_id in due:
            balance = balances.get((account_id, block_number))
            degraded = balance is None
            if degraded:
                balance = await self.last_known_balance(pending, account_id)

            result = await self.accrue(
                pending,
                account_id,
                current_timestamp,
                balance,
                TriggerKind.TIME_INTERVAL,
                degraded=degraded,
            )
            if result is not None:
                results.append(result)

        logger.info(
            f"[Sweep] Swept {len(results)}/{len(members)} accounts "
            f"at t={current_timestamp} (block {block_number})"
        )
        return results
