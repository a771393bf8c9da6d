"""
Account registry state.

The time of the last sweep and the membership of the accounts a batch
touches. Loaded from the store at the start of every batch and saved
with the batch's commit; nothing outside a batch holds on to it.

Only a partial member view is held: `accounts` covers the ids whose
membership was resolved for this batch plus the ones it added. The
full member set is read by the sweep alone.
"""

from loguru import logger

from accrual.constants import MAIN_REGISTRY_ID, ZERO_ADDRESS
from tracker.validators.address import validate_address


class AccountRegistryState:
    """Single-owner, batch-scoped view of the account registry."""

    def __init__(
        self,
        registry_id: str = MAIN_REGISTRY_ID,
        accounts: set[str] | None = None,
        last_global_sweep_timestamp: int = 0,
    ) -> None:
        self.id = registry_id
        self.accounts: set[str] = set(accounts or ())
        self.last_global_sweep_timestamp = last_global_sweep_timestamp
        self.added: set[str] = set()
        self._sweep_moved = False

    def add(self, account_id: str) -> bool:
        """
        Register an account.

        Idempotent: an id already present is a no-op.

        Args:
            account_id: Lowercase hex address

        Returns:
            True if the account was newly added
        """
        if account_id == ZERO_ADDRESS:
            return False

        is_valid, error = validate_address(account_id)
        if not is_valid or account_id != account_id.lower():
            logger.warning(f"[Sweep] Refusing to register {account_id!r}: {error or 'not lowercase'}")
            return False

        if account_id in self.accounts:
            return False

        self.accounts.add(account_id)
        self.added.add(account_id)
        return True

    def mark_swept(self, timestamp: int) -> None:
        """Record that a sweep ran at timestamp."""
        self.last_global_sweep_timestamp = timestamp
        self._sweep_moved = True

    @property
    def is_dirty(self) -> bool:
        """Check if anything needs to be saved."""
        return bool(self.added) or self._sweep_moved

    def __contains__(self, account_id: str) -> bool:
        return account_id in self.accounts

    def __len__(self) -> int:
        return len(self.accounts)
