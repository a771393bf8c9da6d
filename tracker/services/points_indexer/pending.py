"""
Batch-local pending write set.

Everything one batch produces lives here until the single commit at the
end of the batch. The driver owns the set exclusively for the batch's
lifetime; a failed batch simply drops it.
"""

from accrual.core.models import AccountState, AccrualResult, SnapshotState

from tracker.services.blockchain.transfer_source import TransferEvent

_MISSING = object()


class PendingWriteSet:
    """
    In-memory accounts, snapshots and transfer records of one batch.

    Snapshots are keyed by "{account_id}-{timestamp}" and accounts by id.
    A second write to the same key replaces the first (last write wins),
    which is how a transfer and a sweep landing on the same second collapse
    into one row.

    Writes made between begin() and rollback() can be undone, so an event
    that fails halfway leaves no trace in the set.
    """

    def __init__(self) -> None:
        self.accounts: dict[str, AccountState] = {}
        self.snapshots: dict[str, SnapshotState] = {}
        self.transfers: list[tuple[str, TransferEvent]] = []

        # Counters reported in batch statistics
        self.out_of_order = 0
        self.degraded = 0

        self._journal: list[tuple[dict, str, object]] | None = None
        self._saved_counters = (0, 0)

    def get_account(self, account_id: str) -> AccountState | None:
        return self.accounts.get(account_id)

    def get_snapshot(self, key: str) -> SnapshotState | None:
        return self.snapshots.get(key)

    def put_account(self, account: AccountState) -> None:
        self._record(self.accounts, account.id)
        self.accounts[account.id] = account

    def put_snapshot(self, snapshot: SnapshotState) -> None:
        self._record(self.snapshots, snapshot.key)
        self.snapshots[snapshot.key] = snapshot

    def apply(self, result: AccrualResult) -> None:
        """Store the account and snapshot produced by one accrual."""
        self.put_account(result.account)
        if result.snapshot is not None:
            self.put_snapshot(result.snapshot)

    def add_transfer(self, transfer_id: str, event: TransferEvent) -> None:
        self.transfers.append((transfer_id, event))

    def begin(self) -> None:
        """Start recording writes so they can be rolled back."""
        self._journal = []
        self._saved_counters = (self.out_of_order, self.degraded)

    def rollback(self) -> None:
        """Undo every write since begin()."""
        if self._journal is None:
            return
        for target, key, previous in reversed(self._journal):
            if previous is _MISSING:
                target.pop(key, None)
            else:
                target[key] = previous
        self.out_of_order, self.degraded = self._saved_counters
        self._journal = None

    def release(self) -> None:
        """Keep the writes since begin()."""
        self._journal = None

    def _record(self, target: dict, key: str) -> None:
        if self._journal is not None:
            self._journal.append((target, key, target.get(key, _MISSING)))

    def __len__(self) -> int:
        return len(self.accounts) + len(self.snapshots)
