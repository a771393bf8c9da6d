"""
Conversions between accrual states and ORM rows.
"""

from accrual.core.models import AccountState, SnapshotState, TriggerKind

from tracker.models.account import Account
from tracker.models.snapshot import Snapshot
from tracker.models.token_transfer import TokenTransfer
from tracker.services.blockchain.transfer_source import TransferEvent


def account_from_row(row: Account) -> AccountState:
    return AccountState(
        id=row.id,
        last_snapshot_timestamp=row.last_snapshot_timestamp,
    )


def account_to_row(state: AccountState) -> Account:
    return Account(
        id=state.id,
        last_snapshot_timestamp=state.last_snapshot_timestamp,
    )


def snapshot_from_row(row: Snapshot) -> SnapshotState:
    return SnapshotState(
        account_id=row.account_id,
        timestamp=row.timestamp,
        balance=row.balance,
        points=row.points,
        mint_amount=row.mint_amount,
        trigger_kind=TriggerKind(row.trigger_kind),
        degraded=row.is_degraded,
    )


def snapshot_to_row(state: SnapshotState) -> Snapshot:
    return Snapshot(
        id=state.key,
        account_id=state.account_id,
        timestamp=state.timestamp,
        balance=state.balance,
        points=state.points,
        mint_amount=state.mint_amount,
        trigger_kind=state.trigger_kind.value,
        is_degraded=state.degraded,
    )


def transfer_to_row(transfer_id: str, event: TransferEvent) -> TokenTransfer:
    return TokenTransfer(
        id=transfer_id,
        from_address=event.from_address,
        to_address=event.to_address,
        value=event.value,
        block_number=event.block_number,
        block_timestamp=event.block_timestamp,
        log_index=event.log_index,
        transaction_hash=event.transaction_hash,
    )
