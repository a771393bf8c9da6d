"""
Pipeline Mixin.

Drives one batch of blocks from decoded transfers to a single commit.
"""

from decimal import Decimal

from loguru import logger
from sqlalchemy.exc import SQLAlchemyError

from accrual.constants import ZERO_ADDRESS
from accrual.core.models import TriggerKind
from tracker.services.blockchain.transfer_source import BlockData, TransferEvent
from tracker.utils.exceptions import EVENT_FATAL, BatchCommitError
from tracker.utils.security import mask_address
from tracker.validators.address import validate_address

from .mappers import account_to_row, snapshot_to_row, transfer_to_row
from .pending import PendingWriteSet
from .registry import AccountRegistryState


class PipelineMixin:
    """Mixin providing batch processing."""

    async def process_batch(self, blocks: list[BlockData]) -> dict[str, int]:
        """
        Process one batch of blocks and commit it.

        Steps: skip already-recorded transfers, validate, resolve all
        balances, accrue per transfer in block-and-log order, register new
        accounts, sweep once at the last block, commit once.

        Args:
            blocks: Contiguous blocks with their decoded transfers

        Returns:
            Batch statistics

        Raises:
            BalanceLookupError: If a lookup failed under fail_batch
            BatchCommitError: If the commit failed (nothing was written)
        """
        stats = {
            "blocks": len(blocks),
            "transfers": 0,
            "replayed": 0,
            "invalid_events": 0,
            "out_of_order": 0,
            "degraded": 0,
            "registered": 0,
            "swept": 0,
            "accounts": 0,
            "snapshots": 0,
        }
        if not blocks:
            return stats

        blocks = sorted(blocks, key=lambda b: b.number)
        first_block, last_block = blocks[0], blocks[-1]

        pending = PendingWriteSet()
        events = await self._select_events(blocks, stats)

        pairs = sorted(
            {
                (address, event.block_number)
                for _, event in events
                for address in (event.from_address, event.to_address)
                if address != ZERO_ADDRESS
            }
        )
        registry = await self.load_registry({address for address, _ in pairs})
        balances = await self.lookup_balances(pairs)

        for transfer_id, event in events:
            pending.begin()
            try:
                await self._apply_transfer(pending, event, balances)
            except EVENT_FATAL as e:
                pending.rollback()
                stats["invalid_events"] += 1
                logger.warning(f"[PointsIndexer] Skipping transfer {transfer_id}: {e}")
                continue
            pending.release()

            pending.add_transfer(transfer_id, event)
            for address in (event.from_address, event.to_address):
                if self.register(registry, address):
                    stats["registered"] += 1

        swept = await self.maybe_sweep(
            pending, registry, last_block.timestamp, last_block.number
        )

        await self._commit(pending, registry, first_block.number, last_block.number)

        stats.update(
            transfers=len(pending.transfers),
            out_of_order=pending.out_of_order,
            degraded=pending.degraded,
            swept=len(swept),
            accounts=len(pending.accounts),
            snapshots=len(pending.snapshots),
        )
        logger.info(
            f"[PointsIndexer] Committed blocks {first_block.number}-{last_block.number}: "
            f"{stats['transfers']} transfers, {stats['snapshots']} snapshots, "
            f"{stats['swept']} swept, {stats['replayed']} replayed, "
            f"{stats['invalid_events']} invalid"
        )
        return stats

    async def _select_events(
        self, blocks: list[BlockData], stats: dict[str, int]
    ) -> list[tuple[str, TransferEvent]]:
        ordered = [
            event
            for block in blocks
            for event in sorted(block.transfers, key=lambda e: e.log_index)
        ]
        ids = [event.transfer_id(self.chain_id) for event in ordered]
        recorded = await self.transfer_repo.get_existing_ids(ids)

        selected = []
        seen = set()
        for transfer_id, event in zip(ids, ordered):
            if transfer_id in recorded or transfer_id in seen:
                stats["replayed"] += 1
                continue
            seen.add(transfer_id)

            error = self.validate_event(event)
            if error:
                stats["invalid_events"] += 1
                logger.warning(f"[PointsIndexer] Skipping transfer {transfer_id}: {error}")
                continue

            selected.append((transfer_id, event))
        return selected

    @staticmethod
    def validate_event(event: TransferEvent) -> str | None:
        """
        Check a decoded transfer before any state is touched.

        Returns:
            Error message, or None if the event is usable
        """
        for side, address in (("from", event.from_address), ("to", event.to_address)):
            is_valid, error = validate_address(address)
            if not is_valid:
                return f"{side} address {address!r}: {error}"
            if address != address.lower():
                return f"{side} address {address!r} is not lowercase"

        if event.from_address == ZERO_ADDRESS and event.to_address == ZERO_ADDRESS:
            return "zero address on both sides"
        if event.value < 0:
            return f"negative value {event.value}"
        if event.block_timestamp < 0:
            return f"negative block timestamp {event.block_timestamp}"
        return None

    async def _apply_transfer(
        self,
        pending: PendingWriteSet,
        event: TransferEvent,
        balances: dict[tuple[str, int], Decimal | None],
    ) -> None:
        sides = (
            (event.from_address, None),
            (event.to_address, event.value if event.is_mint else None),
        )
        for address, mint_contribution in sides:
            if address == ZERO_ADDRESS:
                continue

            balance = balances.get((address, event.block_number))
            degraded = balance is None
            if degraded:
                balance = await self.last_known_balance(pending, address)
                logger.debug(
                    f"[Balance] Using last known balance {balance} for {mask_address(address)}"
                )

            await self.accrue(
                pending,
                address,
                event.block_timestamp,
                balance,
                TriggerKind.TRANSFER,
                mint_contribution=mint_contribution,
                degraded=degraded,
            )

    async def _commit(
        self,
        pending: PendingWriteSet,
        registry: AccountRegistryState,
        first_block: int,
        last_block: int,
    ) -> None:
        try:
            for account in pending.accounts.values():
                await self.account_repo.upsert(account_to_row(account))
            for snapshot in pending.snapshots.values():
                await self.snapshot_repo.upsert(snapshot_to_row(snapshot))

            if registry.is_dirty:
                await self.registry_repo.save(
                    registry.id,
                    registry.last_global_sweep_timestamp,
                    registry.added,
                )

            self.session.add_all(
                transfer_to_row(transfer_id, event)
                for transfer_id, event in pending.transfers
            )
            await self.sync_repo.advance(
                self.token_address,
                first_block=first_block,
                last_block=last_block,
                transfer_count=len(pending.transfers),
            )
            await self.session.commit()
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.error(
                f"[PointsIndexer] Commit failed for blocks {first_block}-{last_block}: {e}"
            )
            raise BatchCommitError(
                f"Commit failed for blocks {first_block}-{last_block}: {e}"
            ) from e
