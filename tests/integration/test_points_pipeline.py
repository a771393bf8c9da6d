"""
Integration tests for the points indexing pipeline.

Batches run through BatchRunner against a real (in-memory) database with
a scripted balance collaborator.
"""

from contextlib import asynccontextmanager
from decimal import Decimal
from unittest.mock import AsyncMock

import pytest
from loguru import logger
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError

from accrual.core.models import OutOfOrderPolicy, TriggerKind
from pipeline_helpers import (
    ALICE,
    BOB,
    CAROL,
    ONE_HOUR_OF_100,
    ZERO,
    block,
    transfer,
)
from tracker.config.constants import SQL_IN_CHUNK_SIZE
from tracker.models import Account, Snapshot, TokenTransfer
from tracker.repositories import transfer_repository
from tracker.repositories.account_registry_repository import (
    AccountRegistryRepository,
)
from tracker.repositories.base import chunked
from tracker.repositories.sync_state_repository import SyncStateRepository
from tracker.repositories.transfer_repository import TransferRepository
from tracker.services.points_indexer import BatchRunner, PointsIndexerService
from tracker.utils.enums import BalanceFallbackPolicy
from tracker.utils.exceptions import BalanceLookupError, BatchCommitError

pytestmark = pytest.mark.integration

TOKEN = "0x8236a87084f8b84306f72007f36f2618a5634494"


def make_runner(session_maker, balances, **options):
    options.setdefault("token_address", TOKEN)
    options.setdefault("chain_id", 1)
    options.setdefault("sweep_interval_seconds", 3600)
    return BatchRunner(session_maker, balances, **options)


@asynccontextmanager
async def reader(session_maker):
    async with session_maker() as session:
        yield PointsIndexerService(session, None, token_address=TOKEN, chain_id=1)


async def count_rows(session_maker, model, *criteria) -> int:
    async with session_maker() as session:
        stmt = select(func.count()).select_from(model)
        if criteria:
            stmt = stmt.where(*criteria)
        result = await session.execute(stmt)
        return result.scalar_one()


async def history_rows(session_maker, address):
    async with reader(session_maker) as service:
        return [
            (
                s.key,
                s.balance,
                s.points,
                s.mint_amount,
                s.trigger_kind,
                s.degraded,
            )
            for s in await service.get_snapshot_history(address)
        ]


class FlakyCommits:
    """Session factory whose first `failures` sessions cannot commit."""

    def __init__(self, session_maker, failures: int) -> None:
        self.session_maker = session_maker
        self.failures = failures
        self.opened = 0

    def __call__(self):
        session = self.session_maker()
        self.opened += 1
        if self.opened <= self.failures:
            session.commit = AsyncMock(
                side_effect=OperationalError(
                    "COMMIT", {}, Exception("database is locked")
                )
            )
        return session


MINT_BATCH = [block(1, 1000, transfer(1, 1000, 0, ZERO, ALICE, "100"))]


class TestScenarios:
    """End-to-end accrual scenarios."""

    @pytest.mark.asyncio
    async def test_first_mint(self, session_maker, balances):
        """A mint creates the receiver with zero points."""
        balances.set(ALICE, 1, "100")

        stats = await make_runner(session_maker, balances).run(MINT_BATCH)

        assert stats["transfers"] == 1
        assert stats["registered"] == 1
        assert stats["snapshots"] == 1

        async with reader(session_maker) as service:
            latest = await service.get_account_points(ALICE)

        assert latest.timestamp == 1000
        assert latest.balance == Decimal("100")
        assert latest.points == Decimal("0")
        assert latest.mint_amount == Decimal("100")
        assert latest.trigger_kind == TriggerKind.TRANSFER

    @pytest.mark.asyncio
    async def test_transfer_after_one_day(self, session_maker, balances):
        """A day of holding 100 tokens earns exactly 100000 points."""
        balances.set(ALICE, 1, "100")
        balances.set(ALICE, 2, "70")
        balances.set(BOB, 2, "30")
        runner = make_runner(session_maker, balances)

        await runner.run(MINT_BATCH)
        stats = await runner.run(
            [block(2, 87400, transfer(2, 87400, 0, ALICE, BOB, "30"))]
        )

        assert stats["swept"] == 0

        async with reader(session_maker) as service:
            alice = await service.get_account_points(ALICE)
            bob = await service.get_account_points(BOB)
            registered = await service.get_registered_count()

        assert alice.timestamp == 87400
        assert alice.points == Decimal("100000")
        assert alice.balance == Decimal("70")
        assert alice.mint_amount == Decimal("100")

        assert bob.points == Decimal("0")
        assert bob.balance == Decimal("30")
        assert bob.mint_amount == Decimal("0")

        assert registered == 2

    @pytest.mark.asyncio
    async def test_sweep_accrues_idle_holder(self, session_maker, balances):
        """An empty block an hour later re-accrues the holder."""
        balances.set(ALICE, 1, "100")
        runner = make_runner(session_maker, balances)

        await runner.run(MINT_BATCH)
        stats = await runner.run([block(2, 4600)])

        assert stats["swept"] == 1
        assert (ALICE, 2) in balances.calls

        async with reader(session_maker) as service:
            history = await service.get_snapshot_history(ALICE)

        assert [s.timestamp for s in history] == [1000, 4600]
        swept = history[-1]
        assert swept.points == ONE_HOUR_OF_100
        assert swept.balance == Decimal("100")
        assert swept.mint_amount == Decimal("100")
        assert swept.trigger_kind == TriggerKind.TIME_INTERVAL

    @pytest.mark.asyncio
    async def test_same_second_collapses(self, session_maker, balances):
        """Two mints in the same second leave one snapshot."""
        balances.set(ALICE, 10, "40")
        balances.set(ALICE, 11, "55")

        await make_runner(session_maker, balances).run(
            [
                block(10, 5000, transfer(10, 5000, 0, ZERO, ALICE, "40")),
                block(11, 5000, transfer(11, 5000, 0, ZERO, ALICE, "15")),
            ]
        )

        async with reader(session_maker) as service:
            history = await service.get_snapshot_history(ALICE)

        assert len(history) == 1
        assert history[0].balance == Decimal("55")
        assert history[0].mint_amount == Decimal("55")
        assert history[0].points == Decimal("0")

    @pytest.mark.asyncio
    async def test_sweep_at_transfer_second_keeps_one_row(
        self, session_maker, balances
    ):
        """With a zero interval the sweep lands on the transfer's key."""
        balances.set(ALICE, 1, "100")

        await make_runner(session_maker, balances, sweep_interval_seconds=0).run(
            MINT_BATCH
        )

        history = await history_rows(session_maker, ALICE)
        assert len(history) == 1
        key, balance, points, mint, trigger, _ = history[0]
        assert key == f"{ALICE}-1000"
        assert balance == Decimal("100")
        assert points == Decimal("0")
        assert mint == Decimal("100")
        assert trigger == TriggerKind.TIME_INTERVAL


class TestBalanceLookups:
    """Balance resolution during a batch."""

    @pytest.mark.asyncio
    async def test_one_lookup_per_address_and_block(self, session_maker, balances):
        balances.set(ALICE, 1, "100")

        await make_runner(session_maker, balances).run(
            [
                block(
                    1,
                    1000,
                    transfer(1, 1000, 0, ZERO, ALICE, "100"),
                    transfer(1, 1000, 1, ALICE, BOB, "10"),
                    transfer(1, 1000, 2, ALICE, BOB, "5"),
                )
            ]
        )

        transfer_calls = [call for call in balances.calls if call[1] == 1]
        assert sorted(transfer_calls) == sorted(set(transfer_calls))
        assert set(transfer_calls) == {(ALICE, 1), (BOB, 1)}

    @pytest.mark.asyncio
    async def test_failed_lookup_uses_last_known_balance(
        self, session_maker, balances
    ):
        balances.set(ALICE, 1, "100")
        balances.set(BOB, 2, "30")
        runner = make_runner(session_maker, balances)
        await runner.run(MINT_BATCH)

        balances.failing.add((ALICE, 2))
        stats = await runner.run(
            [block(2, 87400, transfer(2, 87400, 0, ALICE, BOB, "30"))]
        )

        assert stats["degraded"] == 1

        async with reader(session_maker) as service:
            alice = await service.get_account_points(ALICE)
            bob = await service.get_account_points(BOB)

        assert alice.degraded is True
        assert alice.balance == Decimal("100")
        assert alice.points == Decimal("100000")
        assert bob.degraded is False

    @pytest.mark.asyncio
    async def test_fail_batch_policy_aborts(self, session_maker, balances):
        balances.failing.add((ALICE, 1))
        runner = make_runner(
            session_maker,
            balances,
            balance_fallback_policy=BalanceFallbackPolicy.FAIL_BATCH,
        )

        with pytest.raises(BalanceLookupError):
            await runner.run(MINT_BATCH)

        assert await count_rows(session_maker, Account) == 0
        assert await count_rows(session_maker, Snapshot) == 0
        assert await count_rows(session_maker, TokenTransfer) == 0

        async with session_maker() as session:
            state = await SyncStateRepository(session).get_for_token(TOKEN)

        assert state.error_count == 1
        assert "scripted failure" in state.last_error
        assert state.last_synced_block == 0


class TestCommit:
    """Atomic commit and retry."""

    @pytest.mark.asyncio
    async def test_retry_after_commit_failure(self, session_maker, balances):
        balances.set(ALICE, 1, "100")
        factory = FlakyCommits(session_maker, failures=1)

        stats = await make_runner(factory, balances, max_attempts=3).run(MINT_BATCH)

        assert factory.opened == 2
        assert stats["transfers"] == 1
        assert await count_rows(session_maker, Snapshot) == 1
        assert await count_rows(session_maker, TokenTransfer) == 1

        async with reader(session_maker) as service:
            assert await service.get_last_synced_block() == 1

    @pytest.mark.asyncio
    async def test_exhausted_retries_write_nothing(self, session_maker, balances):
        balances.set(ALICE, 1, "100")
        factory = FlakyCommits(session_maker, failures=10)

        with pytest.raises(BatchCommitError):
            await make_runner(factory, balances, max_attempts=2).run(MINT_BATCH)

        assert await count_rows(session_maker, Account) == 0
        assert await count_rows(session_maker, Snapshot) == 0
        assert await count_rows(session_maker, TokenTransfer) == 0


class TestReplay:
    """Re-processing committed batches."""

    @pytest.mark.asyncio
    async def test_replayed_batch_is_noop(self, session_maker, balances):
        balances.set(ALICE, 1, "100")
        balances.set(ALICE, 2, "70")
        balances.set(BOB, 2, "30")
        runner = make_runner(session_maker, balances)
        second = [block(2, 87400, transfer(2, 87400, 0, ALICE, BOB, "30"))]

        await runner.run(MINT_BATCH)
        await runner.run(second)

        before = (
            await history_rows(session_maker, ALICE),
            await history_rows(session_maker, BOB),
        )

        stats = await runner.run(second)
        assert stats["replayed"] == 1
        assert stats["transfers"] == 0
        assert stats["snapshots"] == 0

        stats = await runner.run(MINT_BATCH)
        assert stats["replayed"] == 1
        assert stats["snapshots"] == 0

        after = (
            await history_rows(session_maker, ALICE),
            await history_rows(session_maker, BOB),
        )
        assert after == before
        assert await count_rows(session_maker, TokenTransfer) == 2

        async with session_maker() as session:
            state = await SyncStateRepository(session).get_for_token(TOKEN)
        assert state.total_transfers == 2
        assert state.last_synced_block == 2

    @pytest.mark.asyncio
    async def test_duplicate_log_in_batch_counted_once(self, session_maker, balances):
        balances.set(ALICE, 1, "100")
        mint = transfer(1, 1000, 0, ZERO, ALICE, "100")

        stats = await make_runner(session_maker, balances).run(
            [block(1, 1000, mint, mint)]
        )

        assert stats["transfers"] == 1
        assert stats["replayed"] == 1

        async with reader(session_maker) as service:
            latest = await service.get_account_points(ALICE)
        assert latest.mint_amount == Decimal("100")


class TestEventFiltering:
    """Invalid events and the zero address."""

    @pytest.mark.asyncio
    async def test_invalid_events_skipped(self, session_maker, balances):
        balances.set(CAROL, 1, "5")

        stats = await make_runner(session_maker, balances).run(
            [
                block(
                    1,
                    1000,
                    transfer(1, 1000, 0, ALICE, BOB, "-5"),
                    transfer(1, 1000, 1, "0x1234", BOB, "1"),
                    transfer(1, 1000, 2, ZERO, CAROL, "5"),
                )
            ]
        )

        assert stats["invalid_events"] == 2
        assert stats["transfers"] == 1

        async with reader(session_maker) as service:
            assert await service.get_account_points(BOB) is None
            assert await service.get_account_points(ALICE) is None
            carol = await service.get_account_points(CAROL)
        assert carol.balance == Decimal("5")

    @pytest.mark.asyncio
    async def test_zero_address_never_tracked(self, session_maker, balances):
        balances.set(ALICE, 1, "100")
        balances.set(ALICE, 2, "60")

        await make_runner(session_maker, balances).run(
            [
                block(1, 1000, transfer(1, 1000, 0, ZERO, ALICE, "100")),
                block(2, 2000, transfer(2, 2000, 0, ALICE, ZERO, "40")),
            ]
        )

        assert all(address != ZERO for address, _ in balances.calls)
        assert await count_rows(session_maker, Account, Account.id == ZERO) == 0
        assert (
            await count_rows(session_maker, Snapshot, Snapshot.account_id == ZERO)
            == 0
        )

        async with session_maker() as session:
            members = await AccountRegistryRepository(session).get_member_ids("main")
        assert members == {ALICE}

        history = await history_rows(session_maker, ALICE)
        # Burn does not reduce the mint total
        assert history[-1][3] == Decimal("100")
        assert history[-1][1] == Decimal("60")


class TestOutOfOrder:
    """Observations older than an account's last snapshot."""

    async def _run(self, session_maker, balances, policy):
        balances.set(ALICE, 1, "10")
        balances.set(ALICE, 2, "15")
        balances.set(ALICE, 3, "16")
        runner = make_runner(session_maker, balances, out_of_order_policy=policy)

        await runner.run(
            [
                block(1, 4000, transfer(1, 4000, 0, ZERO, ALICE, "10")),
                block(2, 5000, transfer(2, 5000, 0, ZERO, ALICE, "5")),
            ]
        )
        stats = await runner.run(
            [block(3, 4000, transfer(3, 4000, 0, BOB, ALICE, "1"))]
        )

        async with session_maker() as session:
            account = await session.get(Account, ALICE)
            stale = await session.get(Snapshot, f"{ALICE}-4000")
        return stats, account, stale

    @pytest.mark.asyncio
    async def test_record_balance_overwrites_existing_row(
        self, session_maker, balances
    ):
        stats, account, stale = await self._run(
            session_maker, balances, OutOfOrderPolicy.RECORD_BALANCE
        )

        assert stats["out_of_order"] == 1
        assert account.last_snapshot_timestamp == 5000
        assert stale.balance == Decimal("16")
        assert stale.points == Decimal("0")
        assert stale.mint_amount == Decimal("10")

    @pytest.mark.asyncio
    async def test_skip_leaves_existing_row(self, session_maker, balances):
        stats, account, stale = await self._run(
            session_maker, balances, OutOfOrderPolicy.SKIP
        )

        assert stats["out_of_order"] == 1
        assert account.last_snapshot_timestamp == 5000
        assert stale.balance == Decimal("10")

    @pytest.mark.asyncio
    async def test_stale_mint_is_reported(self, session_maker, balances):
        """The mint a stale observation cannot apply shows up in the warning."""
        balances.set(ALICE, 1, "10")
        balances.set(ALICE, 2, "15")
        balances.set(ALICE, 3, "22")
        runner = make_runner(session_maker, balances)

        await runner.run(
            [
                block(1, 4000, transfer(1, 4000, 0, ZERO, ALICE, "10")),
                block(2, 5000, transfer(2, 5000, 0, ZERO, ALICE, "5")),
            ]
        )

        messages = []
        sink_id = logger.add(messages.append, level="WARNING")
        try:
            stats = await runner.run(
                [block(3, 4000, transfer(3, 4000, 0, ZERO, ALICE, "7"))]
            )
        finally:
            logger.remove(sink_id)

        assert stats["out_of_order"] == 1
        assert any("mint of 7 not applied" in message for message in messages)

        async with session_maker() as session:
            stale = await session.get(Snapshot, f"{ALICE}-4000")
        assert stale.balance == Decimal("22")
        assert stale.mint_amount == Decimal("10")

    @pytest.mark.asyncio
    async def test_stale_transfer_warning_has_no_mint(self, session_maker, balances):
        messages = []
        sink_id = logger.add(messages.append, level="WARNING")
        try:
            await self._run(session_maker, balances, OutOfOrderPolicy.RECORD_BALANCE)
        finally:
            logger.remove(sink_id)

        warnings = [m for m in messages if "Out-of-order" in m]
        assert len(warnings) == 1
        assert "not applied" not in warnings[0]


class TestRegistryLoading:
    """How much of the registry a batch reads."""

    @pytest.mark.asyncio
    async def test_full_member_set_read_once_per_interval(
        self, session_maker, balances, monkeypatch
    ):
        loads = []
        original = AccountRegistryRepository.get_member_ids

        async def counting(self, registry_id):
            members = await original(self, registry_id)
            loads.append(len(members))
            return members

        monkeypatch.setattr(AccountRegistryRepository, "get_member_ids", counting)

        balances.set(ALICE, 1, "100")
        balances.set(ALICE, 2, "90")
        balances.set(BOB, 2, "10")
        runner = make_runner(session_maker, balances)

        stats = await runner.run(MINT_BATCH)
        assert stats["registered"] == 1

        stats = await runner.run(
            [block(2, 2000, transfer(2, 2000, 0, ALICE, BOB, "10"))]
        )
        assert stats["registered"] == 1

        # Both accounts are known now; nothing is registered twice
        stats = await runner.run(
            [block(3, 3000, transfer(3, 3000, 0, BOB, ALICE, "1"))]
        )
        assert stats["registered"] == 0
        assert loads == []

        await runner.run([block(4, 4600)])
        assert loads == [2]

        await runner.run([block(5, 5000, transfer(5, 5000, 0, ALICE, BOB, "2"))])
        await runner.run([block(6, 8000)])
        assert loads == [2]

        stats = await runner.run([block(7, 8600)])
        assert loads == [2, 2]
        assert stats["swept"] == 2

        async with reader(session_maker) as service:
            assert await service.get_registered_count() == 2

    @pytest.mark.asyncio
    async def test_account_added_in_sweep_batch_is_swept(
        self, session_maker, balances
    ):
        """An account registered by the batch that sweeps is part of the sweep."""
        balances.set(ALICE, 1, "100")
        balances.set(BOB, 2, "5")

        stats = await make_runner(session_maker, balances, sweep_interval_seconds=0).run(
            [
                block(1, 1000, transfer(1, 1000, 0, ZERO, ALICE, "100")),
                block(2, 2000, transfer(2, 2000, 0, ZERO, BOB, "5")),
            ]
        )

        assert stats["registered"] == 2
        assert stats["swept"] == 2

        async with session_maker() as session:
            members = await AccountRegistryRepository(session).get_member_ids("main")
        assert members == {ALICE, BOB}


class TestLargeIdSets:
    """IN (...) queries over more ids than one statement should carry."""

    def test_chunked_splits_at_size(self):
        ids = [str(n) for n in range(1201)]

        chunks = list(chunked(ids, size=500))

        assert [len(chunk) for chunk in chunks] == [500, 500, 201]
        assert [i for chunk in chunks for i in chunk] == ids
        assert list(chunked([])) == []

    @pytest.mark.asyncio
    async def test_existing_ids_over_many_chunks(
        self, session_maker, balances, monkeypatch
    ):
        balances.set(ALICE, 1, "100")
        await make_runner(session_maker, balances).run(MINT_BATCH)

        sizes = []

        def recording(ids):
            for chunk in chunked(ids):
                sizes.append(len(chunk))
                yield chunk

        monkeypatch.setattr(transfer_repository, "chunked", recording)

        candidates = [f"1_{n}_0" for n in range(1000, 1000 + 2 * SQL_IN_CHUNK_SIZE)]
        candidates.append("1_1_0")

        async with session_maker() as session:
            existing = await TransferRepository(session).get_existing_ids(candidates)

        assert existing == {"1_1_0"}
        assert sizes == [SQL_IN_CHUNK_SIZE, SQL_IN_CHUNK_SIZE, 1]


class TestLongRun:
    """Properties over many batches."""

    @pytest.mark.asyncio
    async def test_points_and_mints_never_decrease(self, session_maker, balances):
        runner = make_runner(session_maker, balances)
        held = {ALICE: Decimal("0"), BOB: Decimal("0")}

        moves = [
            (ZERO, ALICE, "100"),
            (ALICE, BOB, "25"),
            (ZERO, BOB, "10"),
            (BOB, ZERO, "5"),
            (ALICE, BOB, "50"),
            (BOB, ALICE, "1"),
        ]
        for i, (sender, receiver, value) in enumerate(moves, start=1):
            amount = Decimal(value)
            if sender != ZERO:
                held[sender] -= amount
            if receiver != ZERO:
                held[receiver] += amount
            number = i * 2
            timestamp = i * 5000
            for address, balance in held.items():
                balances.set(address, number - 1, str(balance))

            await runner.run(
                [
                    block(
                        number - 1,
                        timestamp,
                        transfer(number - 1, timestamp, 0, sender, receiver, value),
                    ),
                    block(number, timestamp + 1800),
                ]
            )

        for address in (ALICE, BOB):
            history = await history_rows(session_maker, address)
            timestamps = [int(key.rsplit("-", 1)[1]) for key, *_ in history]
            points = [row[2] for row in history]
            mints = [row[3] for row in history]

            assert timestamps == sorted(set(timestamps))
            assert points == sorted(points)
            assert mints == sorted(mints)

        async with reader(session_maker) as service:
            assert await service.get_last_synced_block() == len(moves) * 2


class TestQueries:
    """Read side."""

    @pytest.mark.asyncio
    async def test_mixed_case_address_lookup(self, session_maker, balances):
        balances.set(ALICE, 1, "100")
        await make_runner(session_maker, balances).run(MINT_BATCH)

        async with reader(session_maker) as service:
            latest = await service.get_account_points(ALICE.upper().replace("0X", "0x"))
        assert latest is not None
        assert latest.account_id == ALICE

    @pytest.mark.asyncio
    async def test_unknown_account(self, session_maker):
        async with reader(session_maker) as service:
            assert await service.get_account_points(CAROL) is None
            assert await service.get_snapshot_history(CAROL) == []
            assert await service.get_last_synced_block() is None

    @pytest.mark.asyncio
    async def test_history_bounds(self, session_maker, balances):
        balances.set(ALICE, 1, "100")
        runner = make_runner(session_maker, balances)
        await runner.run(MINT_BATCH)
        await runner.run([block(2, 4600)])
        await runner.run([block(3, 8200)])

        async with reader(session_maker) as service:
            window = await service.get_snapshot_history(
                ALICE, from_timestamp=4600, to_timestamp=8200
            )
            first = await service.get_snapshot_history(ALICE, limit=1)

        assert [s.timestamp for s in window] == [4600, 8200]
        assert [s.timestamp for s in first] == [1000]

    @pytest.mark.asyncio
    async def test_account_transfers_newest_first(self, session_maker, balances):
        balances.set(ALICE, 1, "100")
        balances.set(ALICE, 2, "70")
        balances.set(BOB, 2, "30")
        runner = make_runner(session_maker, balances)
        await runner.run(MINT_BATCH)
        await runner.run([block(2, 87400, transfer(2, 87400, 0, ALICE, BOB, "30"))])

        async with reader(session_maker) as service:
            alice = await service.get_account_transfers(ALICE)
            bob = await service.get_account_transfers(BOB)

        assert [t.id for t in alice] == ["1_2_0", "1_1_0"]
        assert alice[-1].is_mint is True
        assert alice[0].value == Decimal("30")
        assert [t.id for t in bob] == ["1_2_0"]
