"""
Points Indexer Core Service.

Main service class that combines all points indexer functionality.
Inherits from mixins to provide accrual, sweep, pipeline and query methods.
"""

from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from accrual.constants import MAIN_REGISTRY_ID
from accrual.core.calculator import PointsCalculator
from accrual.core.engine import AccrualEngine
from accrual.core.models import OutOfOrderPolicy
from accrual.core.scheduler import SweepScheduler
from tracker.config.settings import settings
from tracker.repositories.account_registry_repository import (
    AccountRegistryRepository,
)
from tracker.repositories.account_repository import AccountRepository
from tracker.repositories.snapshot_repository import SnapshotRepository
from tracker.repositories.sync_state_repository import SyncStateRepository
from tracker.repositories.transfer_repository import TransferRepository
from tracker.utils.enums import BalanceFallbackPolicy

from .accrual_mixin import AccrualMixin
from .pipeline_mixin import PipelineMixin
from .queries_mixin import QueriesMixin
from .sweep_mixin import SweepMixin


class PointsIndexerService(AccrualMixin, SweepMixin, PipelineMixin, QueriesMixin):
    """
    Points indexer for one token contract.

    Turns Transfer events into per-account snapshots of balance, points
    and mint total, and re-accrues idle holders once per sweep interval.

    One instance serves one batch: it is bound to the batch's session,
    and the registry and pending state are loaded fresh by process_batch.

    Key features:
    - Exact decimal accrual, no float drift
    - One snapshot per account per second (last write wins)
    - Hourly sweep gated on chain time, at most once per interval
    - Replayed batches are no-ops
    """

    def __init__(
        self,
        session: AsyncSession,
        balance_lookup,
        token_address: str | None = None,
        chain_id: int | None = None,
        daily_point_rate: Decimal | None = None,
        sweep_interval_seconds: int | None = None,
        accrual_precision: int | None = None,
        out_of_order_policy: OutOfOrderPolicy | None = None,
        balance_fallback_policy: BalanceFallbackPolicy | None = None,
        lookup_concurrency: int | None = None,
    ):
        """
        Initialize service.

        Unset options fall back to application settings.

        Args:
            session: Database session
            balance_lookup: Object with async get_balance(address, block_number)
            token_address: Tracked contract
            chain_id: Chain id used in transfer ids
            daily_point_rate: Points per whole token per day
            sweep_interval_seconds: Seconds between sweeps
            accrual_precision: Decimal context precision
            out_of_order_policy: Handling of stale observations
            balance_fallback_policy: Handling of failed lookups
            lookup_concurrency: Max concurrent balance lookups
        """
        self.session = session
        self.balance_lookup = balance_lookup

        self.account_repo = AccountRepository(session)
        self.snapshot_repo = SnapshotRepository(session)
        self.registry_repo = AccountRegistryRepository(session)
        self.transfer_repo = TransferRepository(session)
        self.sync_repo = SyncStateRepository(session)

        # Configuration
        self.registry_id = MAIN_REGISTRY_ID
        self.token_address = (token_address or settings.token_contract_address).lower()
        self.chain_id = chain_id if chain_id is not None else settings.chain_id
        self.balance_fallback_policy = BalanceFallbackPolicy(
            balance_fallback_policy or settings.balance_fallback_policy
        )
        self.lookup_concurrency = lookup_concurrency or settings.balance_lookup_concurrency

        calculator = PointsCalculator(
            daily_point_rate=(
                daily_point_rate
                if daily_point_rate is not None
                else settings.daily_point_rate
            ),
            precision=accrual_precision or settings.accrual_precision,
        )
        self.engine = AccrualEngine(
            calculator=calculator,
            out_of_order_policy=out_of_order_policy or settings.out_of_order_policy,
        )
        self.scheduler = SweepScheduler(
            sweep_interval_seconds
            if sweep_interval_seconds is not None
            else settings.sweep_interval_seconds
        )

    async def get_last_synced_block(self) -> int | None:
        """
        Get the last block committed for the tracked token.

        Returns:
            Block number, or None if indexing has not started
        """
        state = await self.sync_repo.get_for_token(self.token_address)
        return state.last_synced_block if state else None
