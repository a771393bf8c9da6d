"""
Snapshot accrual engine.

Pure state transition: given the prior account/snapshot pair and a new
observation (balance + timestamp + trigger), produce the next pair.
Prior-state lookup and persistence belong to the caller.
"""

from decimal import Decimal

from accrual.constants import ZERO_ADDRESS
from accrual.core.calculator import PointsCalculator
from accrual.core.exceptions import InvariantViolationError
from accrual.core.models import (
    AccountState,
    AccrualResult,
    OutOfOrderPolicy,
    SnapshotState,
    TriggerKind,
)


class AccrualEngine:
    """
    Applies observations to accounts.

    Transition rules, by comparing the observation with the account's
    last snapshot timestamp:
    - no prior snapshot: points start at 0
    - older: out-of-order, handled by the configured policy
    - same instant: balance is last-write-wins, points unchanged
    - newer: points accrue on the prior balance for the elapsed time
    """

    def __init__(
        self,
        calculator: PointsCalculator | None = None,
        out_of_order_policy: OutOfOrderPolicy = OutOfOrderPolicy.RECORD_BALANCE,
    ) -> None:
        self.calculator = calculator or PointsCalculator()
        self.out_of_order_policy = OutOfOrderPolicy(out_of_order_policy)

    def accrue(
        self,
        account_id: str,
        observed_timestamp: int,
        observed_balance: Decimal,
        trigger: TriggerKind,
        prior_account: AccountState | None = None,
        prior_snapshot: SnapshotState | None = None,
        mint_contribution: Decimal | None = None,
        existing_snapshot: SnapshotState | None = None,
        degraded: bool = False,
    ) -> AccrualResult | None:
        """
        Compute the next account/snapshot pair.

        Args:
            account_id: Non-zero lowercase hex address
            observed_timestamp: Observation time (seconds)
            observed_balance: Balance at observation time
            trigger: Transfer or TimeInterval
            prior_account: Latest known account state, if any
            prior_snapshot: Snapshot at prior_account.last_snapshot_timestamp
            mint_contribution: Minted amount when the observation is a mint
            existing_snapshot: Snapshot already stored at the observed key,
                only consulted for out-of-order observations
            degraded: Balance is a substitute for a failed lookup

        Returns:
            AccrualResult with the new states, or None for the zero
            address (never an account, nothing to write)

        Raises:
            InvariantViolationError: If a precondition is broken
        """
        if account_id == ZERO_ADDRESS:
            return None

        self._check_preconditions(
            account_id, observed_timestamp, observed_balance, mint_contribution
        )

        last_timestamp = prior_account.last_snapshot_timestamp if prior_account else 0
        prior_points = prior_snapshot.points if prior_snapshot else Decimal("0")
        prior_balance = prior_snapshot.balance if prior_snapshot else Decimal("0")
        prior_mint = prior_snapshot.mint_amount if prior_snapshot else Decimal("0")

        if last_timestamp != 0 and observed_timestamp < last_timestamp:
            return self._handle_out_of_order(
                prior_account, observed_balance, existing_snapshot
            )

        new_points = self.calculator.calculate_next_points(
            prior_points=prior_points,
            prior_balance=prior_balance,
            last_timestamp=last_timestamp,
            observed_timestamp=observed_timestamp,
        )

        if trigger == TriggerKind.TRANSFER:
            new_mint = self.calculator.calculate_next_mint_amount(
                prior_mint, mint_contribution
            )
        else:
            new_mint = prior_mint

        account = AccountState(
            id=account_id,
            last_snapshot_timestamp=observed_timestamp,
        )
        snapshot = SnapshotState(
            account_id=account_id,
            timestamp=observed_timestamp,
            balance=observed_balance,
            points=new_points,
            mint_amount=new_mint,
            trigger_kind=trigger,
            degraded=degraded,
        )
        return AccrualResult(account=account, snapshot=snapshot)

    def _handle_out_of_order(
        self,
        prior_account: AccountState,
        observed_balance: Decimal,
        existing_snapshot: SnapshotState | None,
    ) -> AccrualResult:
        account = prior_account.model_copy()

        if (
            self.out_of_order_policy == OutOfOrderPolicy.SKIP
            or existing_snapshot is None
        ):
            return AccrualResult(account=account, out_of_order=True)

        # Points and mint total of the stored row stay as they are
        snapshot = existing_snapshot.model_copy(update={"balance": observed_balance})
        return AccrualResult(account=account, snapshot=snapshot, out_of_order=True)

    @staticmethod
    def _check_preconditions(
        account_id: str,
        observed_timestamp: int,
        observed_balance: Decimal,
        mint_contribution: Decimal | None,
    ) -> None:
        if not account_id:
            raise InvariantViolationError("Account id is empty")
        if observed_timestamp < 0:
            raise InvariantViolationError(
                f"Negative timestamp {observed_timestamp} for {account_id}"
            )
        if observed_balance < 0:
            raise InvariantViolationError(
                f"Negative balance {observed_balance} for {account_id}"
            )
        if mint_contribution is not None and mint_contribution < 0:
            raise InvariantViolationError(
                f"Negative mint contribution {mint_contribution} for {account_id}"
            )
