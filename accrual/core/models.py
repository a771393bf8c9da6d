"""Pydantic models for points accrual."""

from decimal import Decimal
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class TriggerKind(str, Enum):
    """What caused a snapshot to be taken."""

    TRANSFER = "Transfer"
    TIME_INTERVAL = "TimeInterval"


class OutOfOrderPolicy(str, Enum):
    """How an observation older than the account's last snapshot is handled."""

    RECORD_BALANCE = "record_balance"
    SKIP = "skip"


def snapshot_key(account_id: str, timestamp: int) -> str:
    """
    Build the composite snapshot id.

    Args:
        account_id: Lowercase hex account address
        timestamp: Snapshot timestamp (seconds)

    Returns:
        Key in the form "{account_id}-{timestamp}"

    Example:
        >>> snapshot_key("0xabc", 1000)
        '0xabc-1000'
    """
    return f"{account_id}-{timestamp}"


class AccountState(BaseModel):
    """Account as seen by the accrual engine.

    A timestamp of 0 means the account was never snapshotted.
    """

    model_config = ConfigDict(
        frozen=False,
        validate_assignment=True,
    )

    id: str = Field(..., min_length=1, description="Lowercase hex address")
    last_snapshot_timestamp: int = Field(
        default=0, ge=0, description="Timestamp of the latest snapshot"
    )


class SnapshotState(BaseModel):
    """Balance, points and mint total of one account at one instant."""

    model_config = ConfigDict(
        frozen=False,
        validate_assignment=True,
    )

    account_id: str = Field(..., min_length=1, description="Owning account")
    timestamp: int = Field(..., ge=0, description="Snapshot timestamp (seconds)")
    balance: Decimal = Field(..., ge=0, description="Observed token balance")
    points: Decimal = Field(default=Decimal("0"), ge=0, description="Accrued points")
    mint_amount: Decimal = Field(
        default=Decimal("0"), ge=0, description="Cumulative amount minted to account"
    )
    trigger_kind: TriggerKind = Field(..., description="Snapshot cause")
    degraded: bool = Field(
        default=False,
        description="Balance was substituted after a failed lookup",
    )

    @property
    def key(self) -> str:
        """Composite snapshot id."""
        return snapshot_key(self.account_id, self.timestamp)


class AccrualResult(BaseModel):
    """Outcome of applying one observation to an account.

    `snapshot` is None when an out-of-order observation produced no write.
    """

    account: AccountState
    snapshot: SnapshotState | None = None
    out_of_order: bool = False
