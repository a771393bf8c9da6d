"""
Snapshot model.

Point-in-time record of an account's balance, points and mint total.
"""

from datetime import UTC, datetime
from decimal import Decimal

from sqlalchemy import BigInteger, Boolean, DateTime, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from tracker.models.base import Base
from tracker.models.types import BalanceType, PointsType


class Snapshot(Base):
    """
    Account snapshot.

    Keyed by "{account_id}-{timestamp}", so at most one row exists per
    account per second. Rows are overwritten, never duplicated.
    """

    __tablename__ = "snapshots"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)

    account_id: Mapped[str] = mapped_column(
        String(42), nullable=False, index=True
    )
    timestamp: Mapped[int] = mapped_column(BigInteger, nullable=False)

    balance: Mapped[Decimal] = mapped_column(BalanceType, nullable=False)
    points: Mapped[Decimal] = mapped_column(PointsType, nullable=False)
    mint_amount: Mapped[Decimal] = mapped_column(BalanceType, nullable=False)

    # Transfer or TimeInterval
    trigger_kind: Mapped[str] = mapped_column(String(20), nullable=False)

    # Balance substituted after a failed lookup
    is_degraded: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        onupdate=lambda: datetime.now(UTC),
        nullable=False,
    )

    __table_args__ = (
        Index("ix_snapshots_account_timestamp", "account_id", "timestamp"),
    )

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<Snapshot(id={self.id}, balance={self.balance}, "
            f"points={self.points}, trigger={self.trigger_kind})>"
        )
