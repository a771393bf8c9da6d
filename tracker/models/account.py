"""
Account model.

One row per non-zero address that ever held or moved the token.
"""

from datetime import UTC, datetime

from sqlalchemy import BigInteger, DateTime, String
from sqlalchemy.orm import Mapped, mapped_column

from tracker.models.base import Base


class Account(Base):
    """
    Tracked token holder.

    last_snapshot_timestamp is 0 until the first snapshot is written and
    then only moves forward.
    """

    __tablename__ = "accounts"

    # Lowercase hex address
    id: Mapped[str] = mapped_column(String(42), primary_key=True)

    last_snapshot_timestamp: Mapped[int] = mapped_column(
        BigInteger, nullable=False, default=0
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False,
    )

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<Account(id={self.id}, "
            f"last_snapshot_timestamp={self.last_snapshot_timestamp})>"
        )
