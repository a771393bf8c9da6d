"""
Indexer Sync State model.

Tracks how far the points indexer has processed the token's Transfer log.
"""

from datetime import UTC, datetime

from sqlalchemy import BigInteger, DateTime, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from tracker.models.base import Base


class IndexerSyncState(Base):
    """
    Points indexer cursor.

    Used to:
    - Know which blocks have been committed
    - Resume indexing after restart
    - Record the last failure for operators
    """

    __tablename__ = "indexer_sync_state"

    # Primary key
    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    # Token identification
    token_address: Mapped[str] = mapped_column(
        String(42), nullable=False, unique=True, index=True
    )

    # Sync range
    first_synced_block: Mapped[int] = mapped_column(
        BigInteger, nullable=False, default=0
    )
    last_synced_block: Mapped[int] = mapped_column(
        BigInteger, nullable=False, default=0
    )

    # Statistics
    total_transfers: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0
    )

    # Error tracking
    last_error: Mapped[str | None] = mapped_column(Text, nullable=True)
    error_count: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0
    )

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        onupdate=lambda: datetime.now(UTC),
        nullable=False,
    )
