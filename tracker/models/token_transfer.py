"""
Token Transfer model.

Append-only record of every decoded Transfer event. Its primary key
doubles as the replay guard for committed batches.
"""

from datetime import UTC, datetime
from decimal import Decimal

from sqlalchemy import BigInteger, DateTime, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from accrual.constants import ZERO_ADDRESS
from tracker.models.base import Base
from tracker.models.types import BalanceType


class TokenTransfer(Base):
    """Decoded ERC-20 Transfer log."""

    __tablename__ = "token_transfers"

    # "{chain_id}_{block_number}_{log_index}"
    id: Mapped[str] = mapped_column(String(80), primary_key=True)

    # Addresses (normalized to lowercase)
    from_address: Mapped[str] = mapped_column(
        String(42), nullable=False, index=True
    )
    to_address: Mapped[str] = mapped_column(
        String(42), nullable=False, index=True
    )

    value: Mapped[Decimal] = mapped_column(BalanceType, nullable=False)

    block_number: Mapped[int] = mapped_column(
        BigInteger, nullable=False, index=True
    )
    block_timestamp: Mapped[int] = mapped_column(BigInteger, nullable=False)
    log_index: Mapped[int] = mapped_column(Integer, nullable=False)
    transaction_hash: Mapped[str] = mapped_column(String(66), nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False,
    )

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<TokenTransfer(id={self.id}, from={self.from_address}, "
            f"to={self.to_address}, value={self.value})>"
        )

    @property
    def is_mint(self) -> bool:
        """Check if transfer created new tokens."""
        return self.from_address == ZERO_ADDRESS
