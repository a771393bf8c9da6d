"""
Account registry models.

The registry is the set of accounts visited by the periodic sweep, plus
the time the last sweep ran.
"""

from sqlalchemy import BigInteger, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column

from tracker.models.base import Base


class AccountRegistry(Base):
    """Registry header row. The system keeps a single row with id "main"."""

    __tablename__ = "account_registry"

    id: Mapped[str] = mapped_column(String(32), primary_key=True)

    last_global_sweep_timestamp: Mapped[int] = mapped_column(
        BigInteger, nullable=False, default=0
    )

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<AccountRegistry(id={self.id}, "
            f"last_global_sweep_timestamp={self.last_global_sweep_timestamp})>"
        )


class AccountRegistryMember(Base):
    """Membership of one account in a registry."""

    __tablename__ = "account_registry_members"

    registry_id: Mapped[str] = mapped_column(
        String(32),
        ForeignKey("account_registry.id", ondelete="CASCADE"),
        primary_key=True,
    )
    account_id: Mapped[str] = mapped_column(String(42), primary_key=True)
