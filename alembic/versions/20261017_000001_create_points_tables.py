"""Create points indexer tables.

Revision ID: 20261017_000001
Revises:
Create Date: 2026-10-17

Accounts, snapshots, the sweep registry, recorded transfers and the
indexer cursor. Decimal quantities are stored as strings so that no
backend rounds them.
"""

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "20261017_000001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    """Create points tables."""
    op.create_table(
        "accounts",
        sa.Column("id", sa.String(length=42), nullable=False),
        sa.Column("last_snapshot_timestamp", sa.BigInteger(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "snapshots",
        sa.Column("id", sa.String(length=64), nullable=False),
        sa.Column("account_id", sa.String(length=42), nullable=False),
        sa.Column("timestamp", sa.BigInteger(), nullable=False),
        # Exact decimals as canonical strings
        sa.Column("balance", sa.String(length=100), nullable=False),
        sa.Column("points", sa.String(length=100), nullable=False),
        sa.Column("mint_amount", sa.String(length=100), nullable=False),
        sa.Column("trigger_kind", sa.String(length=20), nullable=False),
        sa.Column("is_degraded", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_snapshots_account_id", "snapshots", ["account_id"])
    op.create_index("ix_snapshots_account_timestamp", "snapshots", ["account_id", "timestamp"])

    op.create_table(
        "account_registry",
        sa.Column("id", sa.String(length=32), nullable=False),
        sa.Column("last_global_sweep_timestamp", sa.BigInteger(), nullable=False, server_default="0"),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "account_registry_members",
        sa.Column("registry_id", sa.String(length=32), nullable=False),
        sa.Column("account_id", sa.String(length=42), nullable=False),
        sa.ForeignKeyConstraint(["registry_id"], ["account_registry.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("registry_id", "account_id"),
    )

    op.create_table(
        "token_transfers",
        sa.Column("id", sa.String(length=80), nullable=False),
        sa.Column("from_address", sa.String(length=42), nullable=False),
        sa.Column("to_address", sa.String(length=42), nullable=False),
        sa.Column("value", sa.String(length=100), nullable=False),
        sa.Column("block_number", sa.BigInteger(), nullable=False),
        sa.Column("block_timestamp", sa.BigInteger(), nullable=False),
        sa.Column("log_index", sa.Integer(), nullable=False),
        sa.Column("transaction_hash", sa.String(length=66), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_token_transfers_from_address", "token_transfers", ["from_address"])
    op.create_index("ix_token_transfers_to_address", "token_transfers", ["to_address"])
    op.create_index("ix_token_transfers_block_number", "token_transfers", ["block_number"])

    op.create_table(
        "indexer_sync_state",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("token_address", sa.String(length=42), nullable=False),
        sa.Column("first_synced_block", sa.BigInteger(), nullable=False, server_default="0"),
        sa.Column("last_synced_block", sa.BigInteger(), nullable=False, server_default="0"),
        sa.Column("total_transfers", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("last_error", sa.Text(), nullable=True),
        sa.Column("error_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_indexer_sync_state_token_address", "indexer_sync_state", ["token_address"], unique=True
    )


def downgrade() -> None:
    """Drop points tables."""
    op.drop_index("ix_indexer_sync_state_token_address", table_name="indexer_sync_state")
    op.drop_table("indexer_sync_state")
    op.drop_index("ix_token_transfers_block_number", table_name="token_transfers")
    op.drop_index("ix_token_transfers_to_address", table_name="token_transfers")
    op.drop_index("ix_token_transfers_from_address", table_name="token_transfers")
    op.drop_table("token_transfers")
    op.drop_table("account_registry_members")
    op.drop_table("account_registry")
    op.drop_index("ix_snapshots_account_timestamp", table_name="snapshots")
    op.drop_index("ix_snapshots_account_id", table_name="snapshots")
    op.drop_table("snapshots")
    op.drop_table("accounts")
