"""
Database models.

Exports all SQLAlchemy models for easy imports.
"""

from tracker.models.account import Account
from tracker.models.account_registry import AccountRegistry, AccountRegistryMember
from tracker.models.base import Base
from tracker.models.indexer_sync_state import IndexerSyncState
from tracker.models.snapshot import Snapshot
from tracker.models.token_transfer import TokenTransfer

__all__ = [
    "Account",
    "AccountRegistry",
    "AccountRegistryMember",
    "Base",
    "IndexerSyncState",
    "Snapshot",
    "TokenTransfer",
]
