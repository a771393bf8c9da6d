"""
Blockchain collaborators.

Web3 access for the points indexer: Transfer log source and historical
balance lookups.
"""

from .balance_operations import TokenBalanceReader
from .rpc_wrapper import (
    BlockchainError,
    BlockchainTimeoutError,
    rpc_call_with_retry,
    with_timeout,
)
from .transfer_source import BlockData, TransferEvent, Web3TransferSource, create_web3

__all__ = [
    "BlockData",
    "BlockchainError",
    "BlockchainTimeoutError",
    "TokenBalanceReader",
    "TransferEvent",
    "Web3TransferSource",
    "create_web3",
    "rpc_call_with_retry",
    "with_timeout",
]
