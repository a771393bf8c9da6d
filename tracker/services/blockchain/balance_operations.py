"""
Balance operations for the tracked token.

Historical balanceOf reads, pinned to the block of the observation.
"""

import asyncio
from concurrent.futures import ThreadPoolExecutor
from decimal import Decimal

from eth_utils import to_checksum_address
from loguru import logger
from web3 import Web3

from tracker.config.constants import (
    BLOCKCHAIN_EXECUTOR_WORKERS,
    BLOCKCHAIN_MAX_RETRIES,
    BLOCKCHAIN_RETRY_DELAY_BASE,
    BLOCKCHAIN_TIMEOUT,
)
from tracker.utils.exceptions import BalanceLookupError
from tracker.utils.security import mask_address

from .constants import ERC20_ABI, scale_amount
from .rpc_wrapper import BlockchainError, BlockchainTimeoutError, rpc_call_with_retry


class TokenBalanceReader:
    """
    Reads token balances at a given block.

    Web3 calls are synchronous, so they run in a thread pool and are
    awaited with the timeout and retry policy of rpc_call_with_retry.
    """

    def __init__(
        self,
        w3: Web3,
        token_address: str,
        decimals: int = 0,
        max_retries: int = BLOCKCHAIN_MAX_RETRIES,
        timeout: float = BLOCKCHAIN_TIMEOUT,
        retry_base_delay: float = BLOCKCHAIN_RETRY_DELAY_BASE,
        max_workers: int = BLOCKCHAIN_EXECUTOR_WORKERS,
    ) -> None:
        """
        Initialize balance reader.

        Args:
            w3: Web3 instance
            token_address: Tracked ERC-20 contract
            decimals: Token decimals used to scale raw balances
            max_retries: Attempts per lookup
            timeout: Timeout per attempt in seconds
            retry_base_delay: First backoff delay in seconds
            max_workers: Thread pool size
        """
        self.w3 = w3
        self.contract = w3.eth.contract(
            address=to_checksum_address(token_address), abi=ERC20_ABI
        )
        self.decimals = decimals
        self.max_retries = max_retries
        self.timeout = timeout
        self.retry_base_delay = retry_base_delay
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers,
            thread_name_prefix="web3-balance",
        )

    async def get_balance(self, address: str, block_number: int) -> Decimal:
        """
        Get token balance of an address at a block.

        Args:
            address: Wallet address
            block_number: Block whose post-state is read

        Returns:
            Balance in token units

        Raises:
            BalanceLookupError: If every attempt failed
        """
        checksum = to_checksum_address(address)
        loop = asyncio.get_running_loop()

        def _call() -> int:
            return self.contract.functions.balanceOf(checksum).call(
                block_identifier=block_number
            )

        try:
            raw = await rpc_call_with_retry(
                lambda: loop.run_in_executor(self._executor, _call),
                max_retries=self.max_retries,
                timeout=self.timeout,
                operation_name=f"[Balance] balanceOf({mask_address(address)})@{block_number}",
                base_delay=self.retry_base_delay,
            )
        except (BlockchainError, BlockchainTimeoutError) as e:
            raise BalanceLookupError(address, block_number, str(e)) from e

        balance = scale_amount(raw, self.decimals)
        logger.debug(
            f"[Balance] {mask_address(address)} at block {block_number}: {balance}"
        )
        return balance

    def cleanup(self) -> None:
        """Clean up thread pool executor."""
        if self._executor:
            self._executor.shutdown(wait=True)
