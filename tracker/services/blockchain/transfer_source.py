"""
Transfer event source.

Fetches and decodes Transfer logs of the tracked contract and groups them
into blocks for the batch pipeline.
"""

import asyncio
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from decimal import Decimal

from eth_utils import to_checksum_address
from loguru import logger
from web3 import Web3
from web3.middleware import ExtraDataToPOAMiddleware

from accrual.constants import ZERO_ADDRESS
from tracker.config.constants import (
    BLOCKCHAIN_LONG_TIMEOUT,
    BLOCKCHAIN_MAX_RETRIES,
    BLOCKCHAIN_RETRY_DELAY_BASE,
    BLOCKCHAIN_TIMEOUT,
    FINALITY_CONFIRMATIONS,
    INDEXER_CHUNK_SIZE,
)

from .constants import ERC20_ABI, scale_amount
from .rpc_wrapper import rpc_call_with_retry


@dataclass(frozen=True)
class TransferEvent:
    """Decoded Transfer log."""

    from_address: str
    to_address: str
    value: Decimal
    block_number: int
    block_timestamp: int
    log_index: int
    transaction_hash: str

    def transfer_id(self, chain_id: int) -> str:
        """Stable id of the log: "{chain_id}_{block}_{log_index}"."""
        return f"{chain_id}_{self.block_number}_{self.log_index}"

    @property
    def is_mint(self) -> bool:
        """Check if transfer created new tokens."""
        return self.from_address == ZERO_ADDRESS


@dataclass
class BlockData:
    """One block of the batch and the transfers it contains."""

    number: int
    timestamp: int
    transfers: list[TransferEvent] = field(default_factory=list)


def create_web3(rpc_url: str, timeout: float = BLOCKCHAIN_TIMEOUT, poa: bool = False) -> Web3:
    """
    Build a Web3 HTTP client.

    Args:
        rpc_url: JSON-RPC endpoint
        timeout: HTTP request timeout in seconds
        poa: Inject the extraData middleware for proof-of-authority chains

    Returns:
        Web3 instance
    """
    w3 = Web3(Web3.HTTPProvider(rpc_url, request_kwargs={"timeout": timeout}))
    if poa:
        w3.middleware_onion.inject(ExtraDataToPOAMiddleware, layer=0)
    return w3


class Web3TransferSource:
    """
    Reads Transfer logs of one ERC-20 contract.

    Logs are requested in chunks of chunk_size blocks. Every returned
    range ends with its last block even when that block holds no
    transfers, so the pipeline always knows the range's closing time.
    """

    def __init__(
        self,
        w3: Web3,
        token_address: str,
        decimals: int = 0,
        chunk_size: int = INDEXER_CHUNK_SIZE,
        confirmations: int = FINALITY_CONFIRMATIONS,
        max_retries: int = BLOCKCHAIN_MAX_RETRIES,
        retry_base_delay: float = BLOCKCHAIN_RETRY_DELAY_BASE,
    ) -> None:
        self.w3 = w3
        self.contract = w3.eth.contract(
            address=to_checksum_address(token_address), abi=ERC20_ABI
        )
        self.decimals = decimals
        self.chunk_size = chunk_size
        self.confirmations = confirmations
        self.max_retries = max_retries
        self.retry_base_delay = retry_base_delay
        self._executor = ThreadPoolExecutor(
            max_workers=2, thread_name_prefix="web3-logs"
        )

    async def _run(self, func, operation_name: str, timeout: float = BLOCKCHAIN_TIMEOUT):
        loop = asyncio.get_running_loop()
        return await rpc_call_with_retry(
            lambda: loop.run_in_executor(self._executor, func),
            max_retries=self.max_retries,
            timeout=timeout,
            operation_name=operation_name,
            base_delay=self.retry_base_delay,
        )

    async def safe_head(self) -> int:
        """
        Get the newest block considered final.

        Returns:
            Chain head minus the confirmation lag (never below 0)
        """
        head = await self._run(lambda: self.w3.eth.block_number, "eth_blockNumber")
        return max(head - self.confirmations, 0)

    async def get_block_timestamp(self, block_number: int) -> int:
        """Get the timestamp of a block in seconds."""
        block = await self._run(
            lambda: self.w3.eth.get_block(block_number),
            f"eth_getBlockByNumber({block_number})",
        )
        return int(block["timestamp"])

    async def fetch_range(self, from_block: int, to_block: int) -> list[BlockData]:
        """
        Fetch and decode all Transfer logs in a block range.

        Args:
            from_block: First block (inclusive)
            to_block: Last block (inclusive)

        Returns:
            Blocks in ascending order, transfers in log order. The last
            block of the range is always present.
        """
        if from_block > to_block:
            return []

        logs = []
        current = from_block
        while current <= to_block:
            chunk_end = min(current + self.chunk_size - 1, to_block)
            start, end = current, chunk_end
            chunk = await self._run(
                lambda: self.contract.events.Transfer.get_logs(
                    from_block=start, to_block=end
                ),
                f"[PointsIndexer] get_logs {start}-{end}",
                timeout=BLOCKCHAIN_LONG_TIMEOUT,
            )
            logs.extend(chunk)
            current = chunk_end + 1

        block_numbers = sorted({log["blockNumber"] for log in logs} | {to_block})
        timestamps = {}
        for number in block_numbers:
            timestamps[number] = await self.get_block_timestamp(number)

        blocks = {
            number: BlockData(number=number, timestamp=timestamps[number])
            for number in block_numbers
        }
        for log in sorted(logs, key=lambda x: (x["blockNumber"], x["logIndex"])):
            event = self._decode(log, timestamps[log["blockNumber"]])
            blocks[event.block_number].transfers.append(event)

        logger.info(
            f"[PointsIndexer] Fetched {len(logs)} transfers in blocks "
            f"{from_block}-{to_block}"
        )
        return [blocks[number] for number in block_numbers]

    def _decode(self, log, block_timestamp: int) -> TransferEvent:
        args = log["args"]
        return TransferEvent(
            from_address=args["from"].lower(),
            to_address=args["to"].lower(),
            value=scale_amount(args["value"], self.decimals),
            block_number=log["blockNumber"],
            block_timestamp=block_timestamp,
            log_index=log["logIndex"],
            transaction_hash=Web3.to_hex(log["transactionHash"]),
        )

    def cleanup(self) -> None:
        """Clean up thread pool executor."""
        if self._executor:
            self._executor.shutdown(wait=True)
