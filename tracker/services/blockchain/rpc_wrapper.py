"""
RPC Wrapper with Timeout and Retry Logic.

Every call to the node (logs, blocks, balanceOf) goes through
rpc_call_with_retry, so timeouts and backoff are configured in one place.
"""

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from loguru import logger

from tracker.config.constants import BLOCKCHAIN_RETRY_DELAY_BASE, BLOCKCHAIN_TIMEOUT
from tracker.utils.exceptions import RPC_RETRYABLE

T = TypeVar("T")


class BlockchainTimeoutError(Exception):
    """Raised when blockchain RPC call times out."""
    pass


class BlockchainError(Exception):
    """Base exception for blockchain errors."""
    pass


async def with_timeout(
    awaitable: Awaitable[T],
    timeout: float = BLOCKCHAIN_TIMEOUT,
    operation_name: str = "RPC call",
) -> T:
    """
    Await with a deadline.

    Raises:
        BlockchainTimeoutError: If the deadline passes first
    """
    try:
        return await asyncio.wait_for(awaitable, timeout=timeout)
    except TimeoutError as e:
        raise BlockchainTimeoutError(
            f"{operation_name} timed out after {timeout}s"
        ) from e


async def rpc_call_with_retry(
    coro_factory: Callable[[], Awaitable[T]],
    max_retries: int = 3,
    timeout: float = BLOCKCHAIN_TIMEOUT,
    operation_name: str = "RPC call",
    base_delay: float = BLOCKCHAIN_RETRY_DELAY_BASE,
    retry_on: tuple[type[Exception], ...] = RPC_RETRYABLE,
) -> T:
    """
    Run an RPC call with a timeout per attempt and exponential backoff.

    Args:
        coro_factory: Returns a fresh awaitable for every attempt
        max_retries: Total attempts
        timeout: Seconds per attempt
        operation_name: Label for log lines
        base_delay: Seconds before the first retry, doubled afterwards
        retry_on: Errors worth another attempt; timeouts always are

    Returns:
        Result of the first successful attempt

    Raises:
        BlockchainTimeoutError: If the last attempt timed out
        BlockchainError: If attempts ran out, or the error is not retryable
    """
    last_error: Exception | None = None

    for attempt in range(1, max_retries + 1):
        try:
            result = await with_timeout(coro_factory(), timeout, operation_name)
        except (BlockchainTimeoutError, *retry_on) as e:
            last_error = e
        except Exception as e:
            logger.error(f"{operation_name} failed, not retrying: {e}")
            raise BlockchainError(f"{operation_name} failed: {e}") from e
        else:
            if attempt > 1:
                logger.success(f"{operation_name} succeeded on attempt {attempt}")
            return result

        if attempt == max_retries:
            break

        delay = base_delay * 2 ** (attempt - 1)
        logger.warning(
            f"{operation_name} failed on attempt {attempt}/{max_retries}: "
            f"{last_error}. Retrying in {delay}s..."
        )
        await asyncio.sleep(delay)

    logger.error(f"{operation_name} failed after {max_retries} attempts: {last_error}")
    if isinstance(last_error, BlockchainTimeoutError):
        raise last_error
    raise BlockchainError(
        f"{operation_name} failed after {max_retries} attempts: {last_error}"
    ) from last_error
