"""Retry utilities for outbound calls."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

import httpx

logger = logging.getLogger(__name__)


@dataclass
class RetryConfig:
    """Configuration for retry behavior.

    With the defaults a call is attempted once and retried up to five times,
    waiting 100, 200, 400, 800 and 1600 ms in between.
    """

    enabled: bool = True
    max_retries: int = 5
    base_delay_ms: int = 100
    max_delay_ms: int = 1600

    def delay_for(self, attempt: int) -> float:
        """Backoff in seconds after the given zero-based failed attempt."""
        delay_ms = min(self.base_delay_ms * (2**attempt), self.max_delay_ms)
        return delay_ms / 1000


def is_transport_error(error: Exception) -> bool:
    """Check if an error means no response was received.

    Covers connection failures, timeouts and protocol errors. An HTTP error
    status is a received response and never counts.
    """
    return isinstance(error, httpx.TransportError)


async def with_retry[T](
    func: Callable[[], Awaitable[T]],
    config: RetryConfig | None = None,
    operation_name: str = "request",
    retryable: Callable[[Exception], bool] = is_transport_error,
) -> T:
    """Execute an async function with exponential backoff retry.

    Args:
        func: Async function to execute.
        config: Retry configuration.
        operation_name: Name for logging.
        retryable: Decides which errors are worth another attempt.

    Returns:
        Result of the function.

    Raises:
        The last exception if all retries fail.
    """
    config = config or RetryConfig()

    if not config.enabled:
        return await func()

    last_error: Exception | None = None

    for attempt in range(config.max_retries + 1):
        try:
            return await func()
        except Exception as e:
            last_error = e

            # Don't retry non-retryable errors
            if not retryable(e):
                raise

            # Don't retry if we've exhausted attempts
            if attempt >= config.max_retries:
                logger.warning(
                    "retry_exhausted",
                    extra={
                        "operation": operation_name,
                        "attempts": config.max_retries + 1,
                        "error.message": str(e),
                        "error.type": type(e).__name__,
                    },
                )
                raise

            delay_s = config.delay_for(attempt)

            logger.info(
                "retry_attempt",
                extra={
                    "operation": operation_name,
                    "attempt": attempt + 1,
                    "max_attempts": config.max_retries + 1,
                    "retry_delay_s": delay_s,
                    "error.message": str(e),
                    "error.type": type(e).__name__,
                },
            )

            await asyncio.sleep(delay_s)

    # Should never reach here, but satisfy type checker
    assert last_error is not None
    raise last_error
