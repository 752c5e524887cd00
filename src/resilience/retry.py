"""Retry with backoff for coroutine calls.

Each retry is logged at WARNING; exhaustion is logged at ERROR and raised
as MaxRetriesExceeded carrying the last underlying exception.
"""

import asyncio
import functools
import logging
import random
from typing import Any, Awaitable, Callable, Optional

from .config import RetryConfig, RetryStrategy

logger = logging.getLogger(__name__)


class MaxRetriesExceeded(Exception):
    """Raised when all retry attempts have been exhausted."""

    def __init__(self, attempts: int, last_exception: BaseException):
        self.attempts = attempts
        self.last_exception = last_exception
        super().__init__(
            f"Gave up after {attempts} attempt(s). Last error: {last_exception}"
        )


def compute_delay(attempt: int, config: RetryConfig) -> float:
    """Delay before retry number `attempt` (0-based), capped at max_delay."""
    if config.strategy == RetryStrategy.EXPONENTIAL:
        delay = config.base_delay * (2 ** attempt)
    elif config.strategy == RetryStrategy.LINEAR:
        delay = config.base_delay * (attempt + 1)
    else:
        delay = config.base_delay

    if config.jitter_max > 0:
        delay += random.uniform(0, config.jitter_max)
    return min(delay, config.max_delay)


async def call_with_retry(
    func: Callable[..., Awaitable[Any]],
    *args: Any,
    config: Optional[RetryConfig] = None,
    **kwargs: Any,
) -> Any:
    """Await `func(*args, **kwargs)`, retrying on the configured exceptions.

    Cancellation is never retried.
    """
    cfg = config or RetryConfig()
    name = getattr(func, "__qualname__", repr(func))
    last_exc: Optional[BaseException] = None

    for attempt in range(cfg.max_retries + 1):
        try:
            return await func(*args, **kwargs)
        except cfg.retryable_exceptions as exc:
            last_exc = exc
            if attempt < cfg.max_retries:
                delay = compute_delay(attempt, cfg)
                logger.warning(
                    "Retry %d/%d for %s after %.2fs: %s",
                    attempt + 1, cfg.max_retries, name, delay, exc,
                )
                await asyncio.sleep(delay)
            else:
                logger.error(
                    "All %d retries exhausted for %s: %s", cfg.max_retries, name, exc,
                )
    raise MaxRetriesExceeded(cfg.max_retries + 1, last_exc)  # type: ignore[arg-type]


def retry(config: Optional[RetryConfig] = None) -> Callable:
    """Decorator form of call_with_retry for coroutine functions.

    Usage:
        @retry(RetryConfig(max_retries=3))
        async def fetch():
            ...
    """

    def decorator(func: Callable[..., Awaitable[Any]]) -> Callable[..., Awaitable[Any]]:
        @functools.wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> Any:
            return await call_with_retry(func, *args, config=config, **kwargs)

        wrapper._retry_config = config or RetryConfig()  # type: ignore[attr-defined]
        return wrapper

    return decorator
