"""Configuration for retrying data-source calls."""

from dataclasses import dataclass
from enum import Enum
from typing import Tuple, Type


class RetryStrategy(str, Enum):
    """Retry backoff strategies."""
    EXPONENTIAL = "exponential"
    LINEAR = "linear"
    CONSTANT = "constant"


DEFAULT_MAX_RETRIES = 2
DEFAULT_BASE_DELAY = 0.5  # seconds
DEFAULT_MAX_DELAY = 5.0  # seconds
DEFAULT_JITTER_MAX = 0.25  # seconds


@dataclass(frozen=True)
class RetryConfig:
    """Bounded retry with backoff.

    max_retries counts retries after the first attempt, so a call is tried
    at most max_retries + 1 times.
    """

    max_retries: int = DEFAULT_MAX_RETRIES
    base_delay: float = DEFAULT_BASE_DELAY
    max_delay: float = DEFAULT_MAX_DELAY
    jitter_max: float = DEFAULT_JITTER_MAX
    strategy: RetryStrategy = RetryStrategy.EXPONENTIAL
    retryable_exceptions: Tuple[Type[BaseException], ...] = (
        ConnectionError,
        TimeoutError,
    )
