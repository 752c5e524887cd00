"""Resilience patterns for calls to the instrument data source."""

from .config import RetryConfig, RetryStrategy
from .retry import MaxRetriesExceeded, call_with_retry, compute_delay, retry

__all__ = [
    "RetryConfig",
    "RetryStrategy",
    "MaxRetriesExceeded",
    "call_with_retry",
    "compute_delay",
    "retry",
]
