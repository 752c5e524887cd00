"""Performance Logging.

Timing for functions and code blocks: DEBUG for normal calls, WARNING
above a slow threshold, ERROR (then re-raise) on failure.
"""

import asyncio
import functools
import logging
import time
from typing import Any, Callable, Optional

from src.logging_config.config import DEFAULT_LOGGING_CONFIG

logger = logging.getLogger(__name__)


def _report(
    log: logging.Logger,
    name: str,
    duration_ms: float,
    threshold_ms: float,
    failure: Optional[BaseException] = None,
) -> None:
    extra = {"duration_ms": round(duration_ms, 2)}
    if failure is not None:
        log.error(f"{name} failed after {duration_ms:.1f}ms: {type(failure).__name__}", extra=extra)
    elif duration_ms >= threshold_ms:
        log.warning(f"Slow operation: {name} took {duration_ms:.1f}ms", extra=extra)
    else:
        log.debug(f"{name} completed in {duration_ms:.1f}ms", extra=extra)


def log_performance(threshold_ms: Optional[float] = None, logger_name: Optional[str] = None) -> Callable:
    """Decorator that logs execution time of sync or async functions.

    Example:
        @log_performance(threshold_ms=250)
        def apply_query(self, instruments, query):
            ...
    """
    limit = DEFAULT_LOGGING_CONFIG.slow_threshold_ms if threshold_ms is None else threshold_ms

    def decorator(func: Callable) -> Callable:
        log = logging.getLogger(logger_name or func.__module__)
        name = func.__qualname__

        if asyncio.iscoroutinefunction(func):
            @functools.wraps(func)
            async def async_wrapper(*args: Any, **kwargs: Any) -> Any:
                start = time.perf_counter()
                try:
                    result = await func(*args, **kwargs)
                except Exception as exc:
                    _report(log, name, (time.perf_counter() - start) * 1000, limit, exc)
                    raise
                _report(log, name, (time.perf_counter() - start) * 1000, limit)
                return result
            return async_wrapper

        @functools.wraps(func)
        def sync_wrapper(*args: Any, **kwargs: Any) -> Any:
            start = time.perf_counter()
            try:
                result = func(*args, **kwargs)
            except Exception as exc:
                _report(log, name, (time.perf_counter() - start) * 1000, limit, exc)
                raise
            _report(log, name, (time.perf_counter() - start) * 1000, limit)
            return result
        return sync_wrapper

    return decorator


class PerformanceTimer:
    """Context manager for timing code blocks.

    Example:
        with PerformanceTimer("fetch_snapshot") as timer:
            instruments = await source.list_instruments()
        print(f"Fetch took {timer.duration_ms:.1f}ms")
    """

    def __init__(self, operation_name: str, threshold_ms: Optional[float] = None):
        self.operation_name = operation_name
        self.threshold_ms = DEFAULT_LOGGING_CONFIG.slow_threshold_ms if threshold_ms is None else threshold_ms
        self.start_time: float = 0.0
        self.duration_ms: float = 0.0

    def __enter__(self) -> "PerformanceTimer":
        self.start_time = time.perf_counter()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.duration_ms = (time.perf_counter() - self.start_time) * 1000
        _report(logger, self.operation_name, self.duration_ms, self.threshold_ms, exc_val)
