"""Structured logging for the Equilibrio screener.

JSON or console output, query-id context binding and performance timing.
"""

from src.logging_config.config import LogFormat, LoggingConfig, LogLevel
from src.logging_config.context import LogContext, generate_query_id, get_query_id
from src.logging_config.performance import PerformanceTimer, log_performance
from src.logging_config.setup import configure_logging, get_logger

__all__ = [
    "LogFormat",
    "LogLevel",
    "LoggingConfig",
    "LogContext",
    "PerformanceTimer",
    "configure_logging",
    "generate_query_id",
    "get_logger",
    "get_query_id",
    "log_performance",
]
