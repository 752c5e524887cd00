"""Screener Exception Hierarchy.

Typed exceptions for the three failure families the screener knows about:
bad input, an unreachable data source, and a broken durable store.
"""

from enum import Enum
from typing import Optional


class ErrorCode(str, Enum):
    """Machine-readable error codes."""
    VALIDATION_ERROR = "validation_error"
    DATA_SOURCE_UNAVAILABLE = "data_source_unavailable"
    STORAGE_ERROR = "storage_error"
    MALFORMED_INSTRUMENT = "malformed_instrument"


class ScreenerError(Exception):
    """Base exception for all screener errors."""

    def __init__(self, message: str, error_code: ErrorCode):
        super().__init__(message)
        self.message = message
        self.error_code = error_code


class ValidationError(ScreenerError):
    """Raised when an edit is rejected before it touches any state."""

    def __init__(self, message: str = "Validation failed", field: Optional[str] = None):
        super().__init__(message, ErrorCode.VALIDATION_ERROR)
        self.field = field


class DataSourceError(ScreenerError):
    """Raised when the instrument data source cannot be reached or answers badly.

    The caller is expected to surface it with a retry affordance.
    """

    def __init__(self, message: str = "Data source unavailable", status_code: Optional[int] = None):
        super().__init__(message, ErrorCode.DATA_SOURCE_UNAVAILABLE)
        self.status_code = status_code


class StorageError(ScreenerError):
    """Raised by key-value backends; recovered locally by the persistence layer."""

    def __init__(self, message: str = "Storage failure", key: Optional[str] = None):
        super().__init__(message, ErrorCode.STORAGE_ERROR)
        self.key = key


class MalformedInstrumentError(ScreenerError):
    """Raised when a data-source record violates the Instrument contract."""

    def __init__(self, message: str, symbol: Optional[str] = None):
        super().__init__(message, ErrorCode.MALFORMED_INSTRUMENT)
        self.symbol = symbol
