"""Equilibrio Stock Screener.

Equilibrium-zone and RSI screening over an instrument snapshot: filter,
stable sort and paginate, with persisted filter presets and CSV export.

Example:
    from src.screener import FilterField, ScreenerSession, SortField, StaticDataSource

    session = ScreenerSession(StaticDataSource(instruments))
    await session.reload()
    session.update_filter(FilterField.EQUILIBRIUM_ZONE, ["discount"])
    session.sort_by(SortField.RSI)
    result = session.view()
    print(f"{result.total_count} matches over {result.total_pages} pages")
"""

from src.screener.config import (
    CLASSIFICATION_VERSION,
    DEFAULT_SCREENER_CONFIG,
    EquilibriumZone,
    FilterField,
    RsiZone,
    ScreenerConfig,
    Signal,
    SortDirection,
    SortField,
    Tone,
    Trend,
    VolumeProfile,
)
from src.screener.exceptions import (
    DataSourceError,
    ErrorCode,
    MalformedInstrumentError,
    ScreenerError,
    StorageError,
    ValidationError,
)
from src.screener.models import (
    FilterCriteria,
    FilterPreset,
    FilterUpdate,
    Insight,
    Instrument,
    InstrumentView,
    Query,
    QueryResult,
)
from src.screener.classification import (
    decorate,
    equilibrium_level,
    equilibrium_zone,
    price_to_equilibrium,
    rsi_zone,
    trading_insights,
)
from src.screener.filters import FILTER_REGISTRY, FilterPredicate, FilterRegistry
from src.screener.engine import ScreenerEngine, paginate, sort_instruments
from src.screener.storage import JsonFileStore, KeyValueStore, MemoryStore, RedisStore, create_store
from src.screener.presets import FilterConfigStore, PresetStore
from src.screener.export import export_bytes, export_csv, export_filename
from src.screener.client import DataSource, HttpDataSource, StaticDataSource, parse_instruments
from src.screener.session import ScreenerSession, create_session

__all__ = [
    # Config
    "CLASSIFICATION_VERSION",
    "DEFAULT_SCREENER_CONFIG",
    "EquilibriumZone",
    "FilterField",
    "RsiZone",
    "ScreenerConfig",
    "Signal",
    "SortDirection",
    "SortField",
    "Tone",
    "Trend",
    "VolumeProfile",
    # Errors
    "DataSourceError",
    "ErrorCode",
    "MalformedInstrumentError",
    "ScreenerError",
    "StorageError",
    "ValidationError",
    # Models
    "FilterCriteria",
    "FilterPreset",
    "FilterUpdate",
    "Insight",
    "Instrument",
    "InstrumentView",
    "Query",
    "QueryResult",
    # Classification
    "decorate",
    "equilibrium_level",
    "equilibrium_zone",
    "price_to_equilibrium",
    "rsi_zone",
    "trading_insights",
    # Filtering
    "FILTER_REGISTRY",
    "FilterPredicate",
    "FilterRegistry",
    "ScreenerEngine",
    "paginate",
    "sort_instruments",
    # Persistence
    "FilterConfigStore",
    "JsonFileStore",
    "KeyValueStore",
    "MemoryStore",
    "PresetStore",
    "RedisStore",
    "create_store",
    # Export
    "export_bytes",
    "export_csv",
    "export_filename",
    # Data sources
    "DataSource",
    "HttpDataSource",
    "StaticDataSource",
    "parse_instruments",
    # Session
    "ScreenerSession",
    "create_session",
]
