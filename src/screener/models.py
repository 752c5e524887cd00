"""Equilibrium Screener Data Models.

Dataclasses for instruments, filter criteria, queries, results and presets.
"""

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Any, Optional
import logging
import math
import uuid

from src.screener.config import (
    CLASSIFICATION_VERSION,
    MULTI_SELECT_FIELDS,
    NUMERIC_FIELDS,
    PRICE_CEILING,
    PRICE_FLOOR,
    RSI_CEILING,
    RSI_FLOOR,
    EquilibriumZone,
    FilterField,
    InsightKind,
    RsiZone,
    Signal,
    SortDirection,
    SortField,
    Tone,
    Trend,
    VolumeProfile,
)
from src.screener.exceptions import MalformedInstrumentError, ValidationError

logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _new_preset_id() -> str:
    return f"preset_{uuid.uuid4().hex[:12]}"


def _parse_timestamp(value: Any) -> Optional[datetime]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    try:
        return datetime.fromisoformat(str(value))
    except ValueError:
        logger.debug("Unparseable timestamp %r", value)
        return None


# =============================================================================
# Instrument
# =============================================================================

# wire name -> attribute name for the numeric fields of an Instrument
_INSTRUMENT_NUMERIC = {
    "price": "price",
    "change": "change",
    "changePercent": "change_percent",
    "marketCap": "market_cap",
    "rsi": "rsi",
    "stochRsi": "stoch_rsi",
    "historicRsiAvg": "historic_rsi_avg",
    "sma50": "sma_50",
    "sma200": "sma_200",
    "ema20": "ema_20",
    "macd": "macd",
    "macdSignal": "macd_signal",
    "macdHistogram": "macd_histogram",
    "equilibriumLevel": "equilibrium_level",
    "priceToEquilibrium": "price_to_equilibrium",
    "distanceFrom52WeekHigh": "distance_from_52w_high",
    "distanceFrom52WeekLow": "distance_from_52w_low",
}


@dataclass(frozen=True)
class Instrument:
    """Immutable snapshot of one scanned equity with its precomputed indicators."""
    symbol: str
    name: str = ""
    sector: str = ""
    industry: str = ""

    # Quote
    price: float = 0.0
    change: float = 0.0
    change_percent: float = 0.0
    volume: int = 0
    market_cap: float = 0.0

    # Technical indicators
    rsi: float = 50.0
    stoch_rsi: float = 50.0
    historic_rsi_avg: float = 50.0
    sma_50: float = 0.0
    sma_200: float = 0.0
    ema_20: float = 0.0
    macd: float = 0.0
    macd_signal: float = 0.0
    macd_histogram: float = 0.0

    # Equilibrium (50% retracement of the 52-week range)
    equilibrium_level: float = 0.0
    price_to_equilibrium: float = 0.0
    distance_from_52w_high: float = 0.0
    distance_from_52w_low: float = 0.0

    # Pre-classified by the data source
    trend: Trend = Trend.NEUTRAL
    signal: Signal = Signal.HOLD
    volume_profile: VolumeProfile = VolumeProfile.MEDIUM

    last_updated: Optional[datetime] = None

    @classmethod
    def from_api(cls, data: dict) -> "Instrument":
        """Build an Instrument from a data-source record (camelCase keys).

        Raises:
            MalformedInstrumentError: missing symbol/price, non-numeric values
                or unknown categorical values.
        """
        from src.screener.classification import price_to_equilibrium

        if not isinstance(data, dict):
            raise MalformedInstrumentError(f"Instrument record must be an object, got {type(data).__name__}")

        symbol = data.get("symbol")
        if not isinstance(symbol, str) or not symbol:
            raise MalformedInstrumentError("Instrument record has no symbol")
        if data.get("price") is None:
            raise MalformedInstrumentError(f"{symbol}: missing price", symbol=symbol)

        values: dict[str, Any] = {}
        for wire_name, attr in _INSTRUMENT_NUMERIC.items():
            raw = data.get(wire_name)
            if raw is None:
                continue
            try:
                values[attr] = float(raw)
            except (TypeError, ValueError):
                raise MalformedInstrumentError(
                    f"{symbol}: {wire_name} is not numeric ({raw!r})", symbol=symbol
                ) from None

        try:
            volume = int(data.get("volume") or 0)
            trend = Trend(data.get("trend", Trend.NEUTRAL.value))
            signal = Signal(data.get("signal", Signal.HOLD.value))
            volume_profile = VolumeProfile(data.get("volumeProfile", VolumeProfile.MEDIUM.value))
        except (TypeError, ValueError) as e:
            raise MalformedInstrumentError(f"{symbol}: {e}", symbol=symbol) from None

        if "macd_histogram" not in values:
            values["macd_histogram"] = values.get("macd", 0.0) - values.get("macd_signal", 0.0)

        if "price_to_equilibrium" not in values and "equilibrium_level" in values:
            values["price_to_equilibrium"] = price_to_equilibrium(
                values["price"], values["equilibrium_level"]
            )

        return cls(
            symbol=symbol,
            name=str(data.get("name") or ""),
            sector=str(data.get("sector") or ""),
            industry=str(data.get("industry") or ""),
            volume=volume,
            trend=trend,
            signal=signal,
            volume_profile=volume_profile,
            last_updated=_parse_timestamp(data.get("lastUpdated")),
            **values,
        )

    def to_dict(self) -> dict:
        d = {
            "symbol": self.symbol,
            "name": self.name,
            "sector": self.sector,
            "industry": self.industry,
            "volume": self.volume,
            "trend": self.trend.value,
            "signal": self.signal.value,
            "volumeProfile": self.volume_profile.value,
            "lastUpdated": self.last_updated.isoformat() if self.last_updated else None,
        }
        for wire_name, attr in _INSTRUMENT_NUMERIC.items():
            d[wire_name] = getattr(self, attr)
        return d


# =============================================================================
# Filter Models
# =============================================================================

_FIELD_ATTRS = {
    FilterField.SEARCH_TERM: "search_term",
    FilterField.SECTORS: "sectors",
    FilterField.RSI_MIN: "rsi_min",
    FilterField.RSI_MAX: "rsi_max",
    FilterField.PRICE_MIN: "price_min",
    FilterField.PRICE_MAX: "price_max",
    FilterField.VOLUME_PROFILE: "volume_profile",
    FilterField.SIGNALS: "signals",
    FilterField.TREND: "trend",
    FilterField.EQUILIBRIUM_ZONE: "equilibrium_zone",
}


def _coerce_number(field_name: str, value: Any) -> float:
    if isinstance(value, bool):
        raise ValidationError(f"{field_name} must be a number", field=field_name)
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field_name} must be a number, got {value!r}", field=field_name) from None
    if math.isnan(number):
        raise ValidationError(f"{field_name} must not be NaN", field=field_name)
    return number


def _coerce_selection(field_name: str, value: Any, enum_cls) -> tuple:
    if value is None:
        return ()
    if isinstance(value, (str, bytes)) or not hasattr(value, "__iter__"):
        raise ValidationError(f"{field_name} must be a list of values", field=field_name)
    selected = []
    for item in value:
        if enum_cls is not None:
            try:
                item = enum_cls(item)
            except ValueError:
                raise ValidationError(f"{field_name}: unknown value {item!r}", field=field_name) from None
        elif not isinstance(item, str):
            raise ValidationError(f"{field_name} values must be strings", field=field_name)
        if item not in selected:
            selected.append(item)
    return tuple(selected)


@dataclass(frozen=True)
class FilterUpdate:
    """Tagged "set field X to value V" operation on FilterCriteria.

    The value is coerced to the field's type on construction; a value that
    cannot be coerced raises ValidationError.
    """
    field: FilterField
    value: Any

    def __post_init__(self):
        try:
            field_id = FilterField(self.field)
        except ValueError:
            raise ValidationError(f"Unknown filter field: {self.field!r}") from None
        object.__setattr__(self, "field", field_id)

        if field_id == FilterField.SEARCH_TERM:
            value = "" if self.value is None else self.value
            if not isinstance(value, str):
                raise ValidationError("searchTerm must be a string", field=field_id.value)
        elif field_id in NUMERIC_FIELDS:
            value = _coerce_number(field_id.value, self.value)
        else:
            value = _coerce_selection(field_id.value, self.value, MULTI_SELECT_FIELDS[field_id])
        object.__setattr__(self, "value", value)

    @classmethod
    def toggle(cls, criteria: "FilterCriteria", field_id: FilterField, value: Any) -> "FilterUpdate":
        """Update that adds `value` to a multi-select field, or removes it if present."""
        if field_id not in MULTI_SELECT_FIELDS:
            raise ValidationError(f"{field_id!r} is not a multi-select field")
        field_id = FilterField(field_id)
        enum_cls = MULTI_SELECT_FIELDS[field_id]
        if enum_cls is not None:
            try:
                value = enum_cls(value)
            except ValueError:
                raise ValidationError(f"{field_id.value}: unknown value {value!r}", field=field_id.value) from None
        current = list(criteria.get(field_id))
        if value in current:
            current.remove(value)
        else:
            current.append(value)
        return cls(field_id, current)


@dataclass(frozen=True)
class FilterCriteria:
    """The user's current constraint set.

    Empty selections mean "no constraint". Numeric bounds are inclusive and
    only constrain when narrower than the defaults.
    """
    search_term: str = ""
    sectors: tuple[str, ...] = ()
    rsi_min: float = RSI_FLOOR
    rsi_max: float = RSI_CEILING
    price_min: float = PRICE_FLOOR
    price_max: float = PRICE_CEILING
    volume_profile: tuple[VolumeProfile, ...] = ()
    signals: tuple[Signal, ...] = ()
    trend: tuple[Trend, ...] = ()
    equilibrium_zone: tuple[EquilibriumZone, ...] = ()

    def __post_init__(self):
        for field_id, attr in _FIELD_ATTRS.items():
            object.__setattr__(self, attr, FilterUpdate(field_id, getattr(self, attr)).value)

    def get(self, field_id: FilterField) -> Any:
        return getattr(self, _FIELD_ATTRS[FilterField(field_id)])

    def apply(self, update: FilterUpdate) -> "FilterCriteria":
        """Return a copy with one field replaced."""
        return replace(self, **{_FIELD_ATTRS[update.field]: update.value})

    @property
    def rsi_range_degenerate(self) -> bool:
        return self.rsi_min > self.rsi_max

    @property
    def price_range_degenerate(self) -> bool:
        return self.price_min > self.price_max

    def is_default(self) -> bool:
        return self == FilterCriteria()

    def active_filter_count(self) -> int:
        """Number of dimensions currently constraining the result."""
        count = 0
        if self.search_term:
            count += 1
        for field_id in MULTI_SELECT_FIELDS:
            if self.get(field_id):
                count += 1
        if self.rsi_min > RSI_FLOOR or self.rsi_max < RSI_CEILING or self.rsi_range_degenerate:
            count += 1
        if self.price_min > PRICE_FLOOR or self.price_max < PRICE_CEILING or self.price_range_degenerate:
            count += 1
        return count

    def to_dict(self) -> dict:
        d = {}
        for field_id, attr in _FIELD_ATTRS.items():
            value = getattr(self, attr)
            if isinstance(value, tuple):
                value = [v.value if hasattr(v, "value") else v for v in value]
            d[field_id.value] = value
        return d

    @classmethod
    def from_dict(cls, data: dict) -> "FilterCriteria":
        """Parse the camelCase wire shape. Missing keys keep their defaults.

        Raises:
            ValidationError: a present key carries a value of the wrong shape.
        """
        if not isinstance(data, dict):
            raise ValidationError("Filter criteria must be an object")
        criteria = cls()
        for field_id in FilterField:
            if field_id.value in data:
                criteria = criteria.apply(FilterUpdate(field_id, data[field_id.value]))
        return criteria


# =============================================================================
# Query Models
# =============================================================================

@dataclass(frozen=True)
class Query:
    """Everything the user wants to see: criteria, sort and page window.

    Immutable; every edit produces a new Query.
    """
    criteria: FilterCriteria = field(default_factory=FilterCriteria)
    sort_field: SortField = SortField.SYMBOL
    sort_direction: SortDirection = SortDirection.ASC
    page: int = 1
    page_size: int = 50

    def __post_init__(self):
        try:
            object.__setattr__(self, "sort_field", SortField(self.sort_field))
        except ValueError:
            raise ValidationError(f"Unknown sort field: {self.sort_field!r}", field="sortField") from None
        try:
            object.__setattr__(self, "sort_direction", SortDirection(self.sort_direction))
        except ValueError:
            raise ValidationError(f"Unknown sort direction: {self.sort_direction!r}", field="sortOrder") from None
        for name, value in (("page", self.page), ("pageSize", self.page_size)):
            if isinstance(value, bool) or not isinstance(value, int) or value < 1:
                raise ValidationError(f"{name} must be a positive integer, got {value!r}", field=name)

    # --- Transitions ---

    def with_criteria(self, criteria: FilterCriteria) -> "Query":
        return replace(self, criteria=criteria)

    def with_filter(self, update: FilterUpdate) -> "Query":
        """Apply one filter edit. A new search term restarts at page 1."""
        query = replace(self, criteria=self.criteria.apply(update))
        if update.field == FilterField.SEARCH_TERM:
            query = replace(query, page=1)
        return query

    def with_search_term(self, term: str) -> "Query":
        return self.with_filter(FilterUpdate(FilterField.SEARCH_TERM, term))

    def toggle_sort(self, sort_field: SortField) -> "Query":
        """Same field flips direction; a different field sorts ascending."""
        sort_field = SortField(sort_field)
        if sort_field == self.sort_field:
            return replace(self, sort_direction=self.sort_direction.flipped())
        return replace(self, sort_field=sort_field, sort_direction=SortDirection.ASC)

    def with_page(self, page: int) -> "Query":
        return replace(self, page=page)

    def with_page_size(self, page_size: int) -> "Query":
        return replace(self, page_size=page_size, page=1)

    # --- Serialization ---

    def to_params(self) -> dict[str, str]:
        """Flatten into data-source query parameters, omitting inactive filters."""
        params = criteria_params(self.criteria)
        params.update({
            "sortField": self.sort_field.value,
            "sortOrder": self.sort_direction.value,
            "page": str(self.page),
            "pageSize": str(self.page_size),
        })
        return params

    def to_dict(self) -> dict:
        return {
            **self.criteria.to_dict(),
            "sortField": self.sort_field.value,
            "sortOrder": self.sort_direction.value,
            "page": self.page,
            "pageSize": self.page_size,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Query":
        defaults = cls()
        return cls(
            criteria=FilterCriteria.from_dict(data),
            sort_field=data.get("sortField", defaults.sort_field),
            sort_direction=data.get("sortOrder", defaults.sort_direction),
            page=data.get("page", defaults.page),
            page_size=data.get("pageSize", defaults.page_size),
        )


def _format_number(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else str(value)


def criteria_params(criteria: FilterCriteria) -> dict[str, str]:
    """Query-string form of the active parts of a FilterCriteria."""
    params: dict[str, str] = {}
    if criteria.search_term:
        params["searchTerm"] = criteria.search_term
    for field_id in MULTI_SELECT_FIELDS:
        selected = criteria.get(field_id)
        if selected:
            params[field_id.value] = ",".join(
                v.value if hasattr(v, "value") else v for v in selected
            )
    if criteria.rsi_min > RSI_FLOOR:
        params["rsiMin"] = _format_number(criteria.rsi_min)
    if criteria.rsi_max < RSI_CEILING:
        params["rsiMax"] = _format_number(criteria.rsi_max)
    if criteria.price_min > PRICE_FLOOR:
        params["priceMin"] = _format_number(criteria.price_min)
    if criteria.price_max < PRICE_CEILING:
        params["priceMax"] = _format_number(criteria.price_max)
    return params


# =============================================================================
# Result Models
# =============================================================================

@dataclass(frozen=True)
class Insight:
    """A trading insight for one instrument."""
    kind: InsightKind
    title: str
    message: str


@dataclass(frozen=True)
class InstrumentView:
    """An instrument decorated with its derived labels for display."""
    instrument: Instrument
    equilibrium_zone: EquilibriumZone
    rsi_zone: RsiZone

    equilibrium_label: str = ""
    rsi_label: str = ""
    trend_label: str = ""
    signal_label: str = ""
    volume_profile_label: str = ""

    equilibrium_tone: Tone = Tone.NEUTRAL
    rsi_tone: Tone = Tone.NEUTRAL
    trend_tone: Tone = Tone.NEUTRAL
    signal_tone: Tone = Tone.NEUTRAL
    volume_profile_tone: Tone = Tone.NEUTRAL
    change_tone: Tone = Tone.NEUTRAL

    insights: tuple[Insight, ...] = ()

    @property
    def symbol(self) -> str:
        return self.instrument.symbol


@dataclass
class QueryResult:
    """One page of a filtered, sorted instrument set."""
    page: list[Instrument] = field(default_factory=list)
    rows: list[InstrumentView] = field(default_factory=list)
    total_count: int = 0
    total_pages: int = 0
    page_number: int = 1
    page_size: int = 50
    universe_size: int = 0
    execution_time_ms: float = 0.0

    @property
    def has_previous(self) -> bool:
        return self.page_number > 1

    @property
    def has_next(self) -> bool:
        return self.page_number < self.total_pages


# =============================================================================
# Preset Models
# =============================================================================

@dataclass
class FilterPreset:
    """A named, persisted snapshot of FilterCriteria."""
    name: str
    filters: FilterCriteria = field(default_factory=FilterCriteria)
    description: str = ""
    preset_id: str = field(default_factory=_new_preset_id)
    created_at: datetime = field(default_factory=_utc_now)
    updated_at: datetime = field(default_factory=_utc_now)
    classification_version: int = CLASSIFICATION_VERSION

    def to_dict(self) -> dict:
        return {
            "id": self.preset_id,
            "name": self.name,
            "description": self.description,
            "filters": self.filters.to_dict(),
            "createdAt": self.created_at.isoformat(),
            "updatedAt": self.updated_at.isoformat(),
            "classificationVersion": self.classification_version,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "FilterPreset":
        """Parse one stored preset.

        Raises:
            ValidationError: missing id/name or malformed filters.
            ValueError: unparseable timestamps.
        """
        if not isinstance(data, dict):
            raise ValidationError("Preset must be an object")
        preset_id = data.get("id")
        name = data.get("name")
        if not isinstance(preset_id, str) or not preset_id:
            raise ValidationError("Preset has no id", field="id")
        if not isinstance(name, str) or not name.strip():
            raise ValidationError("Preset has no name", field="name")
        created_at = datetime.fromisoformat(data["createdAt"]) if data.get("createdAt") else _utc_now()
        updated_at = datetime.fromisoformat(data["updatedAt"]) if data.get("updatedAt") else created_at
        return cls(
            name=name,
            filters=FilterCriteria.from_dict(data.get("filters") or {}),
            description=data.get("description") or "",
            preset_id=preset_id,
            created_at=created_at,
            updated_at=updated_at,
            classification_version=int(data.get("classificationVersion", CLASSIFICATION_VERSION)),
        )
