"""Equilibrium Screener Configuration.

Enums, classification thresholds, filter defaults and storage keys.
"""

from dataclasses import dataclass
from enum import Enum


# =============================================================================
# Enums
# =============================================================================

class EquilibriumZone(str, Enum):
    """Price position relative to the 52-week 50% retracement."""
    DISCOUNT = "discount"
    EQUILIBRIUM = "equilibrium"
    PREMIUM = "premium"


class RsiZone(str, Enum):
    """RSI band."""
    OVERSOLD = "oversold"
    NEUTRAL = "neutral"
    OVERBOUGHT = "overbought"


class Trend(str, Enum):
    """Trend classification supplied by the data source."""
    BULLISH = "bullish"
    BEARISH = "bearish"
    NEUTRAL = "neutral"


class Signal(str, Enum):
    """Trade signal supplied by the data source."""
    BUY = "buy"
    SELL = "sell"
    HOLD = "hold"


class VolumeProfile(str, Enum):
    """Volume bucket supplied by the data source."""
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class Tone(str, Enum):
    """Presentation color class."""
    GREEN = "green"
    RED = "red"
    YELLOW = "yellow"
    NEUTRAL = "neutral"


class SortField(str, Enum):
    """Sortable instrument attributes (wire names)."""
    SYMBOL = "symbol"
    NAME = "name"
    SECTOR = "sector"
    PRICE = "price"
    CHANGE = "change"
    CHANGE_PERCENT = "changePercent"
    VOLUME = "volume"
    MARKET_CAP = "marketCap"
    RSI = "rsi"
    PRICE_TO_EQUILIBRIUM = "priceToEquilibrium"
    TREND = "trend"
    SIGNAL = "signal"


class SortDirection(str, Enum):
    """Sort order."""
    ASC = "asc"
    DESC = "desc"

    def flipped(self) -> "SortDirection":
        return SortDirection.DESC if self == SortDirection.ASC else SortDirection.ASC


class FilterField(str, Enum):
    """Fields of FilterCriteria addressable by a FilterUpdate (wire names)."""
    SEARCH_TERM = "searchTerm"
    SECTORS = "sectors"
    RSI_MIN = "rsiMin"
    RSI_MAX = "rsiMax"
    PRICE_MIN = "priceMin"
    PRICE_MAX = "priceMax"
    VOLUME_PROFILE = "volumeProfile"
    SIGNALS = "signals"
    TREND = "trend"
    EQUILIBRIUM_ZONE = "equilibriumZone"


class InsightKind(str, Enum):
    """Trading insight shown in the instrument detail panel."""
    STRONG_BUY_SETUP = "strong_buy_setup"
    POTENTIAL_EXIT = "potential_exit"
    AT_EQUILIBRIUM = "at_equilibrium"
    STRONG_UPTREND = "strong_uptrend"
    STRONG_DOWNTREND = "strong_downtrend"
    MACD_BULLISH = "macd_bullish"
    MACD_BEARISH = "macd_bearish"


# =============================================================================
# Classification thresholds
# =============================================================================

# Bumped whenever a threshold below changes; saved presets and exports
# depend on the zone boundaries.
CLASSIFICATION_VERSION = 1

EQUILIBRIUM_DISCOUNT_BELOW = -5.0   # priceToEquilibrium % (strict)
EQUILIBRIUM_PREMIUM_ABOVE = 5.0     # priceToEquilibrium % (strict)
RSI_OVERSOLD_BELOW = 30.0           # strict
RSI_OVERBOUGHT_ABOVE = 70.0         # strict

INSIGHT_DEEP_DISCOUNT = -10.0
INSIGHT_RICH_PREMIUM = 10.0
INSIGHT_NEAR_EQUILIBRIUM = 5.0


# =============================================================================
# Filter defaults
# =============================================================================

RSI_FLOOR = 0.0
RSI_CEILING = 100.0
PRICE_FLOOR = 0.0
PRICE_CEILING = 10000.0

# Multi-select fields and the enum their values belong to (None = free text)
MULTI_SELECT_FIELDS = {
    FilterField.SECTORS: None,
    FilterField.VOLUME_PROFILE: VolumeProfile,
    FilterField.SIGNALS: Signal,
    FilterField.TREND: Trend,
    FilterField.EQUILIBRIUM_ZONE: EquilibriumZone,
}

NUMERIC_FIELDS = (
    FilterField.RSI_MIN,
    FilterField.RSI_MAX,
    FilterField.PRICE_MIN,
    FilterField.PRICE_MAX,
)


# =============================================================================
# Display
# =============================================================================

EQUILIBRIUM_ZONE_LABELS = {
    EquilibriumZone.DISCOUNT: "Discount",
    EquilibriumZone.EQUILIBRIUM: "Equilibrium",
    EquilibriumZone.PREMIUM: "Premium",
}

RSI_ZONE_LABELS = {
    RsiZone.OVERSOLD: "Oversold",
    RsiZone.NEUTRAL: "Neutral",
    RsiZone.OVERBOUGHT: "Overbought",
}

SIGNAL_LABELS = {
    Signal.BUY: "Buy",
    Signal.HOLD: "Hold",
    Signal.SELL: "Sell",
}

VOLUME_PROFILE_LABELS = {
    VolumeProfile.HIGH: "High",
    VolumeProfile.MEDIUM: "Medium",
    VolumeProfile.LOW: "Low",
}

TREND_LABELS = {
    Trend.BULLISH: "Bullish",
    Trend.NEUTRAL: "Neutral",
    Trend.BEARISH: "Bearish",
}

EXPORT_COLUMNS = [
    "Symbol",
    "Name",
    "Price",
    "Change%",
    "RSI",
    "Trend",
    "Signal",
    "Equilibrium",
    "Sector",
]


# =============================================================================
# Storage keys
# =============================================================================

FILTER_CONFIG_KEY = "equilibrio_filter_config"
FILTER_PRESETS_KEY = "equilibrio_filter_presets"


# =============================================================================
# Configuration Dataclasses
# =============================================================================

@dataclass
class ScreenerConfig:
    """Screener configuration."""
    default_page_size: int = 50
    max_page_size: int = 1000
    default_sort_field: SortField = SortField.SYMBOL
    default_sort_direction: SortDirection = SortDirection.ASC
    export_row_limit: int = 10000


DEFAULT_SCREENER_CONFIG = ScreenerConfig()
