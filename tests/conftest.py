"""Pytest configuration and shared fixtures."""

import sys
from pathlib import Path

import pytest

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from src.screener.config import Signal, Trend, VolumeProfile  # noqa: E402
from src.screener.models import Instrument  # noqa: E402


@pytest.fixture(autouse=True)
def restore_root_logger():
    """Undo configure_logging() calls made by a test."""
    import logging

    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


def make_instrument(symbol: str = "TEST", **overrides) -> Instrument:
    """Instrument with neutral defaults; override any field by keyword."""
    values = dict(
        name=f"{symbol} Corp",
        sector="Technology",
        price=100.0,
        change=1.0,
        change_percent=1.0,
        volume=1_000_000,
        market_cap=10_000_000_000,
        rsi=50.0,
        equilibrium_level=100.0,
        price_to_equilibrium=0.0,
        trend=Trend.NEUTRAL,
        signal=Signal.HOLD,
        volume_profile=VolumeProfile.MEDIUM,
    )
    values.update(overrides)
    return Instrument(symbol=symbol, **values)


@pytest.fixture
def instrument_factory():
    return make_instrument


@pytest.fixture
def sample_instruments():
    """Small universe covering every zone and category."""
    return [
        make_instrument("AAPL", name="Apple Inc.", sector="Technology", price=90.0,
                        rsi=25.0, price_to_equilibrium=-10.0, trend=Trend.BULLISH,
                        signal=Signal.BUY, volume_profile=VolumeProfile.HIGH),
        make_instrument("MSFT", name="Microsoft Corporation", sector="Technology", price=420.0,
                        rsi=72.0, price_to_equilibrium=12.0, trend=Trend.BULLISH,
                        signal=Signal.SELL, volume_profile=VolumeProfile.HIGH),
        make_instrument("XOM", name="Exxon Mobil", sector="Energy", price=110.0,
                        rsi=45.0, price_to_equilibrium=2.0, trend=Trend.NEUTRAL,
                        signal=Signal.HOLD, volume_profile=VolumeProfile.MEDIUM),
        make_instrument("JPM", name="JPMorgan Chase", sector="Financials", price=195.0,
                        rsi=30.0, price_to_equilibrium=-5.0, trend=Trend.BEARISH,
                        signal=Signal.HOLD, volume_profile=VolumeProfile.LOW),
        make_instrument("PFE", name="Pfizer", sector="Healthcare", price=28.0,
                        rsi=18.0, price_to_equilibrium=-22.0, trend=Trend.BEARISH,
                        signal=Signal.BUY, volume_profile=VolumeProfile.HIGH),
    ]


@pytest.fixture
def api_records():
    """Raw data-source rows (camelCase) for the sample universe subset."""
    return [
        {
            "symbol": "AAPL", "name": "Apple Inc.", "sector": "Technology", "industry": "Hardware",
            "price": 90.0, "change": -1.2, "changePercent": -1.3, "volume": 52000000,
            "marketCap": 2.8e12, "rsi": 25.0, "equilibriumLevel": 100.0,
            "macd": 1.5, "macdSignal": 1.0, "sma50": 95.0, "sma200": 90.0,
            "trend": "bullish", "signal": "buy", "volumeProfile": "high",
            "lastUpdated": "2024-05-01T16:00:00+00:00",
        },
        {
            "symbol": "XOM", "name": "Exxon Mobil", "sector": "Energy",
            "price": 110.0, "changePercent": 0.4, "volume": 15000000, "rsi": 45.0,
            "priceToEquilibrium": 2.0, "trend": "neutral", "signal": "hold", "volumeProfile": "medium",
        },
    ]
