"""Classification Rules.

Pure mappings from raw indicator values to zones, labels, tones and
trading insights. Boundaries use strict comparisons: -5/+5 fall in the
equilibrium zone and 30/70 in the neutral RSI band.
"""

from src.screener.config import (
    EQUILIBRIUM_DISCOUNT_BELOW,
    EQUILIBRIUM_PREMIUM_ABOVE,
    EQUILIBRIUM_ZONE_LABELS,
    INSIGHT_DEEP_DISCOUNT,
    INSIGHT_NEAR_EQUILIBRIUM,
    INSIGHT_RICH_PREMIUM,
    RSI_OVERBOUGHT_ABOVE,
    RSI_OVERSOLD_BELOW,
    RSI_ZONE_LABELS,
    SIGNAL_LABELS,
    TREND_LABELS,
    VOLUME_PROFILE_LABELS,
    EquilibriumZone,
    InsightKind,
    RsiZone,
    Signal,
    Tone,
    Trend,
    VolumeProfile,
)
from src.screener.models import Insight, Instrument, InstrumentView


# =============================================================================
# Equilibrium
# =============================================================================

def equilibrium_level(high_52w: float, low_52w: float) -> float:
    """50% retracement between the 52-week low and high."""
    return (high_52w + low_52w) / 2


def price_to_equilibrium(price: float, level: float) -> float:
    """Signed percent distance of price from the equilibrium level."""
    if level == 0:
        return 0.0
    return (price - level) / level * 100


def equilibrium_zone(price_to_eq: float) -> EquilibriumZone:
    if price_to_eq < EQUILIBRIUM_DISCOUNT_BELOW:
        return EquilibriumZone.DISCOUNT
    if price_to_eq > EQUILIBRIUM_PREMIUM_ABOVE:
        return EquilibriumZone.PREMIUM
    return EquilibriumZone.EQUILIBRIUM


def rsi_zone(rsi: float) -> RsiZone:
    if rsi < RSI_OVERSOLD_BELOW:
        return RsiZone.OVERSOLD
    if rsi > RSI_OVERBOUGHT_ABOVE:
        return RsiZone.OVERBOUGHT
    return RsiZone.NEUTRAL


# =============================================================================
# Tones
# =============================================================================

_ZONE_TONES = {
    EquilibriumZone.DISCOUNT: Tone.GREEN,
    EquilibriumZone.EQUILIBRIUM: Tone.YELLOW,
    EquilibriumZone.PREMIUM: Tone.RED,
}

_RSI_TONES = {
    RsiZone.OVERSOLD: Tone.GREEN,
    RsiZone.NEUTRAL: Tone.NEUTRAL,
    RsiZone.OVERBOUGHT: Tone.RED,
}

_TREND_TONES = {
    Trend.BULLISH: Tone.GREEN,
    Trend.BEARISH: Tone.RED,
    Trend.NEUTRAL: Tone.NEUTRAL,
}

_SIGNAL_TONES = {
    Signal.BUY: Tone.GREEN,
    Signal.SELL: Tone.RED,
    Signal.HOLD: Tone.NEUTRAL,
}

_VOLUME_TONES = {
    VolumeProfile.HIGH: Tone.GREEN,
    VolumeProfile.MEDIUM: Tone.YELLOW,
    VolumeProfile.LOW: Tone.RED,
}


def equilibrium_tone(price_to_eq: float) -> Tone:
    return _ZONE_TONES[equilibrium_zone(price_to_eq)]


def rsi_tone(rsi: float) -> Tone:
    return _RSI_TONES[rsi_zone(rsi)]


def trend_tone(trend: Trend) -> Tone:
    return _TREND_TONES.get(Trend(trend), Tone.NEUTRAL)


def signal_tone(signal: Signal) -> Tone:
    return _SIGNAL_TONES.get(Signal(signal), Tone.NEUTRAL)


def volume_profile_tone(profile: VolumeProfile) -> Tone:
    return _VOLUME_TONES.get(VolumeProfile(profile), Tone.YELLOW)


def change_tone(change_percent: float) -> Tone:
    return Tone.GREEN if change_percent >= 0 else Tone.RED


# =============================================================================
# Insights
# =============================================================================

def trading_insights(instrument: Instrument) -> list[Insight]:
    """Insights for the detail panel, in display order."""
    i = instrument
    insights = []

    if i.signal == Signal.BUY and i.price_to_equilibrium < INSIGHT_DEEP_DISCOUNT:
        insights.append(Insight(
            InsightKind.STRONG_BUY_SETUP,
            "Strong Buy Setup",
            f"Price is in discount zone ({i.price_to_equilibrium:.1f}% below equilibrium) "
            f"with oversold RSI ({i.rsi:.1f}). Consider entry for swing trade.",
        ))

    if i.signal == Signal.SELL and i.price_to_equilibrium > INSIGHT_RICH_PREMIUM:
        insights.append(Insight(
            InsightKind.POTENTIAL_EXIT,
            "Potential Exit",
            f"Price is in premium zone ({i.price_to_equilibrium:.1f}% above equilibrium) "
            f"with overbought RSI ({i.rsi:.1f}). Consider taking profits.",
        ))

    if i.signal == Signal.HOLD and abs(i.price_to_equilibrium) < INSIGHT_NEAR_EQUILIBRIUM:
        insights.append(Insight(
            InsightKind.AT_EQUILIBRIUM,
            "At Equilibrium",
            "Price is near the 50% retracement level. "
            "Wait for clear directional move before entering.",
        ))

    if i.trend == Trend.BULLISH and i.price > i.sma_50 > i.sma_200:
        insights.append(Insight(
            InsightKind.STRONG_UPTREND,
            "Strong Uptrend",
            f"Price above SMA50 (${i.sma_50:.2f}) and SMA50 above SMA200 "
            f"(${i.sma_200:.2f}). Trend is intact.",
        ))

    if i.trend == Trend.BEARISH and i.price < i.sma_50 < i.sma_200:
        insights.append(Insight(
            InsightKind.STRONG_DOWNTREND,
            "Strong Downtrend",
            "Price below SMA50 and SMA50 below SMA200. Consider short setups or avoid longs.",
        ))

    if i.macd_histogram > 0 and i.macd > i.macd_signal:
        insights.append(Insight(
            InsightKind.MACD_BULLISH,
            "MACD Bullish",
            f"MACD ({i.macd:.2f}) above signal line ({i.macd_signal:.2f}). Momentum is positive.",
        ))

    if i.macd_histogram < 0 and i.macd < i.macd_signal:
        insights.append(Insight(
            InsightKind.MACD_BEARISH,
            "MACD Bearish",
            "MACD below signal line. Momentum is negative.",
        ))

    return insights


def decorate(instrument: Instrument) -> InstrumentView:
    """Attach zones, labels, tones and insights to an instrument."""
    zone = equilibrium_zone(instrument.price_to_equilibrium)
    band = rsi_zone(instrument.rsi)
    return InstrumentView(
        instrument=instrument,
        equilibrium_zone=zone,
        rsi_zone=band,
        equilibrium_label=EQUILIBRIUM_ZONE_LABELS[zone],
        rsi_label=RSI_ZONE_LABELS[band],
        trend_label=TREND_LABELS[instrument.trend],
        signal_label=SIGNAL_LABELS[instrument.signal],
        volume_profile_label=VOLUME_PROFILE_LABELS[instrument.volume_profile],
        equilibrium_tone=_ZONE_TONES[zone],
        rsi_tone=_RSI_TONES[band],
        trend_tone=trend_tone(instrument.trend),
        signal_tone=signal_tone(instrument.signal),
        volume_profile_tone=volume_profile_tone(instrument.volume_profile),
        change_tone=change_tone(instrument.change_percent),
        insights=tuple(trading_insights(instrument)),
    )


# =============================================================================
# Formatting
# =============================================================================

def format_price(price: float) -> str:
    return f"${price:.2f}"


def format_percent(value: float) -> str:
    return f"{value:.2f}%"


def format_volume(volume: float) -> str:
    return f"{volume / 1_000_000:.2f}M"


def format_market_cap(market_cap: float) -> str:
    return f"${market_cap / 1_000_000_000:.2f}B"
