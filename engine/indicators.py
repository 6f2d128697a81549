"""Indicator calculator -- trailing technical indicators at the last bar of a series.

Pure functions of the bar input. No I/O, no clock, no randomness.
"""

from __future__ import annotations

from core.errors import ComputationError, InsufficientDataError
from core.models.market import Bar, closes
from core.models.signals import IndicatorSnapshot, Stochastic, TrendPair

MIN_BARS = 50

SHORT_MA_WINDOW = 20
MEDIUM_MA_WINDOW = 50
LONG_MA_WINDOW = 200

RSI_PERIOD = 14

MACD_FAST = 12
MACD_SLOW = 26
MACD_SIGNAL = 9

STOCH_PERIOD = 14
STOCH_SMOOTHING = 3

VOLUME_WINDOW = 20
MOMENTUM_PERIOD = 10


# ---------------------------------------------------------------------------
# Building blocks
# ---------------------------------------------------------------------------

def sma(values: list[float], window: int) -> float | None:
    """Simple moving average of the last `window` values."""
    if window <= 0 or len(values) < window:
        return None
    return sum(values[-window:]) / window


def ema_series(values: list[float], period: int) -> list[float]:
    """Exponential moving average seeded with the SMA of the first `period` values.

    The result has one entry per value from index period-1 onward.
    """
    if period <= 0 or len(values) < period:
        return []
    alpha = 2.0 / (period + 1)
    current = sum(values[:period]) / period
    out = [current]
    for value in values[period:]:
        current = current + alpha * (value - current)
        out.append(current)
    return out


def rsi(values: list[float], period: int = RSI_PERIOD) -> float | None:
    """Wilder's relative strength index, bounded to [0, 100].

    A window with neither gains nor losses reads 50.
    """
    changes = [values[i] - values[i - 1] for i in range(1, len(values))]
    if len(changes) < period:
        return None

    gains = [max(c, 0.0) for c in changes]
    losses = [max(-c, 0.0) for c in changes]
    avg_gain = sum(gains[:period]) / period
    avg_loss = sum(losses[:period]) / period
    for gain, loss in zip(gains[period:], losses[period:]):
        avg_gain = (avg_gain * (period - 1) + gain) / period
        avg_loss = (avg_loss * (period - 1) + loss) / period

    if avg_gain == 0 and avg_loss == 0:
        return 50.0
    if avg_loss == 0:
        return 100.0
    rs = avg_gain / avg_loss
    value = 100.0 - 100.0 / (1.0 + rs)
    return min(100.0, max(0.0, value))


def macd(
    values: list[float],
    fast: int = MACD_FAST,
    slow: int = MACD_SLOW,
    signal: int = MACD_SIGNAL,
) -> TrendPair | None:
    """MACD line and signal line at the last value, or None as a unit."""
    slow_ema = ema_series(values, slow)
    fast_ema = ema_series(values, fast)
    if not slow_ema:
        return None

    offset = slow - fast
    macd_line = [fast_ema[i + offset] - slow_ema[i] for i in range(len(slow_ema))]
    signal_line = ema_series(macd_line, signal)
    if not signal_line:
        return None

    value = macd_line[-1]
    return TrendPair(value=value, signal=signal_line[-1], histogram=value - signal_line[-1])


def stochastic(
    bars: list[Bar],
    period: int = STOCH_PERIOD,
    smoothing: int = STOCH_SMOOTHING,
) -> Stochastic | None:
    """Stochastic %K over `period` bars and its `smoothing`-bar %D."""
    if len(bars) < period + smoothing - 1:
        return None

    k_values: list[float] = []
    for end in range(len(bars) - smoothing + 1, len(bars) + 1):
        window = bars[end - period:end]
        highest = max(b.high for b in window)
        lowest = min(b.low for b in window)
        close = window[-1].close
        if highest > lowest:
            k = (close - lowest) / (highest - lowest) * 100
        else:
            k = 50.0
        k_values.append(min(100.0, max(0.0, k)))

    return Stochastic(k=k_values[-1], d=sum(k_values) / len(k_values))


def volume_ratio(volumes: list[float], window: int = VOLUME_WINDOW) -> float:
    """Latest volume over the mean of the trailing window (latest included).

    Shorter series average whatever is available. A zero mean reads 1.0.
    """
    if not volumes:
        return 1.0
    recent = volumes[-window:]
    average = sum(recent) / len(recent)
    if average == 0:
        return 1.0
    return volumes[-1] / average


def momentum(values: list[float], period: int = MOMENTUM_PERIOD) -> float | None:
    """Percent change from the first to the last close of the trailing window."""
    if len(values) < period:
        return None
    base = values[-period]
    if base == 0:
        return None
    return (values[-1] - base) / base * 100


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def check_series(bars: list[Bar]) -> None:
    """Raise ComputationError unless dates are strictly ascending."""
    for prev, cur in zip(bars, bars[1:]):
        if cur.date <= prev.date:
            raise ComputationError(
                f"Bars must be strictly ascending by date ({prev.date} then {cur.date})"
            )


def calculate_indicators(bars: list[Bar], min_bars: int = MIN_BARS) -> IndicatorSnapshot:
    """Compute the indicator snapshot at the last bar.

    Raises InsufficientDataError below `min_bars`: the long-window indicators
    would be meaningless, so a degraded snapshot is never returned.
    """
    if len(bars) < min_bars:
        raise InsufficientDataError(required=min_bars, available=len(bars))
    check_series(bars)

    prices = closes(bars)
    volumes = [b.volume for b in bars]

    return IndicatorSnapshot(
        current_price=prices[-1],
        ma_short=sma(prices, SHORT_MA_WINDOW),
        ma_medium=sma(prices, MEDIUM_MA_WINDOW),
        ma_long=sma(prices, LONG_MA_WINDOW),
        rsi=rsi(prices, RSI_PERIOD),
        macd=macd(prices),
        stochastic=stochastic(bars),
        volume_ratio=volume_ratio(volumes),
        momentum=momentum(prices),
    )
