"""Deterministic synthetic bar series for offline runs and tests.

No randomness: every builder returns the same series for the same arguments.
"""

from __future__ import annotations

from datetime import date, timedelta

from core.models.market import Bar

DEFAULT_START = date(2024, 1, 2)
DEFAULT_VOLUME = 1_000_000.0


def trading_days(count: int, start: date = DEFAULT_START) -> list[date]:
    """`count` consecutive weekdays starting at `start` (or the next weekday)."""
    days: list[date] = []
    current = start
    while len(days) < count:
        if current.weekday() < 5:
            days.append(current)
        current += timedelta(days=1)
    return days


def make_bars(
    closes: list[float],
    volumes: list[float] | None = None,
    start: date = DEFAULT_START,
    spread: float = 0.01,
) -> list[Bar]:
    """Wrap closing prices into bars.

    Open is the previous close; high and low sit `spread` above and below
    the close. Volume defaults to a constant.
    """
    if volumes is None:
        volumes = [DEFAULT_VOLUME] * len(closes)
    if len(volumes) != len(closes):
        raise ValueError("closes and volumes must have the same length")

    bars: list[Bar] = []
    for i, (day, close) in enumerate(zip(trading_days(len(closes), start), closes)):
        bars.append(Bar(
            date=day,
            open=closes[i - 1] if i > 0 else close,
            high=close * (1 + spread),
            low=close * (1 - spread),
            close=close,
            volume=volumes[i],
        ))
    return bars


def flat_closes(count: int, price: float = 100.0) -> list[float]:
    return [price] * count


def linear_closes(count: int, start: float = 100.0, step: float = 1.0) -> list[float]:
    return [start + step * i for i in range(count)]


def zigzag_closes(
    count: int,
    start: float = 100.0,
    slope: float = 0.1,
    amplitude: float = 2.5,
    late_slope: float | None = None,
    late_bars: int = 0,
) -> list[float]:
    """A drifting level with an alternating -amplitude/+amplitude wiggle.

    The last `late_bars` sessions drift by `late_slope` instead of `slope`.
    Odd indices sit above the level, so an even `count` ends on an up bar.
    """
    closes: list[float] = []
    level = start
    for i in range(count):
        if i > 0:
            late = late_slope is not None and i >= count - late_bars
            level += late_slope if late else slope
        wiggle = amplitude if i % 2 else -amplitude
        closes.append(level + wiggle)
    return closes


def mirror(closes: list[float], pivot: float) -> list[float]:
    """Reflect a series around `pivot`, turning rallies into selloffs."""
    return [2 * pivot - c for c in closes]


def breakout_closes(count: int = 220) -> list[float]:
    """Slow uptrend with pullbacks that accelerates over its last 15 sessions."""
    return zigzag_closes(count, start=100.0, slope=0.1, amplitude=2.5, late_slope=1.0, late_bars=15)


def breakdown_closes(count: int = 220) -> list[float]:
    """Mirror image of breakout_closes: a slow decline that accelerates."""
    return mirror(breakout_closes(count), pivot=150.0)


def spike_volumes(count: int, factor: float = 3.0, base: float = DEFAULT_VOLUME) -> list[float]:
    """Constant volume with the last session `factor` times heavier."""
    return [base] * (count - 1) + [base * factor]
