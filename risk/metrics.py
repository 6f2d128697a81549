"""Return and risk statistics -- pure Python math, no numpy/pandas required.

All helpers take plain lists of floats and guard their divisions; callers
decide what a degenerate input (empty series, zero variance) means.
"""

from __future__ import annotations

import math


def daily_returns(prices: list[float]) -> list[float]:
    """Simple period-over-period returns of a price series."""
    if len(prices) < 2:
        return []
    return [
        (prices[i] - prices[i - 1]) / prices[i - 1]
        for i in range(1, len(prices))
        if prices[i - 1] > 0
    ]


def mean(values: list[float]) -> float:
    if not values:
        return 0.0
    return sum(values) / len(values)


def pstdev(values: list[float]) -> float:
    """Population standard deviation (divides by n)."""
    if not values:
        return 0.0
    avg = mean(values)
    variance = sum((x - avg) ** 2 for x in values) / len(values)
    return math.sqrt(variance)


def covariance(xs: list[float], ys: list[float]) -> float:
    """Population covariance of two equally long series."""
    if not xs or len(xs) != len(ys):
        return 0.0
    mx = mean(xs)
    my = mean(ys)
    return sum((x - mx) * (y - my) for x, y in zip(xs, ys)) / len(xs)


def annualized_volatility(returns: list[float], trading_days: int = 252) -> float:
    """Standard deviation of returns scaled by sqrt(trading_days), as a decimal."""
    return pstdev(returns) * math.sqrt(trading_days)


def sharpe_ratio(
    returns: list[float],
    risk_free_rate: float = 0.02,
    trading_days: int = 252,
) -> float:
    """(annualized mean return - risk-free rate) / annualized volatility.

    Zero volatility yields 0.0.
    """
    if not returns:
        return 0.0
    volatility = annualized_volatility(returns, trading_days)
    if volatility == 0:
        return 0.0
    return (mean(returns) * trading_days - risk_free_rate) / volatility


def max_drawdown(prices: list[float]) -> float:
    """Largest peak-to-trough decline as a fraction of the peak.

    Single forward scan tracking the running peak.
    """
    if not prices:
        return 0.0

    peak = prices[0]
    max_dd = 0.0
    for price in prices:
        if price > peak:
            peak = price
        dd = (peak - price) / peak if peak > 0 else 0.0
        if dd > max_dd:
            max_dd = dd
    return max_dd
