"""Risk assessor -- volatility, beta, Sharpe ratio and drawdown of a bar series.

Completely deterministic. Beta is a regression against an explicit benchmark
series; without one it falls back to the market-neutral constant
FALLBACK_BETA and says so in `beta_source`.
"""

from __future__ import annotations

import logging

from core.errors import InsufficientDataError
from core.models.market import Bar, closes
from core.models.signals import RiskLevel, RiskProfile
from risk.metrics import (
    annualized_volatility,
    covariance,
    daily_returns,
    max_drawdown,
    sharpe_ratio,
)

logger = logging.getLogger(__name__)

FALLBACK_BETA = 1.0

# Thresholds on volatility (decimal, annualized) x beta
LOW_RISK_THRESHOLD = 0.15
MEDIUM_RISK_THRESHOLD = 0.25


def classify_risk(volatility_pct: float, beta: float) -> RiskLevel:
    """Map annualized volatility (percent) and beta to a risk level."""
    score = (volatility_pct / 100.0) * beta
    if score < LOW_RISK_THRESHOLD:
        return "low"
    if score < MEDIUM_RISK_THRESHOLD:
        return "medium"
    return "high"


def estimate_beta(bars: list[Bar], benchmark: list[Bar] | None) -> tuple[float, str]:
    """Beta of `bars` against `benchmark` on date-aligned closes.

    Returns (beta, source) where source is "benchmark" or "fallback".
    """
    if not benchmark:
        return FALLBACK_BETA, "fallback"

    bench_by_date = {b.date: b.close for b in benchmark}
    aligned = [(b.close, bench_by_date[b.date]) for b in bars if b.date in bench_by_date]
    if len(aligned) < 3:
        logger.warning(
            "Only %d sessions overlap the benchmark; using fallback beta %.1f",
            len(aligned), FALLBACK_BETA,
        )
        return FALLBACK_BETA, "fallback"

    asset_returns = daily_returns([a for a, _ in aligned])
    market_returns = daily_returns([m for _, m in aligned])
    market_variance = covariance(market_returns, market_returns)
    if market_variance == 0:
        logger.warning("Benchmark has zero variance; using fallback beta %.1f", FALLBACK_BETA)
        return FALLBACK_BETA, "fallback"

    return covariance(asset_returns, market_returns) / market_variance, "benchmark"


def assess_risk(
    bars: list[Bar],
    benchmark: list[Bar] | None = None,
    risk_free_rate: float = 0.02,
    trading_days: int = 252,
) -> RiskProfile:
    """Build the RiskProfile for a bar series.

    Raises InsufficientDataError when the series yields no returns.
    """
    prices = closes(bars)
    returns = daily_returns(prices)
    if not returns:
        raise InsufficientDataError(required=2, available=len(bars))

    volatility = annualized_volatility(returns, trading_days)
    volatility_pct = volatility * 100
    beta, beta_source = estimate_beta(bars, benchmark)

    return RiskProfile(
        volatility_pct=volatility_pct,
        beta=beta,
        beta_source=beta_source,
        sharpe_ratio=sharpe_ratio(returns, risk_free_rate, trading_days),
        risk_level=classify_risk(volatility_pct, beta),
        max_drawdown_pct=max_drawdown(prices) * 100,
    )
