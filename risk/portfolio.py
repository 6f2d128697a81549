"""Portfolio aggregator -- runs the signal pipeline per holding and folds the results.

Each holding's pipeline runs concurrently and independently. A failing
holding is reported inline in its HoldingAnalysis; it never aborts the batch.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Iterable

from core.errors import SignalEngineError, UpstreamFetchError
from core.models.market import Bar
from core.models.portfolio import (
    Holding,
    HoldingAnalysis,
    PortfolioAnalysis,
    PortfolioRisk,
    RebalanceRecommendation,
)
from core.models.signals import RiskLevel
from engine.pipeline import SignalService

logger = logging.getLogger(__name__)

RISK_TOLERANCES = ("low", "medium", "high")

# Allocation-weighted volatility thresholds, in percent
LOW_PORTFOLIO_RISK = 15.0
MEDIUM_PORTFOLIO_RISK = 25.0

# Rebalancing rules
REDUCE_ABOVE_ALLOCATION = 20.0
REDUCE_FACTOR = 0.7
REDUCE_FLOOR = 5.0
INCREASE_BELOW_ALLOCATION = 10.0
INCREASE_FACTOR = 1.5
INCREASE_CAP = 25.0


# ---------------------------------------------------------------------------
# 1. Pure aggregation
# ---------------------------------------------------------------------------

def classify_portfolio_risk(total_risk: float) -> RiskLevel:
    if total_risk < LOW_PORTFOLIO_RISK:
        return "low"
    if total_risk < MEDIUM_PORTFOLIO_RISK:
        return "medium"
    return "high"


def compute_portfolio_risk(holdings: list[HoldingAnalysis]) -> PortfolioRisk | None:
    """Allocation-weighted volatility and diversification of successful holdings."""
    analyzed = [h for h in holdings if h.result is not None]
    if not analyzed:
        return None

    total_risk = sum(h.result.risk.volatility_pct * (h.allocation / 100) for h in analyzed)
    max_allocation = max(h.allocation for h in analyzed)
    diversification = min(1.0, (len(analyzed) / 10) * (1 - max_allocation / 100))

    return PortfolioRisk(
        total_risk=total_risk,
        risk_level=classify_portfolio_risk(total_risk),
        diversification_score=max(0.0, diversification),
    )


def recommend_rebalancing(holdings: list[HoldingAnalysis]) -> list[RebalanceRecommendation]:
    """Reduce oversized sells, grow undersized buys."""
    recommendations: list[RebalanceRecommendation] = []
    for holding in holdings:
        if holding.result is None:
            continue
        signal = holding.result.signal
        allocation = holding.allocation

        if signal == "sell" and allocation > REDUCE_ABOVE_ALLOCATION:
            recommendations.append(RebalanceRecommendation(
                symbol=holding.symbol,
                action="reduce",
                reason="Strong sell signal",
                current_allocation=allocation,
                suggested_allocation=max(REDUCE_FLOOR, allocation * REDUCE_FACTOR),
            ))
        elif signal == "buy" and allocation < INCREASE_BELOW_ALLOCATION:
            recommendations.append(RebalanceRecommendation(
                symbol=holding.symbol,
                action="increase",
                reason="Strong buy signal",
                current_allocation=allocation,
                suggested_allocation=min(INCREASE_CAP, allocation * INCREASE_FACTOR),
            ))
    return recommendations


def overall_recommendation(holdings: list[HoldingAnalysis]) -> str:
    signals = [h.result.signal for h in holdings if h.result is not None]
    buys = signals.count("buy")
    sells = signals.count("sell")
    if buys > sells * 2:
        return "bullish"
    if sells > buys * 2:
        return "bearish"
    return "neutral"


def build_portfolio_analysis(
    holdings: list[HoldingAnalysis],
    risk_tolerance: str = "medium",
) -> PortfolioAnalysis:
    """Fold per-holding outcomes into a PortfolioAnalysis.

    `risk_tolerance` is echoed back; it does not change any score.
    """
    return PortfolioAnalysis(
        holdings=holdings,
        portfolio_risk=compute_portfolio_risk(holdings),
        rebalancing=recommend_rebalancing(holdings),
        overall_recommendation=overall_recommendation(holdings),
        risk_tolerance=risk_tolerance,
    )


# ---------------------------------------------------------------------------
# 2. Concurrent analysis
# ---------------------------------------------------------------------------

class PortfolioAnalyzer:
    """Runs SignalService.generate_signal for every holding concurrently.

    The benchmark series is fetched once per analysis and shared by all
    holdings. Each holding makes two fetch rounds in sequence (its bars, then
    its sentiment), so by default a holding gets two fetch timeouts in total.
    """

    def __init__(self, service: SignalService, timeout: float | None = None) -> None:
        self._service = service
        if timeout is None:
            timeout = 2 * service.config.fetch_timeout_seconds
        self._timeout = timeout

    async def analyze(
        self,
        holdings: Iterable[Holding | dict[str, Any]],
        risk_tolerance: str = "medium",
    ) -> PortfolioAnalysis:
        """Analyze every holding and aggregate the outcome.

        Raises ValueError for an empty holdings list or an unknown tolerance.
        """
        if risk_tolerance not in RISK_TOLERANCES:
            raise ValueError(
                f"risk_tolerance must be one of {list(RISK_TOLERANCES)}, got {risk_tolerance!r}"
            )
        parsed = [
            h if isinstance(h, Holding) else Holding.model_validate(h)
            for h in holdings
        ]
        if not parsed:
            raise ValueError("Portfolio must contain at least one holding")

        benchmark = await self._service.benchmark_bars()
        outcomes = await asyncio.gather(
            *(self._analyze_holding(h, benchmark) for h in parsed)
        )
        analysis = build_portfolio_analysis(list(outcomes), risk_tolerance)

        logger.info(
            "Portfolio analyzed: %d holdings, %d failed, overall %s",
            len(analysis.holdings), len(analysis.failed), analysis.overall_recommendation,
        )
        return analysis

    async def _analyze_holding(
        self,
        holding: Holding,
        benchmark: list[Bar] | None,
    ) -> HoldingAnalysis:
        try:
            result = await asyncio.wait_for(
                self._service.generate_signal(holding.symbol, benchmark=benchmark),
                self._timeout,
            )
        except SignalEngineError as exc:
            logger.warning("Holding %s failed: %s", holding.symbol, exc)
            return HoldingAnalysis(
                symbol=holding.symbol,
                allocation=holding.allocation,
                error=str(exc),
                error_type=exc.kind,
            )
        except asyncio.TimeoutError:
            logger.warning("Holding %s timed out after %.1fs", holding.symbol, self._timeout)
            return HoldingAnalysis(
                symbol=holding.symbol,
                allocation=holding.allocation,
                error=f"Analysis timed out after {self._timeout:g}s",
                error_type=UpstreamFetchError.kind,
            )

        return HoldingAnalysis(
            symbol=holding.symbol,
            allocation=holding.allocation,
            result=result,
        )


async def compute_portfolio(
    service: SignalService,
    holdings: Iterable[Holding | dict[str, Any]],
    risk_tolerance: str = "medium",
) -> PortfolioAnalysis:
    """Convenience wrapper around PortfolioAnalyzer.analyze()."""
    return await PortfolioAnalyzer(service).analyze(holdings, risk_tolerance)
