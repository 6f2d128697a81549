"""Tests for the portfolio aggregator."""

from __future__ import annotations

import pytest

from core.config import EngineConfig
from core.models.portfolio import Holding, HoldingAnalysis
from core.models.signals import SentimentReading
from engine.pipeline import SignalService, compute_signal
from risk.portfolio import (
    PortfolioAnalyzer,
    build_portfolio_analysis,
    classify_portfolio_risk,
    compute_portfolio,
    overall_recommendation,
)
from simulator.mocks import SlowBarFeed, SlowSentimentFeed, StaticBarFeed, StaticSentimentFeed


@pytest.fixture()
def service(flat_bars, breakout_bars, breakdown_bars) -> SignalService:
    feed = StaticBarFeed({
        "FLAT": flat_bars,
        "UP": breakout_bars,
        "DOWN": breakdown_bars,
    })
    return SignalService(feed)


class TestComputePortfolio:
    @pytest.mark.asyncio
    async def test_sell_with_large_allocation_is_reduced(self, service):
        analysis = await compute_portfolio(
            service,
            [Holding(symbol="DOWN", allocation=25), Holding(symbol="FLAT", allocation=10)],
        )
        reduce = [r for r in analysis.rebalancing if r.action == "reduce"]
        assert len(reduce) == 1
        assert reduce[0].symbol == "DOWN"
        assert reduce[0].current_allocation == 25
        assert reduce[0].suggested_allocation == pytest.approx(17.5)
        assert reduce[0].reason == "Strong sell signal"

    @pytest.mark.asyncio
    async def test_buy_with_small_allocation_is_increased(self, service):
        analysis = await compute_portfolio(service, [{"symbol": "up", "allocation": 5}])
        assert len(analysis.rebalancing) == 1
        increase = analysis.rebalancing[0]
        assert increase.symbol == "UP"
        assert increase.action == "increase"
        assert increase.suggested_allocation == pytest.approx(7.5)
        assert analysis.overall_recommendation == "bullish"

    @pytest.mark.asyncio
    async def test_rebalancing_scales_allocation(self, service):
        analysis = await compute_portfolio(
            service,
            [Holding(symbol="DOWN", allocation=100), Holding(symbol="UP", allocation=0)],
        )
        by_symbol = {r.symbol: r for r in analysis.rebalancing}
        assert by_symbol["DOWN"].suggested_allocation == pytest.approx(70.0)
        assert by_symbol["UP"].suggested_allocation == 0.0

    @pytest.mark.asyncio
    async def test_holdings_keep_input_order(self, service):
        analysis = await compute_portfolio(
            service,
            [Holding(symbol="UP", allocation=5), Holding(symbol="DOWN", allocation=25),
             Holding(symbol="FLAT", allocation=10)],
        )
        assert [h.symbol for h in analysis.holdings] == ["UP", "DOWN", "FLAT"]
        assert [h.result.signal for h in analysis.holdings] == ["buy", "sell", "hold"]
        assert analysis.overall_recommendation == "neutral"

    @pytest.mark.asyncio
    async def test_failures_are_reported_inline(self, service):
        analysis = await compute_portfolio(
            service,
            [Holding(symbol="UP", allocation=20), Holding(symbol="GONE", allocation=30)],
        )
        failed = analysis.failed
        assert [h.symbol for h in failed] == ["GONE"]
        assert failed[0].error_type == "upstream_fetch"
        assert failed[0].result is None
        assert analysis.holdings[0].ok
        # Only the successful holding contributes risk.
        up = analysis.holdings[0].result
        assert analysis.portfolio_risk.total_risk == pytest.approx(up.risk.volatility_pct * 0.2)

    @pytest.mark.asyncio
    async def test_all_failed_has_no_portfolio_risk(self, service):
        analysis = await compute_portfolio(service, [Holding(symbol="GONE", allocation=50)])
        assert analysis.portfolio_risk is None
        assert analysis.rebalancing == []
        assert analysis.overall_recommendation == "neutral"

    @pytest.mark.asyncio
    async def test_slow_holding_times_out_alone(self, flat_bars, breakout_bars):
        inner = StaticBarFeed({"FLAT": flat_bars, "UP": breakout_bars, "SLOW": flat_bars})
        feed = SlowBarFeed(inner, delay=2.0, symbols={"SLOW"})
        analyzer = PortfolioAnalyzer(SignalService(feed), timeout=0.2)
        analysis = await analyzer.analyze(
            [Holding(symbol="SLOW", allocation=10), Holding(symbol="UP", allocation=10)]
        )
        slow, up = analysis.holdings
        assert not slow.ok
        assert slow.error_type == "upstream_fetch"
        assert "timed out" in slow.error
        assert up.ok

    @pytest.mark.asyncio
    async def test_holding_gets_a_timeout_per_fetch_round(self, flat_bars):
        bars = SlowBarFeed(StaticBarFeed({"AAA": flat_bars, "SPY": flat_bars}), delay=0.6)
        sentiment = SlowSentimentFeed(
            StaticSentimentFeed(SentimentReading(score=0.5, label="positive", confidence=0.5)),
            delay=0.6,
        )
        service = SignalService(bars, sentiment, config=EngineConfig(fetch_timeout="1s"))

        single = await service.generate_signal("AAA")
        analysis = await compute_portfolio(service, [Holding(symbol="AAA", allocation=10)])

        assert analysis.holdings[0].ok
        assert analysis.holdings[0].result.signal == single.signal

    @pytest.mark.asyncio
    async def test_benchmark_is_fetched_once(self, flat_bars, breakout_bars, breakdown_bars):
        feed = StaticBarFeed({
            "FLAT": flat_bars, "UP": breakout_bars, "DOWN": breakdown_bars, "SPY": breakout_bars,
        })
        analysis = await compute_portfolio(
            SignalService(feed),
            [Holding(symbol=s, allocation=10) for s in ("FLAT", "UP", "DOWN")],
        )
        assert not analysis.failed
        assert feed.calls.count("SPY") == 1
        assert all(h.result.risk.beta_source == "benchmark" for h in analysis.holdings)

    @pytest.mark.asyncio
    async def test_risk_tolerance_is_echoed(self, service):
        analysis = await compute_portfolio(service, [Holding(symbol="FLAT", allocation=10)], "high")
        assert analysis.risk_tolerance == "high"

    @pytest.mark.asyncio
    async def test_unknown_risk_tolerance_rejected(self, service):
        with pytest.raises(ValueError):
            await compute_portfolio(service, [Holding(symbol="FLAT", allocation=10)], "extreme")

    @pytest.mark.asyncio
    async def test_empty_holdings_rejected(self, service):
        with pytest.raises(ValueError):
            await compute_portfolio(service, [])


class TestAggregation:
    def _analysis(self, symbol, allocation, bars) -> HoldingAnalysis:
        return HoldingAnalysis(
            symbol=symbol, allocation=allocation, result=compute_signal(symbol, bars)
        )

    def test_total_risk_and_diversification(self, flat_bars, breakout_bars):
        holdings = [
            self._analysis("FLAT", 25, flat_bars),
            self._analysis("UP", 10, breakout_bars),
        ]
        analysis = build_portfolio_analysis(holdings)
        up_volatility = holdings[1].result.risk.volatility_pct
        assert analysis.portfolio_risk.total_risk == pytest.approx(up_volatility * 0.10)
        assert analysis.portfolio_risk.diversification_score == pytest.approx(0.2 * 0.75)

    def test_diversification_capped_at_one(self, flat_bars):
        holdings = [self._analysis("FLAT", 5, flat_bars) for _ in range(30)]
        analysis = build_portfolio_analysis(holdings)
        assert analysis.portfolio_risk.diversification_score == 1.0
        assert analysis.portfolio_risk.risk_level == "low"

    @pytest.mark.parametrize(
        ("total", "expected"),
        [(10.0, "low"), (15.0, "medium"), (24.9, "medium"), (25.0, "high")],
    )
    def test_portfolio_risk_levels(self, total, expected):
        assert classify_portfolio_risk(total) == expected

    def test_overall_recommendation(self, flat_bars, breakout_bars, breakdown_bars):
        up = self._analysis("UP", 5, breakout_bars)
        down = self._analysis("DOWN", 5, breakdown_bars)
        flat = self._analysis("FLAT", 5, flat_bars)
        assert overall_recommendation([up, flat]) == "bullish"
        assert overall_recommendation([down, flat]) == "bearish"
        assert overall_recommendation([up, up, down]) == "neutral"
        assert overall_recommendation([up, up, up, down]) == "bullish"
        assert overall_recommendation([flat]) == "neutral"
