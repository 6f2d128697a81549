"""Signal pipeline -- the pure engine entry point and its async fetching wrapper.

compute_signal() runs the whole engine over bars already in hand:
indicators + risk -> analyzer -> synthesizer. It performs no I/O.

SignalService fetches bars, the benchmark series and a sentiment reading
through injected feeds, then delegates to compute_signal().
"""

from __future__ import annotations

import asyncio
import logging

from core.config import EngineConfig
from core.errors import SignalEngineError, UpstreamFetchError
from core.models.market import Bar
from core.models.portfolio import normalize_symbol
from core.models.signals import RiskProfile, SentimentReading, SignalResult
from core.protocols import BarFeed, SentimentFeed
from engine.analyzer import analyze_signals
from engine.indicators import calculate_indicators
from engine.sentiment import estimate_sentiment, neutral_sentiment
from engine.synthesizer import synthesize_signal
from risk.assessor import assess_risk

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Pure engine operation
# ---------------------------------------------------------------------------

def compute_signal(
    symbol: str,
    bars: list[Bar],
    sentiment: SentimentReading | None = None,
    risk_free_rate: float = 0.02,
    benchmark: list[Bar] | None = None,
    config: EngineConfig | None = None,
) -> SignalResult:
    """Produce the SignalResult for `symbol` from its bar series.

    Deterministic: the same inputs always give the same result.
    Raises InsufficientDataError or ComputationError tagged with `symbol`.
    """
    config = config or EngineConfig()
    sentiment = sentiment or neutral_sentiment()

    try:
        indicators = calculate_indicators(bars, min_bars=config.min_bars)
        risk = assess_risk(
            bars,
            benchmark=benchmark,
            risk_free_rate=risk_free_rate,
            trading_days=config.trading_days,
        )
        analysis = analyze_signals(indicators)
        return synthesize_signal(
            symbol,
            bars,
            indicators,
            analysis,
            risk,
            sentiment,
            stop_floor_multiple=config.stop_floor_multiple,
            trading_days=config.trading_days,
        )
    except SignalEngineError as exc:
        raise exc.for_symbol(symbol)


# ---------------------------------------------------------------------------
# Async service over injected feeds
# ---------------------------------------------------------------------------

class SignalService:
    """Fetches inputs for a symbol and runs the engine over them.

    Every fetch is a single awaited call bounded by `fetch_timeout`, with no
    retry. Bar failures propagate as UpstreamFetchError; benchmark failures
    degrade beta to its fallback; sentiment failures degrade to neutral.
    """

    def __init__(
        self,
        bar_feed: BarFeed,
        sentiment_feed: SentimentFeed | None = None,
        config: EngineConfig | None = None,
    ) -> None:
        self._bars = bar_feed
        self._sentiment = sentiment_feed
        self._config = config or EngineConfig()

    @property
    def config(self) -> EngineConfig:
        return self._config

    async def generate_signal(
        self,
        symbol: str,
        benchmark: list[Bar] | None = None,
    ) -> SignalResult:
        """Fetch, score and synthesize one symbol.

        A caller analyzing many symbols passes `benchmark` (see
        benchmark_bars) so the benchmark series is fetched once, not per symbol.
        """
        symbol = normalize_symbol(symbol)
        bars = await self._fetch_bars(symbol)
        if benchmark is None or self._config.benchmark_symbol == symbol:
            benchmark, sentiment = await asyncio.gather(
                self._fetch_benchmark(symbol, bars),
                self.get_sentiment(symbol),
            )
        else:
            sentiment = await self.get_sentiment(symbol)

        result = compute_signal(
            symbol,
            bars,
            sentiment=sentiment,
            risk_free_rate=self._config.risk_free_rate,
            benchmark=benchmark,
            config=self._config,
        )
        logger.info(
            "Signal for %s: %s (confidence %.2f, net %+.1f, risk %s)",
            symbol, result.signal, result.confidence, result.net_score,
            result.risk.risk_level,
        )
        return result

    async def assess_risk(self, symbol: str) -> RiskProfile:
        symbol = normalize_symbol(symbol)
        bars = await self._fetch_bars(symbol)
        benchmark = await self._fetch_benchmark(symbol, bars)
        try:
            return assess_risk(
                bars,
                benchmark=benchmark,
                risk_free_rate=self._config.risk_free_rate,
                trading_days=self._config.trading_days,
            )
        except SignalEngineError as exc:
            raise exc.for_symbol(symbol)

    async def benchmark_bars(self) -> list[Bar] | None:
        """The configured benchmark series, or None when disabled or unavailable."""
        benchmark_symbol = self._config.benchmark_symbol
        if not benchmark_symbol:
            return None
        try:
            return await self._fetch_bars(benchmark_symbol)
        except SignalEngineError as exc:
            logger.warning("Benchmark %s unavailable, beta falls back: %s", benchmark_symbol, exc)
            return None

    async def get_sentiment(self, symbol: str) -> SentimentReading:
        return await estimate_sentiment(
            self._sentiment,
            normalize_symbol(symbol),
            timeout=self._config.fetch_timeout_seconds,
        )

    # ------------------------------------------------------------------
    # Fetching
    # ------------------------------------------------------------------

    async def _fetch_bars(self, symbol: str) -> list[Bar]:
        source = self._bars.name
        try:
            return await asyncio.wait_for(
                self._bars.fetch_bars(symbol, self._config.lookback_window),
                self._config.fetch_timeout_seconds,
            )
        except SignalEngineError as exc:
            raise exc.for_symbol(symbol)
        except asyncio.TimeoutError as exc:
            raise UpstreamFetchError(
                f"{source} timed out after {self._config.fetch_timeout}",
                source=source,
                symbol=symbol,
            ) from exc
        except Exception as exc:
            raise UpstreamFetchError(
                f"{source} failed: {exc}", source=source, symbol=symbol
            ) from exc

    async def _fetch_benchmark(self, symbol: str, bars: list[Bar]) -> list[Bar] | None:
        benchmark_symbol = self._config.benchmark_symbol
        if not benchmark_symbol:
            return None
        if benchmark_symbol == symbol:
            return bars

        try:
            return await self._fetch_bars(benchmark_symbol)
        except SignalEngineError as exc:
            logger.warning(
                "Benchmark %s unavailable for %s, beta falls back: %s",
                benchmark_symbol, symbol, exc,
            )
            return None
