"""Mock feeds for offline runs and tests.

Implement the BarFeed and SentimentFeed protocols over in-memory data so the
pipeline can run without touching the network.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import timedelta

from core.errors import UpstreamFetchError
from core.models.market import Bar
from core.models.signals import SentimentReading

logger = logging.getLogger(__name__)


class StaticBarFeed:
    """Serves fixed bar series keyed by symbol.

    Implements the BarFeed protocol. Unknown symbols raise UpstreamFetchError
    the way a real provider does for a ticker it cannot find.
    """

    def __init__(self, series: dict[str, list[Bar]], name: str = "static") -> None:
        self._series = dict(series)
        self._name = name
        self.calls: list[str] = []

    @property
    def name(self) -> str:
        return self._name

    async def fetch_bars(self, symbol: str, lookback: timedelta) -> list[Bar]:
        self.calls.append(symbol)
        if symbol not in self._series:
            raise UpstreamFetchError(
                f"No data for {symbol}", source=self._name, symbol=symbol
            )
        return list(self._series[symbol])


class StaticSentimentFeed:
    """Returns a fixed reading, optionally per symbol.

    Implements the SentimentFeed protocol.
    """

    def __init__(
        self,
        reading: SentimentReading | None = None,
        per_symbol: dict[str, SentimentReading] | None = None,
    ) -> None:
        self._default = reading or SentimentReading()
        self._per_symbol = dict(per_symbol or {})

    @property
    def name(self) -> str:
        return "static_sentiment"

    async def fetch_sentiment(self, symbol: str) -> SentimentReading:
        return self._per_symbol.get(symbol, self._default)


class FailingFeed:
    """A feed whose every call raises `error`.

    Satisfies both BarFeed and SentimentFeed.
    """

    def __init__(self, error: Exception | None = None, name: str = "failing") -> None:
        self._error = error or RuntimeError("feed unavailable")
        self._name = name

    @property
    def name(self) -> str:
        return self._name

    async def fetch_bars(self, symbol: str, lookback: timedelta) -> list[Bar]:
        raise self._error

    async def fetch_sentiment(self, symbol: str) -> SentimentReading:
        raise self._error


class SlowBarFeed:
    """Delays selected symbols before delegating to an inner feed.

    Implements the BarFeed protocol; used to exercise fetch timeouts.
    """

    def __init__(self, inner: StaticBarFeed, delay: float, symbols: set[str] | None = None) -> None:
        self._inner = inner
        self._delay = delay
        self._symbols = symbols

    @property
    def name(self) -> str:
        return f"slow_{self._inner.name}"

    async def fetch_bars(self, symbol: str, lookback: timedelta) -> list[Bar]:
        if self._symbols is None or symbol in self._symbols:
            logger.debug("Delaying %s by %.2fs", symbol, self._delay)
            await asyncio.sleep(self._delay)
        return await self._inner.fetch_bars(symbol, lookback)


class SlowSentimentFeed:
    """Delays every reading before delegating to an inner sentiment feed.

    Implements the SentimentFeed protocol.
    """

    def __init__(self, inner: StaticSentimentFeed, delay: float) -> None:
        self._inner = inner
        self._delay = delay

    @property
    def name(self) -> str:
        return f"slow_{self._inner.name}"

    async def fetch_sentiment(self, symbol: str) -> SentimentReading:
        await asyncio.sleep(self._delay)
        return await self._inner.fetch_sentiment(symbol)
