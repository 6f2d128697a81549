"""Core protocols -- the extension points between the engine and the outside world.

The engine imports these protocols. Plugins implement them.
The engine NEVER imports concrete implementations.

All protocols use Python's structural subtyping (typing.Protocol):
if your class has the right methods, it implements the protocol.
No inheritance required.
"""

from __future__ import annotations

from datetime import timedelta
from typing import Protocol, runtime_checkable

from core.models.market import Bar
from core.models.signals import SentimentReading


# ---------------------------------------------------------------------------
# 1. BarFeed -- historical price/volume bars for a symbol
# ---------------------------------------------------------------------------

@runtime_checkable
class BarFeed(Protocol):
    """Fetches a daily bar series ending at "now".

    Default implementation: YahooFinanceProvider. FinnhubProvider is the
    alternative; CachedBarFeed wraps any of them with a TTL cache.
    """

    @property
    def name(self) -> str:
        """Unique provider name, e.g. 'yahoo_finance', 'finnhub'."""
        ...

    async def fetch_bars(self, symbol: str, lookback: timedelta) -> list[Bar]:
        """Return bars covering `lookback`, strictly ascending by date.

        Raises UpstreamFetchError when the provider cannot deliver data.
        An empty list means the provider answered but had no sessions.
        """
        ...


# ---------------------------------------------------------------------------
# 2. SentimentFeed -- qualitative news/social estimate for a symbol
# ---------------------------------------------------------------------------

@runtime_checkable
class SentimentFeed(Protocol):
    """Produces a bounded sentiment reading for a symbol.

    The data behind it is unreliable by nature. Callers go through
    engine.sentiment.estimate_sentiment, which turns any failure into the
    neutral default.
    """

    @property
    def name(self) -> str:
        """Provider name, e.g. 'headlines'."""
        ...

    async def fetch_sentiment(self, symbol: str) -> SentimentReading:
        """Return the current sentiment reading for `symbol`."""
        ...
