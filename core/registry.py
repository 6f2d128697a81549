"""Plugin registry -- named feed implementations grouped by protocol.

main.py instantiates the feeds enabled in config.yaml and registers them
here, then resolves the configured market-data and sentiment providers by
name. The registry is an ordinary object owned by the host.
"""

from __future__ import annotations

import logging
from typing import Any

from core.protocols import BarFeed, SentimentFeed

logger = logging.getLogger(__name__)

# Protocol each feed kind must satisfy
PROTOCOL_TYPES = {
    "market_data": BarFeed,
    "sentiment": SentimentFeed,
}


class PluginRegistry:
    """Feeds keyed by kind ('market_data', 'sentiment') and provider name.

    Usage:
        registry = PluginRegistry()
        registry.register("market_data", YahooFinanceProvider())
        feed = registry.bar_feed("yahoo_finance")
    """

    def __init__(self) -> None:
        self._feeds: dict[str, dict[str, Any]] = {kind: {} for kind in PROTOCOL_TYPES}

    def register(self, kind: str, feed: Any) -> None:
        """Register `feed` under `kind`, checking it satisfies that kind's protocol."""
        protocol = PROTOCOL_TYPES.get(kind)
        if protocol is None:
            raise ValueError(f"Unknown feed kind '{kind}'. Must be one of: {sorted(PROTOCOL_TYPES)}")
        if not isinstance(feed, protocol):
            raise TypeError(f"{type(feed).__name__} does not implement {protocol.__name__}")

        feeds = self._feeds[kind]
        if feed.name in feeds:
            logger.warning("Replacing %s feed '%s'", kind, feed.name)
        feeds[feed.name] = feed
        logger.info("Registered %s feed: %s", kind, feed.name)

    def find(self, kind: str, name: str) -> Any | None:
        return self._feeds.get(kind, {}).get(name)

    def resolve(self, kind: str, name: str) -> Any:
        """Like find(), but raises KeyError naming the available feeds."""
        feed = self.find(kind, name)
        if feed is None:
            raise KeyError(
                f"No {kind} feed named '{name}'. Available: {self.available(kind)}"
            )
        return feed

    def available(self, kind: str) -> list[str]:
        return list(self._feeds.get(kind, {}))

    def bar_feed(self, name: str) -> BarFeed:
        return self.resolve("market_data", name)

    def sentiment_feed(self, name: str) -> SentimentFeed | None:
        """The named sentiment feed, or None when disabled or not registered."""
        if not name:
            return None
        return self.find("sentiment", name)

    async def close_all(self) -> None:
        """Close every feed that holds a network client."""
        for feeds in self._feeds.values():
            for feed in feeds.values():
                close = getattr(feed, "close", None)
                if close is not None:
                    await close()
