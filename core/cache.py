"""In-process TTL cache and a caching wrapper for bar feeds.

The cache is an explicit object created and owned by the host (main.py) and
injected where it is needed. Nothing here is module-level state.
"""

from __future__ import annotations

import logging
import time
from datetime import timedelta
from typing import Any, Callable

from core.models.market import Bar
from core.protocols import BarFeed

logger = logging.getLogger(__name__)


def cache_key(*parts: str | int | float, prefix: str = "cache") -> str:
    """Build a namespaced cache key, e.g. cache_key("AAPL", 365, prefix="bars")."""
    sanitized = [str(part).replace(":", "_") for part in parts]
    return f"{prefix}:{':'.join(sanitized)}"


class TTLCache:
    """Key/value store whose entries expire after a time-to-live.

    The clock is injectable so expiry can be tested without sleeping.
    """

    def __init__(
        self,
        default_ttl: float = 300.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._default_ttl = default_ttl
        self._clock = clock
        self._entries: dict[str, tuple[float, Any]] = {}
        self._hits = 0
        self._misses = 0

    def get(self, key: str) -> Any | None:
        entry = self._entries.get(key)
        if entry is None:
            self._misses += 1
            logger.debug("Cache miss: %s", key)
            return None
        expires_at, value = entry
        if self._clock() >= expires_at:
            del self._entries[key]
            self._misses += 1
            logger.debug("Cache expired: %s", key)
            return None
        self._hits += 1
        logger.debug("Cache hit: %s", key)
        return value

    def set(self, key: str, value: Any, ttl: float | None = None) -> None:
        ttl = self._default_ttl if ttl is None else ttl
        now = self._clock()
        self._sweep(now)
        self._entries[key] = (now + ttl, value)
        logger.debug("Cache set: %s, TTL: %.0fs", key, ttl)

    def _sweep(self, now: float) -> None:
        """Drop every expired entry."""
        expired = [k for k, (expires_at, _) in self._entries.items() if now >= expires_at]
        for k in expired:
            del self._entries[k]
        if expired:
            logger.debug("Cache swept %d expired entries", len(expired))

    def delete(self, key: str) -> None:
        self._entries.pop(key, None)

    def clear(self) -> None:
        self._entries.clear()

    def stats(self) -> dict[str, int]:
        return {"keys": len(self._entries), "hits": self._hits, "misses": self._misses}


class CachedBarFeed:
    """BarFeed wrapper that serves repeated requests from a TTLCache.

    Implements the BarFeed protocol. Failures propagate and are not cached.
    """

    def __init__(self, inner: BarFeed, cache: TTLCache, ttl: float | None = None) -> None:
        self._inner = inner
        self._cache = cache
        self._ttl = ttl

    @property
    def name(self) -> str:
        return self._inner.name

    async def fetch_bars(self, symbol: str, lookback: timedelta) -> list[Bar]:
        key = cache_key(self._inner.name, symbol, int(lookback.total_seconds()), prefix="bars")
        cached = self._cache.get(key)
        if cached is not None:
            return list(cached)

        bars = await self._inner.fetch_bars(symbol, lookback)
        # Tuple snapshot; the bars themselves are frozen.
        self._cache.set(key, tuple(bars), self._ttl)
        return bars

    async def close(self) -> None:
        close = getattr(self._inner, "close", None)
        if close is not None:
            await close()
