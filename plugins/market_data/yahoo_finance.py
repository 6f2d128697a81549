"""Yahoo Finance market data provider -- fetches via httpx (no yfinance dependency).

Daily bars from the public chart API. No API key required.
Example tickers: AAPL, MSFT, SPY
"""

from __future__ import annotations

import logging
from datetime import date, datetime, timedelta, timezone

import httpx
from pydantic import ValidationError

from core.errors import UpstreamFetchError
from core.models.market import Bar

logger = logging.getLogger(__name__)

PLUGIN_META = {
    "name": "yahoo_finance",
    "display_name": "Yahoo Finance",
    "description": "Daily stock and ETF bars -- free, no API key required",
    "category": "market_data",
    "protocols": ["market_data"],
    "class_name": "YahooFinanceProvider",
    "pip_dependencies": [],
    "setup_instructions": """
Yahoo Finance requires no API key -- it's free and public.
It is the default bar feed and also serves the SPY benchmark for beta.
""",
    "config_fields": [],
}

# Yahoo Finance chart API endpoint
_CHART_URL = "https://query1.finance.yahoo.com/v8/finance/chart/{ticker}"


class YahooFinanceProvider:
    """Fetches daily bars from Yahoo Finance via their public chart API.

    Implements the BarFeed protocol.
    """

    def __init__(self, client: httpx.AsyncClient | None = None, timeout: float = 30.0) -> None:
        self._client = client or httpx.AsyncClient(
            timeout=timeout,
            headers={"User-Agent": "stonks-signals/0.1"},
        )

    @property
    def name(self) -> str:
        return "yahoo_finance"

    async def fetch_bars(self, symbol: str, lookback: timedelta) -> list[Bar]:
        """Fetch daily bars for `symbol` covering the last `lookback`."""
        end = datetime.now(timezone.utc)
        start = end - lookback
        params = {
            "period1": int(start.timestamp()),
            "period2": int(end.timestamp()),
            "interval": "1d",
            "includePrePost": "false",
        }

        url = _CHART_URL.format(ticker=symbol.upper())
        try:
            response = await self._client.get(url, params=params)
        except httpx.HTTPError as exc:
            raise UpstreamFetchError(
                f"Yahoo Finance request failed: {exc}", source=self.name, symbol=symbol
            ) from exc

        if response.status_code != 200:
            raise UpstreamFetchError(
                f"Yahoo Finance returned {response.status_code}",
                source=self.name,
                symbol=symbol,
            )

        try:
            chart = response.json().get("chart", {})
        except ValueError as exc:
            raise UpstreamFetchError(
                "Yahoo Finance returned invalid JSON", source=self.name, symbol=symbol
            ) from exc

        result = chart.get("result")
        if not result:
            error = chart.get("error") or {}
            raise UpstreamFetchError(
                f"Yahoo Finance error: {error.get('description') or error or 'no result'}",
                source=self.name,
                symbol=symbol,
            )

        bars = self._parse_chart_result(symbol, result[0])
        logger.debug("Yahoo Finance: %d bars for %s", len(bars), symbol)
        return bars

    def _parse_chart_result(self, symbol: str, result: dict) -> list[Bar]:
        """Parse a chart API result into bars ascending by date.

        Sessions without a close are skipped. When two timestamps fall on the
        same date the later one wins.
        """
        timestamps = result.get("timestamp") or []
        quote = (result.get("indicators", {}).get("quote") or [{}])[0]

        opens = quote.get("open") or []
        highs = quote.get("high") or []
        lows = quote.get("low") or []
        closes = quote.get("close") or []
        volumes = quote.get("volume") or []

        by_date: dict[date, Bar] = {}
        for i, ts in enumerate(timestamps):
            close = _at(closes, i)
            if close is None or close <= 0:
                continue  # skip days with no data

            day = datetime.fromtimestamp(ts, tz=timezone.utc).date()
            try:
                by_date[day] = Bar(
                    date=day,
                    open=_positive(_at(opens, i), close),
                    high=_positive(_at(highs, i), close),
                    low=_positive(_at(lows, i), close),
                    close=close,
                    volume=float(_at(volumes, i) or 0.0),
                )
            except ValidationError as exc:
                raise UpstreamFetchError(
                    f"Yahoo Finance returned a malformed bar for {day}: {exc}",
                    source=self.name,
                    symbol=symbol,
                ) from exc

        return [by_date[day] for day in sorted(by_date)]

    async def close(self) -> None:
        """Close the HTTP client."""
        await self._client.aclose()


def _at(values: list, index: int):
    return values[index] if index < len(values) else None


def _positive(value: float | None, default: float) -> float:
    return value if value is not None and value > 0 else default
