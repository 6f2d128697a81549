"""Finnhub market data provider -- daily candles from the /stock/candle endpoint.

Requires an API key (free tier works for daily resolution).
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone

import httpx
from pydantic import ValidationError

from core.errors import UpstreamFetchError
from core.models.market import Bar

logger = logging.getLogger(__name__)

PLUGIN_META = {
    "name": "finnhub",
    "display_name": "Finnhub",
    "description": "Daily stock candles from finnhub.io -- requires an API key",
    "category": "market_data",
    "protocols": ["market_data"],
    "class_name": "FinnhubProvider",
    "pip_dependencies": [],
    "setup_instructions": """
1. Create a free account at https://finnhub.io
2. Copy your API key from the dashboard
3. Set FINNHUB_API_KEY in ~/.stonks/.env and reference it in config.yaml:
     market_data:
       provider: finnhub
       providers:
         finnhub:
           api_key: ${FINNHUB_API_KEY}
""",
    "config_fields": [
        {
            "key": "api_key",
            "label": "Finnhub API key",
            "type": "secret",
            "required": True,
            "env_var": "FINNHUB_API_KEY",
        },
    ],
}

_BASE_URL = "https://finnhub.io/api/v1"


class FinnhubProvider:
    """Fetches daily candles from Finnhub.

    Implements the BarFeed protocol.
    """

    def __init__(
        self,
        api_key: str,
        client: httpx.AsyncClient | None = None,
        timeout: float = 10.0,
    ) -> None:
        if not api_key:
            raise ValueError("Finnhub API key is required")
        self._api_key = api_key
        self._client = client or httpx.AsyncClient(
            timeout=timeout,
            headers={
                "User-Agent": "stonks-signals/0.1",
                "Accept": "application/json",
            },
        )

    @property
    def name(self) -> str:
        return "finnhub"

    async def fetch_bars(self, symbol: str, lookback: timedelta) -> list[Bar]:
        end = datetime.now(timezone.utc)
        start = end - lookback
        params = {
            "symbol": symbol.upper(),
            "resolution": "D",
            "from": int(start.timestamp()),
            "to": int(end.timestamp()),
        }

        try:
            response = await self._client.get(
                f"{_BASE_URL}/stock/candle",
                params=params,
                headers={"X-Finnhub-Token": self._api_key},
            )
        except httpx.HTTPError as exc:
            raise UpstreamFetchError(
                f"Finnhub request failed: {exc}", source=self.name, symbol=symbol
            ) from exc

        if response.status_code != 200:
            raise UpstreamFetchError(
                f"Finnhub returned {response.status_code}", source=self.name, symbol=symbol
            )

        try:
            data = response.json()
        except ValueError as exc:
            raise UpstreamFetchError(
                "Finnhub returned invalid JSON", source=self.name, symbol=symbol
            ) from exc

        if data.get("s") != "ok" or not data.get("t"):
            raise UpstreamFetchError(
                data.get("error") or "No historical data available",
                source=self.name,
                symbol=symbol,
            )

        bars = self._parse_candles(symbol, data)
        logger.debug("Finnhub: %d bars for %s", len(bars), symbol)
        return bars

    def _parse_candles(self, symbol: str, data: dict) -> list[Bar]:
        """Parse parallel t/o/h/l/c/v arrays into bars ascending by date."""
        by_date = {}
        volumes = data.get("v") or []
        try:
            for i, ts in enumerate(data["t"]):
                day = datetime.fromtimestamp(ts, tz=timezone.utc).date()
                by_date[day] = Bar(
                    date=day,
                    open=data["o"][i],
                    high=data["h"][i],
                    low=data["l"][i],
                    close=data["c"][i],
                    volume=float(volumes[i] if i < len(volumes) else 0.0),
                )
        except (KeyError, IndexError, TypeError, ValidationError) as exc:
            raise UpstreamFetchError(
                f"Finnhub returned malformed candles: {exc}", source=self.name, symbol=symbol
            ) from exc

        return [by_date[day] for day in sorted(by_date)]

    async def close(self) -> None:
        await self._client.aclose()
