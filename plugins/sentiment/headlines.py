"""Headline sentiment provider -- RSS headlines scored by keyword matching.

Fetches recent headlines for a ticker from public RSS feeds and turns the
balance of bullish and bearish keywords into a bounded sentiment reading.
"""

from __future__ import annotations

import logging
import re
from urllib.parse import quote, urlparse
from xml.etree import ElementTree

import httpx

from core.errors import UpstreamFetchError
from core.models.signals import SentimentReading
from engine.sentiment import label_for_score

logger = logging.getLogger(__name__)

PLUGIN_META = {
    "name": "headlines",
    "display_name": "Headline Sentiment",
    "description": "Keyword sentiment over Yahoo Finance and Google News RSS headlines",
    "category": "sentiment",
    "protocols": ["sentiment"],
    "class_name": "HeadlineSentimentProvider",
    "pip_dependencies": [],
    "setup_instructions": "No API key required. Set sentiment.provider to '' to disable.",
    "config_fields": [
        {
            "key": "max_headlines",
            "label": "Headlines per symbol",
            "type": "number",
            "required": False,
            "default": 20,
            "description": "Maximum number of headlines scored per request",
            "placeholder": "20",
        },
    ],
}

_FEED_TEMPLATES = [
    "https://feeds.finance.yahoo.com/rss/2.0/headline?s={ticker}&region=US&lang=en-US",
    "https://news.google.com/rss/search?q={ticker}%20stock&hl=en-US&gl=US&ceid=US:en",
]

_BULLISH_KEYWORDS: set[str] = {
    "beat", "beats", "upgrade", "upgraded", "buy", "bullish",
    "outperform", "record", "growth", "surge", "surges", "rally",
    "breakout", "strong", "exceeded", "soar", "soars", "gain", "gains",
}

_BEARISH_KEYWORDS: set[str] = {
    "miss", "missed", "downgrade", "downgraded", "sell", "bearish",
    "underperform", "risk", "decline", "drop", "drops", "crash",
    "weak", "warning", "cut", "plunge", "plunges", "lawsuit", "probe",
}

# Scored headlines needed for full confidence
_FULL_CONFIDENCE_COUNT = 10


def _make_keyword_pattern(keywords: set[str]) -> re.Pattern[str]:
    escaped = [re.escape(kw) for kw in sorted(keywords)]
    return re.compile(r"\b(" + "|".join(escaped) + r")\b", re.IGNORECASE)


_BULLISH_RE = _make_keyword_pattern(_BULLISH_KEYWORDS)
_BEARISH_RE = _make_keyword_pattern(_BEARISH_KEYWORDS)


def score_headlines(headlines: list[str], sources: list[str] | None = None) -> SentimentReading:
    """Score headlines into a SentimentReading.

    Each headline with at least one keyword contributes
    (bullish - bearish) / (bullish + bearish); the score is their mean.
    Confidence grows with the number of scored headlines.
    """
    item_scores: list[float] = []
    for title in headlines:
        bull_count = len(_BULLISH_RE.findall(title))
        bear_count = len(_BEARISH_RE.findall(title))
        if bull_count + bear_count == 0:
            continue
        item_scores.append((bull_count - bear_count) / (bull_count + bear_count))

    if not item_scores:
        return SentimentReading(sources=list(sources or []))

    score = max(-1.0, min(1.0, sum(item_scores) / len(item_scores)))
    return SentimentReading(
        score=score,
        label=label_for_score(score),
        confidence=min(1.0, len(item_scores) / _FULL_CONFIDENCE_COUNT),
        sources=list(sources or []),
    )


def parse_rss_titles(xml_text: str) -> list[str]:
    """Extract item titles from RSS XML; malformed XML yields no titles."""
    try:
        root = ElementTree.fromstring(xml_text)
    except ElementTree.ParseError:
        return []
    titles = []
    for item in root.findall(".//item"):
        title = (item.findtext("title") or "").strip()
        if title:
            titles.append(title)
    return titles


class HeadlineSentimentProvider:
    """Keyword sentiment over recent RSS headlines.

    Implements the SentimentFeed protocol.
    """

    def __init__(
        self,
        max_headlines: int = 20,
        client: httpx.AsyncClient | None = None,
        timeout: float = 20.0,
        feed_templates: list[str] | None = None,
    ) -> None:
        self._max_headlines = max_headlines
        self._feed_templates = feed_templates or list(_FEED_TEMPLATES)
        self._client = client or httpx.AsyncClient(
            timeout=timeout,
            headers={"User-Agent": "stonks-signals/0.1"},
            follow_redirects=True,
        )

    @property
    def name(self) -> str:
        return "headlines"

    async def fetch_sentiment(self, symbol: str) -> SentimentReading:
        headlines, sources = await self._fetch_headlines(symbol)
        reading = score_headlines(headlines, sources)
        logger.debug(
            "Headline sentiment for %s: %.2f over %d headlines",
            symbol, reading.score, len(headlines),
        )
        return reading

    async def _fetch_headlines(self, symbol: str) -> tuple[list[str], list[str]]:
        """Fetch and deduplicate headlines across every feed.

        Raises UpstreamFetchError only when no feed could be read at all.
        """
        ticker = quote(symbol.upper())
        titles: list[str] = []
        sources: list[str] = []
        failures = 0

        for template in self._feed_templates:
            url = template.format(ticker=ticker)
            try:
                response = await self._client.get(url)
            except httpx.HTTPError as exc:
                logger.warning("Failed to fetch RSS feed %s: %s", url, exc)
                failures += 1
                continue
            if response.status_code != 200:
                logger.warning("RSS feed %s returned %d", url, response.status_code)
                failures += 1
                continue

            feed_titles = parse_rss_titles(response.text)
            if feed_titles:
                sources.append(urlparse(url).hostname or url)
                titles.extend(feed_titles)

        if failures == len(self._feed_templates):
            raise UpstreamFetchError(
                "No headline feed could be reached", source=self.name, symbol=symbol
            )

        # Deduplicate by title while keeping arrival order.
        seen: set[str] = set()
        deduped: list[str] = []
        for title in titles:
            key = title.lower()
            if key in seen:
                continue
            seen.add(key)
            deduped.append(title)
            if len(deduped) >= self._max_headlines:
                break
        return deduped, sources

    async def close(self) -> None:
        await self._client.aclose()
