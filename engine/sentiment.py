"""Sentiment estimator -- advisory reading from an unreliable qualitative feed.

Sentiment never blocks the pipeline: any fetch, parse or validation failure
yields the neutral reading instead of an error.
"""

from __future__ import annotations

import asyncio
import logging

from core.models.signals import SentimentLabel, SentimentReading
from core.protocols import SentimentFeed

logger = logging.getLogger(__name__)

# Scores inside (-SENTIMENT_DEADBAND, SENTIMENT_DEADBAND) read as neutral
SENTIMENT_DEADBAND = 0.1


def neutral_sentiment() -> SentimentReading:
    """The documented default: score 0, label neutral, confidence 0."""
    return SentimentReading(score=0.0, label="neutral", confidence=0.0)


def label_for_score(score: float, deadband: float = SENTIMENT_DEADBAND) -> SentimentLabel:
    if score >= deadband:
        return "positive"
    if score <= -deadband:
        return "negative"
    return "neutral"


async def estimate_sentiment(
    feed: SentimentFeed | None,
    symbol: str,
    timeout: float | None = None,
) -> SentimentReading:
    """Fetch a reading for `symbol`, degrading to neutral on any failure."""
    if feed is None:
        return neutral_sentiment()

    try:
        pending = feed.fetch_sentiment(symbol)
        if timeout is not None:
            reading = await asyncio.wait_for(pending, timeout)
        else:
            reading = await pending
        if not isinstance(reading, SentimentReading):
            reading = SentimentReading.model_validate(reading)
    except Exception as exc:
        logger.warning(
            "Sentiment feed %s failed for %s, using neutral default: %s",
            getattr(feed, "name", "?"), symbol, exc,
        )
        return neutral_sentiment()

    return reading
