"""Signal models -- indicator snapshots, evidence, risk, sentiment and the final result."""

from __future__ import annotations

import datetime
from typing import Literal

from pydantic import BaseModel, Field

Direction = Literal["bullish", "bearish"]
Strength = Literal["weak", "medium", "strong"]
RiskLevel = Literal["low", "medium", "high"]
SentimentLabel = Literal["positive", "neutral", "negative"]
Recommendation = Literal["buy", "hold", "sell"]


class TrendPair(BaseModel):
    """MACD line, its signal line and the histogram between them."""

    value: float
    signal: float
    histogram: float


class Stochastic(BaseModel):
    """Stochastic oscillator %K and its %D smoothing."""

    k: float
    d: float


class IndicatorSnapshot(BaseModel):
    """Indicator values at the last bar of a series.

    A field is None when the series is shorter than that indicator's window.
    `volume_ratio` is never None.
    """

    current_price: float
    ma_short: float | None = None
    ma_medium: float | None = None
    ma_long: float | None = None
    rsi: float | None = None
    macd: TrendPair | None = None
    stochastic: Stochastic | None = None
    volume_ratio: float = 1.0
    momentum: float | None = None


class Evidence(BaseModel):
    """One piece of directional evidence produced by a triggered rule."""

    direction: Direction
    strength: Strength
    reason: str = Field(min_length=1)
    weight: float


class SignalAnalysis(BaseModel):
    """Ordered evidence plus the aggregated directional scores."""

    evidence: list[Evidence] = Field(default_factory=list)
    bullish_score: float = 0.0
    bearish_score: float = 0.0

    @property
    def net_score(self) -> float:
        return self.bullish_score - self.bearish_score

    @property
    def has_bearish_evidence(self) -> bool:
        return any(e.direction == "bearish" for e in self.evidence)


class RiskProfile(BaseModel):
    """Volatility, market sensitivity and drawdown of a bar series."""

    volatility_pct: float
    beta: float
    beta_source: Literal["benchmark", "fallback"] = "fallback"
    sharpe_ratio: float
    risk_level: RiskLevel
    max_drawdown_pct: float = Field(ge=0.0, le=100.0)


class SentimentReading(BaseModel):
    """Bounded sentiment estimate from a qualitative feed."""

    score: float = Field(default=0.0, ge=-1.0, le=1.0)
    label: SentimentLabel = "neutral"
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    sources: list[str] = Field(default_factory=list)


class PriceTargets(BaseModel):
    """Upside targets and protective stop derived from volatility and signal strength."""

    conservative: float
    moderate: float
    aggressive: float
    stop_loss: float


class SignalResult(BaseModel):
    """Graded recommendation for one symbol. Recomputed on every request."""

    symbol: str
    as_of: datetime.date
    current_price: float
    signal: Recommendation
    confidence: float = Field(ge=0.1, le=0.95)
    net_score: float
    reasoning: str
    evidence: list[Evidence] = Field(default_factory=list)
    indicators: IndicatorSnapshot
    risk: RiskProfile
    sentiment: SentimentReading
    price_targets: PriceTargets
    stop_loss: float
