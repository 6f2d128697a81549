"""Pydantic data models shared across all components."""

from core.models.market import Bar
from core.models.portfolio import (
    Holding,
    HoldingAnalysis,
    PortfolioAnalysis,
    PortfolioRisk,
    RebalanceRecommendation,
)
from core.models.signals import (
    Evidence,
    IndicatorSnapshot,
    PriceTargets,
    RiskProfile,
    SentimentReading,
    SignalAnalysis,
    SignalResult,
    Stochastic,
    TrendPair,
)

__all__ = [
    "Bar",
    "Holding",
    "HoldingAnalysis",
    "PortfolioAnalysis",
    "PortfolioRisk",
    "RebalanceRecommendation",
    "Evidence",
    "IndicatorSnapshot",
    "PriceTargets",
    "RiskProfile",
    "SentimentReading",
    "SignalAnalysis",
    "SignalResult",
    "Stochastic",
    "TrendPair",
]
