"""Portfolio models -- holdings in, per-symbol results and guidance out."""

from __future__ import annotations

import re
from typing import Literal

from pydantic import BaseModel, Field, field_validator

from core.models.signals import RiskLevel, SignalResult

_SYMBOL_RE = re.compile(r"^[A-Z]{1,10}$")

RiskTolerance = Literal["low", "medium", "high"]


def normalize_symbol(symbol: str) -> str:
    """Upper-case and validate a ticker symbol (1-10 letters)."""
    cleaned = str(symbol or "").strip().upper()
    if not _SYMBOL_RE.match(cleaned):
        raise ValueError(f"Symbol must be 1-10 letters, got {symbol!r}")
    return cleaned


class Holding(BaseModel):
    """A position to analyze, weighted by its share of the portfolio."""

    symbol: str
    allocation: float = Field(default=0.0, ge=0.0, le=100.0)

    @field_validator("symbol")
    @classmethod
    def check_symbol(cls, value: str) -> str:
        return normalize_symbol(value)


class HoldingAnalysis(BaseModel):
    """Outcome of one holding's pipeline: either a result or an error."""

    symbol: str
    allocation: float
    result: SignalResult | None = None
    error: str | None = None
    error_type: str | None = None

    @property
    def ok(self) -> bool:
        return self.result is not None


class PortfolioRisk(BaseModel):
    """Allocation-weighted risk of the successfully analyzed holdings."""

    total_risk: float
    risk_level: RiskLevel
    diversification_score: float = Field(ge=0.0, le=1.0)


class RebalanceRecommendation(BaseModel):
    """Suggested allocation change for one holding."""

    symbol: str
    action: Literal["reduce", "increase"]
    reason: str
    current_allocation: float
    suggested_allocation: float


class PortfolioAnalysis(BaseModel):
    """Per-holding results folded into portfolio-level guidance."""

    holdings: list[HoldingAnalysis] = Field(default_factory=list)
    portfolio_risk: PortfolioRisk | None = None
    rebalancing: list[RebalanceRecommendation] = Field(default_factory=list)
    overall_recommendation: Literal["bullish", "bearish", "neutral"] = "neutral"
    risk_tolerance: RiskTolerance = "medium"

    @property
    def failed(self) -> list[HoldingAnalysis]:
        return [h for h in self.holdings if not h.ok]
