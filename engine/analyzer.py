"""Signal analyzer -- maps indicator values to weighted directional evidence.

The rule table below is the single source of truth for what counts as
evidence and how much it weighs. Rules are evaluated in table order and are
not mutually exclusive. A rule whose inputs are missing (None) is skipped:
no evidence, no penalty.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

from core.models.signals import (
    Direction,
    Evidence,
    IndicatorSnapshot,
    SignalAnalysis,
    Strength,
)

OVERSOLD_LEVEL = 30.0
OVERBOUGHT_LEVEL = 70.0
VOLUME_SPIKE_RATIO = 1.5
MOMENTUM_THRESHOLD_PCT = 5.0


@dataclass(frozen=True)
class EvidenceRule:
    """A pure predicate over an IndicatorSnapshot and the evidence it emits."""

    name: str
    direction: Direction
    strength: Strength
    weight: float
    reason: str
    requires: tuple[str, ...]
    predicate: Callable[[IndicatorSnapshot], bool]

    def evaluate(self, snapshot: IndicatorSnapshot) -> Evidence | None:
        if any(getattr(snapshot, field) is None for field in self.requires):
            return None
        if not self.predicate(snapshot):
            return None
        return Evidence(
            direction=self.direction,
            strength=self.strength,
            reason=self.reason,
            weight=self.weight,
        )


SIGNAL_RULES: tuple[EvidenceRule, ...] = (
    EvidenceRule(
        "oversold", "bullish", "strong", 2.0, "oversold",
        ("rsi",), lambda s: s.rsi < OVERSOLD_LEVEL,
    ),
    EvidenceRule(
        "overbought", "bearish", "strong", 2.0, "overbought",
        ("rsi",), lambda s: s.rsi > OVERBOUGHT_LEVEL,
    ),
    EvidenceRule(
        "golden_cross", "bullish", "medium", 1.0, "golden cross configuration",
        ("ma_short", "ma_medium", "ma_long"),
        lambda s: s.ma_short > s.ma_medium > s.ma_long,
    ),
    EvidenceRule(
        "death_cross", "bearish", "medium", 1.0, "death cross configuration",
        ("ma_short", "ma_medium", "ma_long"),
        lambda s: s.ma_short < s.ma_medium < s.ma_long,
    ),
    EvidenceRule(
        "trend_above_signal", "bullish", "medium", 1.0, "trend above signal",
        ("macd",), lambda s: s.macd.value > s.macd.signal,
    ),
    EvidenceRule(
        "trend_below_signal", "bearish", "medium", 1.0, "trend below signal",
        ("macd",), lambda s: s.macd.value < s.macd.signal,
    ),
    EvidenceRule(
        "volume_spike", "bullish", "weak", 0.5, "volume spike",
        ("volume_ratio",), lambda s: s.volume_ratio > VOLUME_SPIKE_RATIO,
    ),
    EvidenceRule(
        "positive_momentum", "bullish", "weak", 0.5, "positive momentum",
        ("momentum",), lambda s: s.momentum > MOMENTUM_THRESHOLD_PCT,
    ),
    EvidenceRule(
        "negative_momentum", "bearish", "weak", 0.5, "negative momentum",
        ("momentum",), lambda s: s.momentum < -MOMENTUM_THRESHOLD_PCT,
    ),
)


def analyze_signals(
    indicators: IndicatorSnapshot,
    rules: tuple[EvidenceRule, ...] = SIGNAL_RULES,
) -> SignalAnalysis:
    """Evaluate every rule and aggregate the evidence into directional scores."""
    evidence: list[Evidence] = []
    bullish = 0.0
    bearish = 0.0

    for rule in rules:
        item = rule.evaluate(indicators)
        if item is None:
            continue
        evidence.append(item)
        if item.direction == "bullish":
            bullish += item.weight
        else:
            bearish += item.weight

    return SignalAnalysis(evidence=evidence, bullish_score=bullish, bearish_score=bearish)
