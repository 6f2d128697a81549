"""Signal synthesizer -- turns scored evidence into a graded recommendation.

Combines the analyzer's net score with the risk profile and the sentiment
reading into a signal, a bounded confidence, price targets and a stop-loss.
"""

from __future__ import annotations

import math

from core.errors import ComputationError
from core.models.market import Bar
from core.models.signals import (
    IndicatorSnapshot,
    PriceTargets,
    Recommendation,
    RiskProfile,
    SentimentReading,
    SignalAnalysis,
    SignalResult,
)

BUY_THRESHOLD = 2.0
SELL_THRESHOLD = -2.0

HOLD_CONFIDENCE = 0.5
MAX_BASE_CONFIDENCE = 0.9
MIN_CONFIDENCE = 0.1
MAX_CONFIDENCE = 0.95
SENTIMENT_BONUS = 0.1
HIGH_RISK_PENALTY = 0.1

NO_EVIDENCE_REASON = "no technical rules triggered"


# ---------------------------------------------------------------------------
# 1. Signal and confidence
# ---------------------------------------------------------------------------

def decide_signal(net_score: float) -> Recommendation:
    if net_score > BUY_THRESHOLD:
        return "buy"
    if net_score < SELL_THRESHOLD:
        return "sell"
    return "hold"


def score_confidence(
    signal: Recommendation,
    net_score: float,
    risk: RiskProfile,
    sentiment: SentimentReading,
) -> float:
    """Confidence in [MIN_CONFIDENCE, MAX_CONFIDENCE], non-decreasing in |net_score|."""
    if signal == "hold":
        confidence = HOLD_CONFIDENCE
    else:
        confidence = min(MAX_BASE_CONFIDENCE, 0.5 + abs(net_score) * 0.1)

    if (signal == "buy" and sentiment.label == "positive") or (
        signal == "sell" and sentiment.label == "negative"
    ):
        confidence += SENTIMENT_BONUS

    if signal == "buy" and risk.risk_level == "high":
        confidence -= HIGH_RISK_PENALTY

    return round(min(MAX_CONFIDENCE, max(MIN_CONFIDENCE, confidence)), 4)


# ---------------------------------------------------------------------------
# 2. Price targets
# ---------------------------------------------------------------------------

def compute_price_targets(
    price: float,
    net_score: float,
    risk: RiskProfile,
    needs_protective_stop: bool,
    stop_floor_multiple: float = 1.0,
    trading_days: int = 252,
) -> PriceTargets:
    """Targets scale with volatility and signal strength.

    When `needs_protective_stop` is set, the stop sits at least
    `stop_floor_multiple` daily standard deviations below the price, so a
    weak net score cannot collapse it onto the price.
    """
    volatility = risk.volatility_pct / 100.0
    price_range = price * volatility * (abs(net_score) / 5.0)

    stop_distance = 0.7 * price_range
    if needs_protective_stop:
        daily_volatility = volatility / math.sqrt(trading_days)
        stop_distance = max(stop_distance, stop_floor_multiple * price * daily_volatility)

    stop_loss = price - stop_distance
    if needs_protective_stop and stop_loss >= price:
        # Volatility too small to move the price in float precision.
        stop_loss = math.nextafter(price, 0.0)

    return PriceTargets(
        conservative=price + price_range * 0.5,
        moderate=price + price_range,
        aggressive=price + price_range * 1.5,
        stop_loss=stop_loss,
    )


# ---------------------------------------------------------------------------
# 3. Public API
# ---------------------------------------------------------------------------

def build_reasoning(analysis: SignalAnalysis) -> str:
    if not analysis.evidence:
        return NO_EVIDENCE_REASON
    return "; ".join(e.reason for e in analysis.evidence)


def synthesize_signal(
    symbol: str,
    bars: list[Bar],
    indicators: IndicatorSnapshot,
    analysis: SignalAnalysis,
    risk: RiskProfile,
    sentiment: SentimentReading,
    stop_floor_multiple: float = 1.0,
    trading_days: int = 252,
) -> SignalResult:
    """Assemble the SignalResult for one symbol.

    Raises ComputationError if any derived number is not finite.
    """
    price = indicators.current_price
    net_score = analysis.net_score
    signal = decide_signal(net_score)
    confidence = score_confidence(signal, net_score, risk, sentiment)

    needs_protective_stop = analysis.has_bearish_evidence or risk.risk_level == "high"
    targets = compute_price_targets(
        price,
        net_score,
        risk,
        needs_protective_stop,
        stop_floor_multiple=stop_floor_multiple,
        trading_days=trading_days,
    )

    checked = {
        "current_price": price,
        "net_score": net_score,
        "confidence": confidence,
        "volatility_pct": risk.volatility_pct,
        "beta": risk.beta,
        "sharpe_ratio": risk.sharpe_ratio,
        "conservative": targets.conservative,
        "moderate": targets.moderate,
        "aggressive": targets.aggressive,
        "stop_loss": targets.stop_loss,
    }
    for name, value in checked.items():
        if not math.isfinite(value):
            raise ComputationError(f"Non-finite {name} ({value})", symbol=symbol)

    return SignalResult(
        symbol=symbol,
        as_of=bars[-1].date,
        current_price=price,
        signal=signal,
        confidence=confidence,
        net_score=net_score,
        reasoning=build_reasoning(analysis),
        evidence=list(analysis.evidence),
        indicators=indicators,
        risk=risk,
        sentiment=sentiment,
        price_targets=targets,
        stop_loss=targets.stop_loss,
    )
