"""Property-based tests for the signal engine using Hypothesis.

Each test encodes an invariant that must hold for any valid bar series.
"""

from __future__ import annotations

import math

from hypothesis import HealthCheck, given, settings
from hypothesis import strategies as st

from core.errors import InsufficientDataError
from core.models.signals import RiskProfile, SentimentReading
from engine.pipeline import compute_signal
from engine.synthesizer import decide_signal, score_confidence
from risk.metrics import max_drawdown
from simulator.series import make_bars

# ---------------------------------------------------------------------------
# Shared strategies
# ---------------------------------------------------------------------------

_PRICE = st.floats(min_value=1.0, max_value=1000.0, allow_nan=False, allow_infinity=False)
_VOLUME = st.floats(min_value=0.0, max_value=1e9, allow_nan=False, allow_infinity=False)

_SLOW_DATA = [HealthCheck.too_slow, HealthCheck.large_base_example]


@st.composite
def _bar_series(draw, min_size: int = 50, max_size: int = 90):
    closes = draw(st.lists(_PRICE, min_size=min_size, max_size=max_size))
    volumes = draw(st.lists(_VOLUME, min_size=len(closes), max_size=len(closes)))
    return make_bars(closes, volumes=volumes)


_SENTIMENT = st.builds(
    SentimentReading,
    score=st.floats(min_value=-1.0, max_value=1.0),
    label=st.sampled_from(["positive", "neutral", "negative"]),
    confidence=st.floats(min_value=0.0, max_value=1.0),
)

_RISK = st.builds(
    RiskProfile,
    volatility_pct=st.floats(min_value=0.0, max_value=200.0),
    beta=st.just(1.0),
    sharpe_ratio=st.just(0.0),
    risk_level=st.sampled_from(["low", "medium", "high"]),
    max_drawdown_pct=st.just(0.0),
)


# ---------------------------------------------------------------------------
# Pipeline invariants
# ---------------------------------------------------------------------------

@settings(max_examples=60, deadline=None, suppress_health_check=_SLOW_DATA)
@given(bars=_bar_series(), sentiment=_SENTIMENT)
def test_result_is_bounded_and_finite(bars, sentiment):
    result = compute_signal("PROP", bars, sentiment=sentiment)

    assert result.signal in ("buy", "hold", "sell")
    assert 0.1 <= result.confidence <= 0.95
    assert 0.0 <= result.risk.max_drawdown_pct <= 100.0
    assert all(e.reason for e in result.evidence)
    for value in (
        result.net_score,
        result.risk.volatility_pct,
        result.risk.sharpe_ratio,
        result.price_targets.conservative,
        result.price_targets.aggressive,
        result.stop_loss,
    ):
        assert math.isfinite(value)


@settings(max_examples=60, deadline=None, suppress_health_check=_SLOW_DATA)
@given(bars=_bar_series())
def test_stop_below_price_when_bearish_or_high_risk(bars):
    result = compute_signal("PROP", bars)
    bearish = any(e.direction == "bearish" for e in result.evidence)
    if bearish or result.risk.risk_level == "high":
        assert result.stop_loss < result.current_price


@settings(max_examples=30, deadline=None, suppress_health_check=_SLOW_DATA)
@given(bars=_bar_series(), sentiment=_SENTIMENT)
def test_idempotent(bars, sentiment):
    first = compute_signal("PROP", bars, sentiment=sentiment)
    second = compute_signal("PROP", bars, sentiment=sentiment)
    assert first == second


@settings(max_examples=30, deadline=None, suppress_health_check=_SLOW_DATA)
@given(bars=_bar_series(min_size=2, max_size=49))
def test_short_series_always_rejected(bars):
    try:
        compute_signal("PROP", bars)
    except InsufficientDataError as exc:
        assert exc.available == len(bars)
    else:
        raise AssertionError("expected InsufficientDataError")


@settings(max_examples=100, deadline=None)
@given(prices=st.lists(_PRICE, min_size=1, max_size=200))
def test_drawdown_is_a_fraction(prices):
    assert 0.0 <= max_drawdown(prices) <= 1.0


# ---------------------------------------------------------------------------
# Confidence invariants
# ---------------------------------------------------------------------------

@settings(max_examples=200, deadline=None)
@given(
    low=st.floats(min_value=0.0, max_value=20.0),
    high=st.floats(min_value=0.0, max_value=20.0),
    risk=_RISK,
    sentiment=_SENTIMENT,
)
def test_confidence_non_decreasing_in_bullish_net_score(low, high, risk, sentiment):
    if low > high:
        low, high = high, low
    low_conf = score_confidence(decide_signal(low), low, risk, sentiment)
    high_conf = score_confidence(decide_signal(high), high, risk, sentiment)
    assert low_conf <= high_conf


@settings(max_examples=200, deadline=None)
@given(net=st.floats(min_value=-20.0, max_value=20.0), risk=_RISK, sentiment=_SENTIMENT)
def test_confidence_always_in_bounds(net, risk, sentiment):
    confidence = score_confidence(decide_signal(net), net, risk, sentiment)
    assert 0.1 <= confidence <= 0.95
