"""Shared test fixtures: deterministic bar series and engine config."""

from __future__ import annotations

import pytest

from core.config import EngineConfig
from core.models.market import Bar
from simulator.series import (
    breakdown_closes,
    breakout_closes,
    flat_closes,
    make_bars,
    spike_volumes,
)


@pytest.fixture()
def flat_bars() -> list[Bar]:
    """60 sessions at exactly 100 with constant volume."""
    return make_bars(flat_closes(60))


@pytest.fixture()
def breakout_bars() -> list[Bar]:
    """220-session uptrend with pullbacks, accelerating at the end on heavy volume."""
    closes = breakout_closes(220)
    return make_bars(closes, volumes=spike_volumes(len(closes)))


@pytest.fixture()
def breakdown_bars() -> list[Bar]:
    """Mirror image of the breakout, on constant volume."""
    return make_bars(breakdown_closes(220))


@pytest.fixture()
def engine_config() -> EngineConfig:
    return EngineConfig()
