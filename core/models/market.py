"""Market data models -- daily OHLCV bars as delivered by a bar feed."""

from __future__ import annotations

import datetime

from pydantic import BaseModel, ConfigDict, Field


class Bar(BaseModel):
    """One OHLCV observation for a trading session.

    Bars are immutable once fetched. A series handed to the engine must be
    strictly ascending by date; missing sessions are simply absent.
    """

    model_config = ConfigDict(frozen=True)

    date: datetime.date
    open: float = Field(gt=0, allow_inf_nan=False)
    high: float = Field(gt=0, allow_inf_nan=False)
    low: float = Field(gt=0, allow_inf_nan=False)
    close: float = Field(gt=0, allow_inf_nan=False)
    volume: float = Field(default=0.0, ge=0, allow_inf_nan=False)


def closes(bars: list[Bar]) -> list[float]:
    """Closing prices of a bar series, oldest first."""
    return [b.close for b in bars]
