"""Error taxonomy for the signal engine.

Every failure that can reach a caller is a SignalEngineError carrying the
symbol it belongs to, so batch callers (the portfolio aggregator, the CLI)
can report failures per symbol without aborting the batch.
"""

from __future__ import annotations


class SignalEngineError(Exception):
    """Base class for all engine failures."""

    kind = "engine_error"

    def __init__(self, message: str, symbol: str = "") -> None:
        super().__init__(message)
        self.symbol = symbol

    def for_symbol(self, symbol: str) -> SignalEngineError:
        """Attach a symbol if the raiser did not know it."""
        if not self.symbol:
            self.symbol = symbol
        return self


class InsufficientDataError(SignalEngineError):
    """The bar series is too short for a meaningful analysis."""

    kind = "insufficient_data"

    def __init__(self, required: int, available: int, symbol: str = "") -> None:
        super().__init__(
            f"Insufficient data: {available} bars available, {required} required",
            symbol=symbol,
        )
        self.required = required
        self.available = available


class UpstreamFetchError(SignalEngineError):
    """A market-data or sentiment feed could not be reached or parsed."""

    kind = "upstream_fetch"

    def __init__(self, message: str, source: str = "", symbol: str = "") -> None:
        super().__init__(message, symbol=symbol)
        self.source = source


class ComputationError(SignalEngineError):
    """An unexpected numeric condition (unordered bars, non-finite output)."""

    kind = "computation_error"
