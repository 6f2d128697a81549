"""Duration parsing for configuration values such as lookbacks and timeouts."""

from __future__ import annotations

import re
from datetime import timedelta

_UNIT_SECONDS = {
    "s": 1,
    "m": 60,
    "h": 3600,
    "d": 86400,
    "w": 7 * 86400,
}
_PART_RE = re.compile(r"(\d+)\s*([smhdw])", re.IGNORECASE)
_FULL_RE = re.compile(r"^\s*(?:\d+\s*[smhdw]\s*)+$", re.IGNORECASE)


def parse_duration(value: str | timedelta) -> timedelta:
    """Parse '30s', '5m', '365d', '52w' or compound forms like '1h30m'."""
    if isinstance(value, timedelta):
        return value
    text = str(value or "")
    if not _FULL_RE.match(text):
        raise ValueError(f"Invalid duration: {value!r}. Expected e.g. '30s', '5m', '365d', '1h30m'.")
    seconds = sum(int(amount) * _UNIT_SECONDS[unit.lower()] for amount, unit in _PART_RE.findall(text))
    return timedelta(seconds=seconds)
