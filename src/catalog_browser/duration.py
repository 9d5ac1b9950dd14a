"""Duration parsing utilities."""

import math
import re

from catalog_browser.types import Duration

_DURATION_PATTERN = re.compile(r"^(\d+)(ms|s|m|h|d)$")
_INFINITE = frozenset({"inf", "infinity"})
_UNITS: dict[str, int] = {
    "ms": 1,
    "s": 1000,
    "m": 60_000,
    "h": 3_600_000,
    "d": 86_400_000,
}


def parse_duration(duration: Duration) -> float:
    """Parse a duration to milliseconds.

    Numbers pass through. ``"inf"`` means the window never elapses.
    """
    if isinstance(duration, bool):
        raise ValueError(f"Invalid duration: {duration!r}")
    if isinstance(duration, (int, float)):
        if duration < 0 or math.isnan(duration):
            raise ValueError(f"Invalid duration: {duration!r}")
        return duration

    if duration.lower() in _INFINITE:
        return math.inf

    match = _DURATION_PATTERN.match(duration)
    if not match:
        raise ValueError(f"Invalid duration: {duration!r}")

    value, unit = match.groups()
    return int(value) * _UNITS[unit]
