# === NAVMAP v1 ===
# {
#   "module": "CrptApi.ratelimit.config",
#   "purpose": "Window and rate specification parsing for the admission limiter.",
#   "sections": [
#     {
#       "id": "timeunit",
#       "name": "TimeUnit",
#       "anchor": "class-timeunit",
#       "kind": "class"
#     },
#     {
#       "id": "ratespec",
#       "name": "RateSpec",
#       "anchor": "class-ratespec",
#       "kind": "class"
#     },
#     {
#       "id": "parse-rate-string",
#       "name": "parse_rate_string",
#       "anchor": "function-parse-rate-string",
#       "kind": "function"
#     },
#     {
#       "id": "window-seconds",
#       "name": "window_seconds",
#       "anchor": "function-window-seconds",
#       "kind": "function"
#     }
#   ]
# }
# === /NAVMAP ===

"""Window and rate specification parsing.

The limiter is configured with a window duration and a capacity. Callers may
express the window as a :class:`datetime.timedelta`, a number of seconds, or
a :class:`TimeUnit` (a window of exactly one unit), and may express both
values at once as a human-readable rate string.

Example:
    >>> spec = parse_rate_string("5/second")
    >>> spec.capacity, spec.window_s
    (5, 1.0)
    >>> window_seconds(TimeUnit.MINUTE)
    60.0
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from datetime import timedelta
from enum import Enum
from typing import Union

from CrptApi.errors import InvalidConfiguration

# ============================================================================
# Constants & Enums
# ============================================================================


class TimeUnit(str, Enum):
    """Window granularity, one unit per window."""

    NANOSECOND = "nanosecond"
    MICROSECOND = "microsecond"
    MILLISECOND = "millisecond"
    SECOND = "second"
    MINUTE = "minute"
    HOUR = "hour"
    DAY = "day"

    @property
    def seconds(self) -> float:
        return DURATION_S[self.value]


DURATION_S = {
    "nanosecond": 1e-9,
    "microsecond": 1e-6,
    "millisecond": 1e-3,
    "second": 1.0,
    "minute": 60.0,
    "hour": 3_600.0,
    "day": 86_400.0,
}

DURATION_ALIASES = {
    "ns": "nanosecond",
    "nanoseconds": "nanosecond",
    "us": "microsecond",
    "microseconds": "microsecond",
    "ms": "millisecond",
    "millis": "millisecond",
    "milliseconds": "millisecond",
    "s": "second",
    "sec": "second",
    "seconds": "second",
    "m": "minute",
    "min": "minute",
    "minutes": "minute",
    "h": "hour",
    "hr": "hour",
    "hours": "hour",
    "d": "day",
    "days": "day",
}

WindowLike = Union[timedelta, float, int, TimeUnit, str]

_RATE_PATTERN = re.compile(r"^\s*(\d+)\s*/\s*(\d+(?:\.\d+)?)?\s*([A-Za-z]+)\s*$")


# ============================================================================
# Data Models
# ============================================================================


@dataclass(frozen=True)
class RateSpec:
    """Normalized rate: at most ``capacity`` admissions per ``window_s`` seconds."""

    capacity: int
    window_s: float

    def __post_init__(self) -> None:
        validate_capacity(self.capacity)
        validate_window(self.window_s)

    @property
    def rps(self) -> float:
        """Requests per second."""
        return self.capacity / self.window_s

    def __str__(self) -> str:
        for unit, seconds in DURATION_S.items():
            if self.window_s == seconds:
                return f"{self.capacity}/{unit}"
        return f"{self.capacity}/{self.window_s:g}s"


# ============================================================================
# Validation
# ============================================================================


def validate_capacity(capacity: object) -> int:
    if isinstance(capacity, bool) or not isinstance(capacity, int):
        raise InvalidConfiguration(f"capacity must be an integer, got: {capacity!r}")
    if capacity <= 0:
        raise InvalidConfiguration(f"capacity must be positive, got: {capacity}")
    return capacity


def validate_window(window_s: float) -> float:
    if not math.isfinite(window_s) or window_s <= 0:
        raise InvalidConfiguration(f"window duration must be positive, got: {window_s!r}")
    return float(window_s)


def window_seconds(window: WindowLike) -> float:
    """Convert any accepted window representation to positive seconds.

    Raises:
        InvalidConfiguration: If the window is missing, of an unsupported type,
            or not strictly positive.
    """
    if window is None:
        raise InvalidConfiguration("window duration is required")
    if isinstance(window, TimeUnit):
        return window.seconds
    if isinstance(window, timedelta):
        return validate_window(window.total_seconds())
    if isinstance(window, str):
        unit = _normalise_unit(window)
        return DURATION_S[unit]
    if isinstance(window, bool) or not isinstance(window, (int, float)):
        raise InvalidConfiguration(f"unsupported window type: {type(window).__name__}")
    return validate_window(float(window))


# ============================================================================
# Parsing
# ============================================================================


def _normalise_unit(unit: str) -> str:
    key = unit.strip().lower()
    key = DURATION_ALIASES.get(key, key)
    if key not in DURATION_S:
        raise InvalidConfiguration(
            f"Unknown duration: {unit!r}. Supported: {list(DURATION_S.keys())}"
        )
    return key


def parse_rate_string(spec: str) -> RateSpec:
    """Parse ``"{capacity}/{unit}"`` or ``"{capacity}/{n}{unit}"`` into a RateSpec.

    Examples:
        "5/second"   -> RateSpec(capacity=5, window_s=1.0)
        "300/minute" -> RateSpec(capacity=300, window_s=60.0)
        "10/30s"     -> RateSpec(capacity=10, window_s=30.0)

    Raises:
        InvalidConfiguration: If the format, unit or values are invalid.
    """
    match = _RATE_PATTERN.match(spec)
    if not match:
        raise InvalidConfiguration(
            f"Invalid rate spec: {spec!r}. Expected format: '5/second', '300/minute', '10/30s'"
        )

    capacity_str, multiplier_str, unit = match.groups()
    multiplier = float(multiplier_str) if multiplier_str else 1.0
    return RateSpec(
        capacity=int(capacity_str),
        window_s=DURATION_S[_normalise_unit(unit)] * multiplier,
    )


__all__ = [
    "TimeUnit",
    "RateSpec",
    "WindowLike",
    "parse_rate_string",
    "validate_capacity",
    "validate_window",
    "window_seconds",
]
