"""Admission rate limiting for the registration endpoint.

Modules:
- config: window/rate parsing and validation
- limiter: FixedWindowRateLimiter with FIFO waiters and scoped release
- instrumentation: telemetry sink protocol and logging sink

Example:
    >>> from CrptApi.ratelimit import FixedWindowRateLimiter
    >>> limiter = FixedWindowRateLimiter(capacity=10, window=1.0)
    >>> with limiter.slot(timeout=5.0):
    ...     pass  # at most 10 of these blocks start per second
"""

from CrptApi.ratelimit.config import (
    RateSpec,
    TimeUnit,
    WindowLike,
    parse_rate_string,
    window_seconds,
)
from CrptApi.ratelimit.instrumentation import LoggingRateTelemetry, RateTelemetrySink
from CrptApi.ratelimit.limiter import (
    FixedWindowRateLimiter,
    RateAcquisition,
    RateWindowSnapshot,
)

__all__ = [
    # Config
    "RateSpec",
    "TimeUnit",
    "WindowLike",
    "parse_rate_string",
    "window_seconds",
    # Limiter
    "FixedWindowRateLimiter",
    "RateAcquisition",
    "RateWindowSnapshot",
    # Instrumentation
    "RateTelemetrySink",
    "LoggingRateTelemetry",
]
