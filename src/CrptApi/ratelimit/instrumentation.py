"""Rate limiter telemetry hooks.

The limiter reports admissions, timeouts and releases through a
:class:`RateTelemetrySink`. :class:`LoggingRateTelemetry` is the default sink
and writes structured debug/warning records; callers wire their own sink to
feed metrics systems.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Protocol

logger = logging.getLogger(__name__)


class RateTelemetrySink(Protocol):
    """Protocol for rate limiting telemetry."""

    def emit_acquire(self, *, name: str, delay_ms: int, used: int, capacity: int) -> None:
        """Emit when a slot was granted."""
        ...

    def emit_block(self, *, name: str, waited_ms: int, reason: str) -> None:
        """Emit when a caller gave up waiting (timeout or cancellation)."""
        ...

    def emit_release(self, *, name: str, held_ms: int) -> None:
        """Emit when a granted slot was released."""
        ...


class LoggingRateTelemetry:
    """Sink writing one log record per limiter event."""

    def __init__(self, log: Optional[logging.Logger] = None) -> None:
        self._log = log or logger

    def _emit(self, level: int, message: str, payload: Dict[str, Any]) -> None:
        self._log.log(level, message, extra={"extra_fields": payload})

    def emit_acquire(self, *, name: str, delay_ms: int, used: int, capacity: int) -> None:
        self._emit(
            logging.DEBUG,
            "ratelimit.acquire",
            {"limiter": name, "delay_ms": delay_ms, "used": used, "capacity": capacity},
        )

    def emit_block(self, *, name: str, waited_ms: int, reason: str) -> None:
        self._emit(
            logging.WARNING,
            "ratelimit.block",
            {"limiter": name, "waited_ms": waited_ms, "reason": reason},
        )

    def emit_release(self, *, name: str, held_ms: int) -> None:
        self._emit(logging.DEBUG, "ratelimit.release", {"limiter": name, "held_ms": held_ms})


__all__ = ["RateTelemetrySink", "LoggingRateTelemetry"]
