# === NAVMAP v1 ===
# {
#   "module": "CrptApi.ratelimit.limiter",
#   "purpose": "Thread-safe fixed-window admission limiter with FIFO waiters.",
#   "sections": [
#     {
#       "id": "rateacquisition",
#       "name": "RateAcquisition",
#       "anchor": "class-rateacquisition",
#       "kind": "class"
#     },
#     {
#       "id": "ratewindowsnapshot",
#       "name": "RateWindowSnapshot",
#       "anchor": "class-ratewindowsnapshot",
#       "kind": "class"
#     },
#     {
#       "id": "fixedwindowratelimiter",
#       "name": "FixedWindowRateLimiter",
#       "anchor": "class-fixedwindowratelimiter",
#       "kind": "class"
#     }
#   ]
# }
# === /NAVMAP ===

"""Fixed-window admission limiter.

Admits at most ``capacity`` callers per window of ``window_s`` seconds.
Windows are laid on an integer-nanosecond grid anchored at construction
time, so a clock reading exactly on a boundary always opens the later
window. They advance lazily when a caller observes that the clock has passed
the current window's end, so no background timer is involved.

Callers that find the window exhausted queue up and are admitted strictly in
arrival order once the next window opens. A caller leaving the queue because
of a timeout or cancellation never touches the window counter.

Example:
    >>> limiter = FixedWindowRateLimiter(2, 1.0)
    >>> with limiter.slot() as acquisition:
    ...     acquisition.sequence
    1
"""

from __future__ import annotations

import logging
import threading
import time
from collections import deque
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Callable, Deque, Iterator, Optional, Tuple

from CrptApi.cancellation import CancellationToken
from CrptApi.errors import AcquisitionCancelled, InvalidConfiguration, QuotaExceeded
from CrptApi.ratelimit.config import WindowLike, validate_capacity, window_seconds
from CrptApi.ratelimit.instrumentation import LoggingRateTelemetry, RateTelemetrySink

LOGGER = logging.getLogger(__name__)

_NS_PER_S = 1_000_000_000


def _to_ns(seconds: float) -> int:
    return round(seconds * _NS_PER_S)


@dataclass
class RateAcquisition:
    """A granted admission slot."""

    sequence: int
    granted_at: float
    window_start: float
    delay_ms: int
    limiter: "FixedWindowRateLimiter" = field(repr=False, compare=False)
    released: bool = False


@dataclass(frozen=True)
class RateWindowSnapshot:
    """Point-in-time view of the limiter state."""

    capacity: int
    window_s: float
    window_start: float
    used: int
    waiting: int
    in_flight: int
    granted_total: int
    max_in_flight: Optional[int] = None

    @property
    def remaining(self) -> int:
        return self.capacity - self.used


class FixedWindowRateLimiter:
    """Process-local fixed-window counter guarded by a single condition.

    Args:
        capacity: Maximum admissions per window.
        window: Window duration (seconds, ``timedelta`` or ``TimeUnit``).
        max_in_flight: Optional ceiling on admitted-but-unreleased slots.
        name: Label used in telemetry.
        telemetry: Sink receiving acquire/block/release events.
        now: Monotonic clock returning seconds.

    Raises:
        InvalidConfiguration: If ``capacity`` or ``window`` is not positive.
    """

    def __init__(
        self,
        capacity: int,
        window: WindowLike,
        *,
        max_in_flight: Optional[int] = None,
        name: str = "crpt",
        telemetry: Optional[RateTelemetrySink] = None,
        now: Callable[[], float] = time.monotonic,
    ) -> None:
        self._capacity = validate_capacity(capacity)
        self._window_s = window_seconds(window)
        if max_in_flight is not None:
            try:
                validate_capacity(max_in_flight)
            except InvalidConfiguration as exc:
                raise InvalidConfiguration(f"max_in_flight must be positive: {exc}") from exc
        self._max_in_flight = max_in_flight
        self._name = name
        self._tele: RateTelemetrySink = telemetry or LoggingRateTelemetry(LOGGER)
        self._now = now

        self._window_ns = _to_ns(self._window_s)
        if self._window_ns <= 0:
            raise InvalidConfiguration(
                f"window duration must be at least 1ns, got: {self._window_s!r}"
            )

        self._cond = threading.Condition(threading.Lock())
        self._origin_ns = _to_ns(now())
        self._index = 0
        self._used = 0
        self._in_flight = 0
        self._granted_total = 0
        self._waiters: Deque[object] = deque()

        LOGGER.debug(
            "Rate limiter created",
            extra={
                "extra_fields": {
                    "limiter": name,
                    "capacity": self._capacity,
                    "window_s": self._window_s,
                    "max_in_flight": max_in_flight,
                }
            },
        )

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def window_s(self) -> float:
        return self._window_s

    # ------------------------------------------------------------------
    # Window accounting (caller holds self._cond)
    # ------------------------------------------------------------------

    def _window_at(self, now: float) -> Tuple[int, int]:
        """Return the ``(window_index, used)`` pair in effect at ``now``.

        Window ``k`` covers ``[origin + k * window, origin + (k + 1) * window)``
        in integer nanoseconds, so boundaries are exact.
        """
        index = (_to_ns(now) - self._origin_ns) // self._window_ns
        if index <= self._index:
            # Also covers a clock that stepped backwards: the window never rewinds.
            return self._index, self._used
        return index, 0

    def _roll_window(self, now: float) -> None:
        self._index, self._used = self._window_at(now)

    def _start_of(self, index: int) -> float:
        return (self._origin_ns + index * self._window_ns) / _NS_PER_S

    def _seconds_to_window_end(self, now: float) -> float:
        end_ns = self._origin_ns + (self._index + 1) * self._window_ns
        return (end_ns - _to_ns(now)) / _NS_PER_S

    def _can_admit(self) -> bool:
        if self._used >= self._capacity:
            return False
        return self._max_in_flight is None or self._in_flight < self._max_in_flight

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def acquire(
        self,
        timeout: Optional[float] = None,
        cancel: Optional[CancellationToken] = None,
    ) -> RateAcquisition:
        """Block until a slot is granted in the current window.

        Args:
            timeout: Seconds to wait. ``None`` waits indefinitely and ``0``
                never blocks.
            cancel: Optional token; cancelling it wakes the caller.

        Returns:
            The granted acquisition. Pass it to :meth:`release` when done.

        Raises:
            QuotaExceeded: If ``timeout`` elapsed before a slot was granted.
            AcquisitionCancelled: If ``cancel`` fired first.
        """
        if timeout is not None and timeout < 0:
            raise ValueError(f"timeout must be >= 0, got: {timeout}")

        wake: Optional[Callable[[], None]] = None
        if cancel is not None:

            def wake() -> None:
                with self._cond:
                    self._cond.notify_all()

            cancel.add_callback(wake)

        try:
            acquisition = self._acquire(timeout, cancel)
        except QuotaExceeded as exc:
            reason = "cancelled" if isinstance(exc, AcquisitionCancelled) else "timeout"
            self._tele.emit_block(name=self._name, waited_ms=exc.waited_ms, reason=reason)
            raise
        finally:
            if cancel is not None and wake is not None:
                cancel.remove_callback(wake)

        self._tele.emit_acquire(
            name=self._name,
            delay_ms=acquisition.delay_ms,
            used=acquisition.sequence,
            capacity=self._capacity,
        )
        return acquisition

    def _acquire(
        self,
        timeout: Optional[float],
        cancel: Optional[CancellationToken],
    ) -> RateAcquisition:
        ticket = object()
        with self._cond:
            start = self._now()
            deadline = None if timeout is None else start + timeout
            self._waiters.append(ticket)
            try:
                while True:
                    now = self._now()
                    waited_ms = max(0, int((now - start) * 1000))
                    if cancel is not None and cancel.is_cancelled():
                        raise AcquisitionCancelled(
                            "Cancelled while waiting for an admission slot",
                            waited_ms=waited_ms,
                            timeout_s=timeout,
                        )

                    self._roll_window(now)
                    at_head = self._waiters[0] is ticket
                    if at_head and self._can_admit():
                        self._waiters.popleft()
                        self._used += 1
                        self._in_flight += 1
                        self._granted_total += 1
                        # The next queued caller may fit in the same window.
                        self._cond.notify_all()
                        return RateAcquisition(
                            sequence=self._used,
                            granted_at=now,
                            window_start=self._start_of(self._index),
                            delay_ms=waited_ms,
                            limiter=self,
                        )

                    if deadline is not None and now >= deadline:
                        raise QuotaExceeded(
                            "Retry later. Request limit exceeded.",
                            waited_ms=waited_ms,
                            timeout_s=timeout,
                        )

                    wait_s: Optional[float] = None
                    if at_head and self._used >= self._capacity:
                        wait_s = self._seconds_to_window_end(now)
                    if deadline is not None:
                        remaining = deadline - now
                        wait_s = remaining if wait_s is None else min(wait_s, remaining)
                    self._cond.wait(wait_s)
            finally:
                if ticket in self._waiters:
                    self._waiters.remove(ticket)
                    self._cond.notify_all()

    def release(self, acquisition: RateAcquisition) -> None:
        """Return ``acquisition``'s slot.

        Window accounting is unaffected: a released slot still counts against
        the window it was granted in. Only the in-flight permit is returned.
        Releasing the same acquisition twice is a no-op.
        """
        if acquisition.limiter is not self:
            LOGGER.warning(
                "Ignoring release of an acquisition owned by another limiter",
                extra={"extra_fields": {"limiter": self._name}},
            )
            return

        with self._cond:
            if acquisition.released:
                LOGGER.debug(
                    "Acquisition already released",
                    extra={"extra_fields": {"limiter": self._name, "sequence": acquisition.sequence}},
                )
                return
            acquisition.released = True
            self._in_flight -= 1
            self._cond.notify_all()
            held_ms = max(0, int((self._now() - acquisition.granted_at) * 1000))

        self._tele.emit_release(name=self._name, held_ms=held_ms)

    @contextmanager
    def slot(
        self,
        timeout: Optional[float] = None,
        cancel: Optional[CancellationToken] = None,
    ) -> Iterator[RateAcquisition]:
        """Acquire a slot for the duration of the ``with`` block."""
        acquisition = self.acquire(timeout=timeout, cancel=cancel)
        try:
            yield acquisition
        finally:
            self.release(acquisition)

    def snapshot(self) -> RateWindowSnapshot:
        """Return the state as of now without advancing the window."""
        with self._cond:
            index, used = self._window_at(self._now())
            return RateWindowSnapshot(
                capacity=self._capacity,
                window_s=self._window_s,
                window_start=self._start_of(index),
                used=used,
                waiting=len(self._waiters),
                in_flight=self._in_flight,
                granted_total=self._granted_total,
                max_in_flight=self._max_in_flight,
            )

    def __repr__(self) -> str:
        return (
            f"FixedWindowRateLimiter(name={self._name!r}, capacity={self._capacity}, "
            f"window_s={self._window_s})"
        )


__all__ = ["FixedWindowRateLimiter", "RateAcquisition", "RateWindowSnapshot"]
