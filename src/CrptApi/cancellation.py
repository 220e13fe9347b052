"""Cooperative cancellation for callers waiting on an admission slot.

A waiter blocked inside :meth:`FixedWindowRateLimiter.acquire` sleeps on a
condition variable. Cancelling a :class:`CancellationToken` runs the
registered wake-up callbacks so the waiter re-checks the token promptly and
leaves the queue without consuming a slot.
"""

from __future__ import annotations

import logging
import threading
from typing import Callable, List

logger = logging.getLogger(__name__)


class CancellationToken:
    """Thread-safe cancellation flag with wake-up callbacks.

    Examples:
        >>> token = CancellationToken()
        >>> token.is_cancelled()
        False
        >>> token.cancel()
        >>> token.is_cancelled()
        True
    """

    def __init__(self) -> None:
        self._is_cancelled = threading.Event()
        self._lock = threading.Lock()
        self._callbacks: List[Callable[[], None]] = []

    def cancel(self) -> None:
        """Signal cancellation and wake every registered waiter."""
        with self._lock:
            if self._is_cancelled.is_set():
                return
            self._is_cancelled.set()
            callbacks = list(self._callbacks)
        for callback in callbacks:
            callback()

    def is_cancelled(self) -> bool:
        return self._is_cancelled.is_set()

    def add_callback(self, callback: Callable[[], None]) -> None:
        """Register ``callback``; it runs immediately if already cancelled."""
        with self._lock:
            if not self._is_cancelled.is_set():
                self._callbacks.append(callback)
                return
        callback()

    def remove_callback(self, callback: Callable[[], None]) -> None:
        with self._lock:
            try:
                self._callbacks.remove(callback)
            except ValueError:
                logger.debug("Cancellation callback already removed")

    def reset(self) -> None:
        """Clear the flag. Intended for tests and controlled token reuse."""
        with self._lock:
            self._is_cancelled.clear()
