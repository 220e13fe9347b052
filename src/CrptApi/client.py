# === NAVMAP v1 ===
# {
#   "module": "CrptApi.client",
#   "purpose": "Public rate-limited client for the document creation endpoint.",
#   "sections": [
#     {
#       "id": "crptapiclient",
#       "name": "CrptApiClient",
#       "anchor": "class-crptapiclient",
#       "kind": "class"
#     }
#   ]
# }
# === /NAVMAP ===

"""Public client for the document creation endpoint.

A :class:`CrptApiClient` owns one admission limiter bound at construction to
``(window, capacity)``. Any number of threads may call :meth:`submit`
concurrently; they contend only inside the limiter, never around the HTTP
call.

Example:
    >>> from datetime import timedelta
    >>> with CrptApiClient(timedelta(seconds=1), 10) as api:  # doctest: +SKIP
    ...     result = api.submit(document, signature)
    ...     result.raise_for_error()
"""

from __future__ import annotations

import logging
import time
from typing import Any, Callable, Mapping, Optional, Union

import httpx

from CrptApi.cancellation import CancellationToken
from CrptApi.errors import QuotaExceeded
from CrptApi.models import Document, SubmissionRequest
from CrptApi.net.client import build_http_client
from CrptApi.pipeline import SubmissionPipeline, SubmissionResult
from CrptApi.ratelimit.config import RateSpec, WindowLike, parse_rate_string
from CrptApi.ratelimit.instrumentation import RateTelemetrySink
from CrptApi.ratelimit.limiter import FixedWindowRateLimiter, RateWindowSnapshot
from CrptApi.settings import CrptApiSettings, load_settings

LOGGER = logging.getLogger(__name__)

_SETTINGS_TIMEOUT = object()


class CrptApiClient:
    """Thread-safe, rate-limited document submission client.

    Args:
        window: Window duration (seconds, ``timedelta``, ``TimeUnit`` or unit name).
        capacity: Maximum submissions admitted per window.
        settings: Transport settings; defaults to :func:`load_settings`.
        http_client: Pre-built ``httpx.Client``. The caller keeps ownership.
        transport: Transport for the internally built client (ignored when
            ``http_client`` is given).
        telemetry: Rate limiter telemetry sink.
        clock: Monotonic clock for the limiter.

    Raises:
        InvalidConfiguration: If ``capacity`` or ``window`` is not positive,
            or ``settings`` are invalid.
    """

    def __init__(
        self,
        window: WindowLike,
        capacity: int,
        *,
        settings: Optional[CrptApiSettings] = None,
        http_client: Optional[httpx.Client] = None,
        transport: Optional[httpx.BaseTransport] = None,
        telemetry: Optional[RateTelemetrySink] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._settings = settings if settings is not None else load_settings()
        self._limiter = FixedWindowRateLimiter(
            capacity,
            window,
            max_in_flight=self._settings.max_in_flight,
            telemetry=telemetry,
            now=clock,
        )
        self._owns_http = http_client is None
        self._http = (
            http_client
            if http_client is not None
            else build_http_client(self._settings, transport=transport)
        )
        self._pipeline = SubmissionPipeline(
            self._http,
            self._limiter,
            endpoint_url=self._settings.endpoint_url,
        )
        LOGGER.debug(
            "CrptApiClient ready",
            extra={
                "extra_fields": {
                    "endpoint": self._settings.endpoint_url,
                    "capacity": self._limiter.capacity,
                    "window_s": self._limiter.window_s,
                }
            },
        )

    @classmethod
    def from_rate(cls, rate: Union[str, RateSpec], **kwargs: Any) -> "CrptApiClient":
        """Build a client from ``"N/unit"`` (e.g. ``"10/second"``) or a RateSpec."""
        spec = parse_rate_string(rate) if isinstance(rate, str) else rate
        return cls(spec.window_s, spec.capacity, **kwargs)

    @property
    def settings(self) -> CrptApiSettings:
        return self._settings

    @property
    def limiter(self) -> FixedWindowRateLimiter:
        return self._limiter

    def snapshot(self) -> RateWindowSnapshot:
        return self._limiter.snapshot()

    def submit(
        self,
        document: Union[Document, Mapping[str, Any]],
        signature: str,
        *,
        timeout: Any = _SETTINGS_TIMEOUT,
        cancel: Optional[CancellationToken] = None,
    ) -> SubmissionResult:
        """Submit ``document`` with ``signature`` once a slot is admitted.

        Args:
            document: Document model, or a mapping validated into one.
            signature: Pre-computed signature attached as ``signature``.
            timeout: Seconds to wait for a slot. Defaults to
                ``settings.acquire_timeout_s``; ``None`` waits indefinitely.
            cancel: Optional token to abandon the wait.

        Returns:
            A :class:`SubmissionResult`. Quota, transport and HTTP failures are
            reported in ``result.error`` rather than raised.

        Raises:
            ValueError: If ``signature`` is empty or the document is invalid.
        """
        if not isinstance(document, Document):
            document = Document.model_validate(document)
        request = SubmissionRequest(document, signature)
        wait = self._settings.acquire_timeout_s if timeout is _SETTINGS_TIMEOUT else timeout

        try:
            acquisition = self._limiter.acquire(timeout=wait, cancel=cancel)
        except QuotaExceeded as exc:
            return SubmissionResult(
                doc_id=request.doc_id,
                error=exc,
                admission_delay_ms=exc.waited_ms,
            )
        return self._pipeline.send(request, acquisition)

    def close(self) -> None:
        """Close the HTTP client if this instance created it."""
        if self._owns_http:
            self._http.close()

    def __enter__(self) -> "CrptApiClient":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


__all__ = ["CrptApiClient"]
