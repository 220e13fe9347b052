# === NAVMAP v1 ===
# {
#   "module": "CrptApi.pipeline",
#   "purpose": "Single-POST submission of an admitted document with guaranteed slot release.",
#   "sections": [
#     {
#       "id": "submissionresult",
#       "name": "SubmissionResult",
#       "anchor": "class-submissionresult",
#       "kind": "class"
#     },
#     {
#       "id": "submissionpipeline",
#       "name": "SubmissionPipeline",
#       "anchor": "class-submissionpipeline",
#       "kind": "class"
#     }
#   ]
# }
# === /NAVMAP ===

"""Submission pipeline: serialize, POST once, classify, release.

The pipeline receives a request that already holds an admission slot. It
builds the JSON body (document fields plus ``signature``), sends exactly one
POST and turns the outcome into a :class:`SubmissionResult`:

- HTTP 200 -> success
- any other status -> :class:`~CrptApi.errors.RemoteRejected`
- ``httpx.RequestError`` -> :class:`~CrptApi.errors.TransportFailure`

The slot is released in a ``finally`` block, so it is returned even when
serialization raises. There are no retries here; a retry must go back through
the limiter to be counted.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Optional

import httpx

from CrptApi.errors import CrptApiError, RemoteRejected, TransportFailure
from CrptApi.models import SubmissionRequest
from CrptApi.ratelimit.limiter import FixedWindowRateLimiter, RateAcquisition
from CrptApi.settings import DEFAULT_ENDPOINT_URL

LOGGER = logging.getLogger(__name__)

SUCCESS_STATUS = 200
_BODY_SNIPPET_CHARS = 512


@dataclass(frozen=True)
class SubmissionResult:
    """Outcome of one submission: success, or a structured failure in ``error``."""

    doc_id: Optional[str]
    status_code: Optional[int] = None
    error: Optional[CrptApiError] = None
    elapsed_ms: int = 0
    admission_delay_ms: int = 0

    @property
    def ok(self) -> bool:
        return self.error is None

    def raise_for_error(self) -> "SubmissionResult":
        """Raise the captured error, if any; return ``self`` otherwise."""
        if self.error is not None:
            raise self.error
        return self


class SubmissionPipeline:
    """Sends admitted submission requests to the registration endpoint."""

    def __init__(
        self,
        http_client: httpx.Client,
        limiter: FixedWindowRateLimiter,
        *,
        endpoint_url: str = DEFAULT_ENDPOINT_URL,
    ) -> None:
        self._http = http_client
        self._limiter = limiter
        self._url = endpoint_url

    @property
    def endpoint_url(self) -> str:
        return self._url

    def send(self, request: SubmissionRequest, acquisition: RateAcquisition) -> SubmissionResult:
        """POST ``request`` using the slot held by ``acquisition``.

        Raises:
            ValueError: If the payload cannot be built. The slot is still
                released.
        """
        started = time.perf_counter()
        try:
            body = request.body
            try:
                response = self._http.post(
                    self._url,
                    content=body,
                    headers={"Content-Type": "application/json"},
                )
            except httpx.RequestError as exc:
                error = TransportFailure(
                    f"POST {self._url} failed: {exc.__class__.__name__}: {exc}",
                    url=self._url,
                    cause=exc,
                )
                LOGGER.debug(
                    "Submission transport failure",
                    extra={"extra_fields": {"doc_id": request.doc_id, "error": str(exc)}},
                )
                return self._result(request, acquisition, started, error=error)

            status = response.status_code
            if status != SUCCESS_STATUS:
                error = RemoteRejected(
                    status,
                    url=self._url,
                    body=response.text[:_BODY_SNIPPET_CHARS],
                )
                return self._result(request, acquisition, started, status=status, error=error)
            return self._result(request, acquisition, started, status=status)
        finally:
            self._limiter.release(acquisition)

    @staticmethod
    def _result(
        request: SubmissionRequest,
        acquisition: RateAcquisition,
        started: float,
        *,
        status: Optional[int] = None,
        error: Optional[CrptApiError] = None,
    ) -> SubmissionResult:
        return SubmissionResult(
            doc_id=request.doc_id,
            status_code=status,
            error=error,
            elapsed_ms=int((time.perf_counter() - started) * 1000),
            admission_delay_ms=acquisition.delay_ms,
        )


__all__ = ["SubmissionPipeline", "SubmissionResult", "SUCCESS_STATUS"]
