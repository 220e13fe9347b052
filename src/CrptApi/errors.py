# === NAVMAP v1 ===
# {
#   "module": "CrptApi.errors",
#   "purpose": "Error taxonomy and result reporting for document submissions.",
#   "sections": [
#     {
#       "id": "crptapierror",
#       "name": "CrptApiError",
#       "anchor": "class-crptapierror",
#       "kind": "class"
#     },
#     {
#       "id": "invalidconfiguration",
#       "name": "InvalidConfiguration",
#       "anchor": "class-invalidconfiguration",
#       "kind": "class"
#     },
#     {
#       "id": "quotaexceeded",
#       "name": "QuotaExceeded",
#       "anchor": "class-quotaexceeded",
#       "kind": "class"
#     },
#     {
#       "id": "acquisitioncancelled",
#       "name": "AcquisitionCancelled",
#       "anchor": "class-acquisitioncancelled",
#       "kind": "class"
#     },
#     {
#       "id": "transportfailure",
#       "name": "TransportFailure",
#       "anchor": "class-transportfailure",
#       "kind": "class"
#     },
#     {
#       "id": "remoterejected",
#       "name": "RemoteRejected",
#       "anchor": "class-remoterejected",
#       "kind": "class"
#     },
#     {
#       "id": "get-actionable-error-message",
#       "name": "get_actionable_error_message",
#       "anchor": "function-get-actionable-error-message",
#       "kind": "function"
#     },
#     {
#       "id": "log-submission-result",
#       "name": "log_submission_result",
#       "anchor": "function-log-submission-result",
#       "kind": "function"
#     }
#   ]
# }
# === /NAVMAP ===

"""Error taxonomy and reporting helpers for document submissions.

Responsibilities
----------------
- Group submission failures into a small hierarchy rooted at
  :class:`CrptApiError` so callers can react to categories (configuration,
  quota, transport, remote rejection) without inspecting messages.
- Keep enough metadata on each exception (status code, url, waited time) for
  logs and caller retry policies.
- Translate outcomes into console-friendly log records through
  :func:`log_submission_result`. The submission pipeline itself never logs
  failures on the caller's behalf; reporting is opt-in.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Optional

if TYPE_CHECKING:  # pragma: no cover
    from CrptApi.pipeline import SubmissionResult

__all__ = (
    "CrptApiError",
    "InvalidConfiguration",
    "QuotaExceeded",
    "AcquisitionCancelled",
    "TransportFailure",
    "RemoteRejected",
    "get_actionable_error_message",
    "log_submission_result",
)

LOGGER = logging.getLogger(__name__)


class CrptApiError(RuntimeError):
    """Base exception for every failure raised or reported by the client."""

    retryable: bool = False


class InvalidConfiguration(CrptApiError, ValueError):
    """Raised when constructor arguments or settings are invalid."""


class QuotaExceeded(CrptApiError):
    """Raised when no admission slot became free within the caller's timeout."""

    retryable = True

    def __init__(
        self,
        message: str,
        *,
        waited_ms: int = 0,
        timeout_s: Optional[float] = None,
    ) -> None:
        super().__init__(message)
        self.waited_ms = waited_ms
        self.timeout_s = timeout_s


class AcquisitionCancelled(QuotaExceeded):
    """Raised when a waiting caller was cancelled before it was admitted."""

    retryable = False


class TransportFailure(CrptApiError):
    """Raised when the POST failed before any HTTP response was received."""

    retryable = True

    def __init__(
        self,
        message: str,
        *,
        url: Optional[str] = None,
        cause: Optional[BaseException] = None,
    ) -> None:
        super().__init__(message)
        self.url = url
        self.cause = cause


class RemoteRejected(CrptApiError):
    """Raised when the endpoint answered with a status other than 200."""

    def __init__(
        self,
        status_code: int,
        *,
        url: Optional[str] = None,
        body: str = "",
    ) -> None:
        super().__init__(f"Failed to create doc. Http status: {status_code}")
        self.status_code = status_code
        self.url = url
        self.body = body

    @property
    def retryable(self) -> bool:  # type: ignore[override]
        return self.status_code == 429 or self.status_code >= 500

    def __repr__(self) -> str:
        return f"RemoteRejected({self.status_code})"


def get_actionable_error_message(error: CrptApiError) -> tuple[str, Optional[str]]:
    """Return ``(message, suggestion)`` describing ``error`` for humans.

    Examples:
        >>> msg, hint = get_actionable_error_message(RemoteRejected(401))
        >>> msg
        'Authentication required (HTTP 401)'
    """

    if isinstance(error, AcquisitionCancelled):
        return ("Submission cancelled while waiting for a slot", None)
    if isinstance(error, QuotaExceeded):
        return (
            "Retry later. Request limit exceeded.",
            "Increase the wait timeout or lower the submission rate",
        )
    if isinstance(error, TransportFailure):
        return (
            f"Network failure: {error}",
            "Check connectivity to the registration endpoint and TLS settings",
        )
    if isinstance(error, RemoteRejected):
        status = error.status_code
        if status == 401:
            return ("Authentication required (HTTP 401)", "Refresh the access token")
        if status == 403:
            return ("Access forbidden (HTTP 403)", "Check participant permissions")
        if status == 429:
            return (
                "Remote rate limit hit (HTTP 429)",
                "Lower the configured capacity for this window",
            )
        if status >= 500:
            return (
                f"Server error (HTTP {status})",
                "The registry is unavailable; retry after the window rolls over",
            )
        return (f"Failed to create doc. Http status: {status}", None)
    return (str(error), None)


def log_submission_result(
    result: "SubmissionResult",
    *,
    logger: Optional[logging.Logger] = None,
) -> None:
    """Report ``result`` on ``logger`` at INFO (success) or ERROR (failure)."""

    log = logger or LOGGER
    extra: dict[str, Any] = {
        "extra_fields": {
            "doc_id": result.doc_id,
            "status_code": result.status_code,
            "elapsed_ms": result.elapsed_ms,
            "admission_delay_ms": result.admission_delay_ms,
        }
    }
    if result.ok:
        log.info("Doc created!", extra=extra)
        return

    assert result.error is not None
    message, suggestion = get_actionable_error_message(result.error)
    extra["extra_fields"]["error_type"] = type(result.error).__name__
    if suggestion:
        extra["extra_fields"]["suggestion"] = suggestion
    log.error(message, extra=extra)
