"""Rate-limited client for the document creation endpoint.

Quick start::

    from datetime import timedelta
    from CrptApi import CrptApiClient, Document

    with CrptApiClient(timedelta(seconds=1), 5) as api:
        result = api.submit(Document(doc_id="D-1"), signature)
        result.raise_for_error()
"""

from CrptApi.cancellation import CancellationToken
from CrptApi.client import CrptApiClient
from CrptApi.errors import (
    AcquisitionCancelled,
    CrptApiError,
    InvalidConfiguration,
    QuotaExceeded,
    RemoteRejected,
    TransportFailure,
)
from CrptApi.models import Document, Participant, Product, SubmissionRequest
from CrptApi.pipeline import SubmissionPipeline, SubmissionResult
from CrptApi.ratelimit import (
    FixedWindowRateLimiter,
    RateAcquisition,
    RateSpec,
    TimeUnit,
    parse_rate_string,
)
from CrptApi.settings import CrptApiSettings, load_settings

__version__ = "0.1.0"

__all__ = [
    "CrptApiClient",
    "CrptApiSettings",
    "load_settings",
    "Document",
    "Participant",
    "Product",
    "SubmissionRequest",
    "SubmissionPipeline",
    "SubmissionResult",
    "FixedWindowRateLimiter",
    "RateAcquisition",
    "RateSpec",
    "TimeUnit",
    "parse_rate_string",
    "CancellationToken",
    "CrptApiError",
    "InvalidConfiguration",
    "QuotaExceeded",
    "AcquisitionCancelled",
    "TransportFailure",
    "RemoteRejected",
]
