"""
HTTPX client factory for the registration endpoint.

The client carries:
- Explicit timeouts and pool limits from :class:`CrptApiSettings`
- JSON defaults and a stable User-Agent
- No transport-level retries (a retried POST would bypass the admission limiter)
- Request/response event hooks emitting ``net.request`` debug records
"""

from __future__ import annotations

import logging
import os
import time
from typing import Optional

import httpx

from CrptApi.settings import CrptApiSettings

logger = logging.getLogger(__name__)


# ============================================================================
# Client Construction
# ============================================================================


def build_http_client(
    settings: CrptApiSettings,
    *,
    transport: Optional[httpx.BaseTransport] = None,
) -> httpx.Client:
    """Build an ``httpx.Client`` configured from ``settings``.

    Args:
        settings: Transport settings.
        transport: Override the network transport (``httpx.MockTransport`` in
            tests).
    """
    timeout = httpx.Timeout(
        settings.timeout_connect_s,
        read=settings.timeout_read_s,
        write=settings.timeout_write_s,
        pool=settings.timeout_pool_s,
    )
    limits = httpx.Limits(
        max_connections=settings.max_connections,
        max_keepalive_connections=settings.max_keepalive_connections,
    )
    if transport is None:
        transport = httpx.HTTPTransport(
            retries=0,
            verify=settings.verify_tls,
            http2=settings.http2,
            limits=limits,
            trust_env=settings.trust_env,
        )

    client = httpx.Client(
        transport=transport,
        timeout=timeout,
        trust_env=settings.trust_env,
        headers={
            "User-Agent": settings.user_agent,
            "Accept": "application/json",
        },
        follow_redirects=False,
        event_hooks={"request": [_on_request], "response": [_on_response]},
    )
    logger.debug(
        "HTTPX client created",
        extra={"extra_fields": {"http2": settings.http2, "verify_tls": settings.verify_tls}},
    )
    return client


# ============================================================================
# Event Hooks (Telemetry)
# ============================================================================


def _on_request(request: httpx.Request) -> None:
    """Hook: capture request start time and id."""
    request.extensions["t0_perf"] = time.perf_counter()
    request.extensions["request_id"] = os.urandom(8).hex()


def _on_response(response: httpx.Response) -> None:
    """Hook: emit a net.request record."""
    req = response.request
    t0 = req.extensions.get("t0_perf", time.perf_counter())
    elapsed_ms = (time.perf_counter() - t0) * 1000.0
    logger.debug(
        "net.request",
        extra={
            "extra_fields": {
                "method": req.method,
                "url": str(req.url),
                "status": response.status_code,
                "elapsed_ms": round(elapsed_ms, 2),
                "http_version": response.http_version,
                "request_id": req.extensions.get("request_id"),
            }
        },
    )
