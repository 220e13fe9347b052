"""HTTP transport helpers for the registration endpoint."""

from CrptApi.net.client import build_http_client

__all__ = ["build_http_client"]
