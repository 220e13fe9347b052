"""Client settings loaded from keyword arguments and ``CRPT_API_*`` variables.

Only transport and reporting knobs live here. The admission quota (window and
capacity) is always passed explicitly to :class:`CrptApi.client.CrptApiClient`.

Example:
    >>> settings = load_settings(timeout_read_s=10.0)
    >>> settings.endpoint_url
    'https://ismp.crpt.ru/api/v3/lk/documents/create'
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Optional

from pydantic import Field, ValidationError, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from CrptApi.errors import InvalidConfiguration

DEFAULT_ENDPOINT_URL = "https://ismp.crpt.ru/api/v3/lk/documents/create"
DEFAULT_USER_AGENT = "CrptApi/0.1 (+python-httpx)"


class LogLevel(str, Enum):
    """Logging levels accepted by :func:`CrptApi.logging_utils.setup_logging`."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"


class CrptApiSettings(BaseSettings):
    """Transport and reporting configuration."""

    model_config = SettingsConfigDict(
        env_prefix="CRPT_API_",
        case_sensitive=False,
        extra="ignore",
        frozen=True,
    )

    endpoint_url: str = Field(DEFAULT_ENDPOINT_URL, description="Document creation URL")
    user_agent: str = Field(DEFAULT_USER_AGENT, description="User-Agent header")

    # Timeout settings
    timeout_connect_s: float = Field(5.0, gt=0, description="Connect timeout (seconds)")
    timeout_read_s: float = Field(30.0, gt=0, description="Read timeout (seconds)")
    timeout_write_s: float = Field(30.0, gt=0, description="Write timeout (seconds)")
    timeout_pool_s: float = Field(5.0, gt=0, description="Pool acquire timeout (seconds)")

    # Pool settings
    max_connections: int = Field(16, ge=1, description="Max connections")
    max_keepalive_connections: int = Field(8, ge=1, description="Max keepalive connections")

    verify_tls: bool = Field(True, description="Verify TLS certificates")
    http2: bool = Field(False, description="Enable HTTP/2 (requires the h2 package)")
    trust_env: bool = Field(True, description="Honor HTTP(S)_PROXY and NO_PROXY")

    acquire_timeout_s: Optional[float] = Field(
        None, ge=0, description="Default wait for an admission slot (None = wait forever)"
    )
    max_in_flight: Optional[int] = Field(
        None, ge=1, description="Cap on concurrently running submissions (None = no cap)"
    )
    log_level: LogLevel = Field(LogLevel.INFO, description="Logging level")

    @field_validator("endpoint_url")
    @classmethod
    def validate_endpoint_url(cls, v: str) -> str:
        if not v.startswith(("https://", "http://")):
            raise ValueError(f"endpoint_url must be an http(s) URL, got {v!r}")
        return v

    @model_validator(mode="after")
    def validate_pool_limits(self) -> "CrptApiSettings":
        if self.max_keepalive_connections > self.max_connections:
            raise ValueError("max_keepalive_connections must be <= max_connections")
        return self


def load_settings(**overrides: Any) -> CrptApiSettings:
    """Build settings from ``overrides`` layered over the environment.

    Raises:
        InvalidConfiguration: If any value fails validation.
    """
    try:
        return CrptApiSettings(**overrides)
    except ValidationError as exc:
        raise InvalidConfiguration(f"Invalid client settings: {exc}") from exc


__all__ = ["CrptApiSettings", "LogLevel", "load_settings", "DEFAULT_ENDPOINT_URL"]
