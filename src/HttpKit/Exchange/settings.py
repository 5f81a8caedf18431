# === NAVMAP v1 ===
# {
#   "module": "HttpKit.Exchange.settings",
#   "purpose": "Configuration models and environment overrides for HTTP exchanges",
#   "sections": [
#     {
#       "id": "trustpolicy",
#       "name": "TrustPolicy",
#       "anchor": "class-trustpolicy",
#       "kind": "class"
#     },
#     {
#       "id": "exchangesettings",
#       "name": "ExchangeSettings",
#       "anchor": "class-exchangesettings",
#       "kind": "class"
#     },
#     {
#       "id": "get-settings",
#       "name": "get_settings",
#       "anchor": "function-get-settings",
#       "kind": "function"
#     },
#     {
#       "id": "invalidate-settings-cache",
#       "name": "invalidate_settings_cache",
#       "anchor": "function-invalidate-settings-cache",
#       "kind": "function"
#     }
#   ]
# }
# === /NAVMAP ===

"""Configuration models and environment overrides for HTTP exchanges.

Every exchange starts from an :class:`ExchangeSettings` snapshot.  The default
snapshot is read once from ``HTTPKIT_*`` environment variables and cached for
the process; fluent setters on an exchange only ever touch that exchange's own
copy.  TLS trust is modelled explicitly by :class:`TrustPolicy` and travels with
the settings instead of living in shared mutable module state.

Example:
    >>> import os
    >>> os.environ["HTTPKIT_BUFFER_SIZE"] = "4096"
    >>> invalidate_settings_cache()
    >>> get_settings().buffer_size
    4096
"""

from __future__ import annotations

import logging
import threading
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .network.policy import (
    CHARSET_UTF8,
    DEFAULT_BUFFER_SIZE,
    FOLLOW_REDIRECTS,
    HTTP_CONNECT_TIMEOUT,
    HTTP_READ_TIMEOUT,
)

__all__ = [
    "TrustPolicy",
    "ExchangeSettings",
    "get_settings",
    "invalidate_settings_cache",
]

logger = logging.getLogger(__name__)


class TrustPolicy(BaseModel):
    """TLS verification switches applied when the connection builds its SSL context."""

    verify_certificates: bool = Field(
        default=True,
        description="When false, any server certificate chain is accepted.",
    )
    verify_hostname: bool = Field(
        default=True,
        description="When false, the certificate host name is not matched against the URL.",
    )

    model_config = ConfigDict(frozen=True)

    @property
    def is_default(self) -> bool:
        """Return ``True`` when both certificate and host name checks are enabled."""

        return self.verify_certificates and self.verify_hostname


class ExchangeSettings(BaseSettings):
    """Defaults copied into every new exchange.

    Attributes:
        buffer_size: Chunk size of the buffered copy loop used for uploads and downloads.
        ignore_close_errors: Suppress failures raised while closing streams.
        uncompress: Transparently gunzip ``Content-Encoding: gzip`` bodies.
        follow_redirects: Follow 3xx responses.
        connect_timeout: Seconds to wait for the TCP/TLS handshake (``None`` blocks).
        read_timeout: Seconds to wait between received bytes (``None`` blocks).
        proxy_host: HTTP proxy host used for new connections.
        proxy_port: HTTP proxy port used with ``proxy_host``.
        trust: TLS verification policy.
        user_agent: ``User-Agent`` sent when the caller does not set one.
        default_charset: Charset used when a body or response declares none.
    """

    buffer_size: int = Field(default=DEFAULT_BUFFER_SIZE, gt=0)
    ignore_close_errors: bool = Field(default=True)
    uncompress: bool = Field(default=False)
    follow_redirects: bool = Field(default=FOLLOW_REDIRECTS)
    connect_timeout: Optional[float] = Field(default=HTTP_CONNECT_TIMEOUT, gt=0.0)
    read_timeout: Optional[float] = Field(default=HTTP_READ_TIMEOUT, gt=0.0)
    proxy_host: Optional[str] = Field(default=None)
    proxy_port: Optional[int] = Field(default=None, ge=1, le=65535)
    trust: TrustPolicy = Field(default_factory=TrustPolicy)
    user_agent: Optional[str] = Field(default=None)
    default_charset: str = Field(default=CHARSET_UTF8, min_length=1)

    model_config = SettingsConfigDict(
        env_prefix="HTTPKIT_",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
        validate_assignment=True,
    )

    @field_validator("default_charset")
    @classmethod
    def validate_charset(cls, value: str) -> str:
        """Reject charsets Python has no codec for.

        Args:
            value: Charset name supplied via keyword or environment.

        Returns:
            The charset name unchanged.

        Raises:
            ValueError: If no codec is registered for ``value``.
        """
        import codecs

        try:
            codecs.lookup(value)
        except LookupError as exc:
            raise ValueError(f"Unknown charset: {value}") from exc
        return value

    @model_validator(mode="after")
    def validate_proxy(self) -> "ExchangeSettings":
        """Require a port whenever a proxy host is configured."""

        if self.proxy_host and self.proxy_port is None:
            raise ValueError("proxy_port is required when proxy_host is set")
        return self

    @property
    def proxy_url(self) -> Optional[str]:
        """Return the configured proxy as an ``http://host:port`` URL, if any."""

        if not self.proxy_host:
            return None
        return f"http://{self.proxy_host}:{self.proxy_port}"


_SETTINGS_CACHE: Optional[ExchangeSettings] = None
_SETTINGS_LOCK = threading.Lock()


def get_settings() -> ExchangeSettings:
    """Return the process-wide default settings, reading the environment once."""

    global _SETTINGS_CACHE  # noqa: PLW0603

    with _SETTINGS_LOCK:
        if _SETTINGS_CACHE is None:
            _SETTINGS_CACHE = ExchangeSettings()
            logger.debug(
                "exchange settings loaded",
                extra={
                    "buffer_size": _SETTINGS_CACHE.buffer_size,
                    "proxy": _SETTINGS_CACHE.proxy_url,
                    "trust_default": _SETTINGS_CACHE.trust.is_default,
                },
            )
        return _SETTINGS_CACHE


def invalidate_settings_cache() -> None:
    """Invalidate the cached default settings."""

    global _SETTINGS_CACHE  # noqa: PLW0603

    with _SETTINGS_LOCK:
        _SETTINGS_CACHE = None
