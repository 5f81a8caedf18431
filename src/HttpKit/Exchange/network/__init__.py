"""Network subsystem: the single-use HTTPX connection behind every exchange.

Modules:
- connection: lazy connection manager, streamed response body, transport override
- policy: wire constants (methods, content types, multipart boundary) and defaults
- instrumentation: HTTPX event hooks logging one record per sent request

Example:
    >>> from HttpKit.Exchange.network import ConnectionManager
    >>> from HttpKit.Exchange.settings import get_settings
    >>> manager = ConnectionManager(httpx.URL("https://example.org/"), "GET", get_settings())
    >>> manager.connection.response_code()
    200
"""

from HttpKit.Exchange.network.connection import (
    Connection,
    ConnectionManager,
    ResponseStream,
    configure_transport,
    create_ssl_context,
    get_configured_transport,
    reset_transport,
)
from HttpKit.Exchange.network.instrumentation import create_http_event_hooks, redact_url
from HttpKit.Exchange.network.policy import (
    BOUNDARY,
    CONTENT_TYPE_FORM,
    CONTENT_TYPE_JSON,
    CONTENT_TYPE_MULTIPART,
    DEFAULT_BUFFER_SIZE,
    SUPPORTED_METHODS,
)

__all__ = [
    # Connection lifecycle
    "Connection",
    "ConnectionManager",
    "ResponseStream",
    "create_ssl_context",
    # Transport override
    "configure_transport",
    "reset_transport",
    "get_configured_transport",
    # Instrumentation
    "create_http_event_hooks",
    "redact_url",
    # Wire constants
    "BOUNDARY",
    "CONTENT_TYPE_FORM",
    "CONTENT_TYPE_JSON",
    "CONTENT_TYPE_MULTIPART",
    "DEFAULT_BUFFER_SIZE",
    "SUPPORTED_METHODS",
]
