# === NAVMAP v1 ===
# {
#   "module": "HttpKit.Exchange",
#   "purpose": "Package initialization for HttpKit.Exchange",
#   "sections": []
# }
# === /NAVMAP ===

"""Public API for single-use HTTP exchanges.

One :class:`HttpRequest` is one connection, one request and one response.  The
factories build an exchange per method, the fluent setters configure headers,
connection options and the request body, and the first status/header/body
read sends the request.

Example:
    >>> from HttpKit.Exchange import get
    >>> request = get("https://example.org/search", {"q": "python"}, encode=True)
    >>> request.accept_json().ok()
    True
    >>> request.body()
    '{"results": []}'
"""

from __future__ import annotations

from .download import resolve_download_path
from .errors import (
    ConfigurationError,
    ConnectError,
    HttpExchangeError,
    MalformedURLError,
    TransportError,
)
from .headers import HeaderFacade
from .jsonbody import to_json_text
from .network import configure_transport, reset_transport
from .output import BodyMode, ChannelState, OutputChannel
from .query import append, encode
from .request import HttpRequest, delete, get, head, options, post, put, trace
from .response import ResponseReader
from .settings import ExchangeSettings, TrustPolicy, get_settings, invalidate_settings_cache
from .transfer import ProgressCallback, TransferProgress

__version__ = "0.1.0"

__all__ = [
    "__version__",
    # Exchange
    "HttpRequest",
    "get",
    "post",
    "put",
    "delete",
    "head",
    "options",
    "trace",
    # Components
    "HeaderFacade",
    "ResponseReader",
    "OutputChannel",
    "BodyMode",
    "ChannelState",
    "TransferProgress",
    "ProgressCallback",
    # URL helpers
    "encode",
    "append",
    "to_json_text",
    "resolve_download_path",
    # Configuration
    "ExchangeSettings",
    "TrustPolicy",
    "get_settings",
    "invalidate_settings_cache",
    "configure_transport",
    "reset_transport",
    # Errors
    "HttpExchangeError",
    "ConfigurationError",
    "MalformedURLError",
    "TransportError",
    "ConnectError",
]
