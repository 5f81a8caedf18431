# === NAVMAP v1 ===
# {
#   "module": "HttpKit.Exchange.request",
#   "purpose": "Fluent single-use HTTP exchange and its per-method factories",
#   "sections": [
#     {
#       "id": "httprequest",
#       "name": "HttpRequest",
#       "anchor": "class-httprequest",
#       "kind": "class"
#     },
#     {
#       "id": "get",
#       "name": "get",
#       "anchor": "function-get",
#       "kind": "function"
#     },
#     {
#       "id": "post",
#       "name": "post",
#       "anchor": "function-post",
#       "kind": "function"
#     },
#     {
#       "id": "put",
#       "name": "put",
#       "anchor": "function-put",
#       "kind": "function"
#     },
#     {
#       "id": "delete",
#       "name": "delete",
#       "anchor": "function-delete",
#       "kind": "function"
#     },
#     {
#       "id": "head",
#       "name": "head",
#       "anchor": "function-head",
#       "kind": "function"
#     },
#     {
#       "id": "options",
#       "name": "options",
#       "anchor": "function-options",
#       "kind": "function"
#     },
#     {
#       "id": "trace",
#       "name": "trace",
#       "anchor": "function-trace",
#       "kind": "function"
#     }
#   ]
# }
# === /NAVMAP ===

"""Fluent single-use HTTP exchange and its per-method factories.

An :class:`HttpRequest` is one connection, one request and one response.  It is
configured through chained setters, writes its body through an
:class:`~HttpKit.Exchange.output.OutputChannel`, and is finished by the first
status, header or body read.

Example:
    >>> from HttpKit.Exchange import post
    >>> with post("https://example.org/upload") as request:
    ...     request.part("title", "report").part("file", Path("report.pdf"), "report.pdf")
    ...     request.ok()
    True
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any, Optional

import httpx

from . import query
from .errors import ConfigurationError, MalformedURLError
from .headers import HeaderFacade
from .jsonbody import to_json_text
from .network.connection import Connection, ConnectionManager
from .network.policy import (
    CHARSET_UTF8,
    METHOD_DELETE,
    METHOD_GET,
    METHOD_HEAD,
    METHOD_OPTIONS,
    METHOD_POST,
    METHOD_PUT,
    METHOD_TRACE,
    SUPPORTED_METHODS,
)
from .output import BodyMode, ChannelState, OutputChannel, RequestWriter
from .response import ResponseReader
from .settings import ExchangeSettings, get_settings
from .transfer import ProgressCallback, TransferProgress

__all__ = [
    "HttpRequest",
    "get",
    "post",
    "put",
    "delete",
    "head",
    "options",
    "trace",
]

logger = logging.getLogger(__name__)


class HttpRequest(HeaderFacade, ResponseReader):
    """One HTTP exchange.

    Args:
        url: Absolute URL (``str`` or ``httpx.URL``).
        method: One of GET, POST, PUT, DELETE, HEAD, OPTIONS, TRACE.
        settings: Defaults for this exchange; copied, so later changes stay local.
            Defaults to :func:`~HttpKit.Exchange.settings.get_settings`.
        transport: HTTPX transport used instead of the network (tests).

    Raises:
        MalformedURLError: If ``url`` is not an absolute URL.
        ConfigurationError: If ``method`` is not supported.
    """

    encode = staticmethod(query.encode)
    append = staticmethod(query.append)

    def __init__(
        self,
        url: Any,
        method: str,
        *,
        settings: Optional[ExchangeSettings] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        if method not in SUPPORTED_METHODS:
            raise ConfigurationError(f"Unsupported request method: {method}")
        self.url = _parse_url(url)
        self.method = method
        self._settings = (settings or get_settings()).model_copy(deep=True)
        self._progress = TransferProgress()
        self._manager = ConnectionManager(self.url, method, self._settings, transport=transport)
        self._output = OutputChannel(self._manager, self._settings, self._progress)

    def __str__(self) -> str:
        return f"{self.method} {self.url}"

    def __repr__(self) -> str:
        return f"<HttpRequest [{self}]>"

    def __enter__(self) -> "HttpRequest":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.disconnect()

    # -- state --------------------------------------------------------------

    @property
    def settings(self) -> ExchangeSettings:
        """Settings of this exchange (fluent setters write here)."""

        return self._settings

    @property
    def transfer(self) -> TransferProgress:
        """Byte counters of the upload or download in progress."""

        return self._progress

    @property
    def body_mode(self) -> BodyMode:
        return self._output.mode

    @property
    def output_state(self) -> ChannelState:
        return self._output.state

    def get_connection(self) -> Connection:
        """Return the connection, creating it on first use."""

        return self._manager.connection

    def _finish_request(self) -> Connection:
        self._output.close()
        return self.get_connection()

    def disconnect(self) -> "HttpRequest":
        """Release the connection; an unfinished body is discarded."""

        self._output.abort()
        if self._manager.created:
            self.get_connection().disconnect()
        return self

    # -- exchange options ---------------------------------------------------

    def buffer_size(self, size: int) -> "HttpRequest":
        """Set the chunk size of the buffered copy loop.

        Raises:
            ConfigurationError: If ``size`` is below 1.
        """
        if size < 1:
            raise ConfigurationError("Size must be greater than zero")
        self._settings.buffer_size = size
        return self

    def ignore_close_errors(self, ignore: bool) -> "HttpRequest":
        self._settings.ignore_close_errors = ignore
        return self

    def uncompress(self, uncompress: bool) -> "HttpRequest":
        """Gunzip ``Content-Encoding: gzip`` response bodies when reading them."""

        self._settings.uncompress = uncompress
        return self

    def progress(self, callback: Optional[ProgressCallback]) -> "HttpRequest":
        """Report ``(transferred, total)`` after every copied chunk; ``None`` disables."""

        self._progress.set_callback(callback)
        return self

    # -- connection options -------------------------------------------------

    def read_timeout(self, seconds: Optional[float]) -> "HttpRequest":
        self.get_connection().read_timeout = seconds
        return self

    def connect_timeout(self, seconds: Optional[float]) -> "HttpRequest":
        self.get_connection().connect_timeout = seconds
        return self

    def chunk(self, size: int) -> "HttpRequest":
        """Stream the body with chunked transfer encoding in ``size`` pieces."""

        self.get_connection().set_chunked_streaming_mode(size)
        return self

    def fixed_length(self, length: int) -> "HttpRequest":
        """Stream the body with a ``Content-Length`` of ``length``."""

        self.get_connection().set_fixed_length_streaming_mode(length)
        return self

    def follow_redirects(self, follow: bool) -> "HttpRequest":
        self.get_connection().follow_redirects = follow
        return self

    def trust_all_certs(self) -> "HttpRequest":
        """Accept any HTTPS certificate for this exchange only."""

        self.get_connection().trust_all_certificates()
        return self

    def trust_all_hosts(self) -> "HttpRequest":
        """Skip HTTPS host name verification for this exchange only."""

        self.get_connection().trust_all_hosts()
        return self

    def use_proxy(self, host: str, port: int) -> "HttpRequest":
        """Route the exchange through an HTTP proxy.

        Raises:
            ConfigurationError: If the connection has already been created.
        """
        self._manager.use_proxy(host, port)
        return self

    # -- request body -------------------------------------------------------

    def send(self, value: Any) -> "HttpRequest":
        """Write ``value`` to the body verbatim (bytes, text, path or file object)."""

        self._output.send(value)
        return self

    def writer(self) -> RequestWriter:
        """Return a text writer for the body, encoding with the ``Content-Type`` charset."""

        return self._output.writer()

    def form(self, name: Any, value: Any = None, charset: Optional[str] = CHARSET_UTF8) -> "HttpRequest":
        """Write a URL-encoded form pair, or every pair of a mapping."""

        self._output.form(name, value, charset)
        return self

    def part(
        self,
        name: str,
        value: Any,
        filename: Optional[str] = None,
        content_type: Optional[str] = None,
        headers: Optional[Mapping[str, str]] = None,
    ) -> "HttpRequest":
        """Write one multipart/form-data part."""

        self._output.part(name, value, filename, content_type, headers)
        return self

    def part_header(self, name: str, value: str) -> "HttpRequest":
        self._output.part_header(name, value)
        return self

    def json(self, value: Any, charset: Optional[str] = CHARSET_UTF8) -> "HttpRequest":
        """Write ``value`` as the JSON body; ``str`` is sent verbatim."""

        self._output.json(value, charset)
        return self

    def graphql(
        self,
        query_text: str,
        variables: Any = None,
        operation_name: Optional[str] = None,
    ) -> "HttpRequest":
        """Send a GraphQL operation.

        GET requests carry ``query``, ``variables`` and ``operationName`` as URL
        parameters; POST requests carry them as a JSON body.

        Raises:
            ConfigurationError: For other methods, or for GET once the
                connection exists.
        """
        params = {"query": query_text}
        if variables is not None and not isinstance(variables, str):
            variables = to_json_text(variables)
        if variables and variables.strip():
            params["variables"] = variables
        if operation_name and operation_name.strip():
            params["operationName"] = operation_name

        if self.method == METHOD_GET:
            if self._manager.created:
                raise ConfigurationError("GraphQL parameters must be added before the connection is created")
            self.url = self.url.copy_merge_params(params)
            self._manager.url = self.url
        elif self.method == METHOD_POST:
            self.json(params)
        else:
            raise ConfigurationError(f"GraphQL is not supported with {self.method}")
        logger.debug(
            "graphql operation prepared",
            extra={"method": self.method, "operation": params.get("operationName")},
        )
        return self


def _parse_url(url: Any) -> httpx.URL:
    try:
        parsed = url if isinstance(url, httpx.URL) else httpx.URL(str(url))
    except (httpx.InvalidURL, TypeError, ValueError) as exc:
        raise MalformedURLError(url, str(exc)) from exc
    if not parsed.scheme or not parsed.host:
        raise MalformedURLError(url, "absolute URL with scheme and host required")
    return parsed


# ============================================================================
# Factories
# ============================================================================


def _create(method: str, url: Any, params: Any, encode: bool, kwargs: dict) -> HttpRequest:
    target = str(url)
    if params:
        target = query.append(target, params) if isinstance(params, Mapping) else query.append(target, *params)
    if encode:
        target = query.encode(target)
    return HttpRequest(target, method, **kwargs)


def get(url: Any, params: Any = None, encode: bool = False, **kwargs: Any) -> HttpRequest:
    """Start a GET exchange.

    Args:
        url: Base URL.
        params: Mapping, or flat ``name, value, ...`` sequence, appended to ``url``.
        encode: Run the final URL through :func:`~HttpKit.Exchange.query.encode`.
        **kwargs: ``settings`` and ``transport`` forwarded to :class:`HttpRequest`.
    """
    return _create(METHOD_GET, url, params, encode, kwargs)


def post(url: Any, params: Any = None, encode: bool = False, **kwargs: Any) -> HttpRequest:
    """Start a POST exchange (see :func:`get` for the arguments)."""

    return _create(METHOD_POST, url, params, encode, kwargs)


def put(url: Any, params: Any = None, encode: bool = False, **kwargs: Any) -> HttpRequest:
    """Start a PUT exchange (see :func:`get` for the arguments)."""

    return _create(METHOD_PUT, url, params, encode, kwargs)


def delete(url: Any, params: Any = None, encode: bool = False, **kwargs: Any) -> HttpRequest:
    """Start a DELETE exchange (see :func:`get` for the arguments)."""

    return _create(METHOD_DELETE, url, params, encode, kwargs)


def head(url: Any, params: Any = None, encode: bool = False, **kwargs: Any) -> HttpRequest:
    """Start a HEAD exchange (see :func:`get` for the arguments)."""

    return _create(METHOD_HEAD, url, params, encode, kwargs)


def options(url: Any, params: Any = None, encode: bool = False, **kwargs: Any) -> HttpRequest:
    """Start an OPTIONS exchange (see :func:`get` for the arguments)."""

    return _create(METHOD_OPTIONS, url, params, encode, kwargs)


def trace(url: Any, params: Any = None, encode: bool = False, **kwargs: Any) -> HttpRequest:
    """Start a TRACE exchange (see :func:`get` for the arguments)."""

    return _create(METHOD_TRACE, url, params, encode, kwargs)
