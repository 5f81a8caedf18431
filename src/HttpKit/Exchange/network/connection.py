# === NAVMAP v1 ===
# {
#   "module": "HttpKit.Exchange.network.connection",
#   "purpose": "Single-use HTTPX connection and its lazy per-exchange manager.",
#   "sections": [
#     {
#       "id": "configure-transport",
#       "name": "configure_transport",
#       "anchor": "function-configure-transport",
#       "kind": "function"
#     },
#     {
#       "id": "reset-transport",
#       "name": "reset_transport",
#       "anchor": "function-reset-transport",
#       "kind": "function"
#     },
#     {
#       "id": "create-ssl-context",
#       "name": "create_ssl_context",
#       "anchor": "function-create-ssl-context",
#       "kind": "function"
#     },
#     {
#       "id": "responsestream",
#       "name": "ResponseStream",
#       "anchor": "class-responsestream",
#       "kind": "class"
#     },
#     {
#       "id": "connection",
#       "name": "Connection",
#       "anchor": "class-connection",
#       "kind": "class"
#     },
#     {
#       "id": "connectionmanager",
#       "name": "ConnectionManager",
#       "anchor": "class-connectionmanager",
#       "kind": "class"
#     }
#   ]
# }
# === /NAVMAP ===

"""Single-use HTTPX connection and its lazy per-exchange manager.

A :class:`Connection` is one request and one response.  Request headers and the
request body are collected first (the body is spooled so it can be written
incrementally), and nothing touches the network until the status, a header or
the body of the response is requested.  At that point an ``httpx.Client`` is
built for this connection only, the request is sent with a streamed response,
and the client is closed again by :meth:`Connection.disconnect`.

Key design:
- **Lazy**: :class:`ConnectionManager` creates the connection on first use and
  never recreates it.
- **Explicit trust**: each connection owns its ``ssl.SSLContext`` built from a
  :class:`~HttpKit.Exchange.settings.TrustPolicy`; trust overrides mutate that
  context only.
- **Swappable transport**: tests install an ``httpx.MockTransport`` via
  :func:`configure_transport` (or pass one per exchange).

Example:
    >>> manager = ConnectionManager(httpx.URL("https://example.org/"), "GET", get_settings())
    >>> manager.connection.response_code()
    200
"""

from __future__ import annotations

import io
import logging
import ssl
import tempfile
import threading
from typing import TYPE_CHECKING, Dict, Iterator, List, Optional

import certifi
import httpx

from ..errors import ConfigurationError, ConnectError, TransportError
from .instrumentation import create_http_event_hooks, redact_url
from .policy import DEFAULT_BUFFER_SIZE, METHOD_HEAD, SPOOL_MAX_MEMORY

if TYPE_CHECKING:  # pragma: no cover - settings imports network.policy at load time
    from ..settings import ExchangeSettings, TrustPolicy

logger = logging.getLogger(__name__)


# ============================================================================
# Process-wide Transport Override
# ============================================================================

_TRANSPORT: Optional[httpx.BaseTransport] = None
_TRANSPORT_LOCK = threading.Lock()


def configure_transport(transport: Optional[httpx.BaseTransport]) -> None:
    """Route every connection created afterwards through ``transport``.

    Passing ``None`` restores the default network transport.
    """
    global _TRANSPORT

    with _TRANSPORT_LOCK:
        _TRANSPORT = transport
    logger.debug(
        "exchange transport configured",
        extra={"transport": type(transport).__name__ if transport is not None else None},
    )


def reset_transport() -> None:
    """Restore the default network transport (primarily for tests)."""

    configure_transport(None)


def get_configured_transport() -> Optional[httpx.BaseTransport]:
    """Return the transport installed by :func:`configure_transport`, if any."""

    with _TRANSPORT_LOCK:
        return _TRANSPORT


def create_ssl_context(trust: TrustPolicy) -> ssl.SSLContext:
    """Create the SSL context for one connection.

    Uses the certifi bundle and enforces certificate and host name checks unless
    ``trust`` disables them.

    Returns:
        Configured ssl.SSLContext for use with HTTPX
    """
    ctx = ssl.create_default_context(cafile=certifi.where())
    if not trust.verify_hostname or not trust.verify_certificates:
        ctx.check_hostname = False
    if not trust.verify_certificates:
        ctx.verify_mode = ssl.CERT_NONE
    return ctx


# ============================================================================
# Streams
# ============================================================================


class _SpooledBody:
    """Re-iterable request content over the spooled body (redirects may replay it)."""

    def __init__(self, spool: tempfile.SpooledTemporaryFile, chunk_size: int) -> None:
        self._spool = spool
        self._chunk_size = chunk_size

    def __iter__(self):
        self._spool.seek(0)
        while True:
            chunk = self._spool.read(self._chunk_size)
            if not chunk:
                break
            yield chunk


class _BodySink:
    """Write-only view of the spool handed to the output channel.

    Closing the sink ends the body; the spool itself lives until disconnect.
    """

    def __init__(self, spool: tempfile.SpooledTemporaryFile) -> None:
        self._spool = spool
        self.closed = False

    def write(self, data: bytes) -> int:
        if self.closed:
            raise ValueError("write to closed request body")
        return self._spool.write(data)

    def flush(self) -> None:
        self._spool.flush()

    def close(self) -> None:
        self.closed = True


class ResponseStream(io.RawIOBase):
    """Raw (still content-encoded) response body exposed as a binary file object."""

    def __init__(self, response: httpx.Response) -> None:
        super().__init__()
        self._response = response
        self._chunks = None
        self._pending = b""

    def readable(self) -> bool:
        return True

    def readinto(self, buffer) -> int:
        if self.closed:
            raise ValueError("I/O operation on closed response stream")
        while not self._pending:
            try:
                if self._chunks is None:
                    self._chunks = self._open_chunks()
                self._pending = next(self._chunks)
            except StopIteration:
                return 0
            except (httpx.HTTPError, httpx.StreamError) as exc:
                raise TransportError(f"Reading response body failed: {exc}") from exc
        size = min(len(buffer), len(self._pending))
        buffer[:size] = self._pending[:size]
        self._pending = self._pending[size:]
        return size

    def _open_chunks(self) -> Iterator[bytes]:
        if self._response.is_stream_consumed:
            # body loaded when the response was built (``httpx.Response(content=...)``)
            return iter([self._response.content])
        return self._response.iter_raw()

    def close(self) -> None:
        if not self.closed:
            try:
                self._response.close()
            finally:
                super().close()


# ============================================================================
# Connection
# ============================================================================


class Connection:
    """One HTTP request/response pair bound to a URL and method.

    Attributes:
        url: Target URL.
        method: Request method.
        proxy: ``http://host:port`` proxy URL or ``None``.
        connect_timeout: Connect timeout in seconds (``None`` blocks).
        read_timeout: Read timeout in seconds (``None`` blocks).
        follow_redirects: Follow 3xx responses.
        do_output: Whether a request body will be written.
        ssl_context: Context used for HTTPS; trust overrides mutate it in place.
    """

    def __init__(
        self,
        url: httpx.URL,
        method: str,
        *,
        settings: ExchangeSettings,
        proxy: Optional[str] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.url = url
        self.method = method
        self.proxy = proxy
        self.transport = transport
        self.connect_timeout = settings.connect_timeout
        self.read_timeout = settings.read_timeout
        self.follow_redirects = settings.follow_redirects
        self.do_output = False
        self.ssl_context = create_ssl_context(settings.trust)
        self._chunk_size: Optional[int] = None
        self._fixed_length: Optional[int] = None
        self._request_headers = httpx.Headers()
        if settings.user_agent:
            self._request_headers["User-Agent"] = settings.user_agent
        self._spool: Optional[tempfile.SpooledTemporaryFile] = None
        self._client: Optional[httpx.Client] = None
        self._response: Optional[httpx.Response] = None
        self._stream: Optional[ResponseStream] = None
        self._released = False

    def __repr__(self) -> str:
        return f"<Connection [{self.method} {redact_url(str(self.url))}]>"

    @property
    def connected(self) -> bool:
        """Return ``True`` once the request has been sent."""

        return self._response is not None

    # -- request side -----------------------------------------------------

    def set_request_property(self, name: str, value: Optional[str]) -> None:
        """Set (or with ``None`` remove) a request header."""

        self._ensure_not_connected("set request header")
        if value is None:
            self._request_headers.pop(name, None)
        else:
            self._request_headers[name] = value

    def get_request_property(self, name: str) -> Optional[str]:
        """Return the current value of a request header."""

        return self._request_headers.get(name)

    def request_properties(self) -> Dict[str, str]:
        """Return a copy of the request headers."""

        return dict(self._request_headers.items())

    def set_chunked_streaming_mode(self, chunk_size: int) -> None:
        """Send the body with ``Transfer-Encoding: chunked`` in ``chunk_size`` pieces."""

        self._ensure_not_connected("enable chunked streaming")
        if self._fixed_length is not None:
            raise ConfigurationError("Fixed length streaming mode already set")
        self._chunk_size = chunk_size if chunk_size > 0 else DEFAULT_BUFFER_SIZE

    def set_fixed_length_streaming_mode(self, content_length: int) -> None:
        """Announce ``content_length`` up front instead of measuring the body."""

        self._ensure_not_connected("set fixed length streaming")
        if self._chunk_size is not None:
            raise ConfigurationError("Chunked encoding streaming mode already set")
        if content_length < 0:
            raise ConfigurationError("Invalid content length")
        self._fixed_length = content_length

    def trust_all_certificates(self) -> None:
        """Accept any certificate chain presented by the server."""

        self._ensure_not_connected("change TLS trust")
        self.ssl_context.check_hostname = False
        self.ssl_context.verify_mode = ssl.CERT_NONE
        logger.warning(
            "TLS certificate verification disabled",
            extra={"url": redact_url(str(self.url))},
        )

    def trust_all_hosts(self) -> None:
        """Accept certificates whose host name does not match the URL."""

        self._ensure_not_connected("change TLS trust")
        self.ssl_context.check_hostname = False
        logger.warning(
            "TLS host name verification disabled",
            extra={"url": redact_url(str(self.url))},
        )

    def get_output_stream(self) -> _BodySink:
        """Return the sink the request body is written to."""

        if not self.do_output:
            raise ConfigurationError("Output not enabled on this connection")
        if self.connected:
            raise TransportError("Cannot write output after reading input")
        if self._spool is None:
            self._spool = tempfile.SpooledTemporaryFile(max_size=SPOOL_MAX_MEMORY)
        return _BodySink(self._spool)

    # -- sending ------------------------------------------------------------

    def connect(self) -> httpx.Response:
        """Send the request if needed and return the streamed response."""

        if self._response is not None:
            return self._response

        request = self._build_request()
        try:
            self._client = self._build_client()
            self._response = self._client.send(
                request,
                stream=True,
                follow_redirects=self.follow_redirects,
            )
        except httpx.HTTPError as exc:
            self._close_client()
            raise TransportError(f"{self.method} {redact_url(str(self.url))} failed: {exc}") from exc

        logger.debug(
            "exchange response received",
            extra={
                "method": self.method,
                "url": redact_url(str(self.url)),
                "status": self._response.status_code,
            },
        )
        return self._response

    def _build_request(self) -> httpx.Request:
        headers = httpx.Headers(self._request_headers)
        content = None
        if self._spool is not None:
            self._spool.seek(0, io.SEEK_END)
            size = self._spool.tell()
            if self._fixed_length is not None:
                headers["Content-Length"] = str(self._fixed_length)
            elif self._chunk_size is not None:
                headers["Transfer-Encoding"] = "chunked"
            else:
                headers["Content-Length"] = str(size)
            content = _SpooledBody(self._spool, self._chunk_size or DEFAULT_BUFFER_SIZE)
        elif self._fixed_length is not None:
            headers["Content-Length"] = str(self._fixed_length)
        return httpx.Request(self.method, self.url, headers=headers, content=content)

    def _build_client(self) -> httpx.Client:
        transport = self.transport or get_configured_transport()
        return httpx.Client(
            transport=transport,
            proxy=self.proxy,
            verify=self.ssl_context,
            timeout=httpx.Timeout(None, connect=self.connect_timeout, read=self.read_timeout),
            follow_redirects=self.follow_redirects,
            event_hooks=create_http_event_hooks(),
        )

    # -- response side ------------------------------------------------------

    def response_code(self) -> int:
        return self.connect().status_code

    def response_message(self) -> str:
        return self.connect().reason_phrase

    def header_field(self, name: str) -> Optional[str]:
        """Return the (comma-joined) value of response header ``name``."""

        return self.connect().headers.get(name)

    def header_values(self, name: str) -> List[str]:
        """Return every value of response header ``name`` in server order."""

        return self.connect().headers.get_list(name)

    def header_fields(self) -> Dict[str, List[str]]:
        """Return all response headers as lower-cased name -> values."""

        fields: Dict[str, List[str]] = {}
        for key, value in self.connect().headers.multi_items():
            fields.setdefault(key, []).append(value)
        return fields

    def input_stream(self) -> ResponseStream:
        """Return the body of a successful response.

        Raises:
            TransportError: If the status is 400 or above, or the body was already
                consumed or released.
        """
        response = self.connect()
        if response.status_code >= 400:
            raise TransportError(
                f"Server returned HTTP response code: {response.status_code} "
                f"for URL: {redact_url(str(self.url))}"
            )
        return self._body_stream(response)

    def error_stream(self) -> Optional[ResponseStream]:
        """Return the body of an error response, or ``None`` when none is available.

        Raises:
            TransportError: If the body was already consumed or released.
        """

        response = self.connect()
        if response.status_code < 400:
            return None
        if self.method == METHOD_HEAD or response.headers.get("Content-Length") == "0":
            return None
        return self._body_stream(response)

    def _body_stream(self, response: httpx.Response) -> ResponseStream:
        if self._released:
            raise TransportError("Response body already released")
        if self._stream is not None and self._stream.closed:
            raise TransportError("Response body already consumed")
        if self._stream is None:
            self._stream = ResponseStream(response)
        return self._stream

    # -- teardown -----------------------------------------------------------

    def disconnect(self) -> None:
        """Release the response, the client and the spooled body."""

        self._released = True
        if self._stream is not None:
            self._stream.close()
        elif self._response is not None:
            self._response.close()
        self._close_client()
        if self._spool is not None:
            self._spool.close()
            self._spool = None
        logger.debug("exchange disconnected", extra={"method": self.method, "url": redact_url(str(self.url))})

    def _close_client(self) -> None:
        if self._client is not None:
            try:
                self._client.close()
            finally:
                self._client = None

    def _ensure_not_connected(self, action: str) -> None:
        if self.connected:
            raise ConfigurationError(f"Cannot {action}: request already sent")


# ============================================================================
# Manager
# ============================================================================


class ConnectionManager:
    """Create the exchange's connection on first use and hand out the same one afterwards."""

    def __init__(
        self,
        url: httpx.URL,
        method: str,
        settings: ExchangeSettings,
        *,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.url = url
        self.method = method
        self._settings = settings
        self._transport = transport
        self._proxy = settings.proxy_url
        self._connection: Optional[Connection] = None

    @property
    def created(self) -> bool:
        """Return ``True`` once the connection exists."""

        return self._connection is not None

    @property
    def proxy(self) -> Optional[str]:
        return self._proxy

    @property
    def connection(self) -> Connection:
        """Return the connection, creating it on first access.

        Raises:
            ConnectError: If the connection cannot be created.
        """
        if self._connection is None:
            self._connection = self._create_connection()
        return self._connection

    def use_proxy(self, host: str, port: int) -> None:
        """Send the request through the HTTP proxy ``host:port``.

        Raises:
            ConfigurationError: If the connection has already been created.
        """
        if self._connection is not None:
            raise ConfigurationError(
                "The connection has already been created. This method must be called "
                "before reading or writing to the request."
            )
        self._proxy = f"http://{host}:{port}"

    def _create_connection(self) -> Connection:
        try:
            connection = Connection(
                self.url,
                self.method,
                settings=self._settings,
                proxy=self._proxy,
                transport=self._transport,
            )
        except (OSError, ValueError) as exc:
            raise ConnectError(f"Cannot open connection to {redact_url(str(self.url))}: {exc}") from exc
        logger.debug(
            "exchange connection created",
            extra={
                "method": self.method,
                "url": redact_url(str(self.url)),
                "proxy": self._proxy,
                "connection_id": id(connection),
            },
        )
        return connection


__all__ = [
    "configure_transport",
    "reset_transport",
    "get_configured_transport",
    "create_ssl_context",
    "ResponseStream",
    "Connection",
    "ConnectionManager",
]
