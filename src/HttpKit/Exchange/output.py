# === NAVMAP v1 ===
# {
#   "module": "HttpKit.Exchange.output",
#   "purpose": "Request body state machine: raw, form, multipart and JSON writers",
#   "sections": [
#     {
#       "id": "bodymode",
#       "name": "BodyMode",
#       "anchor": "class-bodymode",
#       "kind": "class"
#     },
#     {
#       "id": "channelstate",
#       "name": "ChannelState",
#       "anchor": "class-channelstate",
#       "kind": "class"
#     },
#     {
#       "id": "requestoutputstream",
#       "name": "RequestOutputStream",
#       "anchor": "class-requestoutputstream",
#       "kind": "class"
#     },
#     {
#       "id": "outputchannel",
#       "name": "OutputChannel",
#       "anchor": "class-outputchannel",
#       "kind": "class"
#     }
#   ]
# }
# === /NAVMAP ===

"""Request body state machine: raw, form, multipart and JSON writers.

The channel moves ``UNOPENED -> OPENED -> CLOSED`` exactly once and commits to a
single :class:`BodyMode` on the first write.  Writes in another mode, or after
the channel closed, raise :class:`~HttpKit.Exchange.errors.ConfigurationError`
before anything reaches the wire.

Multipart framing uses the fixed boundary from
:data:`~HttpKit.Exchange.network.policy.BOUNDARY`::

    --00content0boundary00\\r\\n
    Content-Disposition: form-data; name="a"\\r\\n
    \\r\\n
    <content>\\r\\n
    --00content0boundary00--\\r\\n
"""

from __future__ import annotations

import codecs
import io
import logging
import os
from collections.abc import Mapping
from enum import Enum
from typing import TYPE_CHECKING, Any, Optional
from urllib.parse import quote_plus

from .errors import ConfigurationError
from .headers import HEADER_CONTENT_TYPE, get_param
from .jsonbody import to_json_text
from .network.policy import (
    BOUNDARY,
    CHARSET_UTF8,
    CONTENT_TYPE_FORM,
    CONTENT_TYPE_JSON,
    CONTENT_TYPE_MULTIPART,
    CRLF,
    PARAM_CHARSET,
)
from .query import stringify
from .transfer import TransferProgress, closing, copy_stream, copy_text, release, transport_errors

if TYPE_CHECKING:  # pragma: no cover - import for static analysis only
    from .network.connection import ConnectionManager
    from .settings import ExchangeSettings

__all__ = [
    "BodyMode",
    "ChannelState",
    "RequestOutputStream",
    "RequestWriter",
    "OutputChannel",
]

logger = logging.getLogger(__name__)


class BodyMode(str, Enum):
    """Wire encoding the request body committed to."""

    NONE = "none"
    RAW = "raw"
    FORM = "form"
    MULTIPART = "multipart"
    JSON = "json"


class ChannelState(str, Enum):
    """Lifecycle of the request body stream."""

    UNOPENED = "unopened"
    OPENED = "opened"
    CLOSED = "closed"


# ============================================================================
# Streams
# ============================================================================


class RequestOutputStream:
    """Buffered binary sink that also accepts text, encoded with ``charset``."""

    def __init__(self, sink: Any, charset: str, buffer_size: int) -> None:
        try:
            encoder = codecs.getincrementalencoder(charset)()
        except LookupError as exc:
            raise ConfigurationError(f"Unsupported request charset: {charset}") from exc
        self.charset = charset
        self.closed = False
        self._sink = sink
        self._encoder = encoder
        self._buffer = bytearray()
        self._buffer_size = buffer_size

    def write(self, data: Any) -> int:
        """Queue ``data`` (``str`` or bytes-like) and return its length."""

        if self.closed:
            raise ConfigurationError("Request body already closed")
        if isinstance(data, str):
            self._buffer += self._encoder.encode(data)
        else:
            self._buffer += data
        if len(self._buffer) >= self._buffer_size:
            self._drain()
        return len(data)

    def flush(self) -> None:
        self._drain()
        self._sink.flush()

    def close(self) -> None:
        if self.closed:
            return
        try:
            self._buffer += self._encoder.encode("", final=True)
            self.flush()
        finally:
            self.closed = True
            self._sink.close()

    def _drain(self) -> None:
        if self._buffer:
            self._sink.write(bytes(self._buffer))
            self._buffer.clear()


class RequestWriter(io.TextIOBase):
    """Text view of a raw request body.

    Closing the writer only flushes; the body is finished when the exchange
    reads its response.
    """

    def __init__(self, stream: RequestOutputStream) -> None:
        super().__init__()
        self._stream = stream

    @property
    def encoding(self) -> str:  # type: ignore[override]
        return self._stream.charset

    def writable(self) -> bool:
        return True

    def write(self, text: str) -> int:
        return self._stream.write(text)

    def flush(self) -> None:
        if not self._stream.closed:
            self._stream.flush()

    def close(self) -> None:
        if not self.closed:
            try:
                self.flush()
            finally:
                super().close()


# ============================================================================
# Channel
# ============================================================================


class OutputChannel:
    """Write the request body of one exchange in exactly one :class:`BodyMode`.

    Attributes:
        progress: Upload counters shared with the owning exchange.
    """

    def __init__(
        self,
        manager: ConnectionManager,
        settings: ExchangeSettings,
        progress: TransferProgress,
    ) -> None:
        self._manager = manager
        self._settings = settings
        self.progress = progress
        self._state = ChannelState.UNOPENED
        self._mode = BodyMode.NONE
        self._stream: Optional[RequestOutputStream] = None

    @property
    def state(self) -> ChannelState:
        return self._state

    @property
    def mode(self) -> BodyMode:
        return self._mode

    # -- lifecycle ----------------------------------------------------------

    def open(self) -> RequestOutputStream:
        """Open the body stream once, honouring the ``Content-Type`` charset."""

        if self._state is ChannelState.OPENED:
            return self._stream
        if self._state is ChannelState.CLOSED:
            raise ConfigurationError("Request body already closed")

        connection = self._manager.connection
        connection.do_output = True
        charset = get_param(connection.get_request_property(HEADER_CONTENT_TYPE), PARAM_CHARSET)
        self._stream = RequestOutputStream(
            connection.get_output_stream(),
            charset or CHARSET_UTF8,
            self._settings.buffer_size,
        )
        self._state = ChannelState.OPENED
        logger.debug(
            "request body opened",
            extra={"connection_id": id(connection), "charset": self._stream.charset},
        )
        return self._stream

    def close(self) -> None:
        """Finish the body: write the multipart terminator, flush and close.

        A channel that was never opened only changes state.  Counters are reset
        so a following download reports its own progress.

        Raises:
            TransportError: If closing fails and close errors are not ignored.
        """
        if self._state is ChannelState.CLOSED:
            return
        if self._state is ChannelState.UNOPENED:
            self._state = ChannelState.CLOSED
            return

        stream = self._stream
        try:
            with closing(stream, ignore_errors=self._settings.ignore_close_errors):
                if self._mode is BodyMode.MULTIPART:
                    with transport_errors("Writing multipart terminator"):
                        stream.write(f"{CRLF}--{BOUNDARY}--{CRLF}")
        finally:
            self._state = ChannelState.CLOSED
            self._stream = None
            logger.debug(
                "request body closed",
                extra={"mode": self._mode.value, "bytes_written": self.progress.total_written},
            )
            self.progress.reset()

    def abort(self) -> None:
        """Drop the body without finishing it (the request will not be sent)."""

        if self._stream is not None:
            release(self._stream, ignore_errors=True, flush=False)
            self._stream = None
        self._state = ChannelState.CLOSED

    # -- raw ----------------------------------------------------------------

    def send(self, value: Any) -> None:
        """Write ``value`` verbatim.

        Accepts bytes-like objects, text, numbers, ``os.PathLike`` file paths and
        binary or text file objects.  Paths and file objects are closed after
        copying.
        """
        self._select(BodyMode.RAW)
        self._write_content(value)

    def writer(self) -> RequestWriter:
        """Return a text writer appending to a raw body in the channel charset."""

        self._select(BodyMode.RAW)
        return RequestWriter(self.open())

    # -- form ---------------------------------------------------------------

    def form(self, name: Any, value: Any = None, charset: Optional[str] = CHARSET_UTF8) -> None:
        """Append a URL-encoded ``name=value`` pair, or every pair of a mapping."""

        if isinstance(name, Mapping):
            for key, item in name.items():
                self.form(key, item, charset)
            return

        charset = charset or CHARSET_UTF8
        first = self._mode is BodyMode.NONE
        self._select(BodyMode.FORM)
        if first:
            self._set_content_type(f"{CONTENT_TYPE_FORM}; {PARAM_CHARSET}={charset}")
        stream = self.open()

        encoded_name = _form_encode(name, charset)
        encoded_value = "" if value is None else _form_encode(value, charset)
        with transport_errors("Writing form body"):
            if not first:
                stream.write("&")
            stream.write(f"{encoded_name}={encoded_value}")
        logger.debug("form field written", extra={"field": encoded_name})

    # -- multipart ----------------------------------------------------------

    def part(
        self,
        name: str,
        value: Any,
        filename: Optional[str] = None,
        content_type: Optional[str] = None,
        headers: Optional[Mapping[str, str]] = None,
    ) -> None:
        """Append one ``multipart/form-data`` part.

        Args:
            name: Form field name.
            value: Text, number, bytes-like, ``os.PathLike`` or file object.
            filename: Optional ``filename`` for the ``Content-Disposition`` line.
            content_type: Optional ``Content-Type`` line for the part.
            headers: Extra header lines written after ``Content-Type``.
        """
        first = self._mode is BodyMode.NONE
        self._select(BodyMode.MULTIPART)
        if first:
            self._set_content_type(CONTENT_TYPE_MULTIPART)
        stream = self.open()

        disposition = f'form-data; name="{name}"'
        if filename is not None:
            disposition += f'; filename="{filename}"'
        with transport_errors("Writing multipart header"):
            stream.write(f"--{BOUNDARY}{CRLF}" if first else f"{CRLF}--{BOUNDARY}{CRLF}")
            self._write_part_header("Content-Disposition", disposition)
            if content_type is not None:
                self._write_part_header(HEADER_CONTENT_TYPE, content_type)
            for header_name, header_value in (headers or {}).items():
                self._write_part_header(header_name, header_value)
            stream.write(CRLF)
        logger.debug(
            "multipart part started",
            extra={"part": name, "part_filename": filename, "content_type": content_type},
        )
        self._write_content(value)

    def part_header(self, name: str, value: str) -> None:
        """Write an extra header line into the part being assembled."""

        if self._mode is not BodyMode.MULTIPART:
            raise ConfigurationError("Part headers require a multipart body")
        self._ensure_writable()
        with transport_errors("Writing multipart header"):
            self._write_part_header(name, value)

    def _write_part_header(self, name: str, value: str) -> None:
        self._stream.write(f"{name}: {value}{CRLF}")

    # -- json ---------------------------------------------------------------

    def json(self, value: Any, charset: Optional[str] = CHARSET_UTF8) -> None:
        """Write a single JSON payload; ``str`` values are sent verbatim."""

        if self._mode is BodyMode.JSON:
            raise ConfigurationError("JSON body already written")
        self._select(BodyMode.JSON)
        self._set_content_type(f"{CONTENT_TYPE_JSON}; {PARAM_CHARSET}={charset or CHARSET_UTF8}")
        stream = self.open()

        text = value if isinstance(value, str) else to_json_text(value)
        with transport_errors("Writing JSON body"):
            stream.write(text)
        logger.debug("json body written", extra={"chars": len(text)})

    # -- helpers ------------------------------------------------------------

    def _select(self, mode: BodyMode) -> None:
        self._ensure_writable()
        if self._mode is BodyMode.NONE:
            self._mode = mode
            logger.debug("request body mode selected", extra={"mode": mode.value})
        elif self._mode is not mode:
            raise ConfigurationError(
                f"Request body already uses {self._mode.value} encoding, cannot write {mode.value}"
            )

    def _ensure_writable(self) -> None:
        if self._state is ChannelState.CLOSED:
            raise ConfigurationError("Request body already closed")

    def _set_content_type(self, content_type: str) -> None:
        self._manager.connection.set_request_property(HEADER_CONTENT_TYPE, content_type)

    def _write_content(self, value: Any) -> None:
        stream = self.open()
        buffer_size = self._settings.buffer_size
        ignore = self._settings.ignore_close_errors

        if isinstance(value, (bytes, bytearray, memoryview)):
            data = bytes(value)
            self.progress.add_size(len(data))
            with transport_errors("Writing request body"):
                copy_stream(
                    io.BytesIO(data),
                    stream,
                    buffer_size=buffer_size,
                    progress=self.progress,
                    ignore_close_errors=ignore,
                )
        elif isinstance(value, (str, int, float)):
            with transport_errors("Writing request body"):
                stream.write(stringify(value))
        elif isinstance(value, os.PathLike):
            with transport_errors(f"Sending file {os.fspath(value)}"):
                self.progress.add_size(os.path.getsize(value))
                source = open(value, "rb")
                copy_stream(
                    source,
                    stream,
                    buffer_size=buffer_size,
                    progress=self.progress,
                    ignore_close_errors=ignore,
                )
        elif isinstance(value, io.TextIOBase):
            with transport_errors("Writing request body"):
                copy_text(
                    value,
                    stream,
                    buffer_size=buffer_size,
                    progress=self.progress,
                    ignore_close_errors=ignore,
                )
        elif callable(getattr(value, "read", None)):
            with transport_errors("Writing request body"):
                copy_stream(
                    value,
                    stream,
                    buffer_size=buffer_size,
                    progress=self.progress,
                    ignore_close_errors=ignore,
                )
        else:
            raise ConfigurationError(f"Unsupported request body type: {type(value).__name__}")


def _form_encode(value: Any, charset: str) -> str:
    try:
        return quote_plus(stringify(value), safe="*", encoding=charset)
    except LookupError as exc:
        raise ConfigurationError(f"Unsupported form charset: {charset}") from exc
