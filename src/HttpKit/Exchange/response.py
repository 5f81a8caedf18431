# === NAVMAP v1 ===
# {
#   "module": "HttpKit.Exchange.response",
#   "purpose": "Status, body stream selection and body copies for the response side of an exchange",
#   "sections": [
#     {
#       "id": "responsereader",
#       "name": "ResponseReader",
#       "anchor": "class-responsereader",
#       "kind": "class"
#     }
#   ]
# }
# === /NAVMAP ===

"""Status, body stream selection and body copies for the response side of an exchange.

Every accessor first finishes the request (closing the body and sending it),
then reads from the single streamed response.  The body can be consumed once.

Stream selection:
- status below 400: the response body;
- otherwise the error body, then the response body, then an empty stream when
  ``Content-Length`` is absent or zero;
- with ``uncompress`` enabled and ``Content-Encoding: gzip`` the chosen stream
  is gunzipped transparently.
"""

from __future__ import annotations

import codecs
import gzip
import io
import logging
import os
import re
from pathlib import Path
from typing import TYPE_CHECKING, Any, BinaryIO, Optional, TextIO, Union

import httpx

from .download import resolve_download_path
from .errors import ConfigurationError, TransportError
from .network.policy import ENCODING_GZIP, LOG_BODY_PREVIEW_CHARS
from .transfer import (
    TransferProgress,
    closing,
    copy_stream,
    copy_text,
    transport_errors,
)

if TYPE_CHECKING:  # pragma: no cover - import for static analysis only
    from .network.connection import Connection
    from .settings import ExchangeSettings

__all__ = ["ResponseReader"]

logger = logging.getLogger(__name__)

_WHITESPACE = re.compile(r"\s+")

# HTTP status codes with dedicated predicates
HTTP_OK = 200
HTTP_CREATED = 201
HTTP_NO_CONTENT = 204
HTTP_NOT_MODIFIED = 304
HTTP_BAD_REQUEST = 400
HTTP_NOT_FOUND = 404
HTTP_INTERNAL_ERROR = 500


class _GzipBody(gzip.GzipFile):
    """Gunzipping reader that also closes the response stream it wraps."""

    def __init__(self, raw: BinaryIO) -> None:
        super().__init__(fileobj=raw, mode="rb")
        self._raw = raw

    def close(self) -> None:
        try:
            super().close()
        finally:
            self._raw.close()


class ResponseReader:
    """Response accessors mixed into :class:`~HttpKit.Exchange.request.HttpRequest`.

    The host class provides ``url``, ``_progress``, ``_settings``,
    ``_finish_request()`` and the header getters of
    :class:`~HttpKit.Exchange.headers.HeaderFacade`.
    """

    url: httpx.URL
    method: str
    _progress: TransferProgress
    _settings: ExchangeSettings

    def _finish_request(self) -> Connection:  # pragma: no cover - provided by subclass
        raise NotImplementedError

    # -- status -------------------------------------------------------------

    def code(self) -> int:
        """Finish the request and return the response status code."""

        return self._finish_request().response_code()

    def ok(self) -> bool:
        return self.code() == HTTP_OK

    def created(self) -> bool:
        return self.code() == HTTP_CREATED

    def no_content(self) -> bool:
        return self.code() == HTTP_NO_CONTENT

    def not_modified(self) -> bool:
        return self.code() == HTTP_NOT_MODIFIED

    def bad_request(self) -> bool:
        return self.code() == HTTP_BAD_REQUEST

    def not_found(self) -> bool:
        return self.code() == HTTP_NOT_FOUND

    def server_error(self) -> bool:
        return self.code() == HTTP_INTERNAL_ERROR

    def message(self) -> str:
        """Return the reason phrase of the response status line."""

        return self._finish_request().response_message()

    # -- body streams -------------------------------------------------------

    def stream(self) -> BinaryIO:
        """Return the response body as a binary file object.

        Raises:
            TransportError: If the error response declares a positive
                ``Content-Length`` but no body can be read.
        """
        connection = self._finish_request()
        if connection.response_code() < HTTP_BAD_REQUEST:
            raw: BinaryIO = connection.input_stream()
        else:
            raw = connection.error_stream()
            if raw is None:
                try:
                    raw = connection.input_stream()
                except TransportError:
                    if self.response_content_length() > 0:
                        raise
                    raw = io.BytesIO()

        if not self._settings.uncompress or self.content_encoding() != ENCODING_GZIP:
            return raw
        logger.debug("response body gunzipped", extra={"url": str(self.url)})
        return _GzipBody(raw)

    def buffer(self) -> io.BufferedReader:
        """Return :meth:`stream` wrapped in a reader buffered by ``buffer_size``."""

        return io.BufferedReader(self.stream(), self._settings.buffer_size)

    def reader(self, charset: Optional[str] = None) -> TextIO:
        """Return the response body decoded with ``charset``.

        Defaults to the response ``charset`` parameter, then to the configured
        default charset.
        """
        encoding = self._response_charset(charset)
        return io.TextIOWrapper(self.buffer(), encoding=encoding)

    def bytes(self) -> bytes:
        """Read the whole response body."""

        sink = io.BytesIO()
        self._copy_body(self.buffer(), sink)
        return sink.getvalue()

    def body(self, charset: Optional[str] = None) -> str:
        """Read the whole response body as text (see :meth:`reader` for the charset)."""

        encoding = self._response_charset(charset)
        text = self.bytes().decode(encoding)
        if logger.isEnabledFor(logging.DEBUG):
            preview = _WHITESPACE.sub(" ", text)
            if len(preview) > LOG_BODY_PREVIEW_CHARS:
                preview = preview[:LOG_BODY_PREVIEW_CHARS] + "..."
            logger.debug(
                "response body read",
                extra={"method": self.method, "url": str(self.url), "body_preview": preview},
            )
        return text

    def is_body_empty(self) -> bool:
        """Return ``True`` when the response declares ``Content-Length: 0``."""

        return self.response_content_length() == 0

    # -- copies -------------------------------------------------------------

    def receive(self, target: Union[str, os.PathLike, Any]):
        """Copy the response body into ``target`` and return the exchange.

        ``target`` may be a file path, a text writer (``io.TextIOBase``, which
        receives decoded text) or any binary object with ``write``.
        """
        if isinstance(target, (str, os.PathLike)):
            path = Path(target)
            logger.debug("response body saved", extra={"path": str(path.absolute())})
            with transport_errors(f"Writing {path}"):
                output = open(path, "wb")
                with closing(output, ignore_errors=self._settings.ignore_close_errors):
                    self._copy_body(self.buffer(), output)
        elif isinstance(target, io.TextIOBase):
            self._progress.reset(self.response_content_length())
            with transport_errors("Reading response body"):
                copy_text(
                    self.reader(),
                    target,
                    buffer_size=self._settings.buffer_size,
                    progress=self._progress,
                    ignore_close_errors=self._settings.ignore_close_errors,
                )
        elif callable(getattr(target, "write", None)):
            self._copy_body(self.buffer(), target)
        else:
            raise ConfigurationError(f"Cannot receive response body into {type(target).__name__}")
        return self

    def download(self, path: Union[str, os.PathLike]) -> Path:
        """Save the response body below ``path`` and return the written file.

        See :func:`~HttpKit.Exchange.download.resolve_download_path` for how the
        file name is chosen.
        """
        target = resolve_download_path(path, self.url)
        self.receive(target)
        return target

    # -- helpers ------------------------------------------------------------

    def _copy_body(self, source: BinaryIO, sink: Any) -> int:
        self._progress.reset(self.response_content_length())
        with transport_errors("Reading response body"):
            return copy_stream(
                source,
                sink,
                buffer_size=self._settings.buffer_size,
                progress=self._progress,
                ignore_close_errors=self._settings.ignore_close_errors,
            )

    def _response_charset(self, charset: Optional[str]) -> str:
        encoding = charset or self.charset() or self._settings.default_charset
        try:
            codecs.lookup(encoding)
        except LookupError as exc:
            raise ConfigurationError(f"Unsupported response charset: {encoding}") from exc
        return encoding
