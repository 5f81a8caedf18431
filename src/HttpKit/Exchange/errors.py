"""Exception hierarchy shared by the request builder, connection and response layers.

An exchange can fail in two broad ways: the caller asked for something that can
never work (a malformed URL, an odd-length parameter list, mixing a form body
with multipart parts) or the network/file system failed while the request was
being written or the response read.  The first family is grouped under
:class:`ConfigurationError` and is never worth retrying; the second is always
surfaced as :class:`TransportError` carrying the low-level cause so callers can
branch on the HTTP status code rather than on exception subtypes.
"""

from __future__ import annotations

from typing import Optional

__all__ = [
    "HttpExchangeError",
    "ConfigurationError",
    "MalformedURLError",
    "TransportError",
    "ConnectError",
]


class HttpExchangeError(RuntimeError):
    """Base exception for every failure raised by an HTTP exchange."""


class ConfigurationError(HttpExchangeError):
    """Raised when the exchange is configured or driven in an invalid way."""


class MalformedURLError(ConfigurationError):
    """Raised when a URL cannot be parsed into an absolute HTTP location."""

    def __init__(self, url: object, reason: Optional[str] = None) -> None:
        self.url = str(url)
        self.reason = reason
        message = f"Malformed URL: {self.url!r}"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message)


class TransportError(HttpExchangeError):
    """Raised when opening the connection, writing the body or reading the response fails."""

    @property
    def cause(self) -> Optional[BaseException]:
        """Return the low-level error that triggered this transport failure."""

        return self.__cause__


class ConnectError(TransportError):
    """Raised when the underlying connection cannot be created."""
