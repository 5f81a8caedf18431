"""Testing utilities for exercising HTTP exchanges without a network.

Routes every exchange through an ``httpx.MockTransport`` and records the requests
it receives, so tests can assert on the exact bytes put on the wire.
"""

from __future__ import annotations

import contextlib
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterator, List, Mapping, Optional, Union

import httpx

from ..network.connection import configure_transport, get_configured_transport

__all__ = [
    "ResponseSpec",
    "RequestRecord",
    "RecordingTransport",
    "streamed_response",
    "use_mock_transport",
]


def streamed_response(
    status: int,
    body: bytes = b"",
    headers: Optional[Mapping[str, str]] = None,
) -> httpx.Response:
    """Build an unread response whose raw ``body`` is served through ``iter_raw()``.

    ``httpx.Response(content=...)`` is read (and content-decoded) on creation;
    a ``ByteStream`` keeps gzip bodies compressed until the exchange decodes them.
    ``Content-Length`` is added unless ``headers`` already declares one.
    """
    response_headers = httpx.Headers(headers or {})
    if "Content-Length" not in response_headers:
        response_headers["Content-Length"] = str(len(body))
    return httpx.Response(status, headers=response_headers, stream=httpx.ByteStream(body))


@contextlib.contextmanager
def use_mock_transport(transport: httpx.BaseTransport) -> Iterator[httpx.BaseTransport]:
    """Temporarily route every new exchange through ``transport``."""

    previous = get_configured_transport()
    configure_transport(transport)
    try:
        yield transport
    finally:
        configure_transport(previous)


@dataclass
class ResponseSpec:
    """Canned response served by :class:`RecordingTransport`."""

    status: int = 200
    body: Union[bytes, str] = b""
    headers: Mapping[str, str] = field(default_factory=dict)

    def serialise_body(self) -> bytes:
        if isinstance(self.body, bytes):
            return self.body
        return self.body.encode("utf-8")


@dataclass
class RequestRecord:
    """Request captured by :class:`RecordingTransport`."""

    method: str
    url: str
    headers: Dict[str, str]
    body: bytes


class RecordingTransport(httpx.MockTransport):
    """Mock transport answering from a handler or a fixed :class:`ResponseSpec`.

    Every request is recorded (body included) in :attr:`requests`.
    """

    def __init__(
        self,
        response: Optional[Union[ResponseSpec, Callable[[httpx.Request], httpx.Response]]] = None,
    ) -> None:
        self.requests: List[RequestRecord] = []
        self._response = response or ResponseSpec()
        super().__init__(self._handle)

    @property
    def last(self) -> RequestRecord:
        return self.requests[-1]

    def _handle(self, request: httpx.Request) -> httpx.Response:
        body = request.read()
        self.requests.append(
            RequestRecord(
                method=request.method,
                url=str(request.url),
                headers=dict(request.headers.items()),
                body=body,
            )
        )
        if callable(self._response):
            return self._response(request)
        spec = self._response
        return streamed_response(spec.status, spec.serialise_body(), spec.headers)
