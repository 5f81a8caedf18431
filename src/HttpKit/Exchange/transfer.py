# === NAVMAP v1 ===
# {
#   "module": "HttpKit.Exchange.transfer",
#   "purpose": "Buffered copy loops, progress accounting, and scoped stream release",
#   "sections": [
#     {
#       "id": "transferprogress",
#       "name": "TransferProgress",
#       "anchor": "class-transferprogress",
#       "kind": "class"
#     },
#     {
#       "id": "release",
#       "name": "release",
#       "anchor": "function-release",
#       "kind": "function"
#     },
#     {
#       "id": "transport-errors",
#       "name": "transport_errors",
#       "anchor": "function-transport-errors",
#       "kind": "function"
#     },
#     {
#       "id": "copy-stream",
#       "name": "copy_stream",
#       "anchor": "function-copy-stream",
#       "kind": "function"
#     },
#     {
#       "id": "copy-text",
#       "name": "copy_text",
#       "anchor": "function-copy-text",
#       "kind": "function"
#     }
#   ]
# }
# === /NAVMAP ===

"""Buffered copy loops, progress accounting, and scoped stream release.

Uploads (request bodies, multipart parts) and downloads (response bodies) share
one copy contract: read ``buffer_size`` units at a time, write them to the sink,
bump ``total_written`` and notify the progress callback after every chunk, and
always close the source.  Close failures are suppressed when requested and never
replace an exception that is already propagating.
"""

from __future__ import annotations

import contextlib
import logging
from dataclasses import dataclass
from typing import Any, Callable, Iterator, Optional

import httpx

from .errors import TransportError

__all__ = [
    "ProgressCallback",
    "TransferProgress",
    "release",
    "closing",
    "transport_errors",
    "copy_stream",
    "copy_text",
]

logger = logging.getLogger(__name__)

#: Callback receiving ``(transferred, total)``; ``total`` is ``-1`` when unknown
ProgressCallback = Callable[[int, int], None]


def _ignore_progress(transferred: int, total: int) -> None:
    return None


@dataclass
class TransferProgress:
    """Running byte counters for the body currently being transferred."""

    total_written: int = 0
    total_size: int = -1
    callback: ProgressCallback = _ignore_progress

    def set_callback(self, callback: Optional[ProgressCallback]) -> None:
        """Install ``callback``; ``None`` restores the no-op callback."""

        self.callback = callback if callback is not None else _ignore_progress

    def add_size(self, size: int) -> None:
        """Account for a source of known length before it is copied."""

        if self.total_size == -1:
            self.total_size = 0
        self.total_size += size

    def advance(self, count: int, *, total: Optional[int] = None) -> None:
        """Record ``count`` transferred units and notify the callback."""

        self.total_written += count
        self.callback(self.total_written, self.total_size if total is None else total)

    def reset(self, total_size: int = -1) -> None:
        """Start counting a new transfer (for example the response download)."""

        self.total_written = 0
        self.total_size = total_size


def release(resource: Any, *, ignore_errors: bool, flush: bool = True) -> None:
    """Flush (when supported) and close ``resource``.

    Args:
        resource: Object exposing ``close()`` and optionally ``flush()``.
        ignore_errors: Swallow ``OSError`` raised while flushing or closing.
        flush: Flush before closing when the resource supports it.

    Raises:
        TransportError: If closing fails and ``ignore_errors`` is false.
    """
    try:
        try:
            if flush and callable(getattr(resource, "flush", None)) and not _is_closed(resource):
                resource.flush()
        finally:
            resource.close()
    except (OSError, httpx.HTTPError) as exc:
        if not ignore_errors:
            raise TransportError(f"Failed to close {type(resource).__name__}: {exc}") from exc
        logger.debug(
            "suppressed close error",
            extra={"resource": type(resource).__name__, "error": str(exc)},
        )


@contextlib.contextmanager
def closing(resource: Any, *, ignore_errors: bool) -> Iterator[Any]:
    """Yield ``resource`` and release it on every exit path.

    A failure while releasing is only raised when the body completed normally
    and ``ignore_errors`` is false; it never masks an earlier exception.
    """
    try:
        yield resource
    except BaseException:
        release(resource, ignore_errors=True)
        raise
    release(resource, ignore_errors=ignore_errors)


@contextlib.contextmanager
def transport_errors(action: str) -> Iterator[None]:
    """Translate ``OSError`` and ``httpx`` failures raised while ``action`` runs."""

    try:
        yield
    except TransportError:
        raise
    except (OSError, httpx.HTTPError) as exc:
        raise TransportError(f"{action} failed: {exc}") from exc


def copy_stream(
    source: Any,
    sink: Any,
    *,
    buffer_size: int,
    progress: TransferProgress,
    ignore_close_errors: bool,
) -> int:
    """Copy a binary ``source`` into ``sink`` and close ``source``.

    Args:
        source: Readable binary file object.
        sink: Object with ``write(bytes)``.
        buffer_size: Bytes read per iteration.
        progress: Counters advanced after each chunk.
        ignore_close_errors: Suppress failures while closing ``source``.

    Returns:
        Number of bytes copied.
    """
    copied = 0
    with closing(source, ignore_errors=ignore_close_errors):
        while True:
            chunk = source.read(buffer_size)
            if not chunk:
                break
            sink.write(chunk)
            copied += len(chunk)
            progress.advance(len(chunk))
    return copied


def copy_text(
    source: Any,
    sink: Any,
    *,
    buffer_size: int,
    progress: TransferProgress,
    ignore_close_errors: bool,
) -> int:
    """Copy a text ``source`` into ``sink`` character-wise and close ``source``.

    Progress is reported in characters with an unknown total.
    """
    copied = 0
    with closing(source, ignore_errors=ignore_close_errors):
        while True:
            chunk = source.read(buffer_size)
            if not chunk:
                break
            sink.write(chunk)
            copied += len(chunk)
            progress.advance(len(chunk), total=-1)
    return copied


def _is_closed(resource: Any) -> bool:
    return bool(getattr(resource, "closed", False))
