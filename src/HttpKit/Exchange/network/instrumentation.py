# === NAVMAP v1 ===
# {
#   "module": "HttpKit.Exchange.network.instrumentation",
#   "purpose": "HTTPX event hooks logging one record per sent request.",
#   "sections": [
#     {
#       "id": "create-http-event-hooks",
#       "name": "create_http_event_hooks",
#       "anchor": "function-create-http-event-hooks",
#       "kind": "function"
#     },
#     {
#       "id": "redact-url",
#       "name": "redact_url",
#       "anchor": "function-redact-url",
#       "kind": "function"
#     }
#   ]
# }
# === /NAVMAP ===

"""HTTPX event hooks logging one record per sent request.

Emits a ``net.request`` log record for every request the exchange client sends,
capturing method, redacted URL, status and elapsed time.  Response bodies are
streamed, so the hooks never touch ``response.content``.
"""

import logging
import time
from typing import Any
from urllib.parse import urlsplit, urlunsplit

logger = logging.getLogger(__name__)


def create_http_event_hooks() -> dict:
    """Create HTTPX event hooks for request logging.

    Returns:
        Dict with 'request' and 'response' hooks for an HTTPX client

    Usage:
        >>> import httpx
        >>> hooks = create_http_event_hooks()
        >>> client = httpx.Client(event_hooks=hooks)
    """
    request_start_time: dict[int, float] = {}

    def on_request(request: Any) -> None:
        """Called when request starts."""
        request_start_time[id(request)] = time.perf_counter()

    def on_response(response: Any) -> None:
        """Called once status and headers are available."""
        start_time = request_start_time.pop(id(response.request), None)
        elapsed_ms = None
        if start_time is not None:
            elapsed_ms = round((time.perf_counter() - start_time) * 1000, 3)

        logger.info(
            "net.request",
            extra={
                "method": response.request.method,
                "url_redacted": redact_url(str(response.request.url)),
                "host": response.request.url.host or "unknown",
                "status": response.status_code,
                "http_version": response.http_version,
                "elapsed_ms": elapsed_ms,
            },
        )

    return {
        "request": [on_request],
        "response": [on_response],
    }


def redact_url(url: str) -> str:
    """Strip user-info, query and fragment, keeping scheme, host, port and path."""
    try:
        parts = urlsplit(url)
        netloc = parts.netloc.rsplit("@", 1)[-1]
        return urlunsplit((parts.scheme, netloc, parts.path, "", ""))
    except ValueError:
        return "[URL_REDACTION_FAILED]"


__all__ = [
    "create_http_event_hooks",
    "redact_url",
]
