# === NAVMAP v1 ===
# {
#   "module": "HttpKit.Exchange.headers",
#   "purpose": "Well-known header names, header parameter and cookie parsing, typed header accessors",
#   "sections": [
#     {
#       "id": "get-params",
#       "name": "get_params",
#       "anchor": "function-get-params",
#       "kind": "function"
#     },
#     {
#       "id": "get-param",
#       "name": "get_param",
#       "anchor": "function-get-param",
#       "kind": "function"
#     },
#     {
#       "id": "format-cookies",
#       "name": "format_cookies",
#       "anchor": "function-format-cookies",
#       "kind": "function"
#     },
#     {
#       "id": "parse-set-cookie",
#       "name": "parse_set_cookie",
#       "anchor": "function-parse-set-cookie",
#       "kind": "function"
#     },
#     {
#       "id": "headerfacade",
#       "name": "HeaderFacade",
#       "anchor": "class-headerfacade",
#       "kind": "class"
#     }
#   ]
# }
# === /NAVMAP ===

"""Well-known header names, header parameter and cookie parsing, typed header accessors.

:class:`HeaderFacade` is mixed into :class:`~HttpKit.Exchange.request.HttpRequest`.
Setters write request headers and return the exchange for chaining; getters
finish the request (closing the body) before reading response headers.
"""

from __future__ import annotations

import base64
import email.utils
import logging
import re
from collections.abc import Iterable, Mapping
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Dict, List, Optional, TypeVar, Union

from .network.policy import (
    CONTENT_TYPE_JSON,
    ENCODING_GZIP,
    PARAM_CHARSET,
)

if TYPE_CHECKING:  # pragma: no cover - import for static analysis only
    from .network.connection import Connection

__all__ = [
    "HEADER_ACCEPT",
    "HEADER_ACCEPT_CHARSET",
    "HEADER_ACCEPT_ENCODING",
    "HEADER_AUTHORIZATION",
    "HEADER_CACHE_CONTROL",
    "HEADER_CONTENT_ENCODING",
    "HEADER_CONTENT_LENGTH",
    "HEADER_CONTENT_TYPE",
    "HEADER_COOKIE",
    "HEADER_DATE",
    "HEADER_ETAG",
    "HEADER_EXPIRES",
    "HEADER_IF_MODIFIED_SINCE",
    "HEADER_IF_NONE_MATCH",
    "HEADER_LAST_MODIFIED",
    "HEADER_LOCATION",
    "HEADER_PROXY_AUTHORIZATION",
    "HEADER_REFERER",
    "HEADER_SERVER",
    "HEADER_SET_COOKIE",
    "HEADER_USER_AGENT",
    "COOKIE_ATTRIBUTES",
    "get_params",
    "get_param",
    "format_cookies",
    "parse_set_cookie",
    "HeaderFacade",
]

logger = logging.getLogger(__name__)

HEADER_ACCEPT = "Accept"
HEADER_ACCEPT_CHARSET = "Accept-Charset"
HEADER_ACCEPT_ENCODING = "Accept-Encoding"
HEADER_AUTHORIZATION = "Authorization"
HEADER_CACHE_CONTROL = "Cache-Control"
HEADER_CONTENT_ENCODING = "Content-Encoding"
HEADER_CONTENT_LENGTH = "Content-Length"
HEADER_CONTENT_TYPE = "Content-Type"
HEADER_COOKIE = "Cookie"
HEADER_DATE = "Date"
HEADER_ETAG = "ETag"
HEADER_EXPIRES = "Expires"
HEADER_IF_MODIFIED_SINCE = "If-Modified-Since"
HEADER_IF_NONE_MATCH = "If-None-Match"
HEADER_LAST_MODIFIED = "Last-Modified"
HEADER_LOCATION = "Location"
HEADER_PROXY_AUTHORIZATION = "Proxy-Authorization"
HEADER_REFERER = "Referer"
HEADER_SERVER = "Server"
HEADER_SET_COOKIE = "Set-Cookie"
HEADER_USER_AGENT = "User-Agent"

#: ``Set-Cookie`` attributes that are not cookies themselves (compared case-insensitively)
COOKIE_ATTRIBUTES = frozenset({"path", "expires", "domain", "secure", "httponly", "overwrite"})

#: Headers whose values are masked in DEBUG logs
_SENSITIVE_HEADERS = frozenset({"authorization", "proxy-authorization", "cookie"})

#: Headers echoed in DEBUG logs when set
_LOGGED_HEADERS = frozenset({"user-agent", "content-type"}) | _SENSITIVE_HEADERS

# A comma only separates two cookies when the next token looks like "name=".
_COOKIE_SPLIT = re.compile(r",\s*(?=[^;,=\s]+=)")

_Self = TypeVar("_Self", bound="HeaderFacade")


# ============================================================================
# Parsing helpers
# ============================================================================


def get_params(header: Optional[str]) -> Dict[str, str]:
    """Parse the ``;``-separated parameters following a header's main value.

    Quoted values are unquoted; parameters without a value are skipped.

    Example:
        >>> get_params('text/html; charset="utf-8"; q=1')
        {'charset': 'utf-8', 'q': '1'}
    """
    if not header:
        return {}
    params: Dict[str, str] = {}
    for item in header.split(";")[1:]:
        name, separator, value = item.partition("=")
        name = name.strip()
        value = value.strip()
        if not separator or not name or not value:
            continue
        params[name] = _unquote(value)
    return params


def get_param(header: Optional[str], param_name: str) -> Optional[str]:
    """Return a single parameter of ``header`` or ``None``."""

    return get_params(header).get(param_name)


def _unquote(value: str) -> str:
    if len(value) > 2 and value[0] == '"' and value[-1] == '"':
        return value[1:-1]
    return value


def format_cookies(cookies: Mapping[str, Any]) -> str:
    """Serialize ``cookies`` as a ``Cookie`` header value (``k1=v1; k2=v2``)."""

    return "; ".join(f"{key}={value}" for key, value in cookies.items())


def parse_set_cookie(values: Iterable[str]) -> Dict[str, str]:
    """Collect cookie name/value pairs from ``Set-Cookie`` header values.

    Each value may hold several comma-folded cookies.  Attributes listed in
    :data:`COOKIE_ATTRIBUTES` are dropped, flags without ``=`` are ignored, and
    later duplicates overwrite earlier ones.
    """
    cookies: Dict[str, str] = {}
    for header_value in values:
        for cookie in _COOKIE_SPLIT.split(header_value):
            for item in cookie.split(";"):
                item = item.strip()
                position = item.find("=")
                if position <= 0:
                    continue
                key = item[:position]
                if key.lower() in COOKIE_ATTRIBUTES:
                    continue
                cookies[key] = item[position + 1 :]
    return cookies


def _parse_http_date(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    try:
        parsed = email.utils.parsedate_to_datetime(value)
    except (TypeError, ValueError, IndexError):
        return None
    if parsed is None:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _basic_credentials(name: str, password: str) -> str:
    token = base64.b64encode(f"{name}:{password}".encode("utf-8")).decode("ascii")
    return f"Basic {token}"


def _mask(name: str, value: Optional[str]) -> Optional[str]:
    if value is None or name.lower() not in _SENSITIVE_HEADERS:
        return value
    return "***"


# ============================================================================
# Facade
# ============================================================================


class HeaderFacade:
    """Typed request-header setters and response-header getters.

    Subclasses provide :meth:`get_connection` and :meth:`_finish_request`.
    """

    def get_connection(self) -> "Connection":  # pragma: no cover - provided by subclass
        raise NotImplementedError

    def _finish_request(self) -> "Connection":  # pragma: no cover - provided by subclass
        raise NotImplementedError

    # -- request headers ----------------------------------------------------

    def header(self: _Self, name: str, value: Any) -> _Self:
        """Set request header ``name``; ``None`` removes it."""

        connection = self.get_connection()
        text = None if value is None else str(value)
        if name.lower() in _LOGGED_HEADERS:
            logger.debug(
                "request header set",
                extra={"connection_id": id(connection), "header": name, "value": _mask(name, text)},
            )
        connection.set_request_property(name, text)
        return self

    def headers(self: _Self, headers: Mapping[str, Any]) -> _Self:
        """Set every header in ``headers``."""

        for name, value in headers.items():
            self.header(name, value)
        return self

    def user_agent(self: _Self, user_agent: str) -> _Self:
        return self.header(HEADER_USER_AGENT, user_agent)

    def referer(self: _Self, referer: str) -> _Self:
        return self.header(HEADER_REFERER, referer)

    def accept(self: _Self, accept: str) -> _Self:
        return self.header(HEADER_ACCEPT, accept)

    def accept_json(self: _Self) -> _Self:
        return self.accept(CONTENT_TYPE_JSON)

    def accept_encoding(self: _Self, accept_encoding: str) -> _Self:
        return self.header(HEADER_ACCEPT_ENCODING, accept_encoding)

    def accept_gzip_encoding(self: _Self) -> _Self:
        return self.accept_encoding(ENCODING_GZIP)

    def accept_charset(self: _Self, accept_charset: str) -> _Self:
        return self.header(HEADER_ACCEPT_CHARSET, accept_charset)

    def authorization(self: _Self, authorization: str) -> _Self:
        return self.header(HEADER_AUTHORIZATION, authorization)

    def proxy_authorization(self: _Self, proxy_authorization: str) -> _Self:
        return self.header(HEADER_PROXY_AUTHORIZATION, proxy_authorization)

    def basic(self: _Self, name: str, password: str) -> _Self:
        """Set ``Authorization: Basic base64(name:password)``."""

        return self.authorization(_basic_credentials(name, password))

    def proxy_basic(self: _Self, name: str, password: str) -> _Self:
        """Set ``Proxy-Authorization: Basic base64(name:password)``."""

        return self.proxy_authorization(_basic_credentials(name, password))

    def bearer(self: _Self, token: str) -> _Self:
        return self.authorization(f"Bearer {token}")

    def if_none_match(self: _Self, if_none_match: str) -> _Self:
        return self.header(HEADER_IF_NONE_MATCH, if_none_match)

    def if_modified_since(self: _Self, moment: Union[datetime, float, int]) -> _Self:
        """Set ``If-Modified-Since`` from a datetime or epoch seconds."""

        if isinstance(moment, datetime):
            if moment.tzinfo is None:
                moment = moment.replace(tzinfo=timezone.utc)
            value = email.utils.format_datetime(moment.astimezone(timezone.utc), usegmt=True)
        else:
            value = email.utils.formatdate(float(moment), usegmt=True)
        return self.header(HEADER_IF_MODIFIED_SINCE, value)

    def use_caches(self: _Self, use_caches: bool) -> _Self:
        """Ask intermediaries not to serve a cached response when ``use_caches`` is false."""

        return self.header(HEADER_CACHE_CONTROL, None if use_caches else "no-cache")

    def content_type(self: _Self, content_type: str, charset: Optional[str] = None) -> _Self:
        """Set ``Content-Type``, appending ``; charset=<charset>`` when given."""

        if charset:
            return self.header(HEADER_CONTENT_TYPE, f"{content_type}; {PARAM_CHARSET}={charset}")
        return self.header(HEADER_CONTENT_TYPE, content_type)

    def content_length(self: _Self, content_length: Union[int, str]) -> _Self:
        """Announce the body length up front (fixed-length streaming)."""

        self.get_connection().set_fixed_length_streaming_mode(int(content_length))
        return self

    def cookies(self: _Self, cookies: Union[str, Mapping[str, Any], None]) -> _Self:
        """Set the ``Cookie`` header from a preformatted string or a mapping."""

        if isinstance(cookies, Mapping):
            cookies = format_cookies(cookies)
        if cookies and cookies.strip():
            self.header(HEADER_COOKIE, cookies)
        return self

    # -- response headers ---------------------------------------------------

    def response_header(self, name: str) -> Optional[str]:
        """Return response header ``name`` (values of repeated headers are comma-joined)."""

        return self._finish_request().header_field(name)

    def header_values(self, name: str) -> List[str]:
        """Return every value of response header ``name``; empty when absent."""

        return self._finish_request().header_values(name)

    def header_fields(self) -> Dict[str, List[str]]:
        """Return all response headers as lower-cased name -> values."""

        return self._finish_request().header_fields()

    def date_header(self, name: str, default: Optional[datetime] = None) -> Optional[datetime]:
        """Return response header ``name`` parsed as an HTTP date, else ``default``."""

        parsed = _parse_http_date(self.response_header(name))
        return default if parsed is None else parsed

    def int_header(self, name: str, default: int = -1) -> int:
        """Return response header ``name`` parsed as an integer, else ``default``."""

        value = self.response_header(name)
        if value is None:
            return default
        try:
            return int(value.strip())
        except ValueError:
            return default

    def parameter(self, header_name: str, param_name: str) -> Optional[str]:
        """Return parameter ``param_name`` of response header ``header_name``."""

        return get_param(self.response_header(header_name), param_name)

    def parameters(self, header_name: str) -> Dict[str, str]:
        """Return all parameters of response header ``header_name``."""

        return get_params(self.response_header(header_name))

    def charset(self) -> Optional[str]:
        """Return the ``charset`` parameter of the response ``Content-Type``."""

        return self.parameter(HEADER_CONTENT_TYPE, PARAM_CHARSET)

    def content_encoding(self) -> Optional[str]:
        return self.response_header(HEADER_CONTENT_ENCODING)

    def server(self) -> Optional[str]:
        return self.response_header(HEADER_SERVER)

    def date(self) -> Optional[datetime]:
        return self.date_header(HEADER_DATE)

    def cache_control(self) -> Optional[str]:
        return self.response_header(HEADER_CACHE_CONTROL)

    def etag(self) -> Optional[str]:
        return self.response_header(HEADER_ETAG)

    def expires(self) -> Optional[datetime]:
        return self.date_header(HEADER_EXPIRES)

    def last_modified(self) -> Optional[datetime]:
        return self.date_header(HEADER_LAST_MODIFIED)

    def location(self) -> Optional[str]:
        return self.response_header(HEADER_LOCATION)

    def response_content_type(self) -> Optional[str]:
        return self.response_header(HEADER_CONTENT_TYPE)

    def response_content_length(self) -> int:
        """Return the response ``Content-Length`` or ``-1`` when absent."""

        return self.int_header(HEADER_CONTENT_LENGTH)

    def response_cookies(self) -> Dict[str, str]:
        """Return the cookies set by the response as name -> value."""

        cookies = parse_set_cookie(self.header_values(HEADER_SET_COOKIE))
        logger.debug("response cookies parsed", extra={"cookie_names": sorted(cookies)})
        return cookies

    def cookie_header(self) -> str:
        """Return the response cookies formatted for a follow-up ``Cookie`` header."""

        return format_cookies(self.response_cookies())
