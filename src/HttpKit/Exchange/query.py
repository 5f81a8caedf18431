# === NAVMAP v1 ===
# {
#   "module": "HttpKit.Exchange.query",
#   "purpose": "URL normalisation and query-string construction helpers",
#   "sections": [
#     {
#       "id": "encode",
#       "name": "encode",
#       "anchor": "function-encode",
#       "kind": "function"
#     },
#     {
#       "id": "append",
#       "name": "append",
#       "anchor": "function-append",
#       "kind": "function"
#     },
#     {
#       "id": "stringify",
#       "name": "stringify",
#       "anchor": "function-stringify",
#       "kind": "function"
#     }
#   ]
# }
# === /NAVMAP ===

"""URL normalisation and query-string construction helpers.

``encode`` turns a human-written URL into a pure ASCII one and additionally
escapes a handful of query characters that many servers treat as syntax.
``append`` glues parameters onto a base URL without escaping them, so callers
typically ``append`` first and ``encode`` the result.

Example:
    >>> append("http://h/api", {"x": [1, 2]})
    'http://h/api?x=1&x=2'
    >>> encode("http://h/search?q=a+b")
    'http://h/search?q=a%2Bb'
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any, List

import httpx

from .errors import ConfigurationError, MalformedURLError

__all__ = ["encode", "append", "stringify"]

#: Characters re-escaped inside the query component beyond ASCII normalisation
_QUERY_ESCAPES = str.maketrans(
    {
        "+": "%2B",
        ":": "%3A",
        ",": "%2C",
        "(": "%28",
        ")": "%29",
    }
)


def stringify(value: Any) -> str:
    """Render a parameter value the way servers expect to read it back.

    Booleans become ``true``/``false``; everything else uses ``str``.
    """
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def encode(url: Any) -> str:
    """Encode ``url`` as an ASCII string.

    The host is IDNA-encoded, path and query are percent-encoded (existing
    ``%XX`` escapes are kept), user-info and port are preserved and the
    fragment is dropped.  Inside the query only, ``+ : , ( )`` are escaped as
    well.

    Args:
        url: Absolute URL as ``str`` or ``httpx.URL``.

    Returns:
        The encoded URL.

    Raises:
        MalformedURLError: If ``url`` cannot be parsed or is not absolute.
    """
    try:
        parsed = httpx.URL(str(url))
    except (httpx.InvalidURL, TypeError, ValueError) as exc:
        raise MalformedURLError(url, str(exc)) from exc
    if not parsed.scheme or not parsed.host:
        raise MalformedURLError(url, "absolute URL with scheme and host required")

    encoded = str(parsed).split("#", 1)[0]
    base, separator, query = encoded.partition("?")
    if separator and query:
        query = query.translate(_QUERY_ESCAPES)
    return base + separator + query


def append(url: Any, *params: Any) -> str:
    """Append query parameters to ``url``.

    ``params`` is either a single mapping (iteration order is kept) or a flat
    sequence of alternating names and values.  Non-string iterable values are
    expanded into one ``name=element`` pair per element.  ``None`` values (and
    ``None`` elements) keep the name but omit the value.

    Args:
        url: Base URL.
        *params: A mapping, or ``name, value, name, value, ...``.

    Returns:
        The URL with the parameters appended; unchanged when there are none.

    Raises:
        ConfigurationError: If an odd number of flat parameters is supplied.
    """
    base_url = str(url)
    if len(params) == 1 and (params[0] is None or isinstance(params[0], Mapping)):
        mapping = params[0]
        if not mapping:
            return base_url
        pairs = [(key, value) for key, value in mapping.items()]
    else:
        if not params:
            return base_url
        if len(params) % 2 != 0:
            raise ConfigurationError("Must specify an even number of parameter names/values")
        pairs = [(params[index], params[index + 1]) for index in range(0, len(params), 2)]

    result: List[str] = [base_url]
    _add_path_separator(base_url, result)
    _add_param_prefix(base_url, result)
    result.append("&".join(_format_param(key, value) for key, value in pairs))
    return "".join(result)


def _add_path_separator(base_url: str, result: List[str]) -> None:
    # The last slash must not be the one from "://".
    if base_url.find(":") + 2 == base_url.rfind("/"):
        result.append("/")


def _add_param_prefix(base_url: str, result: List[str]) -> None:
    query_start = base_url.find("?")
    current = "".join(result)
    if query_start == -1:
        result.append("?")
    elif query_start < len(current) - 1 and not current.endswith("&"):
        result.append("&")


def _format_param(key: Any, value: Any) -> str:
    name = str(key)
    if _is_multi_value(value):
        return "&".join(
            f"{name}=" if element is None else f"{name}={stringify(element)}" for element in value
        )
    if value is None:
        return f"{name}="
    return f"{name}={stringify(value)}"


def _is_multi_value(value: Any) -> bool:
    return isinstance(value, Iterable) and not isinstance(
        value, (str, bytes, bytearray, memoryview, Mapping)
    )
