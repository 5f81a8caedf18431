# === NAVMAP v1 ===
# {
#   "module": "HttpKit.Exchange.jsonbody",
#   "purpose": "Minimal JSON text writer for flat request payloads",
#   "sections": [
#     {
#       "id": "to-json-text",
#       "name": "to_json_text",
#       "anchor": "function-to-json-text",
#       "kind": "function"
#     }
#   ]
# }
# === /NAVMAP ===

"""Minimal JSON text writer for flat request payloads.

Only mappings, lists/tuples/sets, booleans, numbers and ``None`` have a JSON
shape of their own; any other value is written as a quoted string of its
``str()`` with JSON string escapes.  Keys are always quoted.  This is deliberately not a general JSON
encoder: it exists for form-like payloads built from primitive maps.

Example:
    >>> to_json_text({"q": "x", "n": 1, "on": True, "tags": ["a", None]})
    '{"q":"x","n":1,"on":true,"tags":["a",null]}'
"""

from __future__ import annotations

from collections.abc import Mapping
from decimal import Decimal
from typing import Any

__all__ = ["to_json_text"]

_ESCAPES = {'"': '\\"', "\\": "\\\\", "\n": "\\n", "\r": "\\r", "\t": "\\t", "\b": "\\b", "\f": "\\f"}
# remaining C0 control characters as \u00XX
_ESCAPES.update({chr(code): f"\\u{code:04x}" for code in range(0x20) if chr(code) not in _ESCAPES})
_ESCAPE_TABLE = str.maketrans(_ESCAPES)


def to_json_text(value: Any) -> str:
    """Serialize ``value`` as compact JSON text."""

    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float, Decimal)):
        return str(value)
    if isinstance(value, Mapping):
        members = (f"{_quote(key)}:{to_json_text(item)}" for key, item in value.items())
        return "{" + ",".join(members) + "}"
    if isinstance(value, (list, tuple, set, frozenset)):
        return "[" + ",".join(to_json_text(item) for item in value) + "]"
    return _quote(value)


def _quote(value: Any) -> str:
    return '"' + str(value).translate(_ESCAPE_TABLE) + '"'
