# === NAVMAP v1 ===
# {
#   "module": "HttpKit.Exchange.network.policy",
#   "purpose": "HTTP wire constants and exchange defaults.",
#   "sections": []
# }
# === /NAVMAP ===

"""HTTP wire constants and exchange defaults.

Defines the request methods, content types, multipart framing tokens and default
buffer/timeout budgets shared by the connection, output and response layers.
"""

# ============================================================================
# Request Methods
# ============================================================================

METHOD_DELETE = "DELETE"
METHOD_GET = "GET"
METHOD_HEAD = "HEAD"
METHOD_OPTIONS = "OPTIONS"
METHOD_POST = "POST"
METHOD_PUT = "PUT"
METHOD_TRACE = "TRACE"

#: Methods an exchange may be created with; anything else is a configuration error
SUPPORTED_METHODS = frozenset(
    {
        METHOD_DELETE,
        METHOD_GET,
        METHOD_HEAD,
        METHOD_OPTIONS,
        METHOD_POST,
        METHOD_PUT,
        METHOD_TRACE,
    }
)


# ============================================================================
# Content Types & Encodings
# ============================================================================

CHARSET_UTF8 = "UTF-8"

PARAM_CHARSET = "charset"

CONTENT_TYPE_FORM = "application/x-www-form-urlencoded"

CONTENT_TYPE_JSON = "application/json"

ENCODING_GZIP = "gzip"


# ============================================================================
# Multipart Framing
# ============================================================================

#: Fixed boundary token reused by every multipart request of the process
BOUNDARY = "00content0boundary00"

CONTENT_TYPE_MULTIPART = "multipart/form-data; boundary=" + BOUNDARY

CRLF = "\r\n"


# ============================================================================
# Buffers & Timeouts
# ============================================================================

#: Size of the buffered copy loop used for uploads and downloads (bytes)
DEFAULT_BUFFER_SIZE = 8192

#: Request bodies smaller than this stay in memory before spilling to disk (bytes)
SPOOL_MAX_MEMORY = 1024 * 1024

#: Connect/read timeouts (seconds); None blocks until the peer answers
HTTP_CONNECT_TIMEOUT = None
HTTP_READ_TIMEOUT = None

#: Follow 3xx responses transparently unless the exchange says otherwise
FOLLOW_REDIRECTS = True

#: Response bodies echoed in DEBUG logs are truncated to this many characters
LOG_BODY_PREVIEW_CHARS = 512


__all__ = [
    "METHOD_DELETE",
    "METHOD_GET",
    "METHOD_HEAD",
    "METHOD_OPTIONS",
    "METHOD_POST",
    "METHOD_PUT",
    "METHOD_TRACE",
    "SUPPORTED_METHODS",
    "CHARSET_UTF8",
    "PARAM_CHARSET",
    "CONTENT_TYPE_FORM",
    "CONTENT_TYPE_JSON",
    "ENCODING_GZIP",
    "BOUNDARY",
    "CONTENT_TYPE_MULTIPART",
    "CRLF",
    "DEFAULT_BUFFER_SIZE",
    "SPOOL_MAX_MEMORY",
    "HTTP_CONNECT_TIMEOUT",
    "HTTP_READ_TIMEOUT",
    "FOLLOW_REDIRECTS",
    "LOG_BODY_PREVIEW_CHARS",
]
