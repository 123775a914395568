"""
=============================================================================
HTTP PROTOCOL LAYER
=============================================================================

Everything that knows about the HTTP wire format and nothing about sockets
or files:

    ┌─────────────────────────────────────────────────────────────────────┐
    │ request.py       raw bytes → HTTPRequest (or MalformedRequest)      │
    │ response.py      HTTPResponse, ResponseBuilder, HTTP dates          │
    │ status_codes.py  the closed set of statuses we send                 │
    │ mime_types.py    file extension → Content-Type                      │
    └─────────────────────────────────────────────────────────────────────┘

HTTP MESSAGE FORMAT (RFC 7230):

    REQUEST:                          RESPONSE:
    GET /path HTTP/1.1\r\n            HTTP/1.1 200 OK\r\n
    Header: Value\r\n                 Header: Value\r\n
    \r\n                              \r\n
                                      [body]
=============================================================================
"""

from .request import (
    HTTPRequest,
    Headers,
    RequestParser,
    HTTPParseError,
    MalformedRequest,
    parse_request,
)
from .response import (
    HTTPResponse,
    ResponseBuilder,
    format_http_date,
    not_found,           # 404
    bad_request,         # 400
    method_not_allowed,  # 405
    internal_error,      # 500
    head_response,
)
from .status_codes import HTTPStatus
from .mime_types import get_mime_type, get_content_type

__all__ = [
    # Request parsing
    "HTTPRequest",
    "Headers",
    "RequestParser",
    "HTTPParseError",
    "MalformedRequest",
    "parse_request",

    # Response building
    "HTTPResponse",
    "ResponseBuilder",
    "format_http_date",
    "not_found",
    "bad_request",
    "method_not_allowed",
    "internal_error",
    "head_response",

    # Status codes
    "HTTPStatus",

    # MIME types
    "get_mime_type",
    "get_content_type",
]
