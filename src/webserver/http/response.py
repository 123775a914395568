"""
=============================================================================
HTTP RESPONSE BUILDER
=============================================================================

Builds and serializes the responses the server sends.

=============================================================================
HTTP RESPONSE ANATOMY
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │    HTTP/1.1 200 OK\r\n                          ← status line        │
    │    Accept-Ranges: none\r\n                                          │
    │    Content-Length: 2\r\n                        ← headers, in the    │
    │    Content-Type: text/html; charset=utf-8\r\n     order they were    │
    │    Date: Mon, 19 Oct 2026 12:00:00 GMT\r\n        added              │
    │    Server: webserver/1.0\r\n                                        │
    │    Connection: close\r\n                                            │
    │    \r\n                                         ← separator          │
    │    Hi                                           ← body bytes         │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
CONTENT-LENGTH INVARIANT
=============================================================================

Once Content-Length is set it matches the body. set_body() keeps it in
sync and to_bytes() fills it in when missing.

The one deliberate exception is a HEAD response: it announces the size of
the body a GET would have sent, but sends no body. ResponseBuilder.head_of()
is the only way to build one.

=============================================================================
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional, Union

from .status_codes import HTTPStatus


@dataclass
class HTTPResponse:
    """
    An HTTP response ready to be serialized.

    Headers are a dict, so iteration order is insertion order and the wire
    order matches the order the builder added them.
    """

    status: HTTPStatus = HTTPStatus.OK
    headers: dict[str, str] = field(default_factory=dict)
    body: bytes = b""
    version: str = "1.1"

    @property
    def status_line(self) -> str:
        """
        Format: HTTP/VERSION SP CODE SP PHRASE
        Example: "HTTP/1.1 404 NOT FOUND"
        """
        return f"HTTP/{self.version} {self.status.value} {self.status.phrase}"

    def set_header(self, name: str, value: str) -> "HTTPResponse":
        self.headers[name] = value
        return self

    def set_body(self, body: Union[str, bytes]) -> "HTTPResponse":
        """
        Set the response body, keeping Content-Length in step with it.

        Strings are encoded as UTF-8.
        """
        if isinstance(body, str):
            body = body.encode("utf-8")
        self.body = body
        if "Content-Length" in self.headers:
            self.headers["Content-Length"] = str(len(body))
        return self

    def to_bytes(self) -> bytes:
        """
        Serialize the response for socket.sendall().

            status line CRLF
            Name: value CRLF   (zero or more)
            CRLF
            body

        Content-Length is added when the response does not carry one.
        """
        headers = dict(self.headers)
        if "Content-Length" not in headers:
            headers["Content-Length"] = str(len(self.body))

        lines = [self.status_line]
        lines.extend(f"{name}: {value}" for name, value in headers.items())
        lines.append("")

        head = "\r\n".join(lines).encode("iso-8859-1") + b"\r\n"
        return head + self.body


class ResponseBuilder:
    """
    Fluent builder for HTTPResponse.

        response = (ResponseBuilder(server_name="webserver/1.0")
            .status(HTTPStatus.NOT_FOUND)
            .text("Not found!")
            .build())

    build() always stamps the standard headers (Date, Server,
    Connection: close) after the ones set explicitly.
    """

    def __init__(self, server_name: str = "webserver/1.0", version: str = "1.1"):
        self._status = HTTPStatus.OK
        self._headers: dict[str, str] = {}
        self._body: bytes = b""
        self._server_name = server_name
        self._version = version
        self._head_length: Optional[int] = None

    def status(self, status: HTTPStatus) -> "ResponseBuilder":
        self._status = status
        return self

    def header(self, name: str, value: str) -> "ResponseBuilder":
        self._headers[name] = value
        return self

    def content_type(self, content_type: str) -> "ResponseBuilder":
        return self.header("Content-Type", content_type)

    def body(self, body: bytes, content_type: Optional[str] = None) -> "ResponseBuilder":
        """Set a raw body, and its Content-Type when given."""
        self._body = body
        self._headers["Content-Length"] = str(len(body))
        if content_type:
            self._headers["Content-Type"] = content_type
        return self

    def text(self, text: str, content_type: str = "text/plain; charset=utf-8") -> "ResponseBuilder":
        """Set a plain text body."""
        return self.body(text.encode("utf-8"), content_type)

    def allow(self, methods: list[str]) -> "ResponseBuilder":
        """Set the Allow header (405 and OPTIONS responses)."""
        return self.header("Allow", ", ".join(methods))

    def head_of(self, content_length: int) -> "ResponseBuilder":
        """
        Turn this into a HEAD response.

        Content-Length announces content_length bytes, the body stays empty.
        """
        self._head_length = content_length
        self._body = b""
        return self

    def build(self) -> HTTPResponse:
        headers = dict(self._headers)

        if self._head_length is not None:
            headers["Content-Length"] = str(self._head_length)
        else:
            headers.setdefault("Content-Length", str(len(self._body)))

        headers.setdefault("Date", format_http_date(datetime.now(timezone.utc)))
        headers.setdefault("Server", self._server_name)
        headers["Connection"] = "close"

        return HTTPResponse(
            status=self._status,
            headers=headers,
            body=self._body,
            version=self._version,
        )

    def to_bytes(self) -> bytes:
        return self.build().to_bytes()


# =============================================================================
# UTILITY FUNCTIONS
# =============================================================================

def format_http_date(dt: datetime) -> str:
    """
    Format a datetime as an RFC 1123 HTTP-date.

    Format: Day, DD Mon YYYY HH:MM:SS GMT
    Example: Mon, 19 Oct 2026 12:00:00 GMT

    Built by hand instead of strftime, because %a and %b follow the
    process locale and HTTP dates must always be English.

    Args:
        dt: Datetime to format. Naive values are taken as UTC; aware values
            are converted to UTC.
    """
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc)

    days = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]
    months = ["Jan", "Feb", "Mar", "Apr", "May", "Jun",
              "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]

    return (
        f"{days[dt.weekday()]}, "
        f"{dt.day:02d} {months[dt.month - 1]} {dt.year} "
        f"{dt.hour:02d}:{dt.minute:02d}:{dt.second:02d} GMT"
    )


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================
#
# Canned error responses. Bodies are short plain text so the client can
# always show something.
#
# =============================================================================

def not_found(server_name: str = "webserver/1.0", version: str = "1.1") -> HTTPResponse:
    """404 with body "Not found!"."""
    return (ResponseBuilder(server_name, version)
        .status(HTTPStatus.NOT_FOUND)
        .text("Not found!")
        .build())


def bad_request(server_name: str = "webserver/1.0") -> HTTPResponse:
    """400 for a request the parser rejected. Always HTTP/1.1."""
    return (ResponseBuilder(server_name)
        .status(HTTPStatus.BAD_REQUEST)
        .text("Bad request!")
        .build())


def method_not_allowed(
    allowed_methods: list[str],
    server_name: str = "webserver/1.0",
    version: str = "1.1",
) -> HTTPResponse:
    """405 with an Allow header listing the supported methods."""
    return (ResponseBuilder(server_name, version)
        .status(HTTPStatus.METHOD_NOT_ALLOWED)
        .allow(allowed_methods)
        .text("Method not allowed!")
        .build())


def internal_error(server_name: str = "webserver/1.0", version: str = "1.1") -> HTTPResponse:
    """500. Keep the body generic, details go to the log."""
    return (ResponseBuilder(server_name, version)
        .status(HTTPStatus.INTERNAL_SERVER_ERROR)
        .text("Internal server error!")
        .build())


def head_response(response: HTTPResponse) -> HTTPResponse:
    """
    The HEAD form of a response: same status and headers, no body.

    Content-Length keeps announcing the body a GET would have received.
    """
    headers = dict(response.headers)
    headers.setdefault("Content-Length", str(len(response.body)))
    return HTTPResponse(
        status=response.status,
        headers=headers,
        body=b"",
        version=response.version,
    )
