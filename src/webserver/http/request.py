"""
=============================================================================
HTTP REQUEST PARSER
=============================================================================

Turns the bytes read from one connection into an immutable HTTPRequest.

=============================================================================
WHAT WE ACCEPT
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │    GET /index.html HTTP/1.1\r\n          ← request line              │
    │    ─┬─ ─────┬───── ────┬───                                         │
    │     │       │          │                                             │
    │   Method   URL     Version ("HTTP/" is stripped → "1.1")            │
    │                                                                      │
    │    Host: localhost:8080\r\n               ← header lines             │
    │    Accept: */*\r\n                          Name ":" Value           │
    │    \r\n                                   ← blank line, end          │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

The connection reads into a fixed-size buffer, so the data arrives padded
with NUL bytes. Those are trimmed before anything else happens.

=============================================================================
TWO STAGES: LEXER AND PARSER
=============================================================================

    raw bytes ──► RequestLexer ──► Token stream ──► RequestParser ──► HTTPRequest
                                                   (builds headers)

    Token stream for the example above:

        METHOD("GET") URL("/index.html") VERSION("1.1") EOL
        HEADER_NAME("Host") HEADER_VALUE("localhost:8080") EOL
        HEADER_NAME("Accept") HEADER_VALUE("*/*") EOL
        EOT

The lexer always ends the stream with an EOT sentinel, so the parse loop
has a guaranteed exit.

=============================================================================
WHAT IS MALFORMED
=============================================================================

    - Nothing but NUL bytes / whitespace             → MalformedRequest
    - Request line not exactly three tokens          → MalformedRequest
    - Version without "HTTP/" prefix                 → MalformedRequest
    - Header line without a colon (or empty name)    → MalformedRequest

MalformedRequest carries status_code 400; the connection handler turns it
into a "400 BAD REQUEST" response instead of killing the worker.

=============================================================================
"""

import logging
from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


logger = logging.getLogger(__name__)


class HTTPParseError(Exception):
    """
    Raised when HTTP request parsing fails.

    Carries the HTTP status code that should be returned to the client.
    """

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.status_code = status_code


class MalformedRequest(HTTPParseError):
    """The request line or a header line does not have the expected shape."""


# =============================================================================
# HEADERS
# =============================================================================

class Headers(Mapping):
    """
    Ordered, case-insensitive, read-only mapping of header names to values.

    Lookups ignore case, iteration yields the names as the client sent them,
    in the order they arrived:

        >>> headers = Headers([("Host", "example.com"), ("X-Trace", "1")])
        >>> headers["host"]
        'example.com'
        >>> list(headers)
        ['Host', 'X-Trace']

    A repeated header is folded into one comma-separated value, which is
    what RFC 7230 says a repeated field means.
    """

    def __init__(self, items: Optional[list[tuple[str, str]]] = None):
        # lowercase name → (name as sent, value)
        self._items: dict[str, tuple[str, str]] = {}
        for name, value in items or ():
            key = name.lower()
            if key in self._items:
                first_name, previous = self._items[key]
                self._items[key] = (first_name, f"{previous}, {value}")
            else:
                self._items[key] = (name, value)

    def __getitem__(self, name: str) -> str:
        return self._items[name.lower()][1]

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and name.lower() in self._items

    def __iter__(self) -> Iterator[str]:
        return (original for original, _ in self._items.values())

    def __len__(self) -> int:
        return len(self._items)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Headers):
            return list(self._items.values()) == list(other._items.values())
        return NotImplemented

    def __hash__(self):
        return hash(tuple(self._items.values()))

    def __repr__(self) -> str:
        return f"Headers({list(self._items.values())!r})"


# Headers the server knows by name. Everything else is logged and kept
# in the general mapping only.
RECOGNIZED_HEADERS = frozenset({
    "host",
    "user-agent",
    "accept",
    "accept-language",
    "accept-encoding",
    "cookie",
    "connection",
    "upgrade-insecure-requests",
    "referer",
    "cache-control",
})


@dataclass(frozen=True)
class HTTPRequest:
    """
    A parsed HTTP request.

    =========================================================================
    ATTRIBUTES
    =========================================================================

        method:   "GET", "HEAD", "OPTIONS", ... exactly as sent
        url:      request target as sent, e.g. "/css/site.css?v=2"
        version:  bare protocol version, "1.1" for "HTTP/1.1"
        headers:  every header line, case-insensitive (see Headers)

    Frozen: built once by RequestParser, read by the resolver and the
    response builder, then dropped.
    =========================================================================
    """

    method: str
    url: str
    version: str = "1.1"
    headers: Headers = field(default_factory=Headers)

    def get_header(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """Get a header value (case-insensitive lookup)."""
        return self.headers.get(name, default)

    # -------------------------------------------------------------------------
    # Named accessors for the recognised headers. None when absent.
    # -------------------------------------------------------------------------

    @property
    def host(self) -> Optional[str]:
        return self.get_header("Host")

    @property
    def user_agent(self) -> Optional[str]:
        return self.get_header("User-Agent")

    @property
    def accept(self) -> Optional[str]:
        return self.get_header("Accept")

    @property
    def accept_language(self) -> Optional[str]:
        return self.get_header("Accept-Language")

    @property
    def accept_encoding(self) -> Optional[str]:
        return self.get_header("Accept-Encoding")

    @property
    def cookie(self) -> Optional[str]:
        return self.get_header("Cookie")

    @property
    def connection(self) -> Optional[str]:
        return self.get_header("Connection")

    @property
    def upgrade_insecure_requests(self) -> Optional[str]:
        return self.get_header("Upgrade-Insecure-Requests")

    @property
    def referer(self) -> Optional[str]:
        return self.get_header("Referer")

    @property
    def cache_control(self) -> Optional[str]:
        return self.get_header("Cache-Control")


# =============================================================================
# LEXER
# =============================================================================

class TokenType(Enum):
    METHOD = "method"
    URL = "url"
    VERSION = "version"
    HEADER_NAME = "header_name"
    HEADER_VALUE = "header_value"
    EOL = "eol"
    EOT = "eot"          # sentinel: no more tokens


@dataclass(frozen=True)
class Token:
    type: TokenType
    value: str = ""


class RequestLexer:
    """
    Splits request text into tokens.

    Works line by line on the CRLF-split text. The request line gives
    METHOD, URL and VERSION; each header line gives HEADER_NAME and
    HEADER_VALUE; every line ends with EOL; the stream ends with EOT.
    Lexing stops at the first blank line, so a request body is never
    mistaken for headers.
    """

    VERSION_PREFIX = "HTTP/"

    def __init__(self, text: str):
        self._lines = text.split("\r\n")

    def tokens(self) -> Iterator[Token]:
        """
        Yield tokens for the whole request, ending with EOT.

        Raises:
            MalformedRequest: On a bad request line or header line.
        """
        yield from self._request_line(self._lines[0])

        for line in self._lines[1:]:
            if not line:
                break  # blank line ends the header section
            yield from self._header_line(line)

        yield Token(TokenType.EOT)

    def _request_line(self, line: str) -> Iterator[Token]:
        # Single spaces only: "GET  / HTTP/1.1" has an empty token and fails
        parts = line.split(" ")
        if len(parts) != 3 or not all(parts):
            raise MalformedRequest(f"Invalid request line: {line!r}")

        method, url, version = parts
        if not version.startswith(self.VERSION_PREFIX):
            raise MalformedRequest(f"Invalid HTTP version: {version!r}")

        yield Token(TokenType.METHOD, method)
        yield Token(TokenType.URL, url)
        yield Token(TokenType.VERSION, version[len(self.VERSION_PREFIX):])
        yield Token(TokenType.EOL)

    def _header_line(self, line: str) -> Iterator[Token]:
        name, colon, value = line.partition(":")
        name = name.strip()
        if not colon or not name:
            raise MalformedRequest(f"Invalid header line: {line!r}")

        yield Token(TokenType.HEADER_NAME, name)
        yield Token(TokenType.HEADER_VALUE, value.strip())
        yield Token(TokenType.EOL)


# =============================================================================
# PARSER
# =============================================================================

class RequestParser:
    """
    Parses raw request bytes into HTTPRequest objects.

        ┌───────────────────────────────────────────────────────────────────┐
        │  1. Trim trailing NUL padding                                     │
        │  2. Decode as ISO-8859-1 (every byte maps to one character)       │
        │  3. Empty? → MalformedRequest                                     │
        │  4. Walk the token stream until EOT                               │
        │  5. Build the frozen HTTPRequest                                  │
        └───────────────────────────────────────────────────────────────────┘

    ISO-8859-1 is the historical charset of HTTP header fields and cannot
    fail to decode, so header values come out byte-for-byte as sent.
    """

    ENCODING = "iso-8859-1"

    def parse(self, data: bytes) -> HTTPRequest:
        """
        Parse raw request data.

        Args:
            data: Bytes read from the socket, possibly NUL-padded.

        Returns:
            Parsed HTTPRequest.

        Raises:
            MalformedRequest: If the request is empty or malformed.
        """
        text = data.rstrip(b"\x00").decode(self.ENCODING)
        if not text.strip():
            raise MalformedRequest("Empty request")

        method = url = version = ""
        header_items: list[tuple[str, str]] = []
        header_name: Optional[str] = None

        for token in RequestLexer(text).tokens():
            if token.type is TokenType.EOT:
                break
            elif token.type is TokenType.METHOD:
                method = token.value
            elif token.type is TokenType.URL:
                url = token.value
            elif token.type is TokenType.VERSION:
                version = token.value
            elif token.type is TokenType.HEADER_NAME:
                header_name = token.value
            elif token.type is TokenType.HEADER_VALUE:
                if header_name.lower() not in RECOGNIZED_HEADERS:
                    logger.debug(f"Unrecognized header: {header_name}")
                header_items.append((header_name, token.value))
                header_name = None

        return HTTPRequest(
            method=method,
            url=url,
            version=version,
            headers=Headers(header_items),
        )


def parse_request(data: bytes) -> HTTPRequest:
    """Parse raw request bytes with a default RequestParser."""
    return RequestParser().parse(data)
