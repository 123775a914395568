"""
=============================================================================
HTTP STATUS CODES
=============================================================================

The closed set of statuses this server can put on the wire.

A static file server has very few outcomes, so instead of the full RFC 7231
table we keep only what a request can actually end in:

    ┌────────┬───────────────────────────┬──────────────────────────────────┐
    │  Code  │  Reason phrase            │  When                            │
    ├────────┼───────────────────────────┼──────────────────────────────────┤
    │  200   │  OK                       │  GET/HEAD hit, OPTIONS           │
    │  400   │  BAD REQUEST              │  Request could not be parsed     │
    │  404   │  NOT FOUND                │  No file (or escaped web root)   │
    │  405   │  METHOD NOT ALLOWED       │  Anything but GET/HEAD/OPTIONS   │
    │  500   │  INTERNAL SERVER ERROR    │  Filesystem/handler failure      │
    │  501   │  NOT IMPLEMENTED          │  Reserved, never produced        │
    └────────┴───────────────────────────┴──────────────────────────────────┘

Reason phrases are upper case ("HTTP/1.1 404 NOT FOUND"). HTTP/1.1 clients
ignore the phrase, only the code matters.

=============================================================================
"""

from enum import IntEnum


class HTTPStatus(IntEnum):
    """
    HTTP status codes used by the server.

    IntEnum, so members compare equal to plain integers:

        >>> HTTPStatus.NOT_FOUND == 404
        True
        >>> HTTPStatus.NOT_FOUND.phrase
        'NOT FOUND'
    """

    OK = 200
    BAD_REQUEST = 400
    NOT_FOUND = 404
    METHOD_NOT_ALLOWED = 405
    INTERNAL_SERVER_ERROR = 500
    NOT_IMPLEMENTED = 501

    @property
    def phrase(self) -> str:
        """
        Reason phrase for the status line.

            HTTP/1.1 404 NOT FOUND
                     ─── ─────────
                      │      │
                      │      └── phrase
                      └───────── code
        """
        return _STATUS_PHRASES[self]

    @property
    def is_success(self) -> bool:
        return 200 <= self < 300

    @property
    def is_client_error(self) -> bool:
        return 400 <= self < 500

    @property
    def is_server_error(self) -> bool:
        return 500 <= self < 600

    @property
    def is_error(self) -> bool:
        """4xx or 5xx."""
        return self >= 400


_STATUS_PHRASES = {
    HTTPStatus.OK: "OK",
    HTTPStatus.BAD_REQUEST: "BAD REQUEST",
    HTTPStatus.NOT_FOUND: "NOT FOUND",
    HTTPStatus.METHOD_NOT_ALLOWED: "METHOD NOT ALLOWED",
    HTTPStatus.INTERNAL_SERVER_ERROR: "INTERNAL SERVER ERROR",
    HTTPStatus.NOT_IMPLEMENTED: "NOT IMPLEMENTED",
}
