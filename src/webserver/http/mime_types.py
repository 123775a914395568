"""
=============================================================================
CONTENT-TYPE CLASSIFIER
=============================================================================

Maps a file's extension to the MIME type sent in the Content-Type header.

    ┌────────────────────────────────────────────────────────────────────┐
    │                    SUPPORTED EXTENSIONS                            │
    ├────────────────────────────────────────────────────────────────────┤
    │                                                                     │
    │  .html, .htm   → text/html                                         │
    │  .css          → text/css                                          │
    │  .js           → text/javascript                                   │
    │  .ico          → image/x-icon                                      │
    │  anything else → text/plain   (including no extension at all)      │
    │                                                                     │
    └────────────────────────────────────────────────────────────────────┘

The classifier is total: every path gets exactly one answer. The default
is text/plain rather than application/octet-stream, so an unknown file is
shown in the browser instead of being downloaded.

Text types carry a charset parameter:

    get_content_type("index.html")  →  "text/html; charset=utf-8"
    get_content_type("favicon.ico") →  "image/x-icon"

=============================================================================
"""

from pathlib import Path


MIME_TYPES = {
    ".html": "text/html",
    ".htm": "text/html",
    ".css": "text/css",
    ".js": "text/javascript",
    ".ico": "image/x-icon",
}

DEFAULT_MIME_TYPE = "text/plain"


def get_mime_type(path: str | Path) -> str:
    """
    Get the MIME type for a file based on its extension.

    Matching is case-insensitive (INDEX.HTML is still HTML).

    Examples:
        >>> get_mime_type("style.css")
        'text/css'

        >>> get_mime_type("README")
        'text/plain'
    """
    if isinstance(path, str):
        path = Path(path)

    return MIME_TYPES.get(path.suffix.lower(), DEFAULT_MIME_TYPE)


def is_text_type(mime_type: str) -> bool:
    """Check if a MIME type is text and should get a charset parameter."""
    return mime_type.startswith("text/")


def get_content_type(path: str | Path, charset: str = "utf-8") -> str:
    """
    Get the full Content-Type header value for a file.

    Args:
        path: File path or name with extension.
        charset: Encoding announced for text files.

    Returns:
        Content-Type header value, e.g. "text/css; charset=utf-8".
    """
    mime_type = get_mime_type(path)

    if is_text_type(mime_type):
        return f"{mime_type}; charset={charset}"

    return mime_type
