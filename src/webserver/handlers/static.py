"""
=============================================================================
STATIC FILE HANDLER
=============================================================================

Maps request URLs onto files under the web root and answers with them.

    ┌─────────────────────────────────────────────────────────────────────┐
    │   HTTPRequest                                                        │
    │       │                                                              │
    │       ├── GET      ──► ResourceResolver ──► read bytes ──► 200 / 404 │
    │       ├── HEAD     ──► ResourceResolver ──► stat() size ──► 200 / 404│
    │       ├── OPTIONS  ──► 200, Allow: GET, HEAD, OPTIONS                │
    │       └── other    ──► 405, Allow: GET, HEAD, OPTIONS                │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
SECURITY: PATH TRAVERSAL
=============================================================================

    GET /../../etc/passwd HTTP/1.1

Joined naively onto /var/www that is /etc/passwd. The resolver
canonicalises the candidate (following .. and symlinks) and checks it is
still inside the canonical web root:

    full_path = (root / url_path).resolve()
    full_path.is_relative_to(root)    # False → 404

Escapes get a plain 404, the same answer as a missing file, so nothing
about the layout outside the root leaks.

=============================================================================
"""

import logging
from pathlib import Path
from typing import Optional, Union
from urllib.parse import unquote, urlsplit

from ..http.mime_types import get_content_type
from ..http.request import HTTPRequest
from ..http.response import (
    HTTPResponse,
    ResponseBuilder,
    head_response,
    internal_error,
    method_not_allowed,
    not_found,
)
from ..http.status_codes import HTTPStatus


logger = logging.getLogger(__name__)

INDEX_FILES = ("index.html", "index.htm")


class ResourceResolver:
    """
    Turns a request URL into a file path under the web root.

        resolver = ResourceResolver("/var/www")
        resolver.resolve("/")            → /var/www/index.html
        resolver.resolve("/style.css")   → /var/www/style.css
        resolver.resolve("/missing")     → None
        resolver.resolve("/../secret")   → None
    """

    def __init__(self, web_root: Union[str, Path]):
        # Canonicalised once; every candidate is compared against this
        self.root = Path(web_root).resolve()

    def resolve(self, url: str) -> Optional[Path]:
        """
        Find the file a URL refers to.

        Query string and fragment are dropped and the path is
        percent-decoded before it is joined onto the root.

        Returns:
            The canonical path of an existing file inside the root, or None.

        Raises:
            PermissionError, OSError: Filesystem errors other than not-found.
        """
        url_path = unquote(urlsplit(url).path)
        if url_path.startswith("/"):
            url_path = url_path[1:]

        try:
            candidate = (self.root / url_path).resolve()
        except ValueError:
            # Embedded NUL byte
            logger.debug(f"Rejected unresolvable path {url!r}")
            return None

        if not candidate.is_relative_to(self.root):
            logger.warning(f"Path traversal attempt: {url!r}")
            return None

        if candidate.is_dir():
            for name in INDEX_FILES:
                index = candidate / name
                if index.is_file():
                    return index
            return None

        if candidate.is_file():
            return candidate
        return None


class StaticFileHandler:
    """
    Answers one parsed request from the files under the web root.

    handle() never raises for filesystem trouble: missing files become 404,
    anything else the filesystem throws becomes 500.
    """

    ALLOWED_METHODS = ["GET", "HEAD", "OPTIONS"]

    def __init__(self, web_root: Union[str, Path], server_name: str = "webserver/1.0"):
        self.resolver = ResourceResolver(web_root)
        self.server_name = server_name

    def handle(self, request: HTTPRequest) -> HTTPResponse:
        version = response_version(request)

        if request.method == "GET":
            return self._get(request, version)
        if request.method == "HEAD":
            return self._head(request, version)
        if request.method == "OPTIONS":
            return self._options(version)

        logger.debug(f"Method {request.method} not allowed for {request.url}")
        return method_not_allowed(self.ALLOWED_METHODS, self.server_name, version)

    def _get(self, request: HTTPRequest, version: str) -> HTTPResponse:
        try:
            path = self.resolver.resolve(request.url)
            if path is None:
                return not_found(self.server_name, version)
            content = path.read_bytes()
        except OSError as e:
            logger.error(f"Error serving {request.url}: {e}")
            return internal_error(self.server_name, version)

        return (ResponseBuilder(self.server_name, version)
            .status(HTTPStatus.OK)
            .header("Accept-Ranges", "none")
            .body(content, get_content_type(path))
            .build())

    def _head(self, request: HTTPRequest, version: str) -> HTTPResponse:
        """Same headers as GET, size from stat(), file never opened."""
        try:
            path = self.resolver.resolve(request.url)
            if path is None:
                return head_response(not_found(self.server_name, version))
            size = path.stat().st_size
        except OSError as e:
            logger.error(f"Error serving {request.url}: {e}")
            return head_response(internal_error(self.server_name, version))

        return (ResponseBuilder(self.server_name, version)
            .status(HTTPStatus.OK)
            .header("Accept-Ranges", "none")
            .content_type(get_content_type(path))
            .head_of(size)
            .build())

    def _options(self, version: str) -> HTTPResponse:
        return (ResponseBuilder(self.server_name, version)
            .status(HTTPStatus.OK)
            .allow(self.ALLOWED_METHODS)
            .build())


def response_version(request: HTTPRequest) -> str:
    """Echo HTTP/1.0 and HTTP/1.1; answer anything else as 1.1."""
    if request.version in ("1.0", "1.1"):
        return request.version
    return "1.1"
