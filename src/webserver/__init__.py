"""
=============================================================================
WEBSERVER - Multi-threaded Static File Server
=============================================================================

Serves the files of one directory over a subset of HTTP/1.1 (GET, HEAD,
OPTIONS), one request per connection, with a fixed pool of worker threads.

=============================================================================
PACKAGE STRUCTURE
=============================================================================

    webserver/
    ├── __init__.py          # This file - package exports
    ├── __main__.py          # CLI entry point (python -m webserver)
    ├── server.py            # HTTPServer: wires everything together
    ├── config.py            # ServerConfig dataclass and its loaders
    ├── core/                # Sockets and threads
    │   ├── socket_server.py # Listener and accept loop
    │   ├── connection.py    # One client connection
    │   └── thread_pool.py   # Fixed-size worker pool
    ├── http/                # Wire format
    │   ├── request.py       # Request lexer and parser
    │   ├── response.py      # Response building
    │   ├── status_codes.py  # Status enum
    │   └── mime_types.py    # Content-Type classification
    └── handlers/
        └── static.py        # URL → file resolution, GET/HEAD/OPTIONS

=============================================================================
QUICK START
=============================================================================

    from webserver import HTTPServer, ServerConfig

    server = HTTPServer(ServerConfig(web_root="./public", port=8080))
    server.run()

=============================================================================
"""

__version__ = "1.0.0"

from .config import ServerConfig, ConfigurationError
from .server import HTTPServer

__all__ = [
    "HTTPServer",
    "ServerConfig",
    "ConfigurationError",
    "__version__",
]
