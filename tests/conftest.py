"""
pytest configuration and fixtures.
"""

import socket
import threading
from pathlib import Path
from typing import Generator, Optional
import pytest

# Add src to path for imports
import sys
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from webserver import HTTPServer, ServerConfig


@pytest.fixture
def sample_get_request() -> bytes:
    """Sample HTTP GET request, as a browser sends it."""
    return (
        b"GET /index.html HTTP/1.1\r\n"
        b"Host: localhost:8080\r\n"
        b"User-Agent: pytest\r\n"
        b"Accept: text/html\r\n"
        b"Connection: keep-alive\r\n"
        b"\r\n"
    )


@pytest.fixture
def padded_get_request(sample_get_request: bytes) -> bytes:
    """The sample request as it comes out of the 4096-byte read buffer."""
    return sample_get_request.ljust(4096, b"\x00")


@pytest.fixture
def web_root(tmp_path: Path) -> Path:
    """
    A small site:

        index.html        "Hi"
        style.css
        app.js
        favicon.ico
        notes             (no extension)
        docs/index.htm
        empty/
    """
    root = tmp_path / "www"
    root.mkdir()
    (root / "index.html").write_text("Hi")
    (root / "style.css").write_text("body { color: red; }")
    (root / "app.js").write_text("console.log(1);")
    (root / "favicon.ico").write_bytes(b"\x00\x00\x01\x00")
    (root / "notes").write_text("plain notes")
    (root / "docs").mkdir()
    (root / "docs" / "index.htm").write_text("<p>docs</p>")
    (root / "empty").mkdir()

    # Outside the web root; must never be served
    (tmp_path / "secret.txt").write_text("top secret")
    return root


@pytest.fixture
def free_port() -> int:
    """Get a free port for testing."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("127.0.0.1", 0))
        return s.getsockname()[1]


class TestServer:
    """Test server helper that runs in a background thread."""

    __test__ = False  # not a test class, despite the name

    def __init__(self, server: HTTPServer):
        self.server = server
        self._thread: Optional[threading.Thread] = None

    @property
    def port(self) -> int:
        return self.server.server_address[1]

    def start(self):
        """Start server in background thread and wait until it listens."""
        self._thread = threading.Thread(target=self.server.run, daemon=True)
        self._thread.start()

        if not self.server.wait_until_ready(timeout=5.0):
            raise RuntimeError("Server failed to start")

    def stop(self):
        """Stop the server and wait for the worker pool to drain."""
        self.server.stop()

        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=5.0)

    def request(self, raw: bytes) -> bytes:
        """Send raw bytes, return everything the server answers."""
        with socket.create_connection(("127.0.0.1", self.port), timeout=5.0) as s:
            s.sendall(raw)
            chunks = []
            while True:
                chunk = s.recv(4096)
                if not chunk:
                    break
                chunks.append(chunk)
        return b"".join(chunks)


@pytest.fixture
def test_server(web_root: Path, free_port: int) -> Generator[TestServer, None, None]:
    """A running server over the web_root fixture."""
    server = HTTPServer(ServerConfig(
        address="127.0.0.1",
        port=free_port,
        threads=2,
        web_root=str(web_root),
        log_level="WARNING",
        timeout=5.0,
    ))

    test_srv = TestServer(server)
    test_srv.start()

    yield test_srv

    test_srv.stop()
