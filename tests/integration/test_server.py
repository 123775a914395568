"""
Integration tests: a real server on a real socket.
"""

import logging
import socket
import threading
from pathlib import Path

from webserver import HTTPServer, ServerConfig


def split_response(raw: bytes):
    """Return (status line, headers dict, body)."""
    head, _, body = raw.partition(b"\r\n\r\n")
    lines = head.decode("iso-8859-1").split("\r\n")
    headers = {}
    for line in lines[1:]:
        name, _, value = line.partition(": ")
        headers[name] = value
    return lines[0], headers, body


class TestStaticServing:
    """Request/response scenarios over TCP."""

    def test_get_index(self, test_server):
        raw = test_server.request(b"GET /index.html HTTP/1.1\r\nHost: x\r\n\r\n")
        status, headers, body = split_response(raw)

        assert status == "HTTP/1.1 200 OK"
        assert headers["Content-Length"] == "2"
        assert headers["Content-Type"] == "text/html; charset=utf-8"
        assert headers["Accept-Ranges"] == "none"
        assert headers["Connection"] == "close"
        assert "Date" in headers
        assert "Server" in headers
        assert body == b"Hi"

    def test_root_serves_index(self, test_server):
        _, _, body = split_response(test_server.request(b"GET / HTTP/1.1\r\n\r\n"))

        assert body == b"Hi"

    def test_missing_is_404(self, test_server):
        raw = test_server.request(b"GET /missing.html HTTP/1.1\r\n\r\n")
        status, headers, body = split_response(raw)

        assert status == "HTTP/1.1 404 NOT FOUND"
        assert headers["Content-Type"] == "text/plain; charset=utf-8"
        assert body == b"Not found!"

    def test_traversal_is_404(self, test_server):
        raw = test_server.request(b"GET /../secret.txt HTTP/1.1\r\n\r\n")

        assert raw.startswith(b"HTTP/1.1 404 NOT FOUND\r\n")
        assert b"top secret" not in raw

    def test_head(self, test_server):
        raw = test_server.request(b"HEAD /index.html HTTP/1.1\r\n\r\n")
        status, headers, body = split_response(raw)

        assert status == "HTTP/1.1 200 OK"
        assert headers["Content-Length"] == "2"
        assert body == b""

    def test_options(self, test_server):
        status, headers, _ = split_response(test_server.request(b"OPTIONS * HTTP/1.1\r\n\r\n"))

        assert status == "HTTP/1.1 200 OK"
        assert headers["Allow"] == "GET, HEAD, OPTIONS"

    def test_delete_is_405(self, test_server, web_root: Path):
        status, headers, _ = split_response(test_server.request(b"DELETE /index.html HTTP/1.1\r\n\r\n"))

        assert status == "HTTP/1.1 405 METHOD NOT ALLOWED"
        assert headers["Allow"] == "GET, HEAD, OPTIONS"
        assert (web_root / "index.html").exists()

    def test_http_10_is_echoed(self, test_server):
        raw = test_server.request(b"GET / HTTP/1.0\r\n\r\n")

        assert raw.startswith(b"HTTP/1.0 200 OK\r\n")

    def test_malformed_is_400_and_server_keeps_serving(self, test_server):
        raw = test_server.request(b"GARBAGE\r\n\r\n")
        status, _, body = split_response(raw)

        assert status == "HTTP/1.1 400 BAD REQUEST"
        assert body == b"Bad request!"

        raw = test_server.request(b"GET / HTTP/1.1\r\n\r\n")
        assert raw.startswith(b"HTTP/1.1 200 OK\r\n")

    def test_client_closing_without_data(self, test_server):
        with socket.create_connection(("127.0.0.1", test_server.port), timeout=5.0) as s:
            s.shutdown(socket.SHUT_WR)
            raw = s.recv(4096)

        assert raw.startswith(b"HTTP/1.1 400 BAD REQUEST\r\n")

    def test_request_without_blank_line_is_answered(self, test_server):
        """The client keeps its side open and never sends the final CRLF."""
        with socket.create_connection(("127.0.0.1", test_server.port), timeout=5.0) as s:
            s.sendall(b"GET /index.html HTTP/1.1\r\nHost: localhost\r\n")
            chunks = []
            while True:
                chunk = s.recv(4096)
                if not chunk:
                    break
                chunks.append(chunk)
        status, headers, body = split_response(b"".join(chunks))

        assert status == "HTTP/1.1 200 OK"
        assert headers["Content-Length"] == "2"
        assert body == b"Hi"

    def test_head_handler_error_is_500_without_body(self, test_server, monkeypatch):
        def boom(request):
            raise RuntimeError("handler exploded")

        monkeypatch.setattr(test_server.server._handler, "handle", boom)
        status, headers, body = split_response(
            test_server.request(b"HEAD /index.html HTTP/1.1\r\n\r\n")
        )

        assert status == "HTTP/1.1 500 INTERNAL SERVER ERROR"
        assert headers["Content-Length"] == "22"
        assert body == b""

    def test_concurrent_clients(self, test_server):
        results = []
        lock = threading.Lock()

        def client():
            raw = test_server.request(b"GET /style.css HTTP/1.1\r\n\r\n")
            with lock:
                results.append(raw)

        threads = [threading.Thread(target=client) for _ in range(10)]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=10)

        assert len(results) == 10
        assert all(r.startswith(b"HTTP/1.1 200 OK\r\n") for r in results)

    def test_access_log(self, test_server, caplog):
        with caplog.at_level(logging.INFO, logger="webserver.access"):
            test_server.request(b"GET /index.html HTTP/1.1\r\n\r\n")
            test_server.stop()

        assert '"GET /index.html" 200 2' in caplog.text


class TestLifecycle:
    """Start, stop, timeouts and log files."""

    def _start(self, config: ServerConfig) -> tuple:
        server = HTTPServer(config)
        thread = threading.Thread(target=server.run, daemon=True)
        thread.start()
        assert server.wait_until_ready(timeout=5.0)
        return server, thread

    def test_stop_returns_run(self, web_root: Path, free_port: int):
        server, thread = self._start(ServerConfig(port=free_port, web_root=str(web_root)))

        assert server.server_address[1] == free_port

        server.stop()
        thread.join(timeout=5.0)
        assert not thread.is_alive()

    def test_stop_before_run_is_honoured(self, web_root: Path, free_port: int):
        server = HTTPServer(ServerConfig(port=free_port, web_root=str(web_root)))
        server.stop()

        thread = threading.Thread(target=server.run, daemon=True)
        thread.start()
        thread.join(timeout=3.0)

        assert not thread.is_alive()

    def test_silent_client_times_out(self, web_root: Path, free_port: int):
        server, thread = self._start(ServerConfig(
            port=free_port, web_root=str(web_root), threads=1, timeout=0.2,
        ))
        try:
            with socket.create_connection(("127.0.0.1", free_port), timeout=5.0) as silent:
                # The only worker is freed once the silent client times out
                with socket.create_connection(("127.0.0.1", free_port), timeout=5.0) as s:
                    s.sendall(b"GET / HTTP/1.1\r\n\r\n")
                    assert s.recv(4096).startswith(b"HTTP/1.1 200 OK\r\n")
                assert silent.recv(4096) == b""
        finally:
            server.stop()
            thread.join(timeout=5.0)

    def test_log_dir(self, web_root: Path, free_port: int, tmp_path: Path):
        log_dir = tmp_path / "logs"
        server, thread = self._start(ServerConfig(
            port=free_port, web_root=str(web_root), log_dir=str(log_dir),
        ))
        server.stop()
        thread.join(timeout=5.0)

        log_file = log_dir / "webserver.log"
        assert log_file.is_file()
        assert "Server stopped" in log_file.read_text()

        for handler in list(logging.getLogger("webserver").handlers):
            if isinstance(handler, logging.FileHandler):
                logging.getLogger("webserver").removeHandler(handler)
                handler.close()
