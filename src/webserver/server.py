"""
=============================================================================
WEB SERVER
=============================================================================

Ties the components together into a running static file server.

=============================================================================
ARCHITECTURE OVERVIEW
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │                        ┌─────────────────┐                          │
    │                        │   HTTPServer    │                          │
    │                        └────────┬────────┘                          │
    │                                 │                                    │
    │            ┌────────────────────┼────────────────────┐              │
    │            ▼                    ▼                    ▼              │
    │    ┌──────────────┐    ┌──────────────┐    ┌──────────────────┐    │
    │    │ SocketServer │    │  WorkerPool  │    │StaticFileHandler │    │
    │    │  (accepting) │    │ (concurrency)│    │  (files → resp.) │    │
    │    └──────┬───────┘    └──────┬───────┘    └──────────────────┘    │
    │           │                   │                                     │
    │           ▼                   ▼                                     │
    │    ┌──────────────┐    ┌──────────────────────┐                    │
    │    │  Connection  │───►│ _process_connection  │                    │
    │    └──────────────┘    └──────────────────────┘                    │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
REQUEST LIFECYCLE
=============================================================================

    1. ACCEPT           SocketServer accepts, wraps the socket in a Connection
    2. QUEUE            _handle_connection submits one job to the WorkerPool
    3. READ             a worker reads up to buffer_size bytes
    4. PARSE            RequestParser → HTTPRequest, or 400 Bad request!
    5. HANDLE           StaticFileHandler → 200 / 404 / 405 / 500
    6. SEND + CLOSE     response written, connection closed, access logged

Errors at any step stay inside the one connection: the acceptor and the
other workers never see them.

=============================================================================
"""

import functools
import logging
from pathlib import Path
from typing import Optional, Tuple

from .config import ServerConfig
from .core.connection import Connection, ConnectionState
from .core.socket_server import SocketServer
from .core.thread_pool import WorkerPool
from .handlers.static import StaticFileHandler
from .http.request import MalformedRequest, RequestParser
from .http.response import HTTPResponse, bad_request, head_response, internal_error


logger = logging.getLogger(__name__)
access_logger = logging.getLogger("webserver.access")

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
LOG_FILE_NAME = "webserver.log"


class HTTPServer:
    """
    Static file server: one acceptor thread, a fixed pool of workers.

    Usage:
        config = ServerConfig(port=8080, web_root="./public")
        server = HTTPServer(config)
        server.run()     # blocks until stop() / Ctrl+C

    From another thread:
        server.wait_until_ready(timeout=5)
        host, port = server.server_address
        ...
        server.stop()
    """

    def __init__(self, config: Optional[ServerConfig] = None):
        """
        Args:
            config: Server configuration. Defaults are used if not provided.

        Raises:
            ConfigurationError: If the configuration is invalid.
        """
        self.config = config or ServerConfig()
        self.config.validate()  # Fail fast on invalid config

        # ─────────────────────────────────────────────────────────────────
        # CORE COMPONENTS
        # ─────────────────────────────────────────────────────────────────
        self._socket_server = SocketServer(self.config)
        self._pool = WorkerPool(self.config.threads)
        self._parser = RequestParser()
        self._handler = StaticFileHandler(self.config.web_root, self.config.server_name)

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def run(self):
        """
        Start the server (blocking).

        Returns after stop() or SIGINT/SIGTERM, once every queued
        connection has been answered.

        Raises:
            BindError: If the listener cannot be bound.
        """
        self._setup_logging()

        self._pool.start()
        logger.info(
            f"Serving {self._handler.resolver.root} on "
            f"{self.config.address}:{self.config.port} "
            f"with {self.config.threads} workers"
        )

        try:
            self._socket_server.start(self._handle_connection)
        except KeyboardInterrupt:
            logger.info("Received keyboard interrupt")
        finally:
            self._shutdown()

    def stop(self):
        """Ask the accept loop to exit. Safe from any thread."""
        self._socket_server.shutdown()

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        return self._socket_server.wait_until_ready(timeout)

    @property
    def server_address(self) -> Tuple[str, int]:
        """The bound (ip, port); useful when port 0 was requested."""
        return self._socket_server.address

    def _setup_logging(self):
        """
        Root logging via basicConfig, plus <log_dir>/webserver.log when a
        log directory is configured.
        """
        level = self.config.log_level_number

        logging.basicConfig(level=level, format=LOG_FORMAT, datefmt=LOG_DATE_FORMAT)

        package_logger = logging.getLogger("webserver")
        package_logger.setLevel(level)

        if self.config.log_dir:
            log_dir = Path(self.config.log_dir)
            log_dir.mkdir(parents=True, exist_ok=True)
            log_file = (log_dir / LOG_FILE_NAME).resolve()

            # A second run() in the same process must not log every line twice
            for handler in package_logger.handlers:
                if isinstance(handler, logging.FileHandler) and Path(handler.baseFilename) == log_file:
                    return

            file_handler = logging.FileHandler(log_file, encoding="utf-8")
            file_handler.setFormatter(logging.Formatter(LOG_FORMAT, LOG_DATE_FORMAT))
            package_logger.addHandler(file_handler)
            logger.info(f"Logging to {log_file}")

    def _shutdown(self):
        logger.info("Shutting down server...")

        # Runs every job already queued, then joins the workers
        self._pool.shutdown()

        logger.info("Server stopped")

    # =========================================================================
    # REQUEST HANDLING
    # =========================================================================

    def _handle_connection(self, conn: Connection):
        """
        Hand a connection to the worker pool. Runs on the acceptor thread,
        so it only queues and returns.
        """
        self._pool.submit(functools.partial(self._process_connection, conn, self.config))

    def _process_connection(self, conn: Connection, config: ServerConfig):
        """
        Serve exactly one request on conn, then close it. Runs on a worker.

        config is the frozen snapshot captured when the job was queued.
        """
        with conn:
            try:
                # ─────────────────────────────────────────────────────────
                # READ + PARSE
                # ─────────────────────────────────────────────────────────
                raw_request = conn.read_request()
                request = None

                try:
                    request = self._parser.parse(raw_request)
                except MalformedRequest as e:
                    logger.info(f"[{conn.id}] Malformed request from {conn.client_ip}: {e}")
                    response = bad_request(config.server_name)
                else:
                    # ─────────────────────────────────────────────────────
                    # HANDLE
                    # ─────────────────────────────────────────────────────
                    conn.state = ConnectionState.PROCESSING
                    try:
                        response = self._handler.handle(request)
                    except Exception as e:
                        logger.exception(f"[{conn.id}] Handler error: {e}")
                        response = internal_error(config.server_name)
                        if request.method == "HEAD":
                            response = head_response(response)

                # ─────────────────────────────────────────────────────────
                # SEND
                # ─────────────────────────────────────────────────────────
                conn.send_response(response.to_bytes())
                self._log_access(conn, request, response)

            except TimeoutError:
                logger.warning(f"[{conn.id}] Timed out after {conn.age:.1f}s, closing")
            except OSError as e:
                logger.error(f"[{conn.id}] Socket error: {e}")

    def _log_access(self, conn: Connection, request, response: HTTPResponse):
        """One line per answered request: "GET /index.html" 200 2"""
        request_line = f"{request.method} {request.url}" if request else "-"
        access_logger.info(
            f'{conn.client_ip} "{request_line}" '
            f"{response.status.value} {len(response.body)}"
        )
