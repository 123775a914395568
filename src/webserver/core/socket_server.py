"""
=============================================================================
SOCKET SERVER (ACCEPTOR LOOP)
=============================================================================

Owns the listening socket and the single loop that accepts connections.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   start(handler)                                                     │
    │       │                                                              │
    │       ├──► socket() + SO_REUSEADDR                                   │
    │       ├──► bind(address, port)     fails → BindError                 │
    │       ├──► listen(backlog)                                           │
    │       │                                                              │
    │       └──► until stopped:                                            │
    │                accept()          (1s timeout, then re-check event)   │
    │                handler(Connection)  ← HTTPServer submits a job       │
    │                                                                      │
    │   shutdown()  ──► stop event set, loop exits within ~1s              │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

The accept timeout is what makes the loop stoppable: a plain blocking
accept() would never notice the stop event. The event is never
cleared, so a shutdown() that lands before start() is honoured: start()
still binds, then returns at once.

=============================================================================
SIGNALS
=============================================================================

SIGINT (Ctrl+C) and SIGTERM (docker stop, systemd) trigger shutdown() so
in-flight requests finish instead of being cut off. Python only allows
signal handlers on the main thread; when the server runs in a background
thread (as in the tests) they are skipped and shutdown() is called
directly.

=============================================================================
"""

import logging
import signal
import socket
import threading
from typing import Callable, Optional, Tuple

from ..config import ServerConfig
from .connection import Connection


logger = logging.getLogger(__name__)


class BindError(OSError):
    """The listening socket could not be bound to the configured address."""

    def __init__(self, address: Tuple[str, int], cause: OSError):
        super().__init__(f"Can't bind TCP listener on {address[0]}:{address[1]}: {cause}")
        self.address = address
        self.cause = cause


class SocketServer:
    """
    Low-level TCP server: bind, listen, accept, hand off.

    Usage:
        server = SocketServer(config)
        server.start(handle_connection)   # blocks until shutdown()
    """

    ACCEPT_POLL_INTERVAL = 1.0

    def __init__(self, config: ServerConfig):
        self.config = config
        self._socket: Optional[socket.socket] = None
        self._stop_event = threading.Event()

        # Set once listen() succeeded; tests wait on it
        self._ready_event = threading.Event()
        self._original_handlers: dict = {}

    @property
    def is_running(self) -> bool:
        return self._socket is not None and not self._stop_event.is_set()

    @property
    def address(self) -> Tuple[str, int]:
        """Bound (ip, port), or the configured one before binding."""
        if self._socket is not None:
            return self._socket.getsockname()[:2]
        return (self.config.address, self.config.port)

    def _create_socket(self) -> socket.socket:
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)

        # Restarting the server must not fail with "Address already in use"
        # while the old socket sits in TIME_WAIT
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)

        sock.settimeout(self.ACCEPT_POLL_INTERVAL)
        return sock

    def _setup_signals(self):
        if threading.current_thread() is not threading.main_thread():
            return

        def shutdown_handler(signum, frame):
            logger.info(f"Received {signal.Signals(signum).name}, initiating shutdown...")
            self.shutdown()

        self._original_handlers[signal.SIGTERM] = signal.signal(signal.SIGTERM, shutdown_handler)
        self._original_handlers[signal.SIGINT] = signal.signal(signal.SIGINT, shutdown_handler)

    def _restore_signals(self):
        for sig, handler in self._original_handlers.items():
            signal.signal(sig, handler)
        self._original_handlers.clear()

    def start(self, connection_handler: Callable[[Connection], None]):
        """
        Bind, listen and run the accept loop. Blocks until shutdown().

        Args:
            connection_handler: Called on the acceptor thread for every new
                                connection. Must return quickly.

        Raises:
            BindError: If the address cannot be bound.
        """
        bind_address = (self.config.address, self.config.port)
        self._socket = self._create_socket()

        try:
            self._socket.bind(bind_address)
        except OSError as e:
            self._socket.close()
            self._socket = None
            logger.error(f"Failed to bind to {bind_address[0]}:{bind_address[1]}: {e}")
            raise BindError(bind_address, e) from e

        self._socket.listen(self.config.backlog)
        self._setup_signals()

        host, port = self.address
        logger.info(f"Server listening on {host}:{port}")
        self._ready_event.set()

        try:
            self._accept_loop(connection_handler)
        finally:
            self._cleanup()

    def _accept_loop(self, connection_handler: Callable[[Connection], None]):
        while not self._stop_event.is_set():
            try:
                client_socket, client_address = self._socket.accept()
            except socket.timeout:
                continue  # poll the stop event
            except OSError as e:
                if not self._stop_event.is_set():
                    logger.error(f"Accept error: {e}")
                break

            logger.debug(f"Accepted connection from {client_address[0]}:{client_address[1]}")

            conn = Connection(
                socket=client_socket,
                address=client_address,
                buffer_size=self.config.buffer_size,
                timeout=self.config.timeout,
            )
            connection_handler(conn)

    def shutdown(self):
        """
        Stop accepting. Callable from any thread or a signal handler, and
        more than once.
        """
        if not self._stop_event.is_set():
            logger.info("Shutting down socket server...")
        self._stop_event.set()

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        """Block until the socket is listening. False on timeout."""
        return self._ready_event.wait(timeout)

    def _cleanup(self):
        self._restore_signals()

        if self._socket is not None:
            self._socket.close()
            self._socket = None

        self._ready_event.clear()
        logger.info("Socket server stopped")
