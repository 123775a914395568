"""
=============================================================================
CONNECTION WRAPPER
=============================================================================

Wraps one accepted client socket for the lifetime of a single
request/response exchange.

=============================================================================
ONE REQUEST PER CONNECTION
=============================================================================

    accept() ──► Connection ──► read_request() ──► send_response() ──► close()

No keep-alive: after the response is written the socket is closed.

=============================================================================
READING INTO A FIXED BUFFER
=============================================================================

The request is read into a zero-filled buffer of buffer_size bytes
(4096 by default):

    ┌───────────────────────────────────────────────┬──────────────────────┐
    │ G E T   / i n d e x . h t m l   H T T P / ... │ \0 \0 \0 \0 \0 \0 \0  │
    └───────────────────────────────────────────────┴──────────────────────┘
      bytes received                                  untouched padding

TCP is a stream, so one recv() may return only part of the request. We
keep calling recv_into() until the blank line that ends the headers shows
up, the peer closes, or the buffer is full. Whatever does not fit is
ignored; the parser trims the NUL padding.

The closing blank line is optional on input. Once the request line is
complete, each further read waits at most TAIL_TIMEOUT seconds; if nothing
more arrives the request is answered from what was received.

=============================================================================
TIMEOUTS
=============================================================================

Without a deadline a client that connects and never sends anything holds a
worker forever. Every socket gets `timeout` seconds per read and write.
A timeout before any byte arrived propagates as TimeoutError to the
connection handler, which logs it and closes the connection. A timeout
after some bytes arrived ends the read and the partial request is parsed.

=============================================================================
"""

import logging
import socket
import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


logger = logging.getLogger(__name__)

HEADER_TERMINATOR = b"\r\n\r\n"
LINE_TERMINATOR = b"\r\n"

# Seconds to wait for more header bytes once the request line is in
TAIL_TIMEOUT = 0.5


class ConnectionState(Enum):
    NEW = "new"                # Just accepted
    READING = "reading"        # Reading the request
    PROCESSING = "processing"  # Building the response
    WRITING = "writing"        # Sending the response
    CLOSED = "closed"          # Socket released


@dataclass
class Connection:
    """
    A client connection.

    Attributes:
        socket: The accepted client socket.
        address: Client's (ip, port) tuple.
        id: Short identifier used to correlate log lines.
        buffer_size: Size of the request buffer in bytes.
        timeout: Seconds allowed for each read and write. None blocks forever.
    """

    socket: socket.socket
    address: tuple[str, int]
    id: str = field(default_factory=lambda: str(uuid.uuid4())[:8])
    state: ConnectionState = ConnectionState.NEW
    created_at: float = field(default_factory=time.monotonic)
    buffer_size: int = 4096
    timeout: Optional[float] = 30.0

    def __post_init__(self):
        # Accepted sockets inherit the listener's accept-poll timeout
        self.socket.settimeout(self.timeout)

    @property
    def _tail_timeout(self) -> float:
        if self.timeout is None:
            return TAIL_TIMEOUT
        return min(self.timeout, TAIL_TIMEOUT)

    @property
    def client_ip(self) -> str:
        return self.address[0]

    @property
    def age(self) -> float:
        """Seconds since the connection was accepted."""
        return time.monotonic() - self.created_at

    def read_request(self) -> bytes:
        """
        Read the request into a NUL-padded buffer of buffer_size bytes.

        Returns:
            The whole buffer. Empty if the client sent nothing before
            closing, which the parser reports as a malformed request.
            A request whose closing blank line never arrives is returned
            as received once the read times out.

        Raises:
            TimeoutError: If the client sends nothing within timeout.
            OSError: On other socket errors.
        """
        self.state = ConnectionState.READING

        buffer = bytearray(self.buffer_size)
        view = memoryview(buffer)
        received = 0

        try:
            while received < self.buffer_size:
                try:
                    count = self.socket.recv_into(view[received:])
                except TimeoutError:
                    if received == 0:
                        raise
                    logger.debug(f"[{self.id}] No blank line after {received} bytes, using them as is")
                    break
                if count == 0:
                    break  # peer closed its side
                received += count
                if HEADER_TERMINATOR in buffer[:received]:
                    break
                if LINE_TERMINATOR in buffer[:received]:
                    # Request line complete, the rest may never come
                    self.socket.settimeout(self._tail_timeout)
        finally:
            self.socket.settimeout(self.timeout)

        logger.debug(f"[{self.id}] Received {received} bytes as request")
        if received == 0:
            return b""
        return bytes(buffer)

    def send_response(self, data: bytes):
        """
        Send the whole response.

        sendall() loops until every byte is written or raises.
        """
        self.state = ConnectionState.WRITING
        self.socket.sendall(data)

    def close(self):
        """Shut down and close the socket. Safe to call twice."""
        if self.state == ConnectionState.CLOSED:
            return

        try:
            # Tell the client we are done writing before releasing the fd
            self.socket.shutdown(socket.SHUT_RDWR)
        except OSError:
            pass  # peer already gone
        self.socket.close()

        self.state = ConnectionState.CLOSED
        logger.debug(f"[{self.id}] Connection closed after {self.age:.3f}s")

    def __enter__(self) -> "Connection":
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
