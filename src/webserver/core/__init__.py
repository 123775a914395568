"""
=============================================================================
CORE SERVER COMPONENTS
=============================================================================

The plumbing underneath the HTTP layer:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                         SOCKET SERVER                                │
    │  • Binds address:port and listens                                    │
    │  • Runs the accept() loop on one thread                              │
    │  • Stops on shutdown() / SIGINT / SIGTERM                            │
    └─────────────────────────────────────────────────────────────────────┘
                                    │
                                    │ one job per connection
                                    ▼
    ┌─────────────────────────────────────────────────────────────────────┐
    │                          WORKER POOL                                 │
    │  • Fixed number of worker threads                                    │
    │  • One shared FIFO job queue                                         │
    │  • A failing job never kills its worker                              │
    └─────────────────────────────────────────────────────────────────────┘
                                    │
                                    │ worker runs the connection handler
                                    ▼
    ┌─────────────────────────────────────────────────────────────────────┐
    │                          CONNECTION                                  │
    │  • One client socket, one request, one response                      │
    │  • Fixed-size read buffer, read/write timeouts                       │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

from .socket_server import SocketServer, BindError
from .connection import Connection, ConnectionState
from .thread_pool import WorkerPool, Job

__all__ = [
    "SocketServer",     # Accept loop
    "BindError",        # Listener could not bind
    "Connection",       # Client socket wrapper
    "ConnectionState",  # Connection lifecycle states
    "WorkerPool",       # Fixed-size worker threads
    "Job",              # Zero-argument callable run by the pool
]
