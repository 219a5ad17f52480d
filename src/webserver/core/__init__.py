"""
=============================================================================
CORE SERVER COMPONENTS
=============================================================================

The networking and concurrency plumbing behind the web server.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                         SOCKET SERVER                                │
    │  • Owns the listening socket, runs the accept() loop                 │
    │  • Polls ServerState between bounded accept() waits                  │
    └─────────────────────────────────────────────────────────────────────┘
                                    │
                                    │ Hands off each new connection
                                    ▼
    ┌─────────────────────────────────────────────────────────────────────┐
    │                          THREAD POOL                                 │
    │  • Elastic set of worker threads fed from a bounded queue            │
    │  • shutdown(): drain for a bounded time, then cancel                 │
    └─────────────────────────────────────────────────────────────────────┘
                                    │
                                    │ Worker processes connection
                                    ▼
    ┌─────────────────────────────────────────────────────────────────────┐
    │                          CONNECTION                                  │
    │  • Wraps the client socket: read_chunks(), send(), close()           │
    │  • abort() lets the shutdown thread interrupt blocked I/O            │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

from .state import ServerState
from .socket_server import SocketServer
from .connection import Connection, ConnectionState
from .thread_pool import ThreadPool

__all__ = [
    "ServerState",      # Shared shutdown flag
    "SocketServer",     # Listening socket + accept loop
    "Connection",       # Wrapper for client socket
    "ConnectionState",  # Connection lifecycle states
    "ThreadPool",       # Worker threads
]
