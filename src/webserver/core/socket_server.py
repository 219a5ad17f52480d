"""
=============================================================================
LOW-LEVEL TCP SOCKET SERVER (ACCEPTOR)
=============================================================================

Owns the listening socket: binds it, accepts connections in a loop, and
hands each accepted connection to a callback.

SOCKET LIFECYCLE (Server Side):
────────────────────────────────

    1. socket()    Create the listening socket        ┐
    2. bind()      Reserve IP:PORT                    ├─ in __init__
    3. listen()    Let the kernel queue connections   ┘
    4. accept()    Take one queued connection         ─ in run(), looped
    5. close()     Stop listening                     ─ close()

=============================================================================
BINDING AT CONSTRUCTION
=============================================================================

The socket is bound in the constructor, so "cannot use this port" is
known before anything else starts:

    acceptor = SocketServer(config, state)
    if not acceptor.is_listening:
        ...  # bind_error says why; the error was logged once already

An acceptor that failed to bind is inert: run() refuses to start.

=============================================================================
COOPERATIVE SHUTDOWN
=============================================================================

accept() is given a timeout so the loop wakes up regularly to look at
the shared shutdown flag:

    while not state.is_shutting_down:
        try:
            accept()            ← blocks for at most accept_timeout
        except timeout:
            continue            ← normal, just re-check the flag

close() additionally calls shutdown(SHUT_RDWR) on the listening socket.
On Linux that wakes a thread blocked in accept() right away and makes
the port refuse new connections immediately, instead of after the next
accept timeout.

=============================================================================
"""

import socket
import logging
from typing import Callable, Optional, Tuple

from ..config import ServerConfig
from .connection import Connection
from .state import ServerState


logger = logging.getLogger(__name__)


class SocketServer:
    """
    Listening socket plus accept loop.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                      SocketServer Internals                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │    __init__()        _create_socket() → bind() → listen()            │
    │                      OSError → log once, stay inert                  │
    │                                                                      │
    │    run(handler)      while not state.is_shutting_down:               │
    │                          accept()  (bounded wait)                    │
    │                          Connection(...)                             │
    │                          handler(conn)   fire-and-forget             │
    │                      close()                                         │
    │                                                                      │
    │    close()           shutdown(SHUT_RDWR) + close(), idempotent       │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘
    """

    def __init__(self, config: ServerConfig, state: ServerState):
        """
        Create, bind and listen.

        Args:
            config: Host, port, backlog and timeouts.
            state: Shared shutdown flag consulted by the accept loop.
        """
        self.config = config
        self.state = state

        self._socket: Optional[socket.socket] = None
        self.bind_error: Optional[OSError] = None

        sock = self._create_socket()
        try:
            # Ports < 1024 need root; "Address already in use" means
            # another process owns the port
            sock.bind((config.host, config.port))
            sock.listen(config.backlog)
        except OSError as e:
            logger.error(f"Failed to bind to {config.host}:{config.port}: {e}")
            sock.close()
            self.bind_error = e
            return

        self._socket = sock
        logger.info(f"Listening on {self.address[0]}:{self.address[1]}")

    def _create_socket(self) -> socket.socket:
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)

        # Allow an immediate restart while old connections sit in TIME_WAIT
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)

        sock.settimeout(self.config.accept_timeout)
        return sock

    @property
    def is_listening(self) -> bool:
        return self._socket is not None

    @property
    def address(self) -> Tuple[str, int]:
        """The actual bound (host, port). Useful with port=0."""
        if self._socket is None:
            return (self.config.host, self.config.port)
        host, port = self._socket.getsockname()[:2]
        return (host, port)

    def run(self, connection_handler: Callable[[Connection], None]):
        """
        Accept connections until shutdown begins.

        Blocks the calling thread. Per-connection problems never escape
        this loop; only the shutdown flag ends it.

        Args:
            connection_handler: Called with each accepted Connection. It
                                should return quickly (hand the
                                connection to a worker pool).

        Raises:
            RuntimeError: If the socket failed to bind. A socket already
                          closed by shutdown makes run() return at once.
        """
        listener = self._socket
        if listener is None:
            if self.bind_error is not None:
                raise RuntimeError("Server socket is not bound; check is_listening before run()")
            return  # Already closed by shutdown

        try:
            while not self.state.is_shutting_down:
                try:
                    client_socket, client_address = listener.accept()
                except socket.timeout:
                    continue
                except OSError as e:
                    if self.state.is_shutting_down:
                        break  # close() pulled the socket out from under us
                    logger.debug(f"Transient accept error: {e}")
                    continue

                logger.debug(f"Accepted connection from {client_address[0]}:{client_address[1]}")

                try:
                    conn = Connection(
                        socket=client_socket,
                        address=client_address,
                        buffer_size=self.config.header_buffer_size,
                        timeout=self.config.timeout,
                    )
                    connection_handler(conn)
                except Exception as e:
                    logger.exception(f"Failed to dispatch connection from {client_address[0]}: {e}")
                    client_socket.close()
        finally:
            self.close()

        logger.info("Accept loop stopped")

    def close(self):
        """Stop listening. Safe to call more than once, from any thread."""
        sock, self._socket = self._socket, None
        if sock is None:
            return

        try:
            sock.shutdown(socket.SHUT_RDWR)
        except OSError:
            pass  # Not supported or already shut down

        try:
            sock.close()
        except OSError:
            pass
