"""
=============================================================================
CONNECTION MANAGEMENT
=============================================================================

Wraps one accepted client socket with the small API the connection worker
needs: read the request bytes, send the response, close.

=============================================================================
ONE CONNECTION, ONE REQUEST
=============================================================================

Connections are never reused. Every connection goes through the same
straight line of states and then the socket is released:

    ┌─────┐   ┌─────────┐   ┌────────────┐   ┌─────────┐   ┌────────┐
    │ NEW │──►│ READING │──►│ PROCESSING │──►│ WRITING │──►│ CLOSED │
    └─────┘   └─────────┘   └────────────┘   └─────────┘   └────────┘
                  │               │                │            ▲
                  └───────────────┴────────────────┴── error ───┘

=============================================================================
WHEN IS THE REQUEST "DONE"?
=============================================================================

TCP delivers a byte stream, and a request without a body carries no
length. read_chunks() stops yielding when any of these happen:

    1. recv() returns b""       The peer closed its write side
    2. recv() times out         No more bytes arrived within `timeout`
    3. The caller stops         The worker saw the blank terminator line
       iterating

=============================================================================
CANCELLATION
=============================================================================

A worker blocked in recv() or sendall() cannot be interrupted directly.
abort() calls shutdown(SHUT_RDWR) on the socket from another thread,
which makes the blocked call return (b"" or an OSError) so the worker
falls through to close().

=============================================================================
CLOSING
=============================================================================

close() sends FIN, discards request bytes that already arrived, then
releases the socket. It never waits for the client: a worker spends no
time on a client that keeps its side open after the response. Bytes the
client sends after close() are answered with a RST by the kernel.

=============================================================================
"""

import socket
import time
import logging
from enum import Enum
from dataclasses import dataclass, field
from typing import Iterator, Optional
import uuid


logger = logging.getLogger(__name__)

# Upper bound on the time close() spends discarding unread request bytes
DRAIN_SECONDS = 0.5


class ConnectionState(Enum):
    """Connection lifecycle states (for logging and debugging)."""
    NEW = "new"                # Just accepted
    READING = "reading"        # Reading request bytes
    PROCESSING = "processing"  # Resolving the file, building the response
    WRITING = "writing"        # Sending headers / body
    CLOSING = "closing"        # Shutdown sequence in progress
    CLOSED = "closed"          # Socket released


@dataclass
class Connection:
    """
    Represents a single-use client connection.

    Attributes:
        socket: The accepted client socket.
        address: Client's (ip, port) tuple.
        id: Short identifier used in log lines.
        state: Current lifecycle state.
        buffer_size: Bytes requested per recv().
        timeout: Read/write timeout in seconds (None = block).
        bytes_sent: Total bytes written so far.
        aborted: abort() was called (shutdown cancelled this connection).
    """

    socket: socket.socket
    address: tuple

    id: str = field(default_factory=lambda: str(uuid.uuid4())[:8])
    state: ConnectionState = ConnectionState.NEW
    created_at: float = field(default_factory=time.time)

    buffer_size: int = 1024
    timeout: Optional[float] = 30.0

    bytes_sent: int = 0
    aborted: bool = False

    def __post_init__(self):
        # Accepted sockets may inherit the listener's accept timeout
        self.socket.settimeout(self.timeout)

    @property
    def client_ip(self) -> str:
        return self.address[0]

    @property
    def age(self) -> float:
        """Connection age in seconds."""
        return time.time() - self.created_at

    # =========================================================================
    # READING
    # =========================================================================

    def read_chunks(self) -> Iterator[bytes]:
        """
        Yield request bytes as they arrive.

        Stops at end of stream or when the read times out. A connection
        reset by the peer is treated like end of stream.
        """
        self.state = ConnectionState.READING

        while True:
            try:
                chunk = self.socket.recv(self.buffer_size)
            except socket.timeout:
                logger.debug(f"[{self.id}] Read timed out, no more request bytes")
                return
            except (ConnectionResetError, BrokenPipeError):
                logger.debug(f"[{self.id}] Connection reset while reading")
                return

            if not chunk:
                return

            yield chunk

    # =========================================================================
    # WRITING
    # =========================================================================

    def send(self, data: bytes) -> bool:
        """
        Send all of `data`.

        sendall() keeps writing until every byte is handed to the kernel,
        so a successful return means the chunk is fully flushed from our
        side.

        Returns:
            True on success, False if the peer went away.
        """
        self.state = ConnectionState.WRITING

        try:
            self.socket.sendall(data)
        except OSError as e:
            logger.warning(f"[{self.id}] Send failed: {e}")
            return False

        self.bytes_sent += len(data)
        return True

    # =========================================================================
    # CLOSING
    # =========================================================================

    def abort(self):
        """
        Cancel in-flight I/O from another thread.

        Safe to call at any time, including after close(). A connection
        that no worker has started on yet is closed outright.
        """
        self.aborted = True
        try:
            self.socket.shutdown(socket.SHUT_RDWR)
        except OSError:
            pass  # Not connected anymore, nothing to interrupt

        if self.state == ConnectionState.NEW:
            try:
                self.socket.close()
            except OSError:
                pass
            self.state = ConnectionState.CLOSED

    def close(self):
        """
        Close both directions of the connection.

        1. shutdown(SHUT_WR)   Send FIN so the client sees end of response
        2. Discard unread      Unread request bytes would turn close()
                               into a RST that can destroy the response
                               before the client reads it
        3. close()             Release the file descriptor

        Step 2 only reads what has already arrived (non-blocking), so a
        client that keeps its side open does not hold the worker.
        """
        if self.state == ConnectionState.CLOSED:
            return

        self.state = ConnectionState.CLOSING

        try:
            self.socket.shutdown(socket.SHUT_WR)
        except OSError:
            pass  # Already disconnected

        deadline = time.time() + DRAIN_SECONDS
        try:
            self.socket.settimeout(0.0)
            while time.time() < deadline:
                if not self.socket.recv(self.buffer_size):
                    break
        except OSError:
            pass  # BlockingIOError: nothing more buffered

        try:
            self.socket.close()
        except OSError:
            pass

        self.state = ConnectionState.CLOSED
        logger.debug(f"[{self.id}] Connection closed after {self.age:.3f}s, {self.bytes_sent} bytes sent")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
