"""
=============================================================================
SERVER CONFIGURATION
=============================================================================

Centralized configuration for the web server.

=============================================================================
CONFIGURATION SOURCES
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    CONFIGURATION HIERARCHY                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   Priority (highest to lowest):                                     │
    │                                                                      │
    │   1. Command-line arguments                                         │
    │      └── python -m webserver --port 3000                           │
    │                                                                      │
    │   2. Environment variables                                          │
    │      └── HTTP_PORT=3000 python -m webserver                        │
    │                                                                      │
    │   3. Default values (in this dataclass)                             │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
TIMEOUTS AT A GLANCE
=============================================================================

    accept_timeout   How long accept() blocks before the accept loop
                     re-checks the shutdown flag.

    timeout          How long a worker waits for more request bytes
                     before treating the header block as finished.

    drain_timeout    How long shutdown waits for in-flight connections
                     before cancelling them.

=============================================================================
"""

import os
import logging
from dataclasses import dataclass
from typing import Optional


logger = logging.getLogger(__name__)

LOG_FORMATS = ("text", "json")


@dataclass
class ServerConfig:
    """
    Configuration for the web server.

    =========================================================================
    CONFIGURATION GROUPS
    =========================================================================

    NETWORK      host, port, backlog, accept_timeout
    CONNECTIONS  header_buffer_size, file_chunk_size, timeout
    FILES        document_root
    THREADING    min_workers, max_workers, queue_size, drain_timeout
    LOGGING      log_level, log_format
    IDENTITY     server_name

    =========================================================================
    """

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    host: str = "127.0.0.1"
    """
    The IP address to bind to.
    - "127.0.0.1" - Localhost only
    - "0.0.0.0" - All network interfaces
    """

    port: int = 8080
    """
    The port number to listen on. Expected to be above 1023 so the server
    does not need root. 0 asks the OS for a free port (tests).
    """

    backlog: int = 128
    """Maximum number of connections queued by the kernel before accept()."""

    accept_timeout: float = 2.0
    """Seconds accept() may block before the shutdown flag is re-checked."""

    # ─────────────────────────────────────────────────────────────────────
    # CONNECTION SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    header_buffer_size: int = 1024
    """Bytes requested per recv() while reading the header block."""

    file_chunk_size: int = 32 * 1024
    """Bytes read from disk and written to the socket per body chunk."""

    timeout: Optional[float] = 30.0
    """
    Per-connection read timeout in seconds. When no byte arrives for this
    long, the request is judged on what has been received so far.
    None = wait until the peer closes its write side.
    """

    # ─────────────────────────────────────────────────────────────────────
    # FILES
    # ─────────────────────────────────────────────────────────────────────

    document_root: str = "."
    """Directory request paths are resolved against."""

    # ─────────────────────────────────────────────────────────────────────
    # THREAD POOL SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    min_workers: int = 4
    """Worker threads created at startup."""

    max_workers: int = 32
    """Upper bound the pool may grow to under load."""

    queue_size: int = 256
    """Accepted connections that may wait for a free worker."""

    drain_timeout: float = 5.0
    """Seconds shutdown waits for in-flight connections."""

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING
    # ─────────────────────────────────────────────────────────────────────

    log_level: str = "INFO"
    """Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)."""

    log_format: str = "text"
    """Access log format: 'text' (combined-log style) or 'json'."""

    # ─────────────────────────────────────────────────────────────────────
    # SERVER IDENTITY
    # ─────────────────────────────────────────────────────────────────────

    server_name: str = "Missed-Connections"
    """Value of the Server response header."""

    @classmethod
    def from_env(cls) -> "ServerConfig":
        """
        Create configuration from environment variables.

        HTTP_HOST           Server host (default: 127.0.0.1)
        HTTP_PORT           Server port (default: 8080)
        HTTP_DOC_ROOT       Document root (default: .)
        HTTP_WORKERS        Max worker threads (default: 32)
        HTTP_TIMEOUT        Connection read timeout in seconds (default: 30)
        HTTP_DRAIN_TIMEOUT  Shutdown drain deadline in seconds (default: 5)
        HTTP_LOG_LEVEL      Logging level (default: INFO)
        HTTP_LOG_FORMAT     Access log format (default: text)
        """
        return cls(
            host=os.getenv("HTTP_HOST", "127.0.0.1"),
            port=int(os.getenv("HTTP_PORT", "8080")),
            document_root=os.getenv("HTTP_DOC_ROOT", "."),
            max_workers=int(os.getenv("HTTP_WORKERS", "32")),
            timeout=float(os.getenv("HTTP_TIMEOUT", "30")),
            drain_timeout=float(os.getenv("HTTP_DRAIN_TIMEOUT", "5")),
            log_level=os.getenv("HTTP_LOG_LEVEL", "INFO"),
            log_format=os.getenv("HTTP_LOG_FORMAT", "text"),
        )

    def validate(self) -> None:
        """
        Validate configuration values.

        Called once at server construction so a bad value fails fast
        instead of surfacing on the first connection.

        Raises:
            ValueError: If any value is out of range.
        """
        if not 0 <= self.port < 65536:
            raise ValueError(f"Invalid port: {self.port}. Must be 0-65535.")

        if 0 < self.port < 1024:
            logger.warning(f"Port {self.port} is privileged and may require root")

        if self.min_workers < 1:
            raise ValueError("min_workers must be >= 1")

        if self.max_workers < self.min_workers:
            raise ValueError("max_workers must be >= min_workers")

        if self.queue_size < 1:
            raise ValueError("queue_size must be >= 1")

        if self.header_buffer_size < 1:
            raise ValueError("header_buffer_size must be >= 1")

        if self.file_chunk_size < 1:
            raise ValueError("file_chunk_size must be >= 1")

        if self.timeout is not None and self.timeout <= 0:
            raise ValueError("timeout must be > 0")

        if self.accept_timeout <= 0:
            raise ValueError("accept_timeout must be > 0")

        if self.drain_timeout < 0:
            raise ValueError("drain_timeout must be >= 0")

        if self.log_format not in LOG_FORMATS:
            raise ValueError(f"log_format must be one of {', '.join(LOG_FORMATS)}")
