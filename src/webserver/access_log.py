"""
=============================================================================
ACCESS LOGGING
=============================================================================

One log entry per answered connection, on the "webserver.access" logger.

    TEXT FORMAT (default):
    ┌─────────────────────────────────────────────────────────────────────┐
    │ 127.0.0.1 - - [18/Oct/2026:10:55:36 +0000] "GET /a.html HTTP/1.1"   │
    │     200 42 1.37ms                                                   │
    └─────────────────────────────────────────────────────────────────────┘

    JSON FORMAT (for log aggregators):
    ┌─────────────────────────────────────────────────────────────────────┐
    │ {"connection_id": "a1b2c3d4", "client_ip": "127.0.0.1",            │
    │  "request_line": "GET /a.html HTTP/1.1", "status_code": 200,        │
    │  "bytes_sent": 181, "duration_ms": 1.37, "timestamp": "..."}        │
    └─────────────────────────────────────────────────────────────────────┘

A request without a recognizable request line is logged as "-".
Logging is best-effort and never changes what is sent to the client.

=============================================================================
"""

import json
import logging
import time
from dataclasses import dataclass


logger = logging.getLogger("webserver.access")


@dataclass
class AccessLog:
    """Structured log entry for one connection."""

    connection_id: str
    client_ip: str
    request_line: str
    status_code: int
    bytes_sent: int
    duration_ms: float
    timestamp: str

    def to_dict(self) -> dict:
        return {
            "connection_id": self.connection_id,
            "client_ip": self.client_ip,
            "request_line": self.request_line,
            "status_code": self.status_code,
            "bytes_sent": self.bytes_sent,
            "duration_ms": round(self.duration_ms, 2),
            "timestamp": self.timestamp,
        }

    def to_text(self) -> str:
        """Apache common-log style line."""
        return (
            f'{self.client_ip} - - [{self.timestamp}] '
            f'"{self.request_line}" {self.status_code} '
            f'{self.bytes_sent} {self.duration_ms:.2f}ms'
        )


def log_access(
    connection_id: str,
    client_ip: str,
    request_line: str,
    status_code: int,
    bytes_sent: int,
    duration_ms: float,
    log_format: str = "text",
) -> AccessLog:
    """
    Build and emit an access log entry.

    Returns:
        The entry that was logged.
    """
    entry = AccessLog(
        connection_id=connection_id,
        client_ip=client_ip,
        request_line=request_line or "-",
        status_code=int(status_code),
        bytes_sent=bytes_sent,
        duration_ms=duration_ms,
        timestamp=time.strftime("%d/%b/%Y:%H:%M:%S %z"),
    )

    if log_format == "json":
        logger.info(json.dumps(entry.to_dict()))
    else:
        logger.info(entry.to_text())

    return entry


def configure_logging(level: str = "INFO"):
    """
    Configure the root logger for command-line use.

    Library users are expected to configure logging themselves; the
    server never calls this on its own.
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)

    logging.basicConfig(
        level=numeric_level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    logging.getLogger("webserver").setLevel(numeric_level)
