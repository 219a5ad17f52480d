"""
=============================================================================
HTTP RESPONSE BUILDER
=============================================================================

Maps the outcome of a request to one of three fixed response shapes.

=============================================================================
PRECEDENCE
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   request well-formed?  ──no──►  400 Bad Request                    │
    │          │                                                           │
    │         yes                                                          │
    │          │                                                           │
    │   file found?           ──no──►  404 Not Found                      │
    │          │                                                           │
    │         yes                                                          │
    │          │                                                           │
    │          └────────────────────►  200 OK  (+ file metadata)          │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

A malformed request is answered with 400 even when the file exists.

=============================================================================
HEADER SETS (order is significant)
=============================================================================

    400 / 404                        200
    ─────────                        ───
    Date                             Date
    Server                           Server
    Connection: close                Last-Modified
                                     Content-Length
                                     Content-Type
                                     Connection: close

Every response closes the connection; there is no keep-alive.

=============================================================================
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Optional, Tuple

from .status_codes import HTTPStatus


HTTP_VERSION = "HTTP/1.1"
HEADER_ENCODING = "iso-8859-1"
CRLF = "\r\n"

_DAYS = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]
_MONTHS = ["Jan", "Feb", "Mar", "Apr", "May", "Jun",
           "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]


@dataclass
class ResponseDescriptor:
    """
    Status line plus ordered header block for one response.

    The body (file bytes for a 200) is streamed separately by the
    connection worker and is not part of this object.
    """

    status: HTTPStatus
    headers: List[Tuple[str, str]] = field(default_factory=list)
    version: str = HTTP_VERSION

    @property
    def status_line(self) -> str:
        """Example: "HTTP/1.1 404 Not Found"."""
        return f"{self.version} {int(self.status)} {self.status.phrase}"

    def get_header(self, name: str) -> Optional[str]:
        """Return the first header value with this name, if any."""
        for key, value in self.headers:
            if key.lower() == name.lower():
                return value
        return None

    def to_bytes(self) -> bytes:
        """
        Serialize to the wire format.

            HTTP/1.1 200 OK\\r\\n
            Date: ...\\r\\n
            ...
            Connection: close\\r\\n
            \\r\\n
        """
        lines = [self.status_line]
        lines.extend(f"{name}: {value}" for name, value in self.headers)
        return (CRLF.join(lines) + CRLF + CRLF).encode(HEADER_ENCODING)


def format_http_date(dt: datetime) -> str:
    """
    Format a datetime as an HTTP-date (RFC 7231 IMF-fixdate).

    Example: "Thu, 15 Jan 2026 12:30:45 GMT"

    Day and month names come from fixed tables so the output does not
    depend on the process locale. Naive datetimes are taken as UTC.
    """
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    dt = dt.astimezone(timezone.utc)

    return (
        f"{_DAYS[dt.weekday()]}, "
        f"{dt.day:02d} {_MONTHS[dt.month - 1]} {dt.year} "
        f"{dt.hour:02d}:{dt.minute:02d}:{dt.second:02d} GMT"
    )


def build_response(
    well_formed: bool,
    outcome,
    server_name: str,
    now: Optional[datetime] = None,
) -> ResponseDescriptor:
    """
    Choose and build the response for a request.

    Args:
        well_formed: Whether the parsed request passed every check.
        outcome: FileOutcome from the resolver, or None when the file
                 was not looked up (malformed request).
        server_name: Value of the Server header.
        now: Current time; defaults to the system clock.

    Returns:
        ResponseDescriptor with headers in wire order.
    """
    date = format_http_date(now or datetime.now(timezone.utc))
    headers = [("Date", date), ("Server", server_name)]

    if not well_formed:
        status = HTTPStatus.BAD_REQUEST
    elif outcome is None or not outcome.found:
        status = HTTPStatus.NOT_FOUND
    else:
        status = HTTPStatus.OK
        headers.extend([
            ("Last-Modified", format_http_date(outcome.modified_time)),
            ("Content-Length", str(outcome.size)),
            ("Content-Type", outcome.content_type),
        ])

    headers.append(("Connection", "close"))
    return ResponseDescriptor(status=status, headers=headers)
