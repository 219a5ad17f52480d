"""
=============================================================================
HTTP REQUEST PARSER
=============================================================================

Turns the raw bytes read from a connection into a small summary of the
request: is it a GET, which path does it name, is the version HTTP/1.x,
was there a Host header, and did the header block end properly.

=============================================================================
WHAT WE LOOK AT
=============================================================================

    ┌─────────────────────────────────────────────────────────────────┐
    │  GET /index.html HTTP/1.1\r\n       → method, path, version     │
    │  └─┘ └─────────┘ └──────┘                                      │
    │  Host: localhost:8080\r\n           → Host present              │
    │  User-Agent: curl/8.4.0\r\n         → ignored                   │
    │  \r\n                               → header block terminated   │
    └─────────────────────────────────────────────────────────────────┘

Only five facts are needed to answer a static file request, so no header
map is built. Each line is inspected on its own and the facts are folded
into a ParsedRequest as lines arrive:

    feed_line("GET /index.html HTTP/1.1\r")
        method_is_get = True
        path = "index.html"
        http_version_ok = True

    feed_line("Host: localhost\r")
        host_header_present = True

    feed_line("\r")
        headers_terminated = True   (later lines are ignored)

=============================================================================
SUBSTRING MATCHING
=============================================================================

Lines are classified with substring containment, not exact tokens:

    "Referer: http://x/GETting-started\r"   → treated as a request line!
    "X-Ghost: 1\r"                          → NOT a Host header ("Ghost"
                                               contains "host", but the
                                               match is case-sensitive)
    "X-Hostname: a\r"                       → counts as a Host header

=============================================================================
LINE ASSEMBLY
=============================================================================

TCP delivers a byte stream, so a single recv() can end in the middle of a
line. LineAssembler keeps the unfinished tail in a bytearray and only
hands out complete lines (split on LF, CR kept):

    recv() → b"GET /a HT"           → no lines yet
    recv() → b"TP/1.1\r\nHost: x"   → "GET /a HTTP/1.1\r"
    recv() → b"\r\n\r\n"            → "Host: x\r", "\r"

=============================================================================
"""

from dataclasses import dataclass
from typing import Iterator, List


# Every byte maps to exactly one character, so no input can fail to decode.
LINE_ENCODING = "iso-8859-1"

HTTP_VERSION_PREFIX = "HTTP/1."


@dataclass
class ParsedRequest:
    """
    Facts collected from one request's header block.

    Attributes:
        method_is_get: A line containing "GET" was seen.
        path: Request target with its leading separator stripped.
        http_version_ok: The version token starts with "HTTP/1.".
        host_header_present: A line containing "Host" was seen.
        headers_terminated: A line consisting solely of CR was seen.
        request_line: Last request line seen (for access logs).
    """

    method_is_get: bool = False
    path: str = ""
    http_version_ok: bool = False
    host_header_present: bool = False
    headers_terminated: bool = False
    request_line: str = ""

    @property
    def is_well_formed(self) -> bool:
        """True when all four checks passed."""
        return (
            self.method_is_get
            and self.http_version_ok
            and self.host_header_present
            and self.headers_terminated
        )


class RequestParser:
    """
    Incremental, line-oriented request parser.

    The parser never raises on bad input: anything it cannot make sense of
    simply leaves the corresponding flag False, which later turns into a
    400 Bad Request.

    Usage:
        parser = RequestParser()
        for line in lines:
            parser.feed_line(line)
        request = parser.result()
    """

    def __init__(self):
        self._request = ParsedRequest()

    @property
    def headers_complete(self) -> bool:
        """True once the blank terminator line has been fed."""
        return self._request.headers_terminated

    def feed_line(self, line: str) -> None:
        """
        Fold one line into the parse state.

        Args:
            line: Bytes since the previous LF, decoded, including any
                  trailing CR and excluding the LF itself.
        """
        request = self._request

        # Nothing after the header block is part of the request we handle
        if request.headers_terminated:
            return

        if "GET" in line:
            request.method_is_get = True
            request.request_line = line.rstrip("\r")
            self._parse_request_line(line)
        elif "Host" in line:
            request.host_header_present = True

        if line == "\r":
            request.headers_terminated = True

    def _parse_request_line(self, line: str) -> None:
        # ─────────────────────────────────────────────────────────────────
        # SPLIT "GET /path HTTP/1.1\r" ON SINGLE SPACES
        # ─────────────────────────────────────────────────────────────────
        # The version token keeps its trailing CR; startswith() does not
        # care. A short line yields an empty path and a failed version
        # check instead of an IndexError.
        tokens = line.split(" ")

        target = tokens[1] if len(tokens) > 1 else ""
        self._request.path = target[1:]

        if len(tokens) > 2:
            self._request.http_version_ok = tokens[2].startswith(HTTP_VERSION_PREFIX)
        else:
            self._request.http_version_ok = False

    def result(self) -> ParsedRequest:
        """Return the accumulated request summary."""
        return self._request


class LineAssembler:
    """
    Splits a byte stream into LF-terminated lines.

    Incomplete trailing data stays buffered until more bytes arrive. Data
    that never gets its LF (the peer closed mid-line) is never returned.
    """

    def __init__(self):
        self._buffer = bytearray()

    def feed(self, data: bytes) -> Iterator[str]:
        """
        Add received bytes and yield every line they complete.

        Yields:
            Decoded lines with the LF removed (a trailing CR is kept).
        """
        self._buffer += data

        start = 0
        while True:
            end = self._buffer.find(b"\n", start)
            if end == -1:
                break
            yield self._buffer[start:end].decode(LINE_ENCODING)
            start = end + 1

        if start:
            del self._buffer[:start]

    @property
    def pending(self) -> int:
        """Number of buffered bytes not yet part of a complete line."""
        return len(self._buffer)


def split_lines(data: bytes) -> List[str]:
    """Split a complete byte string into lines the way LineAssembler would."""
    return list(LineAssembler().feed(data))


def parse_request(data: bytes) -> ParsedRequest:
    """
    Parse a complete request held in memory.

    Convenience wrapper used by tests and tools; the server itself feeds
    lines incrementally as they are received.

    Example:
        >>> req = parse_request(b"GET /a.txt HTTP/1.1\\r\\nHost: x\\r\\n\\r\\n")
        >>> req.path, req.is_well_formed
        ('a.txt', True)
    """
    parser = RequestParser()
    for line in split_lines(data):
        parser.feed_line(line)
    return parser.result()
