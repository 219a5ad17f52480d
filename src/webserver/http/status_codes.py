"""
=============================================================================
HTTP STATUS CODES
=============================================================================

The server speaks a very small slice of HTTP, so only the three status
codes it can ever emit are defined here:

    ┌───────────┬──────────────────────────────────────────────────────────┐
    │   Code    │  When                                                    │
    ├───────────┼──────────────────────────────────────────────────────────┤
    │  200      │  Well-formed GET, file resolved                          │
    │  400      │  Missing GET / version / Host / blank terminator line    │
    │  404      │  Well-formed GET, file could not be opened               │
    └───────────┴──────────────────────────────────────────────────────────┘

=============================================================================
"""

from enum import IntEnum


class HTTPStatus(IntEnum):
    """
    HTTP status codes emitted by the server.

    Extends IntEnum, so members compare equal to plain integers:

        >>> HTTPStatus.NOT_FOUND == 404
        True
        >>> HTTPStatus.NOT_FOUND.phrase
        'Not Found'
    """

    OK = 200             # File found, body follows
    BAD_REQUEST = 400    # Request failed one of the well-formedness checks
    NOT_FOUND = 404      # Missing or unreadable file

    @property
    def phrase(self) -> str:
        """Reason phrase used in the status line."""
        return _STATUS_PHRASES.get(self, "Unknown")


_STATUS_PHRASES = {
    HTTPStatus.OK: "OK",
    HTTPStatus.BAD_REQUEST: "Bad Request",
    HTTPStatus.NOT_FOUND: "Not Found",
}
