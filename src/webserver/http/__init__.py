"""
=============================================================================
HTTP PROTOCOL COMPONENTS
=============================================================================

Pure protocol logic with no socket or thread code:

    request.py       Line-oriented request parser → ParsedRequest
    response.py      Outcome → ResponseDescriptor (status line + headers)
    status_codes.py  The three status codes the server can emit
    mime_types.py    Content-Type guessing for served files

=============================================================================
"""

from .status_codes import HTTPStatus
from .request import (
    ParsedRequest,
    RequestParser,
    LineAssembler,
    parse_request,
)
from .response import (
    ResponseDescriptor,
    build_response,
    format_http_date,
)
from .mime_types import guess_content_type

__all__ = [
    "HTTPStatus",
    "ParsedRequest",
    "RequestParser",
    "LineAssembler",
    "parse_request",
    "ResponseDescriptor",
    "build_response",
    "format_http_date",
    "guess_content_type",
]
