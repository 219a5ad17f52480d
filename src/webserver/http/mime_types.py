"""
=============================================================================
CONTENT TYPE GUESSING
=============================================================================

Best-effort Content-Type detection for served files.

    1. Look the extension up in MIME_TYPES (fast, predictable)
    2. Fall back to the platform's mimetypes database
    3. Give up and return "" (NOT an error: the file is still served,
       the Content-Type header is just empty)

    ┌──────────────────────┬─────────────────────────────┐
    │  index.html          │  text/html                  │
    │  logo.PNG            │  image/png  (case-folded)   │
    │  archive.tar.gz      │  application/gzip           │
    │  README              │  ""                         │
    └──────────────────────┴─────────────────────────────┘

=============================================================================
"""

import mimetypes
import os


# Extensions are lowercase, with the dot.
MIME_TYPES = {
    # Text
    ".html": "text/html",
    ".htm": "text/html",
    ".css": "text/css",
    ".js": "text/javascript",
    ".mjs": "text/javascript",
    ".json": "application/json",
    ".xml": "application/xml",
    ".txt": "text/plain",
    ".md": "text/markdown",
    ".csv": "text/csv",

    # Images
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".gif": "image/gif",
    ".svg": "image/svg+xml",
    ".ico": "image/x-icon",
    ".webp": "image/webp",
    ".bmp": "image/bmp",

    # Fonts
    ".woff": "font/woff",
    ".woff2": "font/woff2",
    ".ttf": "font/ttf",
    ".otf": "font/otf",

    # Audio / video
    ".mp3": "audio/mpeg",
    ".wav": "audio/wav",
    ".ogg": "audio/ogg",
    ".mp4": "video/mp4",
    ".webm": "video/webm",

    # Documents and archives
    ".pdf": "application/pdf",
    ".zip": "application/zip",
    ".tar": "application/x-tar",
    ".gz": "application/gzip",
    ".wasm": "application/wasm",
}

UNKNOWN_CONTENT_TYPE = ""


def guess_content_type(path: str) -> str:
    """
    Guess the Content-Type of a file from its name.

    Args:
        path: File path or bare file name.

    Returns:
        A MIME type such as "text/html", or "" when nothing matches.

    Examples:
        >>> guess_content_type("docs/index.HTML")
        'text/html'
        >>> guess_content_type("Makefile")
        ''
    """
    extension = os.path.splitext(path)[1].lower()
    if extension in MIME_TYPES:
        return MIME_TYPES[extension]

    guessed, _encoding = mimetypes.guess_type(path, strict=False)
    return guessed or UNKNOWN_CONTENT_TYPE
