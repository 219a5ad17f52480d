"""
=============================================================================
FILE RESOURCE RESOLVER
=============================================================================

Looks up the file named by a request and describes it for the response
headers.

=============================================================================
RESOLUTION
=============================================================================

    request path "docs/a.txt"
          │
          ▼
    os.path.join(document_root, "docs/a.txt")     (no normalization)
          │
          ▼
    open(..., "rb") + fstat()
          │
          ├── success → FileOutcome(found=True, size, mtime, content_type)
          │
          └── OSError → FileOutcome(found=False)
                        (missing, permission denied, is a directory...
                         all end up as 404 Not Found)

Metadata is read with fstat() on the handle that was opened, so the size
sent in Content-Length describes the same file whose bytes are streamed.

=============================================================================
SECURITY NOTE
=============================================================================

The path is NOT canonicalized and NOT confined to the document root:

    GET /../secret.txt   → document_root/../secret.txt
    GET //etc/hostname   → /etc/hostname   (absolute path wins the join)

This server is meant for trusted networks and test rigs. Do not expose
it to untrusted clients.

=============================================================================
"""

import logging
import os
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import BinaryIO, Iterator, Optional, Tuple

from ..http.mime_types import guess_content_type


logger = logging.getLogger(__name__)


@dataclass
class FileOutcome:
    """
    Result of resolving a request path.

    Attributes:
        found: The file could be opened for reading.
        size: Size in bytes (found only).
        modified_time: Last modification time, UTC (found only).
        content_type: Guessed MIME type; "" when it could not be guessed.
        path: Filesystem path that was tried.
    """

    found: bool
    size: int = 0
    modified_time: Optional[datetime] = None
    content_type: str = ""
    path: str = ""


class FileResolver:
    """
    Resolves request paths against a document root.

    Usage:
        resolver = FileResolver("./public")

        outcome = resolver.resolve("index.html")     # metadata only

        with resolver.open("index.html") as (outcome, fileobj):
            if outcome.found:
                data = fileobj.read()
        # file closed here
    """

    def __init__(self, root_dir: str = "."):
        self.root_dir = root_dir

    def full_path(self, path: str) -> str:
        """Join a request path onto the document root as given."""
        return os.path.join(self.root_dir, path)

    def resolve(self, path: str) -> FileOutcome:
        """Describe the file at `path` without keeping it open."""
        with self.open(path) as (outcome, _fileobj):
            return outcome

    @contextmanager
    def open(self, path: str) -> Iterator[Tuple[FileOutcome, Optional[BinaryIO]]]:
        """
        Open the file at `path` for streaming.

        Yields:
            (outcome, fileobj). fileobj is None when outcome.found is
            False. The file is closed when the block exits, whatever
            happens inside it.
        """
        full_path = self.full_path(path)
        opened = self._open(full_path)

        if opened is None:
            yield FileOutcome(found=False, path=full_path), None
            return

        fileobj, stat = opened
        with fileobj:
            outcome = FileOutcome(
                found=True,
                size=stat.st_size,
                modified_time=datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc),
                content_type=guess_content_type(full_path),
                path=full_path,
            )
            yield outcome, fileobj

    def _open(self, full_path: str) -> Optional[Tuple[BinaryIO, os.stat_result]]:
        try:
            fileobj = open(full_path, "rb")
        except OSError as e:
            logger.debug(f"Cannot open {full_path!r}: {e}")
            return None

        try:
            stat = os.fstat(fileobj.fileno())
        except OSError as e:
            logger.debug(f"Cannot stat {full_path!r}: {e}")
            fileobj.close()
            return None

        return fileobj, stat
