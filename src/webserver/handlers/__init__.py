"""
Request handlers.

Only static files are served: FileResolver maps a request path to a file
under the document root.
"""

from .static import FileOutcome, FileResolver

__all__ = ["FileOutcome", "FileResolver"]
