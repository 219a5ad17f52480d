"""
=============================================================================
WEBSERVER - Concurrent HTTP/1.x Static File Server
=============================================================================

Serves files from a document root over raw sockets, one request per
connection, with a worker thread per in-flight connection and a bounded,
cooperative shutdown.

=============================================================================
PACKAGE STRUCTURE
=============================================================================

    webserver/
    ├── __init__.py          # This file - package exports
    ├── __main__.py          # CLI entry point (python -m webserver)
    ├── server.py            # WebServer: connection worker + shutdown
    ├── config.py            # ServerConfig dataclass
    ├── access_log.py        # Access log entries, logging setup
    ├── core/
    │   ├── state.py         # ServerState shutdown flag
    │   ├── socket_server.py # Listening socket + accept loop
    │   ├── connection.py    # Client socket wrapper
    │   └── thread_pool.py   # Elastic worker pool with drain/cancel
    ├── http/
    │   ├── request.py       # Line-oriented request parser
    │   ├── response.py      # Status line + header block builder
    │   ├── status_codes.py  # 200 / 400 / 404
    │   └── mime_types.py    # Content-Type guessing
    └── handlers/
        └── static.py        # FileResolver

=============================================================================
QUICK START
=============================================================================

    $ python -m webserver --port 8080 --root ./public

    $ printf 'GET /index.html HTTP/1.1\\r\\nHost: x\\r\\n\\r\\n' | nc -N localhost 8080
    HTTP/1.1 200 OK
    Date: Sun, 18 Oct 2026 10:00:00 GMT
    Server: Missed-Connections
    Last-Modified: ...
    Content-Length: 42
    Content-Type: text/html
    Connection: close

=============================================================================
"""

__version__ = "1.0.0"

from .server import WebServer, create_server
from .config import ServerConfig
from .core import ServerState

__all__ = ["WebServer", "create_server", "ServerConfig", "ServerState", "__version__"]
