"""
pytest configuration and fixtures.
"""

import socket
import threading
from pathlib import Path
from typing import Generator, List, Tuple
import pytest

# Add src to path for imports
import sys
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from webserver import ServerConfig, WebServer


# Exactly 42 bytes
INDEX_HTML = b"<html><body>Hello, world!!!</body></html>\n"


@pytest.fixture
def well_formed_request() -> bytes:
    """Well-formed request for /index.html."""
    return b"GET /index.html HTTP/1.1\r\nHost: x\r\n\r\n"


@pytest.fixture
def doc_root(tmp_path: Path) -> Path:
    """Document root containing a 42-byte index.html."""
    assert len(INDEX_HTML) == 42
    (tmp_path / "index.html").write_bytes(INDEX_HTML)
    (tmp_path / "notes.txt").write_bytes(b"plain text\n")
    (tmp_path / "sub").mkdir()
    (tmp_path / "sub" / "page.html").write_bytes(b"<p>nested</p>")
    return tmp_path


@pytest.fixture
def config(doc_root: Path) -> ServerConfig:
    """Fast-cycling test configuration on an OS-assigned port."""
    return ServerConfig(
        host="127.0.0.1",
        port=0,
        document_root=str(doc_root),
        min_workers=2,
        max_workers=8,
        timeout=2.0,
        accept_timeout=0.2,
        drain_timeout=1.0,
        log_level="WARNING",
    )


class RunningServer:
    """Runs a WebServer's accept loop on a background thread."""

    def __init__(self, server: WebServer):
        self.server = server
        self._thread: threading.Thread = None

    @property
    def port(self) -> int:
        return self.server.address[1]

    def start(self):
        self._thread = threading.Thread(target=self.server.run, daemon=True)
        self._thread.start()

    def stop(self):
        self.server.shutdown()
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=5.0)

    @property
    def thread(self) -> threading.Thread:
        return self._thread


@pytest.fixture
def running_server(config: ServerConfig) -> Generator[RunningServer, None, None]:
    """A started server; shut down after the test."""
    server = WebServer(config)
    assert server.is_listening

    running = RunningServer(server)
    running.start()

    yield running

    running.stop()


def send_request(port: int, data: bytes, half_close: bool = True, timeout: float = 5.0) -> bytes:
    """
    Send raw request bytes and read the whole response.

    With half_close=True the client shuts down its write side after
    sending, which is how the server learns the request is complete.
    """
    with socket.create_connection(("127.0.0.1", port), timeout=timeout) as sock:
        sock.sendall(data)
        if half_close:
            sock.shutdown(socket.SHUT_WR)

        chunks = []
        while True:
            chunk = sock.recv(65536)
            if not chunk:
                break
            chunks.append(chunk)
        return b"".join(chunks)


def split_response(raw: bytes) -> Tuple[str, List[Tuple[str, str]], bytes]:
    """Split a raw response into status line, ordered headers, body."""
    head, _, body = raw.partition(b"\r\n\r\n")
    lines = head.decode("iso-8859-1").split("\r\n")
    headers = []
    for line in lines[1:]:
        name, _, value = line.partition(": ")
        headers.append((name, value))
    return lines[0], headers, body
