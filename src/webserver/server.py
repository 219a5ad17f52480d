"""
=============================================================================
WEB SERVER
=============================================================================

Ties the components together: the acceptor hands connections to the
thread pool, and each worker runs one connection from first byte read to
socket close.

=============================================================================
ARCHITECTURE OVERVIEW
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │                        ┌─────────────────┐                          │
    │                        │    WebServer    │                          │
    │                        └────────┬────────┘                          │
    │            ┌────────────────────┼────────────────────┐              │
    │            ▼                    ▼                    ▼              │
    │    ┌──────────────┐    ┌──────────────┐    ┌──────────────┐        │
    │    │ SocketServer │    │  ThreadPool  │    │ FileResolver │        │
    │    │  (accepts)   │───►│  (workers)   │───►│   (files)    │        │
    │    └──────────────┘    └──────────────┘    └──────────────┘        │
    │            │                                                         │
    │            └──── polls ──── ServerState (shutdown flag)             │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
ONE CONNECTION, START TO FINISH
=============================================================================

    1. READ       recv() chunks → LineAssembler → RequestParser.feed_line()
                  until EOF, read timeout, or the blank terminator line
    2. VERDICT    ParsedRequest.is_well_formed
    3. RESOLVE    only for well-formed requests: FileResolver.open(path)
    4. HEADERS    build_response() → to_bytes() → sendall()
    5. BODY       200 only: file_chunk_size chunks until EOF
    6. CLOSE      file and socket released by `with` blocks, always

A failure in any step ends that connection only. Other connections and
the accept loop never see it.

=============================================================================
SHUTDOWN
=============================================================================

    shutdown()
        │
        ├──► ServerState.begin_shutdown()      (first caller only)
        ├──► close listening socket           (port stops accepting)
        ├──► ThreadPool.shutdown(drain_timeout)
        │        wait for in-flight connections, then abort the rest
        └──► return number of cancelled connections

run() notices the flag within one accept timeout (immediately on Linux,
where closing the listener wakes accept()) and returns.

=============================================================================
"""

import logging
import time
from typing import BinaryIO, Optional, Tuple

from .access_log import log_access
from .config import ServerConfig
from .core import Connection, ConnectionState, ServerState, SocketServer, ThreadPool
from .handlers import FileResolver
from .http import HTTPStatus, LineAssembler, ParsedRequest, RequestParser, build_response


logger = logging.getLogger(__name__)


class WebServer:
    """
    Concurrent static file server, one request per connection.

    =========================================================================
    USAGE
    =========================================================================

        server = WebServer(ServerConfig(port=8080, document_root="./www"))
        if not server.is_listening:
            sys.exit(1)                  # bind failure was already logged

        thread = threading.Thread(target=server.run)
        thread.start()
        ...
        server.shutdown()                # returns within drain_timeout + ~1s
        thread.join()

    =========================================================================
    """

    def __init__(self, config: Optional[ServerConfig] = None, state: Optional[ServerState] = None):
        """
        Create the server and bind its listening socket.

        Args:
            config: Server configuration. Uses defaults if not provided.
            state: Shutdown flag to share with other components. A new
                   one is created if not provided.

        Raises:
            ValueError: If the configuration is invalid.
        """
        self.config = config or ServerConfig()
        self.config.validate()

        self.state = state or ServerState()

        self._resolver = FileResolver(self.config.document_root)

        self._thread_pool = ThreadPool(
            min_workers=self.config.min_workers,
            max_workers=self.config.max_workers,
            queue_size=self.config.queue_size,
        )

        # Binds immediately; check is_listening before run()
        self._socket_server = SocketServer(self.config, self.state)

    @property
    def is_listening(self) -> bool:
        """False if the port could not be bound."""
        return self._socket_server.is_listening

    @property
    def address(self) -> Tuple[str, int]:
        return self._socket_server.address

    @property
    def thread_pool(self) -> ThreadPool:
        return self._thread_pool

    # =========================================================================
    # SERVER LIFECYCLE
    # =========================================================================

    def run(self):
        """
        Accept and serve connections until shutdown() is called.

        Blocks the calling thread. Returns at once if shutdown() has
        already been called.

        Raises:
            RuntimeError: If the listening socket failed to bind.
        """
        if self._socket_server.bind_error is not None:
            raise RuntimeError("Server is not listening; construction failed")

        # Checked and started under the shutdown lock: a concurrent
        # shutdown() either prevents the start or stops the started pool
        if not self.state.start_if_running(self._thread_pool.start):
            return

        try:
            self._socket_server.run(self._handle_connection)
        except KeyboardInterrupt:
            logger.info("Received keyboard interrupt")
        finally:
            self.shutdown()

    def shutdown(self) -> int:
        """
        Stop the server.

        Only the first call does anything; later calls return 0 at once.

        Returns:
            Number of in-flight connections cancelled after the drain
            deadline passed.
        """
        if not self.state.begin_shutdown():
            return 0

        logger.info("Shutting down server...")

        self._socket_server.close()
        cancelled = self._thread_pool.shutdown(timeout=self.config.drain_timeout)

        logger.info("Server stopped")
        return cancelled

    # =========================================================================
    # CONNECTION HANDLING
    # =========================================================================

    def _handle_connection(self, conn: Connection):
        """Hand a freshly accepted connection to the thread pool."""
        try:
            submitted = self._thread_pool.submit(
                self._process_connection,
                args=(conn,),
                cancel=conn.abort,
            )
        except RuntimeError:
            logger.debug(f"[{conn.id}] Server shutting down, dropping connection")
            conn.close()
            return

        if not submitted:
            logger.warning(f"[{conn.id}] Worker queue full, dropping connection from {conn.client_ip}")
            conn.close()

    def _process_connection(self, conn: Connection):
        """
        Serve exactly one request on `conn`, then close it (worker thread).
        """
        start_time = time.time()

        with conn:
            try:
                request = self._read_request(conn)
                status = self._respond(conn, request)
            except OSError as e:
                logger.warning(f"[{conn.id}] I/O error, closing connection: {e}")
                return
            except Exception as e:
                # Nothing useful can be sent at this point; just close
                logger.exception(f"[{conn.id}] Failed to build response: {e}")
                return

            if status is not None:
                log_access(
                    connection_id=conn.id,
                    client_ip=conn.client_ip,
                    request_line=request.request_line,
                    status_code=status,
                    bytes_sent=conn.bytes_sent,
                    duration_ms=(time.time() - start_time) * 1000,
                    log_format=self.config.log_format,
                )

    def _read_request(self, conn: Connection) -> ParsedRequest:
        """
        Feed received bytes, line by line, into a RequestParser.

        Stops at end of stream, on read timeout, or as soon as the blank
        terminator line has been seen (no request body is read).
        """
        parser = RequestParser()
        assembler = LineAssembler()

        for chunk in conn.read_chunks():
            for line in assembler.feed(chunk):
                parser.feed_line(line)
            if parser.headers_complete:
                break

        if assembler.pending:
            logger.debug(f"[{conn.id}] Discarding {assembler.pending} bytes of unterminated line")

        return parser.result()

    def _respond(self, conn: Connection, request: ParsedRequest) -> Optional[HTTPStatus]:
        """
        Send the header block (and the file for a 200).

        Returns:
            The status sent, or None if the header block could not be
            written.
        """
        conn.state = ConnectionState.PROCESSING
        server_name = self.config.server_name

        if not request.is_well_formed:
            response = build_response(False, None, server_name)
            if not conn.send(response.to_bytes()):
                return None
            return response.status

        with self._resolver.open(request.path) as (outcome, fileobj):
            response = build_response(True, outcome, server_name)
            if not conn.send(response.to_bytes()):
                return None

            if outcome.found:
                self._stream_file(conn, fileobj)

        return response.status

    def _stream_file(self, conn: Connection, fileobj: BinaryIO) -> bool:
        """
        Copy the file to the socket in file_chunk_size pieces.

        Returns:
            True if the whole file was sent.
        """
        chunk_size = self.config.file_chunk_size
        while True:
            chunk = fileobj.read(chunk_size)
            if not chunk:
                return True
            if not conn.send(chunk):
                return False


def create_server(config: Optional[ServerConfig] = None) -> WebServer:
    """
    Create a WebServer.

    Example:
        server = create_server(ServerConfig(port=3000))
        if server.is_listening:
            server.run()
    """
    return WebServer(config)
