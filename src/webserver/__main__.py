"""
=============================================================================
WEB SERVER CLI ENTRY POINT
=============================================================================

    # Serve the current directory on localhost:8080
    python -m webserver

    # Custom port and document root
    python -m webserver --port 3000 --root ./public

    # Listen on all interfaces with JSON access logs
    python -m webserver --host 0.0.0.0 --log-format json

Ctrl+C (SIGINT) or SIGTERM starts a graceful shutdown: the port is
closed at once, in-flight connections get --drain-timeout seconds to
finish, and whatever is still running after that is cancelled.

=============================================================================
"""

import argparse
import logging
import signal
import sys
import threading
from typing import Optional

from . import __version__
from .access_log import configure_logging
from .config import ServerConfig
from .server import WebServer


logger = logging.getLogger(__name__)


def build_parser(defaults: Optional[ServerConfig] = None) -> argparse.ArgumentParser:
    """
    Build the argument parser.

    Defaults come from the HTTP_* environment variables (see
    ServerConfig.from_env), so command-line options override the
    environment, which overrides the built-in defaults.

    Raises:
        ValueError: If an HTTP_* variable does not parse.
    """
    if defaults is None:
        defaults = ServerConfig.from_env()

    parser = argparse.ArgumentParser(
        prog="webserver",
        description="Concurrent HTTP/1.x static file server",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m webserver                        # Serve . on 127.0.0.1:8080
  python -m webserver --port 3000            # Custom port
  python -m webserver --root ./public        # Custom document root
  python -m webserver --host 0.0.0.0         # Listen on all interfaces
  HTTP_PORT=3000 python -m webserver         # Port from the environment
        """
    )

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--host", "-H",
        default=defaults.host,
        help=f"Host to bind to (env HTTP_HOST, default: {defaults.host})"
    )

    parser.add_argument(
        "--port", "-p",
        type=int,
        default=defaults.port,
        help=f"Port to listen on, above 1023 (env HTTP_PORT, default: {defaults.port})"
    )

    parser.add_argument(
        "--timeout", "-t",
        type=float,
        default=defaults.timeout,
        help=f"Seconds to wait for request bytes (env HTTP_TIMEOUT, default: {defaults.timeout})"
    )

    parser.add_argument(
        "--accept-timeout",
        type=float,
        default=defaults.accept_timeout,
        help=f"Seconds between shutdown checks in the accept loop (default: {defaults.accept_timeout})"
    )

    # ─────────────────────────────────────────────────────────────────────
    # SERVING ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--root", "-r",
        default=defaults.document_root,
        help=f"Document root request paths are resolved against (env HTTP_DOC_ROOT, default: {defaults.document_root})"
    )

    parser.add_argument(
        "--workers", "-w",
        type=int,
        default=defaults.min_workers,
        help=f"Worker threads started up front (default: {defaults.min_workers})"
    )

    parser.add_argument(
        "--max-workers",
        type=int,
        default=defaults.max_workers,
        help=f"Upper bound the pool may grow to (env HTTP_WORKERS, default: {defaults.max_workers})"
    )

    parser.add_argument(
        "--drain-timeout",
        type=float,
        default=defaults.drain_timeout,
        help=f"Seconds to wait for in-flight connections on shutdown (env HTTP_DRAIN_TIMEOUT, default: {defaults.drain_timeout})"
    )

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--log-level", "-l",
        type=str.upper,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=defaults.log_level.upper(),
        help=f"Logging level (env HTTP_LOG_LEVEL, default: {defaults.log_level})"
    )

    parser.add_argument(
        "--log-format",
        choices=["text", "json"],
        default=defaults.log_format,
        help=f"Access log format (env HTTP_LOG_FORMAT, default: {defaults.log_format})"
    )

    parser.add_argument(
        "--version", "-v",
        action="version",
        version=f"webserver {__version__}"
    )

    return parser


def config_from_args(args: argparse.Namespace) -> ServerConfig:
    """Translate parsed CLI arguments into a ServerConfig."""
    return ServerConfig(
        host=args.host,
        port=args.port,
        timeout=args.timeout,
        accept_timeout=args.accept_timeout,
        document_root=args.root,
        min_workers=args.workers,
        # -w above the pool bound raises the bound instead of failing
        max_workers=max(args.max_workers, args.workers),
        drain_timeout=args.drain_timeout,
        log_level=args.log_level,
        log_format=args.log_format,
    )


def main(argv=None) -> int:
    """
    Run the server until SIGINT/SIGTERM.

    The accept loop runs on a background thread; the main thread only
    waits for a signal, so signal handlers never run inside server code.

    Returns:
        Process exit status.
    """
    try:
        parser = build_parser()
    except ValueError as e:
        print(f"Error: invalid HTTP_* environment variable: {e}", file=sys.stderr)
        return 2

    args = parser.parse_args(argv)

    configure_logging(args.log_level)

    try:
        config = config_from_args(args)
        server = WebServer(config)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    if not server.is_listening:
        # The bind error has already been logged
        return 1

    stop_requested = threading.Event()

    def request_stop(signum, frame):
        logger.info(f"Received {signal.Signals(signum).name}, initiating shutdown...")
        stop_requested.set()

    signal.signal(signal.SIGINT, request_stop)
    signal.signal(signal.SIGTERM, request_stop)

    host, port = server.address
    logger.info(f"Serving {config.document_root} on http://{host}:{port} (Ctrl+C to stop)")

    server_thread = threading.Thread(target=server.run, name="acceptor", daemon=True)
    server_thread.start()

    # Event.wait() with a timeout keeps the main thread responsive to signals
    while not stop_requested.wait(timeout=0.5):
        if not server_thread.is_alive():
            break

    server.shutdown()
    server_thread.join(timeout=config.accept_timeout + 1.0)
    return 0


if __name__ == "__main__":
    sys.exit(main())
