"""
Unit tests for the shared shutdown flag.
"""

import threading
import time

from webserver.core import ServerState


class TestServerState:
    """Tests for ServerState."""

    def test_initially_running(self):
        """Test that a new state is not shutting down."""
        assert ServerState().is_shutting_down is False

    def test_begin_shutdown_once(self):
        """Test that only the first call flips the flag."""
        state = ServerState()

        assert state.begin_shutdown() is True
        assert state.is_shutting_down
        assert state.begin_shutdown() is False
        assert state.is_shutting_down

    def test_start_if_running_calls_start(self):
        """Test that start runs while the server is running."""
        state = ServerState()
        calls = []

        assert state.start_if_running(lambda: calls.append("started")) is True
        assert calls == ["started"]

    def test_start_if_running_after_shutdown(self):
        """Test that start is skipped once shutdown has begun."""
        state = ServerState()
        calls = []
        state.begin_shutdown()

        assert state.start_if_running(lambda: calls.append("started")) is False
        assert calls == []

    def test_shutdown_waits_for_start(self):
        """Test that begin_shutdown blocks until a running start finishes."""
        state = ServerState()
        entered = threading.Event()
        order = []

        def slow_start():
            entered.set()
            time.sleep(0.2)
            order.append("started")

        starter = threading.Thread(target=state.start_if_running, args=(slow_start,))
        starter.start()
        assert entered.wait(timeout=2.0)

        assert state.begin_shutdown() is True
        order.append("shutdown")
        starter.join(timeout=2.0)

        assert order == ["started", "shutdown"]

    def test_concurrent_begin_shutdown(self):
        """Test that exactly one of many racing callers wins."""
        state = ServerState()
        results = []
        barrier = threading.Barrier(8)

        def race():
            barrier.wait()
            results.append(state.begin_shutdown())

        threads = [threading.Thread(target=race) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert results.count(True) == 1
