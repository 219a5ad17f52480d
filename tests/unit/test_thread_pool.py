"""
Unit tests for the worker thread pool.
"""

import logging
import threading
import time

import pytest

from webserver.core import ThreadPool


@pytest.fixture
def pool():
    pool = ThreadPool(min_workers=2, max_workers=4, queue_size=8, idle_timeout=0.1)
    pool.start()
    yield pool
    pool.shutdown(timeout=1.0)


class TestThreadPool:
    """Tests for ThreadPool."""

    def test_runs_task(self, pool: ThreadPool):
        """Test that a submitted task runs with its arguments."""
        done = threading.Event()
        seen = []

        def task(a, b=None):
            seen.append((a, b))
            done.set()

        assert pool.submit(task, args=(1,), kwargs={"b": 2}) is True
        assert done.wait(timeout=2.0)
        assert seen == [(1, 2)]

    def test_starts_min_workers(self, pool: ThreadPool):
        """Test that start() creates min_workers threads."""
        assert pool.worker_count == 2

    def test_submit_before_start(self):
        """Test that submitting to an unstarted pool raises."""
        with pytest.raises(RuntimeError):
            ThreadPool().submit(lambda: None)

    def test_submit_after_shutdown(self):
        """Test that submitting during or after shutdown raises."""
        pool = ThreadPool(min_workers=1, max_workers=1, idle_timeout=0.1)
        pool.start()
        pool.shutdown(timeout=0.5)

        with pytest.raises(RuntimeError):
            pool.submit(lambda: None)

    def test_scales_up_under_load(self):
        """Test that a worker is added whenever tasks outnumber workers."""
        pool = ThreadPool(min_workers=1, max_workers=4, queue_size=8, idle_timeout=0.1)
        pool.start()
        release = threading.Event()
        try:
            for _ in range(3):
                assert pool.submit(release.wait, args=(5.0,))

            assert pool.worker_count == 3
        finally:
            release.set()
            pool.shutdown(timeout=2.0)

    def test_never_exceeds_max_workers(self):
        """Test that scale-up stops at max_workers."""
        pool = ThreadPool(min_workers=1, max_workers=2, queue_size=8, idle_timeout=0.1)
        pool.start()
        release = threading.Event()
        try:
            for _ in range(5):
                pool.submit(release.wait, args=(5.0,))

            assert pool.worker_count == 2
            assert pool.unfinished_tasks == 5
        finally:
            release.set()
            pool.shutdown(timeout=2.0)

    def test_queue_full_rejects(self):
        """Test that submit() returns False when the queue is full."""
        pool = ThreadPool(min_workers=1, max_workers=1, queue_size=1, idle_timeout=0.1)
        pool.start()
        started = threading.Event()
        release = threading.Event()

        def blocker():
            started.set()
            release.wait(5.0)

        try:
            assert pool.submit(blocker)
            assert started.wait(timeout=2.0)

            assert pool.submit(lambda: None) is True   # fills the queue
            assert pool.submit(lambda: None) is False
            assert pool.unfinished_tasks == 2
        finally:
            release.set()
            pool.shutdown(timeout=2.0)

    def test_shutdown_drains(self):
        """Test that shutdown waits for short tasks and cancels nothing."""
        pool = ThreadPool(min_workers=2, max_workers=2, queue_size=16, idle_timeout=0.1)
        pool.start()
        results = []
        lock = threading.Lock()

        def task(i):
            time.sleep(0.02)
            with lock:
                results.append(i)

        for i in range(6):
            pool.submit(task, args=(i,))

        assert pool.shutdown(timeout=5.0) == 0
        assert sorted(results) == list(range(6))
        assert pool.worker_count == 0

    def test_shutdown_cancels_running_task(self):
        """Test that a task still running at the deadline gets its cancel hook."""
        pool = ThreadPool(min_workers=1, max_workers=1, idle_timeout=0.1)
        pool.start()
        started = threading.Event()
        stop = threading.Event()

        def stuck():
            started.set()
            stop.wait(10.0)

        pool.submit(stuck, cancel=stop.set)
        assert started.wait(timeout=2.0)

        begin = time.monotonic()
        cancelled = pool.shutdown(timeout=0.2)
        elapsed = time.monotonic() - begin

        assert cancelled == 1
        assert stop.is_set()
        assert elapsed < 3.0

    def test_drain_timeout_logs_pool_stats(self, caplog):
        """Test that a drain timeout warning reports worker and task counts."""
        pool = ThreadPool(min_workers=1, max_workers=1, idle_timeout=0.1)
        pool.start()
        started = threading.Event()
        stop = threading.Event()

        def stuck():
            started.set()
            stop.wait(10.0)

        pool.submit(stuck, cancel=stop.set)
        assert started.wait(timeout=2.0)

        with caplog.at_level(logging.WARNING, logger="webserver.core.thread_pool"):
            pool.shutdown(timeout=0.1)

        assert "Drain timeout" in caplog.text
        assert "'busy': 1" in caplog.text
        assert "'unfinished': 1" in caplog.text

    def test_shutdown_cancels_queued_task(self):
        """Test that a queued task is cancelled and never runs."""
        pool = ThreadPool(min_workers=1, max_workers=1, queue_size=4, idle_timeout=0.1)
        pool.start()
        started = threading.Event()
        stop = threading.Event()
        queued_ran = threading.Event()
        queued_cancelled = threading.Event()

        def stuck():
            started.set()
            stop.wait(10.0)

        pool.submit(stuck, cancel=stop.set)
        assert started.wait(timeout=2.0)
        pool.submit(queued_ran.set, cancel=queued_cancelled.set)

        assert pool.shutdown(timeout=0.2) == 2
        assert queued_cancelled.is_set()
        assert not queued_ran.is_set()

    def test_failing_cancel_hook_does_not_break_shutdown(self):
        """Test that an exception in a cancel hook is contained."""
        pool = ThreadPool(min_workers=1, max_workers=1, idle_timeout=0.1)
        pool.start()
        started = threading.Event()
        stop = threading.Event()

        def stuck():
            started.set()
            stop.wait(1.0)

        def bad_cancel():
            raise ValueError("cancel failed")

        pool.submit(stuck, cancel=bad_cancel)
        assert started.wait(timeout=2.0)

        assert pool.shutdown(timeout=0.1) == 1
        stop.set()

    def test_failing_task_keeps_worker(self):
        """Test that an exception in a task does not kill its worker."""
        pool = ThreadPool(min_workers=1, max_workers=1, idle_timeout=0.1)
        pool.start()
        done = threading.Event()

        def boom():
            raise ValueError("task failed")

        try:
            pool.submit(boom)
            pool.submit(done.set)

            assert done.wait(timeout=2.0)
            assert pool.stats["tasks"]["failed"] == 1
            assert pool.worker_count == 1
        finally:
            pool.shutdown(timeout=1.0)

    def test_shutdown_unstarted_pool(self):
        """Test that shutting down an unstarted pool is a no-op."""
        assert ThreadPool().shutdown(timeout=0.1) == 0
