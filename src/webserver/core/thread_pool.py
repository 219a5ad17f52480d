"""
=============================================================================
THREAD POOL IMPLEMENTATION
=============================================================================

A pool of worker threads that process tasks from a shared queue. Each
accepted connection becomes one task.

=============================================================================
THREAD POOL ARCHITECTURE
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                        Thread Pool                                   │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   submit(func, args, cancel)                                        │
    │          │                                                           │
    │          ▼                                                           │
    │   ┌─────────────────────────────────────────────────────────────┐   │
    │   │                    TASK QUEUE (bounded)                      │   │
    │   │   [Task] [Task] [Task] ...                                   │   │
    │   └──────────────────────┬──────────────────────────────────────┘   │
    │                          │ get()                                     │
    │                          ▼                                           │
    │   ┌──────────┐ ┌──────────┐ ┌──────────┐         ┌──────────┐      │
    │   │ Worker 1 │ │ Worker 2 │ │ Worker 3 │  ...    │ Worker N │      │
    │   └──────────┘ └──────────┘ └──────────┘         └──────────┘      │
    │                                                                      │
    │   min_workers started up front, more added (up to max_workers)      │
    │   whenever the number of unfinished tasks exceeds the workers.      │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

A slow connection therefore only ties up its own worker: the next
connection either finds an idle worker or causes a new one to be started.

=============================================================================
SHUTDOWN: DRAIN, THEN CANCEL
=============================================================================

    shutdown(timeout=5.0)
        │
        ├──► 1. Reject new submissions
        │
        ├──► 2. Wait up to `timeout` for queued + running tasks to finish
        │
        ├──► 3. Still unfinished?  → cancel them
        │         queued tasks:  removed from the queue, cancel() called
        │         running tasks: cancel() called (e.g. abort the socket
        │                        so the blocked recv()/sendall() returns)
        │
        ├──► 4. Poison pills (None) tell idle workers to exit
        │
        └──► 5. Join workers within a short shared grace period

Python threads cannot be killed from outside, so cancellation is
cooperative: a task's cancel hook must make its blocking call return.
Workers are daemon threads, so a task that ignores its hook cannot keep
the process alive.

=============================================================================
"""

import threading
import queue
import time
import logging
from typing import Callable, Optional, Any
from dataclasses import dataclass
from enum import Enum


logger = logging.getLogger(__name__)

# Total time shutdown() spends joining worker threads after cancellation
JOIN_GRACE_SECONDS = 1.0

# How often shutdown() re-checks for unfinished tasks while draining
DRAIN_POLL_SECONDS = 0.05


class WorkerState(Enum):
    IDLE = "idle"        # Waiting for task
    BUSY = "busy"        # Executing task
    STOPPED = "stopped"  # Thread exited


@dataclass
class Task:
    """
    A deferred function call.

    Attributes:
        func: The function to execute.
        args: Positional arguments for the function.
        kwargs: Keyword arguments for the function.
        cancel: Called from the shutdown thread if the task is cancelled,
                whether it is still queued or already running.
        submitted_at: Time the task was submitted.
    """
    func: Callable[..., Any]
    args: tuple = ()
    kwargs: dict = None
    cancel: Optional[Callable[[], None]] = None
    submitted_at: float = 0.0

    def __post_init__(self):
        if self.kwargs is None:
            self.kwargs = {}
        if self.submitted_at == 0.0:
            self.submitted_at = time.time()

    def run_cancel(self):
        """Invoke the cancel hook, logging (not raising) its failures."""
        if self.cancel is None:
            return
        try:
            self.cancel()
        except Exception as e:
            logger.exception(f"Cancel hook failed: {e}")


class Worker(threading.Thread):
    """
    Worker thread that processes tasks from the queue.

    Loop:
        task = queue.get()     (wakes up every idle_timeout to check
                                the shutdown event)
        None → exit            (poison pill)
        task → execute, report completion to the pool
    """

    def __init__(
        self,
        task_queue: queue.Queue,
        worker_id: int,
        on_task_done: Callable[[], None],
        idle_timeout: float = 1.0,
    ):
        # daemon=True: a stuck worker never blocks interpreter exit
        super().__init__(name=f"worker-{worker_id}", daemon=True)

        self.task_queue = task_queue
        self.worker_id = worker_id
        self.idle_timeout = idle_timeout
        self._on_task_done = on_task_done

        self.state = WorkerState.IDLE
        self.current_task: Optional[Task] = None
        self._shutdown = threading.Event()

        self.tasks_completed = 0
        self.tasks_failed = 0

    def run(self):
        logger.debug(f"Worker {self.worker_id} started")

        while not self._shutdown.is_set():
            try:
                task = self.task_queue.get(timeout=self.idle_timeout)
            except queue.Empty:
                continue

            if task is None:
                self.task_queue.task_done()
                break

            try:
                self._execute_task(task)
            finally:
                self.task_queue.task_done()
                self._on_task_done()

        self.state = WorkerState.STOPPED
        logger.debug(f"Worker {self.worker_id} stopped")

    def _execute_task(self, task: Task):
        self.state = WorkerState.BUSY
        self.current_task = task
        start_time = time.time()

        try:
            task.func(*task.args, **task.kwargs)

            elapsed = time.time() - start_time
            logger.debug(f"Worker {self.worker_id} completed task in {elapsed:.3f}s")
            self.tasks_completed += 1

        except Exception as e:
            # One failing task must not take the worker down with it
            elapsed = time.time() - start_time
            logger.exception(
                f"Worker {self.worker_id} task failed after {elapsed:.3f}s: {e}"
            )
            self.tasks_failed += 1

        finally:
            self.state = WorkerState.IDLE
            self.current_task = None

    def shutdown(self):
        """Signal the worker to stop after its current task."""
        self._shutdown.set()


class ThreadPool:
    """
    Elastic thread pool with bounded queue and drain/cancel shutdown.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                      ThreadPool Usage                                │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   pool = ThreadPool(min_workers=4, max_workers=32)                  │
    │   pool.start()                                                       │
    │                                                                      │
    │   pool.submit(handle, args=(conn,), cancel=conn.abort)              │
    │                                                                      │
    │   cancelled = pool.shutdown(timeout=5.0)                            │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘
    """

    def __init__(
        self,
        min_workers: int = 4,
        max_workers: int = 32,
        queue_size: int = 256,
        idle_timeout: float = 1.0,
    ):
        """
        Initialize the thread pool.

        Args:
            min_workers: Worker threads created by start().
            max_workers: Upper bound on worker threads.
            queue_size: Maximum number of queued (not yet running) tasks.
            idle_timeout: Seconds an idle worker waits before re-checking
                          its shutdown event.
        """
        self.min_workers = min_workers
        self.max_workers = max_workers
        self.queue_size = queue_size
        self.idle_timeout = idle_timeout

        self._task_queue: queue.Queue = queue.Queue(maxsize=queue_size)

        self._workers: list[Worker] = []
        self._lock = threading.Lock()  # Protects _workers and _unfinished
        self._unfinished = 0           # Queued + running tasks
        self._started = False
        self._shutdown = False
        self._next_worker_id = 0

    def start(self):
        """Start the minimum number of workers."""
        if self._started:
            return

        logger.info(f"Starting thread pool with {self.min_workers} workers")

        with self._lock:
            for _ in range(self.min_workers):
                self._add_worker()

        self._started = True

    def _add_worker(self) -> Worker:
        # Caller holds self._lock
        worker = Worker(
            task_queue=self._task_queue,
            worker_id=self._next_worker_id,
            on_task_done=self._task_finished,
            idle_timeout=self.idle_timeout,
        )
        self._next_worker_id += 1
        self._workers.append(worker)
        worker.start()
        return worker

    def _task_finished(self):
        with self._lock:
            self._unfinished -= 1

    def submit(
        self,
        func: Callable[..., Any],
        args: tuple = (),
        kwargs: dict = None,
        cancel: Optional[Callable[[], None]] = None,
    ) -> bool:
        """
        Submit a task for execution.

        Args:
            func: The function to execute.
            args: Positional arguments for the function.
            kwargs: Keyword arguments for the function.
            cancel: Hook invoked if shutdown cancels this task.

        Returns:
            True if the task was queued, False if the queue was full.

        Raises:
            RuntimeError: If the pool is not started or is shutting down.
        """
        if not self._started:
            raise RuntimeError("Thread pool not started")

        if self._shutdown:
            raise RuntimeError("Thread pool is shutting down")

        task = Task(func=func, args=args, kwargs=kwargs or {}, cancel=cancel)

        # Counted before put() so a fast worker cannot finish the task
        # and decrement the counter before it was incremented
        with self._lock:
            self._unfinished += 1

        try:
            self._task_queue.put_nowait(task)
        except queue.Full:
            self._task_finished()
            return False

        self._maybe_scale_up()
        return True

    def _maybe_scale_up(self):
        """
        Add a worker when there is more work than workers.

        Counting unfinished tasks (queued + running) instead of worker
        states avoids missing a scale-up while a worker is between get()
        and marking itself busy.
        """
        with self._lock:
            if self._unfinished > len(self._workers) and len(self._workers) < self.max_workers:
                logger.debug(
                    f"Scaling up: {len(self._workers)} -> {len(self._workers) + 1} workers"
                )
                self._add_worker()

    def shutdown(self, timeout: float = 5.0) -> int:
        """
        Stop the pool: drain for up to `timeout` seconds, then cancel.

        Args:
            timeout: Seconds to wait for queued and running tasks.

        Returns:
            Number of tasks that were cancelled.
        """
        if not self._started:
            return 0

        logger.info("Shutting down thread pool...")
        self._shutdown = True

        # ─────────────────────────────────────────────────────────────────
        # DRAIN
        # ─────────────────────────────────────────────────────────────────
        deadline = time.monotonic() + timeout
        while self.unfinished_tasks > 0 and time.monotonic() < deadline:
            time.sleep(DRAIN_POLL_SECONDS)

        # ─────────────────────────────────────────────────────────────────
        # CANCEL STRAGGLERS
        # ─────────────────────────────────────────────────────────────────
        cancelled = 0
        if self.unfinished_tasks > 0:
            stats = self.stats
            cancelled = self._cancel_unfinished()
            logger.warning(
                f"Drain timeout after {timeout:.1f}s, cancelled {cancelled} task(s) "
                f"(workers: {stats['workers']}, tasks: {stats['tasks']})"
            )

        # ─────────────────────────────────────────────────────────────────
        # STOP WORKERS
        # ─────────────────────────────────────────────────────────────────
        with self._lock:
            workers = list(self._workers)

        for worker in workers:
            worker.shutdown()
            try:
                self._task_queue.put(None, block=False)
            except queue.Full:
                pass  # Worker will see its shutdown event instead

        join_deadline = time.monotonic() + JOIN_GRACE_SECONDS
        for worker in workers:
            worker.join(timeout=max(0.0, join_deadline - time.monotonic()))

        still_running = sum(1 for w in workers if w.is_alive())
        if still_running:
            logger.warning(f"{still_running} worker thread(s) did not exit, abandoning them")

        with self._lock:
            self._workers.clear()
        self._started = False

        logger.info("Thread pool shutdown complete")
        return cancelled

    def _cancel_unfinished(self) -> int:
        cancelled = 0

        # Queued tasks never start
        while True:
            try:
                task = self._task_queue.get_nowait()
            except queue.Empty:
                break
            self._task_queue.task_done()
            if task is None:
                continue
            task.run_cancel()
            self._task_finished()
            cancelled += 1

        # Running tasks are asked to stop
        with self._lock:
            workers = list(self._workers)
        for worker in workers:
            task = worker.current_task
            if task is not None:
                task.run_cancel()
                cancelled += 1

        return cancelled

    # =========================================================================
    # MONITORING
    # =========================================================================

    @property
    def unfinished_tasks(self) -> int:
        """Queued plus running tasks."""
        with self._lock:
            return self._unfinished

    @property
    def worker_count(self) -> int:
        with self._lock:
            return len(self._workers)

    @property
    def busy_workers(self) -> int:
        return sum(1 for w in self._workers if w.state == WorkerState.BUSY)

    @property
    def stats(self) -> dict:
        """Worker and task counts, logged when a drain times out."""
        return {
            "workers": {
                "total": len(self._workers),
                "busy": self.busy_workers,
            },
            "tasks": {
                "unfinished": self.unfinished_tasks,
                "completed": sum(w.tasks_completed for w in self._workers),
                "failed": sum(w.tasks_failed for w in self._workers),
            },
        }
