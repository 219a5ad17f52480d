"""
=============================================================================
SHARED SERVER STATE
=============================================================================

The one piece of state shared between threads: "are we shutting down?"

    ┌──────────────┐  begin_shutdown()   ┌──────────────┐
    │   RUNNING    │ ──────────────────► │ SHUTTING DOWN│   (never goes back)
    └──────────────┘      (once)         └──────────────┘

The accept loop polls it between accept() timeouts, and workers may read
it. Only the shutdown coordinator writes it. A threading.Event gives
thread-safe reads; a lock orders startup against shutdown.

=============================================================================
"""

import threading
from typing import Callable


class ServerState:
    """
    Monotonic shutdown flag, passed explicitly to the components that
    need it.

    Usage:
        state = ServerState()
        while not state.is_shutting_down:
            ...

        # elsewhere
        if state.begin_shutdown():
            ...  # only the first caller gets here
    """

    def __init__(self):
        self._shutting_down = threading.Event()
        self._lock = threading.Lock()

    @property
    def is_shutting_down(self) -> bool:
        return self._shutting_down.is_set()

    def begin_shutdown(self) -> bool:
        """
        Flip the flag.

        Returns:
            True for the call that flipped it, False for every later call.
        """
        with self._lock:
            if self._shutting_down.is_set():
                return False
            self._shutting_down.set()
            return True

    def start_if_running(self, start: Callable[[], None]) -> bool:
        """
        Run `start` unless shutdown has already begun.

        `start` runs while holding the lock begin_shutdown() takes, so a
        concurrent shutdown either happens before it (and `start` is
        skipped) or after it (and sees whatever `start` brought up).

        Returns:
            True if `start` was called.
        """
        with self._lock:
            if self._shutting_down.is_set():
                return False
            start()
            return True
