"""
Debounce scheduler bound to an asyncio event loop.

Holds at most one pending deferred action. Every schedule() cancels the
previous pending action and arms a new timer from zero, so a burst of
calls produces a single action timed from the last one. Actions that
return a coroutine are run as tasks the scheduler keeps track of, so a
teardown can cancel whatever is still running.
"""

import asyncio
import inspect
import logging
from collections.abc import Callable
from typing import Any

logger = logging.getLogger(__name__)

Action = Callable[[], Any]


class DebounceScheduler:
    """Single-slot debounce timer.

    Args:
        loop: Event loop to arm timers on. Defaults to the loop running
            at the time of each call.
    """

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None):
        self._loop = loop
        self._handle: asyncio.TimerHandle | None = None
        self._action: Action | None = None
        self._tasks: set[asyncio.Task] = set()
        self._closed = False

    @property
    def pending(self) -> bool:
        """True while a timer is armed and has not fired."""
        return self._handle is not None

    @property
    def tasks(self) -> list[asyncio.Task]:
        """Attempt tasks started by this scheduler that are still running."""
        return list(self._tasks)

    def schedule(self, delay_ms: float, action: Action) -> None:
        """Cancel any pending action and arm a new one after delay_ms."""
        if self._closed:
            raise RuntimeError("Scheduler has been shut down")
        self.cancel()
        loop = self._get_loop()
        self._action = action
        self._handle = loop.call_later(max(delay_ms, 0) / 1000, self._fire)

    def cancel(self) -> None:
        """Disarm the pending timer. The action is guaranteed not to run."""
        if self._handle is not None:
            self._handle.cancel()
        self._handle = None
        self._action = None

    def flush_now(self, default: Action | None = None) -> asyncio.Task | None:
        """Run the pending action immediately, or `default` if none is pending.

        The timer is cancelled first, so the flushed action never runs
        a second time when its delay would have elapsed.
        """
        action = self._action or default
        self.cancel()
        if action is None:
            return None
        return self.run(action)

    def run(self, action: Action) -> asyncio.Task | None:
        """Invoke an action now; coroutine results become tracked tasks."""
        if self._closed:
            raise RuntimeError("Scheduler has been shut down")
        result = action()
        if not inspect.isawaitable(result):
            return None
        task = self._get_loop().create_task(result)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    def shutdown(self) -> None:
        """Cancel the timer and every task still running. Idempotent."""
        self.cancel()
        for task in list(self._tasks):
            task.cancel()
        self._tasks.clear()
        self._closed = True

    def _fire(self) -> None:
        action = self._action
        self._handle = None
        self._action = None
        if action is None or self._closed:
            return
        logger.debug("Debounce timer fired")
        self.run(action)

    def _get_loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            return asyncio.get_running_loop()
        return self._loop
