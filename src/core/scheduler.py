"""Task schedulers that run a callback once after a delay.

Two implementations of the TaskScheduler protocol:
- ThreadScheduler: one daemon threading.Timer per task. Works from plain
  synchronous code and is the default for caches.
- AsyncioScheduler: one asyncio task per callback on the running loop.
  schedule() must be called from the loop's thread.

Both track what they hand out so shutdown() can cancel it in bulk.
Exceptions raised by a callback are logged and never escape the worker.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from typing import Callable, Optional, Set

from core.errors import SchedulerError

logger = logging.getLogger(__name__)


class _TimerTask:
    # Cancellable handle around a threading.Timer
    __slots__ = ("_timer", "_owner")

    def __init__(self, timer: threading.Timer, owner: "ThreadScheduler") -> None:
        self._timer = timer
        self._owner = owner

    def cancel(self) -> bool:
        # finished is set once the timer has run or been cancelled
        if self._timer.finished.is_set():
            return False
        self._timer.cancel()
        self._owner._forget(self._timer)
        return True

    def done(self) -> bool:
        return self._timer.finished.is_set()


class ThreadScheduler:
    def __init__(self, *, name: str = "ttl-cache-reclaim") -> None:
        self._name = name
        self._timers: Set[threading.Timer] = set()
        self._lock = threading.Lock()
        self._closed = False

    def schedule(self, delay_ms: int, callback: Callable[[], None]) -> _TimerTask:
        def _run() -> None:
            try:
                callback()
            except Exception:
                logger.exception("Scheduled callback failed")
            finally:
                self._forget(timer)

        timer = threading.Timer(max(0, delay_ms) / 1000.0, _run)
        timer.daemon = True
        timer.name = self._name

        with self._lock:
            if self._closed:
                raise SchedulerError("Scheduler has been shut down")
            self._timers.add(timer)
            try:
                timer.start()
            except RuntimeError as e:
                # e.g. "can't start new thread"
                self._timers.discard(timer)
                raise SchedulerError(f"Could not start timer thread: {e}") from e

        return _TimerTask(timer, self)

    def shutdown(self) -> None:
        with self._lock:
            self._closed = True
            timers = list(self._timers)
            self._timers.clear()

        for timer in timers:
            timer.cancel()

    @property
    def pending(self) -> int:
        with self._lock:
            return len(self._timers)

    def _forget(self, timer: threading.Timer) -> None:
        with self._lock:
            self._timers.discard(timer)


class AsyncioScheduler:
    def __init__(self, *, loop: Optional[asyncio.AbstractEventLoop] = None) -> None:
        # Without an explicit loop, the running loop is resolved per schedule() call
        self._loop = loop
        self._tasks: Set["asyncio.Task[None]"] = set()
        self._closed = False

    def schedule(self, delay_ms: int, callback: Callable[[], None]) -> "asyncio.Task[None]":
        if self._closed:
            raise SchedulerError("Scheduler has been shut down")

        try:
            loop = self._loop or asyncio.get_running_loop()
        except RuntimeError as e:
            raise SchedulerError("No running event loop to schedule on") from e

        task = loop.create_task(self._run_later(delay_ms, callback))

        # Keep a strong reference until the task finishes
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    def shutdown(self) -> None:
        self._closed = True
        tasks = list(self._tasks)
        self._tasks.clear()
        for task in tasks:
            task.cancel()

    @property
    def pending(self) -> int:
        return len(self._tasks)

    async def _run_later(self, delay_ms: int, callback: Callable[[], None]) -> None:
        await asyncio.sleep(max(0, delay_ms) / 1000.0)
        try:
            callback()
        except Exception:
            logger.exception("Scheduled callback failed")
