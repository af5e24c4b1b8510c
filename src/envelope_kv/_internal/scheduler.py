"""Scheduler abstraction for periodic background work.

The engine never creates threads directly.  The TTL sweep and every watcher
ask a :class:`Scheduler` for a repeating task and keep the returned handle so
they can cancel it later.  Inject a manual scheduler in tests.
"""

from __future__ import annotations

import threading
from collections.abc import Callable
from typing import Protocol


class ScheduledTask(Protocol):
    """Handle to a repeating task."""

    def cancel(self) -> None:
        """Stop the task.  Must be synchronous and idempotent."""
        ...

    @property
    def cancelled(self) -> bool: ...


class Scheduler(Protocol):
    """Creates repeating tasks."""

    def every(self, interval_seconds: float, callback: Callable[[], None]) -> ScheduledTask: ...


class _TimerTask:
    """Repeating task backed by a chain of daemon ``threading.Timer`` objects."""

    def __init__(self, interval_seconds: float, callback: Callable[[], None]) -> None:
        self._interval = interval_seconds
        self._callback = callback
        self._lock = threading.Lock()
        self._cancelled = False
        self._timer: threading.Timer | None = None
        self._arm()

    def _arm(self) -> None:
        with self._lock:
            if self._cancelled:
                return
            self._timer = threading.Timer(self._interval, self._fire)
            self._timer.daemon = True
            self._timer.start()

    def _fire(self) -> None:
        if self._cancelled:
            return
        try:
            self._callback()
        finally:
            self._arm()

    def cancel(self) -> None:
        with self._lock:
            self._cancelled = True
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None

    @property
    def cancelled(self) -> bool:
        return self._cancelled


class ThreadScheduler:
    """Default scheduler running callbacks on daemon timer threads."""

    def every(self, interval_seconds: float, callback: Callable[[], None]) -> ScheduledTask:
        return _TimerTask(interval_seconds, callback)
