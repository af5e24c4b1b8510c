"""EventBus — local pub/sub, per-key watchers and error reporting."""

from __future__ import annotations

import threading
from collections.abc import Callable
from dataclasses import asdict, dataclass, field
from typing import Any

from envelope_kv._internal.clock import Clock, SystemClock, now_ms
from envelope_kv._internal.scheduler import ScheduledTask, Scheduler
from envelope_kv.logging_config import get_logger

log = get_logger(__name__)

Listener = Callable[..., Any]
WatchCallback = Callable[[Any, Any], Any]

ERROR_EVENT = "error"


@dataclass(frozen=True)
class ErrorInfo:
    """Payload of the ``error`` event.

    Attributes:
        operation: Engine operation that failed (``"set"``, ``"event"`` …).
        key:       Logical key or event name involved, if any.
        error:     Exception message.
        namespace: Namespace of the reporting engine.
        timestamp: Epoch milliseconds.
    """

    operation: str
    key: str | None
    error: str
    namespace: str
    timestamp: int

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class Watcher:
    """A polling observer of one key, owned by the engine that created it."""

    key: str
    callback: WatchCallback
    interval_ms: int
    last_value: Any = None
    task: ScheduledTask | None = field(default=None, repr=False)


class EventBus:
    """Synchronous event emitter with snapshot semantics.

    Parameters:
        namespace: Reported in :class:`ErrorInfo` payloads.
        clock:     Source of error timestamps.
    """

    def __init__(self, namespace: str = "", clock: Clock | None = None) -> None:
        self._namespace = namespace
        self._clock = clock or SystemClock()
        self._listeners: dict[str, list[Listener]] = {}
        self._watchers: dict[str, list[Watcher]] = {}
        self._lock = threading.RLock()

    # ── listeners ────────────────────────────────────────────

    def on(self, event: str, callback: Listener) -> None:
        with self._lock:
            self._listeners.setdefault(event, []).append(callback)

    def off(self, event: str, callback: Listener | None = None) -> None:
        """Remove *callback* from *event*, or every listener of *event*."""
        with self._lock:
            if event not in self._listeners:
                return
            if callback is None:
                del self._listeners[event]
                return
            self._listeners[event] = [cb for cb in self._listeners[event] if cb is not callback]

    def listener_count(self, event: str) -> int:
        with self._lock:
            return len(self._listeners.get(event, []))

    def emit(self, event: str, *args: Any) -> None:
        """Invoke a snapshot of *event*'s listeners.

        A listener that raises is reported as an ``error`` event and the
        remaining listeners still run.
        """
        with self._lock:
            snapshot = list(self._listeners.get(event, []))
        for callback in snapshot:
            try:
                callback(*args)
            except Exception as exc:
                if event == ERROR_EVENT:
                    log.error("error_listener_failed", error=str(exc))
                    continue
                self.report(exc, "event", event)

    def report(self, error: BaseException, operation: str, key: str | None = None) -> ErrorInfo:
        """Log *error* and emit it as an ``error`` event."""
        info = ErrorInfo(
            operation=operation,
            key=key,
            error=str(error),
            namespace=self._namespace,
            timestamp=now_ms(self._clock),
        )
        log.warning(
            "operation_failed",
            operation=operation,
            key=key,
            error=info.error,
            namespace=self._namespace,
        )
        self.emit(ERROR_EVENT, info)
        return info

    # ── watchers ─────────────────────────────────────────────

    def watch(
        self,
        key: str,
        callback: WatchCallback,
        *,
        reader: Callable[[str], Any],
        scheduler: Scheduler,
        interval_ms: int = 500,
    ) -> Callable[[], None]:
        """Poll *key* through *reader* and call ``callback(new, old)`` on change.

        Returns a cancel function that stops the poll and deregisters the
        watcher.  Cancelling twice is harmless.
        """
        watcher = Watcher(key=key, callback=callback, interval_ms=interval_ms)
        watcher.last_value = reader(key)

        def poll() -> None:
            try:
                current = reader(key)
                if current != watcher.last_value:
                    previous = watcher.last_value
                    watcher.last_value = current
                    callback(current, previous)
            except Exception as exc:
                self.report(exc, "watch", key)

        watcher.task = scheduler.every(interval_ms / 1000, poll)
        with self._lock:
            self._watchers.setdefault(key, []).append(watcher)

        def cancel() -> None:
            if watcher.task is not None:
                watcher.task.cancel()
            with self._lock:
                remaining = [w for w in self._watchers.get(key, []) if w is not watcher]
                if remaining:
                    self._watchers[key] = remaining
                else:
                    self._watchers.pop(key, None)

        return cancel

    def watcher_count(self, key: str | None = None) -> int:
        with self._lock:
            if key is not None:
                return len(self._watchers.get(key, []))
            return sum(len(ws) for ws in self._watchers.values())

    def notify_watchers(self, key: str, new_value: Any) -> None:
        """Push a known change to *key*'s watchers without waiting for a poll.

        Each watcher is called with its own last observed value as ``old``,
        and only if the value actually differs.
        """
        with self._lock:
            snapshot = list(self._watchers.get(key, []))
        for watcher in snapshot:
            previous = watcher.last_value
            if new_value == previous:
                continue
            watcher.last_value = new_value
            try:
                watcher.callback(new_value, previous)
            except Exception as exc:
                self.report(exc, "watch", key)

    # ── teardown ─────────────────────────────────────────────

    def reset(self) -> None:
        """Cancel every watcher and forget every listener."""
        with self._lock:
            watchers = [w for ws in self._watchers.values() for w in ws]
            self._watchers = {}
            self._listeners = {}
        for watcher in watchers:
            if watcher.task is not None:
                watcher.task.cancel()
