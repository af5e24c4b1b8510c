"""InMemorySubstrate — zero-config, dict-backed substrate for development and testing."""

from __future__ import annotations

import threading
from collections.abc import Callable

from envelope_kv.exceptions import QuotaExceededError
from envelope_kv.substrates.base import ChangeListener, StorageChange, Substrate

DEFAULT_QUOTA = 5 * 1024 * 1024


def _entry_size(key: str, value: str) -> int:
    return len(key.encode("utf-8")) + len(value.encode("utf-8"))


class SharedMemoryBackend:
    """The storage shared by every :class:`InMemorySubstrate` view attached to it.

    One backend stands in for the browser's per-origin storage area; each view
    stands in for one process or tab.  A mutation made through a view is
    reported to the listeners of every *other* view, never to its own.
    """

    def __init__(self, quota: int = DEFAULT_QUOTA) -> None:
        self.quota = quota
        self._data: dict[str, str] = {}
        self._lock = threading.RLock()
        self._listeners: list[tuple[InMemorySubstrate, ChangeListener]] = []

    @property
    def used(self) -> int:
        with self._lock:
            return sum(_entry_size(k, v) for k, v in self._data.items())

    def attach(self, view: InMemorySubstrate, listener: ChangeListener) -> Callable[[], None]:
        entry = (view, listener)
        with self._lock:
            self._listeners.append(entry)

        def unsubscribe() -> None:
            with self._lock:
                if entry in self._listeners:
                    self._listeners.remove(entry)

        return unsubscribe

    def broadcast(self, origin: InMemorySubstrate, change: StorageChange) -> None:
        with self._lock:
            targets = [listener for view, listener in self._listeners if view is not origin]
        for listener in targets:
            listener(change)

    # ── raw access used by views ─────────────────────────────

    def get(self, key: str) -> str | None:
        with self._lock:
            return self._data.get(key)

    def put(self, key: str, value: str) -> str | None:
        with self._lock:
            old = self._data.get(key)
            projected = self.used - (_entry_size(key, old) if old is not None else 0)
            if projected + _entry_size(key, value) > self.quota:
                raise QuotaExceededError(key, self.quota)
            self._data[key] = value
            return old

    def pop(self, key: str) -> str | None:
        with self._lock:
            return self._data.pop(key, None)

    def wipe(self) -> None:
        with self._lock:
            self._data.clear()

    def key_at(self, index: int) -> str | None:
        with self._lock:
            if 0 <= index < len(self._data):
                return list(self._data)[index]
            return None

    def __len__(self) -> int:
        with self._lock:
            return len(self._data)


class InMemorySubstrate(Substrate):
    """In-memory substrate.  Data is lost on process exit.

    Parameters:
        backend: Shared storage area.  Pass the same backend to several
                 substrates to simulate processes that share storage.
        quota:   Capacity in bytes when a new backend is created.
    """

    def __init__(
        self,
        backend: SharedMemoryBackend | None = None,
        *,
        quota: int = DEFAULT_QUOTA,
    ) -> None:
        self._backend = backend or SharedMemoryBackend(quota=quota)

    @property
    def backend(self) -> SharedMemoryBackend:
        return self._backend

    def sibling(self) -> InMemorySubstrate:
        """Return another view over the same backend (another "process")."""
        return InMemorySubstrate(self._backend)

    # ── Substrate protocol ───────────────────────────────────

    def get_item(self, key: str) -> str | None:
        return self._backend.get(key)

    def set_item(self, key: str, value: str) -> None:
        old = self._backend.put(key, value)
        if old != value:
            self._backend.broadcast(self, StorageChange(key, old, value))

    def remove_item(self, key: str) -> None:
        old = self._backend.pop(key)
        if old is not None:
            self._backend.broadcast(self, StorageChange(key, old, None))

    def clear(self) -> None:
        self._backend.wipe()
        self._backend.broadcast(self, StorageChange(None, None, None))

    def key(self, index: int) -> str | None:
        return self._backend.key_at(index)

    @property
    def length(self) -> int:
        return len(self._backend)

    @property
    def quota(self) -> int:
        return self._backend.quota

    def subscribe(self, listener: ChangeListener) -> Callable[[], None]:
        return self._backend.attach(self, listener)
