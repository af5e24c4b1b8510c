"""Substrate protocol — the external string store the engine wraps."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass

CAPACITY_PROBE_KEY = "__envelope_kv_space_test__"
_PROBE_CHUNK = 1024
_PROBE_MAX_CHUNKS = 100


@dataclass(frozen=True)
class StorageChange:
    """An out-of-band change reported by the substrate.

    Attributes:
        key:       Physical key that changed.  ``None`` means the whole
                   substrate was cleared.
        old_value: Raw text before the change (``None`` if absent).
        new_value: Raw text after the change (``None`` if removed).
    """

    key: str | None
    old_value: str | None
    new_value: str | None


ChangeListener = Callable[[StorageChange], None]


class Substrate(ABC):
    """Abstract base for storage substrates.

    A substrate stores opaque strings under string keys.  It has a finite
    capacity, no expiration and no structure; the engine layers all of that
    on top.  Substrates shared between processes report changes made by
    *other* participants through :meth:`subscribe`.
    """

    @abstractmethod
    def get_item(self, key: str) -> str | None:
        """Return the stored string, or ``None`` if absent."""
        ...

    @abstractmethod
    def set_item(self, key: str, value: str) -> None:
        """Create or overwrite a value.  Raises on capacity exhaustion."""
        ...

    @abstractmethod
    def remove_item(self, key: str) -> None:
        """Delete a value.  No-op if the key does not exist."""
        ...

    @abstractmethod
    def clear(self) -> None:
        """Delete every key."""
        ...

    @abstractmethod
    def key(self, index: int) -> str | None:
        """Return the key at *index*, or ``None`` when out of range."""
        ...

    @property
    @abstractmethod
    def length(self) -> int:
        """Number of stored keys."""
        ...

    @property
    def quota(self) -> int:
        """Nominal capacity in bytes."""
        return 5 * 1024 * 1024

    def subscribe(self, listener: ChangeListener) -> Callable[[], None]:
        """Register *listener* for out-of-band changes.

        Returns an unsubscribe function.  The default substrate is not
        shared, so nothing is ever delivered.
        """
        return lambda: None

    def probe_capacity(self) -> int:
        """Best-effort free space probe.

        Writes a test value in increasing 1 KiB chunks until a write fails
        (or the chunk limit is reached) and returns the largest size that
        was accepted.  The probe key is always removed afterwards.
        """
        data = ""
        saved = 0
        try:
            for _ in range(_PROBE_MAX_CHUNKS):
                data += "0" * _PROBE_CHUNK
                try:
                    self.set_item(CAPACITY_PROBE_KEY, data)
                except Exception:
                    break
                saved = len(data)
        finally:
            self.remove_item(CAPACITY_PROBE_KEY)
        return saved
