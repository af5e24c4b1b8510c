"""Result objects returned by aggregate engine operations."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class TransactionResult:
    """Per-key outcome of :meth:`StorageEngine.transaction`.

    The batch is not rolled back when one write fails: keys mapped to
    ``True`` were applied even if others report ``False``.

    Attributes:
        set:    Key → success of each write.
        remove: Key → success of each removal.
    """

    set: dict[str, bool] = field(default_factory=dict)
    remove: dict[str, bool] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return all(self.set.values()) and all(self.remove.values())

    @property
    def failed_keys(self) -> list[str]:
        return [k for k, v in {**self.set, **self.remove}.items() if not v]


@dataclass(frozen=True)
class StorageStats:
    """Snapshot returned by :meth:`StorageEngine.get_stats`.

    Attributes:
        keys:      Number of logical keys in this namespace.
        size:      UTF-8 bytes of this namespace's stored text.
        available: Bytes accepted by the substrate's capacity probe.
        quota:     Nominal substrate capacity in bytes.
        namespace: The engine's namespace.
    """

    keys: int
    size: int
    available: int
    quota: int
    namespace: str
