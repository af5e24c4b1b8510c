"""HookContext — the mutable data object that flows through the hook pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field, fields, replace
from enum import Enum
from typing import Any


class HookName(str, Enum):
    """Pipeline stages, in the order an operation reaches them."""

    BEFORE_SET = "before_set"
    AFTER_SET = "after_set"
    BEFORE_GET = "before_get"
    AFTER_GET = "after_get"
    BEFORE_REMOVE = "before_remove"
    AFTER_REMOVE = "after_remove"

    @classmethod
    def parse(cls, name: str | HookName) -> HookName:
        """Accept ``before_set``, ``beforeSet`` or a member."""
        if isinstance(name, HookName):
            return name
        snake = "".join(f"_{c.lower()}" if c.isupper() else c for c in name)
        return cls(snake)


@dataclass
class HookContext:
    """Engine-created context that travels through every plugin.

    Attributes:
        operation: ``"set"``, ``"get"`` or ``"remove"``.
        key:       Logical key being addressed.
        value:     Value being written (set) or read back (after_get).
        raw_value: Substrate text (before_get only).
        options:   Call options, including plugin-specific extras such as
                   ``role``.  Plugins may read **and write** here.
        meta:      Envelope metadata.  Flags written during ``before_set``
                   are persisted with the envelope; ``after_get`` sees the
                   stored metadata.
    """

    operation: str
    key: str
    value: Any = None
    raw_value: str | None = None
    options: dict[str, Any] = field(default_factory=dict)
    meta: dict[str, Any] = field(default_factory=dict)

    def merged(self, update: HookContext | dict[str, Any]) -> HookContext:
        """Return the context that replaces this one after a hook returned *update*.

        A full :class:`HookContext` replaces this one; a mapping replaces
        only the fields it names.
        """
        if isinstance(update, HookContext):
            return update
        known = {f.name for f in fields(self)}
        unknown = set(update) - known
        if unknown:
            raise TypeError(f"Unknown hook context fields: {', '.join(sorted(unknown))}")
        return replace(self, **update)
