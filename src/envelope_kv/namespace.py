"""KeyNamespacer — maps logical keys to physical substrate keys and back."""

from __future__ import annotations

from dataclasses import dataclass

DEFAULT_SEPARATOR = ":"


@dataclass(frozen=True)
class KeyNamespacer:
    """Prefix scope for one engine.

    A physical key is ``namespace + separator + logical``.  An empty
    namespace maps keys to themselves.  Nested scopes simply extend the
    namespace path, so ``child("b")`` of namespace ``"a"`` owns ``"a:b:*"``.

    Parsing strips the exact prefix, so a logical key that itself contains
    the separator round-trips through this namespacer but is *also* visible
    to a parent scope as an ordinary key (``"a:b:c"`` is ``"c"`` under
    ``"a:b"`` and ``"b:c"`` under ``"a"``).
    """

    namespace: str = ""
    separator: str = DEFAULT_SEPARATOR

    @property
    def prefix(self) -> str:
        return f"{self.namespace}{self.separator}" if self.namespace else ""

    def to_physical(self, key: str) -> str:
        return f"{self.prefix}{key}"

    def to_logical(self, physical_key: str) -> str | None:
        """Return the logical key, or ``None`` if *physical_key* is out of scope."""
        prefix = self.prefix
        if not physical_key.startswith(prefix):
            return None
        return physical_key[len(prefix) :]

    def owns(self, physical_key: str) -> bool:
        return physical_key.startswith(self.prefix)

    def child(self, name: str) -> KeyNamespacer:
        path = f"{self.namespace}{self.separator}{name}" if self.namespace else name
        return KeyNamespacer(namespace=path, separator=self.separator)
