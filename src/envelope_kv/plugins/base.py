"""Plugin ABC — the class-based way to attach hooks to an engine."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import TYPE_CHECKING, Any, ClassVar

from envelope_kv.context import HookContext, HookName

if TYPE_CHECKING:
    from envelope_kv.engine import StorageEngine

HookResult = HookContext | dict[str, Any] | None
HookFn = Callable[[HookContext], HookResult]


class Plugin(ABC):
    """Base class for every class-based plugin.

    Subclasses **must** define a ``name`` property (or class attribute).

    Override any of ``before_set`` … ``after_remove`` to take part in that
    stage of the pipeline.  Only overridden hooks are registered, so the
    pipeline does not pay for stages a plugin ignores.  A hook returns a
    replacement context, a mapping of fields to change, or ``None``.
    Raising from a hook vetoes the operation.

    Class Variables:
        _plugin_type: Type identifier for serialization (e.g., "compression").
        _plugin_version: Version string for the plugin schema.
        _plugin_description: Human-readable description of the plugin.
    """

    _plugin_type: ClassVar[str] = "base"
    _plugin_version: ClassVar[str] = "1.0"
    _plugin_description: ClassVar[str] = ""

    engine: StorageEngine | None = None

    @property
    @abstractmethod
    def name(self) -> str:
        """Unique identifier for this plugin instance."""
        ...

    def before_set(self, context: HookContext) -> HookResult:
        return None

    def after_set(self, context: HookContext) -> HookResult:
        return None

    def before_get(self, context: HookContext) -> HookResult:
        return None

    def after_get(self, context: HookContext) -> HookResult:
        return None

    def before_remove(self, context: HookContext) -> HookResult:
        return None

    def after_remove(self, context: HookContext) -> HookResult:
        return None

    def events(self) -> dict[str, Callable[..., Any]]:
        """Event listeners to wire into the engine's event bus."""
        return {}

    def init(self, engine: StorageEngine) -> None:
        """Called once when the plugin is registered with an engine."""
        self.engine = engine

    # ── introspection ─────────────────────────────────────────

    def hooks(self) -> dict[HookName, HookFn]:
        """Return the bound hooks this plugin overrides."""
        found: dict[HookName, HookFn] = {}
        for hook in HookName:
            if getattr(type(self), hook.value) is not getattr(Plugin, hook.value):
                found[hook] = getattr(self, hook.value)
        return found

    def export(self) -> dict[str, Any]:
        """Return a JSON-serializable snapshot of this plugin.

        Subclasses should call ``super().export()`` and populate the
        ``"config"`` key in the returned dict.
        """
        return {
            "name": self.name,
            "type": self._plugin_type,
            "version": self._plugin_version,
            "description": self._plugin_description,
            "hooks": [h.value for h in self.hooks()],
            "config": {},
        }
