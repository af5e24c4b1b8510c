"""CustomPlugin — wrap plain callables as a plugin without subclassing."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import Any

from envelope_kv.context import HookName
from envelope_kv.plugins.base import HookFn, Plugin


class CustomPlugin(Plugin):
    """Wraps per-hook callables as a plugin — no subclassing required.

    Parameters:
        name:   Unique plugin name.
        hooks:  Mapping of hook name (``before_set`` or ``beforeSet``) to
                ``(context) -> context | dict | None``.
        events: Mapping of event name to listener.
    """

    _plugin_type = "custom"
    _plugin_description = "Custom callable-based plugin"

    def __init__(
        self,
        *,
        name: str,
        hooks: Mapping[str, HookFn] | None = None,
        events: Mapping[str, Callable[..., Any]] | None = None,
    ) -> None:
        self._name = name
        self._hooks = {HookName.parse(k): fn for k, fn in (hooks or {}).items()}
        self._events = dict(events or {})

    @property
    def name(self) -> str:
        return self._name

    def hooks(self) -> dict[HookName, HookFn]:
        return dict(self._hooks)

    def events(self) -> dict[str, Callable[..., Any]]:
        return dict(self._events)

    def export(self) -> dict[str, Any]:
        data = super().export()
        data["config"] = {"events": sorted(self._events)}
        return data
