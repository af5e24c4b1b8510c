"""HookPipeline — ordered middleware chain around every engine operation."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from envelope_kv.context import HookContext, HookName
from envelope_kv.exceptions import PluginError
from envelope_kv.plugins.base import HookFn, Plugin

if TYPE_CHECKING:
    from envelope_kv.engine import StorageEngine

InitFn = Callable[["StorageEngine"], Any]


@dataclass
class PluginSpec:
    """Normalized plugin registration.

    Every accepted plugin shape is turned into one of these so that the
    engine dispatches on declared capabilities instead of inspecting shapes.
    """

    name: str
    hooks: dict[HookName, HookFn] = field(default_factory=dict)
    events: dict[str, Callable[..., Any]] = field(default_factory=dict)
    init: InitFn | None = None
    source: Any = None

    @property
    def has_hooks(self) -> bool:
        return bool(self.hooks)

    @property
    def has_events(self) -> bool:
        return bool(self.events)

    @property
    def has_init(self) -> bool:
        return self.init is not None


def normalize_plugin(plugin: Any) -> PluginSpec:
    """Turn a :class:`Plugin`, a mapping or a bare callable into a :class:`PluginSpec`.

    * ``Plugin`` instance → its overridden hooks, ``events()`` and ``init``.
    * Mapping → ``hooks`` (hook name → callable, camelCase accepted),
      optional ``events`` and ``init``.
    * Bare callable → an initializer invoked once with the engine.

    Raises:
        PluginError: If the shape is not recognised or names an unknown hook.
    """
    if isinstance(plugin, Plugin):
        return PluginSpec(
            name=plugin.name,
            hooks=plugin.hooks(),
            events=dict(plugin.events()),
            init=plugin.init,
            source=plugin,
        )
    if isinstance(plugin, Mapping):
        hooks: dict[HookName, HookFn] = {}
        for hook_name, fn in (plugin.get("hooks") or {}).items():
            try:
                hook = HookName.parse(hook_name)
            except ValueError as exc:
                raise PluginError(f"Unknown hook '{hook_name}'") from exc
            if not callable(fn):
                raise PluginError(f"Hook '{hook_name}' is not callable")
            hooks[hook] = fn
        init = plugin.get("init")
        if init is not None and not callable(init):
            raise PluginError("Plugin 'init' is not callable")
        return PluginSpec(
            name=str(plugin.get("name", "anonymous")),
            hooks=hooks,
            events=dict(plugin.get("events") or {}),
            init=init,
            source=plugin,
        )
    if callable(plugin):
        name = getattr(plugin, "__name__", "initializer")
        return PluginSpec(name=name, init=plugin, source=plugin)
    raise PluginError(f"Unsupported plugin type: {type(plugin).__name__}")


class HookPipeline:
    """Runs plugin hooks in **registration order**.

    Each defined callback receives the current accumulated context.  A
    non-empty return replaces (or partially updates) the context before
    the next plugin sees it; ``None``, ``False`` or an empty mapping means
    "no change".  Exceptions are not caught here; they abort
    the chain and the owning operation decides how to report them.
    """

    def __init__(self) -> None:
        self._plugins: list[PluginSpec] = []

    def add(self, spec: PluginSpec) -> None:
        if spec.has_hooks:
            self._plugins.append(spec)

    def clear(self) -> None:
        self._plugins = []

    def names(self) -> list[str]:
        return [p.name for p in self._plugins]

    def __len__(self) -> int:
        return len(self._plugins)

    def run(self, hook: HookName | str, context: HookContext) -> HookContext:
        stage = HookName.parse(hook)
        current = context
        for spec in list(self._plugins):
            fn = spec.hooks.get(stage)
            if fn is None:
                continue
            result = fn(current)
            if result:
                current = current.merged(result)
        return current
