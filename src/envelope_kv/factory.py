# Copyright (c) 2024 OpenMined
# SPDX-License-Identifier: Apache-2.0
"""Builds engines and their plugin chains from ``EngineConfig``.

The ``type`` field of each plugin entry names a class in
``PluginFactory._registry``; applications add their own plugin classes with
``PluginFactory.register`` before building.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, ClassVar

from envelope_kv.engine import StorageEngine
from envelope_kv.logging_config import get_logger
from envelope_kv.plugins import AccessControlPlugin, CompressionPlugin, Plugin

from .config import EngineConfig, PluginConfigSchema

if TYPE_CHECKING:
    from envelope_kv.substrates.base import Substrate

log = get_logger(__name__)


class PluginFactoryError(Exception):
    """A plugin entry could not be turned into a plugin object."""


class PluginFactory:
    """Turns ``PluginConfigSchema`` entries into plugin objects for an engine.

    Built-in types are ``access_control`` and ``compression``. The registry is
    shared by every factory, so a type registered once is available to all
    later ``build_engine`` calls.

    Example:
        factory = PluginFactory()
        configs = [
            PluginConfigSchema(name="acl", type="access_control", config={"default_role": "guest"}),
            PluginConfigSchema(name="zip", type="compression", config={"min_size": 256}),
        ]
        plugins = factory.create_all(configs)
    """

    _registry: ClassVar[dict[str, type[Plugin]]] = {
        "access_control": AccessControlPlugin,
        "compression": CompressionPlugin,
    }

    def __init__(self) -> None:
        # plugins built by this factory, by configured name
        self._instances: dict[str, Plugin] = {}

    @classmethod
    def register(cls, type_name: str, plugin_class: type[Plugin]) -> None:
        """Make *plugin_class* buildable under ``type: <type_name>``.

        The class is called with ``name=`` plus the entry's ``config`` mapping
        as keyword arguments.

        Raises:
            ValueError: If the class declares a different ``_plugin_type``

        Example:
            PluginFactory.register("audit", AuditPlugin)
        """
        declared_type = getattr(plugin_class, "_plugin_type", "base")
        if declared_type != "base" and declared_type != type_name:
            raise ValueError(
                f"Plugin {plugin_class.__name__} has _plugin_type='{declared_type}' "
                f"but is being registered as '{type_name}'"
            )
        cls._registry[type_name] = plugin_class

    @classmethod
    def registered_types(cls) -> list[str]:
        """Type names accepted in a plugin entry."""
        return list(cls._registry.keys())

    def create_all(self, configs: list[PluginConfigSchema]) -> list[Plugin]:
        """Build one plugin per entry, in the order the engine will run them.

        Raises:
            PluginFactoryError: If an entry cannot be built, or two entries
                share a name
        """
        plugins: list[Plugin] = []

        for config in configs:
            if config.name in self._instances:
                raise PluginFactoryError(f"Duplicate plugin name: '{config.name}'")
            try:
                plugin = self._create_one(config)
            except PluginFactoryError:
                raise
            except Exception as e:
                raise PluginFactoryError(
                    f"Failed to create plugin '{config.name}' of type '{config.type}': {e}"
                ) from e
            self._instances[config.name] = plugin
            plugins.append(plugin)

        return plugins

    def _create_one(self, config: PluginConfigSchema) -> Plugin:
        plugin_class = self._registry.get(config.type)
        if not plugin_class:
            available = ", ".join(sorted(self.registered_types()))
            raise PluginFactoryError(
                f"Unknown plugin type: '{config.type}'. Available types: {available}"
            )
        # All concrete plugins accept name kwarg, but base Plugin doesn't declare it
        return plugin_class(name=config.name, **config.config)  # type: ignore[call-arg]

    def get_instance(self, name: str) -> Plugin | None:
        """The plugin this factory built under *name*, if any."""
        return self._instances.get(name)


def build_engine(
    config: EngineConfig | dict[str, Any],
    substrate: Substrate | None = None,
    **runtime: Any,
) -> StorageEngine:
    """Create an engine from *config* and install its plugins in order.

    Args:
        config: Engine configuration (model or plain dict)
        substrate: Substrate to wrap
        runtime: Non-serializable engine arguments such as ``clock``,
            ``scheduler``, ``validator``, ``serializer``

    Returns:
        The configured engine

    Raises:
        PluginFactoryError: If a plugin cannot be created
    """
    if not isinstance(config, EngineConfig):
        config = EngineConfig.model_validate(config)

    engine = StorageEngine(
        substrate,
        config.namespace,
        separator=config.namespace_separator,
        default_ttl=config.default_ttl,
        encryption_key=config.encryption_key,
        auto_cleanup=config.auto_cleanup,
        cleanup_interval=config.cleanup_interval,
        cross_tab_sync=config.cross_tab_sync,
        crypto_engine=config.crypto_engine,
        watch_interval_ms=config.watch_interval_ms,
        **runtime,
    )
    for plugin in PluginFactory().create_all(config.plugins):
        engine.use(plugin)
    log.info(
        "engine_built",
        namespace=config.namespace,
        plugins=[p.name for p in config.plugins],
    )
    return engine
