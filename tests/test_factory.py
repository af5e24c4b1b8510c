"""Tests for the plugin factory and engine builder."""

import pytest

from envelope_kv import (
    EngineConfig,
    PluginConfigSchema,
    PluginFactory,
    PluginFactoryError,
    build_engine,
)
from envelope_kv.plugins import AccessControlPlugin, CompressionPlugin, Plugin


class AuditPlugin(Plugin):
    _plugin_type = "audit"

    def __init__(self, *, name: str, level: str = "info"):
        self._name = name
        self.level = level

    @property
    def name(self) -> str:
        return self._name


@pytest.fixture
def restore_registry():
    saved = dict(PluginFactory._registry)
    yield
    PluginFactory._registry.clear()
    PluginFactory._registry.update(saved)


class TestPluginFactory:
    """Tests for PluginFactory."""

    def test_registered_types(self):
        types = PluginFactory.registered_types()
        assert "access_control" in types
        assert "compression" in types

    def test_create_preserves_order_and_config(self):
        factory = PluginFactory()
        plugins = factory.create_all(
            [
                PluginConfigSchema(
                    name="acl", type="access_control", config={"default_role": "guest"}
                ),
                PluginConfigSchema(name="zip", type="compression", config={"min_size": 8}),
            ]
        )
        assert [p.name for p in plugins] == ["acl", "zip"]
        assert isinstance(plugins[0], AccessControlPlugin)
        assert isinstance(plugins[1], CompressionPlugin)
        assert plugins[1].min_size == 8
        assert factory.get_instance("acl") is plugins[0]
        assert factory.get_instance("missing") is None

    def test_unknown_type_raises_error(self):
        with pytest.raises(PluginFactoryError) as exc_info:
            PluginFactory().create_all([PluginConfigSchema(name="bad", type="unknown_type")])
        assert "unknown_type" in str(exc_info.value)
        assert "compression" in str(exc_info.value)

    def test_duplicate_names_raise_error(self):
        configs = [
            PluginConfigSchema(name="dup", type="compression"),
            PluginConfigSchema(name="dup", type="access_control"),
        ]
        with pytest.raises(PluginFactoryError, match="Duplicate"):
            PluginFactory().create_all(configs)

    def test_bad_config_is_wrapped(self):
        with pytest.raises(PluginFactoryError, match="zip"):
            PluginFactory().create_all(
                [PluginConfigSchema(name="zip", type="compression", config={"bogus": 1})]
            )

    def test_register_custom_type(self, restore_registry):
        PluginFactory.register("audit", AuditPlugin)
        plugins = PluginFactory().create_all(
            [PluginConfigSchema(name="a", type="audit", config={"level": "debug"})]
        )
        assert plugins[0].level == "debug"

    def test_register_type_mismatch(self, restore_registry):
        with pytest.raises(ValueError, match="_plugin_type"):
            PluginFactory.register("other", AuditPlugin)


class TestBuildEngine:
    """Tests for build_engine."""

    def test_builds_engine_from_dict(self, substrate, clock, scheduler):
        engine = build_engine(
            {"namespace": "cfg", "default_ttl": 10, "cleanup_interval": 5},
            substrate,
            clock=clock,
            scheduler=scheduler,
        )
        try:
            assert engine.namespace == "cfg"
            assert engine.default_ttl == 10
            assert scheduler.tasks[0].interval == 5
            engine.set("k", 1)
            assert substrate.get_item("cfg:k") is not None
        finally:
            engine.destroy()

    def test_installs_plugins_in_order(self, substrate, clock, scheduler):
        config = EngineConfig(
            namespace="p",
            plugins=[
                PluginConfigSchema(name="acl", type="access_control"),
                PluginConfigSchema(name="zip", type="compression", config={"min_size": 4}),
            ],
        )
        engine = build_engine(config, substrate, clock=clock, scheduler=scheduler)
        try:
            assert engine.plugins == ["acl", "zip"]
            engine.set("k", "compress me")
            assert '"compressed":"zlib"' in substrate.get_item("p:k")
            assert engine.get("k") == "compress me"
        finally:
            engine.destroy()

    def test_runtime_arguments_pass_through(self, substrate, clock, scheduler):
        engine = build_engine(
            EngineConfig(namespace="v"),
            substrate,
            clock=clock,
            scheduler=scheduler,
            validator=lambda value, key: value != "bad",
        )
        try:
            assert engine.set("k", "bad") is False
        finally:
            engine.destroy()


def test_registered_type_is_shared_by_later_builds(restore_registry, substrate, clock, scheduler):
    PluginFactory.register("audit", AuditPlugin)
    engine = build_engine(
        {"namespace": "a", "plugins": [{"name": "log", "type": "audit"}]},
        substrate,
        clock=clock,
        scheduler=scheduler,
    )
    try:
        assert engine.plugins == ["log"]
        assert "audit" in PluginFactory().registered_types()
    finally:
        engine.destroy()
