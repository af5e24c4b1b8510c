"""Tests for HookContext and HookName."""

import pytest

from envelope_kv import HookContext, HookName


def test_defaults():
    ctx = HookContext(operation="set", key="k")
    assert ctx.value is None
    assert ctx.raw_value is None
    assert ctx.options == {}
    assert ctx.meta == {}


def test_mutable():
    ctx = HookContext(operation="set", key="k", value=1)
    ctx.options["role"] = "admin"
    ctx.meta["flag"] = True
    assert ctx.options == {"role": "admin"}
    assert ctx.meta == {"flag": True}


def test_merged_with_mapping_replaces_named_fields():
    ctx = HookContext(operation="set", key="k", value=1, options={"ttl": 5})
    updated = ctx.merged({"value": 2})
    assert updated.value == 2
    assert updated.options == {"ttl": 5}
    assert updated.key == "k"
    assert ctx.value == 1


def test_merged_with_full_context_replaces_everything():
    ctx = HookContext(operation="set", key="k", value=1)
    other = HookContext(operation="set", key="k", value="x", meta={"m": 1})
    assert ctx.merged(other) is other


def test_merged_rejects_unknown_fields():
    ctx = HookContext(operation="get", key="k")
    with pytest.raises(TypeError, match="bogus"):
        ctx.merged({"bogus": 1})


@pytest.mark.parametrize(
    "name,expected",
    [
        ("before_set", HookName.BEFORE_SET),
        ("beforeSet", HookName.BEFORE_SET),
        ("afterGet", HookName.AFTER_GET),
        ("after_remove", HookName.AFTER_REMOVE),
        (HookName.BEFORE_REMOVE, HookName.BEFORE_REMOVE),
    ],
)
def test_hook_name_parse(name, expected):
    assert HookName.parse(name) is expected


def test_hook_name_parse_unknown():
    with pytest.raises(ValueError):
        HookName.parse("onWhatever")
