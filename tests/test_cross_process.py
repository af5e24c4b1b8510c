"""Tests for change notifications arriving from other processes."""

import pytest


@pytest.fixture
def pair(make_engine, substrate):
    """Two engines over the same storage, as if running in two processes."""
    local = make_engine("app")
    remote = make_engine("app", substrate=substrate.sibling())
    return local, remote


def test_remote_write_emits_change_with_old_value(pair):
    local, remote = pair
    seen = []
    local.on("change", lambda key, new, old: seen.append((key, new, old)))
    local.on("change:theme", lambda new, old: seen.append(("scoped", new, old)))

    remote.set("theme", "dark")
    remote.set("theme", "light")

    assert seen == [
        ("theme", "dark", None),
        ("scoped", "dark", None),
        ("theme", "light", "dark"),
        ("scoped", "light", "dark"),
    ]


def test_own_writes_are_not_echoed(pair):
    local, remote = pair
    seen = []
    local.on("change", lambda *a: seen.append(a))
    local.set("k", 1)
    assert seen == [("k", 1)]


def test_remote_write_bypasses_hooks(pair):
    local, remote = pair
    calls = []
    local.use(
        {
            "hooks": {
                "before_set": lambda ctx: calls.append("before_set"),
                "after_set": lambda ctx: calls.append("after_set"),
                "after_get": lambda ctx: calls.append("after_get"),
            }
        }
    )
    remote.set("k", 1)
    assert calls == []


def test_remote_remove_emits_remove(pair):
    local, remote = pair
    seen = []
    local.on("remove", lambda key, old: seen.append((key, old)))
    remote.set("k", [1])
    remote.remove("k")
    assert seen == [("k", [1])]


def test_remote_write_updates_watchers(pair):
    local, remote = pair
    changes = []
    local.watch("k", lambda new, old: changes.append((new, old)))
    remote.set("k", "v")
    assert changes == [("v", None)]


def test_keys_outside_namespace_are_ignored(make_engine, substrate):
    local = make_engine("app")
    other = make_engine("other", substrate=substrate.sibling())
    seen = []
    local.on("change", lambda *a: seen.append(a))
    other.set("k", 1)
    assert seen == []


def test_remote_encrypted_write_is_decoded(make_engine, substrate):
    local = make_engine("sec", encryption_key="shared")
    remote = make_engine("sec", substrate=substrate.sibling(), encryption_key="shared")
    seen = []
    local.on("change", lambda key, new, old: seen.append(new))
    remote.set("card", {"n": 1})
    assert seen == [{"n": 1}]


def test_remote_clear_is_ignored(pair):
    local, remote = pair
    seen = []
    local.on("clear", lambda: seen.append("clear"))
    local.on("remove", lambda *a: seen.append(a))
    remote.substrate.clear()
    assert seen == []


def test_sync_disabled(make_engine, substrate):
    local = make_engine("app", cross_tab_sync=False)
    remote = make_engine("app", substrate=substrate.sibling())
    seen = []
    local.on("change", lambda *a: seen.append(a))
    remote.set("k", 1)
    assert seen == []


def test_destroy_unsubscribes(pair):
    local, remote = pair
    seen = []
    local.destroy()
    local.on("change", lambda *a: seen.append(a))
    remote.set("k", 1)
    assert seen == []
