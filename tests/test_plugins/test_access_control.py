"""Tests for AccessControlPlugin."""

import pytest

from envelope_kv import AccessDeniedError
from envelope_kv.plugins import AccessControlPlugin


@pytest.fixture
def acl():
    return AccessControlPlugin()


@pytest.fixture
def guarded(engine, acl):
    engine.use(acl)
    return engine


def test_check_permission(acl):
    assert acl.check_permission("admin", "delete", "k")
    assert acl.check_permission("user", "write", "k")
    assert not acl.check_permission("user", "delete", "k")
    assert not acl.check_permission("guest", "write", "k")
    assert not acl.check_permission("nobody", "read", "k")


def test_protected_prefix_is_admin_only(acl):
    assert not acl.check_permission("user", "read", "system_config")
    assert acl.check_permission("admin", "read", "system_config")


def test_default_role_can_write_but_not_delete(guarded):
    assert guarded.set("k", 1)
    assert guarded.get("k") == 1
    with pytest.raises(AccessDeniedError, match="delete"):
        guarded.remove("k")
    assert guarded.get("k") == 1


def test_role_option_is_honoured(guarded):
    guarded.set("k", 1)
    assert guarded.remove("k", role="admin")
    with pytest.raises(AccessDeniedError) as exc_info:
        guarded.set("k", 2, role="guest")
    assert exc_info.value.action == "write"
    assert exc_info.value.key == "k"


def test_denial_is_reported(guarded):
    errors = []
    guarded.on("error", errors.append)
    assert guarded.set("system_secret", 1, role="admin")
    with pytest.raises(AccessDeniedError):
        guarded.get("system_secret")
    assert errors[0].operation == "get"
    assert errors[0].key == "system_secret"


def test_custom_roles(engine):
    engine.use(AccessControlPlugin(roles={"reader": {"read": True}}, default_role="reader"))
    with pytest.raises(AccessDeniedError):
        engine.set("k", 1)


def test_role_management(acl):
    acl.add_role("auditor", {"read": True, "write": False, "delete": False})
    assert acl.check_permission("auditor", "read", "k")
    acl.remove_role("guest")
    assert "guest" not in acl.get_roles()
    acl.remove_role("never-existed")


def test_export(acl):
    data = acl.export()
    assert data["type"] == "access_control"
    assert data["name"] == "access_control"
    assert sorted(data["hooks"]) == ["before_get", "before_remove", "before_set"]
    assert data["config"]["default_role"] == "user"
    assert data["config"]["roles"]["guest"]["write"] is False


def test_expired_entries_are_purged_regardless_of_role(guarded, clock):
    guarded.set("k", 1, ttl=1)
    clock.advance(2)
    assert guarded.cleanup_expired() == 1


def test_delete_only_role_can_remove_unreadable_key(engine):
    acl = AccessControlPlugin(
        roles={
            "admin": {"read": True, "write": True, "delete": True},
            "janitor": {"read": False, "write": False, "delete": True},
        }
    )
    engine.use(acl)
    engine.set("k", 1, role="admin")

    assert engine.remove("k", role="janitor") is True
    assert engine.get("k", role="admin") is None
