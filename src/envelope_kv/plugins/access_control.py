"""AccessControlPlugin — role-based veto of reads, writes and deletes."""

from __future__ import annotations

from typing import Any

from envelope_kv.context import HookContext
from envelope_kv.exceptions import AccessDeniedError
from envelope_kv.plugins.base import HookResult, Plugin

DEFAULT_ROLES: dict[str, dict[str, bool]] = {
    "admin": {"read": True, "write": True, "delete": True},
    "user": {"read": True, "write": True, "delete": False},
    "guest": {"read": True, "write": False, "delete": False},
}


class AccessControlPlugin(Plugin):
    """A plugin that gates engine operations on the caller's role.

    The role comes from the ``role`` call option (``engine.set(k, v,
    role="admin")``) and falls back to ``default_role``.  Keys starting with
    ``protected_prefix`` are reserved for the admin role regardless of the
    permission table.

    On denial the hook raises :class:`AccessDeniedError`, which the engine
    reports through the ``error`` event and re-raises to the caller.

    Parameters:
        name:             Unique plugin name.
        roles:            Role → ``{"read", "write", "delete"}`` flags.
                          Defaults to admin / user / guest.
        default_role:     Role used when a call gives none.
        protected_prefix: Key prefix only the admin role may touch.
    """

    _plugin_type = "access_control"
    _plugin_description = "Role-based access control for reads, writes and deletes"

    def __init__(
        self,
        *,
        name: str = "access_control",
        roles: dict[str, dict[str, bool]] | None = None,
        default_role: str = "user",
        protected_prefix: str = "system_",
        admin_role: str = "admin",
    ) -> None:
        self._name = name
        source = roles if roles is not None else DEFAULT_ROLES
        self._roles = {role: dict(perms) for role, perms in source.items()}
        self._default_role = default_role
        self._protected_prefix = protected_prefix
        self._admin_role = admin_role

    @property
    def name(self) -> str:
        return self._name

    def export(self) -> dict[str, Any]:
        data = super().export()
        data["config"] = {
            "roles": {role: dict(perms) for role, perms in sorted(self._roles.items())},
            "default_role": self._default_role,
            "protected_prefix": self._protected_prefix,
        }
        return data

    # ── evaluation ───────────────────────────────────────────

    def check_permission(self, role: str, action: str, key: str) -> bool:
        perms = self._roles.get(role)
        if perms is None:
            return False
        if self._protected_prefix and key.startswith(self._protected_prefix):
            if role != self._admin_role:
                return False
        return perms.get(action) is True

    def _enforce(self, context: HookContext, action: str) -> None:
        role = context.options.get("role") or self._default_role
        if not self.check_permission(role, action, context.key):
            raise AccessDeniedError(action, context.key, f"role '{role}'")

    def before_set(self, context: HookContext) -> HookResult:
        self._enforce(context, "write")
        return None

    def before_get(self, context: HookContext) -> HookResult:
        self._enforce(context, "read")
        return None

    def before_remove(self, context: HookContext) -> HookResult:
        self._enforce(context, "delete")
        return None

    # ── runtime management ───────────────────────────────────

    def add_role(self, role: str, permissions: dict[str, bool]) -> None:
        self._roles[role] = dict(permissions)

    def remove_role(self, role: str) -> None:
        self._roles.pop(role, None)

    def get_roles(self) -> dict[str, dict[str, bool]]:
        return {role: dict(perms) for role, perms in self._roles.items()}
