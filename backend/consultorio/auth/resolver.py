"""Permission resolution: role defaults + per-user overrides.

Precedence, for one (user, permission) pair:
  1. Unknown permission name     → not granted.
  2. Stored override             → its `active` flag, whatever the role says.
  3. No override                 → membership in the role's defaults.

The resolver holds no state and caches nothing: every call reads the
override store, so a grant/revoke is visible to the next request. Store
errors propagate to the caller, which must treat them as a denial.
"""

from __future__ import annotations

from consultorio.auth.overrides import OverrideStore, PermissionOverride
from consultorio.auth.permissions import DEFAULT_CATALOG, PermissionCatalog, Rol


class PermissionResolver:
    def __init__(self, store: OverrideStore, catalog: PermissionCatalog = DEFAULT_CATALOG):
        self.store = store
        self.catalog = catalog

    def is_valid_permission(self, name: object) -> bool:
        return self.catalog.is_valid(name)

    async def get_user_permissions(self, user_id: str, role: str | Rol | None) -> dict[str, bool]:
        """Effective permission map for a user.

        Role defaults are seeded as True; every stored override then writes
        its own value on top. Overrides come back newest first, so they are
        applied oldest first and the latest write wins for a repeated name.
        Names missing from the catalog are skipped so this view always
        agrees with `has_permission`.
        """
        effective = {perm: True for perm in self.catalog.defaults_for_role(role)}

        overrides = await self.store.find_by_user(user_id)
        for override in reversed(overrides):
            if not self.catalog.is_valid(override.permission):
                continue
            effective[override.permission] = override.active

        return effective

    async def _override_state(self, user_id: str, permission: str) -> bool | None:
        """True/False when an override decides, None when the role does."""
        override = await self.store.find_by_user_and_permission(user_id, permission)
        if override is None:
            return None
        return override.active

    async def has_permission(self, user_id: str, role: str | Rol | None, permission: str) -> bool:
        if not self.is_valid_permission(permission):
            return False

        state = await self._override_state(user_id, permission)
        if state is not None:
            return state

        return permission in self.catalog.defaults_for_role(role)

    async def can_access(self, user_id: str, role: str | Rol | None, permission: str) -> bool:
        """Alias of `has_permission`."""
        return await self.has_permission(user_id, role, permission)

    async def _set(self, user_id: str, permission: str, active: bool) -> PermissionOverride:
        """Update the user's override for `permission`, or insert one.

        Names outside the catalog are stored like any other; reads never
        grant them.
        """
        existing = await self.store.find_by_user_and_permission(user_id, permission)
        if existing is not None:
            return await self.store.update_active(existing.id, active)
        return await self.store.insert(user_id, permission, active)

    async def grant(self, user_id: str, permission: str) -> PermissionOverride:
        """Force `permission` on for the user (idempotent)."""
        return await self._set(user_id, permission, True)

    async def revoke(self, user_id: str, permission: str) -> PermissionOverride:
        """Force `permission` off for the user, even if the role never had it."""
        return await self._set(user_id, permission, False)
