"""Persistence of per-user permission overrides.

`OverrideStore` is the interface the resolver needs; `SqlAlchemyOverrideStore`
implements it on the `permisos_usuario` table through the request's
AsyncSession. Rows are returned as `PermissionOverride` records so callers
never hold live ORM objects.

Database errors are not caught here: they reach the caller unchanged.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Protocol

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from consultorio.models.permiso import PermisoUsuario


@dataclass(frozen=True, slots=True)
class PermissionOverride:
    id: str
    user_id: str
    permission: str
    active: bool
    assigned_at: datetime | None = None

    @classmethod
    def from_row(cls, row: PermisoUsuario) -> "PermissionOverride":
        return cls(
            id=row.id,
            user_id=row.usuario_id,
            permission=row.permiso,
            active=bool(row.activo),
            assigned_at=row.fecha_asignacion,
        )


class OverrideNotFoundError(LookupError):
    """Raised by `update_active` when the override id does not exist."""

    def __init__(self, override_id: str):
        self.override_id = override_id
        super().__init__(f"Permission override not found: {override_id}")


class OverrideStore(Protocol):
    async def find_by_user(self, user_id: str) -> list[PermissionOverride]: ...

    async def find_by_user_and_permission(
        self, user_id: str, permission: str
    ) -> PermissionOverride | None: ...

    async def insert(self, user_id: str, permission: str, active: bool) -> PermissionOverride: ...

    async def update_active(self, override_id: str, active: bool) -> PermissionOverride: ...


class SqlAlchemyOverrideStore:
    """`OverrideStore` backed by the `permisos_usuario` table."""

    def __init__(self, db: AsyncSession):
        self._db = db

    async def find_by_user(self, user_id: str) -> list[PermissionOverride]:
        """All overrides of a user, most recent assignment first."""
        result = await self._db.execute(
            select(PermisoUsuario)
            .where(PermisoUsuario.usuario_id == user_id)
            .order_by(PermisoUsuario.fecha_asignacion.desc(), PermisoUsuario.id.desc())
        )
        return [PermissionOverride.from_row(row) for row in result.scalars().all()]

    async def find_by_user_and_permission(
        self, user_id: str, permission: str
    ) -> PermissionOverride | None:
        # Ordered + limited so a legacy duplicate pair resolves to the latest write.
        result = await self._db.execute(
            select(PermisoUsuario)
            .where(
                PermisoUsuario.usuario_id == user_id,
                PermisoUsuario.permiso == permission,
            )
            .order_by(PermisoUsuario.fecha_asignacion.desc(), PermisoUsuario.id.desc())
            .limit(1)
        )
        row = result.scalar_one_or_none()
        return PermissionOverride.from_row(row) if row else None

    async def find_by_id(self, override_id: str) -> PermissionOverride | None:
        row = await self._db.get(PermisoUsuario, override_id)
        return PermissionOverride.from_row(row) if row else None

    async def insert(self, user_id: str, permission: str, active: bool) -> PermissionOverride:
        row = PermisoUsuario(
            usuario_id=user_id,
            permiso=permission,
            activo=active,
            fecha_asignacion=datetime.now(timezone.utc),
        )
        self._db.add(row)
        await self._db.flush()
        return PermissionOverride.from_row(row)

    async def update_active(self, override_id: str, active: bool) -> PermissionOverride:
        row = await self._db.get(PermisoUsuario, override_id)
        if row is None:
            raise OverrideNotFoundError(override_id)
        row.activo = active
        row.fecha_asignacion = datetime.now(timezone.utc)
        await self._db.flush()
        return PermissionOverride.from_row(row)

    async def delete(self, override_id: str) -> bool:
        """Remove an override; the user falls back to the role default."""
        result = await self._db.execute(
            delete(PermisoUsuario).where(PermisoUsuario.id == override_id)
        )
        return (result.rowcount or 0) > 0
