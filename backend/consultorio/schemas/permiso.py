"""Pydantic schemas for permission administration."""

from datetime import datetime

from pydantic import BaseModel

from consultorio.auth.overrides import PermissionOverride


class PermissionOverrideOut(BaseModel):
    id: str
    usuario_id: str
    permiso: str
    activo: bool
    fecha_asignacion: datetime | None

    @classmethod
    def from_record(cls, override: PermissionOverride) -> "PermissionOverrideOut":
        return cls(
            id=override.id,
            usuario_id=override.user_id,
            permiso=override.permission,
            activo=override.active,
            fecha_asignacion=override.assigned_at,
        )


class UserPermissionsOut(BaseModel):
    usuario_id: str
    rol: str
    permisos: dict[str, bool]
    overrides: list[PermissionOverrideOut]


class PermissionCatalogOut(BaseModel):
    permisos: list[str]
    roles: dict[str, list[str]]
