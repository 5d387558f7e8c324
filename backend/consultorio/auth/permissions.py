"""Permission catalog for the consultorio RBAC.

Design:
  - Every permission the system recognises is listed here (closed set).
  - Each role has a set of DEFAULT permissions (defined here, not in DB).
  - Per-user exceptions live in the `permisos_usuario` table and are applied
    on top of these defaults by `PermissionResolver`.
  - `DEFAULT_CATALOG` is built once at import and never mutated; pass a
    different `PermissionCatalog` to the resolver to test alternate setups.

Permission naming: `<resource>.<action>`
  Resources: usuarios, profesionales, pacientes, turnos, agenda,
             evoluciones, archivos, notas, pagos, especialidades,
             obras_sociales, notificaciones
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Iterable, Mapping


class Rol(str, enum.Enum):
    ADMINISTRADOR = "administrador"
    SECRETARIA_JEFE = "secretaria_jefe"
    SECRETARIA = "secretaria"
    PROFESIONAL = "profesional"


# ── All known permissions ───────────────────────────────────

PERMISSIONS: tuple[str, ...] = (
    # Usuarios
    "usuarios.crear",
    "usuarios.leer",
    "usuarios.actualizar",
    "usuarios.eliminar",
    "usuarios.activar",
    "usuarios.desactivar",

    # Profesionales
    "profesionales.crear",
    "profesionales.leer",
    "profesionales.actualizar",
    "profesionales.eliminar",
    "profesionales.bloquear",
    "profesionales.desbloquear",

    # Pacientes
    "pacientes.crear",
    "pacientes.leer",
    "pacientes.actualizar",
    "pacientes.eliminar",
    "pacientes.buscar",

    # Turnos
    "turnos.crear",
    "turnos.leer",
    "turnos.actualizar",
    "turnos.cancelar",
    "turnos.confirmar",
    "turnos.completar",
    "turnos.eliminar",

    # Agenda
    "agenda.crear",
    "agenda.leer",
    "agenda.actualizar",
    "agenda.eliminar",
    "agenda.bloques.crear",
    "agenda.bloques.eliminar",

    # Evoluciones (historia clínica)
    "evoluciones.crear",
    "evoluciones.leer",
    "evoluciones.actualizar",
    "evoluciones.eliminar",

    # Archivos
    "archivos.subir",
    "archivos.leer",
    "archivos.descargar",
    "archivos.eliminar",

    # Notas
    "notas.crear",
    "notas.leer",
    "notas.actualizar",
    "notas.eliminar",

    # Pagos
    "pagos.crear",
    "pagos.leer",
    "pagos.actualizar",
    "pagos.marcar_pagado",

    # Especialidades
    "especialidades.crear",
    "especialidades.leer",
    "especialidades.actualizar",
    "especialidades.eliminar",

    # Obras sociales
    "obras_sociales.crear",
    "obras_sociales.leer",
    "obras_sociales.actualizar",
    "obras_sociales.eliminar",

    # Notificaciones
    "notificaciones.crear",
    "notificaciones.leer",
    "notificaciones.enviar",
)


# ── Role → default permissions ──────────────────────────────

_SECRETARIA: tuple[str, ...] = (
    "pacientes.crear", "pacientes.leer", "pacientes.actualizar", "pacientes.buscar",
    "turnos.crear", "turnos.leer", "turnos.actualizar", "turnos.cancelar", "turnos.confirmar",
    "agenda.leer",
    "archivos.subir", "archivos.leer", "archivos.descargar",
    "notas.crear", "notas.leer", "notas.actualizar",
    "pagos.leer",
)

ROLE_DEFAULTS: dict[str, tuple[str, ...]] = {
    Rol.ADMINISTRADOR.value: PERMISSIONS,

    # Lead secretary: front desk plus scheduling, billing and notifications.
    Rol.SECRETARIA_JEFE.value: _SECRETARIA + (
        "usuarios.leer",
        "profesionales.leer",
        "pacientes.eliminar",
        "agenda.crear", "agenda.actualizar",
        "pagos.crear", "pagos.actualizar", "pagos.marcar_pagado",
        "especialidades.leer", "obras_sociales.leer",
        "notificaciones.crear", "notificaciones.leer", "notificaciones.enviar",
    ),

    Rol.SECRETARIA.value: _SECRETARIA,

    Rol.PROFESIONAL.value: (
        "pacientes.leer", "pacientes.buscar",
        "turnos.crear", "turnos.leer", "turnos.actualizar", "turnos.confirmar", "turnos.completar",
        "agenda.leer", "agenda.bloques.crear", "agenda.bloques.eliminar",
        "evoluciones.crear", "evoluciones.leer", "evoluciones.actualizar",
        "archivos.subir", "archivos.leer", "archivos.descargar",
        "notas.crear", "notas.leer", "notas.actualizar", "notas.eliminar",
        "pagos.leer",
    ),
}


def _role_key(role: str | Rol | None) -> str | None:
    # Rol hashes by member name, so plain-string dict keys need the value.
    if isinstance(role, Rol):
        return role.value
    return role


@dataclass(frozen=True)
class PermissionCatalog:
    """Immutable view of the permission names and the role defaults."""

    permissions: frozenset[str]
    role_defaults: Mapping[str, frozenset[str]] = field(default_factory=dict)

    @classmethod
    def build(
        cls,
        permissions: Iterable[str],
        role_defaults: Mapping[str, Iterable[str]],
    ) -> "PermissionCatalog":
        known = frozenset(permissions)
        defaults: dict[str, frozenset[str]] = {}
        for role, perms in role_defaults.items():
            perms = frozenset(perms)
            unknown = perms - known
            if unknown:
                raise ValueError(
                    f"Role '{role}' references unknown permissions: {', '.join(sorted(unknown))}"
                )
            defaults[_role_key(role)] = perms
        return cls(permissions=known, role_defaults=MappingProxyType(defaults))

    def is_valid(self, name: object) -> bool:
        return isinstance(name, str) and name in self.permissions

    def defaults_for_role(self, role: str | Rol | None) -> frozenset[str]:
        """Default permissions for `role`; unknown roles get nothing."""
        return self.role_defaults.get(_role_key(role), frozenset())

    @property
    def roles(self) -> list[str]:
        return sorted(self.role_defaults)


DEFAULT_CATALOG = PermissionCatalog.build(PERMISSIONS, ROLE_DEFAULTS)


def defaults_for_role(role: str | Rol | None) -> frozenset[str]:
    """Shortcut over `DEFAULT_CATALOG.defaults_for_role`."""
    return DEFAULT_CATALOG.defaults_for_role(role)
