"""Aggregate model imports for Alembic auto-detection."""

from consultorio.models.usuario import Usuario  # noqa: F401
from consultorio.models.permiso import PermisoUsuario  # noqa: F401
from consultorio.models.paciente import Paciente  # noqa: F401
from consultorio.models.profesional import Profesional  # noqa: F401
from consultorio.models.notificacion import EstadoNotificacion, Notificacion  # noqa: F401
from consultorio.models.log import Log  # noqa: F401
