"""Notificacion: outgoing e-mail notification and its delivery state."""

import enum
import uuid
from datetime import datetime, timezone

from sqlalchemy import DateTime, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from consultorio.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class EstadoNotificacion(str, enum.Enum):
    PENDIENTE = "pendiente"
    ENVIADO = "enviado"
    FALLIDO = "fallido"


class Notificacion(Base):
    __tablename__ = "notificaciones_email"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    destinatario_email: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    asunto: Mapped[str] = mapped_column(String(255), nullable=False)
    contenido: Mapped[str] = mapped_column(Text, nullable=False)
    tipo: Mapped[str | None] = mapped_column(String(50), index=True)

    # pendiente | enviado | fallido
    estado: Mapped[str] = mapped_column(
        String(20), nullable=False, default=EstadoNotificacion.PENDIENTE.value, index=True
    )
    error_mensaje: Mapped[str | None] = mapped_column(Text)

    # Optional link to the entity that triggered it (turno, pago, ...)
    relacionado_tipo: Mapped[str | None] = mapped_column(String(50))
    relacionado_id: Mapped[str | None] = mapped_column(String(36))

    fecha_envio: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    fecha_creacion: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, index=True
    )
    fecha_actualizacion: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow
    )
