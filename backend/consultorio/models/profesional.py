import uuid
from datetime import date, datetime, timezone

from sqlalchemy import Boolean, Date, DateTime, ForeignKey, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from consultorio.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Profesional(Base):
    __tablename__ = "profesionales"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    usuario_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("usuarios.id"), unique=True, nullable=False, index=True
    )
    matricula: Mapped[str | None] = mapped_column(String(50))
    especialidad: Mapped[str | None] = mapped_column(String(100))

    # al_dia | pendiente | moroso
    estado_pago: Mapped[str] = mapped_column(String(20), default="al_dia", server_default="al_dia")
    fecha_ultimo_pago: Mapped[date | None] = mapped_column(Date)
    fecha_inicio_contrato: Mapped[date | None] = mapped_column(Date)
    monto_mensual: Mapped[float | None] = mapped_column(Numeric(12, 2))
    # mensual | quincenal | semanal | anual
    tipo_periodo_pago: Mapped[str | None] = mapped_column(String(20))

    bloqueado: Mapped[bool] = mapped_column(Boolean, default=False)
    razon_bloqueo: Mapped[str | None] = mapped_column(Text)
    observaciones: Mapped[str | None] = mapped_column(Text)

    fecha_creacion: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow
    )
    fecha_actualizacion: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow
    )

    usuario = relationship("Usuario", back_populates="profesional")
