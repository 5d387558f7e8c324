import uuid
from datetime import date, datetime, timezone

from sqlalchemy import Boolean, Date, DateTime, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from consultorio.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Paciente(Base):
    __tablename__ = "pacientes"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    dni: Mapped[str] = mapped_column(String(20), unique=True, nullable=False, index=True)
    nombre: Mapped[str] = mapped_column(String(100), nullable=False)
    apellido: Mapped[str] = mapped_column(String(100), nullable=False)
    fecha_nacimiento: Mapped[date | None] = mapped_column(Date)
    telefono: Mapped[str | None] = mapped_column(String(30))
    email: Mapped[str | None] = mapped_column(String(255))
    direccion: Mapped[str | None] = mapped_column(Text)

    # Health insurance
    obra_social: Mapped[str | None] = mapped_column(String(100))
    numero_afiliado: Mapped[str | None] = mapped_column(String(50))

    contacto_emergencia_nombre: Mapped[str | None] = mapped_column(String(100))
    contacto_emergencia_telefono: Mapped[str | None] = mapped_column(String(30))

    activo: Mapped[bool] = mapped_column(Boolean, default=True)
    fecha_creacion: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow
    )
    fecha_actualizacion: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow
    )
