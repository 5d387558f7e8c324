import uuid
from datetime import datetime, timezone

from sqlalchemy import Boolean, DateTime, Enum as SAEnum, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from consultorio.auth.permissions import Rol
from consultorio.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Usuario(Base):
    __tablename__ = "usuarios"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    email: Mapped[str] = mapped_column(
        String(255), unique=True, nullable=False, index=True
    )
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    nombre: Mapped[str] = mapped_column(String(100), default="", server_default="")
    apellido: Mapped[str] = mapped_column(String(100), default="", server_default="")
    telefono: Mapped[str | None] = mapped_column(String(30))
    rol: Mapped[Rol] = mapped_column(
        SAEnum(
            Rol,
            name="rol_usuario",
            values_callable=lambda roles: [r.value for r in roles],
        ),
        nullable=False,
        default=Rol.SECRETARIA,
    )
    activo: Mapped[bool] = mapped_column(Boolean, default=True)

    fecha_creacion: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow
    )
    fecha_actualizacion: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow
    )

    # Per-user permission exceptions; removed together with the user.
    permisos = relationship(
        "PermisoUsuario",
        back_populates="usuario",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    profesional = relationship("Profesional", back_populates="usuario", uselist=False)
