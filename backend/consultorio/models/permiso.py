"""PermisoUsuario: per-user exception to the role's default permissions.

One row per (usuario_id, permiso). `activo` decides the outcome for that
permission regardless of the user's role: true grants, false revokes.
Rows are flipped in place by grant/revoke and only disappear through an
explicit administrative delete.
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import Boolean, DateTime, ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from consultorio.database import Base


class PermisoUsuario(Base):
    __tablename__ = "permisos_usuario"
    __table_args__ = (
        UniqueConstraint("usuario_id", "permiso", name="uq_permisos_usuario_usuario_permiso"),
    )

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    usuario_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("usuarios.id", ondelete="CASCADE"), nullable=False, index=True
    )
    permiso: Mapped[str] = mapped_column(String(100), nullable=False)
    activo: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    fecha_asignacion: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    usuario = relationship("Usuario", back_populates="permisos")
