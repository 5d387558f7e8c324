"""Log: error trail from both the frontend and this backend.

A single table; `origen` tells them apart ('front' | 'back'). Backend rows
are written by the exception handlers, frontend rows through POST /api/logs.
"""

from datetime import datetime, timezone

from sqlalchemy import DateTime, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from consultorio.database import Base


class Log(Base):
    __tablename__ = "logs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
        index=True,
    )
    origen: Mapped[str] = mapped_column(String(10), nullable=False, index=True)

    # ── Who ────────────────────────────────────────────────────
    # No FK: logs must survive user deletion.
    usuario_id: Mapped[str | None] = mapped_column(String(36))
    rol: Mapped[str | None] = mapped_column(String(30))

    # ── Where (front) ──────────────────────────────────────────
    pantalla: Mapped[str | None] = mapped_column(String(200))
    accion: Mapped[str | None] = mapped_column(String(200))

    # ── Where (back) ───────────────────────────────────────────
    ruta: Mapped[str | None] = mapped_column(String(500))
    metodo: Mapped[str | None] = mapped_column(String(10))
    params: Mapped[str | None] = mapped_column(Text)

    # ── What ───────────────────────────────────────────────────
    mensaje: Mapped[str] = mapped_column(Text, nullable=False, default="")
    stack: Mapped[str | None] = mapped_column(Text)
