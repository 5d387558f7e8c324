"""Pydantic schemas for e-mail notifications."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, EmailStr, Field

Estado = Literal["pendiente", "enviado", "fallido"]


class NotificacionCreate(BaseModel):
    destinatario_email: EmailStr
    asunto: str = Field(..., min_length=1, max_length=255)
    contenido: str = Field(..., min_length=1)
    tipo: str | None = Field(None, max_length=50)
    relacionado_tipo: str | None = Field(None, max_length=50)
    relacionado_id: str | None = Field(None, max_length=36)


class NotificacionUpdate(BaseModel):
    asunto: str | None = Field(None, min_length=1, max_length=255)
    contenido: str | None = Field(None, min_length=1)
    tipo: str | None = Field(None, max_length=50)
    estado: Estado | None = None
    error_mensaje: str | None = None


class NotificacionOut(BaseModel):
    id: str
    destinatario_email: str
    asunto: str
    contenido: str
    tipo: str | None
    estado: str
    error_mensaje: str | None
    relacionado_tipo: str | None
    relacionado_id: str | None
    fecha_envio: datetime | None
    fecha_creacion: datetime | None = None
    fecha_actualizacion: datetime | None = None

    model_config = {"from_attributes": True}
