"""Pydantic schemas for the error log."""

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, Field


class LogCreate(BaseModel):
    origen: Literal["front", "back"] = "front"
    mensaje: str = Field("Sin mensaje", max_length=10000)
    stack: str | None = None

    # front
    pantalla: str | None = Field(None, max_length=200)
    accion: str | None = Field(None, max_length=200)

    # back
    ruta: str | None = Field(None, max_length=500)
    metodo: str | None = Field(None, max_length=10)
    params: Any = None


class LogCreated(BaseModel):
    id: int
    created_at: datetime


class LogOut(BaseModel):
    id: int
    created_at: datetime
    origen: str
    usuario_id: str | None
    usuario_email: str | None = None
    rol: str | None
    pantalla: str | None
    accion: str | None
    ruta: str | None
    metodo: str | None
    params: str | None
    mensaje: str
    stack: str | None

    model_config = {"from_attributes": True}


class DeletedCount(BaseModel):
    deleted: int
