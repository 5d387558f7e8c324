"""Pydantic schemas for Profesional CRUD operations."""

from datetime import date, datetime
from typing import Literal

from pydantic import BaseModel, Field

EstadoPago = Literal["al_dia", "pendiente", "moroso"]
PeriodoPago = Literal["mensual", "quincenal", "semanal", "anual"]


class ProfesionalCreate(BaseModel):
    usuario_id: str
    matricula: str | None = Field(None, max_length=50)
    especialidad: str | None = Field(None, max_length=100)
    estado_pago: EstadoPago = "al_dia"
    fecha_ultimo_pago: date | None = None
    fecha_inicio_contrato: date | None = None
    monto_mensual: float | None = Field(None, gt=0)
    tipo_periodo_pago: PeriodoPago | None = None
    observaciones: str | None = None


class ProfesionalUpdate(BaseModel):
    matricula: str | None = Field(None, max_length=50)
    especialidad: str | None = Field(None, max_length=100)
    estado_pago: EstadoPago | None = None
    fecha_ultimo_pago: date | None = None
    fecha_inicio_contrato: date | None = None
    monto_mensual: float | None = Field(None, gt=0)
    tipo_periodo_pago: PeriodoPago | None = None
    observaciones: str | None = None


class BlockRequest(BaseModel):
    razon_bloqueo: str | None = None


class ProfesionalOut(BaseModel):
    id: str
    usuario_id: str
    matricula: str | None
    especialidad: str | None
    estado_pago: str
    fecha_ultimo_pago: date | None
    fecha_inicio_contrato: date | None
    monto_mensual: float | None
    tipo_periodo_pago: str | None
    bloqueado: bool
    razon_bloqueo: str | None
    observaciones: str | None
    fecha_creacion: datetime | None = None
    fecha_actualizacion: datetime | None = None

    model_config = {"from_attributes": True}
