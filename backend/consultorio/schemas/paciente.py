"""Pydantic schemas for Paciente CRUD operations."""

from datetime import date, datetime

from pydantic import BaseModel, EmailStr, Field


class PacienteCreate(BaseModel):
    dni: str = Field(..., min_length=6, max_length=20, pattern=r"^\d+$")
    nombre: str = Field(..., min_length=2, max_length=100)
    apellido: str = Field(..., min_length=2, max_length=100)
    fecha_nacimiento: date | None = None
    telefono: str = Field(..., min_length=6, max_length=30)
    email: EmailStr | None = None
    direccion: str | None = Field(None, max_length=500)
    obra_social: str | None = Field(None, max_length=100)
    numero_afiliado: str | None = Field(None, max_length=50)
    contacto_emergencia_nombre: str | None = Field(None, max_length=100)
    contacto_emergencia_telefono: str | None = Field(None, max_length=30)
    activo: bool = True


class PacienteUpdate(BaseModel):
    dni: str | None = Field(None, min_length=6, max_length=20, pattern=r"^\d+$")
    nombre: str | None = Field(None, min_length=2, max_length=100)
    apellido: str | None = Field(None, min_length=2, max_length=100)
    fecha_nacimiento: date | None = None
    telefono: str | None = Field(None, max_length=30)
    email: EmailStr | None = None
    direccion: str | None = Field(None, max_length=500)
    obra_social: str | None = Field(None, max_length=100)
    numero_afiliado: str | None = Field(None, max_length=50)
    contacto_emergencia_nombre: str | None = Field(None, max_length=100)
    contacto_emergencia_telefono: str | None = Field(None, max_length=30)
    activo: bool | None = None


class PacienteOut(BaseModel):
    id: str
    dni: str
    nombre: str
    apellido: str
    fecha_nacimiento: date | None
    telefono: str | None
    email: str | None
    direccion: str | None
    obra_social: str | None
    numero_afiliado: str | None
    contacto_emergencia_nombre: str | None
    contacto_emergencia_telefono: str | None
    activo: bool
    fecha_creacion: datetime | None = None
    fecha_actualizacion: datetime | None = None

    model_config = {"from_attributes": True}
