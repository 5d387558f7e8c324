"""Pydantic schemas for user management."""

from datetime import datetime

from pydantic import BaseModel, EmailStr, Field, model_validator

from consultorio.auth.permissions import Rol


class UsuarioCreate(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=8, max_length=128)
    nombre: str = Field("", max_length=100)
    apellido: str = Field("", max_length=100)
    telefono: str | None = Field(None, max_length=30)
    rol: Rol
    activo: bool = True


class UsuarioUpdate(BaseModel):
    email: EmailStr | None = None
    nombre: str | None = Field(None, max_length=100)
    apellido: str | None = Field(None, max_length=100)
    telefono: str | None = Field(None, max_length=30)
    rol: Rol | None = None
    activo: bool | None = None


class PasswordUpdate(BaseModel):
    new_password: str = Field(..., min_length=8, max_length=128)
    confirm_password: str

    @model_validator(mode="after")
    def passwords_match(self):
        if self.new_password != self.confirm_password:
            raise ValueError("Las contraseñas no coinciden")
        return self


class UsuarioOut(BaseModel):
    id: str
    email: str
    nombre: str
    apellido: str
    telefono: str | None
    rol: Rol
    activo: bool
    fecha_creacion: datetime | None = None
    fecha_actualizacion: datetime | None = None

    model_config = {"from_attributes": True}
