from pydantic import BaseModel, EmailStr


# ── Login ────────────────────────────────────────────────────

class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class UserSummary(BaseModel):
    id: str
    email: str
    rol: str


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: UserSummary


# ── Profile ──────────────────────────────────────────────────

class ProfileOut(BaseModel):
    id: str
    email: str
    nombre: str
    apellido: str
    telefono: str | None
    rol: str
    activo: bool
    permisos: dict[str, bool]
