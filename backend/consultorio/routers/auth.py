"""Auth routes: login, logout, current profile.

Route overview:
  POST /login   - email + password login
  POST /logout  - revoke the bearer token
  GET  /me      - current user profile + effective permissions
"""

import logging

from fastapi import APIRouter, Depends, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from consultorio.auth.deps import Principal, get_current_principal, get_permission_resolver
from consultorio.auth.jwt import create_access_token
from consultorio.auth.password import verify_password
from consultorio.auth.resolver import PermissionResolver
from consultorio.auth.revocation import TokenRevocation, get_token_revocation
from consultorio.database import get_db
from consultorio.middleware.exceptions import (
    AuthenticationError,
    ResourceNotFoundError,
    SessionRevocationError,
)
from consultorio.models.usuario import Usuario
from consultorio.schemas.auth import LoginRequest, ProfileOut, TokenResponse, UserSummary

logger = logging.getLogger(__name__)

router = APIRouter()


# ── POST /login ──────────────────────────────────────────────

@router.post("/login", response_model=TokenResponse)
async def login(body: LoginRequest, db: AsyncSession = Depends(get_db)):
    """Email + password login. Returns a JWT carrying id, email and role."""
    result = await db.execute(select(Usuario).where(Usuario.email == body.email))
    usuario = result.scalar_one_or_none()

    if not usuario or not verify_password(body.password, usuario.password_hash):
        raise AuthenticationError("Email o contraseña incorrectos", "INVALID_CREDENTIALS")
    if not usuario.activo:
        raise AuthenticationError(
            "La cuenta está desactivada. Contacte al administrador", "ACCOUNT_DISABLED"
        )

    rol = usuario.rol.value
    logger.info("User authenticated", extra={"usuario_id": usuario.id})
    return TokenResponse(
        access_token=create_access_token(user_id=usuario.id, email=usuario.email, role=rol),
        user=UserSummary(id=usuario.id, email=usuario.email, rol=rol),
    )


# ── POST /logout ─────────────────────────────────────────────

@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
async def logout(
    principal: Principal = Depends(get_current_principal),
    revocation: TokenRevocation = Depends(get_token_revocation),
):
    if principal.expires_at is None:
        return
    if not await revocation.revoke_token(principal.token, principal.expires_at):
        raise SessionRevocationError("No se pudo cerrar la sesión")


# ── GET /me ──────────────────────────────────────────────────

@router.get("/me", response_model=ProfileOut)
async def me(
    principal: Principal = Depends(get_current_principal),
    resolver: PermissionResolver = Depends(get_permission_resolver),
    db: AsyncSession = Depends(get_db),
):
    usuario = await db.get(Usuario, principal.id)
    if not usuario:
        raise ResourceNotFoundError("Usuario", principal.id)

    # Same role the gate uses, so the map matches what requests will see.
    permisos = await resolver.get_user_permissions(principal.id, principal.rol)
    return ProfileOut(
        id=usuario.id,
        email=usuario.email,
        nombre=usuario.nombre,
        apellido=usuario.apellido,
        telefono=usuario.telefono,
        rol=principal.rol,
        activo=usuario.activo,
        permisos=permisos,
    )
