"""User management routes.

Endpoints:
    GET    /api/usuarios                     List users (filters + pages)
    GET    /api/usuarios/{id}                Get user
    POST   /api/usuarios                     Create user
    PUT    /api/usuarios/{id}                Update user
    DELETE /api/usuarios/{id}                Delete user
    PATCH  /api/usuarios/{id}/activate       Reactivate user
    PATCH  /api/usuarios/{id}/deactivate     Deactivate user
    PATCH  /api/usuarios/{id}/password       Change password (self or admin)

At least one active administrator must always remain. Role changes,
deactivation, deletion and password changes revoke the user's sessions;
if that fails the request fails with 503 and the change is rolled back.
"""

import logging
import math

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from consultorio.auth.deps import (
    Principal,
    check_permission,
    get_current_principal,
    get_permission_resolver,
    require_permission,
)
from consultorio.auth.password import hash_password
from consultorio.auth.permissions import Rol
from consultorio.auth.resolver import PermissionResolver
from consultorio.auth.revocation import TokenRevocation, get_token_revocation
from consultorio.config import settings
from consultorio.database import get_db
from consultorio.middleware.exceptions import (
    BusinessLogicError,
    PermissionDeniedError,
    ResourceNotFoundError,
    SessionRevocationError,
)
from consultorio.models.usuario import Usuario
from consultorio.schemas.common import PagedResponse
from consultorio.schemas.usuario import (
    PasswordUpdate,
    UsuarioCreate,
    UsuarioOut,
    UsuarioUpdate,
)

logger = logging.getLogger(__name__)

router = APIRouter()


# ── Helpers ──────────────────────────────────────────────────

async def _get_usuario_or_404(db: AsyncSession, usuario_id: str) -> Usuario:
    usuario = await db.get(Usuario, usuario_id)
    if not usuario:
        raise ResourceNotFoundError("Usuario", usuario_id)
    return usuario


async def _ensure_email_free(db: AsyncSession, email: str) -> None:
    result = await db.execute(select(Usuario.id).where(Usuario.email == email))
    if result.scalar_one_or_none():
        raise BusinessLogicError(
            "El email ya está registrado", "EMAIL_IN_USE", status.HTTP_409_CONFLICT
        )


async def _ensure_other_active_admin(db: AsyncSession, usuario: Usuario) -> None:
    """Refuse to remove the last active administrator."""
    if usuario.rol != Rol.ADMINISTRADOR or not usuario.activo:
        return
    others = await db.scalar(
        select(func.count(Usuario.id)).where(
            Usuario.rol == Rol.ADMINISTRADOR,
            Usuario.activo == True,  # noqa: E712
            Usuario.id != usuario.id,
        )
    )
    if not others:
        raise BusinessLogicError(
            "Debe haber al menos un usuario administrador activo", "LAST_ADMIN"
        )


def _session_ttl() -> int:
    return settings.access_token_expire_minutes * 60


async def _revoke_sessions(revocation: TokenRevocation, usuario_id: str) -> None:
    if not await revocation.revoke_all_user_tokens(usuario_id, _session_ttl()):
        raise SessionRevocationError()


# ── List / get ───────────────────────────────────────────────

@router.get("/", response_model=PagedResponse[UsuarioOut])
async def list_usuarios(
    rol: Rol | None = None,
    activo: bool | None = None,
    q: str | None = Query(None, max_length=200),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
    _principal: Principal = Depends(require_permission("usuarios.leer")),
):
    filters = []
    if rol is not None:
        filters.append(Usuario.rol == rol)
    if activo is not None:
        filters.append(Usuario.activo == activo)
    if q:
        term = f"%{q.strip()}%"
        filters.append(
            or_(
                Usuario.email.ilike(term),
                Usuario.nombre.ilike(term),
                Usuario.apellido.ilike(term),
            )
        )

    total = await db.scalar(select(func.count(Usuario.id)).where(*filters)) or 0
    result = await db.execute(
        select(Usuario)
        .where(*filters)
        .order_by(Usuario.fecha_creacion.desc())
        .limit(limit)
        .offset((page - 1) * limit)
    )
    items = [UsuarioOut.model_validate(u) for u in result.scalars().all()]

    return PagedResponse(
        items=items,
        total=total,
        page=page,
        limit=limit,
        total_pages=math.ceil(total / limit),
    )


@router.get("/{usuario_id}", response_model=UsuarioOut)
async def get_usuario(
    usuario_id: str,
    db: AsyncSession = Depends(get_db),
    _principal: Principal = Depends(require_permission("usuarios.leer")),
):
    return UsuarioOut.model_validate(await _get_usuario_or_404(db, usuario_id))


# ── Create / update / delete ─────────────────────────────────

@router.post("/", response_model=UsuarioOut, status_code=status.HTTP_201_CREATED)
async def create_usuario(
    body: UsuarioCreate,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(require_permission("usuarios.crear")),
):
    await _ensure_email_free(db, body.email)

    usuario = Usuario(
        email=body.email,
        password_hash=hash_password(body.password),
        nombre=body.nombre,
        apellido=body.apellido,
        telefono=body.telefono,
        rol=body.rol,
        activo=body.activo,
    )
    db.add(usuario)
    await db.flush()
    await db.refresh(usuario)

    logger.info(
        "User created",
        extra={"usuario_id": usuario.id, "rol": usuario.rol.value, "by": principal.id},
    )
    return UsuarioOut.model_validate(usuario)


@router.put("/{usuario_id}", response_model=UsuarioOut)
async def update_usuario(
    usuario_id: str,
    body: UsuarioUpdate,
    db: AsyncSession = Depends(get_db),
    revocation: TokenRevocation = Depends(get_token_revocation),
    _principal: Principal = Depends(require_permission("usuarios.actualizar")),
):
    usuario = await _get_usuario_or_404(db, usuario_id)
    updates = body.model_dump(exclude_unset=True)

    demoted = "rol" in updates and updates["rol"] != Rol.ADMINISTRADOR
    deactivated = updates.get("activo") is False
    if demoted or deactivated:
        await _ensure_other_active_admin(db, usuario)

    if updates.get("email") and updates["email"] != usuario.email:
        await _ensure_email_free(db, updates["email"])

    role_changed = "rol" in updates and updates["rol"] != usuario.rol
    for key, value in updates.items():
        setattr(usuario, key, value)

    await db.flush()
    await db.refresh(usuario)

    # Tokens carry the role; old ones must not keep the previous one.
    if role_changed or deactivated:
        await _revoke_sessions(revocation, usuario.id)
    return UsuarioOut.model_validate(usuario)


@router.delete("/{usuario_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_usuario(
    usuario_id: str,
    db: AsyncSession = Depends(get_db),
    revocation: TokenRevocation = Depends(get_token_revocation),
    principal: Principal = Depends(require_permission("usuarios.eliminar")),
):
    usuario = await _get_usuario_or_404(db, usuario_id)
    await _ensure_other_active_admin(db, usuario)

    await db.delete(usuario)
    await db.flush()
    await _revoke_sessions(revocation, usuario_id)
    logger.info("User deleted", extra={"usuario_id": usuario_id, "by": principal.id})


# ── Activation ───────────────────────────────────────────────

@router.patch("/{usuario_id}/activate", response_model=UsuarioOut)
async def activate_usuario(
    usuario_id: str,
    db: AsyncSession = Depends(get_db),
    _principal: Principal = Depends(require_permission("usuarios.activar")),
):
    usuario = await _get_usuario_or_404(db, usuario_id)
    usuario.activo = True
    await db.flush()
    await db.refresh(usuario)
    return UsuarioOut.model_validate(usuario)


@router.patch("/{usuario_id}/deactivate", response_model=UsuarioOut)
async def deactivate_usuario(
    usuario_id: str,
    db: AsyncSession = Depends(get_db),
    revocation: TokenRevocation = Depends(get_token_revocation),
    _principal: Principal = Depends(require_permission("usuarios.desactivar")),
):
    usuario = await _get_usuario_or_404(db, usuario_id)
    await _ensure_other_active_admin(db, usuario)

    usuario.activo = False
    await db.flush()
    await db.refresh(usuario)
    await _revoke_sessions(revocation, usuario.id)
    return UsuarioOut.model_validate(usuario)


# ── Password ─────────────────────────────────────────────────

@router.patch("/{usuario_id}/password", status_code=status.HTTP_204_NO_CONTENT)
async def update_password(
    usuario_id: str,
    body: PasswordUpdate,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
    resolver: PermissionResolver = Depends(get_permission_resolver),
    revocation: TokenRevocation = Depends(get_token_revocation),
):
    """Users may change their own password; others need usuarios.actualizar."""
    if principal.id != usuario_id and not await check_permission(
        resolver, principal, "usuarios.actualizar"
    ):
        raise PermissionDeniedError(details={"required_permission": "usuarios.actualizar"})

    usuario = await _get_usuario_or_404(db, usuario_id)
    usuario.password_hash = hash_password(body.new_password)
    await db.flush()
    await _revoke_sessions(revocation, usuario.id)
