"""Professional routes: CRUD plus payment block/unblock.

A professional row extends a user whose role is `profesional`; one row
per user.
"""

import logging

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from consultorio.auth.deps import Principal, require_permission
from consultorio.auth.permissions import Rol
from consultorio.database import get_db
from consultorio.middleware.exceptions import BusinessLogicError, ResourceNotFoundError
from consultorio.models.profesional import Profesional
from consultorio.models.usuario import Usuario
from consultorio.schemas.common import PaginatedResponse
from consultorio.schemas.profesional import (
    BlockRequest,
    ProfesionalCreate,
    ProfesionalOut,
    ProfesionalUpdate,
)

logger = logging.getLogger(__name__)

router = APIRouter()


async def _get_profesional_or_404(db: AsyncSession, profesional_id: str) -> Profesional:
    profesional = await db.get(Profesional, profesional_id)
    if not profesional:
        raise ResourceNotFoundError("Profesional", profesional_id)
    return profesional


@router.get("/", response_model=PaginatedResponse[ProfesionalOut])
async def list_profesionales(
    especialidad: str | None = None,
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db),
    _principal: Principal = Depends(require_permission("profesionales.leer")),
):
    filters = [Profesional.especialidad == especialidad] if especialidad else []

    total = await db.scalar(select(func.count(Profesional.id)).where(*filters)) or 0
    result = await db.execute(
        select(Profesional)
        .where(*filters)
        .order_by(Profesional.fecha_creacion.desc())
        .limit(limit)
        .offset(offset)
    )
    items = [ProfesionalOut.model_validate(p) for p in result.scalars().all()]

    return PaginatedResponse(items=items, total=total, limit=limit, offset=offset)


@router.get("/blocked", response_model=list[ProfesionalOut])
async def list_blocked(
    db: AsyncSession = Depends(get_db),
    _principal: Principal = Depends(require_permission("profesionales.leer")),
):
    result = await db.execute(
        select(Profesional)
        .where(Profesional.bloqueado == True)  # noqa: E712
        .order_by(Profesional.fecha_actualizacion.desc())
    )
    return [ProfesionalOut.model_validate(p) for p in result.scalars().all()]


@router.get("/usuario/{usuario_id}", response_model=ProfesionalOut)
async def get_by_usuario(
    usuario_id: str,
    db: AsyncSession = Depends(get_db),
    _principal: Principal = Depends(require_permission("profesionales.leer")),
):
    result = await db.execute(select(Profesional).where(Profesional.usuario_id == usuario_id))
    profesional = result.scalar_one_or_none()
    if not profesional:
        raise ResourceNotFoundError("Profesional para usuario", usuario_id)
    return ProfesionalOut.model_validate(profesional)


@router.get("/{profesional_id}", response_model=ProfesionalOut)
async def get_profesional(
    profesional_id: str,
    db: AsyncSession = Depends(get_db),
    _principal: Principal = Depends(require_permission("profesionales.leer")),
):
    return ProfesionalOut.model_validate(await _get_profesional_or_404(db, profesional_id))


@router.post("/", response_model=ProfesionalOut, status_code=status.HTTP_201_CREATED)
async def create_profesional(
    body: ProfesionalCreate,
    db: AsyncSession = Depends(get_db),
    _principal: Principal = Depends(require_permission("profesionales.crear")),
):
    usuario = await db.get(Usuario, body.usuario_id)
    if not usuario:
        raise ResourceNotFoundError("Usuario", body.usuario_id)
    if usuario.rol != Rol.PROFESIONAL:
        raise BusinessLogicError(
            "El usuario debe tener el rol profesional", "INVALID_ROLE"
        )

    existing = await db.execute(
        select(Profesional.id).where(Profesional.usuario_id == body.usuario_id)
    )
    if existing.scalar_one_or_none():
        raise BusinessLogicError(
            "El usuario ya tiene un perfil de profesional",
            "PROFESIONAL_EXISTS",
            status.HTTP_409_CONFLICT,
        )

    profesional = Profesional(**body.model_dump())
    db.add(profesional)
    await db.flush()
    await db.refresh(profesional)
    return ProfesionalOut.model_validate(profesional)


@router.put("/{profesional_id}", response_model=ProfesionalOut)
async def update_profesional(
    profesional_id: str,
    body: ProfesionalUpdate,
    db: AsyncSession = Depends(get_db),
    _principal: Principal = Depends(require_permission("profesionales.actualizar")),
):
    profesional = await _get_profesional_or_404(db, profesional_id)

    updates = body.model_dump(exclude_unset=True)
    for key, value in updates.items():
        setattr(profesional, key, value)

    await db.flush()
    await db.refresh(profesional)
    return ProfesionalOut.model_validate(profesional)


@router.delete("/{profesional_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_profesional(
    profesional_id: str,
    db: AsyncSession = Depends(get_db),
    _principal: Principal = Depends(require_permission("profesionales.eliminar")),
):
    profesional = await _get_profesional_or_404(db, profesional_id)
    await db.delete(profesional)
    await db.flush()


# ── Block / unblock ──────────────────────────────────────────

@router.patch("/{profesional_id}/block", response_model=ProfesionalOut)
async def block_profesional(
    profesional_id: str,
    body: BlockRequest,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(require_permission("profesionales.bloquear")),
):
    profesional = await _get_profesional_or_404(db, profesional_id)
    profesional.bloqueado = True
    profesional.razon_bloqueo = body.razon_bloqueo
    await db.flush()
    await db.refresh(profesional)

    logger.info(
        "Professional blocked",
        extra={"profesional_id": profesional_id, "by": principal.id},
    )
    return ProfesionalOut.model_validate(profesional)


@router.patch("/{profesional_id}/unblock", response_model=ProfesionalOut)
async def unblock_profesional(
    profesional_id: str,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(require_permission("profesionales.desbloquear")),
):
    profesional = await _get_profesional_or_404(db, profesional_id)
    profesional.bloqueado = False
    profesional.razon_bloqueo = None
    await db.flush()
    await db.refresh(profesional)

    logger.info(
        "Professional unblocked",
        extra={"profesional_id": profesional_id, "by": principal.id},
    )
    return ProfesionalOut.model_validate(profesional)
