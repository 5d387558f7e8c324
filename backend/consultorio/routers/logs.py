"""Error log routes.

Endpoints:
    POST   /api/logs          Record an error (token optional)
    GET    /api/logs          List (administrators only)
    DELETE /api/logs          Delete all (administrators only)
    DELETE /api/logs/{id}     Delete one (administrators only)
"""

import json
import math
from datetime import datetime

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from consultorio.auth.deps import Principal, get_optional_principal, require_role
from consultorio.auth.permissions import Rol
from consultorio.database import get_db
from consultorio.middleware.exceptions import ResourceNotFoundError
from consultorio.models.log import Log
from consultorio.models.usuario import Usuario
from consultorio.schemas.common import PagedResponse
from consultorio.schemas.log import DeletedCount, LogCreate, LogCreated, LogOut
from consultorio.services.error_log import sanitize

router = APIRouter()


@router.post("/", response_model=LogCreated, status_code=status.HTTP_201_CREATED)
async def create_log(
    body: LogCreate,
    db: AsyncSession = Depends(get_db),
    principal: Principal | None = Depends(get_optional_principal),
):
    """Record an error entry, attributed to the token's user when there is one."""
    params = body.params
    if isinstance(params, dict):
        params = sanitize(params)

    log = Log(
        origen=body.origen,
        usuario_id=principal.id if principal else None,
        rol=principal.rol if principal else None,
        pantalla=body.pantalla,
        accion=body.accion,
        ruta=body.ruta,
        metodo=body.metodo,
        params=json.dumps(params, default=str) if params is not None else None,
        mensaje=body.mensaje,
        stack=body.stack,
    )
    db.add(log)
    await db.flush()
    await db.refresh(log)
    return LogCreated(id=log.id, created_at=log.created_at)


@router.get("/", response_model=PagedResponse[LogOut])
async def list_logs(
    fecha_desde: datetime | None = None,
    fecha_hasta: datetime | None = None,
    origen: str | None = Query(None, pattern="^(front|back)$"),
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=500),
    db: AsyncSession = Depends(get_db),
    _principal: Principal = Depends(require_role(Rol.ADMINISTRADOR)),
):
    filters = []
    if fecha_desde:
        filters.append(Log.created_at >= fecha_desde)
    if fecha_hasta:
        filters.append(Log.created_at <= fecha_hasta)
    if origen:
        filters.append(Log.origen == origen)

    total = await db.scalar(select(func.count(Log.id)).where(*filters)) or 0
    result = await db.execute(
        select(Log, Usuario.email)
        .outerjoin(Usuario, Usuario.id == Log.usuario_id)
        .where(*filters)
        .order_by(Log.created_at.desc())
        .limit(limit)
        .offset((page - 1) * limit)
    )

    items = []
    for log, email in result.all():
        out = LogOut.model_validate(log)
        out.usuario_email = email
        items.append(out)

    return PagedResponse(
        items=items,
        total=total,
        page=page,
        limit=limit,
        total_pages=math.ceil(total / limit),
    )


@router.delete("/", response_model=DeletedCount)
async def delete_all_logs(
    db: AsyncSession = Depends(get_db),
    _principal: Principal = Depends(require_role(Rol.ADMINISTRADOR)),
):
    result = await db.execute(delete(Log))
    return DeletedCount(deleted=result.rowcount or 0)


@router.delete("/{log_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_log(
    log_id: int,
    db: AsyncSession = Depends(get_db),
    _principal: Principal = Depends(require_role(Rol.ADMINISTRADOR)),
):
    log = await db.get(Log, log_id)
    if not log:
        raise ResourceNotFoundError("Log", str(log_id))
    await db.delete(log)
    await db.flush()
