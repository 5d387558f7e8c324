"""E-mail notification routes.

Endpoints:
    GET   /api/notificaciones                              List (estado, tipo, destinatario)
    GET   /api/notificaciones/pending                      Pending, oldest first
    GET   /api/notificaciones/destinatario/{email}         By recipient
    GET   /api/notificaciones/{id}                         Get
    POST  /api/notificaciones                              Create (pendiente)
    PUT   /api/notificaciones/{id}                         Update (not once sent)
    POST  /api/notificaciones/{id}/send                    Send now
"""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from consultorio.auth.deps import Principal, require_permission
from consultorio.database import get_db
from consultorio.middleware.exceptions import BusinessLogicError, ResourceNotFoundError
from consultorio.models.notificacion import EstadoNotificacion, Notificacion
from consultorio.schemas.common import PaginatedResponse
from consultorio.schemas.notificacion import (
    Estado,
    NotificacionCreate,
    NotificacionOut,
    NotificacionUpdate,
)
from consultorio.services.notifications import EmailSender, get_email_sender, send_notification

router = APIRouter()


async def _get_notificacion_or_404(db: AsyncSession, notificacion_id: str) -> Notificacion:
    notificacion = await db.get(Notificacion, notificacion_id)
    if not notificacion:
        raise ResourceNotFoundError("Notificación", notificacion_id)
    return notificacion


@router.get("/", response_model=PaginatedResponse[NotificacionOut])
async def list_notificaciones(
    estado: Estado | None = None,
    tipo: str | None = None,
    destinatario_email: str | None = None,
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db),
    _principal: Principal = Depends(require_permission("notificaciones.leer")),
):
    filters = []
    if estado:
        filters.append(Notificacion.estado == estado)
    if tipo:
        filters.append(Notificacion.tipo == tipo)
    if destinatario_email:
        filters.append(Notificacion.destinatario_email == destinatario_email)

    total = await db.scalar(select(func.count(Notificacion.id)).where(*filters)) or 0
    result = await db.execute(
        select(Notificacion)
        .where(*filters)
        .order_by(Notificacion.fecha_creacion.desc())
        .limit(limit)
        .offset(offset)
    )
    items = [NotificacionOut.model_validate(n) for n in result.scalars().all()]

    return PaginatedResponse(items=items, total=total, limit=limit, offset=offset)


@router.get("/pending", response_model=list[NotificacionOut])
async def list_pending(
    limit: int = Query(100, ge=1, le=500),
    db: AsyncSession = Depends(get_db),
    _principal: Principal = Depends(require_permission("notificaciones.leer")),
):
    result = await db.execute(
        select(Notificacion)
        .where(Notificacion.estado == EstadoNotificacion.PENDIENTE.value)
        .order_by(Notificacion.fecha_creacion)
        .limit(limit)
    )
    return [NotificacionOut.model_validate(n) for n in result.scalars().all()]


@router.get("/destinatario/{email}", response_model=list[NotificacionOut])
async def list_by_destinatario(
    email: str,
    db: AsyncSession = Depends(get_db),
    _principal: Principal = Depends(require_permission("notificaciones.leer")),
):
    result = await db.execute(
        select(Notificacion)
        .where(Notificacion.destinatario_email == email)
        .order_by(Notificacion.fecha_creacion.desc())
    )
    return [NotificacionOut.model_validate(n) for n in result.scalars().all()]


@router.get("/{notificacion_id}", response_model=NotificacionOut)
async def get_notificacion(
    notificacion_id: str,
    db: AsyncSession = Depends(get_db),
    _principal: Principal = Depends(require_permission("notificaciones.leer")),
):
    return NotificacionOut.model_validate(await _get_notificacion_or_404(db, notificacion_id))


@router.post("/", response_model=NotificacionOut, status_code=status.HTTP_201_CREATED)
async def create_notificacion(
    body: NotificacionCreate,
    db: AsyncSession = Depends(get_db),
    _principal: Principal = Depends(require_permission("notificaciones.crear")),
):
    notificacion = Notificacion(**body.model_dump(), estado=EstadoNotificacion.PENDIENTE.value)
    db.add(notificacion)
    await db.flush()
    await db.refresh(notificacion)
    return NotificacionOut.model_validate(notificacion)


@router.put("/{notificacion_id}", response_model=NotificacionOut)
async def update_notificacion(
    notificacion_id: str,
    body: NotificacionUpdate,
    db: AsyncSession = Depends(get_db),
    _principal: Principal = Depends(require_permission("notificaciones.crear")),
):
    notificacion = await _get_notificacion_or_404(db, notificacion_id)
    if notificacion.estado == EstadoNotificacion.ENVIADO.value:
        raise BusinessLogicError(
            "No se puede modificar una notificación ya enviada", "ALREADY_SENT"
        )

    updates = body.model_dump(exclude_unset=True)
    for key, value in updates.items():
        setattr(notificacion, key, value)

    await db.flush()
    await db.refresh(notificacion)
    return NotificacionOut.model_validate(notificacion)


@router.post("/{notificacion_id}/send", response_model=NotificacionOut)
async def send_now(
    notificacion_id: str,
    db: AsyncSession = Depends(get_db),
    sender: EmailSender = Depends(get_email_sender),
    _principal: Principal = Depends(require_permission("notificaciones.enviar")),
):
    notificacion = await _get_notificacion_or_404(db, notificacion_id)
    if notificacion.estado == EstadoNotificacion.ENVIADO.value:
        raise BusinessLogicError("La notificación ya fue enviada", "ALREADY_SENT")

    if not await send_notification(db, notificacion, sender):
        # Keep the `fallido` state even though the request errors out.
        await db.commit()
        raise BusinessLogicError(
            f"Error al enviar la notificación: {notificacion.error_mensaje}",
            "EMAIL_SEND_FAILED",
            status.HTTP_502_BAD_GATEWAY,
        )

    await db.refresh(notificacion)
    return NotificacionOut.model_validate(notificacion)
