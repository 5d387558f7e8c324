"""Patient routes: search for the front desk + CRUD."""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from consultorio.auth.deps import Principal, require_permission
from consultorio.database import get_db
from consultorio.middleware.exceptions import BusinessLogicError, ResourceNotFoundError
from consultorio.models.paciente import Paciente
from consultorio.schemas.common import PaginatedResponse
from consultorio.schemas.paciente import PacienteCreate, PacienteOut, PacienteUpdate

router = APIRouter()


async def _get_paciente_or_404(db: AsyncSession, paciente_id: str) -> Paciente:
    paciente = await db.get(Paciente, paciente_id)
    if not paciente:
        raise ResourceNotFoundError("Paciente", paciente_id)
    return paciente


async def _ensure_dni_free(db: AsyncSession, dni: str) -> None:
    result = await db.execute(select(Paciente.id).where(Paciente.dni == dni))
    if result.scalar_one_or_none():
        raise BusinessLogicError(
            f"Ya existe un paciente con DNI {dni}", "DNI_IN_USE", status.HTTP_409_CONFLICT
        )


@router.get("/", response_model=PaginatedResponse[PacienteOut])
async def list_pacientes(
    activo: bool | None = None,
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db),
    _principal: Principal = Depends(require_permission("pacientes.leer")),
):
    filters = [Paciente.activo == activo] if activo is not None else []

    total = await db.scalar(select(func.count(Paciente.id)).where(*filters)) or 0
    result = await db.execute(
        select(Paciente)
        .where(*filters)
        .order_by(Paciente.apellido, Paciente.nombre)
        .limit(limit)
        .offset(offset)
    )
    items = [PacienteOut.model_validate(p) for p in result.scalars().all()]

    return PaginatedResponse(items=items, total=total, limit=limit, offset=offset)


@router.get("/search", response_model=list[PacienteOut])
async def search_pacientes(
    q: str = Query(..., min_length=1, max_length=100),
    limit: int = Query(20, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
    _principal: Principal = Depends(require_permission("pacientes.buscar")),
):
    """Match on name, surname or DNI (case-insensitive, partial)."""
    term = f"%{q.strip()}%"
    result = await db.execute(
        select(Paciente)
        .where(
            or_(
                Paciente.nombre.ilike(term),
                Paciente.apellido.ilike(term),
                Paciente.dni.ilike(term),
            )
        )
        .order_by(Paciente.apellido, Paciente.nombre)
        .limit(limit)
    )
    return [PacienteOut.model_validate(p) for p in result.scalars().all()]


@router.get("/dni/{dni}", response_model=PacienteOut)
async def get_paciente_by_dni(
    dni: str,
    db: AsyncSession = Depends(get_db),
    _principal: Principal = Depends(require_permission("pacientes.leer")),
):
    result = await db.execute(select(Paciente).where(Paciente.dni == dni))
    paciente = result.scalar_one_or_none()
    if not paciente:
        raise ResourceNotFoundError("Paciente con DNI", dni)
    return PacienteOut.model_validate(paciente)


@router.get("/{paciente_id}", response_model=PacienteOut)
async def get_paciente(
    paciente_id: str,
    db: AsyncSession = Depends(get_db),
    _principal: Principal = Depends(require_permission("pacientes.leer")),
):
    return PacienteOut.model_validate(await _get_paciente_or_404(db, paciente_id))


@router.post("/", response_model=PacienteOut, status_code=status.HTTP_201_CREATED)
async def create_paciente(
    body: PacienteCreate,
    db: AsyncSession = Depends(get_db),
    _principal: Principal = Depends(require_permission("pacientes.crear")),
):
    await _ensure_dni_free(db, body.dni)

    paciente = Paciente(**body.model_dump())
    db.add(paciente)
    await db.flush()
    await db.refresh(paciente)
    return PacienteOut.model_validate(paciente)


@router.put("/{paciente_id}", response_model=PacienteOut)
async def update_paciente(
    paciente_id: str,
    body: PacienteUpdate,
    db: AsyncSession = Depends(get_db),
    _principal: Principal = Depends(require_permission("pacientes.actualizar")),
):
    paciente = await _get_paciente_or_404(db, paciente_id)
    updates = body.model_dump(exclude_unset=True)

    if updates.get("dni") and updates["dni"] != paciente.dni:
        await _ensure_dni_free(db, updates["dni"])

    for key, value in updates.items():
        setattr(paciente, key, value)

    await db.flush()
    await db.refresh(paciente)
    return PacienteOut.model_validate(paciente)


@router.delete("/{paciente_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_paciente(
    paciente_id: str,
    db: AsyncSession = Depends(get_db),
    _principal: Principal = Depends(require_permission("pacientes.eliminar")),
):
    paciente = await _get_paciente_or_404(db, paciente_id)
    await db.delete(paciente)
    await db.flush()


@router.patch("/{paciente_id}/activate", response_model=PacienteOut)
async def activate_paciente(
    paciente_id: str,
    db: AsyncSession = Depends(get_db),
    _principal: Principal = Depends(require_permission("pacientes.actualizar")),
):
    paciente = await _get_paciente_or_404(db, paciente_id)
    paciente.activo = True
    await db.flush()
    await db.refresh(paciente)
    return PacienteOut.model_validate(paciente)


@router.patch("/{paciente_id}/deactivate", response_model=PacienteOut)
async def deactivate_paciente(
    paciente_id: str,
    db: AsyncSession = Depends(get_db),
    _principal: Principal = Depends(require_permission("pacientes.actualizar")),
):
    paciente = await _get_paciente_or_404(db, paciente_id)
    paciente.activo = False
    await db.flush()
    await db.refresh(paciente)
    return PacienteOut.model_validate(paciente)
