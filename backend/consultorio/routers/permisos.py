"""Permission administration routes.

Endpoints:
    GET    /api/permisos/catalogo                                 Catalog + role defaults
    GET    /api/usuarios/{id}/permisos                            Effective map + overrides
    POST   /api/usuarios/{id}/permisos/{permiso}/grant            Force a permission on
    POST   /api/usuarios/{id}/permisos/{permiso}/revoke           Force a permission off
    DELETE /api/usuarios/{id}/permisos/overrides/{override_id}    Back to the role default

Revoking does not delete the override: an inactive row is what keeps a
role default switched off. Deleting the row is the only way back to the
role default.

Grant and revoke reject names outside the catalog with 400 UNKNOWN_PERMISSION.
"""

import logging

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from consultorio.auth.deps import (
    Principal,
    get_override_store,
    get_permission_resolver,
    require_permission,
)
from consultorio.auth.overrides import SqlAlchemyOverrideStore
from consultorio.auth.resolver import PermissionResolver
from consultorio.database import get_db
from consultorio.middleware.exceptions import BusinessLogicError, ResourceNotFoundError
from consultorio.models.usuario import Usuario
from consultorio.schemas.permiso import (
    PermissionCatalogOut,
    PermissionOverrideOut,
    UserPermissionsOut,
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["permisos"])


async def _get_usuario_or_404(db: AsyncSession, usuario_id: str) -> Usuario:
    usuario = await db.get(Usuario, usuario_id)
    if not usuario:
        raise ResourceNotFoundError("Usuario", usuario_id)
    return usuario


def _ensure_known_permission(resolver: PermissionResolver, permiso: str) -> None:
    if not resolver.is_valid_permission(permiso):
        raise BusinessLogicError(f"Permiso no válido: {permiso}", "UNKNOWN_PERMISSION")


@router.get("/permisos/catalogo", response_model=PermissionCatalogOut)
async def get_catalog(
    resolver: PermissionResolver = Depends(get_permission_resolver),
    _principal: Principal = Depends(require_permission("usuarios.leer")),
):
    catalog = resolver.catalog
    return PermissionCatalogOut(
        permisos=sorted(catalog.permissions),
        roles={role: sorted(catalog.defaults_for_role(role)) for role in catalog.roles},
    )


@router.get("/usuarios/{usuario_id}/permisos", response_model=UserPermissionsOut)
async def get_user_permissions(
    usuario_id: str,
    db: AsyncSession = Depends(get_db),
    store: SqlAlchemyOverrideStore = Depends(get_override_store),
    resolver: PermissionResolver = Depends(get_permission_resolver),
    _principal: Principal = Depends(require_permission("usuarios.leer")),
):
    usuario = await _get_usuario_or_404(db, usuario_id)
    rol = usuario.rol.value

    overrides = await store.find_by_user(usuario_id)
    return UserPermissionsOut(
        usuario_id=usuario_id,
        rol=rol,
        permisos=await resolver.get_user_permissions(usuario_id, rol),
        overrides=[PermissionOverrideOut.from_record(o) for o in overrides],
    )


@router.post(
    "/usuarios/{usuario_id}/permisos/{permiso}/grant",
    response_model=PermissionOverrideOut,
)
async def grant_permission(
    usuario_id: str,
    permiso: str,
    db: AsyncSession = Depends(get_db),
    resolver: PermissionResolver = Depends(get_permission_resolver),
    principal: Principal = Depends(require_permission("usuarios.actualizar")),
):
    await _get_usuario_or_404(db, usuario_id)
    _ensure_known_permission(resolver, permiso)
    override = await resolver.grant(usuario_id, permiso)
    logger.info(
        "Permission granted",
        extra={"usuario_id": usuario_id, "permiso": permiso, "by": principal.id},
    )
    return PermissionOverrideOut.from_record(override)


@router.post(
    "/usuarios/{usuario_id}/permisos/{permiso}/revoke",
    response_model=PermissionOverrideOut,
)
async def revoke_permission(
    usuario_id: str,
    permiso: str,
    db: AsyncSession = Depends(get_db),
    resolver: PermissionResolver = Depends(get_permission_resolver),
    principal: Principal = Depends(require_permission("usuarios.actualizar")),
):
    await _get_usuario_or_404(db, usuario_id)
    _ensure_known_permission(resolver, permiso)
    override = await resolver.revoke(usuario_id, permiso)
    logger.info(
        "Permission revoked",
        extra={"usuario_id": usuario_id, "permiso": permiso, "by": principal.id},
    )
    return PermissionOverrideOut.from_record(override)


@router.delete(
    "/usuarios/{usuario_id}/permisos/overrides/{override_id}",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def delete_override(
    usuario_id: str,
    override_id: str,
    store: SqlAlchemyOverrideStore = Depends(get_override_store),
    principal: Principal = Depends(require_permission("usuarios.actualizar")),
):
    override = await store.find_by_id(override_id)
    if override is None or override.user_id != usuario_id:
        raise ResourceNotFoundError("Permiso personalizado", override_id)

    await store.delete(override_id)
    logger.info(
        "Permission override removed",
        extra={"usuario_id": usuario_id, "permiso": override.permission, "by": principal.id},
    )
