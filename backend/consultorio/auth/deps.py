"""FastAPI dependencies for authentication and authorization.

Dependencies:
  get_current_principal     → verify JWT, return Principal(id, email, rol)
  get_optional_principal    → same, but None when no valid token is sent
  get_override_store        → SqlAlchemyOverrideStore on the request session
  get_permission_resolver   → PermissionResolver over that store
  require_permission(p)     → gate: principal must hold permission p
  require_any_permission(…) → gate: principal must hold at least one
  require_role(…)           → restrict to specific roles
"""

import logging
from dataclasses import dataclass

from fastapi import Depends, Request
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.ext.asyncio import AsyncSession

from consultorio.auth.jwt import decode_token
from consultorio.auth.overrides import SqlAlchemyOverrideStore
from consultorio.auth.permissions import Rol
from consultorio.auth.resolver import PermissionResolver
from consultorio.auth.revocation import TokenRevocation, get_token_revocation
from consultorio.database import get_db
from consultorio.middleware.exceptions import (
    AuthenticationError,
    PermissionCheckError,
    PermissionDeniedError,
)

logger = logging.getLogger(__name__)

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login", auto_error=False)


@dataclass(frozen=True)
class Principal:
    """Authenticated identity taken from a verified token."""

    id: str
    email: str | None
    rol: str
    token: str
    expires_at: float | None = None


# ── Principal from JWT ──────────────────────────────────────

async def get_current_principal(
    request: Request,
    token: str | None = Depends(oauth2_scheme),
    revocation: TokenRevocation = Depends(get_token_revocation),
) -> Principal:
    """Verify the bearer token and return the principal it names.

    The principal is also stashed on `request.state` so the error log can
    record who made a failing request.
    """
    if not token:
        raise AuthenticationError("Token no proporcionado", "NO_TOKEN")

    payload = decode_token(token)
    user_id = payload.get("sub")
    if not user_id or payload.get("type") != "access":
        raise AuthenticationError("Token inválido", "INVALID_TOKEN")

    if await revocation.is_revoked(token):
        raise AuthenticationError("Token revocado", "TOKEN_REVOKED")
    if await revocation.is_user_revoked(user_id, payload.get("iat")):
        raise AuthenticationError(
            "Sesión expirada. Inicie sesión nuevamente.", "TOKEN_REVOKED"
        )

    principal = Principal(
        id=user_id,
        email=payload.get("email"),
        rol=payload.get("rol") or "",
        token=token,
        expires_at=payload.get("exp"),
    )
    request.state.principal = principal
    return principal


async def get_optional_principal(
    request: Request,
    token: str | None = Depends(oauth2_scheme),
    revocation: TokenRevocation = Depends(get_token_revocation),
) -> Principal | None:
    """Principal when a valid token is present, otherwise None."""
    if not token:
        return None
    try:
        return await get_current_principal(request, token, revocation)
    except AuthenticationError:
        return None


# ── Resolver wiring ─────────────────────────────────────────

async def get_override_store(db: AsyncSession = Depends(get_db)) -> SqlAlchemyOverrideStore:
    return SqlAlchemyOverrideStore(db)


async def get_permission_resolver(
    store: SqlAlchemyOverrideStore = Depends(get_override_store),
) -> PermissionResolver:
    return PermissionResolver(store)


async def check_permission(
    resolver: PermissionResolver,
    principal: Principal,
    permission: str,
) -> bool:
    """Ask the resolver, turning a lookup failure into PermissionCheckError."""
    try:
        return await resolver.has_permission(principal.id, principal.rol, permission)
    except Exception as exc:
        logger.exception(
            "Permission check failed for user %s (%s)", principal.id, permission
        )
        raise PermissionCheckError() from exc


# ── Permission-based access control ─────────────────────────

def require_permission(permission: str):
    """Dependency factory - the gate in front of a protected route.

    Runs before the handler: a missing permission raises 403 and a failed
    lookup raises 503, so the handler never executes in either case.

    Usage:
        @router.post("/")
        async def create_paciente(
            _principal: Principal = Depends(require_permission("pacientes.crear")),
        ):
            ...
    """
    async def _check(
        request: Request,
        principal: Principal = Depends(get_current_principal),
        resolver: PermissionResolver = Depends(get_permission_resolver),
    ) -> Principal:
        if not await check_permission(resolver, principal, permission):
            logger.warning(
                "Access denied",
                extra={
                    "usuario_id": principal.id,
                    "rol": principal.rol,
                    "permiso": permission,
                    "path": request.url.path,
                },
            )
            raise PermissionDeniedError(details={"required_permission": permission})
        return principal

    return _check


def require_any_permission(*permissions: str):
    """Dependency factory - principal must hold at least one of `permissions`."""
    async def _check(
        request: Request,
        principal: Principal = Depends(get_current_principal),
        resolver: PermissionResolver = Depends(get_permission_resolver),
    ) -> Principal:
        for permission in permissions:
            if await check_permission(resolver, principal, permission):
                return principal

        logger.warning(
            "Access denied - no matching permission",
            extra={
                "usuario_id": principal.id,
                "rol": principal.rol,
                "permisos": list(permissions),
                "path": request.url.path,
            },
        )
        raise PermissionDeniedError(details={"required_permissions": list(permissions)})

    return _check


# ── Role-based access control ───────────────────────────────

def require_role(*roles: Rol):
    """Dependency factory - restrict to one or more roles.

    Usage:
        @router.get("/admin-only")
        async def admin_view(
            principal: Principal = Depends(require_role(Rol.ADMINISTRADOR)),
        ):
            ...
    """
    allowed = {r.value for r in roles}

    async def _check(principal: Principal = Depends(get_current_principal)) -> Principal:
        if principal.rol not in allowed:
            raise PermissionDeniedError(
                message="No tiene el rol necesario para realizar esta acción",
                details={"required_roles": sorted(allowed)},
            )
        return principal

    return _check
