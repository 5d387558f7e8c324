"""Custom exception handlers for consistent error responses.

Provides standardized error formatting, security-safe error messages,
logging, and persistence of server-side failures in the `logs` table.
"""

import logging
import traceback
from typing import Union

from fastapi import HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from sqlalchemy.exc import IntegrityError, OperationalError
from starlette.exceptions import HTTPException as StarletteHTTPException

from consultorio.auth.overrides import OverrideNotFoundError
from consultorio.config import settings

logger = logging.getLogger(__name__)


class ConsultorioException(Exception):
    """Base exception for application errors."""

    def __init__(
        self,
        message: str,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        error_code: str = "INTERNAL_ERROR",
        details: Union[dict, list, None] = None,
    ):
        self.message = message
        self.status_code = status_code
        self.error_code = error_code
        self.details = details
        super().__init__(self.message)


class BusinessLogicError(ConsultorioException):
    """Exception for business rule violations."""

    def __init__(
        self,
        message: str,
        error_code: str = "BUSINESS_LOGIC_ERROR",
        status_code: int = status.HTTP_400_BAD_REQUEST,
    ):
        super().__init__(
            message=message,
            status_code=status_code,
            error_code=error_code,
        )


class ResourceNotFoundError(ConsultorioException):
    """Exception for resources not found."""

    def __init__(self, resource: str, identifier: str):
        super().__init__(
            message=f"{resource} no encontrado: {identifier}",
            status_code=status.HTTP_404_NOT_FOUND,
            error_code="RESOURCE_NOT_FOUND",
        )


class AuthenticationError(ConsultorioException):
    """Missing, expired, invalid or revoked credentials."""

    def __init__(self, message: str = "Error de autenticación", error_code: str = "AUTH_ERROR"):
        super().__init__(
            message=message,
            status_code=status.HTTP_401_UNAUTHORIZED,
            error_code=error_code,
        )


class PermissionDeniedError(ConsultorioException):
    """The principal lacks the permission or role a route requires."""

    def __init__(
        self,
        message: str = "No tiene permisos para realizar esta acción",
        details: Union[dict, None] = None,
    ):
        super().__init__(
            message=message,
            status_code=status.HTTP_403_FORBIDDEN,
            error_code="FORBIDDEN",
            details=details,
        )


class PermissionCheckError(ConsultorioException):
    """The permission lookup itself failed; the request is rejected."""

    def __init__(self, message: str = "Error verificando permisos"):
        super().__init__(
            message=message,
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            error_code="PERMISSION_CHECK_ERROR",
        )


class SessionRevocationError(ConsultorioException):
    """Existing sessions of a user could not be invalidated."""

    def __init__(self, message: str = "No se pudieron cerrar las sesiones del usuario"):
        super().__init__(
            message=message,
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            error_code="SESSION_REVOCATION_FAILED",
        )


def create_error_response(
    status_code: int,
    message: str,
    error_code: str = "ERROR",
    details: Union[dict, list, None] = None,
    headers: Union[dict, None] = None,
) -> JSONResponse:
    """Create standardized error response.

    Format:
    {
        "error": {
            "code": "ERROR_CODE",
            "message": "Human-readable error message",
            "details": {...}  // Optional additional details
        }
    }
    """
    content = {
        "error": {
            "code": error_code,
            "message": message,
        }
    }

    if details:
        content["error"]["details"] = details

    return JSONResponse(
        status_code=status_code,
        content=content,
        headers=headers,
    )


async def _persist(request: Request, exc: Exception) -> None:
    """Hand the failure to the configured error log writer.

    Persisting must never change the response, so any failure here is
    only logged.
    """
    writer = getattr(request.app.state, "error_log_writer", None)
    if writer is None:
        return
    try:
        await writer.record(request, exc)
    except Exception:
        logger.exception("Could not persist error log for %s", request.url.path)


async def consultorio_exception_handler(
    request: Request,
    exc: ConsultorioException,
) -> JSONResponse:
    """Handle application exceptions."""
    logger.warning(
        f"Application exception: {exc.error_code} - {exc.message}",
        extra={
            "error_code": exc.error_code,
            "path": request.url.path,
            "method": request.method,
        },
    )

    if exc.status_code >= 500:
        await _persist(request, exc)

    headers = None
    if exc.status_code == status.HTTP_401_UNAUTHORIZED:
        headers = {"WWW-Authenticate": "Bearer"}

    return create_error_response(
        status_code=exc.status_code,
        message=exc.message,
        error_code=exc.error_code,
        details=exc.details,
        headers=headers,
    )


async def override_not_found_handler(
    request: Request,
    exc: OverrideNotFoundError,
) -> JSONResponse:
    return create_error_response(
        status_code=status.HTTP_404_NOT_FOUND,
        message=f"Permiso personalizado no encontrado: {exc.override_id}",
        error_code="RESOURCE_NOT_FOUND",
    )


async def http_exception_handler(
    request: Request,
    exc: Union[HTTPException, StarletteHTTPException],
) -> JSONResponse:
    """Handle FastAPI HTTP exceptions."""
    # Log non-4xx errors
    if exc.status_code >= 500:
        logger.error(
            f"HTTP {exc.status_code}: {exc.detail}",
            extra={
                "path": request.url.path,
                "method": request.method,
            },
        )

    return create_error_response(
        status_code=exc.status_code,
        message=str(exc.detail),
        error_code=f"HTTP_{exc.status_code}",
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(
    request: Request,
    exc: Union[RequestValidationError, ValidationError],
) -> JSONResponse:
    """Handle Pydantic validation errors."""
    logger.warning(
        f"Validation error on {request.url.path}",
        extra={
            "path": request.url.path,
            "method": request.method,
        },
    )

    errors = []
    for error in exc.errors():
        field = " -> ".join(str(loc) for loc in error["loc"])
        errors.append({
            "field": field,
            "message": error["msg"],
            "type": error["type"],
        })

    return create_error_response(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        message="Error de validación",
        error_code="VALIDATION_ERROR",
        details={"errors": errors},
    )


async def database_exception_handler(
    request: Request,
    exc: IntegrityError,
) -> JSONResponse:
    """Handle database integrity errors (unique violations, foreign key, etc.)."""
    logger.error(
        f"Database integrity error on {request.url.path}: {str(exc)}",
        extra={
            "path": request.url.path,
            "method": request.method,
        },
    )

    error_msg = str(exc.orig) if hasattr(exc, "orig") else str(exc)

    if "unique" in error_msg.lower() or "duplicate" in error_msg.lower():
        return create_error_response(
            status_code=status.HTTP_409_CONFLICT,
            message="El registro ya existe",
            error_code="DUPLICATE_ENTRY",
        )
    if "foreign key" in error_msg.lower():
        message = "Referencia inválida"
        error_code = "FOREIGN_KEY_ERROR"
    elif "not null" in error_msg.lower() or "not-null" in error_msg.lower():
        message = "Campo requerido faltante"
        error_code = "REQUIRED_FIELD"
    elif "check" in error_msg.lower():
        message = "El valor no es válido"
        error_code = "CHECK_VIOLATION"
    else:
        message = "Violación de restricción de la base de datos"
        error_code = "INTEGRITY_ERROR"

    return create_error_response(
        status_code=status.HTTP_400_BAD_REQUEST,
        message=message,
        error_code=error_code,
    )


async def operational_exception_handler(
    request: Request,
    exc: OperationalError,
) -> JSONResponse:
    """Handle database operational errors (connection issues, etc.)."""
    logger.error(
        f"Database operational error on {request.url.path}: {str(exc)}",
        extra={
            "path": request.url.path,
            "method": request.method,
        },
    )
    await _persist(request, exc)

    return create_error_response(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        message="Base de datos no disponible temporalmente. Intente nuevamente.",
        error_code="DATABASE_UNAVAILABLE",
    )


async def general_exception_handler(
    request: Request,
    exc: Exception,
) -> JSONResponse:
    """Handle all other unhandled exceptions."""
    logger.error(
        f"Unhandled exception on {request.url.path}: {str(exc)}",
        extra={
            "path": request.url.path,
            "method": request.method,
            "traceback": traceback.format_exc(),
        },
        exc_info=True,
    )
    await _persist(request, exc)

    # Don't expose internal details outside development
    message = "Error interno del servidor"
    if settings.environment != "production" and settings.debug:
        message = str(exc) or message

    return create_error_response(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        message=message,
        error_code="INTERNAL_ERROR",
    )


def register_exception_handlers(app):
    """Register all custom exception handlers with FastAPI app."""
    app.add_exception_handler(ConsultorioException, consultorio_exception_handler)
    app.add_exception_handler(OverrideNotFoundError, override_not_found_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(ValidationError, validation_exception_handler)
    app.add_exception_handler(IntegrityError, database_exception_handler)
    app.add_exception_handler(OperationalError, operational_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)
