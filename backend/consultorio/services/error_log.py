"""Persistence of backend errors into the `logs` table (origen='back').

The exception handlers call `writer.record(request, exc)` on the writer
stored in `app.state.error_log_writer`. The row is written in its own
session so it survives the rollback of the failing request.
"""

from __future__ import annotations

import json
import traceback

from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from consultorio.models.log import Log

SENSITIVE_KEYS = (
    "password",
    "password_hash",
    "token",
    "refresh_token",
    "confirm_password",
    "current_password",
    "new_password",
)


def sanitize(data: object) -> object:
    """Copy of a request payload without credential-like keys."""
    if not isinstance(data, dict):
        return None
    return {
        key: value
        for key, value in data.items()
        if not any(s in str(key).lower() for s in SENSITIVE_KEYS)
    }


def build_backend_log(request: Request, exc: Exception, body: object = None) -> Log:
    params = {
        "query": sanitize(dict(request.query_params)) or None,
        "body": sanitize(body),
    }
    principal = getattr(request.state, "principal", None)
    return Log(
        origen="back",
        usuario_id=getattr(principal, "id", None),
        rol=getattr(principal, "rol", None),
        ruta=str(request.url.path),
        metodo=request.method,
        params=json.dumps(params, indent=2, default=str),
        mensaje=str(exc) or exc.__class__.__name__,
        stack="".join(traceback.format_exception(type(exc), exc, exc.__traceback__)),
    )


class DatabaseErrorLogWriter:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def record(self, request: Request, exc: Exception) -> None:
        # The body stream may already be consumed here; only the query is kept.
        async with self._session_factory() as session:
            session.add(build_backend_log(request, exc))
            await session.commit()
