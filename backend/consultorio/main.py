import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from consultorio.config import settings
from consultorio.database import async_session
from consultorio.middleware.exceptions import register_exception_handlers
from consultorio.middleware.security import SecurityHeadersMiddleware
from consultorio.routers import (
    auth,
    health,
    logs,
    notificaciones,
    pacientes,
    permisos,
    profesionales,
    usuarios,
)
from consultorio.services.error_log import DatabaseErrorLogWriter
from consultorio.services.notifications import lifespan

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = FastAPI(
    title="Consultorio",
    description="Back office for a medical practice: users, permissions, patients",
    version="0.1.0",
    lifespan=lifespan,
)

# Server-side failures are written to the `logs` table
app.state.error_log_writer = DatabaseErrorLogWriter(async_session)

# ── Exception Handlers ───────────────────────────────────────
register_exception_handlers(app)

# ── Middleware (outermost first) ─────────────────────────────
app.add_middleware(SecurityHeadersMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins.split(","),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ── Routers ──────────────────────────────────────────────────
app.include_router(health.router)
app.include_router(auth.router, prefix="/api/auth", tags=["auth"])
app.include_router(usuarios.router, prefix="/api/usuarios", tags=["usuarios"])
app.include_router(permisos.router, prefix="/api")
app.include_router(pacientes.router, prefix="/api/pacientes", tags=["pacientes"])
app.include_router(profesionales.router, prefix="/api/profesionales", tags=["profesionales"])
app.include_router(notificaciones.router, prefix="/api/notificaciones", tags=["notificaciones"])
app.include_router(logs.router, prefix="/api/logs", tags=["logs"])
