"""Pytest configuration and fixtures for Consultorio tests.

The API tests run the real app against in-memory collaborators: the
override store, the token revocation list and the error log writer are
fakes, and the SQLAlchemy session is an AsyncMock whose return values each
test sets up. Tests marked `integration` use a real PostgreSQL database
and are skipped unless TEST_DATABASE_URL is set.
"""

from typing import AsyncGenerator, Callable
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from consultorio.auth.deps import get_override_store
from consultorio.auth.jwt import create_access_token
from consultorio.auth.permissions import Rol
from consultorio.auth.revocation import get_token_revocation
from consultorio.database import get_db
from consultorio.main import app
from consultorio.models.usuario import Usuario
from fakes import FakeRevocation, InMemoryOverrideStore, RecordingErrorLogWriter


# ── Collaborators ────────────────────────────────────────────────

@pytest.fixture
def override_store() -> InMemoryOverrideStore:
    return InMemoryOverrideStore()


@pytest.fixture
def revocation() -> FakeRevocation:
    return FakeRevocation()


@pytest.fixture
def error_log() -> RecordingErrorLogWriter:
    return RecordingErrorLogWriter()


@pytest.fixture
def db_session() -> AsyncMock:
    """Session double; `execute` results default to empty."""
    session = AsyncMock(spec=AsyncSession)
    result = MagicMock()
    result.scalar_one_or_none.return_value = None
    result.scalars.return_value.all.return_value = []
    result.all.return_value = []
    session.execute.return_value = result
    session.scalar.return_value = 0
    session.get.return_value = None
    return session


# ── Client ───────────────────────────────────────────────────────

@pytest_asyncio.fixture
async def client(
    override_store, revocation, error_log, db_session
) -> AsyncGenerator[AsyncClient, None]:
    """Test client with every external dependency overridden."""

    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_override_store] = lambda: override_store
    app.dependency_overrides[get_token_revocation] = lambda: revocation
    previous_writer = getattr(app.state, "error_log_writer", None)
    app.state.error_log_writer = error_log

    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()
    app.state.error_log_writer = previous_writer


# ── Auth helpers ─────────────────────────────────────────────────

@pytest.fixture
def make_headers() -> Callable[..., dict]:
    """Build Authorization headers for an arbitrary user/role."""

    def _make(user_id: str = "admin-1", rol: str = Rol.ADMINISTRADOR.value, email: str | None = None):
        token = create_access_token(
            user_id=user_id,
            email=email or f"{user_id}@consultorio.test",
            role=rol,
        )
        return {"Authorization": f"Bearer {token}"}

    return _make


@pytest.fixture
def admin_headers(make_headers) -> dict:
    return make_headers("admin-1", Rol.ADMINISTRADOR.value)


@pytest.fixture
def secretaria_headers(make_headers) -> dict:
    return make_headers("sec-1", Rol.SECRETARIA.value)


@pytest.fixture
def secretaria() -> Usuario:
    return Usuario(
        id="sec-1",
        email="sec-1@consultorio.test",
        password_hash="x",
        nombre="Ana",
        apellido="Gómez",
        telefono=None,
        rol=Rol.SECRETARIA,
        activo=True,
    )


# ── Test Markers ─────────────────────────────────────────────────

def pytest_configure(config):
    """Configure custom markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "integration: Integration tests (need TEST_DATABASE_URL)")
    config.addinivalue_line("markers", "auth: Authentication and authorization tests")
