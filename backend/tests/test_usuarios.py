"""Tests for user management routes."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from consultorio import database
from consultorio.auth.password import verify_password
from consultorio.auth.permissions import Rol
from consultorio.middleware.exceptions import SessionRevocationError
from consultorio.models.usuario import Usuario


def _admin(user_id: str = "admin-1") -> Usuario:
    return Usuario(
        id=user_id,
        email=f"{user_id}@consultorio.com.ar",
        password_hash="x",
        nombre="Admin",
        apellido="Root",
        telefono=None,
        rol=Rol.ADMINISTRADOR,
        activo=True,
    )


@pytest.mark.asyncio
class TestUsuariosApi:
    async def test_list_requires_permission(self, client, secretaria_headers):
        response = await client.get("/api/usuarios/", headers=secretaria_headers)
        assert response.status_code == 403

    async def test_list(self, client, db_session, admin_headers, secretaria):
        db_session.scalar.return_value = 1
        db_session.execute.return_value.scalars.return_value.all.return_value = [secretaria]

        response = await client.get("/api/usuarios/?page=1&limit=10", headers=admin_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 1
        assert data["total_pages"] == 1
        assert data["items"][0]["email"] == secretaria.email
        assert "password_hash" not in data["items"][0]

    async def test_create(self, client, db_session, admin_headers):
        db_session.refresh.side_effect = lambda obj: setattr(obj, "id", "new-1")

        response = await client.post(
            "/api/usuarios/",
            headers=admin_headers,
            json={
                "email": "nueva@consultorio.com.ar",
                "password": "clave-segura-123",
                "nombre": "Lucía",
                "apellido": "Pérez",
                "rol": "secretaria",
            },
        )

        assert response.status_code == 201
        assert response.json()["id"] == "new-1"
        created = db_session.add.call_args.args[0]
        assert created.rol == Rol.SECRETARIA
        assert verify_password("clave-segura-123", created.password_hash)

    async def test_create_duplicate_email(self, client, db_session, admin_headers):
        db_session.execute.return_value.scalar_one_or_none.return_value = "existing-id"

        response = await client.post(
            "/api/usuarios/",
            headers=admin_headers,
            json={
                "email": "nueva@consultorio.com.ar",
                "password": "clave-segura-123",
                "rol": "secretaria",
            },
        )

        assert response.status_code == 409
        assert response.json()["error"]["code"] == "EMAIL_IN_USE"
        db_session.add.assert_not_called()

    async def test_create_unknown_role(self, client, admin_headers):
        response = await client.post(
            "/api/usuarios/",
            headers=admin_headers,
            json={
                "email": "nueva@consultorio.com.ar",
                "password": "clave-segura-123",
                "rol": "superusuario",
            },
        )
        assert response.status_code == 422

    async def test_get_unknown(self, client, admin_headers):
        response = await client.get("/api/usuarios/ghost", headers=admin_headers)
        assert response.status_code == 404

    async def test_deactivate_last_admin(self, client, db_session, revocation, admin_headers):
        db_session.get.return_value = _admin()
        db_session.scalar.return_value = 0

        response = await client.patch("/api/usuarios/admin-1/deactivate", headers=admin_headers)

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "LAST_ADMIN"
        assert revocation.revoked_users == set()

    async def test_deactivate_admin_with_others_left(
        self, client, db_session, revocation, admin_headers
    ):
        admin = _admin("admin-2")
        db_session.get.return_value = admin
        db_session.scalar.return_value = 1

        response = await client.patch("/api/usuarios/admin-2/deactivate", headers=admin_headers)

        assert response.status_code == 200
        assert response.json()["activo"] is False
        assert revocation.revoked_users == {"admin-2"}

    async def test_demote_last_admin(self, client, db_session, admin_headers):
        db_session.get.return_value = _admin()
        db_session.scalar.return_value = 0

        response = await client.put(
            "/api/usuarios/admin-1", headers=admin_headers, json={"rol": "secretaria"}
        )

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "LAST_ADMIN"

    async def test_role_change_revokes_sessions(
        self, client, db_session, revocation, admin_headers, secretaria
    ):
        db_session.get.return_value = secretaria

        response = await client.put(
            "/api/usuarios/sec-1", headers=admin_headers, json={"rol": "secretaria_jefe"}
        )

        assert response.status_code == 200
        assert response.json()["rol"] == "secretaria_jefe"
        assert revocation.revoked_users == {"sec-1"}

    async def test_delete_last_admin(self, client, db_session, admin_headers):
        db_session.get.return_value = _admin()
        db_session.scalar.return_value = 0

        response = await client.delete("/api/usuarios/admin-1", headers=admin_headers)

        assert response.status_code == 400
        db_session.delete.assert_not_awaited()

    async def test_delete(self, client, db_session, revocation, admin_headers, secretaria):
        db_session.get.return_value = secretaria

        response = await client.delete("/api/usuarios/sec-1", headers=admin_headers)

        assert response.status_code == 204
        db_session.delete.assert_awaited_once_with(secretaria)
        assert revocation.revoked_users == {"sec-1"}


@pytest.mark.asyncio
class TestPasswordChange:
    BODY = {"new_password": "otra-clave-123", "confirm_password": "otra-clave-123"}

    async def test_own_password(self, client, db_session, revocation, secretaria, secretaria_headers):
        db_session.get.return_value = secretaria

        response = await client.patch(
            "/api/usuarios/sec-1/password", headers=secretaria_headers, json=self.BODY
        )

        assert response.status_code == 204
        assert verify_password("otra-clave-123", secretaria.password_hash)
        assert revocation.revoked_users == {"sec-1"}

    async def test_someone_elses_password_needs_permission(
        self, client, db_session, secretaria_headers
    ):
        db_session.get.return_value = _admin()

        response = await client.patch(
            "/api/usuarios/admin-1/password", headers=secretaria_headers, json=self.BODY
        )

        assert response.status_code == 403
        assert response.json()["error"]["details"] == {
            "required_permission": "usuarios.actualizar"
        }

    async def test_admin_changes_someone_elses_password(
        self, client, db_session, secretaria, admin_headers
    ):
        db_session.get.return_value = secretaria

        response = await client.patch(
            "/api/usuarios/sec-1/password", headers=admin_headers, json=self.BODY
        )

        assert response.status_code == 204

    async def test_confirmation_mismatch(self, client, secretaria_headers):
        response = await client.patch(
            "/api/usuarios/sec-1/password",
            headers=secretaria_headers,
            json={"new_password": "otra-clave-123", "confirm_password": "distinta-123"},
        )
        assert response.status_code == 422


@pytest.mark.asyncio
class TestSessionRevocationFailure:
    """A change that must end the user's sessions fails when they cannot be ended."""

    @pytest.fixture(autouse=True)
    def redis_down(self, revocation):
        revocation.available = False

    async def test_demotion(self, client, db_session, error_log, admin_headers):
        db_session.get.return_value = _admin("admin-2")
        db_session.scalar.return_value = 1

        response = await client.put(
            "/api/usuarios/admin-2", headers=admin_headers, json={"rol": "secretaria"}
        )

        assert response.status_code == 503
        assert response.json()["error"]["code"] == "SESSION_REVOCATION_FAILED"
        assert len(error_log.records) == 1

    async def test_deactivation(self, client, db_session, admin_headers):
        db_session.get.return_value = _admin("admin-2")
        db_session.scalar.return_value = 1

        response = await client.patch("/api/usuarios/admin-2/deactivate", headers=admin_headers)

        assert response.status_code == 503
        assert response.json()["error"]["code"] == "SESSION_REVOCATION_FAILED"

    async def test_delete(self, client, db_session, admin_headers, secretaria):
        db_session.get.return_value = secretaria

        response = await client.delete("/api/usuarios/sec-1", headers=admin_headers)

        assert response.status_code == 503

    async def test_password_change(self, client, db_session, secretaria, secretaria_headers):
        db_session.get.return_value = secretaria

        response = await client.patch(
            "/api/usuarios/sec-1/password",
            headers=secretaria_headers,
            json=TestPasswordChange.BODY,
        )

        assert response.status_code == 503

    async def test_name_change_does_not_touch_sessions(
        self, client, db_session, admin_headers, secretaria
    ):
        db_session.get.return_value = secretaria

        response = await client.put(
            "/api/usuarios/sec-1", headers=admin_headers, json={"nombre": "Ana María"}
        )

        assert response.status_code == 200


@pytest.mark.asyncio
async def test_get_db_rolls_back_when_the_request_fails(monkeypatch):
    session = AsyncMock(spec=AsyncSession)
    factory = MagicMock()
    factory.return_value.__aenter__.return_value = session
    factory.return_value.__aexit__.return_value = False
    monkeypatch.setattr(database, "async_session", factory)

    sessions = database.get_db()
    assert await sessions.__anext__() is session
    with pytest.raises(SessionRevocationError):
        await sessions.athrow(SessionRevocationError())

    session.rollback.assert_awaited_once()
    session.commit.assert_not_awaited()
