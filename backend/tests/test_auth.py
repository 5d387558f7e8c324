"""Tests for tokens, password hashing and the auth endpoints."""

from datetime import timedelta

import pytest

from consultorio.auth.jwt import create_access_token, decode_token
from consultorio.auth.password import hash_password, verify_password
from consultorio.auth.permissions import Rol
from consultorio.middleware.exceptions import AuthenticationError
from consultorio.models.usuario import Usuario

EMAIL = "ana.gomez@consultorio.com.ar"
PASSWORD = "clave-segura-123"


@pytest.fixture
def usuario() -> Usuario:
    return Usuario(
        id="sec-1",
        email=EMAIL,
        password_hash=hash_password(PASSWORD),
        nombre="Ana",
        apellido="Gómez",
        telefono="1155550000",
        rol=Rol.SECRETARIA,
        activo=True,
    )


@pytest.mark.unit
class TestTokens:
    def test_claims(self):
        payload = decode_token(create_access_token("u-1", EMAIL, "secretaria"))

        assert payload["sub"] == "u-1"
        assert payload["email"] == EMAIL
        assert payload["rol"] == "secretaria"
        assert payload["type"] == "access"
        assert payload["exp"] > payload["iat"]
        assert "permisos" not in payload

    def test_expired(self):
        token = create_access_token("u-1", EMAIL, "secretaria", timedelta(seconds=-1))
        with pytest.raises(AuthenticationError) as exc_info:
            decode_token(token)
        assert exc_info.value.error_code == "TOKEN_EXPIRED"

    def test_tampered(self):
        token = create_access_token("u-1", EMAIL, "secretaria")
        with pytest.raises(AuthenticationError) as exc_info:
            decode_token(token[:-4] + "abcd")
        assert exc_info.value.error_code == "INVALID_TOKEN"


@pytest.mark.unit
class TestPasswords:
    def test_hash_and_verify(self):
        hashed = hash_password(PASSWORD)
        assert hashed != PASSWORD
        assert verify_password(PASSWORD, hashed)

    def test_wrong_password(self):
        assert not verify_password("otra-clave", hash_password(PASSWORD))

    def test_malformed_hash(self):
        assert not verify_password(PASSWORD, "not-a-hash")


@pytest.mark.auth
@pytest.mark.asyncio
class TestAuthEndpoints:
    async def test_login_success(self, client, db_session, usuario):
        db_session.execute.return_value.scalar_one_or_none.return_value = usuario

        response = await client.post(
            "/api/auth/login", json={"email": EMAIL, "password": PASSWORD}
        )

        assert response.status_code == 200
        data = response.json()
        assert data["token_type"] == "bearer"
        assert data["user"] == {"id": "sec-1", "email": EMAIL, "rol": "secretaria"}
        assert decode_token(data["access_token"])["rol"] == "secretaria"

    async def test_login_wrong_password(self, client, db_session, usuario):
        db_session.execute.return_value.scalar_one_or_none.return_value = usuario

        response = await client.post(
            "/api/auth/login", json={"email": EMAIL, "password": "incorrecta"}
        )

        assert response.status_code == 401
        assert response.json()["error"]["code"] == "INVALID_CREDENTIALS"

    async def test_login_unknown_email(self, client):
        response = await client.post(
            "/api/auth/login", json={"email": EMAIL, "password": PASSWORD}
        )

        assert response.status_code == 401
        assert response.json()["error"]["code"] == "INVALID_CREDENTIALS"

    async def test_login_inactive_account(self, client, db_session, usuario):
        usuario.activo = False
        db_session.execute.return_value.scalar_one_or_none.return_value = usuario

        response = await client.post(
            "/api/auth/login", json={"email": EMAIL, "password": PASSWORD}
        )

        assert response.status_code == 401
        assert response.json()["error"]["code"] == "ACCOUNT_DISABLED"

    async def test_login_validation_error(self, client):
        response = await client.post("/api/auth/login", json={"email": "no-es-email"})

        assert response.status_code == 422
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"

    async def test_me(self, client, db_session, usuario, secretaria_headers):
        db_session.get.return_value = usuario

        response = await client.get("/api/auth/me", headers=secretaria_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["email"] == EMAIL
        assert data["rol"] == "secretaria"
        assert data["permisos"]["pacientes.leer"] is True
        assert "usuarios.eliminar" not in data["permisos"]

    async def test_me_deleted_user(self, client, secretaria_headers):
        response = await client.get("/api/auth/me", headers=secretaria_headers)
        assert response.status_code == 404

    async def test_logout_revokes_token(self, client, db_session, usuario, revocation, secretaria_headers):
        db_session.get.return_value = usuario

        response = await client.post("/api/auth/logout", headers=secretaria_headers)
        assert response.status_code == 204
        assert secretaria_headers["Authorization"].split()[1] in revocation.revoked_tokens

        response = await client.get("/api/auth/me", headers=secretaria_headers)
        assert response.status_code == 401
        assert response.json()["error"]["code"] == "TOKEN_REVOKED"

    async def test_logout_without_token(self, client):
        response = await client.post("/api/auth/logout")
        assert response.status_code == 401

    async def test_logout_fails_when_token_cannot_be_revoked(
        self, client, revocation, secretaria_headers
    ):
        revocation.available = False

        response = await client.post("/api/auth/logout", headers=secretaria_headers)

        assert response.status_code == 503
        assert response.json()["error"]["code"] == "SESSION_REVOCATION_FAILED"
        assert revocation.revoked_tokens == set()
