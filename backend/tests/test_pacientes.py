"""Tests for patient and professional routes."""

import pytest

from consultorio.auth.permissions import Rol
from consultorio.models.paciente import Paciente
from consultorio.models.profesional import Profesional

PACIENTE = {
    "dni": "30111222",
    "nombre": "Juan",
    "apellido": "Pérez",
    "telefono": "1144440000",
}


def _paciente() -> Paciente:
    return Paciente(id="p-1", activo=True, **PACIENTE)


@pytest.mark.asyncio
class TestPacientesApi:
    async def test_create(self, client, db_session, secretaria_headers):
        db_session.refresh.side_effect = lambda obj: setattr(obj, "id", "p-new")

        response = await client.post("/api/pacientes/", headers=secretaria_headers, json=PACIENTE)

        assert response.status_code == 201
        assert response.json()["id"] == "p-new"
        created = db_session.add.call_args.args[0]
        assert created.dni == "30111222"

    async def test_create_duplicate_dni(self, client, db_session, secretaria_headers):
        db_session.execute.return_value.scalar_one_or_none.return_value = "p-1"

        response = await client.post("/api/pacientes/", headers=secretaria_headers, json=PACIENTE)

        assert response.status_code == 409
        assert response.json()["error"]["code"] == "DNI_IN_USE"

    async def test_create_rejects_bad_dni(self, client, secretaria_headers):
        response = await client.post(
            "/api/pacientes/", headers=secretaria_headers, json={**PACIENTE, "dni": "30.111.222"}
        )
        assert response.status_code == 422

    async def test_search(self, client, db_session, make_headers):
        db_session.execute.return_value.scalars.return_value.all.return_value = [_paciente()]
        profesional = make_headers("pro-1", Rol.PROFESIONAL.value)

        response = await client.get("/api/pacientes/search?q=pere", headers=profesional)

        assert response.status_code == 200
        assert response.json()[0]["dni"] == "30111222"

    async def test_by_dni_not_found(self, client, secretaria_headers):
        response = await client.get("/api/pacientes/dni/1", headers=secretaria_headers)
        assert response.status_code == 404

    async def test_deactivate(self, client, db_session, secretaria_headers):
        paciente = _paciente()
        db_session.get.return_value = paciente

        response = await client.patch("/api/pacientes/p-1/deactivate", headers=secretaria_headers)

        assert response.status_code == 200
        assert paciente.activo is False

    async def test_delete_needs_permission(self, client, secretaria_headers):
        response = await client.delete("/api/pacientes/p-1", headers=secretaria_headers)
        assert response.status_code == 403


@pytest.mark.asyncio
class TestProfesionalesApi:
    async def test_create_requires_profesional_role(
        self, client, db_session, secretaria, admin_headers
    ):
        db_session.get.return_value = secretaria

        response = await client.post(
            "/api/profesionales/", headers=admin_headers, json={"usuario_id": "sec-1"}
        )

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "INVALID_ROLE"

    async def test_create_unknown_user(self, client, admin_headers):
        response = await client.post(
            "/api/profesionales/", headers=admin_headers, json={"usuario_id": "ghost"}
        )
        assert response.status_code == 404

    async def test_block_and_unblock(self, client, db_session, admin_headers):
        profesional = Profesional(
            id="pr-1", usuario_id="pro-1", estado_pago="moroso", bloqueado=False
        )
        db_session.get.return_value = profesional

        blocked = await client.patch(
            "/api/profesionales/pr-1/block",
            headers=admin_headers,
            json={"razon_bloqueo": "Pago atrasado"},
        )
        assert blocked.status_code == 200
        assert blocked.json()["bloqueado"] is True
        assert blocked.json()["razon_bloqueo"] == "Pago atrasado"

        unblocked = await client.patch("/api/profesionales/pr-1/unblock", headers=admin_headers)
        assert unblocked.json()["bloqueado"] is False
        assert unblocked.json()["razon_bloqueo"] is None

    async def test_block_needs_permission(self, client, make_headers):
        jefe = make_headers("jefe-1", Rol.SECRETARIA_JEFE.value)
        response = await client.patch("/api/profesionales/pr-1/block", headers=jefe, json={})
        assert response.status_code == 403
