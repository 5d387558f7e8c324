"""Tests for the static permission catalog."""

import pytest

from consultorio.auth.permissions import (
    DEFAULT_CATALOG,
    PERMISSIONS,
    ROLE_DEFAULTS,
    PermissionCatalog,
    Rol,
    defaults_for_role,
)


@pytest.mark.unit
class TestPermissionCatalog:
    def test_permission_names_are_unique(self):
        assert len(PERMISSIONS) == len(set(PERMISSIONS))

    def test_every_role_has_defaults(self):
        assert set(DEFAULT_CATALOG.roles) == {r.value for r in Rol}

    def test_role_defaults_are_catalog_members(self):
        for role in DEFAULT_CATALOG.roles:
            assert DEFAULT_CATALOG.defaults_for_role(role) <= DEFAULT_CATALOG.permissions

    def test_administrator_gets_everything(self):
        assert defaults_for_role(Rol.ADMINISTRADOR) == frozenset(PERMISSIONS)

    def test_secretaria_defaults(self):
        defaults = defaults_for_role(Rol.SECRETARIA)
        assert "pacientes.leer" in defaults
        assert "notificaciones.enviar" not in defaults
        assert "usuarios.eliminar" not in defaults

    def test_secretaria_jefe_extends_secretaria(self):
        assert defaults_for_role(Rol.SECRETARIA) < defaults_for_role(Rol.SECRETARIA_JEFE)
        assert "notificaciones.enviar" in defaults_for_role(Rol.SECRETARIA_JEFE)

    def test_enum_and_string_lookups_agree(self):
        for role in Rol:
            assert defaults_for_role(role) == defaults_for_role(role.value)

    @pytest.mark.parametrize("role", ["not_a_role", "", None, "ADMINISTRADOR"])
    def test_unknown_role_is_empty(self, role):
        assert defaults_for_role(role) == frozenset()

    def test_defaults_cannot_be_mutated(self):
        with pytest.raises(TypeError):
            DEFAULT_CATALOG.role_defaults["secretaria"] = frozenset(PERMISSIONS)
        with pytest.raises(AttributeError):
            DEFAULT_CATALOG.defaults_for_role("secretaria").add("usuarios.eliminar")

    def test_source_tables_are_immutable_types(self):
        assert isinstance(PERMISSIONS, tuple)
        assert all(isinstance(perms, tuple) for perms in ROLE_DEFAULTS.values())

    def test_build_rejects_unknown_default(self):
        with pytest.raises(ValueError, match="typo.perm"):
            PermissionCatalog.build(["a.leer"], {"rol": ["a.leer", "typo.perm"]})

    def test_custom_catalog(self):
        catalog = PermissionCatalog.build(["a.leer", "a.crear"], {Rol.SECRETARIA: ["a.leer"]})
        assert catalog.is_valid("a.crear")
        assert not catalog.is_valid("pacientes.leer")
        assert catalog.defaults_for_role("secretaria") == frozenset({"a.leer"})
        assert catalog.roles == ["secretaria"]
