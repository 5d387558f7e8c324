"""Management CLI.

Usage:
    python -m consultorio.cli create-admin EMAIL PASSWORD [NOMBRE APELLIDO]
    python -m consultorio.cli roles       # Show every role and its defaults
"""

import sys

from sqlalchemy import create_engine, select
from sqlalchemy.orm import Session

from consultorio.auth.password import hash_password
from consultorio.auth.permissions import DEFAULT_CATALOG, Rol
from consultorio.config import settings
from consultorio.models import Usuario


def create_admin(email: str, password: str, nombre: str = "", apellido: str = "") -> None:
    """Create the first administrator, or reactivate an existing one."""
    if len(password) < 8:
        print("Password must be at least 8 characters.")
        sys.exit(1)

    engine = create_engine(settings.database_url_sync)
    with Session(engine) as session:
        usuario = session.scalar(select(Usuario).where(Usuario.email == email))
        if usuario:
            usuario.rol = Rol.ADMINISTRADOR
            usuario.activo = True
            usuario.password_hash = hash_password(password)
            print(f"  Updated {email} as active administrator")
        else:
            session.add(
                Usuario(
                    email=email,
                    password_hash=hash_password(password),
                    nombre=nombre,
                    apellido=apellido,
                    rol=Rol.ADMINISTRADOR,
                    activo=True,
                )
            )
            print(f"  Created administrator {email}")
        session.commit()


def list_roles() -> None:
    for role in DEFAULT_CATALOG.roles:
        perms = sorted(DEFAULT_CATALOG.defaults_for_role(role))
        print(f"  {role} ({len(perms)})")
        for perm in perms:
            print(f"    {perm}")
    print(f"\n{len(DEFAULT_CATALOG.permissions)} permission(s) in catalog")


if __name__ == "__main__":
    cmd = sys.argv[1] if len(sys.argv) > 1 else ""
    if cmd == "create-admin" and len(sys.argv) >= 4:
        create_admin(*sys.argv[2:6])
    elif cmd == "roles":
        list_roles()
    else:
        print("Usage: python -m consultorio.cli [create-admin EMAIL PASSWORD [NOMBRE APELLIDO]|roles]")
