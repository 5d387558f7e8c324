"""Initial schema: users, permission overrides, patients, professionals,
notifications and error logs.

Revision ID: 0001
Revises: (none)
Create Date: 2026-10-19
"""

revision = "0001"
down_revision = None
branch_labels = None
depends_on = None

from alembic import op
import sqlalchemy as sa

ROLES = ("administrador", "secretaria_jefe", "secretaria", "profesional")


def upgrade() -> None:
    # ── Users + permission overrides ─────────────────────────

    op.create_table(
        "usuarios",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("password_hash", sa.String(255), nullable=False),
        sa.Column("nombre", sa.String(100), server_default=""),
        sa.Column("apellido", sa.String(100), server_default=""),
        sa.Column("telefono", sa.String(30)),
        sa.Column("rol", sa.Enum(*ROLES, name="rol_usuario"), nullable=False),
        sa.Column("activo", sa.Boolean(), server_default="true"),
        sa.Column("fecha_creacion", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("fecha_actualizacion", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_usuarios_email", "usuarios", ["email"], unique=True)

    op.create_table(
        "permisos_usuario",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "usuario_id",
            sa.String(36),
            sa.ForeignKey("usuarios.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("permiso", sa.String(100), nullable=False),
        sa.Column("activo", sa.Boolean(), nullable=False, server_default="true"),
        sa.Column(
            "fecha_asignacion",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.UniqueConstraint("usuario_id", "permiso", name="uq_permisos_usuario_usuario_permiso"),
    )
    op.create_index("ix_permisos_usuario_usuario_id", "permisos_usuario", ["usuario_id"])

    # ── Clinic data ──────────────────────────────────────────

    op.create_table(
        "pacientes",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("dni", sa.String(20), nullable=False),
        sa.Column("nombre", sa.String(100), nullable=False),
        sa.Column("apellido", sa.String(100), nullable=False),
        sa.Column("fecha_nacimiento", sa.Date()),
        sa.Column("telefono", sa.String(30)),
        sa.Column("email", sa.String(255)),
        sa.Column("direccion", sa.Text()),
        sa.Column("obra_social", sa.String(100)),
        sa.Column("numero_afiliado", sa.String(50)),
        sa.Column("contacto_emergencia_nombre", sa.String(100)),
        sa.Column("contacto_emergencia_telefono", sa.String(30)),
        sa.Column("activo", sa.Boolean(), server_default="true"),
        sa.Column("fecha_creacion", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("fecha_actualizacion", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_pacientes_dni", "pacientes", ["dni"], unique=True)

    op.create_table(
        "profesionales",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("usuario_id", sa.String(36), sa.ForeignKey("usuarios.id"), nullable=False),
        sa.Column("matricula", sa.String(50)),
        sa.Column("especialidad", sa.String(100)),
        sa.Column("estado_pago", sa.String(20), server_default="al_dia"),
        sa.Column("fecha_ultimo_pago", sa.Date()),
        sa.Column("fecha_inicio_contrato", sa.Date()),
        sa.Column("monto_mensual", sa.Numeric(12, 2)),
        sa.Column("tipo_periodo_pago", sa.String(20)),
        sa.Column("bloqueado", sa.Boolean(), server_default="false"),
        sa.Column("razon_bloqueo", sa.Text()),
        sa.Column("observaciones", sa.Text()),
        sa.Column("fecha_creacion", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("fecha_actualizacion", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_profesionales_usuario_id", "profesionales", ["usuario_id"], unique=True)

    # ── Notifications + error logs ───────────────────────────

    op.create_table(
        "notificaciones_email",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("destinatario_email", sa.String(255), nullable=False),
        sa.Column("asunto", sa.String(255), nullable=False),
        sa.Column("contenido", sa.Text(), nullable=False),
        sa.Column("tipo", sa.String(50)),
        sa.Column("estado", sa.String(20), nullable=False, server_default="pendiente"),
        sa.Column("error_mensaje", sa.Text()),
        sa.Column("relacionado_tipo", sa.String(50)),
        sa.Column("relacionado_id", sa.String(36)),
        sa.Column("fecha_envio", sa.DateTime(timezone=True)),
        sa.Column("fecha_creacion", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("fecha_actualizacion", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_notificaciones_email_destinatario_email", "notificaciones_email", ["destinatario_email"])
    op.create_index("ix_notificaciones_email_tipo", "notificaciones_email", ["tipo"])
    op.create_index("ix_notificaciones_email_estado", "notificaciones_email", ["estado"])
    op.create_index("ix_notificaciones_email_fecha_creacion", "notificaciones_email", ["fecha_creacion"])

    op.create_table(
        "logs",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("origen", sa.String(10), nullable=False),
        sa.Column("usuario_id", sa.String(36)),
        sa.Column("rol", sa.String(30)),
        sa.Column("pantalla", sa.String(200)),
        sa.Column("accion", sa.String(200)),
        sa.Column("ruta", sa.String(500)),
        sa.Column("metodo", sa.String(10)),
        sa.Column("params", sa.Text()),
        sa.Column("mensaje", sa.Text(), nullable=False, server_default=""),
        sa.Column("stack", sa.Text()),
    )
    op.create_index("ix_logs_created_at", "logs", ["created_at"])
    op.create_index("ix_logs_origen", "logs", ["origen"])


def downgrade() -> None:
    op.drop_table("logs")
    op.drop_table("notificaciones_email")
    op.drop_table("profesionales")
    op.drop_table("pacientes")
    op.drop_table("permisos_usuario")
    op.drop_table("usuarios")
    sa.Enum(name="rol_usuario").drop(op.get_bind(), checkfirst=True)
