"""esquema inicial: usuarios, configuración, incidencias, notificaciones

Revision ID: 20261019_0001
Revises:
Create Date: 2026-10-19

"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect
from sqlalchemy.dialects import mysql


revision = "20261019_0001"
down_revision = None
branch_labels = None
depends_on = None


TEXTO_LARGO = sa.Text().with_variant(mysql.LONGTEXT(), "mysql")


def upgrade():
    bind = op.get_bind()
    insp = inspect(bind)
    tables = set(insp.get_table_names())

    if "usuarios" not in tables:
        op.create_table(
            "usuarios",
            sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
            sa.Column("username", sa.String(length=80), nullable=False),
            sa.Column("email", sa.String(length=255), nullable=True),
            sa.Column("password_hash", sa.String(length=255), nullable=True),
            sa.Column(
                "role",
                sa.Enum("admin", "supervisor", "user", name="rol_usuario_enum"),
                server_default="user",
                nullable=False,
            ),
            sa.Column(
                "status",
                sa.Enum("pending", "active", "rejected", name="estado_cuenta_enum"),
                server_default="pending",
                nullable=False,
            ),
            sa.Column("full_name", sa.String(length=150), nullable=True),
            sa.Column("house_number", sa.String(length=50), nullable=True),
            sa.Column("receive_emails", sa.Boolean(), server_default=sa.text("1"), nullable=False),
            sa.Column("custom_fields", sa.JSON(), nullable=False),
            sa.Column("created_at", sa.DateTime(), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
        )
        op.create_index("ix_usuarios_username", "usuarios", ["username"], unique=True)
        op.create_index("ix_usuarios_email", "usuarios", ["email"], unique=True)
        op.create_index("ix_usuarios_status", "usuarios", ["status"], unique=False)

    if "configuracion_app" not in tables:
        op.create_table(
            "configuracion_app",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("config_json", TEXTO_LARGO, nullable=False),
            sa.Column("updated_at", sa.DateTime(), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
            sa.Column("version", sa.Integer(), server_default=sa.text("1"), nullable=False),
        )

    if "incidencias" not in tables:
        op.create_table(
            "incidencias",
            sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
            sa.Column("title", sa.String(length=200), nullable=False),
            sa.Column("description", sa.Text(), nullable=False),
            sa.Column("category", sa.String(length=120), nullable=False),
            sa.Column(
                "status",
                sa.Enum("pendiente", "en_proceso", "resuelto", "rechazado", name="estado_incidencia_enum"),
                server_default="pendiente",
                nullable=False,
            ),
            sa.Column(
                "priority",
                sa.Enum("baja", "media", "alta", "urgente", name="prioridad_incidencia_enum"),
                server_default="media",
                nullable=False,
            ),
            sa.Column("location", sa.String(length=255), server_default="", nullable=False),
            sa.Column("created_at", sa.DateTime(), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
            sa.Column("updated_at", sa.DateTime(), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
            sa.Column("user_id", sa.Integer(), nullable=True),
            sa.Column("user_name", sa.String(length=150), nullable=True),
            sa.Column("user_house", sa.String(length=50), nullable=True),
            sa.Column("version", sa.Integer(), server_default=sa.text("1"), nullable=False),
        )
        op.create_index("ix_incidencias_category", "incidencias", ["category"], unique=False)
        op.create_index("ix_incidencias_status", "incidencias", ["status"], unique=False)
        op.create_index("ix_incidencias_created_at", "incidencias", ["created_at"], unique=False)
        op.create_index("ix_incidencias_user_id", "incidencias", ["user_id"], unique=False)

    if "incidencias_adjuntos" not in tables:
        op.create_table(
            "incidencias_adjuntos",
            sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
            sa.Column("type", sa.Enum("image", "video", name="tipo_adjunto_enum"), nullable=False),
            sa.Column("url", TEXTO_LARGO, nullable=False),
            sa.Column("name", sa.String(length=255), server_default="", nullable=False),
            sa.Column("tamano_bytes", sa.Integer(), server_default=sa.text("0"), nullable=False),
            sa.Column("archivo", sa.String(length=255), nullable=True),
            sa.Column("id_incidencia", sa.Integer(), nullable=False),
            sa.ForeignKeyConstraint(["id_incidencia"], ["incidencias.id"], ondelete="CASCADE"),
        )
        op.create_index(
            "ix_incidencias_adjuntos_id_incidencia", "incidencias_adjuntos", ["id_incidencia"], unique=False
        )

    if "incidencias_notas" not in tables:
        op.create_table(
            "incidencias_notas",
            sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
            sa.Column("content", sa.Text(), nullable=False),
            sa.Column("author_name", sa.String(length=150), nullable=False),
            sa.Column("created_at", sa.DateTime(), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
            sa.Column("id_incidencia", sa.Integer(), nullable=False),
            sa.ForeignKeyConstraint(["id_incidencia"], ["incidencias.id"], ondelete="CASCADE"),
        )
        op.create_index("ix_incidencias_notas_id_incidencia", "incidencias_notas", ["id_incidencia"], unique=False)

    if "notificaciones" not in tables:
        op.create_table(
            "notificaciones",
            sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
            sa.Column("id_usuario", sa.Integer(), nullable=False),
            sa.Column("tipo", sa.String(length=60), nullable=False),
            sa.Column("mensaje", sa.String(length=300), nullable=False),
            sa.Column("leida", sa.Boolean(), server_default=sa.text("0"), nullable=False),
            sa.Column("created_at", sa.DateTime(), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
            sa.Column("meta_json", sa.Text(), nullable=True),
            sa.ForeignKeyConstraint(["id_usuario"], ["usuarios.id"], ondelete="CASCADE"),
        )
        op.create_index("ix_notificaciones_id_usuario", "notificaciones", ["id_usuario"], unique=False)
        op.create_index("ix_notificaciones_leida", "notificaciones", ["leida"], unique=False)
        op.create_index("ix_notificaciones_created_at", "notificaciones", ["created_at"], unique=False)

    if "tokens_revocados" not in tables:
        op.create_table(
            "tokens_revocados",
            sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
            sa.Column("jti", sa.String(length=64), nullable=False),
            sa.Column("id_usuario", sa.Integer(), nullable=True),
            sa.Column("created_at", sa.DateTime(), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
        )
        op.create_index("ix_tokens_revocados_jti", "tokens_revocados", ["jti"], unique=True)


def downgrade():
    bind = op.get_bind()
    insp = inspect(bind)
    tables = set(insp.get_table_names())

    # Hijas antes que padres
    for table in (
        "tokens_revocados",
        "notificaciones",
        "incidencias_notas",
        "incidencias_adjuntos",
        "incidencias",
        "configuracion_app",
        "usuarios",
    ):
        if table in tables:
            op.drop_table(table)
