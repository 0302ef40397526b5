"""usuarios: columnas normalizadas (casefold) para username y email

Revision ID: 20261019_0002
Revises: 20261019_0001
Create Date: 2026-10-19

"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect


revision = "20261019_0002"
down_revision = "20261019_0001"
branch_labels = None
depends_on = None


def _normalizar(valor):
    return (valor or "").strip().casefold() or None


def upgrade():
    bind = op.get_bind()
    insp = inspect(bind)
    columnas = {c["name"] for c in insp.get_columns("usuarios")}
    indices = {i["name"] for i in insp.get_indexes("usuarios")}

    if "username_normalizado" not in columnas:
        op.add_column("usuarios", sa.Column("username_normalizado", sa.String(length=80), nullable=True))
    if "email_normalizado" not in columnas:
        op.add_column("usuarios", sa.Column("email_normalizado", sa.String(length=255), nullable=True))

    # casefold() no existe en SQL: se rellena desde Python
    usuarios = sa.table(
        "usuarios",
        sa.column("id", sa.Integer),
        sa.column("username", sa.String),
        sa.column("email", sa.String),
        sa.column("username_normalizado", sa.String),
        sa.column("email_normalizado", sa.String),
    )
    filas = bind.execute(sa.select(usuarios.c.id, usuarios.c.username, usuarios.c.email)).fetchall()
    for id_usuario, username, email in filas:
        bind.execute(
            usuarios.update()
            .where(usuarios.c.id == id_usuario)
            .values(username_normalizado=_normalizar(username), email_normalizado=_normalizar(email))
        )

    with op.batch_alter_table("usuarios") as batch:
        batch.alter_column("username_normalizado", existing_type=sa.String(length=80), nullable=False)

    if "ix_usuarios_username_normalizado" not in indices:
        op.create_index("ix_usuarios_username_normalizado", "usuarios", ["username_normalizado"], unique=True)
    if "ix_usuarios_email_normalizado" not in indices:
        op.create_index("ix_usuarios_email_normalizado", "usuarios", ["email_normalizado"], unique=True)


def downgrade():
    bind = op.get_bind()
    insp = inspect(bind)
    indices = {i["name"] for i in insp.get_indexes("usuarios")}
    columnas = {c["name"] for c in insp.get_columns("usuarios")}

    for nombre in ("ix_usuarios_email_normalizado", "ix_usuarios_username_normalizado"):
        if nombre in indices:
            op.drop_index(nombre, table_name="usuarios")
    with op.batch_alter_table("usuarios") as batch:
        for columna in ("email_normalizado", "username_normalizado"):
            if columna in columnas:
                batch.drop_column(columna)
