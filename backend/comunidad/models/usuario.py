from datetime import datetime

from sqlalchemy.orm import validates

from comunidad.extensions import db

ROLES = ("admin", "supervisor", "user")
ROLES_STAFF = ("admin", "supervisor")
ESTADOS_CUENTA = ("pending", "active", "rejected")


def normalizar_identificador(valor: str | None) -> str | None:
    """Forma canónica (casefold) con la que se comparan nombres de usuario y correos."""
    return (valor or "").strip().casefold() or None


class Usuario(db.Model):
    __tablename__ = "usuarios"

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)

    username = db.Column(db.String(80), unique=True, nullable=False, index=True)
    email = db.Column(db.String(255), unique=True, nullable=True, index=True)

    # Copias con casefold(); la unicidad sin distinguir mayúsculas se apoya en ellas
    username_normalizado = db.Column(db.String(80), unique=True, nullable=False, index=True)
    email_normalizado = db.Column(db.String(255), unique=True, nullable=True, index=True)
    password_hash = db.Column(db.String(255), nullable=True)

    role = db.Column(
        db.Enum(*ROLES, name="rol_usuario_enum"),
        nullable=False,
        default="user",
    )
    status = db.Column(
        db.Enum(*ESTADOS_CUENTA, name="estado_cuenta_enum"),
        nullable=False,
        default="pending",
        index=True,
    )

    full_name = db.Column(db.String(150))
    house_number = db.Column(db.String(50))
    receive_emails = db.Column(db.Boolean, nullable=False, default=True)

    # Campos dinámicos del formulario de registro, indexados por etiqueta
    custom_fields = db.Column(db.JSON, nullable=False, default=dict)

    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    @validates("username", "email")
    def _sincronizar_normalizados(self, clave, valor):
        setattr(self, f"{clave}_normalizado", normalizar_identificador(valor))
        return valor

    @property
    def es_staff(self) -> bool:
        return self.role in ROLES_STAFF

    @property
    def nombre_visible(self) -> str:
        return (self.full_name or "").strip() or self.username

    def __repr__(self) -> str:
        return f"<Usuario id={self.id} username={self.username} status={self.status}>"
