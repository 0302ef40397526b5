from datetime import datetime

from comunidad.extensions import db

ESTADOS_INCIDENCIA = ("pendiente", "en_proceso", "resuelto", "rechazado")
ESTADOS_ABIERTOS = ("pendiente", "en_proceso")
ESTADOS_CERRADOS = ("resuelto", "rechazado")

PRIORIDADES = ("baja", "media", "alta", "urgente")
RANGO_PRIORIDAD = {"baja": 1, "media": 2, "alta": 3, "urgente": 4}


class Incidencia(db.Model):
    __tablename__ = "incidencias"

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)

    title = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, nullable=False, default="")
    category = db.Column(db.String(120), nullable=False, index=True)

    status = db.Column(
        db.Enum(*ESTADOS_INCIDENCIA, name="estado_incidencia_enum"),
        nullable=False,
        default="pendiente",
        index=True,
    )
    priority = db.Column(
        db.Enum(*PRIORIDADES, name="prioridad_incidencia_enum"),
        nullable=False,
        default="media",
    )

    location = db.Column(db.String(255), nullable=False, default="")

    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow, index=True)
    updated_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    # Referencia débil: la incidencia sobrevive al borrado del usuario
    user_id = db.Column(db.Integer, nullable=True, index=True)
    # Copia del creador en el momento del alta (no se actualiza)
    user_name = db.Column(db.String(150))
    user_house = db.Column(db.String(50))

    version = db.Column(db.Integer, nullable=False, default=1)

    attachments = db.relationship(
        "Adjunto",
        back_populates="incidencia",
        cascade="all, delete-orphan",
        order_by="Adjunto.id",
    )
    notes = db.relationship(
        "Nota",
        back_populates="incidencia",
        cascade="all, delete-orphan",
        order_by="Nota.id",
    )

    __mapper_args__ = {"version_id_col": version}

    def tocar(self, ahora: datetime | None = None) -> None:
        """Actualiza updated_at sin retroceder nunca."""
        ahora = ahora or datetime.utcnow()
        if self.updated_at is None or ahora > self.updated_at:
            self.updated_at = ahora

    def __repr__(self) -> str:
        return f"<Incidencia id={self.id} status={self.status} priority={self.priority}>"
