from datetime import datetime

from comunidad.extensions import db


class Nota(db.Model):
    __tablename__ = "incidencias_notas"

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)

    content = db.Column(db.Text, nullable=False)
    author_name = db.Column(db.String(150), nullable=False)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    id_incidencia = db.Column(
        db.Integer,
        db.ForeignKey("incidencias.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    incidencia = db.relationship(
        "Incidencia",
        back_populates="notes",
    )
