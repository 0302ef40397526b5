from sqlalchemy.dialects import mysql

from comunidad.extensions import db

TIPOS_ADJUNTO = ("image", "video")


class Adjunto(db.Model):
    __tablename__ = "incidencias_adjuntos"

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)

    type = db.Column(db.Enum(*TIPOS_ADJUNTO, name="tipo_adjunto_enum"), nullable=False)
    # data: URL embebida, URL externa o URL del archivo subido
    url = db.Column(db.Text().with_variant(mysql.LONGTEXT(), "mysql"), nullable=False)
    name = db.Column(db.String(255), nullable=False, default="")

    # Bytes que ocupa en nuestro almacenamiento (0 para URLs externas)
    tamano_bytes = db.Column(db.Integer, nullable=False, default=0)
    archivo = db.Column(db.String(255), nullable=True)

    id_incidencia = db.Column(
        db.Integer,
        db.ForeignKey("incidencias.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    incidencia = db.relationship(
        "Incidencia",
        back_populates="attachments",
    )
