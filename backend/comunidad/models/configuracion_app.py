from datetime import datetime

from comunidad.extensions import db


class ConfiguracionApp(db.Model):
    """Documento único con la configuración de la aplicación (id = 1)."""

    __tablename__ = "configuracion_app"

    id = db.Column(db.Integer, primary_key=True)
    config_json = db.Column(db.Text, nullable=False)
    updated_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)
    version = db.Column(db.Integer, nullable=False, default=1)

    __mapper_args__ = {"version_id_col": version}
