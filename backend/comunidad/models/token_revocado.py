from datetime import datetime

from comunidad.extensions import db


class TokenRevocado(db.Model):
    __tablename__ = "tokens_revocados"

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    jti = db.Column(db.String(64), unique=True, nullable=False, index=True)
    id_usuario = db.Column(db.Integer, nullable=True)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
