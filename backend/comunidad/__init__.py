import logging

import pymysql
pymysql.install_as_MySQLdb()
from flask import Flask, send_from_directory
from flask_cors import CORS
from pathlib import Path

from .config import DevConfig
from .extensions import db, migrate, jwt, ma, bcrypt
from .utils.errors import register_error_handlers
from .utils.security import registrar_callbacks_jwt
from .api import (
    auth_routes,
    usuario_routes,
    incidencia_routes,
    config_routes,
    notificacion_routes,
    admin_routes,
)


def create_app(config_class=DevConfig) -> Flask:
    app = Flask(__name__)
    app.config.from_object(config_class)
    app.logger.setLevel(getattr(logging, str(app.config.get("LOG_LEVEL", "INFO")).upper(), logging.INFO))

    # Carpeta para uploads (adjuntos de incidencias)
    if not app.config.get("UPLOADS_INCIDENCIAS_DIR"):
        uploads_dir = (Path(app.root_path).parent / "uploads" / "incidencias").resolve()
        app.config["UPLOADS_INCIDENCIAS_DIR"] = str(uploads_dir)
    Path(app.config["UPLOADS_INCIDENCIAS_DIR"]).mkdir(parents=True, exist_ok=True)

    # CORS solo para el frontend configurado (CORS_ORIGINS admite varios separados por coma)
    origins = [o.strip() for o in str(app.config.get("CORS_ORIGINS") or "").split(",") if o.strip()]
    CORS(
        app,
        resources={r"/api/*": {"origins": origins or "*"}},
        supports_credentials=True,
    )

    # Inicializar extensiones
    db.init_app(app)
    migrate.init_app(app, db)
    jwt.init_app(app)
    ma.init_app(app)
    bcrypt.init_app(app)

    # Registrar blueprints
    app.register_blueprint(auth_routes.bp, url_prefix="/api/auth")
    app.register_blueprint(usuario_routes.bp, url_prefix="/api/usuarios")
    app.register_blueprint(incidencia_routes.bp, url_prefix="/api/incidencias")
    app.register_blueprint(config_routes.bp, url_prefix="/api/config")
    app.register_blueprint(notificacion_routes.bp, url_prefix="/api/notificaciones")
    app.register_blueprint(admin_routes.bp, url_prefix="/api/admin")

    # Manejadores de errores (API y JWT)
    register_error_handlers(app)
    registrar_callbacks_jwt(jwt)

    @app.get("/api/health")
    def health_check():
        return {"status": "ok", "service": "comunidad-incidencias-backend"}

    @app.get("/uploads/incidencias/<path:filename>")
    def servir_upload_incidencia(filename: str):
        return send_from_directory(app.config["UPLOADS_INCIDENCIAS_DIR"], filename)

    return app
