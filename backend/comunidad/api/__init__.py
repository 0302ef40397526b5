from .auth_routes import bp as auth_bp
from .usuario_routes import bp as usuarios_bp
from .incidencia_routes import bp as incidencias_bp
from .config_routes import bp as config_bp
from .notificacion_routes import bp as notificaciones_bp
from .admin_routes import bp as admin_bp

__all__ = [
    "auth_bp",
    "usuarios_bp",
    "incidencias_bp",
    "config_bp",
    "notificaciones_bp",
    "admin_bp",
]
