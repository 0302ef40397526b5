from .usuario import Usuario
from .incidencia import Incidencia
from .adjunto import Adjunto
from .nota import Nota
from .configuracion_app import ConfiguracionApp
from .notificacion import Notificacion
from .token_revocado import TokenRevocado

__all__ = [
    "Usuario",
    "Incidencia",
    "Adjunto",
    "Nota",
    "ConfiguracionApp",
    "Notificacion",
    "TokenRevocado",
]
