import os

from comunidad import create_app
from comunidad.config import DevConfig, ProdConfig


def _entorno_produccion() -> bool:
    if os.getenv("APP_ENV", "").lower() in ("prod", "production"):
        return True
    # Railway define estas variables en los despliegues gestionados
    return any(os.getenv(k) for k in ("RAILWAY_PROJECT_ID", "RAILWAY_ENVIRONMENT"))


config = ProdConfig if _entorno_produccion() else DevConfig
app = create_app(config)

if __name__ == "__main__":
    app.run()
