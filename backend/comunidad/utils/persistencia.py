from flask import current_app
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.orm.exc import StaleDataError

from comunidad.extensions import db
from comunidad.utils.errors import CapacityError, ConflictError, StorageError

# SQLite: "database or disk is full"; MySQL 1114: "The table ... is full"
_MARCAS_CAPACIDAD = ("is full", "disk full", "no space left", "quota")


def es_error_de_capacidad(err: Exception) -> bool:
    texto = str(getattr(err, "orig", None) or err).lower()
    return any(marca in texto for marca in _MARCAS_CAPACIDAD)


def _ejecutar(operacion, contexto: str) -> None:
    try:
        operacion()
    except StaleDataError:
        db.session.rollback()
        current_app.logger.warning("[persistencia] conflicto de versión al %s", contexto)
        raise ConflictError()
    except OperationalError as err:
        db.session.rollback()
        if es_error_de_capacidad(err):
            current_app.logger.error("[persistencia] almacenamiento lleno al %s: %s", contexto, err)
            raise CapacityError()
        current_app.logger.exception("[persistencia] error operacional al %s", contexto)
        raise StorageError()
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception("[persistencia] error al %s", contexto)
        raise StorageError()


def volcar_cambios(contexto: str = "guardar") -> None:
    """Hace flush sin cerrar la transacción, para obtener ids antes del commit."""
    _ejecutar(db.session.flush, contexto)


def confirmar_cambios(contexto: str = "guardar") -> None:
    """Hace commit de la sesión y traduce los fallos de persistencia a ApiError."""
    _ejecutar(db.session.commit, contexto)
