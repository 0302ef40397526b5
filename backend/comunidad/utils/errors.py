from flask import jsonify
from werkzeug.exceptions import HTTPException
from marshmallow import ValidationError


class ApiError(Exception):
    """
    Excepción genérica para errores de negocio.
    """
    def __init__(self, message, status_code=400, errors=None, payload=None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.errors = errors or {}
        self.payload = payload or {}

    @property
    def code(self):
        return self.payload.get("code")


class _ApiErrorConCodigo(ApiError):
    status_code = 400
    default_code = None
    default_message = "Error"

    def __init__(self, message=None, code=None, status_code=None, errors=None, payload=None):
        payload = dict(payload or {})
        payload.setdefault("code", code or self.default_code)
        super().__init__(
            message or self.default_message,
            status_code or type(self).status_code,
            errors=errors,
            payload=payload,
        )


class DataValidationError(_ApiErrorConCodigo):
    """Campo obligatorio ausente, valor fuera de dominio o duplicado."""

    status_code = 400
    default_code = "INVALID_VALUE"
    default_message = "Datos inválidos"


class NotFoundError(_ApiErrorConCodigo):
    status_code = 404
    default_code = "NOT_FOUND"
    default_message = "Recurso no encontrado"


class CredentialError(_ApiErrorConCodigo):
    status_code = 401
    default_code = "INVALID_CREDENTIALS"
    default_message = "Credenciales inválidas"


class AccountStateError(_ApiErrorConCodigo):
    status_code = 403
    default_code = "ACCOUNT_REJECTED"
    default_message = "Tu solicitud de cuenta fue rechazada."


class ForbiddenError(_ApiErrorConCodigo):
    status_code = 403
    default_code = "FORBIDDEN"
    default_message = "No autorizado"


class ConflictError(_ApiErrorConCodigo):
    status_code = 409
    default_code = "CONCURRENT_UPDATE"
    default_message = "Otra persona modificó este registro. Recarga e inténtalo de nuevo."


class StorageError(_ApiErrorConCodigo):
    status_code = 500
    default_code = "STORAGE_ERROR"
    default_message = "No se pudieron guardar los cambios. Inténtalo de nuevo."


class CapacityError(StorageError):
    """El almacenamiento está lleno; la UI debe sugerir liberar espacio."""

    status_code = 507
    default_code = "STORAGE_FULL"
    default_message = (
        "Almacenamiento lleno. Elimina adjuntos o incidencias antiguas "
        "para liberar espacio e inténtalo de nuevo."
    )


def register_error_handlers(app):

    @app.errorhandler(ApiError)
    def handle_api_error(err: ApiError):
        response = {
            "success": False,
            "message": err.message,
        }
        if err.errors:
            response["errors"] = err.errors
        if getattr(err, "payload", None):
            response["payload"] = err.payload

        return jsonify(response), err.status_code

    @app.errorhandler(ValidationError)
    def handle_marshmallow_validation(err: ValidationError):
        response = {
            "success": False,
            "message": "Datos inválidos",
            "errors": err.messages if hasattr(err, "messages") else str(err),
        }
        return jsonify(response), 400

    @app.errorhandler(HTTPException)
    def handle_http_exception(err: HTTPException):
        response = {
            "success": False,
            "message": err.description or "Error HTTP",
        }
        return jsonify(response), err.code

    @app.errorhandler(Exception)
    def handle_unexpected_error(err: Exception):
        app.logger.exception(err)

        response = {
            "success": False,
            "message": "Error interno del servidor",
        }
        return jsonify(response), 500
