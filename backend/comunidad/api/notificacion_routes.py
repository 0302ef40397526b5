from flask import Blueprint, current_app
from flask_jwt_extended import jwt_required

from comunidad.utils.responses import success_response
from comunidad.utils.security import usuario_actual
from comunidad.services import notificacion_service

bp = Blueprint("notificaciones", __name__)


@bp.get("/ping")
def ping_notificaciones():
    return success_response(message="notificaciones ok")


@bp.get("")
@jwt_required()
def listar_notificaciones():
    id_usuario = usuario_actual().id
    data = notificacion_service.listar_notificaciones(id_usuario)

    if current_app.config.get("NOTIFICACIONES_DEBUG"):
        current_app.logger.info(
            "[notificaciones] GET /api/notificaciones usuario=%s -> items=%s unread=%s",
            id_usuario,
            len(data.get("items") or []),
            data.get("unread_count"),
        )
    return success_response(data=data, message="OK")


@bp.post("/<int:id_notificacion>/leer")
@jwt_required()
def marcar_leida(id_notificacion: int):
    notificacion_service.marcar_leida(id_notificacion, usuario_actual().id)
    return success_response(message="OK")
