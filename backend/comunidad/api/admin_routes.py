from flask import Blueprint
from flask_jwt_extended import jwt_required

from comunidad.services import admin_service
from comunidad.utils.responses import success_response
from comunidad.utils.security import require_admin, require_staff

bp = Blueprint("admin", __name__)


@bp.get("/ping")
def ping_admin():
    return success_response(message="admin ok")


@bp.get("/resumen")
@jwt_required()
def resumen_admin():
    # Se consulta periódicamente desde el panel para el aviso de pendientes
    require_admin()
    data = admin_service.obtener_resumen_admin()
    return success_response(data=data, message="OK")


@bp.get("/censo")
@jwt_required()
def censo():
    require_staff()
    data = admin_service.obtener_censo()
    return success_response(data=data, message="OK")
