from flask import Blueprint, request
from flask_jwt_extended import jwt_required

from comunidad.schemas.usuario_schemas import (
    AprobacionSchema,
    PreferenciasSchema,
    UsuarioAdminCrearSchema,
    UsuarioAdminEditarSchema,
)
from comunidad.services import auth_service, usuario_service
from comunidad.utils.errors import AccountStateError
from comunidad.utils.responses import success_response
from comunidad.utils.security import require_admin, usuario_actual

bp = Blueprint("usuarios", __name__)


@bp.get("/ping")
def ping_usuarios():
    return success_response(message="usuarios ok")


def _respuesta_usuario(usuario, actor_id: int, message: str):
    data = {"usuario": usuario_service.usuario_to_dict(usuario)}
    # Si el usuario editado es quien tiene la sesión, se renueva su token
    if usuario.id == actor_id:
        data["access_token"] = auth_service.emitir_token(usuario)
    return success_response(data=data, message=message)


@bp.get("")
@jwt_required()
def listar_usuarios():
    require_admin()
    usuarios = usuario_service.listar_activos()
    return success_response(data=[usuario_service.usuario_to_dict(u) for u in usuarios], message="OK")


@bp.post("")
@jwt_required()
def crear_usuario():
    require_admin()
    data = UsuarioAdminCrearSchema().load(request.get_json(silent=True) or {})
    usuario = usuario_service.crear_usuario_admin(data)
    return success_response(
        data=usuario_service.usuario_to_dict(usuario),
        message="Usuario creado",
        status_code=201,
    )


@bp.get("/pendientes")
@jwt_required()
def listar_pendientes():
    require_admin()
    pendientes = usuario_service.listar_pendientes()
    return success_response(data=[usuario_service.usuario_to_dict(u) for u in pendientes], message="OK")


@bp.post("/<int:id_usuario>/aprobacion")
@jwt_required()
def aprobar_usuario(id_usuario: int):
    require_admin()
    data = AprobacionSchema().load(request.get_json(silent=True) or {})

    if not usuario_service.aprobar_usuario(id_usuario, data["aceptar"]):
        usuario_service.obtener_usuario_o_404(id_usuario)
        raise AccountStateError(
            "La solicitud ya no está pendiente.", code="ACCOUNT_NOT_PENDING", status_code=409
        )

    message = "Usuario aprobado" if data["aceptar"] else "Solicitud rechazada"
    return success_response(data={"id": id_usuario, "aceptado": data["aceptar"]}, message=message)


@bp.patch("/me")
@jwt_required()
def actualizar_me():
    actor = usuario_actual()
    cambios = PreferenciasSchema().load(request.get_json(silent=True) or {})
    usuario = usuario_service.actualizar_preferencias(actor.id, cambios)
    return _respuesta_usuario(usuario, actor.id, "Preferencias actualizadas")


@bp.patch("/<int:id_usuario>")
@jwt_required()
def actualizar_usuario(id_usuario: int):
    admin = require_admin()
    cambios = UsuarioAdminEditarSchema().load(request.get_json(silent=True) or {})
    usuario = usuario_service.actualizar_usuario_admin(id_usuario, cambios)
    return _respuesta_usuario(usuario, admin.id, "Usuario actualizado")
