from flask import Blueprint, request
from flask_jwt_extended import jwt_required, get_jwt

from comunidad.schemas.auth_schemas import RegistroSchema, LoginSchema, RecuperarSchema, RestablecerSchema
from comunidad.services import auth_service, config_service, usuario_service
from comunidad.utils.responses import success_response
from comunidad.utils.security import id_usuario_actual, usuario_actual

bp = Blueprint("auth", __name__)


@bp.get("/ping")
def ping():
    return success_response(message="auth ok")


@bp.post("/register")
def register():
    data = RegistroSchema().load(request.get_json(silent=True) or {})
    usuario = usuario_service.registrar_usuario(data)
    return success_response(
        data={
            "usuario": usuario_service.usuario_to_dict(usuario),
            "mensaje_pendiente": config_service.mensaje_cuenta_pendiente(),
        },
        message="Registro recibido. Un administrador revisará tu solicitud.",
        status_code=201,
    )


@bp.post("/login")
def login():
    data = LoginSchema().load(request.get_json(silent=True) or {})
    result = auth_service.autenticar(data["identifier"], data["password"])
    return success_response(data=result, message="Login exitoso")


@bp.get("/sesion")
@jwt_required()
def sesion():
    usuario = usuario_actual()
    return success_response(data=auth_service.estado_sesion(usuario), message="Sesión activa")


@bp.post("/logout")
@jwt_required()
def logout():
    auth_service.revocar_token(get_jwt()["jti"], id_usuario_actual())
    return success_response(message="Sesión cerrada")


@bp.post("/recuperar")
def recuperar():
    data = RecuperarSchema().load(request.get_json(silent=True) or {})
    auth_service.solicitar_restablecimiento(data["identifier"])
    # Misma respuesta exista o no la cuenta
    return success_response(message="Si la cuenta existe, recibirás un correo con instrucciones.")


@bp.post("/restablecer")
def restablecer():
    data = RestablecerSchema().load(request.get_json(silent=True) or {})
    auth_service.restablecer_contrasena(data["token"], data["password"])
    return success_response(message="Contraseña actualizada. Ya puedes iniciar sesión.")
