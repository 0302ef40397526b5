from flask import current_app
from flask_jwt_extended import create_access_token
from itsdangerous import URLSafeTimedSerializer, BadSignature, SignatureExpired
from sqlalchemy import or_

from comunidad.extensions import db, bcrypt
from comunidad.models.token_revocado import TokenRevocado
from comunidad.models.usuario import Usuario, normalizar_identificador
from comunidad.services import config_service, usuario_service
from comunidad.utils.email_mock import send_email
from comunidad.utils.errors import AccountStateError, CredentialError, DataValidationError, StorageError
from comunidad.utils.persistencia import confirmar_cambios


def buscar_por_identificador(identificador: str) -> Usuario | None:
    clave = normalizar_identificador(identificador)
    if not clave:
        return None
    return Usuario.query.filter(
        or_(Usuario.username_normalizado == clave, Usuario.email_normalizado == clave)
    ).first()


def emitir_token(usuario: Usuario) -> str:
    return create_access_token(
        identity=str(usuario.id),
        additional_claims={
            "role": usuario.role,
            "status": usuario.status,
            "username": usuario.username,
        },
    )


def estado_sesion(usuario: Usuario) -> dict:
    """Separa autenticación de acceso: un pendiente tiene sesión pero no panel."""
    puede_entrar = usuario.status == "active"
    return {
        "usuario": usuario_service.usuario_to_dict(usuario),
        "puede_acceder": puede_entrar,
        "mensaje_pendiente": None if puede_entrar else config_service.mensaje_cuenta_pendiente(),
    }


def autenticar(identificador: str, password: str) -> dict:
    usuario = buscar_por_identificador(identificador)
    if not usuario:
        raise CredentialError()

    try:
        password_ok = bcrypt.check_password_hash(usuario.password_hash or "", password or "")
    except (ValueError, TypeError):
        # Hash corrupto o en texto plano: no debe reventar en 500
        password_ok = False

    if not password_ok:
        current_app.logger.info("[auth] login fallido identificador=%s", identificador)
        raise CredentialError()

    if usuario.status == "rejected":
        raise AccountStateError()

    current_app.logger.info("[auth] login id=%s status=%s", usuario.id, usuario.status)
    return {"access_token": emitir_token(usuario), **estado_sesion(usuario)}


def revocar_token(jti: str, id_usuario: int | None) -> None:
    if TokenRevocado.query.filter_by(jti=jti).first():
        return
    db.session.add(TokenRevocado(jti=jti, id_usuario=id_usuario))
    confirmar_cambios("cerrar sesión")
    current_app.logger.info("[auth] logout usuario=%s", id_usuario)


def token_revocado(jti: str) -> bool:
    return db.session.query(TokenRevocado.id).filter_by(jti=jti).first() is not None


def _reset_serializer() -> URLSafeTimedSerializer:
    secret = current_app.config.get("JWT_SECRET_KEY") or current_app.secret_key
    if not secret:
        raise StorageError("Configuración inválida: secret no disponible")
    return URLSafeTimedSerializer(secret_key=str(secret))


def generar_token_restablecimiento(usuario: Usuario) -> str:
    # El hash actual forma parte del token: tras cambiar la contraseña deja de valer
    data = {"id_usuario": int(usuario.id), "huella": (usuario.password_hash or "")[-12:]}
    return _reset_serializer().dumps(data, salt="password-reset")


def solicitar_restablecimiento(identificador: str) -> bool:
    """Envía el link de restablecimiento si la cuenta existe y tiene correo."""
    usuario = buscar_por_identificador(identificador)
    if not usuario or not usuario.email or usuario.status == "rejected":
        current_app.logger.info("[auth] restablecimiento sin destinatario identificador=%s", identificador)
        return False

    token = generar_token_restablecimiento(usuario)
    frontend_base = (current_app.config.get("FRONTEND_BASE_URL") or "http://localhost:5173").rstrip("/")
    link = f"{frontend_base}/restablecer?token={token}"
    send_email(
        to=usuario.email,
        subject="Restablece tu contraseña",
        body=(
            f"Hola {usuario.nombre_visible}.\n\n"
            f"Para elegir una contraseña nueva abre este link:\n{link}\n\n"
            f"Si no lo solicitaste, ignora este mensaje."
        ),
    )
    return True


def restablecer_contrasena(token: str, nueva: str) -> Usuario:
    t = (token or "").strip()
    if not t:
        raise DataValidationError("Token requerido", code="MISSING_REQUIRED_FIELD")
    if not (nueva or "").strip():
        raise DataValidationError("La contraseña es obligatoria", code="MISSING_REQUIRED_FIELD")

    max_age = int(current_app.config.get("PASSWORD_RESET_MAX_AGE_SECONDS") or 3600)
    try:
        data = _reset_serializer().loads(t, salt="password-reset", max_age=max_age)
    except SignatureExpired:
        raise DataValidationError("El link expiró. Solicita uno nuevo.", code="TOKEN_EXPIRED")
    except BadSignature:
        raise DataValidationError("Token inválido", code="INVALID_TOKEN")

    usuario = usuario_service.obtener_usuario_por_id(int(data.get("id_usuario") or 0))
    if not usuario or (usuario.password_hash or "")[-12:] != data.get("huella"):
        raise DataValidationError("Token inválido", code="INVALID_TOKEN")

    usuario.password_hash = bcrypt.generate_password_hash(nueva).decode("utf-8")
    confirmar_cambios("restablecer contraseña")
    current_app.logger.info("[auth] contraseña restablecida id=%s", usuario.id)
    return usuario
