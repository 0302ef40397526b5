from typing import Optional

from flask import current_app

from comunidad.extensions import db, bcrypt
from comunidad.models.usuario import ROLES, Usuario, normalizar_identificador
from comunidad.services import config_service, notificacion_service
from comunidad.utils.email_mock import send_email
from comunidad.utils.errors import DataValidationError, NotFoundError
from comunidad.utils.persistencia import confirmar_cambios, volcar_cambios


def obtener_usuario_por_id(user_id: int) -> Optional[Usuario]:
    return db.session.get(Usuario, user_id)


def obtener_usuario_o_404(user_id: int) -> Usuario:
    usuario = obtener_usuario_por_id(user_id)
    if not usuario:
        raise NotFoundError("Usuario no encontrado", code="USER_NOT_FOUND")
    return usuario


def _texto(valor) -> str:
    return str(valor or "").strip()


def _hash(password: str) -> str:
    return bcrypt.generate_password_hash(password).decode("utf-8")


def _ocupado(columna, valor: str, excluir_id: int | None) -> bool:
    q = Usuario.query.filter(columna == valor)
    if excluir_id is not None:
        q = q.filter(Usuario.id != excluir_id)
    return q.first() is not None


def _validar_unicidad(username: str | None, email: str | None, excluir_id: int | None = None) -> None:
    # El login acepta usuario o correo: un nombre no puede coincidir con el correo de otra cuenta
    clave_usuario = normalizar_identificador(username)
    if clave_usuario and (
        _ocupado(Usuario.username_normalizado, clave_usuario, excluir_id)
        or _ocupado(Usuario.email_normalizado, clave_usuario, excluir_id)
    ):
        raise DataValidationError(
            "El nombre de usuario ya está en uso", code="DUPLICATE_USERNAME", status_code=409
        )
    clave_email = normalizar_identificador(email)
    if clave_email and (
        _ocupado(Usuario.email_normalizado, clave_email, excluir_id)
        or _ocupado(Usuario.username_normalizado, clave_email, excluir_id)
    ):
        raise DataValidationError(
            "El correo ya está registrado", code="DUPLICATE_EMAIL", status_code=409
        )


def extraer_campos_personalizados(enviados: dict | None, cfg: dict | None = None) -> dict:
    """Toma los campos personalizados activos y los guarda por etiqueta.

    Acepta el valor enviado bajo la clave o bajo la etiqueta del campo; lo que
    no corresponde a un campo activo se descarta.
    """
    enviados = enviados or {}
    resultado = {}
    for campo in config_service.campos_registro_activos(cfg):
        if campo.get("isSystem"):
            continue
        valor = enviados.get(campo.get("key"))
        if valor is None:
            valor = enviados.get(campo.get("label"))
        if valor is None:
            continue
        resultado[campo["label"]] = str(valor).strip()
    return resultado


def _nuevo_usuario(data: dict, status: str, role: str) -> Usuario:
    username = _texto(data.get("username"))
    password = data.get("password") or ""
    if not username or not password.strip():
        raise DataValidationError(
            "Usuario y contraseña son obligatorios", code="MISSING_REQUIRED_FIELD"
        )

    email = _texto(data.get("email")).lower() or None
    _validar_unicidad(username, email)

    return Usuario(
        username=username,
        email=email,
        password_hash=_hash(password),
        role=role,
        status=status,
        full_name=_texto(data.get("full_name")) or None,
        house_number=_texto(data.get("house_number")) or None,
        receive_emails=bool(data.get("receive_emails", True)),
        custom_fields=extraer_campos_personalizados(data.get("custom_fields")),
    )


def registrar_usuario(data: dict) -> Usuario:
    """Alta desde el formulario público: queda pendiente de aprobación."""
    usuario = _nuevo_usuario(data, status="pending", role="user")
    db.session.add(usuario)
    volcar_cambios("registrar usuario")
    admins = notificacion_service.preparar_avisos_registro(usuario)
    confirmar_cambios("registrar usuario")

    current_app.logger.info("[usuarios] registro pendiente id=%s username=%s", usuario.id, usuario.username)
    notificacion_service.enviar_correos_registro(usuario, admins)
    return usuario


def crear_usuario_admin(data: dict) -> Usuario:
    """Alta desde el panel de administración: la cuenta nace activa."""
    role = data.get("role") or "user"
    if role not in ROLES:
        raise DataValidationError(f"Rol inválido. Usa: {'|'.join(ROLES)}")
    usuario = _nuevo_usuario(data, status="active", role=role)
    db.session.add(usuario)
    confirmar_cambios("crear usuario")
    current_app.logger.info("[usuarios] creado por admin id=%s username=%s role=%s", usuario.id, usuario.username, role)
    return usuario


def listar_pendientes() -> list[Usuario]:
    return Usuario.query.filter_by(status="pending").order_by(Usuario.created_at.asc(), Usuario.id.asc()).all()


def contar_pendientes() -> int:
    return Usuario.query.filter_by(status="pending").count()


def listar_activos() -> list[Usuario]:
    return Usuario.query.filter_by(status="active").order_by(Usuario.username_normalizado).all()


def aprobar_usuario(user_id: int, aceptar: bool) -> bool:
    """Acepta (pasa a activo) o rechaza (borra) una solicitud pendiente.

    Devuelve False si el usuario no existe o ya no está pendiente.
    """
    usuario = obtener_usuario_por_id(user_id)
    if usuario is None or usuario.status != "pending":
        return False

    username, email, recibe = usuario.username, usuario.email, usuario.receive_emails
    if aceptar:
        usuario.status = "active"
    else:
        db.session.delete(usuario)
    confirmar_cambios("aprobar usuario" if aceptar else "rechazar usuario")

    current_app.logger.info("[usuarios] solicitud %s id=%s username=%s", "aprobada" if aceptar else "rechazada", user_id, username)
    if aceptar and email and recibe:
        send_email(
            to=email,
            subject="Tu cuenta ha sido aprobada",
            body=f"Hola {username}.\n\nYa puedes acceder al portal de incidencias de la comunidad.",
        )
    return True


CAMPOS_PREFERENCIAS = ("receive_emails", "full_name", "house_number", "email", "custom_fields")
CAMPOS_ADMIN = CAMPOS_PREFERENCIAS + ("username", "role", "password")


def _aplicar_cambios(usuario: Usuario, parcial: dict, permitidos: tuple) -> None:
    cambios = {k: v for k, v in parcial.items() if k in permitidos}

    if "username" in cambios:
        username = _texto(cambios["username"])
        if not username:
            raise DataValidationError("El nombre de usuario es obligatorio", code="MISSING_REQUIRED_FIELD")
        _validar_unicidad(username, None, excluir_id=usuario.id)
        usuario.username = username

    if "email" in cambios:
        email = _texto(cambios["email"]).lower() or None
        _validar_unicidad(None, email, excluir_id=usuario.id)
        usuario.email = email

    if "password" in cambios and _texto(cambios["password"]):
        usuario.password_hash = _hash(cambios["password"])

    if "role" in cambios:
        if cambios["role"] not in ROLES:
            raise DataValidationError(f"Rol inválido. Usa: {'|'.join(ROLES)}")
        usuario.role = cambios["role"]

    if "receive_emails" in cambios:
        usuario.receive_emails = bool(cambios["receive_emails"])
    if "full_name" in cambios:
        usuario.full_name = _texto(cambios["full_name"]) or None
    if "house_number" in cambios:
        usuario.house_number = _texto(cambios["house_number"]) or None

    if "custom_fields" in cambios:
        nuevos = extraer_campos_personalizados(cambios["custom_fields"])
        # Reasignar para que SQLAlchemy detecte el cambio en la columna JSON
        usuario.custom_fields = {**(usuario.custom_fields or {}), **nuevos}


def actualizar_preferencias(user_id: int, parcial: dict) -> Usuario:
    usuario = obtener_usuario_o_404(user_id)
    _aplicar_cambios(usuario, parcial, CAMPOS_PREFERENCIAS)
    confirmar_cambios("actualizar preferencias")
    current_app.logger.info("[usuarios] preferencias actualizadas id=%s", user_id)
    return usuario


def actualizar_usuario_admin(user_id: int, parcial: dict) -> Usuario:
    usuario = obtener_usuario_o_404(user_id)
    _aplicar_cambios(usuario, parcial, CAMPOS_ADMIN)
    confirmar_cambios("actualizar usuario")
    current_app.logger.info("[usuarios] usuario actualizado por admin id=%s", user_id)
    return usuario


def usuario_to_dict(usuario: Usuario) -> dict:
    return {
        "id": usuario.id,
        "username": usuario.username,
        "email": usuario.email,
        "role": usuario.role,
        "status": usuario.status,
        "full_name": usuario.full_name,
        "house_number": usuario.house_number,
        "receive_emails": bool(usuario.receive_emails),
        "custom_fields": dict(usuario.custom_fields or {}),
        "created_at": usuario.created_at.isoformat() if usuario.created_at else None,
    }
