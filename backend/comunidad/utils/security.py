from flask import jsonify
from flask_jwt_extended import get_jwt_identity

from comunidad.extensions import db
from comunidad.models.usuario import ROLES_STAFF, Usuario
from comunidad.services.auth_service import token_revocado
from comunidad.services.config_service import mensaje_cuenta_pendiente
from comunidad.utils.errors import AccountStateError, CredentialError, ForbiddenError


def id_usuario_actual() -> int:
	user_id = get_jwt_identity()
	try:
		return int(user_id)
	except (TypeError, ValueError):
		raise CredentialError("Token inválido", code="INVALID_TOKEN")


def usuario_actual() -> Usuario:
	"""Relee al usuario del token: rol y estado salen siempre de la BD."""
	usuario = db.session.get(Usuario, id_usuario_actual())
	if not usuario:
		raise CredentialError("Sesión inválida. Vuelve a iniciar sesión.", code="USER_NOT_FOUND")
	if usuario.status == "rejected":
		raise AccountStateError()
	return usuario


def require_cuenta_activa() -> Usuario:
	"""Acceso al panel: los pendientes se autentican pero no pasan de aquí."""
	usuario = usuario_actual()
	if usuario.status != "active":
		raise AccountStateError(mensaje_cuenta_pendiente(), code="ACCOUNT_PENDING")
	return usuario


def require_roles(*roles: str) -> Usuario:
	usuario = require_cuenta_activa()
	if usuario.role not in roles:
		raise ForbiddenError()
	return usuario


def require_admin() -> Usuario:
	return require_roles("admin")


def require_staff() -> Usuario:
	return require_roles(*ROLES_STAFF)


def _error_jwt(message: str, code: str, status_code: int = 401):
	return jsonify({"success": False, "message": message, "payload": {"code": code}}), status_code


def registrar_callbacks_jwt(jwt) -> None:
	@jwt.token_in_blocklist_loader
	def _token_en_blocklist(jwt_header, jwt_payload) -> bool:
		return token_revocado(jwt_payload["jti"])

	@jwt.unauthorized_loader
	def _sin_token(motivo):
		return _error_jwt("Inicia sesión para continuar.", "MISSING_TOKEN")

	@jwt.invalid_token_loader
	def _token_invalido(motivo):
		return _error_jwt("Token inválido", "INVALID_TOKEN")

	@jwt.expired_token_loader
	def _token_expirado(jwt_header, jwt_payload):
		return _error_jwt("Tu sesión expiró. Vuelve a iniciar sesión.", "TOKEN_EXPIRED")

	@jwt.revoked_token_loader
	def _token_revocado(jwt_header, jwt_payload):
		return _error_jwt("La sesión fue cerrada. Vuelve a iniciar sesión.", "TOKEN_REVOKED")
