import json
import os

from flask import current_app

from comunidad.extensions import db
from comunidad.models.incidencia import Incidencia
from comunidad.models.notificacion import Notificacion
from comunidad.models.usuario import Usuario
from comunidad.utils.email_mock import send_email
from comunidad.utils.errors import DataValidationError, NotFoundError
from comunidad.utils.persistencia import confirmar_cambios


def _debug() -> bool:
	return bool(current_app.config.get("NOTIFICACIONES_DEBUG")) or os.getenv("NOTIFICACIONES_DEBUG", "0") == "1"


def _preparar(id_usuario: int, tipo: str, mensaje: str, meta: dict | None = None) -> Notificacion | None:
	t = (tipo or "").strip()
	m = (mensaje or "").strip()
	if not t or not m:
		if _debug():
			current_app.logger.info("[notificaciones] skip create: tipo/mensaje vacío")
		return None
	if len(m) > 300:
		m = m[:300]

	meta_json = None
	if meta:
		meta = dict(meta)
		meta.setdefault("tipo_evento", t)
		id_incidencia = meta.get("id_incidencia")
		if id_incidencia is not None:
			meta.setdefault("link", f"/incidencias/{id_incidencia}")
		meta_json = json.dumps(meta, ensure_ascii=False)

	n = Notificacion(id_usuario=id_usuario, tipo=t, mensaje=m, leida=False, meta_json=meta_json)
	db.session.add(n)
	return n


def preparar_avisos_registro(nuevo: Usuario) -> list[Usuario]:
	"""Añade a la sesión los avisos de un registro pendiente, sin hacer commit.

	El alta del vecino y sus avisos se confirman juntos en el mismo commit.
	Devuelve los administradores avisados para enviarles después el correo.
	"""
	admins = Usuario.query.filter_by(role="admin", status="active").all()
	correo = nuevo.email or "sin correo"
	mensaje = f"Nuevo registro pendiente: {nuevo.username} ({correo})"

	for admin in admins:
		_preparar(
			admin.id,
			"registro_pendiente",
			mensaje,
			{"id_usuario": nuevo.id, "username": nuevo.username, "email": nuevo.email},
		)
	return admins


def enviar_correos_registro(nuevo: Usuario, admins: list[Usuario]) -> int:
	"""Correo a los administradores suscritos; un fallo de envío no deshace el registro."""
	correo = nuevo.email or "sin correo"
	enviados = 0
	for admin in admins:
		if not (admin.email and admin.receive_emails):
			continue
		try:
			send_email(
				to=admin.email,
				subject="Nueva solicitud de registro",
				body=(
					f"Se ha registrado un nuevo vecino.\n\n"
					f"Usuario: {nuevo.username}\nCorreo: {correo}\n\n"
					f"Revisa las solicitudes pendientes en el panel de administración."
				),
			)
		except OSError:
			current_app.logger.exception("[notificaciones] no se pudo enviar el correo de registro a %s", admin.email)
			continue
		enviados += 1

	current_app.logger.info(
		"[notificaciones] registro %s notificado a %s admins (%s correos)", nuevo.username, len(admins), enviados
	)
	return enviados


def enviar_aviso_lote(ids_incidencias: list[int], mensaje: str) -> dict:
	"""Envía un aviso a los creadores suscritos de las incidencias indicadas."""
	texto = (mensaje or "").strip()
	if not texto:
		raise DataValidationError("El mensaje no puede estar vacío.", code="MISSING_REQUIRED_FIELD")

	incidencias = Incidencia.query.filter(Incidencia.id.in_(ids_incidencias or [])).all()
	ids_creadores = {i.user_id for i in incidencias if i.user_id is not None}
	creadores = Usuario.query.filter(Usuario.id.in_(ids_creadores)).all() if ids_creadores else []
	por_id = {u.id: u for u in creadores}

	enviados = 0
	omitidos = 0
	destinatarios = set()
	for inc in incidencias:
		usuario = por_id.get(inc.user_id)
		if usuario is None or not usuario.receive_emails or not usuario.email:
			omitidos += 1
			continue
		_preparar(
			usuario.id,
			"aviso_incidencia",
			f"{inc.title}: {texto}",
			{"id_incidencia": inc.id},
		)
		destinatarios.add(usuario.email)
		send_email(
			to=usuario.email,
			subject=f"Novedades sobre tu incidencia: {inc.title}",
			body=f"Hola {usuario.nombre_visible}.\n\n{texto}\n\nIncidencia: {inc.title} ({inc.status})",
		)
		enviados += 1
	confirmar_cambios("enviar aviso en lote")

	current_app.logger.info(
		"[notificaciones] aviso en lote incidencias=%s enviados=%s omitidos=%s",
		len(incidencias),
		enviados,
		omitidos,
	)
	return {
		"incidencias": len(incidencias),
		"enviados": enviados,
		"omitidos": omitidos,
		"destinatarios": len(destinatarios),
	}


def listar_notificaciones(id_usuario: int, limit: int = 50) -> dict:
	items = (
		Notificacion.query.filter_by(id_usuario=id_usuario)
		.order_by(Notificacion.created_at.desc(), Notificacion.id.desc())
		.limit(max(1, min(int(limit), 100)))
		.all()
	)
	unread = Notificacion.query.filter_by(id_usuario=id_usuario, leida=False).count()

	if _debug():
		current_app.logger.info("[notificaciones] list usuario=%s items=%s unread=%s", id_usuario, len(items), unread)

	return {
		"items": [
			{
				"id": n.id,
				"tipo": n.tipo,
				"mensaje": n.mensaje,
				"leida": bool(n.leida),
				"created_at": n.created_at.isoformat() if n.created_at else None,
				"meta_json": n.meta_json,
			}
			for n in items
		],
		"unread_count": int(unread),
	}


def marcar_leida(id_notificacion: int, id_usuario: int) -> None:
	n = db.session.get(Notificacion, id_notificacion)
	if not n or n.id_usuario != id_usuario:
		raise NotFoundError("Notificación no encontrada.")

	if not n.leida:
		n.leida = True
		confirmar_cambios("marcar notificación")
		if _debug():
			current_app.logger.info("[notificaciones] marked read id=%s usuario=%s", id_notificacion, id_usuario)
