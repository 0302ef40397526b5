from __future__ import annotations

from flask import current_app
from sqlalchemy import func

from comunidad.extensions import db
from comunidad.models.incidencia import ESTADOS_ABIERTOS, ESTADOS_CERRADOS, Incidencia
from comunidad.models.notificacion import Notificacion
from comunidad.models.usuario import Usuario
from comunidad.services import usuario_service
from comunidad.services.adjunto_service import bytes_ocupados


def _contar(query) -> int:
	return int(query.scalar() or 0)


def obtener_resumen_admin() -> dict:
	usuarios = _contar(db.session.query(func.count(Usuario.id)).filter(Usuario.status == "active"))
	pendientes = usuario_service.contar_pendientes()

	incidencias = _contar(db.session.query(func.count(Incidencia.id)))
	abiertas = _contar(db.session.query(func.count(Incidencia.id)).filter(Incidencia.status.in_(ESTADOS_ABIERTOS)))
	cerradas = _contar(db.session.query(func.count(Incidencia.id)).filter(Incidencia.status.in_(ESTADOS_CERRADOS)))

	por_estado = dict(
		db.session.query(Incidencia.status, func.count(Incidencia.id)).group_by(Incidencia.status).all()
	)
	por_prioridad = dict(
		db.session.query(Incidencia.priority, func.count(Incidencia.id)).group_by(Incidencia.priority).all()
	)

	notificaciones_no_leidas_total = _contar(
		db.session.query(func.count(Notificacion.id)).filter(Notificacion.leida.is_(False))
	)

	return {
		"usuarios_activos": usuarios,
		"usuarios_pendientes": pendientes,
		"incidencias": incidencias,
		"incidencias_abiertas": abiertas,
		"incidencias_cerradas": cerradas,
		"incidencias_por_estado": {k: int(v) for k, v in por_estado.items()},
		"incidencias_por_prioridad": {k: int(v) for k, v in por_prioridad.items()},
		"notificaciones_no_leidas_total": notificaciones_no_leidas_total,
		"almacenamiento_bytes": bytes_ocupados(),
		"almacenamiento_cuota_bytes": int(current_app.config.get("STORAGE_QUOTA_BYTES") or 0),
	}


def casa_coincide(house_number: str | None, numero: int) -> bool:
	"""Relaciona el texto libre 'Propiedad / Casa' con el número de vivienda.

	"7", "7 B", "7º A" y "Casa 7 bajo" son la casa 7; "17" no lo es.
	"""
	h = (house_number or "").strip()
	n = str(numero)
	if not h:
		return False
	return h == n or h.startswith(n + " ") or h.startswith(n + "º") or f" {n} " in f" {h} "


def obtener_censo() -> dict:
	total = int(current_app.config.get("CENSO_TOTAL_CASAS") or 0)
	vecinos = (
		Usuario.query.filter_by(status="active")
		.order_by(Usuario.house_number.asc(), Usuario.username.asc())
		.all()
	)

	casas = []
	for numero in range(1, total + 1):
		residentes = [
			{"id": u.id, "nombre": u.nombre_visible, "house_number": u.house_number, "email": u.email}
			for u in vecinos
			if casa_coincide(u.house_number, numero)
		]
		casas.append({"numero": numero, "ocupada": bool(residentes), "residentes": residentes})

	return {
		"total_casas": total,
		"casas_ocupadas": sum(1 for c in casas if c["ocupada"]),
		"casas": casas,
	}
