"""
Filtro y ordenación del listado de incidencias.

Funciones puras sobre diccionarios de incidencia (la forma que devuelve
`incidencia_service.incidencia_to_dict`), sin acceso a base de datos.
"""
from __future__ import annotations

import unicodedata
from datetime import datetime

from comunidad.models.incidencia import ESTADOS_ABIERTOS, ESTADOS_CERRADOS, RANGO_PRIORIDAD

FILTROS_ESTADO = ("all", "active", "resolved")
CAMPOS_FECHA = ("created_at", "updated_at")


def filtrar(incidencias: list[dict], filtro_estado: str = "all", filtro_categoria: str = "all") -> list[dict]:
	resultado = []
	for inc in incidencias:
		estado = inc.get("status")
		if filtro_estado == "active" and estado not in ESTADOS_ABIERTOS:
			continue
		if filtro_estado == "resolved" and estado not in ESTADOS_CERRADOS:
			continue
		if filtro_categoria and filtro_categoria != "all" and inc.get("category") != filtro_categoria:
			continue
		resultado.append(inc)
	return resultado


def _fecha(valor) -> datetime | None:
	if isinstance(valor, datetime):
		return valor
	if not valor:
		return None
	try:
		return datetime.fromisoformat(str(valor).replace("Z", "+00:00")).replace(tzinfo=None)
	except ValueError:
		return None


def _texto(valor) -> tuple[str, str]:
	texto = str(valor)
	# Sin acentos ni mayúsculas primero; el texto original desempata
	plano = "".join(
		c for c in unicodedata.normalize("NFKD", texto) if not unicodedata.combining(c)
	)
	return plano.casefold(), texto


def _clave(inc: dict, campo: str):
	"""Devuelve la clave de orden o None cuando la incidencia no tiene valor."""
	valor = inc.get(campo)
	if campo == "priority":
		return RANGO_PRIORIDAD.get(valor)
	if campo in CAMPOS_FECHA:
		return _fecha(valor)
	if valor is None or valor == "":
		return None
	return _texto(valor)


def ordenar(incidencias: list[dict], opcion: dict | None) -> list[dict]:
	if not opcion or not opcion.get("field"):
		return list(incidencias)

	campo = opcion["field"]
	descendente = opcion.get("direction") == "desc"

	con_valor, sin_valor = [], []
	for inc in incidencias:
		clave = _clave(inc, campo)
		if clave is None:
			sin_valor.append(inc)
		else:
			con_valor.append((clave, inc))

	# sorted() es estable también con reverse=True
	con_valor = sorted(con_valor, key=lambda par: par[0], reverse=descendente)
	return [inc for _, inc in con_valor] + sin_valor


def aplicar(
	incidencias: list[dict],
	filtro_estado: str = "all",
	filtro_categoria: str = "all",
	opcion_orden: dict | None = None,
) -> list[dict]:
	return ordenar(filtrar(incidencias, filtro_estado, filtro_categoria), opcion_orden)


def resolver_opcion(opciones: list[dict], opcion_id: str | None, *, por_defecto: bool = True) -> dict | None:
	"""Elige la regla activa pedida, o la primera activa si no se pidió ninguna."""
	activas = [o for o in opciones if o.get("active")]
	if opcion_id:
		return next((o for o in activas if o.get("id") == opcion_id), None)
	if por_defecto and activas:
		return activas[0]
	return None
