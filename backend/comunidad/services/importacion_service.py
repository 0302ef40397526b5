"""
Importación masiva de incidencias desde texto delimitado por comas.

Formato por línea: titulo,descripcion,categoria,prioridad,ubicacion,url_imagen

No hay soporte de comillas ni de escapes: una coma dentro de un campo
siempre separa columnas.
"""
from __future__ import annotations

from flask import current_app

from comunidad.models.incidencia import PRIORIDADES
from comunidad.models.usuario import Usuario
from comunidad.services import config_service, incidencia_service
from comunidad.utils.errors import DataValidationError

SIN_DESCRIPCION = "Sin descripción"
SIN_CATEGORIA = "General"
SIN_UBICACION = "Sin ubicación"

MARCAS_CABECERA = ("título", "title")


def es_cabecera(celdas: list[str]) -> bool:
	return any(
		marca in celda.lower() for celda in celdas[:2] for marca in MARCAS_CABECERA
	)


def parsear_linea(linea: str) -> dict | None:
	"""Devuelve los datos de la incidencia o None si la fila se omite."""
	celdas = [c.strip() for c in linea.split(",")]
	if len(celdas) < 2:
		return None

	title = celdas[0]
	if not title:
		return None

	def celda(i: int) -> str:
		return celdas[i] if len(celdas) > i else ""

	priority = celda(3).lower()
	if priority not in PRIORIDADES:
		priority = "media"

	url_imagen = celda(5)
	return {
		"title": title,
		"description": celda(1) or SIN_DESCRIPCION,
		"category": celda(2) or SIN_CATEGORIA,
		"priority": priority,
		"location": celda(4) or SIN_UBICACION,
		"attachments": (
			[{"type": "image", "url": url_imagen, "name": "Imagen importada"}] if url_imagen else []
		),
	}


def parsear_texto(texto: str) -> tuple[list[dict], int]:
	"""Separa el texto en filas válidas y cuenta las omitidas."""
	lineas = [l for l in (texto or "").splitlines() if l.strip()]
	if lineas and es_cabecera([c.strip() for c in lineas[0].split(",")]):
		lineas = lineas[1:]

	filas, omitidas = [], 0
	for linea in lineas:
		datos = parsear_linea(linea)
		if datos is None:
			omitidas += 1
		else:
			filas.append(datos)
	return filas, omitidas


def importar(texto: str, autor: Usuario | None) -> dict:
	filas, omitidas = parsear_texto(texto)

	creadas = []
	for datos in filas:
		# Las categorías desconocidas se incorporan a la lista
		config_service.agregar_categoria(datos["category"])
		try:
			creadas.append(incidencia_service.crear(datos, autor))
		except DataValidationError as err:
			current_app.logger.warning("[importacion] fila omitida '%s': %s", datos["title"], err.message)
			omitidas += 1

	current_app.logger.info("[importacion] importadas=%s omitidas=%s", len(creadas), omitidas)
	return {"importadas": len(creadas), "omitidas": omitidas, "incidencias": creadas}
