from __future__ import annotations

import uuid

from flask import current_app

from comunidad.services import config_service
from comunidad.services.config_service import (
	CAMPOS_ORDENABLES,
	CLAVES_OBLIGATORIAS,
	DEFAULT_VIEW_CONFIG,
)
from comunidad.utils.errors import DataValidationError, NotFoundError


def _nuevo_id(prefijo: str) -> str:
	return f"{prefijo}_{uuid.uuid4().hex[:10]}"


def _texto_obligatorio(valor, mensaje: str) -> str:
	texto = str(valor or "").strip()
	if not texto:
		raise DataValidationError(mensaje, code="MISSING_REQUIRED_FIELD")
	return texto


def _cargar() -> dict:
	return config_service.obtener_config(para_escritura=True)


def _guardar(cfg: dict, accion: str) -> dict:
	config_service.guardar_config(cfg)
	current_app.logger.info("[config] %s", accion)
	return cfg


# --- CATEGORÍAS ---

def crear_categoria(nombre) -> dict:
	nombre = _texto_obligatorio(nombre, "El nombre de la categoría es obligatorio.")
	cfg = _cargar()
	if nombre in cfg["categories"]:
		raise DataValidationError("Categoría ya existe.", code="DUPLICATE_CATEGORY", status_code=409)
	config_service.agregar_categoria(nombre)
	current_app.logger.info("[config] categoría añadida: %s", nombre)
	return config_service.obtener_config()


def _indice_categoria(cfg: dict, indice: int) -> int:
	if indice < 0 or indice >= len(cfg["categories"]):
		raise NotFoundError("Categoría no encontrada.")
	return indice


def renombrar_categoria(indice: int, nombre) -> dict:
	nombre = _texto_obligatorio(nombre, "El nombre de la categoría es obligatorio.")
	cfg = _cargar()
	indice = _indice_categoria(cfg, indice)
	otras = [c for i, c in enumerate(cfg["categories"]) if i != indice]
	if nombre in otras:
		raise DataValidationError("Categoría ya existe.", code="DUPLICATE_CATEGORY", status_code=409)
	anterior = cfg["categories"][indice]
	cfg["categories"][indice] = nombre
	# Las incidencias existentes conservan el nombre anterior
	return _guardar(cfg, f"categoría renombrada: {anterior} -> {nombre}")


def eliminar_categoria(indice: int) -> dict:
	cfg = _cargar()
	indice = _indice_categoria(cfg, indice)
	nombre = cfg["categories"].pop(indice)
	return _guardar(cfg, f"categoría eliminada: {nombre}")


def mover_categoria(indice: int, direccion: str) -> dict:
	cfg = _cargar()
	indice = _indice_categoria(cfg, indice)
	if direccion not in ("up", "down"):
		raise DataValidationError("Dirección inválida. Usa: up|down")
	destino = indice - 1 if direccion == "up" else indice + 1
	if destino < 0 or destino >= len(cfg["categories"]):
		return cfg
	cats = cfg["categories"]
	cats[indice], cats[destino] = cats[destino], cats[indice]
	return _guardar(cfg, f"categoría movida: {cats[destino]} ({direccion})")


# --- OPCIONES DE ORDENACIÓN ---

def _validar_regla(label, field, direction) -> tuple[str, str, str]:
	label = _texto_obligatorio(label, "La etiqueta de la regla de ordenación es obligatoria.")
	if field not in CAMPOS_ORDENABLES:
		raise DataValidationError(f"Campo de ordenación inválido. Usa: {', '.join(CAMPOS_ORDENABLES)}")
	if direction not in ("asc", "desc"):
		raise DataValidationError("Dirección inválida. Usa: asc|desc")
	return label, field, direction


def _buscar_por_id(items: list[dict], item_id: str, mensaje: str) -> dict:
	item = next((i for i in items if i.get("id") == item_id), None)
	if item is None:
		raise NotFoundError(mensaje)
	return item


def crear_opcion_orden(payload: dict) -> dict:
	label, field, direction = _validar_regla(
		payload.get("label"), payload.get("field"), payload.get("direction", "desc")
	)
	cfg = _cargar()
	opcion = {
		"id": _nuevo_id("sort"),
		"label": label,
		"field": field,
		"direction": direction,
		"active": bool(payload.get("active", True)),
	}
	cfg["sortOptions"].append(opcion)
	_guardar(cfg, f"regla de ordenación creada: {opcion['id']}")
	return opcion


def actualizar_opcion_orden(opcion_id: str, payload: dict) -> dict:
	cfg = _cargar()
	opcion = _buscar_por_id(cfg["sortOptions"], opcion_id, "Regla de ordenación no encontrada.")
	label, field, direction = _validar_regla(
		payload.get("label", opcion.get("label")),
		payload.get("field", opcion.get("field")),
		payload.get("direction", opcion.get("direction")),
	)
	opcion.update({"label": label, "field": field, "direction": direction})
	if "active" in payload:
		opcion["active"] = bool(payload["active"])
	_guardar(cfg, f"regla de ordenación actualizada: {opcion_id}")
	return opcion


def alternar_opcion_orden(opcion_id: str) -> dict:
	cfg = _cargar()
	opcion = _buscar_por_id(cfg["sortOptions"], opcion_id, "Regla de ordenación no encontrada.")
	opcion["active"] = not bool(opcion.get("active"))
	_guardar(cfg, f"regla de ordenación {opcion_id} activa={opcion['active']}")
	return opcion


def eliminar_opcion_orden(opcion_id: str) -> dict:
	cfg = _cargar()
	_buscar_por_id(cfg["sortOptions"], opcion_id, "Regla de ordenación no encontrada.")
	cfg["sortOptions"] = [o for o in cfg["sortOptions"] if o.get("id") != opcion_id]
	return _guardar(cfg, f"regla de ordenación eliminada: {opcion_id}")


# --- CAMPOS DEL FORMULARIO DE USUARIO ---

def crear_campo_usuario(payload: dict) -> dict:
	label = _texto_obligatorio(payload.get("label"), "Debes poner un nombre al campo.")
	placeholder = str(payload.get("placeholder") or "").strip() or f"Ingresa {label}"
	cfg = _cargar()
	campo_id = _nuevo_id("uf_cust")
	campo = {
		"id": campo_id,
		"key": f"custom_{campo_id.rsplit('_', 1)[-1]}",
		"label": label,
		"placeholder": placeholder,
		"active": True,
		"isSystem": False,
	}
	cfg["userFields"].append(campo)
	_guardar(cfg, f"campo de usuario creado: {campo_id}")
	return campo


def actualizar_campo_usuario(campo_id: str, payload: dict) -> dict:
	cfg = _cargar()
	campo = _buscar_por_id(cfg["userFields"], campo_id, "Campo no encontrado.")
	if "label" in payload:
		# Los valores ya guardados siguen bajo la etiqueta anterior
		campo["label"] = _texto_obligatorio(payload.get("label"), "Debes poner un nombre al campo.")
	if "placeholder" in payload:
		campo["placeholder"] = str(payload.get("placeholder") or "")
	_guardar(cfg, f"campo de usuario actualizado: {campo_id}")
	return campo


def alternar_campo_usuario(campo_id: str) -> dict:
	cfg = _cargar()
	campo = _buscar_por_id(cfg["userFields"], campo_id, "Campo no encontrado.")
	if campo.get("key") in CLAVES_OBLIGATORIAS:
		raise DataValidationError("Usuario y contraseña son obligatorios y no se pueden ocultar.")
	campo["active"] = not bool(campo.get("active"))
	_guardar(cfg, f"campo de usuario {campo_id} activo={campo['active']}")
	return campo


def eliminar_campo_usuario(campo_id: str) -> dict:
	cfg = _cargar()
	campo = _buscar_por_id(cfg["userFields"], campo_id, "Campo no encontrado.")
	if campo.get("isSystem"):
		raise DataValidationError("Los campos de sistema no se pueden eliminar.")
	cfg["userFields"] = [f for f in cfg["userFields"] if f.get("id") != campo_id]
	return _guardar(cfg, f"campo de usuario eliminado: {campo_id}")


# --- MENSAJE PENDIENTE Y VISTA ---

def actualizar_mensaje_pendiente(mensaje) -> dict:
	mensaje = _texto_obligatorio(mensaje, "El mensaje para cuentas pendientes es obligatorio.")
	cfg = _cargar()
	cfg["pendingAccountMessage"] = mensaje
	return _guardar(cfg, "mensaje de cuenta pendiente actualizado")


def actualizar_vista(payload: dict) -> dict:
	cfg = _cargar()
	vista = dict(cfg.get("viewConfig") or DEFAULT_VIEW_CONFIG)
	for clave, valor in payload.items():
		if clave not in DEFAULT_VIEW_CONFIG:
			continue
		if clave == "userVisibilityMode":
			if valor not in ("public", "staff_only"):
				raise DataValidationError("userVisibilityMode inválido. Usa: public|staff_only")
			vista[clave] = valor
		else:
			vista[clave] = bool(valor)
	cfg["viewConfig"] = vista
	return _guardar(cfg, "configuración de vista actualizada")
