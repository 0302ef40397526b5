from __future__ import annotations

from datetime import datetime

from flask import current_app

from comunidad.extensions import db
from comunidad.models.incidencia import ESTADOS_INCIDENCIA, PRIORIDADES, Incidencia
from comunidad.models.nota import Nota
from comunidad.models.usuario import Usuario
from comunidad.schemas.incidencia_schemas import AdjuntoSchema, NotaSchema
from comunidad.services import adjunto_service, config_service, orden_service
from comunidad.utils.errors import ConflictError, DataValidationError, NotFoundError
from comunidad.utils.persistencia import confirmar_cambios

adjuntos_schema = AdjuntoSchema(many=True)
notas_schema = NotaSchema(many=True)

NOMBRE_ANONIMO = "Anónimo"


def listar() -> list[Incidencia]:
	"""Orden base: más recientes primero."""
	return Incidencia.query.order_by(Incidencia.created_at.desc(), Incidencia.id.desc()).all()


def obtener(id_incidencia: int) -> Incidencia:
	incidencia = db.session.get(Incidencia, id_incidencia)
	if incidencia is None:
		raise NotFoundError("Incidencia no encontrada", code="INCIDENT_NOT_FOUND")
	return incidencia


def _categoria_valida(categoria: str, cfg: dict | None = None) -> str:
	categoria = (categoria or "").strip()
	if not categoria:
		raise DataValidationError("La categoría es obligatoria", code="MISSING_REQUIRED_FIELD")
	cfg = cfg or config_service.obtener_config()
	if categoria not in cfg["categories"]:
		raise DataValidationError(f"La categoría '{categoria}' no existe.")
	return categoria


def crear(datos: dict, creador: Usuario | None) -> Incidencia:
	title = (datos.get("title") or "").strip()
	if not title:
		raise DataValidationError("El título es obligatorio", code="MISSING_REQUIRED_FIELD")

	priority = datos.get("priority") or "media"
	if priority not in PRIORIDADES:
		raise DataValidationError(f"Prioridad inválida. Usa: {'|'.join(PRIORIDADES)}")

	ahora = datetime.utcnow()
	incidencia = Incidencia(
		title=title,
		description=(datos.get("description") or "").strip(),
		category=_categoria_valida(datos.get("category")),
		status="pendiente",
		priority=priority,
		location=(datos.get("location") or "").strip(),
		created_at=ahora,
		updated_at=ahora,
		user_id=creador.id if creador else None,
		user_name=creador.nombre_visible if creador else NOMBRE_ANONIMO,
		user_house=(creador.house_number or "") if creador else "",
	)
	incidencia.attachments = adjunto_service.construir_adjuntos(datos.get("attachments") or [])

	db.session.add(incidencia)
	confirmar_cambios("crear incidencia")
	current_app.logger.info(
		"[incidencias] creada id=%s categoria=%s prioridad=%s usuario=%s",
		incidencia.id,
		incidencia.category,
		incidencia.priority,
		incidencia.user_id,
	)
	return incidencia


def actualizar(id_incidencia: int, cambios: dict) -> Incidencia:
	incidencia = obtener(id_incidencia)

	version = cambios.get("version")
	if version is not None and version != incidencia.version:
		raise ConflictError()

	if "title" in cambios:
		title = (cambios["title"] or "").strip()
		if not title:
			raise DataValidationError("El título es obligatorio", code="MISSING_REQUIRED_FIELD")
		incidencia.title = title
	if "description" in cambios:
		incidencia.description = (cambios["description"] or "").strip()
	if "category" in cambios and cambios["category"] != incidencia.category:
		incidencia.category = _categoria_valida(cambios["category"])
	if "priority" in cambios:
		incidencia.priority = cambios["priority"]
	if "location" in cambios:
		incidencia.location = (cambios["location"] or "").strip()

	eliminados = []
	if "attachments" in cambios:
		eliminados = [a.archivo for a in incidencia.attachments]
		# Las filas viejas dejan de contar para la cuota antes de comprobarla
		incidencia.attachments = []
		db.session.flush()
		incidencia.attachments = adjunto_service.construir_adjuntos(cambios["attachments"])

	incidencia.tocar()
	confirmar_cambios("editar incidencia")
	for archivo in eliminados:
		adjunto_service.borrar_archivo(archivo)

	current_app.logger.info("[incidencias] editada id=%s", id_incidencia)
	return incidencia


def cambiar_estado(id_incidencia: int, nuevo_estado: str) -> bool:
	"""Acepta cualquier estado del dominio; False si la incidencia no existe."""
	if nuevo_estado not in ESTADOS_INCIDENCIA:
		raise DataValidationError(f"Estado inválido. Usa: {'|'.join(ESTADOS_INCIDENCIA)}")

	incidencia = db.session.get(Incidencia, id_incidencia)
	if incidencia is None:
		return False

	anterior = incidencia.status
	incidencia.status = nuevo_estado
	incidencia.tocar()
	confirmar_cambios("cambiar estado")
	current_app.logger.info("[incidencias] estado id=%s %s -> %s", id_incidencia, anterior, nuevo_estado)
	return True


def agregar_nota(id_incidencia: int, contenido: str, autor: str) -> Nota:
	texto = (contenido or "").strip()
	if not texto:
		raise DataValidationError("La nota no puede estar vacía.", code="EMPTY_NOTE")

	incidencia = obtener(id_incidencia)
	ahora = datetime.utcnow()
	nota = Nota(content=texto, author_name=autor or NOMBRE_ANONIMO, created_at=ahora)
	incidencia.notes.append(nota)
	incidencia.tocar(ahora)
	confirmar_cambios("añadir nota")
	current_app.logger.info("[incidencias] nota añadida id=%s autor=%s", id_incidencia, nota.author_name)
	return nota


def eliminar(id_incidencia: int) -> bool:
	"""Borrado definitivo; borrar una incidencia inexistente también es éxito."""
	incidencia = db.session.get(Incidencia, id_incidencia)
	if incidencia is None:
		return True

	archivos = [a.archivo for a in incidencia.attachments]
	db.session.delete(incidencia)
	confirmar_cambios("eliminar incidencia")
	for archivo in archivos:
		adjunto_service.borrar_archivo(archivo)
	current_app.logger.info("[incidencias] eliminada id=%s", id_incidencia)
	return True


def eliminar_lote(ids: list[int]) -> int:
	incidencias = Incidencia.query.filter(Incidencia.id.in_(ids or [])).all()
	archivos = [a.archivo for inc in incidencias for a in inc.attachments]
	for incidencia in incidencias:
		db.session.delete(incidencia)
	confirmar_cambios("eliminar incidencias")
	for archivo in archivos:
		adjunto_service.borrar_archivo(archivo)
	current_app.logger.info("[incidencias] borrado en lote: %s eliminadas", len(incidencias))
	return len(incidencias)


def _ocultar_vecino(incidencia: Incidencia, visor: Usuario | None, vista: dict, clave: str) -> bool:
	if visor is not None and (visor.es_staff or visor.id == incidencia.user_id):
		return False
	if vista.get("userVisibilityMode") == "staff_only":
		return True
	return not vista.get("showUser", True) or not vista.get(clave, True)


def incidencia_to_dict(incidencia: Incidencia, visor: Usuario | None = None, cfg: dict | None = None) -> dict:
	vista = (cfg or {}).get("viewConfig") or {}
	ocultar_nombre = _ocultar_vecino(incidencia, visor, vista, "showUserName") if cfg else False
	ocultar_casa = _ocultar_vecino(incidencia, visor, vista, "showUserHouse") if cfg else False

	return {
		"id": incidencia.id,
		"title": incidencia.title,
		"description": incidencia.description,
		"category": incidencia.category,
		"status": incidencia.status,
		"priority": incidencia.priority,
		"location": incidencia.location,
		"created_at": incidencia.created_at.isoformat() if incidencia.created_at else None,
		"updated_at": incidencia.updated_at.isoformat() if incidencia.updated_at else None,
		"user_id": incidencia.user_id,
		"user_name": None if ocultar_nombre else incidencia.user_name,
		"user_house": None if ocultar_casa else incidencia.user_house,
		"attachments": adjuntos_schema.dump(incidencia.attachments),
		"notes": notas_schema.dump(incidencia.notes),
		"version": incidencia.version,
	}


def listar_filtradas(
	visor: Usuario | None,
	estado: str = "all",
	categoria: str = "all",
	orden: str | None = None,
) -> dict:
	"""Listado para el panel: filtro por estado/categoría y regla de orden activa."""
	if estado not in orden_service.FILTROS_ESTADO:
		raise DataValidationError(f"Filtro de estado inválido. Usa: {'|'.join(orden_service.FILTROS_ESTADO)}")

	cfg = config_service.obtener_config()
	opcion = orden_service.resolver_opcion(cfg.get("sortOptions") or [], orden)

	incidencias = listar()
	por_id = {i.id: i for i in incidencias}
	# Se ordena con los datos completos: ocultar al vecino no altera el orden
	completas = [incidencia_to_dict(i) for i in incidencias]
	ordenadas = orden_service.aplicar(completas, estado, categoria or "all", opcion)

	return {
		"items": [incidencia_to_dict(por_id[d["id"]], visor, cfg) for d in ordenadas],
		"total": len(ordenadas),
		"orden": opcion.get("id") if opcion else None,
	}
