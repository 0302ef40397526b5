from comunidad.services import orden_service


def _inc(id_, **campos):
	base = {
		"id": id_,
		"title": f"Incidencia {id_}",
		"category": "General",
		"status": "pendiente",
		"priority": "media",
		"created_at": "2024-01-01T10:00:00",
		"updated_at": "2024-01-01T10:00:00",
		"user_name": "Vecino",
		"user_house": "1A",
		"location": "Portal",
	}
	base.update(campos)
	return base


PRIORIDAD_DESC = {"id": "p", "label": "Prioridad", "field": "priority", "direction": "desc", "active": True}


def _ids(incidencias):
	return [i["id"] for i in incidencias]


def test_prioridad_descendente_es_estable():
	incidencias = [
		_inc(1, priority="baja"),
		_inc(2, priority="urgente"),
		_inc(3, priority="media"),
		_inc(4, priority="urgente"),
	]
	assert _ids(orden_service.ordenar(incidencias, PRIORIDAD_DESC)) == [2, 4, 3, 1]

	ascendente = dict(PRIORIDAD_DESC, direction="asc")
	assert _ids(orden_service.ordenar(incidencias, ascendente)) == [1, 3, 2, 4]


def test_ordenar_no_modifica_la_entrada():
	incidencias = [_inc(1, priority="baja"), _inc(2, priority="alta")]
	orden_service.ordenar(incidencias, PRIORIDAD_DESC)
	assert _ids(incidencias) == [1, 2]


def test_filtro_activas_y_resueltas_cubren_todo():
	incidencias = [
		_inc(1, status="pendiente"),
		_inc(2, status="en_proceso"),
		_inc(3, status="resuelto"),
		_inc(4, status="rechazado"),
	]
	activas = orden_service.filtrar(incidencias, "active")
	resueltas = orden_service.filtrar(incidencias, "resolved")

	assert _ids(activas) == [1, 2]
	assert _ids(resueltas) == [3, 4]
	assert sorted(_ids(activas) + _ids(resueltas)) == _ids(orden_service.filtrar(incidencias, "all"))


def test_filtro_por_categoria():
	incidencias = [_inc(1, category="Limpieza"), _inc(2, category="Jardinería"), _inc(3, category="Limpieza")]
	assert _ids(orden_service.filtrar(incidencias, "all", "Limpieza")) == [1, 3]
	assert _ids(orden_service.filtrar(incidencias, "all", "all")) == [1, 2, 3]
	assert orden_service.filtrar(incidencias, "all", "Ascensores") == []


def test_fechas_se_comparan_como_fechas():
	incidencias = [
		_inc(1, created_at="2024-03-01T09:00:00"),
		_inc(2, created_at="2024-12-31T23:59:59"),
		_inc(3, created_at="2023-07-15T12:00:00Z"),
	]
	recientes = {"field": "created_at", "direction": "desc"}
	assert _ids(orden_service.ordenar(incidencias, recientes)) == [2, 1, 3]


def test_texto_sin_distinguir_acentos_ni_mayusculas():
	incidencias = [
		_inc(1, title="zócalo roto"),
		_inc(2, title="Árbol caído"),
		_inc(3, title="banco"),
	]
	alfabetico = {"field": "title", "direction": "asc"}
	assert _ids(orden_service.ordenar(incidencias, alfabetico)) == [2, 3, 1]


def test_valores_vacios_al_final():
	incidencias = [
		_inc(1, location=""),
		_inc(2, location="Garaje"),
		_inc(3, location=None),
		_inc(4, location="Azotea"),
	]
	for direccion in ("asc", "desc"):
		ordenadas = orden_service.ordenar(incidencias, {"field": "location", "direction": direccion})
		assert _ids(ordenadas)[-2:] == [1, 3]

	asc = orden_service.ordenar(incidencias, {"field": "location", "direction": "asc"})
	assert _ids(asc)[:2] == [4, 2]


def test_sin_regla_se_mantiene_el_orden():
	incidencias = [_inc(3), _inc(1), _inc(2)]
	assert _ids(orden_service.ordenar(incidencias, None)) == [3, 1, 2]
	assert _ids(orden_service.aplicar(incidencias)) == [3, 1, 2]


def test_aplicar_filtra_y_ordena():
	incidencias = [
		_inc(1, status="resuelto", priority="urgente"),
		_inc(2, status="pendiente", priority="baja"),
		_inc(3, status="en_proceso", priority="alta"),
	]
	assert _ids(orden_service.aplicar(incidencias, "active", "all", PRIORIDAD_DESC)) == [3, 2]


def test_resolver_opcion():
	opciones = [
		{"id": "a", "field": "created_at", "direction": "desc", "active": False},
		{"id": "b", "field": "priority", "direction": "desc", "active": True},
		{"id": "c", "field": "title", "direction": "asc", "active": True},
	]
	assert orden_service.resolver_opcion(opciones, None)["id"] == "b"
	assert orden_service.resolver_opcion(opciones, "c")["id"] == "c"
	# Una regla inactiva o desconocida no se aplica
	assert orden_service.resolver_opcion(opciones, "a") is None
	assert orden_service.resolver_opcion(opciones, "zzz") is None
	assert orden_service.resolver_opcion(opciones, None, por_defecto=False) is None
	assert orden_service.resolver_opcion([], None) is None
