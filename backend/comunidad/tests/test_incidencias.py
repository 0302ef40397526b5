import base64
import io
from datetime import datetime, timedelta
from pathlib import Path

from PIL import Image

from comunidad.models.incidencia import Incidencia
from comunidad.models.notificacion import Notificacion


def _crear(client, headers, **campos):
	payload = {"title": "Farola fundida", "category": "Electricidad", "location": "Calle B"}
	payload.update(campos)
	return client.post("/api/incidencias", json=payload, headers=headers)


def _png(ancho: int, alto: int) -> bytes:
	salida = io.BytesIO()
	Image.new("RGBA", (ancho, alto), (200, 30, 30, 128)).save(salida, format="PNG")
	return salida.getvalue()


def test_crear_incidencia_guarda_copia_del_vecino(client, make_user, auth_header):
	vecino = make_user("juan", full_name="Juan Vecino", house_number="4B")

	resp = _crear(client, auth_header(vecino.id), description="  No enciende  ")
	assert resp.status_code == 201
	data = resp.get_json()["data"]
	assert data["status"] == "pendiente"
	assert data["priority"] == "media"
	assert data["description"] == "No enciende"
	assert data["user_id"] == vecino.id
	assert data["user_name"] == "Juan Vecino"
	assert data["user_house"] == "4B"
	assert data["created_at"] == data["updated_at"]
	assert data["notes"] == []


def test_copia_del_vecino_no_cambia_al_editar_el_perfil(client, make_user, auth_header):
	vecino = make_user("juan", full_name="Juan Vecino", house_number="4B")
	headers = auth_header(vecino.id)
	inc_id = _crear(client, headers).get_json()["data"]["id"]

	client.patch("/api/usuarios/me", json={"full_name": "Juan Cambiado"}, headers=headers)

	data = client.get(f"/api/incidencias/{inc_id}", headers=headers).get_json()["data"]
	assert data["user_name"] == "Juan Vecino"


def test_crear_incidencia_valida_datos(client, make_user, auth_header):
	vecino = make_user("juan")
	headers = auth_header(vecino.id)

	resp = _crear(client, headers, title="   ")
	assert resp.status_code == 400
	assert resp.get_json()["payload"]["code"] == "MISSING_REQUIRED_FIELD"

	resp = _crear(client, headers, category="Piscina")
	assert resp.status_code == 400

	resp = _crear(client, headers, priority="altísima")
	assert resp.status_code == 400


def test_crear_con_adjunto_embebido(client, make_user, auth_header):
	vecino = make_user("juan")
	contenido = base64.b64encode(b"x" * 32).decode("ascii")

	resp = _crear(
		client,
		auth_header(vecino.id),
		attachments=[{"type": "image", "url": f"data:image/png;base64,{contenido}", "name": "foto.png"}],
	)
	assert resp.status_code == 201
	adjuntos = resp.get_json()["data"]["attachments"]
	assert len(adjuntos) == 1
	assert adjuntos[0]["type"] == "image"
	assert adjuntos[0]["name"] == "foto.png"


def test_almacenamiento_lleno(client, make_user, auth_header, app, monkeypatch):
	monkeypatch.setitem(app.config, "STORAGE_QUOTA_BYTES", 16)
	vecino = make_user("juan")
	contenido = base64.b64encode(b"x" * 64).decode("ascii")

	resp = _crear(
		client,
		auth_header(vecino.id),
		attachments=[{"type": "image", "url": f"data:image/png;base64,{contenido}"}],
	)
	assert resp.status_code == 507
	body = resp.get_json()
	assert body["payload"]["code"] == "STORAGE_FULL"
	assert body["message"] == (
		"Almacenamiento lleno. Elimina adjuntos o incidencias antiguas "
		"para liberar espacio e inténtalo de nuevo."
	)

	admin = make_user("admin", role="admin")
	listado = client.get("/api/incidencias", headers=auth_header(admin.id)).get_json()["data"]
	assert listado["total"] == 0


def test_subir_imagen_se_redimensiona(client, make_user, auth_header, app, make_incidencia):
	vecino = make_user("juan")
	inc = make_incidencia("Grieta", creador=vecino)

	resp = client.post(
		f"/api/incidencias/{inc.id}/adjuntos",
		data={"archivos": (io.BytesIO(_png(1600, 400)), "grieta.png")},
		headers=auth_header(vecino.id),
		content_type="multipart/form-data",
	)
	assert resp.status_code == 201
	adjunto = resp.get_json()["data"][0]
	assert adjunto["type"] == "image"
	assert adjunto["name"] == "grieta.png"
	assert "/uploads/incidencias/" in adjunto["url"]
	assert adjunto["url"].endswith(".jpg")

	nombre = adjunto["url"].rsplit("/", 1)[-1]
	ruta = Path(app.config["UPLOADS_INCIDENCIAS_DIR"]) / nombre
	with Image.open(ruta) as imagen:
		assert imagen.format == "JPEG"
		assert imagen.size == (800, 200)

	assert client.get(f"/uploads/incidencias/{nombre}").status_code == 200

	resp = client.delete(
		f"/api/incidencias/{inc.id}/adjuntos/{adjunto['id']}",
		headers=auth_header(vecino.id),
	)
	assert resp.status_code == 200
	assert not ruta.exists()


def test_subir_archivo_que_no_es_imagen(client, make_user, auth_header, make_incidencia):
	vecino = make_user("juan")
	inc = make_incidencia("Grieta", creador=vecino)

	resp = client.post(
		f"/api/incidencias/{inc.id}/adjuntos",
		data={"archivos": (io.BytesIO(b"no soy un png"), "falsa.png")},
		headers=auth_header(vecino.id),
		content_type="multipart/form-data",
	)
	assert resp.status_code == 400
	assert resp.get_json()["message"] == "El archivo no es una imagen válida."

	resp = client.post(
		f"/api/incidencias/{inc.id}/adjuntos",
		data={"archivos": (io.BytesIO(b"%PDF"), "acta.pdf")},
		headers=auth_header(vecino.id),
		content_type="multipart/form-data",
	)
	assert resp.status_code == 400


def test_editar_actualiza_updated_at(client, make_user, auth_header, make_incidencia):
	vecino = make_user("juan")
	inc = make_incidencia("Banco roto", creador=vecino, created_at=datetime.utcnow() - timedelta(days=3))

	resp = client.patch(
		f"/api/incidencias/{inc.id}",
		json={"title": "Banco roto en el parque", "priority": "alta"},
		headers=auth_header(vecino.id),
	)
	assert resp.status_code == 200
	data = resp.get_json()["data"]
	assert data["title"] == "Banco roto en el parque"
	assert data["priority"] == "alta"
	assert data["updated_at"] > data["created_at"]


def test_updated_at_nunca_retrocede(client, make_user, auth_header, make_incidencia):
	staff = make_user("super", role="supervisor")
	futuro = datetime(2999, 1, 1, 12, 0, 0)
	inc = make_incidencia("Reloj adelantado", created_at=futuro)

	resp = client.post(
		f"/api/incidencias/{inc.id}/notas",
		json={"content": "Revisado"},
		headers=auth_header(staff.id),
	)
	assert resp.status_code == 201

	data = client.get(f"/api/incidencias/{inc.id}", headers=auth_header(staff.id)).get_json()["data"]
	assert data["updated_at"] == futuro.isoformat()
	assert [n["content"] for n in data["notes"]] == ["Revisado"]


def test_editar_con_version_antigua(client, make_user, auth_header, make_incidencia):
	vecino = make_user("juan")
	inc = make_incidencia("Puerta", creador=vecino)
	headers = auth_header(vecino.id)

	version = client.get(f"/api/incidencias/{inc.id}", headers=headers).get_json()["data"]["version"]
	assert client.patch(
		f"/api/incidencias/{inc.id}",
		json={"description": "Primera", "version": version},
		headers=headers,
	).status_code == 200

	resp = client.patch(
		f"/api/incidencias/{inc.id}",
		json={"description": "Segunda", "version": version},
		headers=headers,
	)
	assert resp.status_code == 409
	assert resp.get_json()["payload"]["code"] == "CONCURRENT_UPDATE"


def test_solo_el_creador_o_staff_editan(client, make_user, auth_header, make_incidencia):
	duena = make_user("duena")
	otro = make_user("otro")
	inc = make_incidencia("Buzón", creador=duena)

	resp = client.patch(f"/api/incidencias/{inc.id}", json={"title": "X"}, headers=auth_header(otro.id))
	assert resp.status_code == 403
	resp = client.post(f"/api/incidencias/{inc.id}/notas", json={"content": "hola"}, headers=auth_header(otro.id))
	assert resp.status_code == 403


def test_nota_vacia_y_nota_en_incidencia_inexistente(client, make_user, auth_header, make_incidencia):
	staff = make_user("super", role="supervisor")
	inc = make_incidencia("Goteras")

	resp = client.post(f"/api/incidencias/{inc.id}/notas", json={"content": "   "}, headers=auth_header(staff.id))
	assert resp.status_code == 400
	assert resp.get_json()["payload"]["code"] == "EMPTY_NOTE"

	resp = client.post("/api/incidencias/9999/notas", json={"content": "hola"}, headers=auth_header(staff.id))
	assert resp.status_code == 404
	assert resp.get_json()["payload"]["code"] == "INCIDENT_NOT_FOUND"


def test_nota_guarda_el_autor(client, make_user, auth_header, make_incidencia):
	staff = make_user("super", role="supervisor", full_name="Marta Supervisora")
	inc = make_incidencia("Goteras")

	resp = client.post(f"/api/incidencias/{inc.id}/notas", json={"content": "  Avisado el fontanero "}, headers=auth_header(staff.id))
	nota = resp.get_json()["data"]
	assert nota["content"] == "Avisado el fontanero"
	assert nota["author_name"] == "Marta Supervisora"


def test_cambiar_estado_requiere_staff(client, make_user, auth_header, make_incidencia):
	vecino = make_user("juan")
	inc = make_incidencia("Ascensor", creador=vecino)

	resp = client.patch(
		f"/api/incidencias/{inc.id}/estado",
		json={"status": "resuelto"},
		headers=auth_header(vecino.id),
	)
	assert resp.status_code == 403


def test_transiciones_de_estado(client, make_user, auth_header, make_incidencia):
	staff = make_user("super", role="supervisor")
	headers = auth_header(staff.id)
	inc = make_incidencia("Ascensor", status="resuelto")

	resp = client.patch(f"/api/incidencias/{inc.id}/estado", json={"status": "pendiente"}, headers=headers)
	assert resp.status_code == 409
	assert resp.get_json()["payload"]["code"] == "INVALID_TRANSITION"

	resp = client.patch(f"/api/incidencias/{inc.id}/estado", json={"status": "en_proceso"}, headers=headers)
	assert resp.status_code == 200
	assert resp.get_json()["data"]["status"] == "en_proceso"

	resp = client.patch(f"/api/incidencias/{inc.id}/estado", json={"status": "rechazado"}, headers=headers)
	assert resp.status_code == 200

	resp = client.patch(f"/api/incidencias/{inc.id}/estado", json={"status": "cerrado"}, headers=headers)
	assert resp.status_code == 400

	resp = client.patch("/api/incidencias/9999/estado", json={"status": "resuelto"}, headers=headers)
	assert resp.status_code == 404


def test_eliminar_es_idempotente(client, make_user, auth_header, make_incidencia):
	admin = make_user("admin", role="admin")
	vecino = make_user("juan")
	inc = make_incidencia("Duplicada")

	assert client.delete(f"/api/incidencias/{inc.id}", headers=auth_header(vecino.id)).status_code == 403

	resp = client.delete(f"/api/incidencias/{inc.id}", headers=auth_header(admin.id))
	assert resp.status_code == 200
	resp = client.delete(f"/api/incidencias/{inc.id}", headers=auth_header(admin.id))
	assert resp.status_code == 200
	assert client.get(f"/api/incidencias/{inc.id}", headers=auth_header(admin.id)).status_code == 404


def test_eliminar_en_lote(client, make_user, auth_header, make_incidencia):
	admin = make_user("admin", role="admin")
	a = make_incidencia("A")
	b = make_incidencia("B")
	c = make_incidencia("C")

	resp = client.post(
		"/api/incidencias/eliminar-lote",
		json={"ids": [a.id, b.id, 9999]},
		headers=auth_header(admin.id),
	)
	assert resp.status_code == 200
	assert resp.get_json()["data"]["eliminadas"] == 2

	listado = client.get("/api/incidencias", headers=auth_header(admin.id)).get_json()["data"]
	assert [i["id"] for i in listado["items"]] == [c.id]


def test_listado_con_filtros_y_orden(client, make_user, auth_header, make_incidencia):
	vecino = make_user("juan")
	base = datetime(2024, 5, 1, 9, 0, 0)
	baja = make_incidencia("Baja", priority="baja", created_at=base)
	urgente = make_incidencia("Urgente", priority="urgente", created_at=base + timedelta(hours=1))
	cerrada = make_incidencia("Cerrada", priority="alta", status="resuelto", category="Limpieza", created_at=base + timedelta(hours=2))
	headers = auth_header(vecino.id)

	data = client.get("/api/incidencias", headers=headers).get_json()["data"]
	# Sin regla pedida se aplica la primera activa: más recientes
	assert data["orden"] == "sort_recientes"
	assert [i["id"] for i in data["items"]] == [cerrada.id, urgente.id, baja.id]

	data = client.get("/api/incidencias?orden=sort_prioridad", headers=headers).get_json()["data"]
	assert [i["id"] for i in data["items"]] == [urgente.id, cerrada.id, baja.id]

	data = client.get("/api/incidencias?estado=active&orden=sort_antiguas", headers=headers).get_json()["data"]
	assert [i["id"] for i in data["items"]] == [baja.id, urgente.id]
	assert data["total"] == 2

	data = client.get("/api/incidencias?categoria=Limpieza", headers=headers).get_json()["data"]
	assert [i["id"] for i in data["items"]] == [cerrada.id]

	resp = client.get("/api/incidencias?estado=todas", headers=headers)
	assert resp.status_code == 400


def test_listado_oculta_al_vecino_si_la_vista_es_solo_staff(client, make_user, auth_header, make_incidencia):
	admin = make_user("admin", role="admin")
	duena = make_user("duena", full_name="Lola", house_number="2A")
	otro = make_user("otro")
	inc = make_incidencia("Ruido", creador=duena)

	resp = client.put("/api/config/vista", json={"userVisibilityMode": "staff_only"}, headers=auth_header(admin.id))
	assert resp.status_code == 200

	vista_otro = client.get(f"/api/incidencias/{inc.id}", headers=auth_header(otro.id)).get_json()["data"]
	assert vista_otro["user_name"] is None
	assert vista_otro["user_house"] is None

	vista_duena = client.get(f"/api/incidencias/{inc.id}", headers=auth_header(duena.id)).get_json()["data"]
	assert vista_duena["user_name"] == "Lola"

	vista_admin = client.get(f"/api/incidencias/{inc.id}", headers=auth_header(admin.id)).get_json()["data"]
	assert vista_admin["user_house"] == "2A"


def test_aviso_en_lote(client, make_user, auth_header, make_incidencia, outbox, db_session):
	staff = make_user("super", role="supervisor")
	suscrito = make_user("suscrito", email="si@vc38.com")
	sin_correo = make_user("sincorreo")
	no_quiere = make_user("noquiere", email="no@vc38.com", receive_emails=False)

	a = make_incidencia("Poda", creador=suscrito)
	b = make_incidencia("Riego", creador=sin_correo)
	c = make_incidencia("Valla", creador=no_quiere)
	suscrito_id = suscrito.id

	resp = client.post(
		"/api/incidencias/notificar",
		json={"ids": [a.id, b.id, c.id], "message": "Mañana vienen los jardineros"},
		headers=auth_header(staff.id),
	)
	assert resp.status_code == 200
	data = resp.get_json()["data"]
	assert data["incidencias"] == 3
	assert data["enviados"] == 1
	assert data["omitidos"] == 2

	correos = outbox()
	assert [correo["to"] for correo in correos] == ["si@vc38.com"]
	assert "Mañana vienen los jardineros" in correos[0]["body"]

	avisos = Notificacion.query.filter_by(id_usuario=suscrito_id).all()
	assert len(avisos) == 1
	assert avisos[0].tipo == "aviso_incidencia"

	resp = client.post("/api/incidencias/notificar", json={"ids": [a.id], "message": " "}, headers=auth_header(staff.id))
	assert resp.status_code == 400


def test_incidencia_sobrevive_al_borrado_del_usuario(client, make_user, auth_header, make_incidencia, db_session):
	admin = make_user("admin", role="admin")
	pendiente = make_user("temporal", status="pending")
	inc = make_incidencia("Huérfana", creador=pendiente)
	inc_id = inc.id

	client.post(
		f"/api/usuarios/{pendiente.id}/aprobacion",
		json={"aceptar": False},
		headers=auth_header(admin.id),
	)

	db_session.expire_all()
	huerfana = db_session.get(Incidencia, inc_id)
	assert huerfana is not None
	assert huerfana.user_name == "temporal"
