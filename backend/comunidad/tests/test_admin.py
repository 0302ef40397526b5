import pytest

from comunidad.services.admin_service import casa_coincide


def test_resumen_cuenta_pendientes_e_incidencias(client, make_user, auth_header, make_incidencia):
	admin = make_user("admin", role="admin")
	make_user("vecina")
	make_user("espera1", status="pending")
	make_user("espera2", status="pending")
	make_incidencia("A", status="pendiente", priority="alta")
	make_incidencia("B", status="en_proceso")
	make_incidencia("C", status="resuelto", priority="alta")

	resp = client.get("/api/admin/resumen", headers=auth_header(admin.id))
	assert resp.status_code == 200
	data = resp.get_json()["data"]
	assert data["usuarios_activos"] == 2
	assert data["usuarios_pendientes"] == 2
	assert data["incidencias"] == 3
	assert data["incidencias_abiertas"] == 2
	assert data["incidencias_cerradas"] == 1
	assert data["incidencias_por_prioridad"] == {"alta": 2, "media": 1}
	assert data["almacenamiento_bytes"] == 0


def test_resumen_solo_para_admin(client, make_user, auth_header):
	supervisor = make_user("super", role="supervisor")
	assert client.get("/api/admin/resumen", headers=auth_header(supervisor.id)).status_code == 403


def test_censo_de_viviendas(client, make_user, auth_header, app, monkeypatch):
	monkeypatch.setitem(app.config, "CENSO_TOTAL_CASAS", 10)
	supervisor = make_user("super", role="supervisor")
	make_user("ana", house_number="7º A", full_name="Ana")
	make_user("luis", house_number="7 B")
	make_user("pepe", house_number="3")
	make_user("nueva", house_number="5", status="pending")

	resp = client.get("/api/admin/censo", headers=auth_header(supervisor.id))
	assert resp.status_code == 200
	data = resp.get_json()["data"]
	assert data["total_casas"] == 10
	assert data["casas_ocupadas"] == 2

	casas = {c["numero"]: c for c in data["casas"]}
	assert sorted(r["nombre"] for r in casas[7]["residentes"]) == ["Ana", "luis"]
	assert casas[3]["ocupada"] is True
	assert casas[5]["ocupada"] is False


def test_censo_prohibido_para_vecinos(client, make_user, auth_header):
	vecino = make_user("vecino")
	assert client.get("/api/admin/censo", headers=auth_header(vecino.id)).status_code == 403


@pytest.mark.parametrize(
	"house_number,numero,esperado",
	[
		("7", 7, True),
		("7 B", 7, True),
		("7º A", 7, True),
		("Casa 7 bajo", 7, True),
		("17", 7, False),
		("", 7, False),
		(None, 7, False),
	],
)
def test_casa_coincide(house_number, numero, esperado):
	assert casa_coincide(house_number, numero) is esperado


def test_notificaciones_del_usuario(client, make_user, auth_header):
	admin = make_user("admin", role="admin")
	client.post("/api/auth/register", json={"username": "nuevo", "password": "x"})

	resp = client.get("/api/notificaciones", headers=auth_header(admin.id))
	data = resp.get_json()["data"]
	assert data["unread_count"] == 1
	aviso = data["items"][0]
	assert aviso["tipo"] == "registro_pendiente"
	assert aviso["mensaje"] == "Nuevo registro pendiente: nuevo (sin correo)"

	assert client.post(f"/api/notificaciones/{aviso['id']}/leer", headers=auth_header(admin.id)).status_code == 200
	data = client.get("/api/notificaciones", headers=auth_header(admin.id)).get_json()["data"]
	assert data["unread_count"] == 0

	otro = make_user("otro")
	resp = client.post(f"/api/notificaciones/{aviso['id']}/leer", headers=auth_header(otro.id))
	assert resp.status_code == 404
