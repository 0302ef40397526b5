# backend/seed_demo.py
"""Carga los usuarios e incidencias de demostración (contraseña de todos: 123)."""
from datetime import datetime, timedelta

from comunidad.extensions import db, bcrypt
from comunidad.models.incidencia import Incidencia
from comunidad.models.nota import Nota
from comunidad.models.usuario import Usuario
from comunidad.services import config_service

USUARIOS_DEMO = [
    {
        "username": "admin",
        "email": "admin@vc38.com",
        "role": "admin",
        "full_name": "Administrador Principal",
        "house_number": "Oficina",
        "receive_emails": True,
    },
    {
        "username": "supervisor",
        "email": "supervisor@vc38.com",
        "role": "supervisor",
        "full_name": "Supervisor Mantenimiento",
        "house_number": "Taller",
        "receive_emails": True,
    },
    {
        "username": "juan.vecino",
        "email": "vecino@vc38.com",
        "role": "user",
        "full_name": "Juan Vecino",
        "house_number": "1º A",
        "receive_emails": False,
    },
]


def cargar_demo() -> dict:
    config_service.obtener_config()

    usuarios = {}
    for datos in USUARIOS_DEMO:
        usuario = Usuario.query.filter_by(username=datos["username"]).first()
        if usuario is None:
            usuario = Usuario(
                **datos,
                status="active",
                password_hash=bcrypt.generate_password_hash("123").decode("utf-8"),
                custom_fields={},
            )
            db.session.add(usuario)
        usuarios[datos["username"]] = usuario
    db.session.flush()

    if Incidencia.query.count():
        db.session.commit()
        return {"usuarios": len(usuarios), "incidencias": 0}

    ahora = datetime.utcnow()
    juan = usuarios["juan.vecino"]
    supervisor = usuarios["supervisor"]

    farola = Incidencia(
        title="Farola fundida en entrada principal",
        description="La tercera farola empezando por la izquierda no enciende por la noche.",
        category="Electricidad",
        status="pendiente",
        priority="media",
        location="Entrada Principal",
        created_at=ahora - timedelta(days=2),
        updated_at=ahora - timedelta(days=2),
        user_id=juan.id,
        user_name=juan.nombre_visible,
        user_house=juan.house_number,
    )
    filtracion = Incidencia(
        title="Filtración de agua en garaje",
        description="Hay una mancha de humedad creciendo en la plaza 45.",
        category="Fontanería",
        status="en_proceso",
        priority="alta",
        location="Garaje - Sótano 1",
        created_at=ahora - timedelta(days=5),
        updated_at=ahora - timedelta(hours=12),
        user_id=juan.id,
        user_name=juan.nombre_visible,
        user_house=juan.house_number,
    )
    filtracion.notes.append(
        Nota(
            author_name=supervisor.nombre_visible,
            content="Revisado. Parece venir de la bajante general. Llamaremos al fontanero externo.",
            created_at=ahora - timedelta(hours=12),
        )
    )
    setos = Incidencia(
        title="Poda de setos jardín piscina",
        description="Los setos están invadiendo el camino peatonal.",
        category="Jardinería",
        status="resuelto",
        priority="baja",
        location="Jardín Piscina",
        created_at=ahora - timedelta(days=10),
        updated_at=ahora - timedelta(days=1),
        user_id=supervisor.id,
        user_name=supervisor.nombre_visible,
        user_house=supervisor.house_number,
    )

    db.session.add_all([farola, filtracion, setos])
    db.session.commit()
    return {"usuarios": len(usuarios), "incidencias": 3}


if __name__ == "__main__":
    from wsgi import app

    with app.app_context():
        resultado = cargar_demo()
        print(f"Datos de demostración cargados: {resultado}")
