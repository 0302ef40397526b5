import pytest

from datetime import datetime
from pathlib import Path
from sqlalchemy.pool import StaticPool
from flask_jwt_extended import create_access_token

from comunidad import create_app
from comunidad.config import TestConfig as BaseTestConfig
from comunidad.extensions import db, bcrypt

# Importar modelos para que SQLAlchemy registre mappers/tablas
import comunidad.models  # noqa: F401
from comunidad.models.incidencia import Incidencia
from comunidad.models.usuario import Usuario
from comunidad.utils.email_mock import leer_outbox


class PytestConfig(BaseTestConfig):
	SQLALCHEMY_DATABASE_URI = "sqlite://"
	SQLALCHEMY_ENGINE_OPTIONS = {
		"connect_args": {"check_same_thread": False},
		"poolclass": StaticPool,
	}
	JWT_SECRET_KEY = "test-secret"
	BCRYPT_LOG_ROUNDS = 4
	LOG_LEVEL = "WARNING"


@pytest.fixture(scope="session")
def app(tmp_path_factory):
	base = tmp_path_factory.mktemp("comunidad")
	PytestConfig.EMAIL_OUTBOX_PATH = str(base / "email_outbox.jsonl")
	PytestConfig.UPLOADS_INCIDENCIAS_DIR = str(base / "uploads")

	app = create_app(PytestConfig)
	with app.app_context():
		db.create_all()
		yield app
		db.session.remove()
		db.drop_all()


@pytest.fixture(autouse=True)
def _limpiar_bd(app):
	yield
	with app.app_context():
		db.session.rollback()
		for table in reversed(db.metadata.sorted_tables):
			db.session.execute(table.delete())
		db.session.commit()
		db.session.remove()


@pytest.fixture()
def client(app):
	return app.test_client()


@pytest.fixture()
def db_session(app):
	with app.app_context():
		yield db.session
		db.session.rollback()


@pytest.fixture()
def outbox(app):
	"""Correos enviados por el mock durante el test."""
	ruta = Path(app.config["EMAIL_OUTBOX_PATH"])
	ruta.unlink(missing_ok=True)

	def _leer() -> list[dict]:
		with app.app_context():
			return leer_outbox()

	return _leer


@pytest.fixture()
def make_user(db_session):
	def _make_user(
		username: str,
		password: str = "Passw0rd!",
		role: str = "user",
		status: str = "active",
		email: str | None = None,
		full_name: str | None = None,
		house_number: str | None = None,
		receive_emails: bool = True,
	):
		u = Usuario(
			username=username,
			email=email,
			password_hash=bcrypt.generate_password_hash(password).decode("utf-8"),
			role=role,
			status=status,
			full_name=full_name,
			house_number=house_number,
			receive_emails=receive_emails,
			custom_fields={},
		)
		db_session.add(u)
		db_session.commit()
		return u

	return _make_user


@pytest.fixture()
def make_token(app):
	def _make_token(user_id: int, role: str = "user") -> str:
		with app.app_context():
			return create_access_token(identity=str(user_id), additional_claims={"role": role})

	return _make_token


@pytest.fixture()
def auth_header(make_token):
	def _auth_header(user_id: int, role: str = "user") -> dict:
		token = make_token(user_id, role=role)
		return {"Authorization": f"Bearer {token}"}

	return _auth_header


@pytest.fixture()
def make_incidencia(db_session):
	def _make_incidencia(
		title: str = "Incidencia",
		status: str = "pendiente",
		priority: str = "media",
		category: str = "General",
		creador: Usuario | None = None,
		created_at: datetime | None = None,
	):
		ahora = created_at or datetime.utcnow()
		inc = Incidencia(
			title=title,
			description="Desc",
			category=category,
			status=status,
			priority=priority,
			location="Portal",
			created_at=ahora,
			updated_at=ahora,
			user_id=creador.id if creador else None,
			user_name=creador.nombre_visible if creador else "Anónimo",
			user_house=(creador.house_number or "") if creador else "",
		)
		db_session.add(inc)
		db_session.commit()
		return inc

	return _make_incidencia
