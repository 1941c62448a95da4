from __future__ import annotations

import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from app import create_app
from app.carpetas.services import create_proceso
from app.core.config import Config
from app.core.extensions import db
from app.core.models import Adolescente, TipoMedidaCautelar, seed_demo_data


class TestConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite://"
    SECRET_KEY = "test-secret"
    LOG_LEVEL = "WARNING"


@pytest.fixture
def app():
    app = create_app(TestConfig)
    with app.app_context():
        db.create_all()
        seed_demo_data(db.session)
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


def _login_as(client, email: str, password: str):
    def _login():
        return client.post("/auth/login", json={"email": email, "password": password})

    return _login


@pytest.fixture
def login_admin(client):
    return _login_as(client, "admin@juzgado.local", "admin123")


@pytest.fixture
def login_juzgado(client):
    return _login_as(client, "juzgado@juzgado.local", "juzgado123")


@pytest.fixture
def login_ejecucion(client):
    return _login_as(client, "ejecucion@juzgado.local", "ejecucion123")


@pytest.fixture
def login_consulta(client):
    return _login_as(client, "consulta@juzgado.local", "consulta123")


@pytest.fixture
def adolescente_ids(app):
    with app.app_context():
        rows = Adolescente.query.order_by(Adolescente.id.asc()).all()
        return [row.id for row in rows]


@pytest.fixture
def privativa_id(app):
    with app.app_context():
        return TipoMedidaCautelar.query.filter_by(genera_cemci=True).first().id


@pytest.fixture
def no_privativa_id(app):
    with app.app_context():
        return TipoMedidaCautelar.query.filter_by(genera_cemci=False).first().id


@pytest.fixture
def make_proceso(app):
    def _make(adolescente_id: int, **cj_fields):
        cj = {"tipo_fuero": "Común"}
        cj.update(cj_fields)
        view = create_proceso({"adolescente_id": adolescente_id, "cj": cj})
        return view["proceso"].id, view["carpetas"]["cj"].id

    return _make
