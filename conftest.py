"""
Fixtures compartidos para los tests de módulos.

La base es SQLite en memoria (una sola conexión, StaticPool); el esquema
se crea y se elimina en cada test.
"""
import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["ENVIRONMENT"] = "test"

from uuid import uuid4

import pytest
from fastapi.testclient import TestClient

from cuentas.database.database import Base, SessionLocal, engine, get_db
from cuentas.main import app
from cuentas.modules.auth.utils import create_access_token


@pytest.fixture
def db_session():
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def owner_id():
    return uuid4()


@pytest.fixture
def other_owner_id():
    return uuid4()


@pytest.fixture
def employee_id():
    return uuid4()


@pytest.fixture
def api_client(db_session):
    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def auth_headers_for(user_id, owner_id, role="owner", permissions=None):
    token = create_access_token(user_id, owner_id, role=role, permissions=permissions)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def auth_headers(owner_id):
    """Headers del dueño (tiene todos los permisos)"""
    return auth_headers_for(owner_id, owner_id)


@pytest.fixture
def employee_headers(employee_id, owner_id):
    """Factory de headers de un empleado del dueño con los permisos indicados"""
    def _headers(*permissions):
        return auth_headers_for(employee_id, owner_id, role="employee", permissions=list(permissions))
    return _headers


@pytest.fixture
def headers_for():
    """Headers para un llamador arbitrario (p.ej. otro dueño)"""
    return auth_headers_for
