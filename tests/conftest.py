"""
Shared fixtures: settings pointing at in-memory SQLite, an app client,
an authenticated admin client and a bare async database session.
"""

import pytest
from fastapi.testclient import TestClient

from credenciales.core.config import Settings
from credenciales.core.db import Database
from credenciales.main import create_app

ADMIN_EMAIL = "admin@ctmcolima.org.mx"
ADMIN_PASSWORD = "correct horse battery"


@pytest.fixture
def make_settings(tmp_path):
    def _make(**overrides) -> Settings:
        values = dict(
            _env_file=None,
            MODE="test",
            ASYNC_DATABASE_URI="sqlite+aiosqlite://",
            STORAGE_ROOT=str(tmp_path / "storage"),
            FIRST_SUPERUSER_EMAIL=ADMIN_EMAIL,
            FIRST_SUPERUSER_PASSWORD=ADMIN_PASSWORD,
            PUBLIC_APP_URL="https://credenciales.ctmcolima.org.mx",
            REDIS_URL=None,
            REDIS_HOST=None,
            MINIO_URL=None,
            VAULT_URL=None,
            VAULT_TOKEN=None,
        )
        values.update(overrides)
        return Settings(**values)
    return _make


@pytest.fixture
def settings(make_settings):
    return make_settings()


@pytest.fixture
def make_client(make_settings):
    clients = []

    def _make(**overrides) -> TestClient:
        client = TestClient(create_app(make_settings(**overrides)))
        client.__enter__()
        clients.append(client)
        return client

    yield _make
    for client in clients:
        client.__exit__(None, None, None)


@pytest.fixture
def client(make_client):
    return make_client()


@pytest.fixture
def admin_client(client):
    response = client.post(
        "/api/v1/auth/login", json={"email": ADMIN_EMAIL, "password": ADMIN_PASSWORD}
    )
    assert response.status_code == 200, response.text
    return client


@pytest.fixture
def storage_root(settings):
    from pathlib import Path
    return Path(settings.STORAGE_ROOT)


@pytest.fixture
def member_payload():
    def _payload(**overrides) -> dict:
        payload = {
            "firstName": "Juan Carlos",
            "lastName": "Pérez",
            "secondLastName": "López",
            "dob": "1985-06-15",
            "vigencia": "2099-12-31",
            "phoneMx": "5551234567",
            "licenseNumber": "LIC-001",
            "badgeNumber": "G-100",
            "address": {
                "street": "Av. Constitución",
                "exteriorNo": "120",
                "neighborhood": "Centro",
                "city": "Colima",
                "municipality": "Colima",
                "state": "Colima",
                "postalCode": "28000",
            },
        }
        payload.update(overrides)
        return payload
    return _payload


@pytest.fixture
def create_member(admin_client, member_payload):
    def _create(**overrides) -> dict:
        response = admin_client.post("/api/v1/users", json=member_payload(**overrides))
        assert response.status_code == 201, response.text
        return response.json()["user"]
    return _create


@pytest.fixture
async def db():
    database = Database("sqlite+aiosqlite://")
    await database.create_all()
    async with database.session() as session:
        yield session
    await database.dispose()
