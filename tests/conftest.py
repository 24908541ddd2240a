import pytest
from fastapi.testclient import TestClient

from helpdesk.config import Settings
from helpdesk.main import create_app


@pytest.fixture
def settings(tmp_path):
    return Settings(
        jwt_secret="test-secret",
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'helpdesk.db'}",
        admin_password="admin-password",
    )


@pytest.fixture
def client(settings):
    app = create_app(settings)
    with TestClient(app) as c:
        yield c


def register(client, username="alice", email="alice@x.com", password="password1"):
    return client.post(
        "/api/auth/register",
        json={"username": username, "email": email, "password": password},
    )


def login(client, username, password):
    return client.post("/api/auth/login", json={"username": username, "password": password})


def bearer(token):
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def user_headers(client):
    res = register(client)
    assert res.status_code == 201
    return bearer(res.json()["token"])


@pytest.fixture
def admin_headers(client):
    res = login(client, "admin", "admin-password")
    assert res.status_code == 200
    return bearer(res.json()["token"])
