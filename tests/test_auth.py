import asyncio

from fastapi.testclient import TestClient

from conftest import bearer, login, register
from helpdesk.routers import auth as auth_router
from helpdesk.config import Settings
from helpdesk.main import create_app


def test_register_returns_token_and_user_without_password(client):
    res = register(client)
    assert res.status_code == 201
    body = res.json()
    assert body["token"]
    assert body["user"] == {"id": body["user"]["id"], "username": "alice", "email": "alice@x.com", "role": "user"}
    assert "password" not in body["user"]


def test_register_then_login(client):
    register(client)
    res = login(client, "alice", "password1")
    assert res.status_code == 200
    assert res.json()["user"]["username"] == "alice"


def test_login_with_email(client):
    register(client)
    res = login(client, "ALICE@x.com", "password1")
    assert res.status_code == 200
    assert res.json()["user"]["email"] == "alice@x.com"


def test_register_duplicate_username_or_email(client):
    assert register(client).status_code == 201

    same_name = register(client, email="other@x.com")
    assert same_name.status_code == 400
    assert same_name.json() == {"error": "Username or email already exists"}

    same_email = register(client, username="bob")
    assert same_email.status_code == 400
    assert same_email.json() == {"error": "Username or email already exists"}


def test_register_validation_collects_all_errors(client):
    res = client.post(
        "/api/auth/register",
        json={"username": "al", "email": "not-an-email", "password": "short"},
    )
    assert res.status_code == 400
    fields = {e["field"] for e in res.json()["errors"]}
    assert fields == {"username", "email", "password"}


def test_register_strips_username(client):
    res = register(client, username="  al  ")
    assert res.status_code == 400


def test_login_failures_share_one_message(client):
    register(client)
    wrong_password = login(client, "alice", "password2")
    unknown_user = login(client, "nobody", "password1")

    assert wrong_password.status_code == 401
    assert unknown_user.status_code == 401
    assert wrong_password.json() == unknown_user.json() == {"error": "Invalid credentials"}


def test_verify_token(client):
    token = register(client).json()["token"]
    res = client.get("/api/auth/verify", headers=bearer(token))
    assert res.status_code == 200
    body = res.json()
    assert body["valid"] is True
    assert body["user"]["username"] == "alice"
    assert body["user"]["role"] == "user"
    assert body["user"]["exp"] - body["user"]["iat"] == 24 * 60 * 60


def test_verify_token_from_cookie(client):
    token = register(client).json()["token"]
    client.cookies.set("token", token)
    res = client.get("/api/auth/verify")
    assert res.status_code == 200


def test_verify_missing_and_bad_token(client):
    missing = client.get("/api/auth/verify")
    assert missing.status_code == 401
    assert missing.json() == {"error": "No token provided"}

    bad = client.get("/api/auth/verify", headers=bearer("garbage"))
    assert bad.status_code == 401
    assert bad.json() == {"error": "Invalid or expired token"}


def test_cookie_only_set_in_production(client, tmp_path):
    res = register(client)
    assert "token" not in res.cookies

    prod = Settings(
        jwt_secret="test-secret",
        environment="production",
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'prod.db'}",
    )
    with TestClient(create_app(prod)) as prod_client:
        res = register(prod_client)
        assert res.status_code == 201
        cookie = res.headers["set-cookie"]
        assert cookie.startswith("token=")
        assert "HttpOnly" in cookie
        assert "Secure" in cookie
        assert "samesite=strict" in cookie.lower()


def test_missing_secret_still_serves(tmp_path):
    settings = Settings(database_url=f"sqlite+aiosqlite:///{tmp_path / 'nosecret.db'}")
    with TestClient(create_app(settings)) as c:
        assert c.get("/api/health").status_code == 200
        assert register(c).status_code == 201


def test_password_work_runs_off_the_event_loop(client, monkeypatch):
    seen = []

    def on_worker_thread():
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            return True
        return False

    real_hash = auth_router.get_password_hash
    real_verify = auth_router.verify_password
    real_dummy = auth_router.dummy_verify

    def recording_hash(password):
        seen.append(("hash", on_worker_thread()))
        return real_hash(password)

    def recording_verify(plain, hashed):
        seen.append(("verify", on_worker_thread()))
        return real_verify(plain, hashed)

    def recording_dummy():
        seen.append(("dummy", on_worker_thread()))
        return real_dummy()

    monkeypatch.setattr(auth_router, "get_password_hash", recording_hash)
    monkeypatch.setattr(auth_router, "verify_password", recording_verify)
    monkeypatch.setattr(auth_router, "dummy_verify", recording_dummy)

    register(client)
    login(client, "alice", "password1")
    login(client, "nobody", "password1")

    assert seen == [("hash", True), ("verify", True), ("dummy", True)]
