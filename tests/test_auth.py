import pytest


def test_register_login_me(client):
    res = client.post("/api/users/register", json={"name": "Huda", "email": "huda@example.com", "password": "secret123"})
    assert res.status_code == 201
    assert res.json()["user"]["is_admin"] is False

    login = client.post("/api/users/login", json={"email": "huda@example.com", "password": "secret123"})
    assert login.status_code == 200
    token = login.json()["token"]

    me = client.get("/api/users/me", headers={"Authorization": f"Bearer {token}"})
    assert me.json()["email"] == "huda@example.com"


def test_duplicate_registration(client):
    body = {"name": "Huda", "email": "huda@example.com", "password": "secret123"}
    client.post("/api/users/register", json=body)
    res = client.post("/api/users/register", json=body)
    assert res.status_code == 400
    assert res.json()["message"] == "Email already registered"


def test_bad_credentials_and_tokens(client, user):
    res = client.post("/api/users/login", json={"email": user["email"], "password": "wrong-pass"})
    assert res.status_code == 401
    assert client.get("/api/users/me", headers={"Authorization": "Bearer garbage"}).status_code == 401


def test_health_reports_database_index_and_uploads(client, upload_dir):
    body = client.get("/api/health").json()
    assert body["status"] == "ok"
    assert body["database"] == "connected"
    assert body["discountCodeIndex"] is True
    assert body["uploads"] == {"directory": str(upload_dir), "exists": True}


def test_health_degraded_without_database(client, monkeypatch):
    import database

    monkeypatch.setattr(database, "db", None)
    body = client.get("/api/health").json()
    assert body["status"] == "degraded"
    assert body["database"] == "not configured"
    assert body["discountCodeIndex"] is False


def test_startup_creates_upload_dir_and_indexes(mongo, upload_dir, monkeypatch):
    import storage
    from fastapi.testclient import TestClient
    from main import app

    mongo.drop_collection("discount")
    fresh = upload_dir / "fresh"
    monkeypatch.setattr(storage, "UPLOAD_ROOT", str(fresh))
    with TestClient(app) as c:
        assert fresh.is_dir()
        assert c.get("/api/health").json()["discountCodeIndex"] is True


def test_database_helpers_without_connection(monkeypatch):
    import database
    from errors import InternalError

    monkeypatch.setattr(database, "db", None)
    with pytest.raises(InternalError, match="Database not configured"):
        database.create_document("product", {"name": "x"})
    with pytest.raises(InternalError, match="Database not configured"):
        database.get_documents("product")
