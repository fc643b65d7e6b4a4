from fastapi.testclient import TestClient

from app.core.config import settings
from app.crud.user import ensure_admin
from app.db import User
from app.db.session import get_db
from app.main import app


def test_register_and_login(client):
    resp = client.post(
        "/api/auth/register",
        json={"email": "new@school.local", "password": "pw", "full_name": "Новый Учитель", "role": "teacher"},
    )
    assert resp.status_code == 200
    assert resp.json()["token_type"] == "bearer"

    login = client.post("/api/auth/login", json={"email": "new@school.local", "password": "pw"})
    assert login.status_code == 200
    token = login.json()["access_token"]

    listing = client.get("/api/attendance", headers={"Authorization": f"Bearer {token}"})
    assert listing.status_code == 200


def test_register_rejects_duplicates_and_roles(client, users):
    dup = client.post(
        "/api/auth/register",
        json={"email": "teacher@school.local", "password": "pw", "full_name": "X", "role": "teacher"},
    )
    assert dup.status_code == 400

    bad_role = client.post(
        "/api/auth/register",
        json={"email": "x@school.local", "password": "pw", "full_name": "X", "role": "admin"},
    )
    assert bad_role.status_code == 400


def test_wrong_password(client, users):
    resp = client.post("/api/auth/login", json={"email": "teacher@school.local", "password": "nope"})
    assert resp.status_code == 401


def test_attendance_requires_token(client):
    assert client.get("/api/attendance").status_code == 401
    assert client.get("/api/attendance", headers={"Authorization": "Bearer garbage"}).status_code == 401


def test_students_cannot_touch_attendance(client, student_headers):
    assert client.get("/api/attendance", headers=student_headers).status_code == 403


def test_ensure_admin_is_idempotent(db):
    first = ensure_admin(db, email="root@school.local", password="pw", full_name="Root")
    second = ensure_admin(db, email="root@school.local", password="other", full_name="Other")

    assert first.id == second.id
    assert (first.role, first.is_verified) == ("admin", True)
    assert db.query(User).filter(User.email == "root@school.local").count() == 1


def test_admin_created_on_startup_can_delete(db, students, teacher_headers, monkeypatch):
    monkeypatch.setattr(settings, "FIRST_ADMIN_EMAIL", "root@school.local")
    monkeypatch.setattr(settings, "FIRST_ADMIN_PASSWORD", "pw")
    # Старт приложения пишет в ту же in-memory базу
    monkeypatch.setattr("app.main.SessionLocal", lambda: db)
    app.dependency_overrides[get_db] = lambda: db

    with TestClient(app) as client:
        login = client.post("/api/auth/login", json={"email": "root@school.local", "password": "pw"})
        assert login.status_code == 200
        headers = {"Authorization": f"Bearer {login.json()['access_token']}"}

        client.post(
            "/api/attendance",
            json={"studentId": 42, "className": "5A", "teacher": "T1", "username": "u1",
                  "date": "2025-03-10", "status": "Present"},
            headers=teacher_headers,
        )
        record_id = client.get("/api/attendance", headers=teacher_headers).json()["data"][0]["id"]
        assert client.delete(f"/api/attendance/{record_id}", headers=headers).status_code == 200
    app.dependency_overrides.clear()
