from datetime import datetime, timedelta, timezone

from conftest import PASSWORD, TestingSessionLocal, auth_header, login
from gradeflow.core.config import LOGIN_MAX_FAILURES
from gradeflow.models.login_lockout import LoginLockout


def test_register_login_me(client, seed):
    r = client.post(
        "/auth/register",
        json={"email": "new@example.com", "password": "longenough", "full_name": "New Student"},
    )
    assert r.status_code == 201, r.text
    created = r.json()
    assert created["role"] == "student"
    assert len(created["id"]) == 24

    token = login(client, "new@example.com", "longenough")
    me = client.get("/auth/me", headers=auth_header(token)).json()
    assert me["email"] == "new@example.com"
    assert me["id"] == created["id"]


def test_registered_user_acts_as_student(client, seed):
    client.post("/auth/register", json={"email": "fresh@example.com", "password": "longenough"})
    headers = auth_header(login(client, "fresh@example.com", "longenough"))

    r = client.post(f"/submissions/assessment/{seed.quiz_id}/start", headers=headers)
    assert r.status_code == 201, r.text
    assert r.json()["data"]["attempt_number"] == 1

    r = client.get(f"/submissions/assessment/{seed.quiz_id}", headers=headers)
    assert r.status_code == 403


def test_register_duplicate_email(client, seed):
    r = client.post("/auth/register", json={"email": "student1@example.com", "password": "longenough"})
    assert r.status_code == 400
    assert r.json() == {"success": False, "error": "Email already registered"}


def test_wrong_password(client, seed):
    r = client.post("/auth/login", json={"email": "student1@example.com", "password": "nope-nope"})
    assert r.status_code == 401
    assert r.json()["success"] is False


def test_bad_token(client, seed):
    r = client.get("/auth/me", headers=auth_header("not-a-token"))
    assert r.status_code == 401


def test_lockout_after_repeated_failures(client, seed):
    for _ in range(LOGIN_MAX_FAILURES):
        r = client.post("/auth/login", json={"email": "student1@example.com", "password": "wrong-one"})
        assert r.status_code == 401

    r = client.post("/auth/login", json={"email": "student1@example.com", "password": PASSWORD})
    assert r.status_code == 429
    assert "Too many failed attempts" in r.json()["error"]


def test_lockout_expires(client, seed):
    for _ in range(LOGIN_MAX_FAILURES):
        client.post("/auth/login", json={"email": "student1@example.com", "password": "wrong-one"})

    db = TestingSessionLocal()
    try:
        record = db.get(LoginLockout, "student1@example.com")
        record.locked_until = datetime.now(timezone.utc) - timedelta(seconds=1)
        db.commit()
    finally:
        db.close()

    token = login(client, "student1@example.com")
    assert token

    db = TestingSessionLocal()
    try:
        assert db.get(LoginLockout, "student1@example.com") is None
    finally:
        db.close()


def test_success_resets_failure_count(client, seed):
    for _ in range(LOGIN_MAX_FAILURES - 1):
        client.post("/auth/login", json={"email": "student1@example.com", "password": "wrong-one"})
    login(client, "student1@example.com")

    r = client.post("/auth/login", json={"email": "student1@example.com", "password": "wrong-one"})
    assert r.status_code == 401
    assert login(client, "student1@example.com")
