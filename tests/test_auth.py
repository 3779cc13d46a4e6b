from datetime import timedelta

from app.kinygroup import auth
from app.kinygroup.db import session_scope
from app.kinygroup.models import AuditEvent, User, utcnow
from conftest import PASSWORD, login


def test_login_bad_password_flashes_error(client):
    r = login(client, "admin", password="wrong")
    assert r.status_code == 302
    assert "/auth/login" in r.headers["Location"]

    r = client.get("/auth/login")
    assert b"Invalid email or password." in r.data


def test_login_failure_is_audited(app, client):
    login(client, "admin", password="wrong")
    with session_scope(app) as s:
        events = s.query(AuditEvent).filter(AuditEvent.action == "auth.login_failed").all()
        assert len(events) == 1


def test_reader_lands_on_home_staff_on_dashboard(client):
    r = login(client, "reader")
    assert r.headers["Location"].endswith("/")

    client.get("/auth/logout")
    r = login(client, "contributor")
    assert r.headers["Location"].endswith("/dashboard")


def test_login_honours_safe_next_only(client):
    r = client.post(
        "/auth/login",
        data={"email": "admin@example.com", "password": PASSWORD, "next": "/dashboard/posts"},
    )
    assert r.headers["Location"].endswith("/dashboard/posts")

    client.get("/auth/logout")
    r = client.post(
        "/auth/login",
        data={"email": "admin@example.com", "password": PASSWORD, "next": "https://evil.example.com/"},
    )
    assert "evil.example.com" not in r.headers["Location"]


def test_login_rate_limited_after_five_attempts(client):
    for _ in range(5):
        login(client, "admin", password="wrong")
    # Even the right password is refused inside the window
    r = login(client, "admin")
    assert "/auth/login" in r.headers["Location"]
    r = client.get("/auth/login")
    assert b"Too many login attempts" in r.data


def test_expired_attempts_drop_the_ip_entry(client):
    stale = utcnow() - timedelta(seconds=auth._LOGIN_RATE_WINDOW + 1)
    auth._login_attempts["203.0.113.9"] = [stale] * 5
    assert auth._check_rate_limit("203.0.113.9") is False
    assert "203.0.113.9" not in auth._login_attempts
    assert auth._check_rate_limit("198.51.100.7") is False
    assert "198.51.100.7" not in auth._login_attempts


def test_logout_clears_session(client):
    login(client, "admin")
    assert client.get("/dashboard").status_code == 200
    r = client.get("/auth/logout")
    assert r.status_code == 302
    assert client.get("/dashboard").status_code == 302


def test_inactive_user_cannot_login(app, client):
    with session_scope(app) as s:
        u = s.query(User).filter(User.email == "editor@example.com").one()
        u.is_active = False
    r = login(client, "editor")
    assert "/auth/login" in r.headers["Location"]


def test_register_creates_reader_and_logs_in(app, client):
    r = client.post(
        "/auth/register",
        data={
            "name": "New Reader",
            "email": "New.Reader@Example.com",
            "password": "longenough",
            "password_confirm": "longenough",
        },
    )
    assert r.status_code == 302
    with session_scope(app) as s:
        u = s.query(User).filter(User.email == "new.reader@example.com").one()
        assert u.role == "reader"

    # Logged in already: the login page bounces to the landing page
    r = client.get("/auth/login")
    assert r.status_code == 302


def test_register_rejects_mismatch_and_duplicates(client):
    r = client.post(
        "/auth/register",
        data={"name": "X", "email": "x@example.com", "password": "longenough", "password_confirm": "different"},
    )
    assert r.status_code == 400
    assert b"Passwords do not match." in r.data

    r = client.post(
        "/auth/register",
        data={"name": "Dup", "email": "reader@example.com", "password": "longenough", "password_confirm": "longenough"},
    )
    assert r.status_code == 409
