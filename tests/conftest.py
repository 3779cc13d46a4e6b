import pytest
from werkzeug.security import generate_password_hash

from app.kinygroup import create_app
from app.kinygroup.auth import reset_login_attempts
from app.kinygroup.db import session_scope
from app.kinygroup.models import Base, User

PASSWORD = "password123"

USERS = {
    "admin": ("Admin User", "admin@example.com"),
    "editor": ("Editor User", "editor@example.com"),
    "contributor": ("Contributor User", "contributor@example.com"),
    "reader": ("Reader User", "reader@example.com"),
}


def _set_env(monkeypatch, tmp_path, env: str) -> None:
    monkeypatch.setenv("SECRET_KEY", "test-secret")
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path/'test.db'}")
    monkeypatch.setenv("ENV", env)
    monkeypatch.setenv("STORAGE_BACKEND", "local")
    monkeypatch.setenv("STORAGE_LOCAL_ROOT", str(tmp_path / "storage"))
    for k in ("S3_ENDPOINT", "S3_REGION", "S3_BUCKET", "S3_ACCESS_KEY_ID", "S3_SECRET_ACCESS_KEY", "PUBLIC_MEDIA_BASE_URL"):
        monkeypatch.delenv(k, raising=False)


def build_app(tmp_path, monkeypatch, env: str = "test"):
    _set_env(monkeypatch, tmp_path, env)
    reset_login_attempts()

    app = create_app()
    engine = app.extensions["sqlalchemy_engine"]
    Base.metadata.create_all(bind=engine)

    with session_scope(app) as s:
        for role, (name, email) in USERS.items():
            s.add(
                User(
                    name=name,
                    email=email,
                    password_hash=generate_password_hash(PASSWORD),
                    role=role,
                    is_active=True,
                )
            )
    return app


@pytest.fixture()
def app(tmp_path, monkeypatch):
    return build_app(tmp_path, monkeypatch)


@pytest.fixture()
def client(app):
    return app.test_client()


@pytest.fixture()
def user_ids(app):
    with session_scope(app) as s:
        return {u.role: u.id for u in s.query(User).all()}


def login(client, role: str = "admin", password: str = PASSWORD):
    return client.post(
        "/auth/login",
        data={"email": USERS[role][1], "password": password},
        follow_redirects=False,
    )


def make_post(client, **overrides) -> dict:
    payload = {
        "title": "Hello World",
        "slug": "hello-world",
        "content": "<p>Welcome to the KINY GROUP blog.</p>",
        "published": True,
    }
    payload.update(overrides)
    r = client.post("/api/posts", json=payload)
    assert r.status_code == 201, r.json
    return r.json["post"]


def make_division(client, **overrides) -> dict:
    payload = {
        "name": "Kiny Tours",
        "slug": "kiny-tours",
        "description": "Travel and MICE services.",
        "color": "#3B82F6",
    }
    payload.update(overrides)
    r = client.post("/api/divisions", json=payload)
    assert r.status_code == 201, r.json
    return r.json
