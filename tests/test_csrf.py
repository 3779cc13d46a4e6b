import re

import pytest

from conftest import build_app, login


@pytest.fixture()
def client(tmp_path, monkeypatch):
    app = build_app(tmp_path, monkeypatch, env="development")
    assert app.config["CSRF_ENABLED"] is True
    return app.test_client()


def _csrf_token(client) -> str:
    r = client.get("/")
    m = re.search(rb'<meta name="csrf-token" content="([^"]+)">', r.data)
    assert m, "pages should carry a CSRF token"
    return m.group(1).decode()


def test_login_is_exempt(client):
    r = login(client, "editor")
    assert r.status_code == 302
    assert r.headers["Location"].endswith("/dashboard")


def test_api_write_without_token_rejected(client):
    login(client, "editor")
    r = client.post("/api/categories", json={"name": "News", "slug": "news"})
    assert r.status_code == 400
    assert r.json == {"error": "CSRF token missing or invalid."}


def test_api_write_with_header_token(client):
    token = _csrf_token(client)
    login(client, "editor")
    r = client.post("/api/categories", json={"name": "News", "slug": "news"}, headers={"X-CSRF-Token": token})
    assert r.status_code == 201


def test_api_write_with_json_body_token(client):
    token = _csrf_token(client)
    login(client, "editor")
    r = client.post("/api/categories", json={"name": "News", "slug": "news", "csrf_token": token})
    assert r.status_code == 201


def test_html_form_without_token_rejected(client):
    login(client, "editor")
    r = client.post("/dashboard/categories/new", data={"name": "News", "slug": "news"})
    assert r.status_code == 400
    assert b"CSRF token missing or invalid." in r.data


def test_html_form_with_token_accepted(client):
    token = _csrf_token(client)
    login(client, "editor")
    r = client.post("/dashboard/categories/new", data={"name": "News", "slug": "news", "csrf_token": token})
    assert r.status_code == 302


def test_reads_need_no_token(client):
    assert client.get("/api/blog").status_code == 200
