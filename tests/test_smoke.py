from conftest import login


def test_health_ok(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json["ok"] is True


def test_healthz_plain(client):
    r = client.get("/healthz")
    assert r.status_code == 200
    assert r.data == b"ok"


def test_public_pages_render(client):
    for path in ("/", "/about", "/brand", "/blog", "/contact"):
        r = client.get(path)
        assert r.status_code == 200, path


def test_unknown_page_404(client):
    r = client.get("/does-not-exist")
    assert r.status_code == 404


def test_unknown_api_path_returns_json_404(client):
    r = client.get("/api/nothing-here")
    assert r.status_code == 404
    assert r.json == {"error": "Not found"}


def test_login_and_dashboard_access(client):
    # Anonymous is sent to the login page
    r = client.get("/dashboard")
    assert r.status_code == 302
    assert "/auth/login" in r.headers["Location"]

    r = login(client, "admin")
    assert r.status_code == 302
    assert r.headers["Location"].endswith("/dashboard")

    r = client.get("/dashboard")
    assert r.status_code == 200
    assert b"Dashboard" in r.data
