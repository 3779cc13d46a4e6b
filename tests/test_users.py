from app.kinygroup.db import session_scope
from app.kinygroup.models import User
from app.kinygroup.rbac import permissions_for_role
from conftest import PASSWORD, login, make_post


def test_role_permissions_are_cumulative():
    reader = permissions_for_role("reader")
    contributor = permissions_for_role("contributor")
    editor = permissions_for_role("editor")
    admin = permissions_for_role("admin")
    assert reader < contributor < editor < admin
    assert "posts.publish" not in contributor
    assert "users.manage" not in editor
    assert permissions_for_role("nobody") == frozenset()


def test_users_api_admin_only(client):
    login(client, "editor")
    assert client.get("/api/users").status_code == 403
    client.get("/auth/logout")

    login(client, "admin")
    r = client.get("/api/users")
    assert r.status_code == 200
    assert {u["email"] for u in r.json} >= {"admin@example.com", "reader@example.com"}


def test_admin_creates_and_updates_user(client):
    login(client, "admin")
    r = client.post("/api/users", json={"name": "Writer", "email": "writer@example.com", "password": "123", "role": "contributor"})
    assert r.status_code == 400

    r = client.post("/api/users", json={"name": "Writer", "email": "writer@example.com", "password": "123456", "role": "contributor"})
    assert r.status_code == 201
    user_id = r.json["id"]

    r = client.post("/api/users", json={"email": "writer@example.com", "password": "123456"})
    assert r.status_code == 409

    r = client.put(f"/api/users/{user_id}", json={"role": "editor", "isActive": False})
    assert r.json["role"] == "editor"
    assert r.json["isActive"] is False

    r = client.put(f"/api/users/{user_id}", json={"role": "superuser"})
    assert r.status_code == 400


def test_admin_cannot_demote_or_delete_self(client, user_ids):
    login(client, "admin")
    admin_id = user_ids["admin"]
    r = client.put(f"/api/users/{admin_id}", json={"role": "reader"})
    assert r.status_code == 403
    r = client.delete(f"/api/users/{admin_id}")
    assert r.status_code == 403


def test_deleting_user_reassigns_posts(app, client, user_ids):
    login(client, "contributor")
    make_post(client, slug="orphan-soon")
    client.get("/auth/logout")

    login(client, "admin")
    r = client.delete(f"/api/users/{user_ids['contributor']}")
    assert r.status_code == 200
    r = client.get("/api/posts")
    assert [p["authorId"] for p in r.json["posts"]] == [user_ids["admin"]]


def test_change_own_password(app, client):
    r = client.post("/api/user/change-password", json={"currentPassword": PASSWORD, "newPassword": "brand-new-pw"})
    assert r.status_code == 401

    login(client, "reader")
    r = client.post("/api/user/change-password", json={"currentPassword": "wrong", "newPassword": "brand-new-pw"})
    assert r.status_code == 400
    assert r.json["error"] == "Current password is incorrect"

    r = client.post("/api/user/change-password", json={"currentPassword": PASSWORD, "newPassword": "short"})
    assert r.json["error"] == "New password must be at least 8 characters long"

    r = client.post("/api/user/change-password", json={"currentPassword": PASSWORD, "newPassword": "brand-new-pw"})
    assert r.status_code == 200

    client.get("/auth/logout")
    r = login(client, "reader", password="brand-new-pw")
    assert r.headers["Location"].endswith("/")


def test_profile_form_password_mismatch(client):
    login(client, "reader")
    assert client.get("/dashboard/profile").status_code == 200
    r = client.post(
        "/dashboard/profile",
        data={"current_password": PASSWORD, "new_password": "abcdefgh", "confirm_password": "abcdefgX"},
        follow_redirects=True,
    )
    assert b"New passwords do not match" in r.data


def test_admin_users_page(app, client):
    login(client, "admin")
    r = client.get("/dashboard/users")
    assert r.status_code == 200
    assert b"reader@example.com" in r.data

    with session_scope(app) as s:
        reader = s.query(User).filter(User.email == "reader@example.com").one()
        reader_id = reader.id
    r = client.post(f"/dashboard/users/{reader_id}/delete")
    assert r.status_code == 302
