"""Brand divisions, their activities, theme helpers and the showcase carousel."""
from app.kinygroup.modules.divisions.theme import (
    carousel_slide_style,
    generate_theme_from_color,
    theme_colors,
    theme_css_variables,
    wrap_index,
)
from conftest import login, make_division


def test_validate_slug_always_200(client):
    r = client.post("/api/divisions/validate-slug", json={"slug": ""})
    assert r.status_code == 200
    assert r.json == {"available": False, "error": "Slug is required"}

    r = client.post("/api/divisions/validate-slug", json={"slug": "Not Valid"})
    assert r.status_code == 200
    assert r.json["available"] is False

    login(client, "editor")
    division = make_division(client)
    r = client.post("/api/divisions/validate-slug", json={"slug": "kiny-tours"})
    assert r.json == {"available": False, "error": "This slug is already in use"}
    r = client.post("/api/divisions/validate-slug", json={"slug": "kiny-tours", "currentId": division["id"]})
    assert r.json == {"available": True}


def test_create_division_derives_theme(client):
    login(client, "editor")
    d = make_division(client, stats={"label1": "Countries", "value1": "167", "junk": "x"})
    assert d["theme"]["primary"] == "#3B82F6"
    assert d["theme"]["bg"] == "#3B82F61A"
    assert d["stats"] == {"label1": "Countries", "value1": "167"}

    r = client.post("/api/divisions", json={"name": "Dup", "slug": "kiny-tours", "description": "x"})
    assert r.status_code == 409

    r = client.post("/api/divisions", json={"name": "", "slug": "empty", "description": "x"})
    assert r.status_code == 400
    assert r.json["error"] == "Name, slug, and description are required."


def test_contributor_cannot_create_division(client):
    login(client, "contributor")
    r = client.post("/api/divisions", json={"name": "X", "slug": "x", "description": "x"})
    assert r.status_code == 403


def test_partial_update_keeps_other_fields(client):
    login(client, "editor")
    d = make_division(client, tagline="Travel the world")
    r = client.put(f"/api/divisions/{d['id']}", json={"coverage": "167 Countries"})
    assert r.status_code == 200
    assert r.json["coverage"] == "167 Countries"
    assert r.json["tagline"] == "Travel the world"
    assert r.json["name"] == "Kiny Tours"


def test_color_change_regenerates_theme(client):
    login(client, "editor")
    d = make_division(client)
    r = client.put(f"/api/divisions/{d['id']}", json={"color": "#10B981"})
    assert r.json["theme"]["primary"] == "#10B981"


def test_editor_only_edits_own_division(client):
    login(client, "admin")
    d = make_division(client, slug="admins-division")
    client.get("/auth/logout")

    login(client, "editor")
    r = client.put(f"/api/divisions/{d['id']}", json={"tagline": "Mine now"})
    assert r.status_code == 403
    r = client.patch(f"/api/divisions/{d['id']}/toggle-featured")
    assert r.status_code == 403
    client.get("/auth/logout")

    login(client, "admin")
    r = client.patch(f"/api/divisions/{d['id']}/toggle-featured")
    assert r.status_code == 200
    assert r.json["featured"] is True


def test_delete_is_admin_only(client):
    login(client, "editor")
    d = make_division(client)
    r = client.delete(f"/api/divisions/{d['id']}")
    assert r.status_code == 403
    client.get("/auth/logout")

    login(client, "admin")
    r = client.delete(f"/api/divisions/{d['id']}")
    assert r.status_code == 200
    assert client.get(f"/api/divisions/{d['id']}").status_code == 404


def test_activities_ordering_and_reorder(client):
    login(client, "editor")
    d = make_division(client)
    ids = []
    for title in ("One", "Two", "Three"):
        r = client.post(
            f"/api/divisions/{d['id']}/activities",
            json={"title": title, "description": "d", "imageUrl": "https://img.example.com/a.jpg"},
        )
        assert r.status_code == 201
        ids.append(r.json["id"])
    assert [a["order"] for a in client.get(f"/api/divisions/{d['id']}/activities").json] == [0, 1, 2]

    r = client.put(f"/api/divisions/{d['id']}/activities", json={"activityIds": [ids[2], ids[0], ids[1]]})
    assert r.status_code == 200
    r = client.get("/api/brand/slug/kiny-tours")
    assert [a["title"] for a in r.json["activities"]] == ["Three", "One", "Two"]

    r = client.put(f"/api/divisions/{d['id']}/activities", json={"activityIds": "nope"})
    assert r.status_code == 400

    r = client.post(f"/api/divisions/{d['id']}/activities", json={"title": "Missing"})
    assert r.status_code == 400

    r = client.put(f"/api/activities/{ids[0]}", json={"title": ""})
    assert r.status_code == 400

    r = client.delete(f"/api/activities/{ids[1]}")
    assert r.status_code == 200
    assert len(client.get(f"/api/divisions/{d['id']}/activities").json) == 2


def test_public_brand_listing_and_pages(client):
    login(client, "editor")
    make_division(client, featured=True)
    make_division(client, name="Kiny Edu", slug="kiny-edu")
    client.get("/auth/logout")

    r = client.get("/api/brand?featured=true")
    assert [d["slug"] for d in r.json] == ["kiny-tours"]

    r = client.get("/brand?active=1")
    assert r.status_code == 200
    r = client.get("/brand/kiny-edu")
    assert r.status_code == 200
    assert b"--theme-primary" in r.data
    assert client.get("/brand/nope").status_code == 404


def test_generate_theme_from_color():
    theme = generate_theme_from_color("#ff0000")
    assert theme["border"] == "#ff000033"
    assert theme["gradient"] == "linear-gradient(135deg, #ff0000 0%, #ff0000CC 100%)"


class _Division:
    def __init__(self, color=None, theme=None):
        self.color = color
        self.theme = theme


def test_theme_colors_fill_missing_from_color():
    colors = theme_colors(_Division(color="#123456", theme={"primary": "#000000"}))
    assert colors["primary"] == "#000000"
    assert colors["bg"] == "#1234561A"

    default = theme_colors(_Division())
    assert default["primary"] == "#3b82f6"
    assert "--theme-bg-solid: #3b82f60D" in theme_css_variables(_Division())


def test_carousel_positions():
    assert wrap_index(-1, 5) == 4
    assert wrap_index(7, 0) == 0

    active = carousel_slide_style(2, 2, 5)
    assert active["left"] == "50%"
    assert active["z_index"] == 50

    assert carousel_slide_style(3, 2, 5)["left"] == "72%"
    assert carousel_slide_style(1, 2, 5)["left"] == "28%"
    assert carousel_slide_style(4, 2, 5)["left"] == "88%"
    assert carousel_slide_style(0, 2, 5)["left"] == "12%"

    hidden = carousel_slide_style(5, 0, 9)
    assert hidden["opacity"] == 0
    assert hidden["left"] == "-25%"
    assert carousel_slide_style(3, 0, 9)["left"] == "125%"


def _form(**overrides) -> dict:
    data = {
        "name": "Kiny Tours",
        "slug": "kiny-tours",
        "description": "Travel and MICE services.",
        "tagline": "Travel the world",
        "color": "#3B82F6",
        "stats_label1": "Countries",
        "stats_value1": "167",
    }
    data.update(overrides)
    return data


def test_dashboard_form_creates_and_edits_division(client):
    login(client, "editor")
    r = client.post("/dashboard/divisions/new", data=_form())
    assert r.status_code == 302
    d = client.get("/api/divisions/slug/kiny-tours").json
    assert d["tagline"] == "Travel the world"
    assert d["stats"] == {"label1": "Countries", "value1": "167"}
    assert d["theme"]["primary"] == "#3B82F6"
    assert r.headers["Location"].endswith(f"/dashboard/divisions/{d['id']}/edit")

    r = client.post("/dashboard/divisions/new", data=_form(name="Copy"), follow_redirects=True)
    assert b"This slug is already in use" in r.data

    r = client.post(f"/dashboard/divisions/{d['id']}/edit", data=_form(tagline="Go further"))
    assert r.status_code == 302
    assert client.get(f"/api/divisions/{d['id']}").json["tagline"] == "Go further"


def test_dashboard_edit_keeps_custom_theme(client):
    login(client, "editor")
    d = make_division(client)
    r = client.put(f"/api/divisions/{d['id']}", json={"theme": {"primary": "#FF0000"}})
    assert r.json["theme"]["primary"] == "#FF0000"

    r = client.post(f"/dashboard/divisions/{d['id']}/edit", data=_form(tagline="Unchanged colour"))
    assert r.status_code == 302
    theme = client.get(f"/api/divisions/{d['id']}").json["theme"]
    assert theme["primary"] == "#FF0000"

    r = client.post(f"/dashboard/divisions/{d['id']}/edit", data=_form(color="#10B981"))
    assert r.status_code == 302
    theme = client.get(f"/api/divisions/{d['id']}").json["theme"]
    assert theme["primary"] == "#10B981"
    assert theme["bg"] == "#10B9811A"


def test_dashboard_activity_forms_and_delete(client):
    login(client, "editor")
    d = make_division(client)
    r = client.post(
        f"/dashboard/divisions/{d['id']}/activities",
        data={"title": "City tour", "description": "Jakarta", "image_url": "https://img.example.com/t.jpg"},
    )
    assert r.status_code == 302
    activities = client.get(f"/api/divisions/{d['id']}/activities").json
    assert [a["title"] for a in activities] == ["City tour"]

    r = client.post(f"/dashboard/divisions/{d['id']}/activities", data={"title": "No body"}, follow_redirects=True)
    assert b"Title, description, and image URL are required." in r.data

    r = client.post(f"/dashboard/activities/{activities[0]['id']}/delete")
    assert r.status_code == 302
    assert client.get(f"/api/divisions/{d['id']}/activities").json == []

    r = client.post(f"/dashboard/divisions/{d['id']}/delete")
    assert r.status_code == 403
    client.get("/auth/logout")

    login(client, "admin")
    r = client.post(f"/dashboard/divisions/{d['id']}/delete")
    assert r.status_code == 302
    assert client.get(f"/api/divisions/{d['id']}").status_code == 404
