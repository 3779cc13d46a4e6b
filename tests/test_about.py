from conftest import login


def _department(client, name="Education Services", order=0) -> int:
    r = client.post("/api/departments", json={"name": name, "head": "Dr. Sarah Wijaya", "order": order})
    assert r.status_code == 201, r.json
    return r.json["department"]["id"]


def test_department_requires_name(client):
    login(client, "editor")
    r = client.post("/api/departments", json={"head": "Nobody"})
    assert r.status_code == 400
    assert r.json["error"] == "Name is required"


def test_team_member_validation(client):
    login(client, "editor")
    dept_id = _department(client)

    r = client.post("/api/team-members", json={"name": "Andi", "title": "CEO"})
    assert r.status_code == 400
    assert r.json["error"] == "Name, title, and department ID are required"

    r = client.post("/api/team-members", json={"name": "Andi", "title": "CEO", "departmentId": 999})
    assert r.json["error"] == "Department not found"

    r = client.post(
        "/api/team-members",
        json={"name": "Andi", "title": "CEO", "departmentId": dept_id, "role": "boss"},
    )
    assert r.status_code == 400
    assert r.json["error"].startswith("Invalid role.")

    r = client.post(
        "/api/team-members",
        json={"name": "Andi", "title": "CEO", "departmentId": dept_id, "role": "founder", "achievements": ["A", " ", "B"]},
    )
    assert r.status_code == 201
    assert r.json["teamMember"]["achievements"] == ["A", "B"]
    assert r.json["teamMember"]["departmentName"] == "Education Services"


def test_client_and_journey_urls_validated(client):
    login(client, "editor")
    r = client.post("/api/clients", json={"name": "UNESCO", "logoUrl": "not-a-url"})
    assert r.status_code == 400
    assert r.json["error"] == "Invalid logo URL format"

    r = client.post("/api/clients", json={"name": "UNESCO", "logoUrl": "https://example.com/logo.svg"})
    assert r.status_code == 201

    r = client.post(
        "/api/journey",
        json={"year": "2015", "title": "Start", "description": "Founded", "imageUrl": "ftp://x.example.com/a.jpg"},
    )
    assert r.json["error"] == "Invalid image URL format"


def test_departments_listed_with_team_in_order(client):
    login(client, "editor")
    second = _department(client, "Cultural Exchange", order=1)
    first = _department(client, "Education Services", order=0)
    for name, order in (("B", 1), ("A", 0)):
        client.post("/api/team-members", json={"name": name, "title": "Staff", "departmentId": first, "order": order})
    client.get("/auth/logout")

    r = client.get("/api/about/departments")
    assert [d["id"] for d in r.json] == [first, second]
    assert [m["name"] for m in r.json[0]["team"]] == ["A", "B"]
    assert r.json[1]["team"] == []


def test_department_with_members_cannot_be_deleted(client):
    login(client, "editor")
    dept_id = _department(client)
    client.post("/api/team-members", json={"name": "Andi", "title": "CEO", "departmentId": dept_id})
    # Editors cannot delete at all
    assert client.delete(f"/api/departments/{dept_id}").status_code == 403
    client.get("/auth/logout")

    login(client, "admin")
    r = client.delete(f"/api/departments/{dept_id}")
    assert r.status_code == 409


def test_achievement_update_and_delete(client):
    login(client, "admin")
    r = client.post("/api/achievements", json={"title": "Certified", "icon": "Award", "featured": True})
    assert r.status_code == 201
    item_id = r.json["achievement"]["id"]

    r = client.put(f"/api/achievements/{item_id}", json={"title": "Certified Worldwide", "featured": False})
    assert r.json["achievement"]["title"] == "Certified Worldwide"
    assert r.json["achievement"]["featured"] is False

    r = client.delete(f"/api/achievements/{item_id}")
    assert r.json == {"message": "Achievement deleted successfully"}
    assert client.get(f"/api/achievements/{item_id}").status_code == 404


def test_about_page_renders_content(client):
    login(client, "editor")
    _department(client)
    client.get("/auth/logout")
    r = client.get("/about")
    assert r.status_code == 200
    assert b"Education Services" in r.data


def test_dashboard_forms_create_edit_and_delete(client):
    login(client, "editor")
    r = client.post("/dashboard/departments/new", data={"name": "Education Services", "head": "Dr. Sarah Wijaya", "order": "0"})
    assert r.status_code == 302
    assert r.headers["Location"].endswith("/dashboard/departments")
    dept = client.get("/api/departments").json[0]
    assert dept["head"] == "Dr. Sarah Wijaya"

    r = client.post("/dashboard/departments/new", data={"head": "Nobody"}, follow_redirects=True)
    assert b"Name is required" in r.data

    r = client.post(
        "/dashboard/team-members/new",
        data={"name": "Andi", "title": "CEO", "department_id": str(dept["id"]), "role": "founder", "achievements": "Award A\n\nAward B"},
    )
    assert r.status_code == 302
    member = client.get("/api/team-members").json[0]
    assert member["achievements"] == ["Award A", "Award B"]

    r = client.post(f"/dashboard/departments/{dept['id']}/edit", data={"name": "Education", "head": "Dr. Sarah Wijaya"})
    assert r.status_code == 302
    assert client.get(f"/api/departments/{dept['id']}").json["name"] == "Education"

    r = client.get("/dashboard/departments")
    assert r.status_code == 200
    assert b"Education" in r.data

    assert client.post(f"/dashboard/departments/{dept['id']}/delete").status_code == 403
    client.get("/auth/logout")

    login(client, "admin")
    r = client.post(f"/dashboard/departments/{dept['id']}/delete", follow_redirects=True)
    assert b"Cannot delete a department that still has team members" in r.data

    assert client.post(f"/dashboard/team-members/{member['id']}/delete").status_code == 302
    assert client.post(f"/dashboard/departments/{dept['id']}/delete").status_code == 302
    assert client.get("/api/departments").json == []
