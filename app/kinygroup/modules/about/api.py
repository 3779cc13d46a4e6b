from __future__ import annotations

from typing import Any

from flask import Blueprint, g, jsonify

from app.kinygroup.db import db_session
from app.kinygroup.modules.about.models import Achievement, Client, Department, JourneyItem, TeamMember
from app.kinygroup.modules.about.service import (
    RESOURCES,
    create_item,
    delete_item,
    departments_with_team,
    get_item,
    get_resource,
    list_items,
    normalize_keys,
    update_item,
)
from app.kinygroup.rbac import api_require_permission
from app.kinygroup.utils import api_errors, isoformat, json_payload

bp = Blueprint("about_api", __name__)


def _timestamps(item: Any) -> dict:
    return {"createdAt": isoformat(item.created_at), "updatedAt": isoformat(item.updated_at)}


def department_dict(d: Department) -> dict:
    return {
        "id": d.id,
        "name": d.name,
        "head": d.head,
        "description": d.description,
        "color": d.color,
        "order": d.order,
        **_timestamps(d),
    }


def team_member_dict(m: TeamMember) -> dict:
    return {
        "id": m.id,
        "name": m.name,
        "title": m.title,
        "bio": m.bio,
        "image": m.image,
        "role": m.role,
        "departmentId": m.department_id,
        "departmentName": m.department.name if m.department else None,
        "order": m.order,
        "icon": m.icon,
        "achievements": m.achievements or [],
        **_timestamps(m),
    }


def client_dict(c: Client) -> dict:
    return {"id": c.id, "name": c.name, "logoUrl": c.logo_url, "order": c.order, **_timestamps(c)}


def achievement_dict(a: Achievement) -> dict:
    return {
        "id": a.id,
        "title": a.title,
        "description": a.description,
        "icon": a.icon,
        "order": a.order,
        "featured": bool(a.featured),
        **_timestamps(a),
    }


def journey_item_dict(j: JourneyItem) -> dict:
    return {
        "id": j.id,
        "year": j.year,
        "title": j.title,
        "description": j.description,
        "imageUrl": j.image_url,
        "order": j.order,
        **_timestamps(j),
    }


_SERIALIZERS = {
    Department: department_dict,
    TeamMember: team_member_dict,
    Client: client_dict,
    Achievement: achievement_dict,
    JourneyItem: journey_item_dict,
}


def item_dict(item: Any) -> dict:
    return _SERIALIZERS[type(item)](item)


# ---------- Public ----------
@bp.get("/about/departments")
@api_errors("Fetch departments")
def public_departments():
    s = db_session()
    out = []
    for dept, members in departments_with_team(s):
        data = department_dict(dept)
        data["team"] = [team_member_dict(m) for m in members]
        out.append(data)
    return jsonify(out)


def _public_list(key: str):
    s = db_session()
    return jsonify([item_dict(i) for i in list_items(s, RESOURCES[key])])


@bp.get("/about/team-members")
@api_errors("Fetch team members")
def public_team_members():
    return _public_list("team-members")


@bp.get("/about/clients")
@api_errors("Fetch clients")
def public_clients():
    return _public_list("clients")


@bp.get("/about/achievements")
@api_errors("Fetch achievements")
def public_achievements():
    return _public_list("achievements")


@bp.get("/about/journey")
@api_errors("Fetch journey items")
def public_journey():
    return _public_list("journey")


# ---------- Dashboard ----------
_RESOURCE_PATH = "/<any(departments, 'team-members', clients, achievements, journey):resource_key>"


@bp.get(_RESOURCE_PATH)
@api_errors("Fetch items")
def items_list(resource_key: str):
    s = db_session()
    return jsonify([item_dict(i) for i in list_items(s, get_resource(resource_key))])


@bp.post(_RESOURCE_PATH)
@api_require_permission("about.edit")
@api_errors("Create item")
def items_create(resource_key: str):
    s = db_session()
    resource = get_resource(resource_key)
    item = create_item(s, resource, normalize_keys(json_payload()), g.current_user)
    s.commit()
    return jsonify({"message": f"{resource.label} created successfully", resource.json_key: item_dict(item)}), 201


@bp.get(_RESOURCE_PATH + "/<int:item_id>")
@api_errors("Fetch item")
def items_get(resource_key: str, item_id: int):
    s = db_session()
    return jsonify(item_dict(get_item(s, get_resource(resource_key), item_id)))


@bp.put(_RESOURCE_PATH + "/<int:item_id>")
@api_require_permission("about.edit")
@api_errors("Update item")
def items_update(resource_key: str, item_id: int):
    s = db_session()
    resource = get_resource(resource_key)
    item = update_item(s, resource, get_item(s, resource, item_id), normalize_keys(json_payload()), g.current_user)
    s.commit()
    return jsonify({"message": f"{resource.label} updated successfully", resource.json_key: item_dict(item)})


@bp.delete(_RESOURCE_PATH + "/<int:item_id>")
@api_require_permission("about.delete")
@api_errors("Delete item")
def items_delete(resource_key: str, item_id: int):
    s = db_session()
    resource = get_resource(resource_key)
    delete_item(s, resource, get_item(s, resource, item_id), g.current_user)
    s.commit()
    return jsonify({"message": f"{resource.label} deleted successfully"})
