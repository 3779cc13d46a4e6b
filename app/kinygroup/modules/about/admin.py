from __future__ import annotations

from flask import Blueprint, abort, flash, g, redirect, render_template, request, url_for

from app.kinygroup.constants import TEAM_MEMBER_ROLES
from app.kinygroup.db import db_session
from app.kinygroup.errors import ServiceError
from app.kinygroup.models import User
from app.kinygroup.modules.about.service import (
    RESOURCES,
    Resource,
    create_item,
    delete_item,
    get_item,
    list_items,
    update_item,
)
from app.kinygroup.rbac import require_permission

bp = Blueprint("about_admin", __name__)

_RESOURCE_PATH = "/<any(departments, 'team-members', clients, achievements, journey):resource_key>"

# (field, label, input type) per resource; drives the shared list/form templates.
FORM_FIELDS: dict[str, list[tuple[str, str, str]]] = {
    "departments": [
        ("name", "Name", "text"),
        ("head", "Head", "text"),
        ("description", "Description", "textarea"),
        ("color", "Color", "text"),
        ("order", "Order", "number"),
    ],
    "team-members": [
        ("name", "Name", "text"),
        ("title", "Title", "text"),
        ("department_id", "Department", "department"),
        ("role", "Role", "role"),
        ("bio", "Bio", "textarea"),
        ("image", "Image URL", "text"),
        ("icon", "Icon", "text"),
        ("achievements", "Achievements (one per line)", "lines"),
        ("order", "Order", "number"),
    ],
    "clients": [
        ("name", "Name", "text"),
        ("logo_url", "Logo URL", "url"),
        ("order", "Order", "number"),
    ],
    "achievements": [
        ("title", "Title", "text"),
        ("description", "Description", "textarea"),
        ("icon", "Icon", "text"),
        ("featured", "Featured", "checkbox"),
        ("order", "Order", "number"),
    ],
    "journey": [
        ("year", "Year", "text"),
        ("title", "Title", "text"),
        ("description", "Description", "textarea"),
        ("image_url", "Image URL", "url"),
        ("order", "Order", "number"),
    ],
}

LIST_COLUMNS: dict[str, list[tuple[str, str]]] = {
    "departments": [("name", "Name"), ("head", "Head"), ("order", "Order")],
    "team-members": [("name", "Name"), ("title", "Title"), ("role", "Role"), ("order", "Order")],
    "clients": [("name", "Name"), ("logo_url", "Logo URL"), ("order", "Order")],
    "achievements": [("title", "Title"), ("featured", "Featured"), ("order", "Order")],
    "journey": [("year", "Year"), ("title", "Title"), ("order", "Order")],
}

_TITLES = {
    "departments": "Departments",
    "team-members": "Team Members",
    "clients": "Clients",
    "achievements": "Achievements",
    "journey": "Journey",
}


def _current_user() -> User:
    u = getattr(g, "current_user", None)
    if not u:
        raise RuntimeError("No current user")
    return u


def _resource(resource_key: str) -> Resource:
    resource = RESOURCES.get(resource_key)
    if resource is None:
        abort(404)
    return resource


def _form_payload(resource_key: str) -> dict:
    payload = {}
    for name, _label, kind in FORM_FIELDS[resource_key]:
        if kind == "lines":
            payload[name] = (request.form.get(name) or "").splitlines()
        else:
            payload[name] = request.form.get(name)
    return payload


def _render_form(resource_key: str, item=None):
    s = db_session()
    departments = list_items(s, RESOURCES["departments"]) if resource_key == "team-members" else []
    return render_template(
        "dashboard/about/form.html",
        resource_key=resource_key,
        title=_TITLES[resource_key],
        label=RESOURCES[resource_key].label,
        fields=FORM_FIELDS[resource_key],
        item=item,
        departments=departments,
        roles=TEAM_MEMBER_ROLES,
    )


def _get_or_404(resource: Resource, item_id: int):
    try:
        return get_item(db_session(), resource, item_id)
    except ServiceError:
        abort(404)


@bp.get(_RESOURCE_PATH)
@require_permission("about.view")
def items_list(resource_key: str):
    s = db_session()
    resource = _resource(resource_key)
    return render_template(
        "dashboard/about/list.html",
        resource_key=resource_key,
        title=_TITLES[resource_key],
        label=resource.label,
        columns=LIST_COLUMNS[resource_key],
        items=list_items(s, resource),
    )


@bp.get(_RESOURCE_PATH + "/new")
@require_permission("about.edit")
def items_new_get(resource_key: str):
    _resource(resource_key)
    return _render_form(resource_key)


@bp.post(_RESOURCE_PATH + "/new")
@require_permission("about.edit")
def items_new_post(resource_key: str):
    s = db_session()
    resource = _resource(resource_key)
    try:
        create_item(s, resource, _form_payload(resource_key), _current_user())
    except ServiceError as e:
        s.rollback()
        flash(e.message, "danger")
        return redirect(url_for("about_admin.items_new_get", resource_key=resource_key))
    s.commit()
    flash(f"{resource.label} created.", "success")
    return redirect(url_for("about_admin.items_list", resource_key=resource_key))


@bp.get(_RESOURCE_PATH + "/<int:item_id>/edit")
@require_permission("about.edit")
def items_edit_get(resource_key: str, item_id: int):
    resource = _resource(resource_key)
    return _render_form(resource_key, _get_or_404(resource, item_id))


@bp.post(_RESOURCE_PATH + "/<int:item_id>/edit")
@require_permission("about.edit")
def items_edit_post(resource_key: str, item_id: int):
    s = db_session()
    resource = _resource(resource_key)
    item = _get_or_404(resource, item_id)
    try:
        update_item(s, resource, item, _form_payload(resource_key), _current_user())
    except ServiceError as e:
        s.rollback()
        flash(e.message, "danger")
        return redirect(url_for("about_admin.items_edit_get", resource_key=resource_key, item_id=item_id))
    s.commit()
    flash(f"{resource.label} updated.", "success")
    return redirect(url_for("about_admin.items_list", resource_key=resource_key))


@bp.post(_RESOURCE_PATH + "/<int:item_id>/delete")
@require_permission("about.delete")
def items_delete(resource_key: str, item_id: int):
    s = db_session()
    resource = _resource(resource_key)
    item = _get_or_404(resource, item_id)
    try:
        delete_item(s, resource, item, _current_user())
    except ServiceError as e:
        s.rollback()
        flash(e.message, "danger")
        return redirect(url_for("about_admin.items_list", resource_key=resource_key))
    s.commit()
    flash(f"{resource.label} deleted.", "success")
    return redirect(url_for("about_admin.items_list", resource_key=resource_key))
