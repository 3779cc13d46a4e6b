from __future__ import annotations

from flask import Blueprint, g, jsonify, request

from app.kinygroup.db import db_session
from app.kinygroup.modules.divisions.models import BrandActivity, BrandDivision
from app.kinygroup.modules.divisions.service import (
    create_activity,
    create_division,
    delete_activity,
    delete_division,
    get_activity,
    get_division,
    get_division_by_slug,
    list_activities,
    list_divisions,
    normalize_keys,
    reorder_activities,
    toggle_featured,
    update_activity,
    update_division,
    validate_slug,
)
from app.kinygroup.modules.divisions.theme import theme_colors
from app.kinygroup.rbac import api_require_permission
from app.kinygroup.utils import api_errors, isoformat, json_payload, parse_bool, parse_int

bp = Blueprint("divisions_api", __name__)


def activity_dict(a: BrandActivity) -> dict:
    return {
        "id": a.id,
        "brandDivisionId": a.brand_division_id,
        "title": a.title,
        "description": a.description,
        "imageUrl": a.image_url,
        "order": a.order,
        "createdAt": isoformat(a.created_at),
        "updatedAt": isoformat(a.updated_at),
    }


def division_dict(d: BrandDivision, *, with_activities: bool = False) -> dict:
    out = {
        "id": d.id,
        "name": d.name,
        "slug": d.slug,
        "tagline": d.tagline,
        "description": d.description,
        "fullDescription": d.full_description,
        "coverage": d.coverage,
        "delivery": d.delivery,
        "backgroundImage": d.background_image,
        "logo": d.logo,
        "color": d.color,
        "stats": d.stats or {},
        "services": d.services or [],
        "achievements": d.achievements or [],
        "team": d.team or [],
        "theme": theme_colors(d),
        "featured": bool(d.featured),
        "authorId": d.author_id,
        "createdAt": isoformat(d.created_at),
        "updatedAt": isoformat(d.updated_at),
    }
    if with_activities:
        out["activities"] = [activity_dict(a) for a in d.activities]
    return out


# ---------- Public ----------
@bp.get("/brand")
@api_errors("Fetch brands")
def brand_list():
    s = db_session()
    featured_only = parse_bool(request.args.get("featured"))
    return jsonify([division_dict(d) for d in list_divisions(s, featured_only=featured_only)])


@bp.get("/brand/<int:division_id>")
@api_errors("Fetch brand")
def brand_get(division_id: int):
    s = db_session()
    return jsonify(division_dict(get_division(s, division_id), with_activities=True))


@bp.get("/brand/slug/<slug>")
@api_errors("Fetch brand")
def brand_by_slug(slug: str):
    s = db_session()
    return jsonify(division_dict(get_division_by_slug(s, slug), with_activities=True))


# ---------- Dashboard: divisions ----------
@bp.get("/divisions")
@api_errors("Fetch divisions")
def divisions_list():
    s = db_session()
    return jsonify([division_dict(d) for d in list_divisions(s)])


@bp.post("/divisions")
@api_require_permission("divisions.create")
@api_errors("Create division")
def divisions_create():
    s = db_session()
    division = create_division(s, normalize_keys(json_payload()), g.current_user)
    s.commit()
    return jsonify(division_dict(division)), 201


@bp.post("/divisions/validate-slug")
def divisions_validate_slug():
    """Always 200; the body says whether the slug can be used."""
    s = db_session()
    data = normalize_keys(request.get_json(silent=True) or {})
    available, error = validate_slug(s, data.get("slug"), parse_int(data.get("current_id")))
    body = {"available": available}
    if error:
        body["error"] = error
    return jsonify(body), 200


@bp.get("/divisions/slug/<slug>")
@api_errors("Fetch division")
def divisions_by_slug(slug: str):
    s = db_session()
    return jsonify(division_dict(get_division_by_slug(s, slug), with_activities=True))


@bp.get("/divisions/<int:division_id>")
@api_errors("Fetch division")
def divisions_get(division_id: int):
    s = db_session()
    return jsonify(division_dict(get_division(s, division_id), with_activities=True))


@bp.put("/divisions/<int:division_id>")
@api_require_permission("divisions.edit")
@api_errors("Update division")
def divisions_update(division_id: int):
    s = db_session()
    division = update_division(s, get_division(s, division_id), normalize_keys(json_payload()), g.current_user)
    s.commit()
    return jsonify(division_dict(division))


@bp.patch("/divisions/<int:division_id>/toggle-featured")
@api_require_permission("divisions.edit")
@api_errors("Toggle featured")
def divisions_toggle_featured(division_id: int):
    s = db_session()
    division = toggle_featured(s, get_division(s, division_id), g.current_user)
    s.commit()
    return jsonify(division_dict(division))


@bp.delete("/divisions/<int:division_id>")
@api_require_permission("divisions.delete")
@api_errors("Delete division")
def divisions_delete(division_id: int):
    s = db_session()
    delete_division(s, get_division(s, division_id), g.current_user)
    s.commit()
    return jsonify({"success": True})


# ---------- Dashboard: activities ----------
@bp.get("/divisions/<int:division_id>/activities")
@api_errors("Fetch activities")
def activities_list(division_id: int):
    s = db_session()
    return jsonify([activity_dict(a) for a in list_activities(s, get_division(s, division_id))])


@bp.post("/divisions/<int:division_id>/activities")
@api_require_permission("divisions.edit")
@api_errors("Create activity")
def activities_create(division_id: int):
    s = db_session()
    activity = create_activity(s, get_division(s, division_id), normalize_keys(json_payload()), g.current_user)
    s.commit()
    return jsonify(activity_dict(activity)), 201


@bp.put("/divisions/<int:division_id>/activities")
@api_require_permission("divisions.edit")
@api_errors("Reorder activities")
def activities_reorder(division_id: int):
    s = db_session()
    data = json_payload()
    reorder_activities(s, get_division(s, division_id), data.get("activityIds"), g.current_user)
    s.commit()
    return jsonify({"success": True})


@bp.put("/activities/<int:activity_id>")
@api_require_permission("divisions.edit")
@api_errors("Update activity")
def activities_update(activity_id: int):
    s = db_session()
    activity = update_activity(s, get_activity(s, activity_id), normalize_keys(json_payload()), g.current_user)
    s.commit()
    return jsonify(activity_dict(activity))


@bp.delete("/activities/<int:activity_id>")
@api_require_permission("divisions.edit")
@api_errors("Delete activity")
def activities_delete(activity_id: int):
    s = db_session()
    delete_activity(s, get_activity(s, activity_id), g.current_user)
    s.commit()
    return jsonify({"success": True})
