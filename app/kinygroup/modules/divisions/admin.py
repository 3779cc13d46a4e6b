from __future__ import annotations

from flask import Blueprint, abort, flash, g, redirect, render_template, request, url_for

from app.kinygroup.db import db_session
from app.kinygroup.errors import PermissionDeniedError, ServiceError
from app.kinygroup.models import User
from app.kinygroup.modules.divisions.models import BrandDivision
from app.kinygroup.modules.divisions.service import (
    STAT_KEYS,
    can_edit_division,
    create_activity,
    create_division,
    delete_activity,
    delete_division,
    get_activity,
    list_divisions,
    toggle_featured,
    update_division,
)
from app.kinygroup.rbac import require_permission

bp = Blueprint("divisions_admin", __name__)


def _current_user() -> User:
    u = getattr(g, "current_user", None)
    if not u:
        raise RuntimeError("No current user")
    return u


def _pairs(raw: str | None, second: str) -> list[dict[str, str]]:
    """Parse ``Name | Other`` lines from a textarea."""
    out = []
    for line in (raw or "").splitlines():
        if not line.strip():
            continue
        name, _, rest = line.partition("|")
        out.append({"name": name.strip(), second: rest.strip()})
    return out


def _lines(raw: str | None) -> list[str]:
    return [line.strip() for line in (raw or "").splitlines() if line.strip()]


def _division_form() -> dict:
    return {
        "name": request.form.get("name"),
        "slug": request.form.get("slug"),
        "tagline": request.form.get("tagline"),
        "description": request.form.get("description"),
        "full_description": request.form.get("full_description"),
        "coverage": request.form.get("coverage"),
        "delivery": request.form.get("delivery"),
        "background_image": request.form.get("background_image"),
        "logo": request.form.get("logo"),
        "color": request.form.get("color"),
        "featured": request.form.get("featured"),
        "stats": {k: request.form.get(f"stats_{k}") for k in STAT_KEYS},
        "services": _pairs(request.form.get("services"), "description"),
        "achievements": _lines(request.form.get("achievements")),
        "team": _pairs(request.form.get("team"), "position"),
    }


def _get_or_404(division_id: int) -> BrandDivision:
    division = db_session().get(BrandDivision, division_id)
    if not division:
        abort(404)
    return division


def _editable(division_id: int) -> BrandDivision:
    division = _get_or_404(division_id)
    if not can_edit_division(_current_user(), division):
        g.missing_permission = "divisions.edit_any"
        abort(403)
    return division


@bp.get("/divisions")
@require_permission("divisions.view")
def divisions_list():
    s = db_session()
    u = _current_user()
    divisions = list_divisions(s)
    editable = {d.id for d in divisions if can_edit_division(u, d)}
    return render_template("dashboard/divisions/list.html", divisions=divisions, editable=editable)


@bp.get("/divisions/new")
@require_permission("divisions.create")
def divisions_new_get():
    return render_template("dashboard/divisions/form.html", division=None, stat_keys=STAT_KEYS)


@bp.post("/divisions/new")
@require_permission("divisions.create")
def divisions_new_post():
    s = db_session()
    try:
        division = create_division(s, _division_form(), _current_user())
    except ServiceError as e:
        s.rollback()
        flash(e.message, "danger")
        return redirect(url_for("divisions_admin.divisions_new_get"))
    s.commit()
    flash("Division created.", "success")
    return redirect(url_for("divisions_admin.divisions_edit_get", division_id=division.id))


@bp.get("/divisions/<int:division_id>/edit")
@require_permission("divisions.edit")
def divisions_edit_get(division_id: int):
    division = _editable(division_id)
    return render_template("dashboard/divisions/form.html", division=division, stat_keys=STAT_KEYS)


@bp.post("/divisions/<int:division_id>/edit")
@require_permission("divisions.edit")
def divisions_edit_post(division_id: int):
    s = db_session()
    division = _editable(division_id)
    try:
        update_division(s, division, _division_form(), _current_user())
    except ServiceError as e:
        s.rollback()
        flash(e.message, "danger")
        return redirect(url_for("divisions_admin.divisions_edit_get", division_id=division_id))
    s.commit()
    flash("Division updated.", "success")
    return redirect(url_for("divisions_admin.divisions_list"))


@bp.post("/divisions/<int:division_id>/toggle-featured")
@require_permission("divisions.edit")
def divisions_toggle_featured(division_id: int):
    s = db_session()
    division = _editable(division_id)
    toggle_featured(s, division, _current_user())
    s.commit()
    flash("Division featured." if division.featured else "Division unfeatured.", "success")
    return redirect(url_for("divisions_admin.divisions_list"))


@bp.post("/divisions/<int:division_id>/delete")
@require_permission("divisions.delete")
def divisions_delete(division_id: int):
    s = db_session()
    division = _get_or_404(division_id)
    delete_division(s, division, _current_user())
    s.commit()
    flash("Division deleted.", "success")
    return redirect(url_for("divisions_admin.divisions_list"))


# ---------- Activities ----------
@bp.post("/divisions/<int:division_id>/activities")
@require_permission("divisions.edit")
def activities_add(division_id: int):
    s = db_session()
    division = _editable(division_id)
    payload = {k: request.form.get(k) for k in ("title", "description", "image_url", "order")}
    try:
        create_activity(s, division, payload, _current_user())
    except ServiceError as e:
        s.rollback()
        flash(e.message, "danger")
        return redirect(url_for("divisions_admin.divisions_edit_get", division_id=division_id))
    s.commit()
    flash("Activity added.", "success")
    return redirect(url_for("divisions_admin.divisions_edit_get", division_id=division_id))


@bp.post("/activities/<int:activity_id>/delete")
@require_permission("divisions.edit")
def activities_delete(activity_id: int):
    s = db_session()
    try:
        activity = get_activity(s, activity_id)
    except ServiceError:
        abort(404)
    division_id = activity.brand_division_id
    try:
        delete_activity(s, activity, _current_user())
    except PermissionDeniedError:
        abort(403)
    s.commit()
    flash("Activity deleted.", "success")
    return redirect(url_for("divisions_admin.divisions_edit_get", division_id=division_id))
