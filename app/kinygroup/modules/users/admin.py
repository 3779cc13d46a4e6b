from __future__ import annotations

from flask import Blueprint, abort, flash, g, redirect, render_template, request, url_for

from app.kinygroup.constants import USER_ROLES
from app.kinygroup.db import db_session
from app.kinygroup.errors import ServiceError
from app.kinygroup.models import User
from app.kinygroup.modules.users.service import create_user, delete_user, get_user, list_users, update_user
from app.kinygroup.rbac import require_permission

bp = Blueprint("users_admin", __name__)


def _current_user() -> User:
    u = getattr(g, "current_user", None)
    if not u:
        raise RuntimeError("No current user")
    return u


def _get_or_404(user_id: int) -> User:
    try:
        return get_user(db_session(), user_id)
    except ServiceError:
        abort(404)


@bp.get("/users")
@require_permission("users.view")
def users_list():
    s = db_session()
    return render_template("dashboard/users/list.html", users=list_users(s))


@bp.get("/users/new")
@require_permission("users.manage")
def users_new_get():
    return render_template("dashboard/users/form.html", account=None, roles=USER_ROLES)


@bp.post("/users/new")
@require_permission("users.manage")
def users_new_post():
    s = db_session()
    payload = {k: request.form.get(k) for k in ("name", "email", "password", "role")}
    if payload["password"] != (request.form.get("password_confirm") or ""):
        flash("Passwords do not match.", "danger")
        return redirect(url_for("users_admin.users_new_get"))
    try:
        user = create_user(s, payload, _current_user())
    except ServiceError as e:
        s.rollback()
        flash(e.message, "danger")
        return redirect(url_for("users_admin.users_new_get"))
    s.commit()
    flash(f"Account created for {user.email}.", "success")
    return redirect(url_for("users_admin.users_list"))


@bp.get("/users/<int:user_id>/edit")
@require_permission("users.manage")
def users_edit_get(user_id: int):
    return render_template("dashboard/users/form.html", account=_get_or_404(user_id), roles=USER_ROLES)


@bp.post("/users/<int:user_id>/edit")
@require_permission("users.manage")
def users_edit_post(user_id: int):
    s = db_session()
    user = _get_or_404(user_id)
    payload = {k: request.form.get(k) for k in ("name", "email", "password", "role")}
    payload["is_active"] = request.form.get("is_active")
    try:
        update_user(s, user, payload, _current_user())
    except ServiceError as e:
        s.rollback()
        flash(e.message, "danger")
        return redirect(url_for("users_admin.users_edit_get", user_id=user_id))
    s.commit()
    flash(f"Account updated for {user.email}.", "success")
    return redirect(url_for("users_admin.users_list"))


@bp.post("/users/<int:user_id>/delete")
@require_permission("users.manage")
def users_delete(user_id: int):
    s = db_session()
    user = _get_or_404(user_id)
    try:
        delete_user(s, user, _current_user())
    except ServiceError as e:
        s.rollback()
        flash(e.message, "danger")
        return redirect(url_for("users_admin.users_list"))
    s.commit()
    flash("Account deleted.", "success")
    return redirect(url_for("users_admin.users_list"))
