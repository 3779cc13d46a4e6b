from __future__ import annotations

import uuid
from datetime import datetime, timedelta

from flask import Blueprint, current_app, flash, g, redirect, render_template, request, session, url_for
from werkzeug.security import check_password_hash

from app.kinygroup.audit import record_event
from app.kinygroup.constants import ROLE_CONTRIBUTOR
from app.kinygroup.db import db_session
from app.kinygroup.errors import ServiceError
from app.kinygroup.models import User, utcnow
from app.kinygroup.modules.users.service import get_user_by_email, register_reader
from app.kinygroup.rbac import user_has_min_role
from app.kinygroup.utils import is_safe_next

bp = Blueprint("auth", __name__)
_login_attempts: dict[str, list[datetime]] = {}
_LOGIN_RATE_LIMIT = 5
_LOGIN_RATE_WINDOW = 300  # seconds


def _check_rate_limit(ip: str) -> bool:
    cutoff = utcnow() - timedelta(seconds=_LOGIN_RATE_WINDOW)
    recent = [t for t in _login_attempts.get(ip, []) if t > cutoff]
    if not recent:
        _login_attempts.pop(ip, None)
        return False
    _login_attempts[ip] = recent
    return len(recent) >= _LOGIN_RATE_LIMIT


def _record_attempt(ip: str) -> None:
    _login_attempts.setdefault(ip, []).append(utcnow())


def reset_login_attempts() -> None:
    _login_attempts.clear()


def landing_url_for(user: User) -> str:
    if user_has_min_role(user, ROLE_CONTRIBUTOR):
        return url_for("dashboard.index")
    return url_for("routes.index")


def load_current_user() -> None:
    """
    Loads g.current_user from the signed session cookie.
    Also assigns a simple per-request request_id (for audit/log correlation).
    """
    if not getattr(g, "request_id", None):
        g.request_id = uuid.uuid4().hex
    if request.path.startswith(("/static/", "/health", "/healthz")):
        g.current_user = None
        return

    user_id = session.get("user_id")
    if not user_id:
        g.current_user = None
        return

    try:
        s = db_session()
        user = s.get(User, int(user_id))
        if not user or not user.is_active:
            session.pop("user_id", None)
            g.current_user = None
            return
        g.current_user = user
    except Exception as e:
        current_app.logger.error("load_current_user DB error (clearing session): %s", e)
        session.pop("user_id", None)
        g.current_user = None


@bp.get("/login")
def login_get():
    user = getattr(g, "current_user", None)
    if user:
        return redirect(landing_url_for(user))
    nxt = (request.args.get("next") or "").strip()
    return render_template("auth/login.html", next=nxt)


@bp.post("/login")
def login_post():
    email = (request.form.get("email") or "").strip().lower()
    password = request.form.get("password") or ""
    nxt = (request.form.get("next") or "").strip()
    ip = request.remote_addr or "unknown"

    if _check_rate_limit(ip):
        current_app.logger.warning("Login rate limit hit (ip=%s request_id=%s)", ip, getattr(g, "request_id", None))
        flash("Too many login attempts. Please wait 5 minutes.", "danger")
        return redirect(url_for("auth.login_get"))

    _record_attempt(ip)

    try:
        s = db_session()
        user = get_user_by_email(s, email) if email else None
        if not user or not user.is_active or not user.password_hash or not check_password_hash(user.password_hash, password):
            record_event(
                s,
                actor=None,
                action="auth.login_failed",
                entity_type="User",
                entity_id=email,
                reason="Invalid credentials",
                metadata={"email": email},
            )
            s.commit()
            current_app.logger.warning("Failed login (email=%s ip=%s)", email, ip)
            flash("Invalid email or password.", "danger")
            return redirect(url_for("auth.login_get", next=nxt) if is_safe_next(nxt) else url_for("auth.login_get"))

        session["user_id"] = user.id
        _login_attempts[ip].clear()
        record_event(s, actor=user, action="auth.login", entity_type="User", entity_id=str(user.id))
        s.commit()
        if is_safe_next(nxt):
            return redirect(nxt)
        return redirect(landing_url_for(user))
    except Exception:
        current_app.logger.exception("Login POST crashed (email=%s request_id=%s)", email, getattr(g, "request_id", None))
        raise


@bp.get("/register")
def register_get():
    user = getattr(g, "current_user", None)
    if user:
        return redirect(landing_url_for(user))
    return render_template("auth/register.html", form={})


@bp.post("/register")
def register_post():
    form = {k: (request.form.get(k) or "") for k in ("name", "email")}
    s = db_session()
    try:
        user = register_reader(
            s,
            form["name"],
            form["email"],
            request.form.get("password") or "",
            request.form.get("password_confirm") or "",
        )
    except ServiceError as e:
        s.rollback()
        flash(e.message, "danger")
        return render_template("auth/register.html", form=form), e.status_code
    s.commit()
    session["user_id"] = user.id
    flash("Welcome! Your account has been created.", "success")
    return redirect(url_for("routes.index"))


@bp.get("/logout")
def logout():
    s = db_session()
    user = getattr(g, "current_user", None)
    if user:
        record_event(s, actor=user, action="auth.logout", entity_type="User", entity_id=str(user.id))
        s.commit()
    session.pop("user_id", None)
    return redirect(url_for("routes.index"))
