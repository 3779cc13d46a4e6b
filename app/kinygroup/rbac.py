from collections.abc import Callable
from functools import wraps
from typing import Any

from flask import abort, g, jsonify, redirect, request, url_for

from app.kinygroup.constants import ROLE_ADMIN, ROLE_CONTRIBUTOR, ROLE_EDITOR, ROLE_LEVELS, ROLE_READER
from app.kinygroup.models import User

# Permissions granted at each role; higher roles inherit everything below them.
_ROLE_GRANTS: dict[str, frozenset[str]] = {
    ROLE_READER: frozenset({
        "comments.create",
        "profile.edit",
    }),
    ROLE_CONTRIBUTOR: frozenset({
        "dashboard.view",
        "posts.view",
        "posts.create",
        "posts.edit",
        "posts.delete",
        "categories.view",
        "divisions.view",
        "about.view",
        "uploads.create",
    }),
    ROLE_EDITOR: frozenset({
        "posts.publish",
        "posts.manage_all",
        "comments.view",
        "comments.delete",
        "categories.create",
        "categories.edit",
        "divisions.create",
        "divisions.edit",
        "about.edit",
        "uploads.delete",
    }),
    ROLE_ADMIN: frozenset({
        "categories.delete",
        "divisions.edit_any",
        "divisions.delete",
        "about.delete",
        "users.view",
        "users.manage",
    }),
}


def permissions_for_role(role: str | None) -> frozenset[str]:
    level = ROLE_LEVELS.get(role or "", -1)
    granted: set[str] = set()
    for r, lvl in ROLE_LEVELS.items():
        if lvl <= level:
            granted |= _ROLE_GRANTS[r]
    return frozenset(granted)


def user_has_permission(user: User | None, permission_key: str) -> bool:
    if not user or not user.is_active:
        return False
    return permission_key in permissions_for_role(user.role)


def user_has_min_role(user: User | None, minimum_role: str) -> bool:
    if not user or not user.is_active:
        return False
    return ROLE_LEVELS.get(user.role, -1) >= ROLE_LEVELS[minimum_role]


def require_permission(permission_key: str) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    """Guard an HTML view: anonymous users go to login, others without the permission get 403."""

    def decorator(fn: Callable[..., Any]) -> Callable[..., Any]:
        @wraps(fn)
        def wrapped(*args: Any, **kwargs: Any):
            user: User | None = getattr(g, "current_user", None)
            if not user or not user.is_active:
                nxt = request.full_path or request.path
                # Avoid trailing '?' from full_path when there is no query string.
                if nxt.endswith("?"):
                    nxt = nxt[:-1]
                return redirect(url_for("auth.login_get", next=nxt))
            if not user_has_permission(user, permission_key):
                g.missing_permission = permission_key
                abort(403)
            return fn(*args, **kwargs)

        return wrapped

    return decorator


def api_require_permission(permission_key: str) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    """Guard a JSON view: 401 when signed out, 403 when the role is insufficient."""

    def decorator(fn: Callable[..., Any]) -> Callable[..., Any]:
        @wraps(fn)
        def wrapped(*args: Any, **kwargs: Any):
            user: User | None = getattr(g, "current_user", None)
            if not user or not user.is_active:
                return jsonify({"error": "Unauthorized: Authentication required"}), 401
            if not user_has_permission(user, permission_key):
                g.missing_permission = permission_key
                return jsonify({"error": "Forbidden: insufficient role"}), 403
            return fn(*args, **kwargs)

        return wrapped

    return decorator
