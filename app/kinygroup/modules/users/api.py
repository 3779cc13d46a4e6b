from __future__ import annotations

from flask import Blueprint, g, jsonify

from app.kinygroup.db import db_session
from app.kinygroup.errors import AuthenticationRequired
from app.kinygroup.models import User
from app.kinygroup.modules.users.service import (
    change_password,
    create_user,
    delete_user,
    get_user,
    list_users,
    update_user,
)
from app.kinygroup.rbac import api_require_permission
from app.kinygroup.utils import api_errors, isoformat, json_payload

bp = Blueprint("users_api", __name__)


def user_dict(u: User) -> dict:
    return {
        "id": u.id,
        "name": u.name,
        "email": u.email,
        "image": u.image,
        "role": u.role,
        "isActive": u.is_active,
        "createdAt": isoformat(u.created_at),
        "updatedAt": isoformat(u.updated_at),
    }


@bp.get("/users")
@api_require_permission("users.view")
@api_errors("Fetch users")
def users_list():
    s = db_session()
    return jsonify([user_dict(u) for u in list_users(s)])


@bp.post("/users")
@api_require_permission("users.manage")
@api_errors("Create user")
def users_create():
    s = db_session()
    user = create_user(s, json_payload(), g.current_user)
    s.commit()
    return jsonify(user_dict(user)), 201


@bp.get("/users/<int:user_id>")
@api_require_permission("users.view")
@api_errors("Fetch user")
def users_get(user_id: int):
    s = db_session()
    return jsonify(user_dict(get_user(s, user_id)))


@bp.put("/users/<int:user_id>")
@api_require_permission("users.manage")
@api_errors("Update user")
def users_update(user_id: int):
    s = db_session()
    data = json_payload()
    if "isActive" in data:
        data["is_active"] = data.pop("isActive")
    user = update_user(s, get_user(s, user_id), data, g.current_user)
    s.commit()
    return jsonify(user_dict(user))


@bp.delete("/users/<int:user_id>")
@api_require_permission("users.manage")
@api_errors("Delete user")
def users_delete(user_id: int):
    s = db_session()
    delete_user(s, get_user(s, user_id), g.current_user)
    s.commit()
    return jsonify({"success": True})


@bp.post("/user/change-password")
@api_errors("Change password")
def change_own_password():
    user = getattr(g, "current_user", None)
    if not user:
        raise AuthenticationRequired("Unauthorized: Authentication required")
    s = db_session()
    data = json_payload()
    change_password(s, user, data.get("currentPassword"), data.get("newPassword"))
    s.commit()
    return jsonify({"success": True, "message": "Password changed successfully"})
