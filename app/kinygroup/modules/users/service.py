from __future__ import annotations

import re
from typing import TYPE_CHECKING

from sqlalchemy import func, select, update
from werkzeug.security import check_password_hash, generate_password_hash

from app.kinygroup.audit import record_event
from app.kinygroup.constants import ROLE_READER, USER_ROLES
from app.kinygroup.errors import ConflictError, NotFoundError, PermissionDeniedError, ValidationError
from app.kinygroup.models import User
from app.kinygroup.modules.blog.models import BlogComment, BlogPost
from app.kinygroup.modules.divisions.models import BrandDivision
from app.kinygroup.utils import clean_str, parse_bool

if TYPE_CHECKING:
    from sqlalchemy.orm import Session


ADMIN_MIN_PASSWORD = 6
SELF_SERVICE_MIN_PASSWORD = 8

_EMAIL_RE = re.compile(r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$")


def is_valid_email(email: str) -> bool:
    return bool(_EMAIL_RE.match(email))


def _email_taken(s: "Session", email: str, exclude_id: int | None = None) -> bool:
    q = select(User.id).where(func.lower(User.email) == email.lower())
    if exclude_id is not None:
        q = q.where(User.id != exclude_id)
    return s.execute(q).first() is not None


def _clean_email(raw) -> str:
    email = (clean_str(raw) or "").lower()
    if not email:
        raise ValidationError("Email is required.")
    if not is_valid_email(email):
        raise ValidationError("Invalid email format.")
    return email


def _clean_role(raw) -> str:
    role = clean_str(raw) or ROLE_READER
    if role not in USER_ROLES:
        raise ValidationError(f"Invalid role. Must be one of: {', '.join(USER_ROLES)}")
    return role


def list_users(s: "Session") -> list[User]:
    return list(s.execute(select(User).order_by(User.created_at.asc(), User.id.asc())).scalars())


def get_user(s: "Session", user_id: int) -> User:
    user = s.get(User, user_id)
    if not user:
        raise NotFoundError("User not found")
    return user


def get_user_by_email(s: "Session", email: str) -> User | None:
    return s.execute(select(User).where(func.lower(User.email) == email.strip().lower())).scalar_one_or_none()


def create_user(s: "Session", payload: dict, actor: User | None) -> User:
    email = _clean_email(payload.get("email"))
    if _email_taken(s, email):
        raise ConflictError("A user with this email already exists")
    password = payload.get("password") or ""
    if len(password) < ADMIN_MIN_PASSWORD:
        raise ValidationError("Password must be at least 6 characters long")

    user = User(
        name=clean_str(payload.get("name")),
        email=email,
        password_hash=generate_password_hash(password),
        role=_clean_role(payload.get("role")),
        is_active=True,
    )
    s.add(user)
    s.flush()
    record_event(
        s,
        actor=actor,
        action="user.create",
        entity_type="User",
        entity_id=user.id,
        metadata={"email": email, "role": user.role},
    )
    return user


def update_user(s: "Session", user: User, payload: dict, actor: User) -> User:
    before = {"email": user.email, "role": user.role, "is_active": user.is_active}

    if "email" in payload and clean_str(payload.get("email")):
        email = _clean_email(payload.get("email"))
        if email != user.email and _email_taken(s, email, exclude_id=user.id):
            raise ConflictError("This email is already in use by another user")
        user.email = email
    if "name" in payload:
        user.name = clean_str(payload.get("name"))
    if clean_str(payload.get("role")):
        role = _clean_role(payload.get("role"))
        if user.id == actor.id and role != user.role:
            raise PermissionDeniedError("You cannot change your own role.")
        user.role = role
    if "is_active" in payload:
        active = parse_bool(payload.get("is_active"))
        if user.id == actor.id and not active:
            raise PermissionDeniedError("You cannot deactivate your own account.")
        user.is_active = active
    password = payload.get("password") or ""
    if password:
        if len(password) < ADMIN_MIN_PASSWORD:
            raise ValidationError("Password must be at least 6 characters long")
        user.password_hash = generate_password_hash(password)

    after = {"email": user.email, "role": user.role, "is_active": user.is_active}
    record_event(
        s,
        actor=actor,
        action="user.update",
        entity_type="User",
        entity_id=user.id,
        metadata={"before": before, "after": after, "password_changed": bool(password)},
    )
    return user


def delete_user(s: "Session", user: User, actor: User) -> None:
    """Delete an account; content it authored moves to the acting admin."""
    if user.id == actor.id:
        raise PermissionDeniedError("You cannot delete your own account.")
    user_id = user.id
    email = user.email
    for model in (BlogPost, BlogComment, BrandDivision):
        s.execute(
            update(model).where(model.author_id == user_id).values(author_id=actor.id).execution_options(synchronize_session=False)
        )
    s.delete(user)
    s.flush()
    s.expire_all()
    record_event(
        s,
        actor=actor,
        action="user.delete",
        entity_type="User",
        entity_id=user_id,
        metadata={"email": email, "reassigned_to": actor.id},
    )


def register_reader(s: "Session", name: str | None, email: str | None, password: str, confirm: str) -> User:
    """Public sign-up. New accounts always start as readers."""
    name = clean_str(name)
    if not name:
        raise ValidationError("Name is required.")
    email = _clean_email(email)
    if len(password or "") < SELF_SERVICE_MIN_PASSWORD:
        raise ValidationError("Password must be at least 8 characters.")
    if password != confirm:
        raise ValidationError("Passwords do not match.")
    if _email_taken(s, email):
        raise ConflictError("An account with this email already exists.")

    user = User(name=name, email=email, password_hash=generate_password_hash(password), role=ROLE_READER, is_active=True)
    s.add(user)
    s.flush()
    record_event(s, actor=user, action="user.register", entity_type="User", entity_id=user.id, metadata={"email": email})
    return user


def change_password(s: "Session", user: User, current_password: str | None, new_password: str | None) -> None:
    if not current_password or not new_password:
        raise ValidationError("Current password and new password are required")
    if len(new_password) < SELF_SERVICE_MIN_PASSWORD:
        raise ValidationError("New password must be at least 8 characters long")
    if new_password == current_password:
        raise ValidationError("New password must be different from current password")
    if not user.password_hash:
        raise NotFoundError("User not found or password not set")
    if not check_password_hash(user.password_hash, current_password):
        raise ValidationError("Current password is incorrect")

    user.password_hash = generate_password_hash(new_password)
    record_event(s, actor=user, action="user.change_password", entity_type="User", entity_id=user.id)


def count_users_since(s: "Session", since=None) -> int:
    q = select(func.count()).select_from(User)
    if since is not None:
        q = q.where(User.created_at >= since)
    return s.execute(q).scalar_one()
