from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from sqlalchemy import func, select

from app.kinygroup.audit import record_event
from app.kinygroup.constants import HTTP_URL_RE, TEAM_MEMBER_ROLES
from app.kinygroup.errors import ConflictError, NotFoundError, ValidationError
from app.kinygroup.models import Base, User
from app.kinygroup.modules.about.models import Achievement, Client, Department, JourneyItem, TeamMember
from app.kinygroup.utils import clean_str, parse_bool, parse_int

if TYPE_CHECKING:
    from sqlalchemy.orm import Session


_KEY_ALIASES = {
    "logoUrl": "logo_url",
    "imageUrl": "image_url",
    "departmentId": "department_id",
}


def normalize_keys(data: dict) -> dict:
    return {_KEY_ALIASES.get(k, k): v for k, v in data.items()}


# ---------- Validators: payload -> clean column values ----------
def validate_department(s: "Session", payload: dict) -> dict[str, Any]:
    name = clean_str(payload.get("name"))
    if not name:
        raise ValidationError("Name is required")
    return {
        "name": name,
        "head": clean_str(payload.get("head")) or "",
        "description": clean_str(payload.get("description")) or "",
        "color": clean_str(payload.get("color")) or "",
        "order": parse_int(payload.get("order"), 0),
    }


def validate_team_member(s: "Session", payload: dict) -> dict[str, Any]:
    name = clean_str(payload.get("name"))
    title = clean_str(payload.get("title"))
    department_id = parse_int(payload.get("department_id"))
    if not name or not title or not department_id:
        raise ValidationError("Name, title, and department ID are required")
    if s.get(Department, department_id) is None:
        raise ValidationError("Department not found")

    role = clean_str(payload.get("role")) or "team_member"
    if role not in TEAM_MEMBER_ROLES:
        raise ValidationError(f"Invalid role. Must be one of: {', '.join(TEAM_MEMBER_ROLES)}")

    achievements = payload.get("achievements")
    if achievements is None:
        achievements = []
    if isinstance(achievements, str):
        achievements = [line for line in achievements.splitlines()]
    if not isinstance(achievements, list):
        raise ValidationError("Achievements must be a list")
    cleaned = [str(a).strip() for a in achievements if a is not None and str(a).strip()]

    return {
        "name": name,
        "title": title,
        "bio": clean_str(payload.get("bio")) or "",
        "image": clean_str(payload.get("image")) or "",
        "role": role,
        "department_id": department_id,
        "order": parse_int(payload.get("order"), 0),
        "icon": clean_str(payload.get("icon")) or "",
        "achievements": cleaned,
    }


def validate_client(s: "Session", payload: dict) -> dict[str, Any]:
    name = clean_str(payload.get("name"))
    logo_url = clean_str(payload.get("logo_url"))
    if not name or not logo_url:
        raise ValidationError("Name and logo URL are required")
    if not HTTP_URL_RE.match(logo_url):
        raise ValidationError("Invalid logo URL format")
    return {"name": name, "logo_url": logo_url, "order": parse_int(payload.get("order"), 0)}


def validate_achievement(s: "Session", payload: dict) -> dict[str, Any]:
    title = clean_str(payload.get("title"))
    if not title:
        raise ValidationError("Title is required")
    return {
        "title": title,
        "description": clean_str(payload.get("description")) or "",
        "icon": clean_str(payload.get("icon")) or "",
        "order": parse_int(payload.get("order"), 0),
        "featured": parse_bool(payload.get("featured")),
    }


def validate_journey_item(s: "Session", payload: dict) -> dict[str, Any]:
    year = clean_str(payload.get("year"))
    title = clean_str(payload.get("title"))
    description = clean_str(payload.get("description"))
    image_url = clean_str(payload.get("image_url"))
    if not year or not title or not description or not image_url:
        raise ValidationError("Year, title, description, and image URL are required")
    if not HTTP_URL_RE.match(image_url):
        raise ValidationError("Invalid image URL format")
    return {
        "year": year,
        "title": title,
        "description": description,
        "image_url": image_url,
        "order": parse_int(payload.get("order"), 0),
    }


@dataclass(frozen=True)
class Resource:
    """One kind of About-page content managed from the dashboard."""

    key: str  # URL segment, e.g. "team-members"
    model: type[Base]
    label: str
    json_key: str
    validate: Callable[["Session", dict], dict[str, Any]]


RESOURCES: dict[str, Resource] = {
    r.key: r
    for r in (
        Resource("departments", Department, "Department", "department", validate_department),
        Resource("team-members", TeamMember, "Team member", "teamMember", validate_team_member),
        Resource("clients", Client, "Client", "client", validate_client),
        Resource("achievements", Achievement, "Achievement", "achievement", validate_achievement),
        Resource("journey", JourneyItem, "Journey item", "journeyItem", validate_journey_item),
    )
}


def get_resource(key: str) -> Resource:
    try:
        return RESOURCES[key]
    except KeyError:
        raise NotFoundError("Not found") from None


# ---------- CRUD ----------
def list_items(s: "Session", resource: Resource) -> list[Any]:
    model = resource.model
    return list(s.execute(select(model).order_by(model.order.asc(), model.id.asc())).scalars())


def get_item(s: "Session", resource: Resource, item_id: int) -> Any:
    item = s.get(resource.model, item_id)
    if item is None:
        raise NotFoundError(f"{resource.label} not found")
    return item


def create_item(s: "Session", resource: Resource, payload: dict, user: User) -> Any:
    values = resource.validate(s, payload)
    item = resource.model(**values)
    s.add(item)
    s.flush()
    record_event(
        s,
        actor=user,
        action=f"{resource.json_key}.create",
        entity_type=resource.model.__name__,
        entity_id=item.id,
        metadata={k: v for k, v in values.items() if k in ("name", "title", "year")},
    )
    return item


def update_item(s: "Session", resource: Resource, item: Any, payload: dict, user: User) -> Any:
    values = resource.validate(s, payload)
    for k, v in values.items():
        setattr(item, k, v)
    record_event(
        s,
        actor=user,
        action=f"{resource.json_key}.update",
        entity_type=resource.model.__name__,
        entity_id=item.id,
        metadata={k: v for k, v in values.items() if k in ("name", "title", "year")},
    )
    return item


def delete_item(s: "Session", resource: Resource, item: Any, user: User) -> None:
    if isinstance(item, Department):
        members = s.execute(
            select(func.count()).select_from(TeamMember).where(TeamMember.department_id == item.id)
        ).scalar_one()
        if members:
            raise ConflictError("Cannot delete a department that still has team members")
    item_id = item.id
    s.delete(item)
    s.flush()
    record_event(
        s,
        actor=user,
        action=f"{resource.json_key}.delete",
        entity_type=resource.model.__name__,
        entity_id=item_id,
    )


def departments_with_team(s: "Session") -> list[tuple[Department, list[TeamMember]]]:
    """Departments in display order, each with its members in display order."""
    departments = list_items(s, RESOURCES["departments"])
    members = list_items(s, RESOURCES["team-members"])
    grouped: dict[int, list[TeamMember]] = {d.id: [] for d in departments}
    for m in members:
        grouped.setdefault(m.department_id, []).append(m)
    return [(d, grouped[d.id]) for d in departments]
