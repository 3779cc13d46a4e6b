from __future__ import annotations

from typing import TYPE_CHECKING, Any

from sqlalchemy import func, select

from app.kinygroup.audit import record_event
from app.kinygroup.constants import SLUG_RE
from app.kinygroup.errors import ConflictError, NotFoundError, PermissionDeniedError, ValidationError
from app.kinygroup.models import User
from app.kinygroup.modules.divisions.models import BrandActivity, BrandDivision
from app.kinygroup.modules.divisions.theme import THEME_KEYS, generate_theme_from_color
from app.kinygroup.rbac import user_has_permission
from app.kinygroup.utils import clean_str, parse_bool, parse_int

if TYPE_CHECKING:
    from sqlalchemy.orm import Session


STAT_KEYS = tuple(f"{kind}{n}" for n in range(1, 5) for kind in ("label", "value"))

# camelCase keys sent by the dashboard form
_KEY_ALIASES = {
    "fullDescription": "full_description",
    "backgroundImage": "background_image",
    "imageUrl": "image_url",
    "currentId": "current_id",
}


def normalize_keys(data: dict) -> dict:
    return {_KEY_ALIASES.get(k, k): v for k, v in data.items()}


# ---------- Permissions ----------
def can_edit_division(user: User | None, division: BrandDivision) -> bool:
    """Admins edit any division; editors only the ones they created."""
    if user_has_permission(user, "divisions.edit_any"):
        return True
    return user_has_permission(user, "divisions.edit") and division.author_id == user.id


def _require_edit(user: User, division: BrandDivision) -> None:
    if not can_edit_division(user, division):
        raise PermissionDeniedError("Permission denied")


# ---------- Slug ----------
def validate_slug(s: "Session", slug: str | None, current_id: int | None = None) -> tuple[bool, str | None]:
    slug = (slug or "").strip()
    if not slug:
        return False, "Slug is required"
    if not SLUG_RE.match(slug):
        return False, "Slug must contain only lowercase letters, numbers, and hyphens"
    existing = s.execute(select(BrandDivision.id).where(BrandDivision.slug == slug)).scalar_one_or_none()
    if existing is None or (current_id is not None and existing == current_id):
        return True, None
    return False, "This slug is already in use"


# ---------- JSON field normalisation ----------
def normalize_stats(raw: Any) -> dict[str, str]:
    if not isinstance(raw, dict):
        return {}
    out = {}
    for key in STAT_KEYS:
        val = clean_str(raw.get(key))
        if val:
            out[key] = val
    return out


def normalize_services(raw: Any) -> list[dict[str, str]]:
    if not isinstance(raw, list):
        return []
    out = []
    for item in raw:
        if not isinstance(item, dict):
            continue
        name = clean_str(item.get("name"))
        if name:
            out.append({"name": name, "description": clean_str(item.get("description")) or ""})
    return out


def normalize_team(raw: Any) -> list[dict[str, str]]:
    if not isinstance(raw, list):
        return []
    out = []
    for item in raw:
        if not isinstance(item, dict):
            continue
        name = clean_str(item.get("name"))
        if name:
            out.append({"name": name, "position": clean_str(item.get("position")) or ""})
    return out


def normalize_string_list(raw: Any) -> list[str]:
    if not isinstance(raw, list):
        return []
    return [str(x).strip() for x in raw if x is not None and str(x).strip()]


def normalize_theme(raw: Any, color: str | None) -> dict[str, str]:
    theme = {}
    if isinstance(raw, dict):
        theme = {k: str(raw[k]).strip() for k in THEME_KEYS if clean_str(raw.get(k))}
    if not theme and color:
        theme = generate_theme_from_color(color)
    return theme


def _apply_payload(division: BrandDivision, payload: dict) -> None:
    division.name = clean_str(payload.get("name")) or ""
    division.slug = clean_str(payload.get("slug")) or ""
    division.description = clean_str(payload.get("description")) or ""
    division.tagline = clean_str(payload.get("tagline"))
    division.full_description = clean_str(payload.get("full_description"))
    division.coverage = clean_str(payload.get("coverage"))
    division.delivery = clean_str(payload.get("delivery"))
    division.background_image = clean_str(payload.get("background_image"))
    division.logo = clean_str(payload.get("logo"))
    division.color = clean_str(payload.get("color"))
    division.stats = normalize_stats(payload.get("stats"))
    division.services = normalize_services(payload.get("services"))
    division.achievements = normalize_string_list(payload.get("achievements"))
    division.team = normalize_team(payload.get("team"))
    division.theme = normalize_theme(payload.get("theme"), division.color)
    division.featured = parse_bool(payload.get("featured"))


def division_payload(division: BrandDivision) -> dict:
    return {
        "name": division.name,
        "slug": division.slug,
        "description": division.description,
        "tagline": division.tagline,
        "full_description": division.full_description,
        "coverage": division.coverage,
        "delivery": division.delivery,
        "background_image": division.background_image,
        "logo": division.logo,
        "color": division.color,
        "stats": dict(division.stats or {}),
        "services": list(division.services or []),
        "achievements": list(division.achievements or []),
        "team": list(division.team or []),
        "theme": dict(division.theme or {}),
        "featured": division.featured,
    }


def _validate_payload(s: "Session", payload: dict, current_id: int | None = None) -> None:
    if not clean_str(payload.get("name")) or not clean_str(payload.get("slug")) or not clean_str(payload.get("description")):
        raise ValidationError("Name, slug, and description are required.")
    available, error = validate_slug(s, payload.get("slug"), current_id)
    if not available:
        if error == "This slug is already in use":
            raise ConflictError(error)
        raise ValidationError(error or "Invalid slug")


# ---------- Divisions ----------
def list_divisions(s: "Session", featured_only: bool = False) -> list[BrandDivision]:
    q = select(BrandDivision)
    if featured_only:
        q = q.where(BrandDivision.featured.is_(True))
    q = q.order_by(BrandDivision.featured.desc(), BrandDivision.name.asc())
    return list(s.execute(q).scalars())


def get_division(s: "Session", division_id: int) -> BrandDivision:
    division = s.get(BrandDivision, division_id)
    if not division:
        raise NotFoundError("Division not found")
    return division


def get_division_by_slug(s: "Session", slug: str) -> BrandDivision:
    division = s.execute(select(BrandDivision).where(BrandDivision.slug == slug)).scalar_one_or_none()
    if not division:
        raise NotFoundError("Division not found")
    return division


def create_division(s: "Session", payload: dict, user: User) -> BrandDivision:
    if not user_has_permission(user, "divisions.create"):
        raise PermissionDeniedError("Permission denied")
    _validate_payload(s, payload)
    division = BrandDivision(author_id=user.id)
    _apply_payload(division, payload)
    s.add(division)
    s.flush()
    record_event(
        s,
        actor=user,
        action="division.create",
        entity_type="BrandDivision",
        entity_id=division.id,
        metadata={"name": division.name, "slug": division.slug},
    )
    return division


def update_division(s: "Session", division: BrandDivision, payload: dict, user: User) -> BrandDivision:
    _require_edit(user, division)
    # Partial updates keep the stored values for omitted fields.
    merged = {**division_payload(division), **payload}
    if "color" in payload and "theme" not in payload and payload.get("color") != division.color:
        merged["theme"] = {}
    _validate_payload(s, merged, current_id=division.id)
    _apply_payload(division, merged)
    record_event(
        s,
        actor=user,
        action="division.update",
        entity_type="BrandDivision",
        entity_id=division.id,
        metadata={"name": division.name, "slug": division.slug},
    )
    return division


def toggle_featured(s: "Session", division: BrandDivision, user: User) -> BrandDivision:
    _require_edit(user, division)
    division.featured = not division.featured
    record_event(
        s,
        actor=user,
        action="division.toggle_featured",
        entity_type="BrandDivision",
        entity_id=division.id,
        metadata={"featured": division.featured},
    )
    return division


def delete_division(s: "Session", division: BrandDivision, user: User) -> None:
    if not user_has_permission(user, "divisions.delete"):
        raise PermissionDeniedError("Permission denied")
    division_id = division.id
    meta = {"name": division.name, "slug": division.slug}
    s.delete(division)  # activities go with it (delete-orphan)
    s.flush()
    record_event(s, actor=user, action="division.delete", entity_type="BrandDivision", entity_id=division_id, metadata=meta)


# ---------- Activities ----------
def list_activities(s: "Session", division: BrandDivision) -> list[BrandActivity]:
    q = (
        select(BrandActivity)
        .where(BrandActivity.brand_division_id == division.id)
        .order_by(BrandActivity.order.asc(), BrandActivity.id.asc())
    )
    return list(s.execute(q).scalars())


def get_activity(s: "Session", activity_id: int) -> BrandActivity:
    activity = s.get(BrandActivity, activity_id)
    if not activity:
        raise NotFoundError("Activity not found")
    return activity


def create_activity(s: "Session", division: BrandDivision, payload: dict, user: User) -> BrandActivity:
    _require_edit(user, division)
    title = clean_str(payload.get("title"))
    description = clean_str(payload.get("description"))
    image_url = clean_str(payload.get("image_url"))
    if not title or not description or not image_url:
        raise ValidationError("Title, description, and image URL are required.")

    order = parse_int(payload.get("order"))
    if order is None:
        current_max = s.execute(
            select(func.max(BrandActivity.order)).where(BrandActivity.brand_division_id == division.id)
        ).scalar_one()
        order = 0 if current_max is None else current_max + 1

    activity = BrandActivity(
        brand_division_id=division.id,
        title=title,
        description=description,
        image_url=image_url,
        order=order,
    )
    s.add(activity)
    s.flush()
    s.expire(division, ["activities"])
    record_event(
        s,
        actor=user,
        action="activity.create",
        entity_type="BrandActivity",
        entity_id=activity.id,
        metadata={"division_id": division.id, "title": title},
    )
    return activity


def update_activity(s: "Session", activity: BrandActivity, payload: dict, user: User) -> BrandActivity:
    _require_edit(user, activity.division)
    for field in ("title", "description", "image_url"):
        if field in payload:
            value = clean_str(payload.get(field))
            if not value:
                raise ValidationError(f"{field.replace('_', ' ').capitalize()} cannot be empty.")
            setattr(activity, field, value)
    if "order" in payload:
        order = parse_int(payload.get("order"))
        if order is None:
            raise ValidationError("Order must be a number.")
        activity.order = order
    record_event(
        s,
        actor=user,
        action="activity.update",
        entity_type="BrandActivity",
        entity_id=activity.id,
        metadata={"division_id": activity.brand_division_id},
    )
    return activity


def delete_activity(s: "Session", activity: BrandActivity, user: User) -> None:
    division = activity.division
    _require_edit(user, division)
    activity_id = activity.id
    s.delete(activity)
    s.flush()
    s.expire(division, ["activities"])
    record_event(
        s,
        actor=user,
        action="activity.delete",
        entity_type="BrandActivity",
        entity_id=activity_id,
        metadata={"division_id": division.id},
    )


def reorder_activities(s: "Session", division: BrandDivision, activity_ids: list[Any], user: User) -> None:
    """Each id's position in the list becomes its order; ids from other divisions are skipped."""
    _require_edit(user, division)
    if not isinstance(activity_ids, list):
        raise ValidationError("activityIds must be a list.")
    owned = {a.id: a for a in list_activities(s, division)}
    for index, raw in enumerate(activity_ids):
        activity = owned.get(parse_int(raw, -1))
        if activity is not None:
            activity.order = index
    s.flush()
    s.expire(division, ["activities"])
    record_event(
        s,
        actor=user,
        action="activity.reorder",
        entity_type="BrandDivision",
        entity_id=division.id,
        metadata={"activity_ids": [parse_int(x) for x in activity_ids]},
    )


def count_divisions_since(s: "Session", since=None) -> int:
    q = select(func.count()).select_from(BrandDivision)
    if since is not None:
        q = q.where(BrandDivision.created_at >= since)
    return s.execute(q).scalar_one()
