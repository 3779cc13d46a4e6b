from __future__ import annotations

import calendar
import math
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any

from flask import Blueprint, flash, g, jsonify, redirect, render_template, request, url_for
from sqlalchemy import select
from sqlalchemy.orm import Session

from app.kinygroup.db import db_session
from app.kinygroup.errors import ServiceError, ValidationError
from app.kinygroup.models import User, utcnow
from app.kinygroup.modules.blog.models import BlogComment, BlogPost
from app.kinygroup.modules.blog.service import count_comments_since, count_posts_since
from app.kinygroup.modules.divisions.models import BrandDivision
from app.kinygroup.modules.divisions.service import count_divisions_since
from app.kinygroup.modules.users.service import change_password, count_users_since
from app.kinygroup.rbac import api_require_permission, require_permission
from app.kinygroup.utils import api_errors, isoformat

bp = Blueprint("dashboard", __name__)

ACTIVITY_TYPES = ("post", "comment", "user", "brand")


def change_percentage(current: int, last_month: int) -> int:
    """Growth of the last month relative to everything that existed before it, in percent."""
    if current == 0:
        return 0
    previous = current - last_month
    if previous == 0:
        return 0
    return math.floor(last_month / previous * 100 + 0.5)


def one_month_ago(now: datetime) -> datetime:
    year, month = (now.year, now.month - 1) if now.month > 1 else (now.year - 1, 12)
    day = min(now.day, calendar.monthrange(year, month)[1])
    return now.replace(year=year, month=month, day=day)


def dashboard_stats(s: Session, now: datetime | None = None) -> dict[str, dict[str, int]]:
    since = one_month_ago(now or utcnow())
    out = {}
    for key, counter in (
        ("totalPosts", count_posts_since),
        ("totalComments", count_comments_since),
        ("totalUsers", count_users_since),
        ("totalDivisions", count_divisions_since),
    ):
        total = counter(s)
        recent = counter(s, since)
        out[key] = {"value": total, "change": change_percentage(total, recent)}
    return out


@dataclass
class Activity:
    id: str
    type: str
    action: str
    user: str
    created_at: datetime
    user_email: str | None = None
    details: dict[str, Any] = field(default_factory=dict)

    def to_dict(self, now: datetime | None = None) -> dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type,
            "action": self.action,
            "time": time_ago(self.created_at, now),
            "user": self.user,
            "userEmail": self.user_email,
            "createdAt": isoformat(self.created_at),
            "details": self.details,
        }


def time_ago(value: datetime, now: datetime | None = None) -> str:
    seconds = int(((now or utcnow()) - value).total_seconds())
    if seconds < 60:
        return "just now"
    for unit, size in (("day", 86400), ("hour", 3600), ("minute", 60)):
        if seconds >= size:
            n = seconds // size
            return f"{n} {unit}{'' if n == 1 else 's'} ago"
    return "just now"


def collect_activities(s: Session, limit: int = 50) -> list[Activity]:
    """Recent posts, comments, sign-ups and division updates, newest first."""
    activities: list[Activity] = []

    for p in s.execute(select(BlogPost).order_by(BlogPost.created_at.desc()).limit(limit)).scalars():
        verb = "Published" if p.is_published else "Drafted"
        activities.append(
            Activity(
                id=f"post-{p.id}",
                type="post",
                action=f'{verb} "{p.title}"',
                user=p.author.display_name if p.author else "Unknown",
                user_email=p.author.email if p.author else None,
                created_at=p.created_at,
                details={"title": p.title, "slug": p.slug, "published": isoformat(p.published_at)},
            )
        )

    for c in s.execute(select(BlogComment).order_by(BlogComment.created_at.desc()).limit(limit)).scalars():
        activities.append(
            Activity(
                id=f"comment-{c.id}",
                type="comment",
                action=f'Commented on "{c.post.title}"' if c.post else "Left a comment",
                user=c.author.display_name if c.author else "Unknown",
                user_email=c.author.email if c.author else None,
                created_at=c.created_at,
                details={
                    "content": c.content,
                    "postTitle": c.post.title if c.post else None,
                    "postSlug": c.post.slug if c.post else None,
                    "postId": c.post_id,
                },
            )
        )

    for u in s.execute(select(User).order_by(User.created_at.desc()).limit(limit)).scalars():
        activities.append(
            Activity(
                id=f"user-{u.id}",
                type="user",
                action="New user registered",
                user=u.display_name,
                user_email=u.email,
                created_at=u.created_at,
                details={"userName": u.name, "userEmail": u.email, "role": u.role},
            )
        )

    for d in s.execute(select(BrandDivision).order_by(BrandDivision.updated_at.desc()).limit(limit)).scalars():
        created = d.updated_at == d.created_at
        activities.append(
            Activity(
                id=f"brand-{d.id}",
                type="brand",
                action=f'{"Created" if created else "Updated"} division "{d.name}"',
                user=d.author.display_name if d.author else "Unknown",
                user_email=d.author.email if d.author else None,
                created_at=d.updated_at,
                details={"name": d.name, "slug": d.slug},
            )
        )

    activities.sort(key=lambda a: a.created_at, reverse=True)
    return activities[:limit]


def filter_activities(activities: list[Activity], type: str | None = None, search: str | None = None) -> list[Activity]:
    out = activities
    if type and type != "all":
        out = [a for a in out if a.type == type]
    if search:
        needle = search.lower()
        out = [a for a in out if needle in a.action.lower() or needle in a.user.lower()]
    return out


def group_label(created_at: datetime, now: datetime) -> str:
    if created_at.date() == now.date():
        return "Today"
    if created_at.date() == (now - timedelta(days=1)).date():
        return "Yesterday"
    if created_at > now - timedelta(days=7):
        return "This Week"
    if created_at > now - timedelta(days=30):
        return "This Month"
    return f"{calendar.month_name[created_at.month]} {created_at.year}"


def group_activities(activities: list[Activity], now: datetime | None = None) -> dict[str, list[Activity]]:
    """Bucket activities by recency; groups and their members keep the input order."""
    now = now or utcnow()
    groups: dict[str, list[Activity]] = {}
    for a in activities:
        groups.setdefault(group_label(a.created_at, now), []).append(a)
    return groups


def activity_counts(activities: list[Activity]) -> dict[str, int]:
    counts = {"all": len(activities)}
    for t in ACTIVITY_TYPES:
        counts[t] = sum(1 for a in activities if a.type == t)
    return counts


@bp.get("/dashboard")
@require_permission("dashboard.view")
def index():
    s = db_session()
    now = utcnow()
    activity_type = (request.args.get("type") or "all").strip()
    search = (request.args.get("q") or "").strip()
    activities = collect_activities(s)
    shown = filter_activities(activities, activity_type, search)
    return render_template(
        "dashboard/index.html",
        stats=dashboard_stats(s, now),
        groups=group_activities(shown, now),
        counts=activity_counts(activities),
        activity_type=activity_type,
        search=search,
        now=now,
        time_ago=time_ago,
    )


@bp.get("/dashboard/profile")
@require_permission("profile.edit")
def profile_get():
    return render_template("dashboard/profile.html", user=g.current_user)


@bp.post("/dashboard/profile")
@require_permission("profile.edit")
def profile_post():
    s = db_session()
    new_password = request.form.get("new_password") or ""
    try:
        if new_password != (request.form.get("confirm_password") or ""):
            raise ValidationError("New passwords do not match")
        change_password(s, g.current_user, request.form.get("current_password"), new_password)
    except ServiceError as e:
        s.rollback()
        flash(e.message, "danger")
        return redirect(url_for("dashboard.profile_get"))
    s.commit()
    flash("Password changed successfully.", "success")
    return redirect(url_for("dashboard.profile_get"))


@bp.get("/api/dashboard/stats")
@api_require_permission("dashboard.view")
@api_errors("Fetch dashboard statistics")
def stats_api():
    return jsonify(dashboard_stats(db_session()))
