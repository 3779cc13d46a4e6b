from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import JSON, Boolean, DateTime, ForeignKey, Integer, String
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from app.kinygroup.constants import ROLE_READER


def utcnow() -> datetime:
    """Naive UTC timestamp, matching the timezone=False columns."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


# JSON on SQLite (tests), JSONB on Postgres.
JSONType = JSON().with_variant(JSONB(), "postgresql")


class Base(DeclarativeBase):
    pass


class User(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    email: Mapped[str] = mapped_column(String(320), nullable=False, unique=True)
    # NULL for accounts that cannot sign in with a password
    password_hash: Mapped[str | None] = mapped_column(String(255), nullable=True)
    image: Mapped[str | None] = mapped_column(String(500), nullable=True)
    role: Mapped[str] = mapped_column(String(20), nullable=False, default=ROLE_READER)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=False), nullable=False, default=utcnow, onupdate=utcnow
    )

    @property
    def display_name(self) -> str:
        return self.name or self.email.split("@", 1)[0]


class AuditEvent(Base):
    """
    Append-only record of dashboard mutations.
    """

    __tablename__ = "audit_events"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=utcnow)
    request_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    client_ip: Mapped[str | None] = mapped_column(String(64), nullable=True)

    actor_user_id: Mapped[int | None] = mapped_column(ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    actor_user_email: Mapped[str | None] = mapped_column(String(320), nullable=True)

    action: Mapped[str] = mapped_column(String(128), nullable=False)  # e.g. "post.publish"
    entity_type: Mapped[str | None] = mapped_column(String(128), nullable=True)  # e.g. "BlogPost"
    entity_id: Mapped[str | None] = mapped_column(String(128), nullable=True)

    reason: Mapped[str | None] = mapped_column(String(512), nullable=True)
    metadata_json: Mapped[dict | None] = mapped_column(JSONType, nullable=True)


# Ensure module models are imported so Base.metadata includes their tables.
# (Kept at bottom to avoid circular imports.)
from app.kinygroup.modules.blog.models import (  # noqa: E402,F401
    BlogCategory,
    BlogComment,
    BlogPost,
    BlogPostLike,
    BlogPostView,
)
from app.kinygroup.modules.divisions.models import BrandActivity, BrandDivision  # noqa: E402,F401
from app.kinygroup.modules.about.models import (  # noqa: E402,F401
    Achievement,
    Client,
    Department,
    JourneyItem,
    TeamMember,
)
