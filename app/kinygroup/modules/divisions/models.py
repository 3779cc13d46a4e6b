from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.kinygroup.models import Base, JSONType, User, utcnow


class BrandDivision(Base):
    __tablename__ = "brand_divisions"
    __table_args__ = (
        Index("idx_brand_divisions_featured_name", "featured", "name"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    slug: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    tagline: Mapped[str | None] = mapped_column(String(255), nullable=True)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    full_description: Mapped[str | None] = mapped_column(Text, nullable=True)
    coverage: Mapped[str | None] = mapped_column(String(255), nullable=True)  # e.g. "167 Countries"
    delivery: Mapped[str | None] = mapped_column(String(255), nullable=True)

    background_image: Mapped[str | None] = mapped_column(String(500), nullable=True)
    logo: Mapped[str | None] = mapped_column(String(500), nullable=True)
    color: Mapped[str | None] = mapped_column(String(20), nullable=True)

    # {"label1": ..., "value1": ..., ... "label4": ..., "value4": ...}
    stats: Mapped[dict] = mapped_column(JSONType, nullable=False, default=dict)
    # [{"name": ..., "description": ...}]
    services: Mapped[list] = mapped_column(JSONType, nullable=False, default=list)
    achievements: Mapped[list] = mapped_column(JSONType, nullable=False, default=list)
    # [{"name": ..., "position": ...}]
    team: Mapped[list] = mapped_column(JSONType, nullable=False, default=list)
    theme: Mapped[dict] = mapped_column(JSONType, nullable=False, default=dict)

    featured: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    author_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="RESTRICT"), nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=False), nullable=False, default=utcnow, onupdate=utcnow
    )

    author: Mapped[User] = relationship("User", lazy="selectin")
    activities: Mapped[list["BrandActivity"]] = relationship(
        "BrandActivity",
        back_populates="division",
        cascade="all, delete-orphan",
        order_by="BrandActivity.order",
        lazy="selectin",
    )


class BrandActivity(Base):
    __tablename__ = "brand_activities"
    __table_args__ = (
        Index("idx_brand_activities_division_order", "brand_division_id", "order"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    brand_division_id: Mapped[int] = mapped_column(
        ForeignKey("brand_divisions.id", ondelete="CASCADE"), nullable=False
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    image_url: Mapped[str] = mapped_column(String(500), nullable=False)
    order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=False), nullable=False, default=utcnow, onupdate=utcnow
    )

    division: Mapped[BrandDivision] = relationship("BrandDivision", back_populates="activities", lazy="selectin")
