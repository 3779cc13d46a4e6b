"""initial schema: users, blog, brand divisions, about content, audit

Revision ID: 5a1e0c7b9d20
Revises:
Create Date: 2026-10-19 09:12:44.108215

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = '5a1e0c7b9d20'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

JSONType = sa.JSON().with_variant(postgresql.JSONB(), "postgresql")


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    ]


def upgrade() -> None:
    """Create every table the application maps. Tables that already exist are left alone."""
    conn = op.get_bind()
    inspector = sa.inspect(conn)
    existing_tables = set(inspector.get_table_names())

    if "users" not in existing_tables:
        op.create_table(
            "users",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("name", sa.String(255), nullable=True),
            sa.Column("email", sa.String(320), nullable=False, unique=True),
            sa.Column("password_hash", sa.String(255), nullable=True),
            sa.Column("image", sa.String(500), nullable=True),
            sa.Column("role", sa.String(20), nullable=False, server_default="reader"),
            sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
            *_timestamps(),
        )

    if "audit_events" not in existing_tables:
        op.create_table(
            "audit_events",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
            sa.Column("request_id", sa.String(64), nullable=True),
            sa.Column("client_ip", sa.String(64), nullable=True),
            sa.Column("actor_user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
            sa.Column("actor_user_email", sa.String(320), nullable=True),
            sa.Column("action", sa.String(128), nullable=False),
            sa.Column("entity_type", sa.String(128), nullable=True),
            sa.Column("entity_id", sa.String(128), nullable=True),
            sa.Column("reason", sa.String(512), nullable=True),
            sa.Column("metadata_json", JSONType, nullable=True),
        )

    if "blog_categories" not in existing_tables:
        op.create_table(
            "blog_categories",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("name", sa.String(100), nullable=False, unique=True),
            sa.Column("slug", sa.String(100), nullable=False, unique=True),
            sa.Column("description", sa.Text(), nullable=True),
            *_timestamps(),
        )

    if "blog_posts" not in existing_tables:
        op.create_table(
            "blog_posts",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("title", sa.String(500), nullable=False),
            sa.Column("slug", sa.String(500), nullable=False, unique=True),
            sa.Column("excerpt", sa.Text(), nullable=True),
            sa.Column("content", sa.Text(), nullable=False),
            sa.Column("featured_image", sa.String(500), nullable=True),
            sa.Column("featured", sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column("author_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="RESTRICT"), nullable=False),
            sa.Column(
                "category_id", sa.Integer(), sa.ForeignKey("blog_categories.id", ondelete="SET NULL"), nullable=True
            ),
            sa.Column("read_time", sa.Integer(), nullable=False, server_default="5"),
            sa.Column("likes", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("views", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("comments_count", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("published_at", sa.DateTime(), nullable=True),
            *_timestamps(),
        )
        op.create_index("idx_blog_posts_published_at", "blog_posts", ["published_at"])
        op.create_index("idx_blog_posts_author_id", "blog_posts", ["author_id"])

    if "blog_comments" not in existing_tables:
        op.create_table(
            "blog_comments",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("post_id", sa.Integer(), sa.ForeignKey("blog_posts.id", ondelete="CASCADE"), nullable=False),
            sa.Column("author_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="RESTRICT"), nullable=False),
            sa.Column("content", sa.Text(), nullable=False),
            sa.Column(
                "parent_id", sa.Integer(), sa.ForeignKey("blog_comments.id", ondelete="CASCADE"), nullable=True
            ),
            *_timestamps(),
        )
        op.create_index("idx_blog_comments_post_id", "blog_comments", ["post_id", "created_at"])

    if "blog_post_likes" not in existing_tables:
        op.create_table(
            "blog_post_likes",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("post_id", sa.Integer(), sa.ForeignKey("blog_posts.id", ondelete="CASCADE"), nullable=False),
            sa.Column("liker_key", sa.String(128), nullable=False),
            sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
            sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
            sa.UniqueConstraint("post_id", "liker_key", name="uq_blog_post_likes_post_liker"),
        )

    if "blog_post_views" not in existing_tables:
        op.create_table(
            "blog_post_views",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("post_id", sa.Integer(), sa.ForeignKey("blog_posts.id", ondelete="CASCADE"), nullable=False),
            sa.Column("ip_address", sa.String(64), nullable=True),
            sa.Column("user_agent", sa.String(512), nullable=True),
            sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        )

    if "brand_divisions" not in existing_tables:
        op.create_table(
            "brand_divisions",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("name", sa.String(255), nullable=False),
            sa.Column("slug", sa.String(255), nullable=False, unique=True),
            sa.Column("tagline", sa.String(255), nullable=True),
            sa.Column("description", sa.Text(), nullable=False),
            sa.Column("full_description", sa.Text(), nullable=True),
            sa.Column("coverage", sa.String(255), nullable=True),
            sa.Column("delivery", sa.String(255), nullable=True),
            sa.Column("background_image", sa.String(500), nullable=True),
            sa.Column("logo", sa.String(500), nullable=True),
            sa.Column("color", sa.String(20), nullable=True),
            sa.Column("stats", JSONType, nullable=False),
            sa.Column("services", JSONType, nullable=False),
            sa.Column("achievements", JSONType, nullable=False),
            sa.Column("team", JSONType, nullable=False),
            sa.Column("theme", JSONType, nullable=False),
            sa.Column("featured", sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column("author_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="RESTRICT"), nullable=False),
            *_timestamps(),
        )
        op.create_index("idx_brand_divisions_featured_name", "brand_divisions", ["featured", "name"])

    if "brand_activities" not in existing_tables:
        op.create_table(
            "brand_activities",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column(
                "brand_division_id",
                sa.Integer(),
                sa.ForeignKey("brand_divisions.id", ondelete="CASCADE"),
                nullable=False,
            ),
            sa.Column("title", sa.String(255), nullable=False),
            sa.Column("description", sa.Text(), nullable=False),
            sa.Column("image_url", sa.String(500), nullable=False),
            sa.Column("order", sa.Integer(), nullable=False, server_default="0"),
            *_timestamps(),
        )
        op.create_index("idx_brand_activities_division_order", "brand_activities", ["brand_division_id", "order"])

    if "departments" not in existing_tables:
        op.create_table(
            "departments",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("name", sa.String(255), nullable=False),
            sa.Column("head", sa.String(255), nullable=False, server_default=""),
            sa.Column("description", sa.Text(), nullable=False, server_default=""),
            sa.Column("color", sa.String(50), nullable=False, server_default=""),
            sa.Column("order", sa.Integer(), nullable=False, server_default="0"),
            *_timestamps(),
        )

    if "team_members" not in existing_tables:
        op.create_table(
            "team_members",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("name", sa.String(255), nullable=False),
            sa.Column("title", sa.String(255), nullable=False),
            sa.Column("bio", sa.Text(), nullable=False, server_default=""),
            sa.Column("image", sa.String(500), nullable=False, server_default=""),
            sa.Column("role", sa.String(32), nullable=False, server_default="team_member"),
            sa.Column(
                "department_id", sa.Integer(), sa.ForeignKey("departments.id", ondelete="RESTRICT"), nullable=False
            ),
            sa.Column("order", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("icon", sa.String(64), nullable=False, server_default=""),
            sa.Column("achievements", JSONType, nullable=False),
            *_timestamps(),
        )

    if "clients" not in existing_tables:
        op.create_table(
            "clients",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("name", sa.String(255), nullable=False),
            sa.Column("logo_url", sa.String(500), nullable=False),
            sa.Column("order", sa.Integer(), nullable=False, server_default="0"),
            *_timestamps(),
        )

    if "achievements" not in existing_tables:
        op.create_table(
            "achievements",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("title", sa.String(255), nullable=False),
            sa.Column("description", sa.Text(), nullable=False, server_default=""),
            sa.Column("icon", sa.String(64), nullable=False, server_default=""),
            sa.Column("order", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("featured", sa.Boolean(), nullable=False, server_default=sa.false()),
            *_timestamps(),
        )

    if "journey_items" not in existing_tables:
        op.create_table(
            "journey_items",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("year", sa.String(16), nullable=False),
            sa.Column("title", sa.String(255), nullable=False),
            sa.Column("description", sa.Text(), nullable=False),
            sa.Column("image_url", sa.String(500), nullable=False),
            sa.Column("order", sa.Integer(), nullable=False, server_default="0"),
            *_timestamps(),
        )


def downgrade() -> None:
    for table in (
        "journey_items",
        "achievements",
        "clients",
        "team_members",
        "departments",
        "brand_activities",
        "brand_divisions",
        "blog_post_views",
        "blog_post_likes",
        "blog_comments",
        "blog_posts",
        "blog_categories",
        "audit_events",
        "users",
    ):
        op.drop_table(table)
