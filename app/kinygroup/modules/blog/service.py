from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import case, delete, func, or_, select

from app.kinygroup.audit import record_event
from app.kinygroup.constants import DEFAULT_READ_TIME, SLUG_RE
from app.kinygroup.errors import ConflictError, NotFoundError, PermissionDeniedError, ValidationError
from app.kinygroup.models import User, utcnow
from app.kinygroup.modules.blog.models import BlogCategory, BlogComment, BlogPost, BlogPostLike, BlogPostView
from app.kinygroup.rbac import user_has_permission
from app.kinygroup.utils import clean_str, make_excerpt, pagination, parse_bool, parse_int, slugify

if TYPE_CHECKING:
    from sqlalchemy.orm import Session


# ---------- Helpers ----------
def read_time_label(minutes: int | None) -> str:
    return f"{minutes or DEFAULT_READ_TIME} menit baca"


def post_excerpt(post: BlogPost) -> str:
    return post.excerpt or make_excerpt(post.content)


def can_publish(user: User | None) -> bool:
    return user_has_permission(user, "posts.publish")


def can_edit_post(user: User | None, post: BlogPost) -> bool:
    if user_has_permission(user, "posts.manage_all"):
        return True
    return bool(user) and user_has_permission(user, "posts.edit") and post.author_id == user.id


def can_delete_post(user: User | None, post: BlogPost) -> bool:
    if user_has_permission(user, "posts.manage_all"):
        return True
    return bool(user) and post.author_id == user.id


def _check_slug(s: "Session", slug: str, *, current_id: int | None = None) -> None:
    if not SLUG_RE.match(slug):
        raise ValidationError("Slug can only contain lowercase letters, numbers, and hyphens.")
    q = select(BlogPost.id).where(BlogPost.slug == slug)
    if current_id is not None:
        q = q.where(BlogPost.id != current_id)
    if s.execute(q).first() is not None:
        raise ConflictError("A post with this slug already exists")


def _resolve_category(s: "Session", payload: dict) -> BlogCategory | None:
    """Accept ``category_id`` or a category slug/name under ``category``."""
    raw_id = payload.get("category_id")
    if raw_id not in (None, ""):
        cat_id = parse_int(raw_id)
        cat = s.get(BlogCategory, cat_id) if cat_id is not None else None
        if not cat:
            raise ValidationError("Category not found.")
        return cat
    ref = clean_str(payload.get("category"))
    if not ref:
        return None
    cat = s.execute(
        select(BlogCategory).where(or_(BlogCategory.slug == ref, BlogCategory.name == ref))
    ).scalar_one_or_none()
    if not cat:
        raise ValidationError("Category not found.")
    return cat


# ---------- Posts ----------
def create_post(s: "Session", payload: dict, user: User) -> BlogPost:
    title = clean_str(payload.get("title"))
    slug = clean_str(payload.get("slug"))
    content = clean_str(payload.get("content"))
    if not title or not slug or not content:
        raise ValidationError("Title, slug, and content are required.")
    _check_slug(s, slug)
    category = _resolve_category(s, payload)

    publish = parse_bool(payload.get("published")) and can_publish(user)
    post = BlogPost(
        title=title,
        slug=slug,
        excerpt=clean_str(payload.get("excerpt")),
        content=content,
        featured_image=clean_str(payload.get("featured_image")),
        featured=parse_bool(payload.get("featured")),
        author_id=user.id,
        category_id=category.id if category else None,
        read_time=parse_int(payload.get("read_time"), DEFAULT_READ_TIME, minimum=1),
        published_at=utcnow() if publish else None,
    )
    s.add(post)
    s.flush()

    record_event(
        s,
        actor=user,
        action="post.publish" if publish else "post.create",
        entity_type="BlogPost",
        entity_id=post.id,
        metadata={"title": post.title, "slug": post.slug},
    )
    return post


def update_post(s: "Session", post: BlogPost, payload: dict, user: User) -> BlogPost:
    if not can_edit_post(user, post):
        raise PermissionDeniedError("Unauthorized to edit this post")

    title = clean_str(payload.get("title"))
    slug = clean_str(payload.get("slug"))
    content = clean_str(payload.get("content"))
    if not title or not slug or not content:
        raise ValidationError("Title, slug, and content are required.")
    if slug != post.slug:
        _check_slug(s, slug, current_id=post.id)

    was_published = post.is_published
    post.title = title
    post.slug = slug
    post.content = content
    post.excerpt = clean_str(payload.get("excerpt"))
    post.featured_image = clean_str(payload.get("featured_image"))
    post.featured = parse_bool(payload.get("featured"))
    category = _resolve_category(s, payload)
    post.category_id = category.id if category else None
    post.read_time = parse_int(payload.get("read_time"), DEFAULT_READ_TIME, minimum=1)

    if "published" in payload:
        wants = parse_bool(payload.get("published"))
        if wants and can_publish(user):
            post.published_at = post.published_at or utcnow()
        elif not wants:
            post.published_at = None
        # a non-publisher asking to publish keeps the current state

    action = "post.update"
    if post.is_published and not was_published:
        action = "post.publish"
    elif was_published and not post.is_published:
        action = "post.unpublish"
    record_event(
        s,
        actor=user,
        action=action,
        entity_type="BlogPost",
        entity_id=post.id,
        metadata={"title": post.title, "slug": post.slug},
    )
    return post


def delete_post(s: "Session", post: BlogPost, user: User) -> None:
    if not can_delete_post(user, post):
        raise PermissionDeniedError("Unauthorized to delete this post")
    post_id = post.id
    meta = {"title": post.title, "slug": post.slug}
    s.execute(delete(BlogComment).where(BlogComment.post_id == post_id))
    s.execute(delete(BlogPostLike).where(BlogPostLike.post_id == post_id))
    s.execute(delete(BlogPostView).where(BlogPostView.post_id == post_id))
    s.delete(post)
    s.flush()
    record_event(s, actor=user, action="post.delete", entity_type="BlogPost", entity_id=post_id, metadata=meta)


def get_post_for_user(s: "Session", post_id: int, user: User) -> BlogPost:
    post = s.get(BlogPost, post_id)
    if not post:
        raise NotFoundError("Post not found")
    if not can_edit_post(user, post):
        raise PermissionDeniedError("Unauthorized to access this post")
    return post


def list_posts_for_dashboard(
    s: "Session",
    user: User,
    *,
    page: int = 1,
    limit: int = 10,
    search: str = "",
    category: str = "",
    published: bool | None = None,
) -> tuple[list[BlogPost], dict[str, int]]:
    """Dashboard listing. Contributors only see their own posts."""
    q = select(BlogPost)
    if not user_has_permission(user, "posts.manage_all"):
        q = q.where(BlogPost.author_id == user.id)
    if search:
        q = q.where(BlogPost.title.ilike(f"%{search}%"))
    if category:
        q = q.join(BlogCategory, BlogPost.category_id == BlogCategory.id).where(
            or_(BlogCategory.slug == category, BlogCategory.name == category)
        )
    if published is True:
        q = q.where(BlogPost.published_at.isnot(None))
    elif published is False:
        q = q.where(BlogPost.published_at.is_(None))

    total = s.execute(select(func.count()).select_from(q.subquery())).scalar_one()
    page = max(page, 1)
    limit = max(limit, 1)
    posts = list(
        s.execute(
            q.order_by(BlogPost.created_at.desc(), BlogPost.id.desc()).limit(limit).offset((page - 1) * limit)
        ).scalars()
    )
    return posts, pagination(page, limit, total)


def _published_query(category: str | None = None, search: str | None = None):
    q = (
        select(BlogPost)
        .outerjoin(User, BlogPost.author_id == User.id)
        .outerjoin(BlogCategory, BlogPost.category_id == BlogCategory.id)
        .where(BlogPost.published_at.isnot(None))
    )
    if category and category != "Semua":
        q = q.where(or_(BlogCategory.slug == category, BlogCategory.name == category))
    if search:
        like = f"%{search}%"
        q = q.where(
            or_(
                BlogPost.title.ilike(like),
                BlogPost.excerpt.ilike(like),
                User.name.ilike(like),
                BlogCategory.name.ilike(like),
            )
        )
    return q


def list_published_posts(
    s: "Session",
    *,
    category: str | None = None,
    search: str | None = None,
    limit: int = 10,
    offset: int = 0,
) -> list[BlogPost]:
    q = _published_query(category, search).order_by(
        BlogPost.featured.desc(), BlogPost.published_at.desc(), BlogPost.id.desc()
    )
    return list(s.execute(q.limit(limit).offset(offset)).scalars())


def count_published_posts(s: "Session", *, category: str | None = None, search: str | None = None) -> int:
    q = _published_query(category, search)
    return s.execute(select(func.count()).select_from(q.subquery())).scalar_one()


def featured_posts(s: "Session", limit: int = 3) -> list[BlogPost]:
    q = (
        select(BlogPost)
        .where(BlogPost.published_at.isnot(None), BlogPost.featured.is_(True))
        .order_by(BlogPost.published_at.desc())
        .limit(limit)
    )
    return list(s.execute(q).scalars())


def get_published_post(s: "Session", slug: str) -> BlogPost:
    post = s.execute(
        select(BlogPost).where(BlogPost.slug == slug, BlogPost.published_at.isnot(None))
    ).scalar_one_or_none()
    if not post:
        raise NotFoundError("Blog post not found")
    return post


def get_post_by_slug(s: "Session", slug: str) -> BlogPost:
    post = s.execute(select(BlogPost).where(BlogPost.slug == slug)).scalar_one_or_none()
    if not post:
        raise NotFoundError("Blog post not found")
    return post


def record_view(s: "Session", post: BlogPost, ip_address: str | None, user_agent: str | None) -> None:
    s.add(BlogPostView(post_id=post.id, ip_address=(ip_address or "unknown")[:64], user_agent=(user_agent or "")[:512]))
    post.views = BlogPost.views + 1
    s.flush()
    s.refresh(post, attribute_names=["views"])


# ---------- Comments ----------
def list_comments(s: "Session", post: BlogPost) -> list[BlogComment]:
    q = (
        select(BlogComment)
        .where(BlogComment.post_id == post.id)
        .order_by(BlogComment.created_at.desc(), BlogComment.id.desc())
    )
    return list(s.execute(q).scalars())


def comment_tree(comments: list[BlogComment]) -> list[tuple[BlogComment, list[BlogComment]]]:
    """Top-level comments with every reply beneath them (oldest reply first).

    Replies to replies are attached to their top-level ancestor.
    """
    by_id = {c.id: c for c in comments}

    def root_of(c: BlogComment) -> int:
        seen = set()
        while c.parent_id is not None and c.parent_id in by_id and c.id not in seen:
            seen.add(c.id)
            c = by_id[c.parent_id]
        return c.id

    replies: dict[int, list[BlogComment]] = {}
    for c in comments:
        if c.parent_id is not None:
            replies.setdefault(root_of(c), []).append(c)
    out = []
    for c in comments:
        if c.parent_id is None:
            out.append((c, list(reversed(replies.get(c.id, [])))))
    return out


def _recount_comments(s: "Session", post_id: int) -> int:
    count = s.execute(
        select(func.count()).select_from(BlogComment).where(BlogComment.post_id == post_id)
    ).scalar_one()
    post = s.get(BlogPost, post_id)
    if post:
        post.comments_count = count
    return count


def add_comment(
    s: "Session",
    post: BlogPost,
    user: User,
    content: str | None,
    parent_id: int | str | None = None,
) -> BlogComment:
    text = clean_str(content)
    if not text:
        raise ValidationError("Comment content is required")
    parent = None
    if parent_id not in (None, ""):
        pid = parse_int(parent_id)
        parent = s.get(BlogComment, pid) if pid is not None else None
        if not parent or parent.post_id != post.id:
            raise NotFoundError("Parent comment not found")

    comment = BlogComment(post_id=post.id, author_id=user.id, content=text, parent_id=parent.id if parent else None)
    s.add(comment)
    s.flush()
    post.comments_count = BlogPost.comments_count + 1
    s.flush()
    s.refresh(post, attribute_names=["comments_count"])
    return comment


def _descendant_ids(s: "Session", root_id: int) -> list[int]:
    ids = [root_id]
    frontier = [root_id]
    while frontier:
        children = list(s.execute(select(BlogComment.id).where(BlogComment.parent_id.in_(frontier))).scalars())
        ids.extend(children)
        frontier = children
    return ids


def delete_comment(s: "Session", comment: BlogComment, user: User) -> None:
    """Delete a comment and its replies, then recount the post's comments."""
    post_id = comment.post_id
    comment_id = comment.id
    ids = _descendant_ids(s, comment_id)
    s.execute(delete(BlogComment).where(BlogComment.id.in_(ids)).execution_options(synchronize_session=False))
    s.expire_all()
    _recount_comments(s, post_id)
    record_event(
        s,
        actor=user,
        action="comment.delete",
        entity_type="BlogComment",
        entity_id=comment_id,
        metadata={"post_id": post_id, "deleted": len(ids)},
    )


def get_comment(s: "Session", comment_id: int) -> BlogComment:
    comment = s.get(BlogComment, comment_id)
    if not comment:
        raise NotFoundError("Comment not found")
    return comment


def list_all_comments(s: "Session", search: str = "", limit: int | None = None) -> list[BlogComment]:
    q = (
        select(BlogComment)
        .join(BlogPost, BlogComment.post_id == BlogPost.id)
        .outerjoin(User, BlogComment.author_id == User.id)
    )
    if search:
        like = f"%{search}%"
        q = q.where(or_(BlogComment.content.ilike(like), BlogPost.title.ilike(like), User.name.ilike(like)))
    q = q.order_by(BlogComment.created_at.desc(), BlogComment.id.desc())
    if limit:
        q = q.limit(limit)
    return list(s.execute(q).scalars())


# ---------- Likes ----------
def liker_key_for(user: User | None, visitor_token: str | None) -> str:
    if user is not None:
        return f"user:{user.id}"
    if not visitor_token:
        raise ValidationError("Visitor token is required")
    return f"anon:{visitor_token}"


def like_status(s: "Session", post: BlogPost, liker_key: str) -> bool:
    row = s.execute(
        select(BlogPostLike.id).where(BlogPostLike.post_id == post.id, BlogPostLike.liker_key == liker_key)
    ).first()
    return row is not None


def toggle_like(
    s: "Session",
    post: BlogPost,
    liker_key: str,
    user: User | None = None,
    desired: bool | None = None,
) -> tuple[bool, int]:
    """
    Flip (or set, when ``desired`` is given) the like state for one liker.

    Returns ``(liked, likes)``. Setting the current state again changes nothing,
    and the counter never drops below zero.
    """
    existing = s.execute(
        select(BlogPostLike).where(BlogPostLike.post_id == post.id, BlogPostLike.liker_key == liker_key)
    ).scalar_one_or_none()
    currently = existing is not None
    target = (not currently) if desired is None else desired

    if target and not currently:
        s.add(BlogPostLike(post_id=post.id, liker_key=liker_key, user_id=user.id if user else None))
        post.likes = BlogPost.likes + 1
    elif currently and not target:
        s.delete(existing)
        post.likes = case((BlogPost.likes > 0, BlogPost.likes - 1), else_=0)
    s.flush()
    s.refresh(post, attribute_names=["likes"])
    return target, post.likes


# ---------- Categories ----------
def list_categories(s: "Session") -> list[BlogCategory]:
    return list(s.execute(select(BlogCategory).order_by(BlogCategory.name.asc())).scalars())


def get_category(s: "Session", category_id: int) -> BlogCategory:
    cat = s.get(BlogCategory, category_id)
    if not cat:
        raise NotFoundError("Category not found")
    return cat


def slug_available(s: "Session", slug: str, current_id: int | None = None) -> bool:
    q = select(BlogCategory.id).where(BlogCategory.slug == slug)
    if current_id is not None:
        q = q.where(BlogCategory.id != current_id)
    return s.execute(q).first() is None


def _category_fields(s: "Session", payload: dict, current_id: int | None = None) -> tuple[str, str, str | None]:
    name = clean_str(payload.get("name"))
    slug = clean_str(payload.get("slug")) or slugify(name)
    if not name or not slug:
        raise ValidationError("Name and slug are required.")
    if not SLUG_RE.match(slug):
        raise ValidationError("Slug can only contain lowercase letters, numbers, and hyphens.")
    if not slug_available(s, slug, current_id):
        raise ConflictError("A category with this slug already exists")
    q = select(BlogCategory.id).where(BlogCategory.name == name)
    if current_id is not None:
        q = q.where(BlogCategory.id != current_id)
    if s.execute(q).first() is not None:
        raise ConflictError("A category with this name already exists")
    return name, slug, clean_str(payload.get("description"))


def create_category(s: "Session", payload: dict, user: User) -> BlogCategory:
    name, slug, description = _category_fields(s, payload)
    cat = BlogCategory(name=name, slug=slug, description=description)
    s.add(cat)
    s.flush()
    record_event(s, actor=user, action="category.create", entity_type="BlogCategory", entity_id=cat.id, metadata={"slug": slug})
    return cat


def update_category(s: "Session", cat: BlogCategory, payload: dict, user: User) -> BlogCategory:
    name, slug, description = _category_fields(s, payload, current_id=cat.id)
    cat.name = name
    cat.slug = slug
    cat.description = description
    record_event(s, actor=user, action="category.update", entity_type="BlogCategory", entity_id=cat.id, metadata={"slug": slug})
    return cat


def delete_category(s: "Session", cat: BlogCategory, user: User) -> None:
    cat_id = cat.id
    for post in s.execute(select(BlogPost).where(BlogPost.category_id == cat_id)).scalars():
        post.category_id = None
    s.delete(cat)
    s.flush()
    record_event(s, actor=user, action="category.delete", entity_type="BlogCategory", entity_id=cat_id)


# ---------- Stats helpers used by the dashboard ----------
def count_posts_since(s: "Session", since: datetime | None = None) -> int:
    q = select(func.count()).select_from(BlogPost)
    if since is not None:
        q = q.where(BlogPost.created_at >= since)
    return s.execute(q).scalar_one()


def count_comments_since(s: "Session", since: datetime | None = None) -> int:
    q = select(func.count()).select_from(BlogComment)
    if since is not None:
        q = q.where(BlogComment.created_at >= since)
    return s.execute(q).scalar_one()
