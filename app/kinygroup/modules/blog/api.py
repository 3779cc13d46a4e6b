from __future__ import annotations

from flask import Blueprint, g, jsonify, request

from app.kinygroup.constants import PLACEHOLDER_BLOG_IMAGE
from app.kinygroup.db import db_session
from app.kinygroup.errors import AuthenticationRequired, NotFoundError
from app.kinygroup.modules.blog.models import BlogCategory, BlogComment, BlogPost
from app.kinygroup.modules.blog.service import (
    add_comment,
    create_category,
    create_post,
    delete_category,
    delete_comment,
    delete_post,
    featured_posts,
    get_category,
    get_comment,
    get_post_by_slug,
    get_post_for_user,
    get_published_post,
    like_status,
    liker_key_for,
    list_all_comments,
    list_categories,
    list_comments,
    list_posts_for_dashboard,
    list_published_posts,
    post_excerpt,
    read_time_label,
    record_view,
    slug_available,
    toggle_like,
    update_category,
    update_post,
)
from app.kinygroup.rbac import api_require_permission, user_has_permission
from app.kinygroup.security import anonymous_visitor_token
from app.kinygroup.utils import api_errors, format_date_id, isoformat, json_payload, parse_int

bp = Blueprint("blog_api", __name__)

# camelCase keys sent by the dashboard editor
_POST_KEY_ALIASES = {
    "featuredImage": "featured_image",
    "readTime": "read_time",
    "categoryId": "category_id",
}


def _post_payload(data: dict) -> dict:
    return {_POST_KEY_ALIASES.get(k, k): v for k, v in data.items()}


# ---------- Serializers ----------
def public_post_dict(post: BlogPost) -> dict:
    image = PLACEHOLDER_BLOG_IMAGE
    if post.featured_image:
        sep = "&" if "?" in post.featured_image else "?"
        image = f"{post.featured_image}{sep}t={int(post.updated_at.timestamp())}"
    return {
        "id": str(post.id),
        "title": post.title,
        "slug": post.slug,
        "excerpt": post_excerpt(post),
        "content": post.content,
        "imageUrl": image,
        "featured": bool(post.featured),
        "category": post.category.name if post.category else "Uncategorized",
        "readTime": read_time_label(post.read_time),
        "likes": post.likes or 0,
        "views": post.views or 0,
        "comments": post.comments_count or 0,
        "date": format_date_id(post.published_at or post.created_at),
        "author": (post.author.name if post.author and post.author.name else "Admin"),
        "authorId": str(post.author_id),
        "authorImage": post.author.image if post.author else None,
        "createdAt": isoformat(post.created_at),
        "updatedAt": isoformat(post.updated_at),
    }


def comment_dict(c: BlogComment) -> dict:
    return {
        "id": str(c.id),
        "content": c.content,
        "parentId": str(c.parent_id) if c.parent_id is not None else None,
        "author": (c.author.name if c.author and c.author.name else "Anonymous"),
        "authorImage": c.author.image if c.author else None,
        "createdAt": isoformat(c.created_at),
        "updatedAt": isoformat(c.updated_at),
    }


def dashboard_post_dict(post: BlogPost) -> dict:
    return {
        "id": post.id,
        "title": post.title,
        "slug": post.slug,
        "excerpt": post.excerpt,
        "content": post.content,
        "featuredImage": post.featured_image,
        "featured": bool(post.featured),
        "categoryId": post.category_id,
        "category": post.category.name if post.category else None,
        "readTime": post.read_time,
        "likes": post.likes,
        "views": post.views,
        "commentsCount": post.comments_count,
        "authorId": post.author_id,
        "published": post.is_published,
        "publishedAt": isoformat(post.published_at),
        "createdAt": isoformat(post.created_at),
        "updatedAt": isoformat(post.updated_at),
    }


def dashboard_comment_dict(c: BlogComment) -> dict:
    out = comment_dict(c)
    out.update(
        {
            "postId": c.post_id,
            "postTitle": c.post.title if c.post else None,
            "postSlug": c.post.slug if c.post else None,
            "authorEmail": c.author.email if c.author else None,
        }
    )
    return out


def category_dict(c: BlogCategory) -> dict:
    return {
        "id": c.id,
        "name": c.name,
        "slug": c.slug,
        "description": c.description,
        "createdAt": isoformat(c.created_at),
        "updatedAt": isoformat(c.updated_at),
    }


# ---------- Public blog ----------
@bp.get("/blog")
@api_errors("Fetch blog posts")
def public_list():
    s = db_session()
    posts = list_published_posts(
        s,
        category=(request.args.get("category") or "").strip() or None,
        search=(request.args.get("search") or "").strip() or None,
        limit=parse_int(request.args.get("limit"), 10, minimum=1),
        offset=parse_int(request.args.get("offset"), 0, minimum=0),
    )
    resp = jsonify([public_post_dict(p) for p in posts])
    resp.headers["Cache-Control"] = "public, max-age=300, s-maxage=300"
    return resp


@bp.get("/blog/featured")
@api_errors("Fetch featured posts")
def public_featured():
    s = db_session()
    limit = parse_int(request.args.get("limit"), 3, minimum=1)
    return jsonify([public_post_dict(p) for p in featured_posts(s, limit=limit)])


@bp.get("/blog/categories")
@api_errors("Fetch categories")
def public_categories():
    s = db_session()
    return jsonify([category_dict(c) for c in list_categories(s)])


@bp.get("/blog/<slug>")
@api_errors("Fetch blog post")
def public_detail(slug: str):
    s = db_session()
    post = get_published_post(s, slug)
    data = public_post_dict(post)
    data["commentsList"] = [comment_dict(c) for c in list_comments(s, post)]
    ip = request.headers.get("X-Forwarded-For") or request.headers.get("X-Real-IP") or request.remote_addr
    record_view(s, post, ip, request.headers.get("User-Agent"))
    s.commit()
    return jsonify(data)


@bp.get("/blog/<slug>/comments")
@api_errors("Fetch comments")
def public_comments(slug: str):
    s = db_session()
    post = get_post_by_slug(s, slug)
    return jsonify({"comments": [comment_dict(c) for c in list_comments(s, post)]})


@bp.post("/blog/<slug>/comments")
@api_errors("Create comment")
def public_comment_create(slug: str):
    user = getattr(g, "current_user", None)
    if not user_has_permission(user, "comments.create"):
        raise AuthenticationRequired("Authentication required")
    s = db_session()
    data = json_payload()
    post = get_post_by_slug(s, slug)
    comment = add_comment(s, post, user, data.get("content"), data.get("parentId", data.get("parent_id")))
    s.commit()
    return jsonify({"comment": comment_dict(comment), "comments": post.comments_count}), 201


@bp.get("/blog/<slug>/like")
@api_errors("Check like status")
def public_like_status(slug: str):
    s = db_session()
    post = get_post_by_slug(s, slug)
    key = liker_key_for(getattr(g, "current_user", None), anonymous_visitor_token())
    return jsonify({"liked": like_status(s, post, key), "likes": post.likes})


@bp.post("/blog/<slug>/like")
@api_errors("Toggle like")
def public_like_toggle(slug: str):
    s = db_session()
    user = getattr(g, "current_user", None)
    post = get_post_by_slug(s, slug)
    data = json_payload()
    desired = data.get("liked")
    if desired is not None:
        desired = bool(desired)
    key = liker_key_for(user, anonymous_visitor_token())
    liked, likes = toggle_like(s, post, key, user=user, desired=desired)
    s.commit()
    return jsonify(
        {
            "liked": liked,
            "likes": likes,
            "message": "Post liked successfully" if liked else "Post unliked successfully",
        }
    )


# ---------- Dashboard: posts ----------
@bp.get("/posts")
@api_require_permission("posts.view")
@api_errors("Fetch posts")
def posts_list():
    s = db_session()
    published_raw = request.args.get("published")
    published = None if published_raw is None else published_raw == "true"
    posts, pages = list_posts_for_dashboard(
        s,
        g.current_user,
        page=parse_int(request.args.get("page"), 1, minimum=1),
        limit=parse_int(request.args.get("limit"), 10, minimum=1),
        search=(request.args.get("search") or "").strip(),
        category=(request.args.get("category") or "").strip(),
        published=published,
    )
    return jsonify({"posts": [dashboard_post_dict(p) for p in posts], "pagination": pages})


@bp.post("/posts")
@api_require_permission("posts.create")
@api_errors("Create post")
def posts_create():
    s = db_session()
    post = create_post(s, _post_payload(json_payload()), g.current_user)
    s.commit()
    message = "Post published successfully" if post.is_published else "Post created successfully"
    return jsonify({"message": message, "post": dashboard_post_dict(post)}), 201


@bp.get("/posts/<int:post_id>")
@api_require_permission("posts.view")
@api_errors("Fetch post")
def posts_get(post_id: int):
    s = db_session()
    return jsonify(dashboard_post_dict(get_post_for_user(s, post_id, g.current_user)))


@bp.route("/posts/<int:post_id>", methods=["PUT", "PATCH"])
@api_require_permission("posts.edit")
@api_errors("Update post")
def posts_update(post_id: int):
    s = db_session()
    post = get_post_for_user(s, post_id, g.current_user)
    update_post(s, post, _post_payload(json_payload()), g.current_user)
    s.commit()
    return jsonify({"message": "Post updated successfully", "post": dashboard_post_dict(post)})


@bp.delete("/posts/<int:post_id>")
@api_require_permission("posts.delete")
@api_errors("Delete post")
def posts_delete(post_id: int):
    s = db_session()
    post = s.get(BlogPost, post_id)
    if not post:
        raise NotFoundError("Post not found")
    delete_post(s, post, g.current_user)
    s.commit()
    return jsonify({"message": "Post deleted successfully"})


# ---------- Dashboard: comments ----------
@bp.get("/comments")
@api_require_permission("comments.view")
@api_errors("Fetch comments")
def comments_list():
    s = db_session()
    search = (request.args.get("search") or "").strip()
    return jsonify([dashboard_comment_dict(c) for c in list_all_comments(s, search)])


@bp.get("/comments/<int:comment_id>")
@api_require_permission("comments.view")
@api_errors("Fetch comment")
def comments_get(comment_id: int):
    s = db_session()
    return jsonify(dashboard_comment_dict(get_comment(s, comment_id)))


@bp.delete("/comments/<int:comment_id>")
@api_require_permission("comments.delete")
@api_errors("Delete comment")
def comments_delete(comment_id: int):
    s = db_session()
    delete_comment(s, get_comment(s, comment_id), g.current_user)
    s.commit()
    return jsonify({"success": True})


# ---------- Dashboard: categories ----------
@bp.get("/categories")
@api_errors("Fetch categories")
def categories_list():
    s = db_session()
    return jsonify([category_dict(c) for c in list_categories(s)])


@bp.post("/categories")
@api_require_permission("categories.create")
@api_errors("Create category")
def categories_create():
    s = db_session()
    cat = create_category(s, json_payload(), g.current_user)
    s.commit()
    return jsonify({"message": "Category created successfully", "category": category_dict(cat)}), 201


@bp.get("/categories/check-slug")
@api_errors("Check slug availability")
def categories_check_slug():
    slug = (request.args.get("slug") or "").strip()
    if not slug:
        return jsonify({"error": "Slug parameter is required"}), 400
    s = db_session()
    current_id = parse_int(request.args.get("id"))
    return jsonify({"available": slug_available(s, slug, current_id)})


@bp.get("/categories/<int:category_id>")
@api_errors("Fetch category")
def categories_get(category_id: int):
    s = db_session()
    return jsonify(category_dict(get_category(s, category_id)))


@bp.put("/categories/<int:category_id>")
@api_require_permission("categories.edit")
@api_errors("Update category")
def categories_update(category_id: int):
    s = db_session()
    cat = update_category(s, get_category(s, category_id), json_payload(), g.current_user)
    s.commit()
    return jsonify({"message": "Category updated successfully", "category": category_dict(cat)})


@bp.delete("/categories/<int:category_id>")
@api_require_permission("categories.delete")
@api_errors("Delete category")
def categories_delete(category_id: int):
    s = db_session()
    delete_category(s, get_category(s, category_id), g.current_user)
    s.commit()
    return jsonify({"message": "Category deleted successfully"})
