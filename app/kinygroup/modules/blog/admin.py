from __future__ import annotations

from flask import Blueprint, abort, flash, g, redirect, render_template, request, url_for

from app.kinygroup.db import db_session
from app.kinygroup.errors import ServiceError
from app.kinygroup.models import User
from app.kinygroup.modules.blog.models import BlogPost
from app.kinygroup.modules.blog.service import (
    can_delete_post,
    can_edit_post,
    can_publish,
    create_category,
    create_post,
    delete_category,
    delete_comment,
    delete_post,
    get_category,
    get_comment,
    list_all_comments,
    list_categories,
    list_posts_for_dashboard,
    update_category,
    update_post,
)
from app.kinygroup.rbac import require_permission
from app.kinygroup.utils import parse_int

bp = Blueprint("blog_admin", __name__)


def _current_user() -> User:
    u = getattr(g, "current_user", None)
    if not u:
        raise RuntimeError("No current user")
    return u


def _post_form() -> dict:
    return {
        "title": request.form.get("title"),
        "slug": request.form.get("slug"),
        "excerpt": request.form.get("excerpt"),
        "content": request.form.get("content"),
        "featured_image": request.form.get("featured_image"),
        "featured": request.form.get("featured"),
        "category_id": request.form.get("category_id"),
        "read_time": request.form.get("read_time"),
        "published": request.form.get("published"),
    }


# ---------- Posts ----------
@bp.get("/posts")
@require_permission("posts.view")
def posts_list():
    s = db_session()
    search = (request.args.get("q") or "").strip()
    status = (request.args.get("status") or "").strip()
    published = {"published": True, "draft": False}.get(status)
    page = parse_int(request.args.get("page"), 1, minimum=1)
    posts, pages = list_posts_for_dashboard(s, _current_user(), page=page, limit=20, search=search, published=published)
    return render_template(
        "dashboard/posts/list.html",
        posts=posts,
        pagination=pages,
        search=search,
        status=status,
    )


@bp.get("/posts/new")
@require_permission("posts.create")
def posts_new_get():
    s = db_session()
    return render_template(
        "dashboard/posts/form.html",
        post=None,
        form={},
        categories=list_categories(s),
        can_publish=can_publish(_current_user()),
    )


@bp.post("/posts/new")
@require_permission("posts.create")
def posts_new_post():
    s = db_session()
    u = _current_user()
    payload = _post_form()
    try:
        post = create_post(s, payload, u)
    except ServiceError as e:
        s.rollback()
        flash(e.message, "danger")
        return render_template(
            "dashboard/posts/form.html",
            post=None,
            form=payload,
            categories=list_categories(s),
            can_publish=can_publish(u),
        ), e.status_code
    s.commit()
    flash("Post published." if post.is_published else "Post saved as draft.", "success")
    return redirect(url_for("blog_admin.posts_list"))


def _editable_post(post_id: int) -> BlogPost:
    s = db_session()
    post = s.get(BlogPost, post_id)
    if not post:
        abort(404)
    if not can_edit_post(_current_user(), post):
        abort(403)
    return post


@bp.get("/posts/<int:post_id>/edit")
@require_permission("posts.edit")
def posts_edit_get(post_id: int):
    s = db_session()
    post = _editable_post(post_id)
    return render_template(
        "dashboard/posts/form.html",
        post=post,
        form={},
        categories=list_categories(s),
        can_publish=can_publish(_current_user()),
    )


@bp.post("/posts/<int:post_id>/edit")
@require_permission("posts.edit")
def posts_edit_post(post_id: int):
    s = db_session()
    u = _current_user()
    post = _editable_post(post_id)
    payload = _post_form()
    if not can_publish(u):
        # Contributors have no publish control; keep the stored state.
        payload.pop("published")
    try:
        update_post(s, post, payload, u)
    except ServiceError as e:
        s.rollback()
        flash(e.message, "danger")
        return redirect(url_for("blog_admin.posts_edit_get", post_id=post_id))
    s.commit()
    flash("Post updated.", "success")
    return redirect(url_for("blog_admin.posts_list"))


@bp.post("/posts/<int:post_id>/delete")
@require_permission("posts.delete")
def posts_delete(post_id: int):
    s = db_session()
    u = _current_user()
    post = s.get(BlogPost, post_id)
    if not post:
        abort(404)
    if not can_delete_post(u, post):
        abort(403)
    delete_post(s, post, u)
    s.commit()
    flash("Post deleted.", "success")
    return redirect(url_for("blog_admin.posts_list"))


# ---------- Comments ----------
@bp.get("/comments")
@require_permission("comments.view")
def comments_list():
    s = db_session()
    search = (request.args.get("q") or "").strip()
    return render_template("dashboard/comments/list.html", comments=list_all_comments(s, search), search=search)


@bp.post("/comments/<int:comment_id>/delete")
@require_permission("comments.delete")
def comments_delete(comment_id: int):
    s = db_session()
    try:
        comment = get_comment(s, comment_id)
    except ServiceError:
        abort(404)
    delete_comment(s, comment, _current_user())
    s.commit()
    flash("Comment deleted.", "success")
    return redirect(url_for("blog_admin.comments_list"))


# ---------- Categories ----------
@bp.get("/categories")
@require_permission("categories.view")
def categories_list():
    s = db_session()
    return render_template("dashboard/categories/list.html", categories=list_categories(s))


@bp.get("/categories/new")
@require_permission("categories.create")
def categories_new_get():
    return render_template("dashboard/categories/form.html", category=None)


@bp.post("/categories/new")
@require_permission("categories.create")
def categories_new_post():
    s = db_session()
    payload = {k: request.form.get(k) for k in ("name", "slug", "description")}
    try:
        create_category(s, payload, _current_user())
    except ServiceError as e:
        s.rollback()
        flash(e.message, "danger")
        return redirect(url_for("blog_admin.categories_new_get"))
    s.commit()
    flash("Category created.", "success")
    return redirect(url_for("blog_admin.categories_list"))


@bp.get("/categories/<int:category_id>/edit")
@require_permission("categories.edit")
def categories_edit_get(category_id: int):
    s = db_session()
    try:
        category = get_category(s, category_id)
    except ServiceError:
        abort(404)
    return render_template("dashboard/categories/form.html", category=category)


@bp.post("/categories/<int:category_id>/edit")
@require_permission("categories.edit")
def categories_edit_post(category_id: int):
    s = db_session()
    try:
        category = get_category(s, category_id)
    except ServiceError:
        abort(404)
    payload = {k: request.form.get(k) for k in ("name", "slug", "description")}
    try:
        update_category(s, category, payload, _current_user())
    except ServiceError as e:
        s.rollback()
        flash(e.message, "danger")
        return redirect(url_for("blog_admin.categories_edit_get", category_id=category_id))
    s.commit()
    flash("Category updated.", "success")
    return redirect(url_for("blog_admin.categories_list"))


@bp.post("/categories/<int:category_id>/delete")
@require_permission("categories.delete")
def categories_delete(category_id: int):
    s = db_session()
    try:
        category = get_category(s, category_id)
    except ServiceError:
        abort(404)
    delete_category(s, category, _current_user())
    s.commit()
    flash("Category deleted.", "success")
    return redirect(url_for("blog_admin.categories_list"))
