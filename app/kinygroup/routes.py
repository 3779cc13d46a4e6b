from flask import Blueprint, abort, flash, g, redirect, render_template, request, url_for

from app.kinygroup.db import db_session
from app.kinygroup.errors import NotFoundError, ServiceError
from app.kinygroup.modules.about.service import RESOURCES, departments_with_team, list_items
from app.kinygroup.modules.blog.service import (
    add_comment,
    comment_tree,
    count_published_posts,
    featured_posts,
    get_published_post,
    like_status,
    liker_key_for,
    list_categories,
    list_comments,
    list_published_posts,
    record_view,
    toggle_like,
)
from app.kinygroup.modules.divisions.service import get_division_by_slug, list_activities, list_divisions
from app.kinygroup.modules.divisions.theme import carousel_slide_style, carousel_style_attr, theme_css_variables, wrap_index
from app.kinygroup.rbac import user_has_permission
from app.kinygroup.security import anonymous_visitor_token
from app.kinygroup.utils import parse_int, pagination

bp = Blueprint("routes", __name__)

BLOG_PAGE_SIZE = 9


def _client_ip() -> str | None:
    forwarded = request.headers.get("X-Forwarded-For") or request.headers.get("X-Real-IP")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.remote_addr


@bp.get("/")
def index():
    s = db_session()
    return render_template(
        "public/index.html",
        divisions=list_divisions(s, featured_only=True),
        posts=featured_posts(s, limit=3),
        clients=list_items(s, RESOURCES["clients"]),
    )


@bp.get("/about")
def about():
    s = db_session()
    return render_template(
        "public/about.html",
        departments=departments_with_team(s),
        clients=list_items(s, RESOURCES["clients"]),
        achievements=list_items(s, RESOURCES["achievements"]),
        journey=list_items(s, RESOURCES["journey"]),
    )


@bp.get("/brand")
def brand():
    s = db_session()
    divisions = list_divisions(s)
    count = len(divisions)
    active = wrap_index(parse_int(request.args.get("active"), 0) or 0, count)
    slides = [
        (d, carousel_style_attr(carousel_slide_style(i, active, count)), theme_css_variables(d))
        for i, d in enumerate(divisions)
    ]
    return render_template(
        "public/brand.html",
        slides=slides,
        active=active,
        active_division=divisions[active] if divisions else None,
        prev_index=wrap_index(active - 1, count),
        next_index=wrap_index(active + 1, count),
    )


@bp.get("/brand/<slug>")
def brand_detail(slug: str):
    s = db_session()
    try:
        division = get_division_by_slug(s, slug)
    except NotFoundError:
        abort(404)
    return render_template(
        "public/brand_detail.html",
        division=division,
        activities=list_activities(s, division),
        theme_style=theme_css_variables(division),
    )


@bp.get("/blog")
def blog():
    s = db_session()
    search = (request.args.get("q") or "").strip()
    category = (request.args.get("category") or "").strip() or None
    page = parse_int(request.args.get("page"), 1, minimum=1) or 1
    total = count_published_posts(s, category=category, search=search)
    posts = list_published_posts(
        s, category=category, search=search, limit=BLOG_PAGE_SIZE, offset=(page - 1) * BLOG_PAGE_SIZE
    )
    return render_template(
        "public/blog.html",
        posts=posts,
        categories=list_categories(s),
        category=category,
        search=search,
        pagination=pagination(page, BLOG_PAGE_SIZE, total),
    )


@bp.get("/blog/<slug>")
def blog_detail(slug: str):
    s = db_session()
    try:
        post = get_published_post(s, slug)
    except NotFoundError:
        abort(404)
    record_view(s, post, _client_ip(), request.headers.get("User-Agent"))
    s.commit()
    user = getattr(g, "current_user", None)
    liked = like_status(s, post, liker_key_for(user, anonymous_visitor_token()))
    return render_template(
        "public/blog_detail.html",
        post=post,
        comments=comment_tree(list_comments(s, post)),
        liked=liked,
        can_comment=user_has_permission(user, "comments.create"),
    )


@bp.post("/blog/<slug>/comments")
def blog_comment(slug: str):
    user = getattr(g, "current_user", None)
    if not user:
        return redirect(url_for("auth.login_get", next=url_for("routes.blog_detail", slug=slug)))
    if not user_has_permission(user, "comments.create"):
        abort(403)
    s = db_session()
    try:
        post = get_published_post(s, slug)
    except NotFoundError:
        abort(404)
    try:
        add_comment(s, post, user, request.form.get("content"), request.form.get("parent_id"))
    except ServiceError as e:
        s.rollback()
        flash(e.message, "danger")
        return redirect(url_for("routes.blog_detail", slug=slug) + "#comments")
    s.commit()
    flash("Comment posted.", "success")
    return redirect(url_for("routes.blog_detail", slug=slug) + "#comments")


@bp.post("/blog/<slug>/like")
def blog_like(slug: str):
    s = db_session()
    try:
        post = get_published_post(s, slug)
    except NotFoundError:
        abort(404)
    user = getattr(g, "current_user", None)
    toggle_like(s, post, liker_key_for(user, anonymous_visitor_token()), user=user)
    s.commit()
    return redirect(url_for("routes.blog_detail", slug=slug))


@bp.get("/contact")
def contact():
    return render_template("public/contact.html")


@bp.get("/health")
def health():
    """Health check endpoint. Returns JSON."""
    return {"ok": True}


@bp.get("/healthz")
def healthz():
    """
    Fast health check for load balancer probes. No DB access, minimal overhead.
    """
    return "ok", 200
