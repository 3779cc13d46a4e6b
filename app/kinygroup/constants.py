"""
Central constants for the KINY GROUP site.
"""
from __future__ import annotations

import re

# User roles, lowest to highest privilege
ROLE_READER = "reader"
ROLE_CONTRIBUTOR = "contributor"
ROLE_EDITOR = "editor"
ROLE_ADMIN = "admin"

ROLE_LEVELS = {
    ROLE_READER: 0,
    ROLE_CONTRIBUTOR: 1,
    ROLE_EDITOR: 2,
    ROLE_ADMIN: 3,
}
USER_ROLES = tuple(ROLE_LEVELS)

# Team member roles on the About page
TEAM_MEMBER_ROLES = ("founder", "executive", "team_member")

# Uploads
ALLOWED_IMAGE_TYPES = frozenset({"image/jpeg", "image/jpg", "image/png", "image/gif", "image/webp"})
DEFAULT_UPLOAD_FOLDER = "blog-images"

SLUG_RE = re.compile(r"^[a-z0-9-]+$")
HTTP_URL_RE = re.compile(r"^https?://.+\..+")

DEFAULT_BRAND_COLOR = "#3b82f6"
DEFAULT_READ_TIME = 5
PLACEHOLDER_BLOG_IMAGE = "/static/placeholder-blog.svg"
