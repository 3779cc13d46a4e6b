from __future__ import annotations

import re
import time
from typing import TYPE_CHECKING

from app.kinygroup.audit import record_event
from app.kinygroup.constants import ALLOWED_IMAGE_TYPES, DEFAULT_UPLOAD_FOLDER
from app.kinygroup.errors import NotFoundError, ValidationError

if TYPE_CHECKING:
    from sqlalchemy.orm import Session

    from app.kinygroup.models import User
    from app.kinygroup.storage import Storage


INVALID_TYPE_MESSAGE = "Invalid file type. Only JPEG, PNG, GIF, and WebP images are allowed."
TOO_LARGE_MESSAGE = "File size exceeds 10MB limit."

_NAME_RE = re.compile(r"[^a-zA-Z0-9]")
_FOLDER_RE = re.compile(r"[^a-zA-Z0-9_-]")


def sanitize_folder(folder: str | None) -> str:
    parts = [_FOLDER_RE.sub("", p) for p in (folder or "").split("/")]
    cleaned = "/".join(p for p in parts if p)
    return cleaned or DEFAULT_UPLOAD_FOLDER


def build_upload_key(filename: str, folder: str | None = None, timestamp_ms: int | None = None) -> str:
    """``<folder>/<name>_<timestamp>.<ext>`` with the name reduced to ``[A-Za-z0-9_]`` and 50 chars."""
    if timestamp_ms is None:
        timestamp_ms = int(time.time() * 1000)
    base, dot, ext = (filename or "").rpartition(".")
    if not dot:
        base, ext = ext, ""
    ext = re.sub(r"[^a-z0-9]", "", ext.lower()) or "jpg"
    name = _NAME_RE.sub("_", base)[:50] or "image"
    return f"{sanitize_folder(folder)}/{name}_{timestamp_ms}.{ext}"


def validate_image(content_type: str | None, size: int, max_bytes: int) -> None:
    if (content_type or "").lower() not in ALLOWED_IMAGE_TYPES:
        raise ValidationError(INVALID_TYPE_MESSAGE)
    if size > max_bytes:
        raise ValidationError(TOO_LARGE_MESSAGE)


def store_image(
    s: "Session",
    storage: "Storage",
    *,
    data: bytes,
    filename: str,
    content_type: str,
    folder: str | None,
    max_bytes: int,
    user: "User",
) -> dict:
    """Validate and store an uploaded image; returns the stored key, size and type."""
    validate_image(content_type, len(data), max_bytes)
    key = build_upload_key(filename, folder)
    storage.put_bytes(key, data, content_type=content_type)
    record_event(
        s,
        actor=user,
        action="upload.create",
        entity_type="Upload",
        entity_id=key,
        metadata={"filename": filename, "size": len(data), "content_type": content_type},
    )
    return {"filename": key, "size": len(data), "type": key.rsplit(".", 1)[-1]}


def delete_image(s: "Session", storage: "Storage", key: str | None, user: "User") -> None:
    if not key:
        raise ValidationError("Filename is required.")
    if not storage.delete(key):
        raise NotFoundError("Image not found.")
    record_event(s, actor=user, action="upload.delete", entity_type="Upload", entity_id=key)
