from __future__ import annotations

import html
import re
from collections.abc import Callable
from functools import wraps
from typing import Any

from flask import current_app, g, jsonify, request

from app.kinygroup.errors import ServiceError, ValidationError

_NON_ALNUM_RE = re.compile(r"[^a-z0-9]+")
_TAG_RE = re.compile(r"<[^>]+>")
_WS_RE = re.compile(r"\s+")


def slugify(text: str | None) -> str:
    """Lower-case, collapse non-alphanumerics into single dashes, trim dashes."""
    return _NON_ALNUM_RE.sub("-", (text or "").lower()).strip("-")


def strip_html(value: str | None) -> str:
    text = _TAG_RE.sub(" ", value or "")
    return _WS_RE.sub(" ", html.unescape(text)).strip()


def make_excerpt(content: str | None, length: int = 150) -> str:
    text = strip_html(content)
    return text[:length] + "..."


def parse_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    return str(value).strip().lower() in ("1", "true", "on", "yes")


def parse_int(value: Any, default: int | None = None, *, minimum: int | None = None) -> int | None:
    if value is None or (isinstance(value, str) and not value.strip()):
        return default
    try:
        out = int(value)
    except (TypeError, ValueError):
        return default
    if minimum is not None and out < minimum:
        return minimum
    return out


def clean_str(value: Any) -> str | None:
    """Trimmed string or None when blank."""
    if value is None:
        return None
    out = str(value).strip()
    return out or None


def is_safe_next(nxt: str | None) -> bool:
    """Only allow local redirect targets."""
    return bool(nxt) and nxt.startswith("/") and not nxt.startswith("//")


def json_payload() -> dict:
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object.")
    return data


def api_errors(operation: str) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    """
    Turn service exceptions raised by a JSON view into ``{"error": ...}`` responses.

    ServiceError subclasses keep their status; anything else is logged and
    reported as ``"<operation> failed"`` with 500.
    """

    def decorator(fn: Callable[..., Any]) -> Callable[..., Any]:
        @wraps(fn)
        def wrapped(*args: Any, **kwargs: Any):
            try:
                return fn(*args, **kwargs)
            except ServiceError as e:
                return jsonify({"error": e.message}), e.status_code
            except Exception:
                current_app.logger.exception(
                    "%s failed (request_id=%s)", operation, getattr(g, "request_id", None)
                )
                return jsonify({"error": f"{operation} failed"}), 500

        return wrapped

    return decorator


def pagination(page: int, limit: int, total: int) -> dict[str, int]:
    pages = (total + limit - 1) // limit if limit else 0
    return {"page": page, "limit": limit, "total": total, "pages": pages}


_ID_MONTHS = (
    "Januari", "Februari", "Maret", "April", "Mei", "Juni",
    "Juli", "Agustus", "September", "Oktober", "November", "Desember",
)


def format_date_id(value) -> str:
    """Long Indonesian date, e.g. ``5 Maret 2025``."""
    if value is None:
        return ""
    return f"{value.day} {_ID_MONTHS[value.month - 1]} {value.year}"


def isoformat(value) -> str | None:
    return value.isoformat() if value is not None else None
