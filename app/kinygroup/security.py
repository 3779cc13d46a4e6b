import secrets

from flask import Request, current_app, session


def ensure_csrf_token() -> str:
    """Ensure a CSRF token exists in the session and return it."""
    token = session.get("csrf_token")
    if not token:
        token = secrets.token_urlsafe(32)
        session["csrf_token"] = token
    return token


def validate_csrf(req: Request) -> bool:
    """Validate CSRF token from header, form, or JSON body."""
    if not current_app.config.get("CSRF_ENABLED", True):
        return True

    token = req.headers.get("X-CSRF-Token") or req.form.get("csrf_token")
    if not token and req.is_json:
        json_data = req.get_json(silent=True)
        if isinstance(json_data, dict):
            token = json_data.get("csrf_token")

    expected = session.get("csrf_token")
    return bool(token and expected and secrets.compare_digest(str(token), str(expected)))


def anonymous_visitor_token() -> str:
    """Stable per-session token used to key likes from signed-out visitors."""
    token = session.get("visitor_token")
    if not token:
        token = secrets.token_hex(16)
        session["visitor_token"] = token
    return token
