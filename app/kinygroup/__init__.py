import logging
import os
from datetime import timedelta

from dotenv import load_dotenv
from flask import Flask, g, jsonify, render_template, request, session

from app.kinygroup import models as _models  # noqa: F401  (maps every table before services import)
from app.kinygroup.auth import bp as auth_bp, load_current_user
from app.kinygroup.config import load_config
from app.kinygroup.dashboard import bp as dashboard_bp
from app.kinygroup.db import init_db, teardown_db_session
from app.kinygroup.modules.about.admin import bp as about_admin_bp
from app.kinygroup.modules.about.api import bp as about_api_bp
from app.kinygroup.modules.blog.admin import bp as blog_admin_bp
from app.kinygroup.modules.blog.api import bp as blog_api_bp
from app.kinygroup.modules.blog.service import read_time_label
from app.kinygroup.modules.divisions.admin import bp as divisions_admin_bp
from app.kinygroup.modules.divisions.api import bp as divisions_api_bp
from app.kinygroup.modules.uploads.api import bp as uploads_bp
from app.kinygroup.modules.users.admin import bp as users_admin_bp
from app.kinygroup.modules.users.api import bp as users_api_bp
from app.kinygroup.routes import bp as routes_bp
from app.kinygroup.utils import format_date_id

logger = logging.getLogger(__name__)

_SKIP_PREFIXES = ("/static/", "/health", "/healthz")


def _wants_json() -> bool:
    return request.path.startswith("/api/")


def create_app() -> Flask:
    load_dotenv()
    app = Flask(__name__, template_folder="templates", static_folder="static")
    app.config.from_mapping(load_config())
    app.config["PERMANENT_SESSION_LIFETIME"] = timedelta(hours=8)
    app.config["SESSION_REFRESH_EACH_REQUEST"] = True

    from app.kinygroup.security import ensure_csrf_token, validate_csrf

    @app.context_processor
    def _inject_csrf() -> dict:
        return {"csrf_token": ensure_csrf_token()}

    @app.context_processor
    def _inject_user() -> dict:
        from app.kinygroup.rbac import user_has_permission

        def has_perm(key: str) -> bool:
            return user_has_permission(getattr(g, "current_user", None), key)

        return {"has_perm": has_perm, "current_user": getattr(g, "current_user", None)}

    @app.template_filter("dateformat")
    def _dateformat_filter(value, format: str = "%Y-%m-%d") -> str:
        if value is None:
            return "-"
        if hasattr(value, "strftime"):
            return value.strftime(format)
        return str(value)

    app.add_template_filter(format_date_id, "date_id")
    app.add_template_filter(read_time_label, "read_time")

    @app.before_request
    def _csrf_guard():
        if request.path.startswith(_SKIP_PREFIXES):
            return None
        ensure_csrf_token()
        session.permanent = True
        if request.method in ("POST", "PUT", "PATCH", "DELETE"):
            # Login/register/logout carry no session yet worth protecting.
            if (request.endpoint or "").startswith("auth."):
                return None
            if not validate_csrf(request):
                logger.warning("CSRF rejected: %s %s request_id=%s", request.method, request.path, getattr(g, "request_id", None))
                if _wants_json():
                    return jsonify({"error": "CSRF token missing or invalid."}), 400
                return render_template("errors/400.html", message="CSRF token missing or invalid."), 400

    # Production guardrails (fail fast with clear logs)
    env = (app.config.get("ENV") or "").strip().lower()
    if env in ("prod", "production"):
        if not app.config.get("DATABASE_URL") or str(app.config["DATABASE_URL"]).strip() == "":
            raise RuntimeError("DATABASE_URL is required in production.")
        if str(app.config["DATABASE_URL"]).startswith("sqlite"):
            raise RuntimeError("DATABASE_URL must be Postgres in production (not sqlite).")
        if not app.config.get("SECRET_KEY") or str(app.config["SECRET_KEY"]) in ("", "change-me"):
            raise RuntimeError("SECRET_KEY must be set to a strong value in production (not default).")

    init_db(app)

    def _dispose_engine_on_fork() -> None:
        if hasattr(os, "register_at_fork"):
            def _after_fork_child():
                engine = app.extensions.get("sqlalchemy_engine")
                if engine:
                    engine.dispose()
                    app.logger.info("Disposed DB engine after fork (pid=%s)", os.getpid())

            os.register_at_fork(after_in_child=_after_fork_child)

    _dispose_engine_on_fork()

    if app.config.get("STORAGE_BACKEND") == "s3":
        missing_s3 = [
            key
            for key in ("S3_ENDPOINT", "S3_BUCKET", "S3_ACCESS_KEY_ID", "S3_SECRET_ACCESS_KEY")
            if not app.config.get(key)
        ]
        if missing_s3:
            app.logger.error("STORAGE CONFIG ERROR: Missing required S3 env vars: %s", ", ".join(missing_s3))
        else:
            from botocore.exceptions import BotoCoreError, ClientError

            from app.kinygroup.storage import S3Storage, storage_from_config

            try:
                storage = storage_from_config(app.config)
                if isinstance(storage, S3Storage):
                    storage._client().head_bucket(Bucket=storage.bucket)
                    app.logger.info("Storage health check PASSED: S3 bucket '%s' accessible", storage.bucket)
            except (BotoCoreError, ClientError) as e:
                app.logger.error("STORAGE CONFIG ERROR: Cannot access S3 bucket: %s", e)

    app.register_blueprint(routes_bp)
    app.register_blueprint(auth_bp, url_prefix="/auth")
    app.register_blueprint(dashboard_bp)
    app.register_blueprint(uploads_bp)
    for api_bp in (blog_api_bp, divisions_api_bp, about_api_bp, users_api_bp):
        app.register_blueprint(api_bp, url_prefix="/api")
    for admin_bp in (blog_admin_bp, divisions_admin_bp, about_admin_bp, users_admin_bp):
        app.register_blueprint(admin_bp, url_prefix="/dashboard")

    def _load_user_wrapper():
        if request.path.startswith(_SKIP_PREFIXES):
            g.current_user = None
            return None
        return load_current_user()

    # Runs ahead of the CSRF guard.
    app.before_request_funcs.setdefault(None, []).insert(0, _load_user_wrapper)
    app.teardown_appcontext(teardown_db_session)

    @app.errorhandler(400)
    def _err_400(e):  # type: ignore[no-redef]
        message = getattr(e, "description", None) or "Bad request."
        if _wants_json():
            return jsonify({"error": message}), 400
        return render_template("errors/400.html", message=message), 400

    @app.errorhandler(403)
    def _err_403(e):  # type: ignore[no-redef]
        missing = getattr(g, "missing_permission", None)
        if missing:
            app.logger.warning("Forbidden: missing_permission=%s request_id=%s", missing, getattr(g, "request_id", None))
        if _wants_json():
            return jsonify({"error": "Forbidden"}), 403
        return render_template("errors/403.html", missing_permission=missing), 403

    @app.errorhandler(404)
    def _err_404(e):  # type: ignore[no-redef]
        if _wants_json():
            return jsonify({"error": "Not found"}), 404
        return render_template("errors/404.html"), 404

    @app.errorhandler(413)
    def _err_413(e):  # type: ignore[no-redef]
        app.logger.warning("Request too large: %s request_id=%s", request.path, getattr(g, "request_id", None))
        if _wants_json():
            return jsonify({"error": "File size exceeds 10MB limit."}), 413
        return render_template("errors/400.html", message="File size exceeds 10MB limit."), 413

    @app.errorhandler(500)
    def _err_500(e):  # type: ignore[no-redef]
        app.logger.exception("Unhandled 500 (request_id=%s)", getattr(g, "request_id", None))
        if _wants_json():
            return jsonify({"error": "Internal server error"}), 500
        return render_template("errors/500.html"), 500

    logger.info("create_app() complete; app ready to serve")

    return app
