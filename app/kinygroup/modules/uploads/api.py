from __future__ import annotations

import mimetypes

from flask import Blueprint, abort, current_app, g, jsonify, request, send_file, url_for

from app.kinygroup.db import db_session
from app.kinygroup.errors import ValidationError
from app.kinygroup.modules.uploads.service import delete_image, store_image
from app.kinygroup.rbac import api_require_permission
from app.kinygroup.storage import StorageError, storage_from_config
from app.kinygroup.utils import api_errors

bp = Blueprint("uploads", __name__)


def media_url(key: str) -> str:
    """Public URL for a stored upload: the bucket/CDN URL, or the local /media route."""
    storage = storage_from_config(current_app.config)
    return storage.public_url(key) or url_for("uploads.media", key=key, _external=False)


@bp.post("/api/upload")
@api_require_permission("uploads.create")
@api_errors("Upload file")
def upload():
    f = request.files.get("file")
    if not f or not f.filename:
        raise ValidationError("No file received.")
    data = f.read()
    s = db_session()
    storage = storage_from_config(current_app.config)
    try:
        result = store_image(
            s,
            storage,
            data=data,
            filename=f.filename,
            content_type=f.mimetype or "",
            folder=request.form.get("folder"),
            max_bytes=int(current_app.config.get("UPLOAD_MAX_BYTES", 10 * 1024 * 1024)),
            user=g.current_user,
        )
    except ValidationError as e:
        current_app.logger.warning(
            "Upload rejected: %s (filename=%s type=%s size=%s)", e.message, f.filename, f.mimetype, len(data)
        )
        raise
    s.commit()
    result["url"] = media_url(result["filename"])
    return jsonify(result)


@bp.delete("/api/upload")
@api_require_permission("uploads.delete")
@api_errors("Delete file")
def upload_delete():
    s = db_session()
    storage = storage_from_config(current_app.config)
    delete_image(s, storage, (request.args.get("filename") or "").strip(), g.current_user)
    s.commit()
    return jsonify({"success": True, "message": "Image deleted successfully."})


@bp.get("/media/<path:key>")
def media(key: str):
    storage = storage_from_config(current_app.config)
    try:
        if not storage.exists(key):
            abort(404)
        fp = storage.open(key)
    except StorageError:
        abort(404)
    mimetype = mimetypes.guess_type(key)[0] or "application/octet-stream"
    return send_file(fp, mimetype=mimetype, max_age=86400)
