import os
from dataclasses import dataclass


@dataclass(frozen=True)
class Settings:
    secret_key: str
    env: str
    database_url: str

    storage_backend: str
    storage_local_root: str
    s3_endpoint: str
    s3_region: str
    s3_bucket: str
    s3_access_key_id: str
    s3_secret_access_key: str
    public_media_base_url: str


def _getenv(name: str, default: str = "") -> str:
    return (os.environ.get(name) or default).strip()


DEFAULT_DATABASE_URL = "sqlite:///kinygroup.db"


def resolve_database_url(database_url: str | None = None) -> str:
    """Explicit URL first, then ``DATABASE_URL``, then the local SQLite file."""
    return (database_url or _getenv("DATABASE_URL") or DEFAULT_DATABASE_URL).strip()


def load_settings() -> Settings:
    return Settings(
        secret_key=_getenv("SECRET_KEY", "change-me"),
        env=_getenv("ENV", "development"),
        database_url=resolve_database_url(),
        storage_backend=_getenv("STORAGE_BACKEND", "local"),
        storage_local_root=_getenv("STORAGE_LOCAL_ROOT", ""),
        s3_endpoint=_getenv("S3_ENDPOINT", ""),
        s3_region=_getenv("S3_REGION", "sgp1"),
        s3_bucket=_getenv("S3_BUCKET", ""),
        s3_access_key_id=_getenv("S3_ACCESS_KEY_ID", ""),
        s3_secret_access_key=_getenv("S3_SECRET_ACCESS_KEY", ""),
        public_media_base_url=_getenv("PUBLIC_MEDIA_BASE_URL", ""),
    )


def load_config() -> dict:
    s = load_settings()
    is_production = s.env in ("prod", "production")
    return {
        "SECRET_KEY": s.secret_key,
        "ENV": s.env,
        "DATABASE_URL": s.database_url,
        "STORAGE_BACKEND": s.storage_backend,
        "STORAGE_LOCAL_ROOT": s.storage_local_root,
        "S3_ENDPOINT": s.s3_endpoint,
        "S3_REGION": s.s3_region,
        "S3_BUCKET": s.s3_bucket,
        "S3_ACCESS_KEY_ID": s.s3_access_key_id,
        "S3_SECRET_ACCESS_KEY": s.s3_secret_access_key,
        "PUBLIC_MEDIA_BASE_URL": s.public_media_base_url,
        # security defaults
        "SESSION_COOKIE_HTTPONLY": True,
        "SESSION_COOKIE_SAMESITE": "Lax",
        "SESSION_COOKIE_SECURE": is_production,  # Require HTTPS in production
        "CSRF_ENABLED": s.env != "test",
        # Request cap sits above the per-image limit so oversized images get a JSON 400, not a bare 413
        "MAX_CONTENT_LENGTH": 12 * 1024 * 1024,
        "UPLOAD_MAX_BYTES": 10 * 1024 * 1024,
    }
