from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO


class StorageError(RuntimeError):
    pass


class Storage:
    def put_bytes(self, key: str, data: bytes, *, content_type: str | None = None) -> None:
        raise NotImplementedError

    def open(self, key: str) -> BinaryIO:
        raise NotImplementedError

    def exists(self, key: str) -> bool:
        raise NotImplementedError

    def delete(self, key: str) -> bool:
        raise NotImplementedError

    def public_url(self, key: str) -> str | None:
        """Absolute URL for the object, or None when the app must serve it itself."""
        return None


def _clean_key(key: str) -> str:
    parts = [p for p in key.replace("\\", "/").split("/") if p and p not in (".", "..")]
    if not parts:
        raise StorageError(f"Invalid storage key: {key!r}")
    return "/".join(parts)


@dataclass(frozen=True)
class LocalStorage(Storage):
    root: Path

    def _path(self, key: str) -> Path:
        return self.root / _clean_key(key)

    def put_bytes(self, key: str, data: bytes, *, content_type: str | None = None) -> None:
        p = self._path(key)
        p.parent.mkdir(parents=True, exist_ok=True)
        p.write_bytes(data)

    def open(self, key: str) -> BinaryIO:
        return self._path(key).open("rb")

    def exists(self, key: str) -> bool:
        return self._path(key).is_file()

    def delete(self, key: str) -> bool:
        p = self._path(key)
        if not p.is_file():
            return False
        p.unlink()
        return True


@dataclass(frozen=True)
class S3Storage(Storage):
    endpoint: str
    region: str
    bucket: str
    access_key_id: str
    secret_access_key: str
    public_base_url: str = ""

    def _client(self):
        import boto3

        return boto3.client(
            "s3",
            endpoint_url=f"https://{self.endpoint}" if self.endpoint else None,
            region_name=self.region or None,
            aws_access_key_id=self.access_key_id,
            aws_secret_access_key=self.secret_access_key,
        )

    def put_bytes(self, key: str, data: bytes, *, content_type: str | None = None) -> None:
        extra: dict[str, object] = {"ACL": "public-read"}
        if content_type:
            extra["ContentType"] = content_type
        self._client().put_object(Bucket=self.bucket, Key=_clean_key(key), Body=data, **extra)

    def open(self, key: str) -> BinaryIO:
        obj = self._client().get_object(Bucket=self.bucket, Key=_clean_key(key))
        return obj["Body"]  # type: ignore[return-value]

    def exists(self, key: str) -> bool:
        from botocore.exceptions import ClientError

        try:
            self._client().head_object(Bucket=self.bucket, Key=_clean_key(key))
            return True
        except ClientError:
            return False

    def delete(self, key: str) -> bool:
        if not self.exists(key):
            return False
        self._client().delete_object(Bucket=self.bucket, Key=_clean_key(key))
        return True

    def public_url(self, key: str) -> str | None:
        if self.public_base_url:
            return f"{self.public_base_url.rstrip('/')}/{_clean_key(key)}"
        host = self.endpoint or f"s3.{self.region}.amazonaws.com"
        return f"https://{self.bucket}.{host}/{_clean_key(key)}"


def storage_from_config(config: dict) -> Storage:
    backend = (config.get("STORAGE_BACKEND") or "local").strip().lower()
    if backend == "s3":
        return S3Storage(
            endpoint=(config.get("S3_ENDPOINT") or "").strip(),
            region=(config.get("S3_REGION") or "sgp1").strip(),
            bucket=(config.get("S3_BUCKET") or "").strip(),
            access_key_id=(config.get("S3_ACCESS_KEY_ID") or "").strip(),
            secret_access_key=(config.get("S3_SECRET_ACCESS_KEY") or "").strip(),
            public_base_url=(config.get("PUBLIC_MEDIA_BASE_URL") or "").strip(),
        )
    # default local
    root = (config.get("STORAGE_LOCAL_ROOT") or "").strip()
    return LocalStorage(root=Path(root) if root else Path(os.getcwd()) / "storage")
