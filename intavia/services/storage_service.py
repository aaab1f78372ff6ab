"""
Blob storage for signed contracts and resumes.

The production deployment mounts object storage at STORAGE_ROOT; signed URLs are
short-lived JWTs verified by the /storage route.
"""
import logging
from datetime import timedelta
from pathlib import Path
from typing import Optional

from jose import jwt, JWTError

from intavia.core.config import Settings
from intavia.core.errors import NotFoundError, ValidationError
from intavia.core.security import create_access_token

logger = logging.getLogger(__name__)

SIGNED_CONTRACTS_BUCKET = "signed-contracts"


class LocalBlobStore:
    def __init__(self, settings: Settings):
        self.settings = settings
        self.root = Path(settings.storage_root)

    def _resolve(self, bucket: str, path: str) -> Path:
        base = (self.root / bucket).resolve()
        target = (base / path).resolve()
        if base != target and base not in target.parents:
            raise ValidationError("Invalid storage path")
        return target

    def upload(self, bucket: str, path: str, data: bytes, content_type: str = "application/octet-stream") -> str:
        target = self._resolve(bucket, path)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(data)
        logger.info(f"Stored blob bucket={bucket} path={path} bytes={len(data)} content_type={content_type}")
        return path

    def download(self, bucket: str, path: str) -> bytes:
        target = self._resolve(bucket, path)
        if not target.is_file():
            raise NotFoundError("File not found")
        return target.read_bytes()

    def remove(self, bucket: str, path: str) -> None:
        target = self._resolve(bucket, path)
        if target.is_file():
            target.unlink()
            logger.info(f"Removed blob bucket={bucket} path={path}")

    def exists(self, bucket: str, path: str) -> bool:
        return self._resolve(bucket, path).is_file()

    def get_public_url(self, bucket: str, path: str) -> str:
        return f"{self.settings.app_base_url.rstrip('/')}/storage/{bucket}/{path}"

    def create_signed_url(self, bucket: str, path: str, ttl_seconds: Optional[int] = None) -> str:
        ttl = ttl_seconds or self.settings.signed_url_ttl_seconds
        token = create_access_token(
            {"bucket": bucket, "path": path, "purpose": "blob"},
            expires_delta=timedelta(seconds=ttl),
            settings=self.settings,
        )
        return f"{self.get_public_url(bucket, path)}?token={token}"

    def verify_signed_token(self, bucket: str, path: str, token: str) -> bool:
        try:
            claims = jwt.decode(token, self.settings.secret_key, algorithms=[self.settings.algorithm])
        except JWTError:
            return False
        return (
            claims.get("purpose") == "blob"
            and claims.get("bucket") == bucket
            and claims.get("path") == path
        )
