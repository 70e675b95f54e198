"""
Object Storage

Stores uploaded and generated files in bucket directories under
STORAGE_DIRECTORY. ``main.py`` serves that directory at ``/storage`` so the
public URL of an object is ``{APP_BASE_URL}/storage/{bucket}/{path}``.
"""

import logging
from functools import lru_cache
from pathlib import Path
from typing import Optional

from app.core.config import get_settings

logger = logging.getLogger(__name__)


class StorageError(Exception):
    """Raised when an object cannot be written."""


class LocalObjectStorage:
    """Bucketed file storage on the local disk."""

    def __init__(self, root: Optional[str] = None, base_url: Optional[str] = None):
        settings = get_settings()
        self.root = Path(root or settings.storage_directory)
        self.base_url = (base_url or settings.app_base_url).rstrip("/")

    def _resolve(self, bucket: str, path: str) -> Path:
        bucket_root = (self.root / bucket).resolve()
        target = (bucket_root / path).resolve()
        if bucket_root not in target.parents:
            raise StorageError(f"Path escapes bucket: {path}")
        return target

    def upload(self, bucket: str, path: str, data: bytes, upsert: bool = True) -> str:
        """
        Write ``data`` to ``bucket/path``.

        Returns:
            The object path inside the bucket

        Raises:
            StorageError: If the object exists and ``upsert`` is False, or
                the write fails
        """
        target = self._resolve(bucket, path)
        if target.exists() and not upsert:
            raise StorageError(f"Object already exists: {bucket}/{path}")

        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(data)
        except OSError as e:
            raise StorageError(f"Could not write {bucket}/{path}: {e}") from e

        logger.info(f"Stored {bucket}/{path} ({len(data)} bytes)")
        return path

    def exists(self, bucket: str, path: str) -> bool:
        return self._resolve(bucket, path).exists()

    def public_url(self, bucket: str, path: str) -> str:
        return f"{self.base_url}/storage/{bucket}/{path}"


@lru_cache()
def get_storage() -> LocalObjectStorage:
    return LocalObjectStorage()


def reset_storage() -> None:
    get_storage.cache_clear()
