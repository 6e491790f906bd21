"""
Blob Storage for Boat Images.

A :class:`BlobStore` stores bytes under a key and hands back the public
URL.  Two implementations:

- :class:`LocalBlobStore` writes to a directory served by the web tier
  (``public/uploads/boats``) and returns ``/uploads/boats/<key>``.
- :class:`SupabaseBlobStore` uploads into a Supabase Storage bucket and
  returns the bucket's public URL.

Failures surface as :class:`~yachtcrm.errors.UpstreamUnavailableError`.
"""

from __future__ import annotations

import threading
from pathlib import Path
from typing import Protocol, Union

from yachtcrm.config import AppConfig
from yachtcrm.database import DatabaseManager
from yachtcrm.errors import UpstreamUnavailableError
from yachtcrm.logger import StructuredLogger


class BlobStore(Protocol):
    def put(self, key: str, data: bytes, content_type: str) -> str:
        """Store *data* under *key* and return its public URL."""
        ...

    def delete(self, key: str) -> None:
        """Remove *key*.  Deleting a missing key is not an error."""
        ...


class LocalBlobStore:
    """Filesystem-backed store under *root*, served at *url_prefix*."""

    def __init__(
        self,
        root: Union[Path, str],
        url_prefix: str,
        logger: StructuredLogger,
    ) -> None:
        self._root = Path(root)
        self._url_prefix = url_prefix.rstrip("/")
        self._logger = logger
        self._mkdir_lock = threading.Lock()

    @property
    def root(self) -> Path:
        return self._root

    def _path(self, key: str) -> Path:
        # Keys are generated names; anything with a path component is refused.
        if not key or Path(key).name != key:
            raise ValueError(f"Invalid blob key: {key!r}")
        return self._root / key

    def put(self, key: str, data: bytes, content_type: str) -> str:
        path = self._path(key)
        try:
            with self._mkdir_lock:
                self._root.mkdir(parents=True, exist_ok=True)
            path.write_bytes(data)
        except OSError as exc:
            self._logger.error("Failed to write blob %s: %s", path, exc)
            raise UpstreamUnavailableError(
                "Image storage is unavailable.", original_error=exc,
            ) from exc
        self._logger.debug("Stored blob %s (%d bytes, %s)", key, len(data), content_type)
        return f"{self._url_prefix}/{key}"

    def delete(self, key: str) -> None:
        path = self._path(key)
        try:
            path.unlink(missing_ok=True)
        except OSError as exc:
            self._logger.error("Failed to delete blob %s: %s", path, exc)
            raise UpstreamUnavailableError(
                "Image storage is unavailable.", original_error=exc,
            ) from exc


class SupabaseBlobStore:
    """Supabase Storage bucket (public) holding boat images."""

    def __init__(self, db: DatabaseManager, bucket: str, logger: StructuredLogger) -> None:
        self._db = db
        self._bucket = bucket
        self._logger = logger

    def put(self, key: str, data: bytes, content_type: str) -> str:
        try:
            bucket = self._db.supabase.storage.from_(self._bucket)
            bucket.upload(key, data, file_options={"content-type": content_type})
            return bucket.get_public_url(key)
        except Exception as exc:
            self._logger.error(
                "Supabase upload failed for %s/%s: %s", self._bucket, key, exc,
            )
            raise UpstreamUnavailableError(
                "Image storage is unavailable.", original_error=exc,
            ) from exc

    def delete(self, key: str) -> None:
        try:
            self._db.supabase.storage.from_(self._bucket).remove([key])
        except Exception as exc:
            self._logger.error(
                "Supabase delete failed for %s/%s: %s", self._bucket, key, exc,
            )
            raise UpstreamUnavailableError(
                "Image storage is unavailable.", original_error=exc,
            ) from exc


def build_blob_store(
    config: AppConfig,
    db: DatabaseManager,
    logger: StructuredLogger,
) -> BlobStore:
    """Supabase Storage when a client is available, the local directory otherwise."""
    if db.has_supabase:
        return SupabaseBlobStore(db=db, bucket=config.STORAGE_BUCKET, logger=logger)
    return LocalBlobStore(
        root=config.UPLOAD_DIR, url_prefix=config.UPLOAD_URL_PREFIX, logger=logger,
    )
