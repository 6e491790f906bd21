"""
Image Upload Service.

Validates raw image files and stores them in the configured blob store.

Rules:
    - Content type must start with ``image/``.
    - Size must not exceed ``MAX_UPLOAD_BYTES`` (10 MB by default).
    - Stored names are ``boat-<epoch-ms>-<random><ext>``; the original
      extension is kept, the original name is not.

Files are uploaded concurrently on a thread pool and judged one by one:
each gets its own :class:`UploadOutcome`, so a rejected file does not
stop the others.
"""

from __future__ import annotations

import secrets
import string
import time
from collections.abc import Iterable, Sequence
from concurrent.futures import ThreadPoolExecutor
from pathlib import PurePosixPath

from yachtcrm.auth import AuthContext
from yachtcrm.errors import CRMError, UploadRejectedError
from yachtcrm.logger import StructuredLogger
from yachtcrm.models.boat import ImageRef
from yachtcrm.models.service_models import ServiceResult
from yachtcrm.models.upload import UploadFile, UploadOutcome
from yachtcrm.services.base_service import BaseService
from yachtcrm.storage import BlobStore

_NAME_ALPHABET: str = string.ascii_lowercase + string.digits
_NAME_RANDOM_LENGTH: int = 11


def generate_blob_name(original_filename: str) -> str:
    """``boat-<epoch-ms>-<random><ext>`` for an uploaded file."""
    timestamp = int(time.time() * 1000)
    suffix = "".join(secrets.choice(_NAME_ALPHABET) for _ in range(_NAME_RANDOM_LENGTH))
    extension = PurePosixPath(original_filename.replace("\\", "/")).suffix.lower()
    return f"boat-{timestamp}-{suffix}{extension}"


class ImageUploadService(BaseService):
    """Stores boat images and cleans them up again when a boat write fails."""

    def __init__(
        self,
        store: BlobStore,
        logger: StructuredLogger,
        max_bytes: int = 10 * 1024 * 1024,
        max_workers: int = 4,
    ) -> None:
        super().__init__(logger)
        self._store = store
        self._max_bytes = max_bytes
        self._max_workers = max(1, max_workers)

    def upload_images(
        self, ctx: AuthContext, files: Sequence[UploadFile],
    ) -> ServiceResult[list[UploadOutcome]]:
        """Upload *files* for the calling broker; one outcome per file, in order."""
        try:
            outcomes = self.store(files)
            failed = sum(1 for outcome in outcomes if not outcome.success)
            self._logger.info(
                "Image upload by %s: %d stored, %d rejected or failed",
                ctx.user_id, len(outcomes) - failed, failed,
            )
            return ServiceResult(success=True, data=outcomes)
        except Exception as exc:
            return self._unexpected("upload_images", exc, ctx)

    def store(self, files: Sequence[UploadFile]) -> list[UploadOutcome]:
        """Validate and store *files* concurrently; outcomes keep input order."""
        if not files:
            return []
        workers = min(self._max_workers, len(files))
        with ThreadPoolExecutor(max_workers=workers) as executor:
            return list(executor.map(self._store_one, files))

    def discard(self, outcomes: Iterable[UploadOutcome]) -> int:
        """Delete every successfully stored blob in *outcomes*.

        Every deletion is attempted; failures are logged.  Returns the
        number of blobs removed.
        """
        removed = 0
        for outcome in outcomes:
            if not outcome.success or not outcome.key:
                continue
            try:
                self._store.delete(outcome.key)
                removed += 1
            except CRMError as exc:
                self._logger.warning(
                    "Could not discard uploaded blob %s: %s", outcome.key, exc,
                )
        if removed:
            self._logger.info("Discarded %d uploaded blob(s).", removed)
        return removed

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _check(self, file: UploadFile) -> None:
        if not file.content_type.lower().startswith("image/"):
            raise UploadRejectedError("File must be an image")
        if file.size > self._max_bytes:
            limit_mb = self._max_bytes // (1024 * 1024)
            raise UploadRejectedError(f"File size must be less than {limit_mb}MB")

    def _store_one(self, file: UploadFile) -> UploadOutcome:
        try:
            self._check(file)
            key = generate_blob_name(file.filename)
            url = self._store.put(key, file.data, file.content_type)
        except CRMError as exc:
            self._logger.warning("Upload of %s failed: %s", file.filename, exc.message)
            return UploadOutcome(
                original_filename=file.filename,
                success=False,
                error=exc.message,
                error_code=exc.code,
            )
        return UploadOutcome(
            original_filename=file.filename,
            success=True,
            key=key,
            image=ImageRef(url=url, filename=key),
        )
