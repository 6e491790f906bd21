"""
Image Upload Models.

``UploadFile`` is a raw file handed over by the caller; ``UploadOutcome``
reports what happened to it.  Uploads are judged one by one, so a batch
can mix stored and rejected files.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel

from yachtcrm.errors import ErrorCode
from yachtcrm.models.boat import ImageRef


class UploadFile(BaseModel):
    filename: str
    content_type: str
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)


class UploadOutcome(BaseModel):
    """Result for one uploaded file.

    ``key`` is the blob-store key of the stored object and is what
    :meth:`ImageUploadService.discard` deletes.
    """

    original_filename: str
    success: bool
    key: Optional[str] = None
    image: Optional[ImageRef] = None
    error: Optional[str] = None
    error_code: Optional[ErrorCode] = None
