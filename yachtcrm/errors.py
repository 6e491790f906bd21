"""
Domain Error Taxonomy.

Every expected failure in the repository and service layers is raised as
one of the exceptions below.  Services translate them into a
``ServiceResult`` envelope so callers never inspect raw exceptions.

``NotFoundOrForbiddenError`` deliberately covers both "no such record"
and "record belongs to another broker": the message and status code are
identical so the existence of other tenants' data never leaks.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Optional

from pydantic import BaseModel


class ErrorCode(StrEnum):
    """Stable error identifiers carried in ``ServiceResult.error_code``."""

    UNAUTHORIZED = "unauthorized"
    NOT_FOUND_OR_FORBIDDEN = "not_found_or_forbidden"
    VALIDATION_FAILED = "validation_failed"
    DUPLICATE_EMAIL = "duplicate_email"
    UPSTREAM_UNAVAILABLE = "upstream_unavailable"
    STORE_TIMEOUT = "store_timeout"
    UPLOAD_REJECTED = "upload_rejected"


class FieldError(BaseModel):
    """A single field-level validation message."""

    field: str
    message: str


class CRMError(Exception):
    """Base class for all expected domain failures."""

    code: ErrorCode = ErrorCode.UPSTREAM_UNAVAILABLE
    status_code: int = 500
    default_message: str = "Request failed"

    def __init__(
        self,
        message: Optional[str] = None,
        original_error: Optional[Exception] = None,
    ) -> None:
        self.message: str = message or self.default_message
        self.original_error: Optional[Exception] = original_error
        super().__init__(self.message)


class UnauthorizedError(CRMError):
    """No session, or the session failed validation."""

    code = ErrorCode.UNAUTHORIZED
    status_code = 401
    default_message = "Unauthorized"


class NotFoundOrForbiddenError(CRMError):
    """Record absent or owned by someone else (intentionally conflated)."""

    code = ErrorCode.NOT_FOUND_OR_FORBIDDEN
    status_code = 404
    default_message = "Record not found or access denied"


class ValidationFailedError(CRMError):
    """Input violates one or more field constraints."""

    code = ErrorCode.VALIDATION_FAILED
    status_code = 422
    default_message = "Validation failed"

    def __init__(
        self,
        message: Optional[str] = None,
        details: Optional[list[FieldError]] = None,
        original_error: Optional[Exception] = None,
    ) -> None:
        super().__init__(message, original_error)
        self.details: list[FieldError] = details or []


class DuplicateEmailError(CRMError):
    """A client with this email already exists for the broker."""

    code = ErrorCode.DUPLICATE_EMAIL
    status_code = 409
    default_message = "Client with this email already exists"


class UpstreamUnavailableError(CRMError):
    """The relational store, identity provider or blob store failed."""

    code = ErrorCode.UPSTREAM_UNAVAILABLE
    status_code = 503
    default_message = "Service temporarily unavailable. Please try again."


class StoreTimeoutError(UpstreamUnavailableError):
    """A store call did not complete within ``STORE_TIMEOUT_S``."""

    code = ErrorCode.STORE_TIMEOUT
    status_code = 504
    default_message = "The data store did not respond in time. Please try again."


class UploadRejectedError(CRMError):
    """Uploaded file has a non-image content type or is too large."""

    code = ErrorCode.UPLOAD_REJECTED
    status_code = 400
    default_message = "Upload rejected"
