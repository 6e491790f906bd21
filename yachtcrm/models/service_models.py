"""
Service Layer Data Transfer Objects.

The envelope every service and API method returns.
"""

from __future__ import annotations

from typing import Generic, Optional, TypeVar

from pydantic import BaseModel, Field

from yachtcrm.errors import ErrorCode, FieldError

T = TypeVar("T")

__all__ = ["ServiceResult"]


class ServiceResult(BaseModel, Generic[T]):
    """
    Standard service return envelope.

    All service methods return this, providing a consistent contract for
    the request layer.  On failure ``error`` holds a user-facing message,
    ``error_code`` the stable identifier, ``status_code`` the
    HTTP-equivalent status and ``details`` any field-level messages.

    Generic over ``T`` so callers can annotate return types precisely
    (e.g. ``ServiceResult[list[Client]]``).
    """

    success: bool
    data: Optional[T] = None
    error: Optional[str] = None
    error_code: Optional[ErrorCode] = None
    status_code: int = 200
    details: list[FieldError] = Field(default_factory=list)
