"""
Base Service Class.

Standardizes the logger pattern, the failure envelope and form validation
for all services.  Services extend this and add their own repository
dependencies via __init__.
"""

from __future__ import annotations

from typing import Mapping, Optional, TypeVar

from pydantic import BaseModel, ValidationError

from yachtcrm.auth import AuthContext
from yachtcrm.database import DatabaseManager
from yachtcrm.errors import CRMError, FieldError, UpstreamUnavailableError, ValidationFailedError
from yachtcrm.logger import StructuredLogger
from yachtcrm.models.service_models import ServiceResult
from yachtcrm.utils.audit import DetailValue, log_audit_event
from yachtcrm.utils.string_helpers import normalize_keys

M = TypeVar("M", bound=BaseModel)

_VALUE_ERROR_PREFIX: str = "Value error, "


class BaseService:
    """Base class for all service classes. Provides a logger.

    When *db* is given, audit events are also persisted to ``audit_log``.
    """

    def __init__(
        self,
        logger: StructuredLogger,
        db: Optional[DatabaseManager] = None,
    ) -> None:
        self._logger: StructuredLogger = logger
        self._db: Optional[DatabaseManager] = db

    # ------------------------------------------------------------------
    # Failure envelopes
    # ------------------------------------------------------------------

    @staticmethod
    def _fail(exc: CRMError) -> ServiceResult:
        details = exc.details if isinstance(exc, ValidationFailedError) else []
        return ServiceResult(
            success=False,
            error=exc.message,
            error_code=exc.code,
            status_code=exc.status_code,
            details=details,
        )

    def _unexpected(
        self,
        operation: str,
        exc: Exception,
        ctx: Optional[AuthContext] = None,
        entity_id: Optional[str] = None,
    ) -> ServiceResult:
        """Log an unanticipated failure with context; return a generic upstream error."""
        self._logger.failure(
            operation,
            exc,
            owner_id=ctx.user_id if ctx else None,
            entity_id=entity_id,
            traceback=True,
        )
        return self._fail(UpstreamUnavailableError())

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    @staticmethod
    def _normalize(payload: Optional[Mapping[str, object]]) -> dict[str, object]:
        """camelCase form keys -> snake_case; ``None`` -> empty payload."""
        if not payload:
            return {}
        return dict(normalize_keys(dict(payload)))

    @staticmethod
    def _validate(model_cls: type[M], payload: Mapping[str, object]) -> M:
        """Validate *payload* into *model_cls*, mapping errors to field details."""
        try:
            return model_cls.model_validate(payload)
        except ValidationError as exc:
            details = [
                FieldError(
                    field=".".join(str(part) for part in error["loc"]) or "form",
                    message=error["msg"].removeprefix(_VALUE_ERROR_PREFIX),
                )
                for error in exc.errors()
            ]
            raise ValidationFailedError(details=details, original_error=exc) from exc

    @staticmethod
    def _require(payload: Mapping[str, object], fields: tuple[str, ...], message: str) -> None:
        """Raise one :class:`ValidationFailedError` naming every blank required field."""
        missing = [
            field for field in fields
            if payload.get(field) is None or str(payload.get(field)).strip() == ""
        ]
        if missing:
            raise ValidationFailedError(
                message,
                details=[FieldError(field=field, message=message) for field in missing],
            )

    # ------------------------------------------------------------------
    # Audit
    # ------------------------------------------------------------------

    def _audit(
        self,
        action: str,
        entity_type: str,
        entity_id: str,
        user_id: str,
        details: Optional[dict[str, DetailValue]] = None,
    ) -> None:
        log_audit_event(
            logger=self._logger,
            action=action,
            entity_type=entity_type,
            entity_id=entity_id,
            user_id=user_id,
            details=details,
            conn=self._db.sqlite if self._db is not None else None,
            lock=self._db.write_lock if self._db is not None else None,
        )
