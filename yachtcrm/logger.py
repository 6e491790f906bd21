"""
Structured Logging.

Every repository and service receives a :class:`StructuredLogger`.  Records
are written as one JSON object per line to stderr (stdout belongs to the
CLI) and, when ``LOG_FILE`` is set, to a rotating file.

Failures carry the request context that produced them: the operation name,
the owning broker and the entity involved.  These travel as top-level keys
so log queries can filter on them directly::

    {"timestamp": "...", "level": "ERROR", "logger_name": "services",
     "message": "update_client failed: ...", "operation": "update_client",
     "owner_id": "u-1", "entity_id": "c-9", "exception": "Traceback ..."}
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import TYPE_CHECKING, Optional, TextIO

if TYPE_CHECKING:
    from yachtcrm.config import AppConfig

# Keys promoted to the top level of each JSON line.
CONTEXT_FIELDS: tuple[str, ...] = ("operation", "owner_id", "entity_id", "event")

_RESERVED: frozenset[str] = frozenset(
    vars(logging.makeLogRecord({})).keys()
) | {"message", "asctime"}


class JSONFormatter(logging.Formatter):
    """Render a record as a single JSON line with its request context."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, object] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger_name": record.name,
            "message": record.getMessage(),
        }

        extra: dict[str, object] = {}
        for key, value in vars(record).items():
            if key in _RESERVED:
                continue
            if key in CONTEXT_FIELDS:
                payload[key] = value
            else:
                extra[key] = value
        if extra:
            payload["extra"] = extra

        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)

        return json.dumps(payload, ensure_ascii=False, default=str)


def _attach_handlers(
    target: logging.Logger,
    config: AppConfig,
    stream: Optional[TextIO],
) -> None:
    formatter = JSONFormatter()

    console = logging.StreamHandler(stream or sys.stderr)
    console.setFormatter(formatter)
    target.addHandler(console)

    if not config.LOG_FILE:
        return
    path = Path(config.LOG_FILE)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        rotating = RotatingFileHandler(
            path,
            maxBytes=config.LOG_MAX_BYTES,
            backupCount=config.LOG_BACKUP_COUNT,
            encoding="utf-8",
        )
    except OSError as exc:
        target.warning("Log file %s unavailable (%s); logging to stderr only.", path, exc)
        return
    rotating.setFormatter(formatter)
    target.addHandler(rotating)


class StructuredLogger:
    """JSON logger injected into repositories and services.

    Level, log file and rotation come from :class:`~yachtcrm.config.AppConfig`
    (the process-wide config when none is passed).  Handlers are attached
    once per logger name, so building several instances with the same name
    is safe.
    """

    def __init__(
        self,
        name: str = "yachtcrm",
        config: Optional[AppConfig] = None,
        stream: Optional[TextIO] = None,
    ) -> None:
        if config is None:
            from yachtcrm.config import get_config

            config = get_config()

        self._logger = logging.getLogger(name)
        self._logger.setLevel(config.log_level)
        if not self._logger.handlers:
            _attach_handlers(self._logger, config, stream)

    @property
    def logger(self) -> logging.Logger:
        return self._logger

    def debug(self, msg: str, *args: object, **kwargs: object) -> None:
        self._logger.debug(msg, *args, **kwargs)

    def info(self, msg: str, *args: object, **kwargs: object) -> None:
        self._logger.info(msg, *args, **kwargs)

    def warning(self, msg: str, *args: object, **kwargs: object) -> None:
        self._logger.warning(msg, *args, **kwargs)

    def error(self, msg: str, *args: object, **kwargs: object) -> None:
        self._logger.error(msg, *args, **kwargs)

    def failure(
        self,
        operation: str,
        exc: BaseException,
        owner_id: Optional[str] = None,
        entity_id: Optional[str] = None,
        traceback: bool = False,
    ) -> None:
        """Log a failed operation at ERROR with its owner and entity context."""
        self._logger.error(
            "%s failed: %s",
            operation,
            exc,
            exc_info=exc if traceback else None,
            extra={"operation": operation, "owner_id": owner_id, "entity_id": entity_id},
        )


def get_logger(name: str = "yachtcrm") -> StructuredLogger:
    return StructuredLogger(name=name)
