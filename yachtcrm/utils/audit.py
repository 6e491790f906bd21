"""
Audit trail for broker actions.

Each state change (client or boat created, updated or deleted, a reminder
set or cleared, a broker provisioned) produces one :class:`AuditEvent`.
The event is always written to the application log as JSON and, when a
connection is supplied, appended to the ``audit_log`` table.
"""

from __future__ import annotations

import json
import sqlite3
import threading
from contextlib import nullcontext
from datetime import datetime, timezone
from typing import Optional, Union

from pydantic import BaseModel, Field

from yachtcrm.logger import StructuredLogger

__all__ = ["AuditEvent", "log_audit_event", "persist_audit_event"]

# Scalars only, so each audit row stays a flat JSON object.
DetailValue = Union[str, int, float, bool, None]

_INSERT = (
    "INSERT INTO audit_log (timestamp, action, entity_type, entity_id, user_id, details) "
    "VALUES (:timestamp, :action, :entity_type, :entity_id, :user_id, :details)"
)


class AuditEvent(BaseModel):
    """One audited change, stamped in UTC when it is built."""

    action: str
    entity_type: str
    entity_id: str
    user_id: str
    details: dict[str, DetailValue] = Field(default_factory=dict)
    timestamp: str = Field(default_factory=lambda: datetime.now(timezone.utc).isoformat())


def log_audit_event(
    logger: StructuredLogger,
    action: str,
    entity_type: str,
    entity_id: str,
    user_id: str,
    details: Optional[dict[str, DetailValue]] = None,
    conn: Optional[sqlite3.Connection] = None,
    lock: Optional[threading.RLock] = None,
) -> None:
    """Record that *user_id* performed *action* on an entity.

    *lock* is normally ``DatabaseManager.write_lock`` and is held while the
    row is written through *conn*.  A failed insert is logged as a warning;
    the audited operation has already happened and is not undone.
    """
    event = AuditEvent(
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        user_id=user_id,
        details=details or {},
    )
    logger.info("AUDIT: %s", event.model_dump_json())

    if conn is None:
        return
    try:
        with lock if lock is not None else nullcontext():
            persist_audit_event(conn, event)
    except sqlite3.Error as exc:
        logger.warning(
            "Audit event %s %s/%s was not stored: %s",
            action, entity_type, entity_id, exc,
        )


def persist_audit_event(conn: sqlite3.Connection, event: AuditEvent) -> None:
    """Append *event* to ``audit_log`` and commit."""
    row = event.model_dump()
    row["details"] = json.dumps(event.details, default=str)
    conn.execute(_INSERT, row)
    conn.commit()
