"""Shared utility functions and models for the broker CRM.

Convenience re-exports so consumers can import directly from
``yachtcrm.utils`` (e.g. ``from yachtcrm.utils import normalize_keys``).
"""

from yachtcrm.utils.audit import AuditEvent, log_audit_event
from yachtcrm.utils.string_helpers import escape_like, normalize_keys, to_snake_case

__all__ = [
    "AuditEvent",
    "escape_like",
    "log_audit_event",
    "normalize_keys",
    "to_snake_case",
]
