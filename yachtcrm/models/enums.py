"""
Shared Enumerations for the CRM Models.

StrEnum values compare equal to their string equivalents, so stored
values like ``'BROKER'`` and ``'EUR'`` round-trip without conversion.
"""

from __future__ import annotations

from enum import StrEnum


class UserRole(StrEnum):
    """Roles a broker account can hold.  New accounts default to ``BROKER``."""

    ADMIN = "ADMIN"
    BROKER = "BROKER"
    MANAGER = "MANAGER"


class Currency(StrEnum):
    """Currencies accepted for boat asking prices."""

    EUR = "EUR"
    USD = "USD"
    GBP = "GBP"


class BudgetRange(StrEnum):
    """Budget tokens submitted by the client form."""

    UNDER_500K = "under-500k"
    FROM_500K_TO_1M = "500k-1m"
    FROM_1M_TO_5M = "1m-5m"
    FROM_5M_TO_10M = "5m-10m"
    OVER_10M = "10m-plus"


class ReminderBucket(StrEnum):
    """Urgency bucket a reminder falls into relative to today."""

    OVERDUE = "overdue"
    TODAY = "today"
    TOMORROW = "tomorrow"
    THIS_WEEK = "this_week"
    UPCOMING = "upcoming"
