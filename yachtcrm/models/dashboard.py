"""
Dashboard Models.

Read-side projections computed on every request; nothing here is
persisted or cached.
"""

from __future__ import annotations

from decimal import Decimal

from pydantic import BaseModel, Field

from yachtcrm.models.client import Client
from yachtcrm.models.enums import ReminderBucket


class DashboardStats(BaseModel):
    client_count: int = 0
    boat_count: int = 0
    portfolio_value: Decimal = Decimal(0)
    total_active_reminders: int = 0


class ReminderBuckets(BaseModel):
    """Clients with a pending follow-up, grouped by urgency.

    Every client with a reminder appears in exactly one bucket; each
    bucket is ordered by ``to_contact`` ascending.
    """

    overdue: list[Client] = Field(default_factory=list)
    today: list[Client] = Field(default_factory=list)
    tomorrow: list[Client] = Field(default_factory=list)
    this_week: list[Client] = Field(default_factory=list)
    upcoming: list[Client] = Field(default_factory=list)

    def bucket(self, name: ReminderBucket) -> list[Client]:
        return getattr(self, name.value)

    @property
    def total(self) -> int:
        return sum(len(self.bucket(name)) for name in ReminderBucket)


class PriorityReminder(BaseModel):
    """A reminder surfaced on the dashboard, tagged with its bucket."""

    client: Client
    bucket: ReminderBucket
    label: str = ""


class Dashboard(BaseModel):
    stats: DashboardStats
    reminders: ReminderBuckets
    priority: list[PriorityReminder] = Field(default_factory=list)
