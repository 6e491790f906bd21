"""
Reminder Scheduler.

Pure functions that sort clients with a follow-up date into urgency
buckets.  Buckets are derived at read time from ``Client.to_contact`` and
are never stored.

Comparison happens on local calendar days: aware datetimes are converted
to the configured zone (system local when none is given), naive ones are
taken to already be local wall-clock times.  With today = D:

    to_contact day <  D       -> overdue
    to_contact day == D       -> today
    to_contact day == D + 1   -> tomorrow
    to_contact day <= D + 7   -> this_week
    otherwise                 -> upcoming
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import date, datetime, tzinfo
from typing import Optional

from yachtcrm.models.client import Client
from yachtcrm.models.dashboard import PriorityReminder, ReminderBuckets
from yachtcrm.models.enums import ReminderBucket

__all__ = [
    "PRIORITY_BUCKETS",
    "build_priority_list",
    "categorize_reminders",
    "format_reminder_date",
    "local_day",
    "to_aware",
]

# Buckets surfaced on the dashboard, most urgent first.
PRIORITY_BUCKETS: tuple[ReminderBucket, ...] = (
    ReminderBucket.OVERDUE,
    ReminderBucket.TODAY,
    ReminderBucket.TOMORROW,
    ReminderBucket.THIS_WEEK,
)

_THIS_WEEK_DAYS: int = 7


def to_aware(value: datetime, tz: Optional[tzinfo] = None) -> datetime:
    """Attach *tz* (or the system zone) to a naive datetime; leave aware ones alone."""
    if value.tzinfo is not None:
        return value
    if tz is not None:
        return value.replace(tzinfo=tz)
    return value.astimezone()


def local_day(value: datetime, tz: Optional[tzinfo] = None) -> date:
    """Calendar day of *value* in *tz* (system local when ``None``)."""
    aware = to_aware(value, tz)
    return aware.astimezone(tz).date() if tz is not None else aware.astimezone().date()


def _bucket_for(day: date, today: date) -> ReminderBucket:
    delta = (day - today).days
    if delta < 0:
        return ReminderBucket.OVERDUE
    if delta == 0:
        return ReminderBucket.TODAY
    if delta == 1:
        return ReminderBucket.TOMORROW
    if delta <= _THIS_WEEK_DAYS:
        return ReminderBucket.THIS_WEEK
    return ReminderBucket.UPCOMING


def categorize_reminders(
    clients: Iterable[Client],
    now: datetime,
    tz: Optional[tzinfo] = None,
) -> ReminderBuckets:
    """Partition *clients* with a reminder into urgency buckets.

    Clients without ``to_contact`` are skipped.  Every remaining client
    lands in exactly one bucket, and each bucket is ordered by
    ``to_contact`` ascending.
    """
    today = local_day(now, tz)
    grouped: dict[ReminderBucket, list[Client]] = {bucket: [] for bucket in ReminderBucket}

    for client in clients:
        if client.to_contact is None:
            continue
        grouped[_bucket_for(local_day(client.to_contact, tz), today)].append(client)

    for members in grouped.values():
        members.sort(key=lambda c: to_aware(c.to_contact, tz))  # type: ignore[arg-type]

    return ReminderBuckets(**{bucket.value: members for bucket, members in grouped.items()})


def format_reminder_date(
    value: Optional[datetime],
    now: datetime,
    tz: Optional[tzinfo] = None,
) -> str:
    """Dashboard label for a reminder date.

    ``"Today"``, ``"Tomorrow"``, ``"Yesterday"``, ``"N days overdue"``, or
    the short month and day (``"Jun 3"``) for later dates.
    """
    if value is None:
        return ""
    day = local_day(value, tz)
    delta = (day - local_day(now, tz)).days
    if delta == 0:
        return "Today"
    if delta == 1:
        return "Tomorrow"
    if delta == -1:
        return "Yesterday"
    if delta < 0:
        return f"{abs(delta)} days overdue"
    return f"{day:%b} {day.day}"


def build_priority_list(
    buckets: ReminderBuckets,
    limit: int = 5,
    now: Optional[datetime] = None,
    tz: Optional[tzinfo] = None,
) -> list[PriorityReminder]:
    """Most urgent reminders: overdue, today, tomorrow, then this week.

    Upcoming reminders are never included.  At most *limit* entries are
    returned, each tagged with its bucket (and a date label when *now* is
    given).
    """
    priority: list[PriorityReminder] = []
    for bucket in PRIORITY_BUCKETS:
        for client in buckets.bucket(bucket):
            if len(priority) >= limit:
                return priority
            label = format_reminder_date(client.to_contact, now, tz) if now is not None else ""
            priority.append(PriorityReminder(client=client, bucket=bucket, label=label))
    return priority
