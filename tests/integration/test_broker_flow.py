"""End-to-end broker flows through the request layer."""

from datetime import datetime, timezone
from decimal import Decimal

import pytest
from freezegun import freeze_time

from yachtcrm.errors import ErrorCode
from yachtcrm.models.enums import ReminderBucket
from tests.utils.factories import create_boat_form, create_upload

TODAY = "2026-06-10"


@pytest.mark.integration
@freeze_time(f"{TODAY} 09:00:00")
def test_jane_reminder_lifecycle(api):
    """Create Jane, remind today, clear: she leaves every bucket."""
    created = api.create_client(
        "token-broker", {"name": "Jane", "email": "jane@x.com", "budget": "500k-1m"},
    )
    assert created.success is True
    jane = created.data
    assert jane.budget == 750_000

    reminded = api.set_reminder("token-broker", jane.id, {"date": f"{TODAY}T15:00:00"})
    assert reminded.success is True

    buckets = api.get_reminder_buckets("token-broker").data
    assert [c.id for c in buckets.today] == [jane.id]
    assert buckets.total == 1

    cleared = api.clear_reminder("token-broker", jane.id)
    assert cleared.success is True

    buckets = api.get_reminder_buckets("token-broker").data
    assert all(buckets.bucket(name) == [] for name in ReminderBucket)


@pytest.mark.integration
def test_brokers_never_see_each_other(api):
    jane = api.create_client("token-broker", {"name": "Jane", "email": "jane@x.com"}).data
    boat = api.create_boat("token-broker", create_boat_form(price="1000000")).data

    assert api.list_clients("token-other").data == []
    assert api.list_boats("token-other").data == []
    assert api.get_client("token-other", jane.id).error_code == ErrorCode.NOT_FOUND_OR_FORBIDDEN
    assert api.get_boat("token-other", boat.id).error_code == ErrorCode.NOT_FOUND_OR_FORBIDDEN
    assert api.update_client(
        "token-other", jane.id, {"name": "Mallory"},
    ).error_code == ErrorCode.NOT_FOUND_OR_FORBIDDEN
    assert api.set_reminder(
        "token-other", jane.id, {"date": TODAY},
    ).error_code == ErrorCode.NOT_FOUND_OR_FORBIDDEN
    assert api.delete_boat("token-other", boat.id).error_code == ErrorCode.NOT_FOUND_OR_FORBIDDEN
    assert api.get_dashboard_stats("token-other").data.portfolio_value == Decimal(0)

    assert api.get_client("token-broker", jane.id).data.name == "Jane"


@pytest.mark.integration
def test_listing_with_uploaded_images_feeds_dashboard(api, blob_store):
    stored = api.upload_images("token-broker", [create_upload("hero.jpg")]).data
    assert stored[0].success is True

    boat = api.create_boat(
        "token-broker",
        create_boat_form(price="1250000 EUR", images=[stored[0].image.model_dump()]),
        [create_upload("deck.jpg")],
    ).data
    api.update_boat("token-broker", boat.id, {"price": "1500000"})

    listed = api.search_boats("token-broker", {"minPrice": "1400000"}).data
    dashboard = api.get_dashboard("token-broker", datetime(2026, 6, 10, tzinfo=timezone.utc)).data

    assert [b.id for b in listed] == [boat.id]
    assert len(listed[0].images) == 2
    assert dashboard.stats.boat_count == 1
    assert dashboard.stats.portfolio_value == Decimal("1500000")
    assert len(list(blob_store.root.iterdir())) == 2


@pytest.mark.integration
def test_search_and_priority_through_api(api):
    for name, date in (("Ana", "2026-06-08"), ("Ben", "2026-06-10"), ("Cy", "2026-08-01")):
        created = api.create_client(
            "token-broker", {"name": name, "email": f"{name.lower()}@x.com", "boatType": "Catamaran"},
        ).data
        api.set_reminder("token-broker", created.id, {"date": date})

    now = datetime(2026, 6, 10, 12, 0, tzinfo=timezone.utc)
    priority = api.get_priority_reminders("token-broker", now).data
    found = api.search_clients("token-broker", {"modelInterest": "cat"}).data

    assert [(p.client.name, p.bucket) for p in priority] == [
        ("Ana", ReminderBucket.OVERDUE),
        ("Ben", ReminderBucket.TODAY),
    ]
    assert sorted(c.name for c in found) == ["Ana", "Ben", "Cy"]
