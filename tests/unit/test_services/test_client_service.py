"""Tests for the client service."""

from datetime import datetime, timezone

import pytest

from yachtcrm.errors import ErrorCode
from tests.utils.factories import create_client_form


@pytest.mark.unit
def test_create_client_maps_form_fields(client_service, broker):
    form = create_client_form(
        name="Jane Doe",
        email="jane@x.com",
        company="Blue Water Ltd",
        boatType="Catamaran",
        budget="1m-5m",
        notes="Met at Monaco show",
    )

    result = client_service.create_client(broker, form)

    assert result.success is True
    assert result.status_code == 201
    client = result.data
    assert client.user_id == broker.user_id
    assert client.state == "Blue Water Ltd"
    assert client.company == "Blue Water Ltd"
    assert client.model_interest == "Catamaran"
    assert client.budget == 3_000_000
    assert client.communication == "Met at Monaco show"
    assert client.to_contact is None


@pytest.mark.unit
@pytest.mark.parametrize(
    ("token", "expected"),
    [
        ("under-500k", 500_000),
        ("500k-1m", 750_000),
        ("1m-5m", 3_000_000),
        ("5m-10m", 7_500_000),
        ("10m-plus", 15_000_000),
        ("a-lot", None),
        ("", None),
    ],
)
def test_budget_mapping(client_service, broker, token, expected):
    result = client_service.create_client(broker, create_client_form(budget=token))

    assert result.success is True
    assert result.data.budget == expected


@pytest.mark.unit
def test_create_requires_name_and_email(client_service, broker):
    result = client_service.create_client(broker, {"name": "", "email": "  "})

    assert result.success is False
    assert result.error_code == ErrorCode.VALIDATION_FAILED
    assert result.status_code == 422
    assert result.error == "Name and email are required"
    assert {d.field for d in result.details} == {"name", "email"}


@pytest.mark.unit
def test_create_reports_field_errors(client_service, broker):
    form = create_client_form(email="not-an-email", phone="call me", name="x" * 101)

    result = client_service.create_client(broker, form)

    assert result.success is False
    assert result.error_code == ErrorCode.VALIDATION_FAILED
    messages = {d.field: d.message for d in result.details}
    assert messages["email"] == "Invalid email address"
    assert messages["phone"] == "Invalid phone number"
    assert "name" in messages


@pytest.mark.unit
def test_phone_separators_are_accepted(client_service, broker):
    result = client_service.create_client(broker, create_client_form(phone="+44 (20) 7946-0958"))

    assert result.success is True


@pytest.mark.unit
def test_duplicate_email_is_rejected_per_owner(client_service, broker, other_broker):
    first = client_service.create_client(broker, create_client_form(email="dup@x.com"))
    second = client_service.create_client(broker, create_client_form(email="dup@x.com"))
    other = client_service.create_client(other_broker, create_client_form(email="dup@x.com"))

    assert first.success is True
    assert second.success is False
    assert second.error_code == ErrorCode.DUPLICATE_EMAIL
    assert second.status_code == 409
    assert second.error == "Client with this email already exists"
    assert other.success is True


@pytest.mark.unit
def test_update_with_blank_field_keeps_stored_value(client_service, broker):
    created = client_service.create_client(
        broker, create_client_form(phone="+447700900123"),
    ).data

    result = client_service.update_client(broker, created.id, {"phone": ""})

    assert result.success is True
    assert result.data.phone == "+447700900123"


@pytest.mark.unit
def test_update_applies_only_provided_fields(client_service, broker):
    created = client_service.create_client(
        broker, create_client_form(name="Old Name", budget="under-500k"),
    ).data

    result = client_service.update_client(
        broker, created.id, {"name": "New Name", "budget": "5m-10m", "notes": ""},
    )

    assert result.success is True
    assert result.data.name == "New Name"
    assert result.data.budget == 7_500_000
    assert result.data.email == created.email
    assert result.data.communication == created.communication


@pytest.mark.unit
def test_update_to_existing_email_is_rejected(client_service, broker):
    client_service.create_client(broker, create_client_form(email="taken@x.com"))
    target = client_service.create_client(broker, create_client_form(email="mine@x.com")).data

    result = client_service.update_client(broker, target.id, {"email": "taken@x.com"})
    same = client_service.update_client(broker, target.id, {"email": "mine@x.com"})

    assert result.error_code == ErrorCode.DUPLICATE_EMAIL
    assert same.success is True


@pytest.mark.unit
def test_foreign_client_is_indistinguishable_from_missing(client_service, broker, other_broker):
    created = client_service.create_client(broker, create_client_form()).data

    foreign = client_service.get_client(other_broker, created.id)
    missing = client_service.get_client(other_broker, "no-such-id")

    assert foreign.success is False
    assert foreign.error_code == ErrorCode.NOT_FOUND_OR_FORBIDDEN
    assert (foreign.error, foreign.status_code) == (missing.error, missing.status_code)


@pytest.mark.unit
def test_delete_client(client_service, broker, other_broker):
    created = client_service.create_client(broker, create_client_form()).data

    refused = client_service.delete_client(other_broker, created.id)
    deleted = client_service.delete_client(broker, created.id)
    again = client_service.delete_client(broker, created.id)

    assert refused.error_code == ErrorCode.NOT_FOUND_OR_FORBIDDEN
    assert deleted.success is True
    assert again.error_code == ErrorCode.NOT_FOUND_OR_FORBIDDEN
    assert client_service.list_clients(broker).data == []


@pytest.mark.unit
def test_set_and_clear_reminder(client_service, broker):
    created = client_service.create_client(broker, create_client_form()).data

    result = client_service.set_reminder(
        broker, created.id, {"date": "2026-07-01T10:00:00+02:00", "note": "Call about survey"},
    )

    assert result.success is True
    assert result.data.to_contact == datetime(2026, 7, 1, 8, 0, tzinfo=timezone.utc)
    assert result.data.to_contact_text == "Call about survey"

    cleared = client_service.clear_reminder(broker, created.id)

    assert cleared.success is True
    assert cleared.data.to_contact is None
    assert cleared.data.to_contact_text is None


@pytest.mark.unit
def test_naive_reminder_date_is_read_in_configured_zone(client_service, broker):
    created = client_service.create_client(broker, create_client_form()).data

    result = client_service.set_reminder(broker, created.id, {"date": "2026-07-01T10:00"})

    assert result.data.to_contact == datetime(2026, 7, 1, 10, 0, tzinfo=timezone.utc)
    assert result.data.to_contact_text is None


@pytest.mark.unit
@pytest.mark.parametrize(
    ("form", "message"),
    [
        ({}, "Reminder date is required"),
        ({"date": "next tuesday"}, "Invalid date"),
    ],
)
def test_reminder_date_validation(client_service, broker, form, message):
    created = client_service.create_client(broker, create_client_form()).data

    result = client_service.set_reminder(broker, created.id, form)

    assert result.success is False
    assert result.error_code == ErrorCode.VALIDATION_FAILED
    assert any(d.message == message for d in result.details)


@pytest.mark.unit
def test_reminder_note_length_is_limited(client_service, broker):
    created = client_service.create_client(broker, create_client_form()).data

    result = client_service.set_reminder(
        broker, created.id, {"date": "2026-07-01", "note": "n" * 501},
    )

    assert result.error_code == ErrorCode.VALIDATION_FAILED
    assert result.details[0].field == "note"


@pytest.mark.unit
def test_search_clients_escapes_wildcards(client_service, broker):
    client_service.create_client(broker, create_client_form(name="100% Sailor"))
    client_service.create_client(broker, create_client_form(name="1000 Sailor"))

    result = client_service.search_clients(broker, {"name": "100%"})

    assert [c.name for c in result.data] == ["100% Sailor"]


@pytest.mark.unit
def test_search_clients_by_budget_and_reminder(client_service, broker):
    small = client_service.create_client(broker, create_client_form(budget="under-500k")).data
    big = client_service.create_client(broker, create_client_form(budget="10m-plus")).data
    client_service.set_reminder(broker, big.id, {"date": "2026-07-01"})

    by_budget = client_service.search_clients(broker, {"minBudget": "1000000"})
    with_reminder = client_service.search_clients(broker, {"hasReminder": True})
    without = client_service.search_clients(broker, {"hasReminder": False})

    assert [c.id for c in by_budget.data] == [big.id]
    assert [c.id for c in with_reminder.data] == [big.id]
    assert [c.id for c in without.data] == [small.id]
