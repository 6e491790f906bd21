"""Tests for the boat service."""

from decimal import Decimal

import pytest
from freezegun import freeze_time

from yachtcrm.errors import ErrorCode
from yachtcrm.models.enums import Currency
from tests.utils.factories import create_boat_form, create_upload


@pytest.mark.unit
def test_create_boat_with_structured_price(boat_service, broker):
    result = boat_service.create_boat(
        broker, create_boat_form(model="Predator 74", price="1250000 EUR", currency="eur"),
    )

    assert result.success is True
    assert result.status_code == 201
    boat = result.data
    assert boat.model == "Predator 74"
    assert boat.price_amount == Decimal("1250000")
    assert boat.price_currency == Currency.EUR
    assert boat.price == "EUR 1250000"
    assert boat.price_label == "EUR 1250000"


@pytest.mark.unit
def test_fractional_price_is_kept_exactly(boat_service, broker):
    created = boat_service.create_boat(
        broker, create_boat_form(price="123456789.123456789", currency="USD"),
    ).data

    stored = boat_service.get_boat(broker, created.id).data

    assert stored.price_amount == Decimal("123456789.123456789")
    assert stored.price == "USD 123456789.123456789"


@pytest.mark.unit
def test_currency_defaults_to_eur(boat_service, broker):
    result = boat_service.create_boat(broker, create_boat_form(price="900000", currency=""))

    assert result.data.price_currency == Currency.EUR


@pytest.mark.unit
def test_create_requires_model_and_price(boat_service, broker):
    no_model = boat_service.create_boat(broker, create_boat_form(model=""))
    no_price = boat_service.create_boat(broker, create_boat_form(price=None))

    assert no_model.error_code == ErrorCode.VALIDATION_FAILED
    assert no_model.error == "Boat model is required"
    assert no_price.error == "Price is required"


@pytest.mark.unit
@pytest.mark.parametrize("price", ["0", "0.00", "abc", "1000000001", "1.2.3"])
def test_invalid_price_is_rejected(boat_service, broker, price):
    result = boat_service.create_boat(broker, create_boat_form(price=price))

    assert result.success is False
    assert result.error_code == ErrorCode.VALIDATION_FAILED
    assert {"field": "price", "message": "Invalid price"} in [d.model_dump() for d in result.details]


@pytest.mark.unit
@freeze_time("2026-03-01")
@pytest.mark.parametrize(
    ("field", "value", "message"),
    [
        ("year", "1899", "Invalid year"),
        ("year", "2028", "Invalid year"),
        ("size", "0", "Invalid size"),
        ("size", "200.5", "Invalid size"),
        ("currency", "JPY", None),
    ],
)
def test_invalid_fields_are_rejected(boat_service, broker, field, value, message):
    result = boat_service.create_boat(broker, create_boat_form(**{field: value}))

    assert result.success is False
    detail = next(d for d in result.details if d.field == field)
    if message is not None:
        assert detail.message == message


@pytest.mark.unit
@freeze_time("2026-03-01")
def test_next_model_year_is_accepted(boat_service, broker):
    result = boat_service.create_boat(broker, create_boat_form(year="2027"))

    assert result.success is True
    assert result.data.year == 2027


@pytest.mark.unit
def test_size_is_rounded_to_whole_feet(boat_service, broker):
    result = boat_service.create_boat(broker, create_boat_form(size="64.5"))

    assert result.data.size == 65


@pytest.mark.unit
def test_create_boat_with_image_references(boat_service, broker):
    form = create_boat_form(
        images=[
            "https://cdn.example.com/boats/hero.jpg",
            {"url": "https://cdn.example.com/boats/deck.png", "alt": "Deck"},
        ],
    )

    boat = boat_service.create_boat(broker, form).data

    assert [image.filename for image in boat.images] == ["hero.jpg", "deck.png"]
    assert boat.images[1].alt == "Deck"


@pytest.mark.unit
def test_create_boat_stores_uploads(boat_service, broker, blob_store):
    result = boat_service.create_boat(
        broker, create_boat_form(), uploads=[create_upload("Bow.JPG"), create_upload("stern.png")],
    )

    assert result.success is True
    images = result.data.images
    assert len(images) == 2
    assert all(image.url.startswith("/uploads/boats/boat-") for image in images)
    assert images[0].filename.endswith(".jpg")
    assert sorted(p.name for p in blob_store.root.iterdir()) == sorted(i.filename for i in images)


@pytest.mark.unit
def test_rejected_upload_fails_create_and_removes_stored_blobs(boat_service, broker, blob_store):
    result = boat_service.create_boat(
        broker,
        create_boat_form(),
        uploads=[create_upload("ok.jpg"), create_upload("notes.pdf", content_type="application/pdf")],
    )

    assert result.success is False
    assert result.error_code == ErrorCode.UPLOAD_REJECTED
    assert "notes.pdf" in result.error
    assert list(blob_store.root.iterdir()) == []
    assert boat_service.list_boats(broker).data == []


@pytest.mark.unit
def test_failed_boat_write_discards_uploaded_blobs(boat_service, broker, blob_store, monkeypatch):
    def _boom(data):
        raise RuntimeError("store exploded")

    monkeypatch.setattr(boat_service._repo, "create", _boom)

    result = boat_service.create_boat(broker, create_boat_form(), uploads=[create_upload()])

    assert result.success is False
    assert result.error_code == ErrorCode.UPSTREAM_UNAVAILABLE
    assert "store exploded" not in (result.error or "")
    assert list(blob_store.root.iterdir()) == []


@pytest.mark.unit
def test_price_only_update_keeps_currency(boat_service, broker):
    boat = boat_service.create_boat(
        broker, create_boat_form(price="500000", currency="GBP"),
    ).data

    result = boat_service.update_boat(broker, boat.id, {"price": "650,000"})

    assert result.data.price_amount == Decimal("650000")
    assert result.data.price_currency == Currency.GBP
    assert result.data.price == "GBP 650000"


@pytest.mark.unit
def test_currency_only_update_relabels_existing_amount(boat_service, broker):
    boat = boat_service.create_boat(
        broker, create_boat_form(price="500000", currency="EUR"),
    ).data

    result = boat_service.update_boat(broker, boat.id, {"currency": "usd"})

    assert result.data.price_amount == Decimal("500000")
    assert result.data.price == "USD 500000"
    assert result.data.price_label == "USD 500000"


@pytest.mark.unit
def test_update_ignores_blank_fields_and_appends_images(boat_service, broker):
    boat = boat_service.create_boat(
        broker, create_boat_form(location="Antibes", images=["https://cdn.example.com/a.jpg"]),
    ).data

    result = boat_service.update_boat(
        broker,
        boat.id,
        {"location": "", "description": "Refit 2024", "images": ["https://cdn.example.com/b.jpg"]},
    )

    assert result.success is True
    assert result.data.location == "Antibes"
    assert result.data.description == "Refit 2024"
    assert [image.filename for image in result.data.images] == ["a.jpg", "b.jpg"]


@pytest.mark.unit
def test_update_and_delete_are_owner_scoped(boat_service, broker, other_broker):
    boat = boat_service.create_boat(broker, create_boat_form()).data

    update = boat_service.update_boat(other_broker, boat.id, {"model": "Stolen"})
    delete = boat_service.delete_boat(other_broker, boat.id)

    assert update.error_code == ErrorCode.NOT_FOUND_OR_FORBIDDEN
    assert delete.error_code == ErrorCode.NOT_FOUND_OR_FORBIDDEN
    assert boat_service.get_boat(broker, boat.id).data.model == boat.model


@pytest.mark.unit
def test_delete_boat_removes_its_images(boat_service, broker, db):
    boat = boat_service.create_boat(
        broker, create_boat_form(images=["https://cdn.example.com/a.jpg"]),
    ).data

    assert boat_service.delete_boat(broker, boat.id).success is True
    remaining = db.sqlite.execute(
        "SELECT COUNT(*) FROM boat_images WHERE boat_id = ?", (boat.id,),
    ).fetchone()[0]
    assert remaining == 0


@pytest.mark.unit
def test_search_boats(boat_service, broker):
    boat_service.create_boat(
        broker, create_boat_form(brand="Azimut", year="2015", size="60", price="1200000"),
    )
    boat_service.create_boat(
        broker, create_boat_form(brand="Princess", year="2021", size="88", price="4800000"),
    )

    by_brand = boat_service.search_boats(broker, {"brand": "azi"})
    by_range = boat_service.search_boats(broker, {"minYear": "2018", "maxPrice": "5000000"})
    invalid = boat_service.search_boats(broker, {"minYear": "1800"})

    assert [b.brand for b in by_brand.data] == ["Azimut"]
    assert [b.brand for b in by_range.data] == ["Princess"]
    assert invalid.error_code == ErrorCode.VALIDATION_FAILED
