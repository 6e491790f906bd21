"""Tests for image upload validation, storage and cleanup."""

import re
from unittest.mock import Mock

import pytest

from yachtcrm.errors import ErrorCode, UpstreamUnavailableError
from yachtcrm.services.uploads import ImageUploadService, generate_blob_name
from tests.utils.factories import create_upload

BLOB_NAME_RE = re.compile(r"^boat-\d{13}-[a-z0-9]{11}\.jpg$")


@pytest.mark.unit
def test_generate_blob_name_keeps_extension_only():
    name = generate_blob_name("My Holiday Photo.JPG")

    assert BLOB_NAME_RE.match(name)
    assert "Holiday" not in name


@pytest.mark.unit
def test_generated_names_are_unique():
    assert len({generate_blob_name("a.jpg") for _ in range(200)}) == 200


@pytest.mark.unit
def test_upload_images_reports_each_file(upload_service, broker, blob_store):
    files = [
        create_upload("deck.jpg"),
        create_upload("brochure.pdf", content_type="application/pdf"),
        create_upload("huge.png", content_type="image/png", size=10 * 1024 * 1024 + 1),
        create_upload("saloon.webp", content_type="image/webp"),
    ]

    result = upload_service.upload_images(broker, files)

    assert result.success is True
    outcomes = result.data
    assert [o.original_filename for o in outcomes] == [f.filename for f in files]
    assert [o.success for o in outcomes] == [True, False, False, True]
    assert outcomes[1].error == "File must be an image"
    assert outcomes[1].error_code == ErrorCode.UPLOAD_REJECTED
    assert outcomes[2].error == "File size must be less than 10MB"
    assert outcomes[0].image.url == f"/uploads/boats/{outcomes[0].key}"
    assert sorted(p.name for p in blob_store.root.iterdir()) == sorted(
        [outcomes[0].key, outcomes[3].key]
    )


@pytest.mark.unit
def test_file_at_size_limit_is_accepted(upload_service, broker):
    result = upload_service.upload_images(broker, [create_upload(size=10 * 1024 * 1024)])

    assert result.data[0].success is True


@pytest.mark.unit
def test_store_failure_is_reported_per_file(logger, broker):
    store = Mock()
    store.put.side_effect = [
        "https://cdn.example.com/one.jpg",
        UpstreamUnavailableError("Image storage is unavailable."),
    ]
    service = ImageUploadService(store=store, logger=logger, max_workers=1)

    outcomes = service.upload_images(broker, [create_upload("one.jpg"), create_upload("two.jpg")]).data

    assert [o.success for o in outcomes] == [True, False]
    assert outcomes[1].error_code == ErrorCode.UPSTREAM_UNAVAILABLE


@pytest.mark.unit
def test_discard_removes_only_stored_blobs(logger):
    store = Mock()
    store.put.return_value = "https://cdn.example.com/x.jpg"
    service = ImageUploadService(store=store, logger=logger)
    outcomes = service.store([
        create_upload("a.jpg"),
        create_upload("b.txt", content_type="text/plain"),
    ])

    removed = service.discard(outcomes)

    assert removed == 1
    store.delete.assert_called_once_with(outcomes[0].key)


@pytest.mark.unit
def test_discard_attempts_every_blob_even_when_one_fails(logger):
    store = Mock()
    store.put.return_value = "https://cdn.example.com/x.jpg"
    store.delete.side_effect = [UpstreamUnavailableError(), None]
    service = ImageUploadService(store=store, logger=logger)
    outcomes = service.store([create_upload("a.jpg"), create_upload("b.jpg")])

    removed = service.discard(outcomes)

    assert removed == 1
    assert store.delete.call_count == 2
