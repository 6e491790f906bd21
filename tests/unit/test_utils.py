"""Tests for shared helpers: key normalisation, LIKE escaping, audit."""

import json
import logging

import pytest

from yachtcrm.utils import (
    escape_like,
    log_audit_event,
    normalize_keys,
    to_snake_case,
)


@pytest.mark.unit
@pytest.mark.parametrize(
    ("key", "expected"),
    [
        ("boatType", "boat_type"),
        ("engineHours", "engine_hours"),
        ("toContactText", "to_contact_text"),
        ("model_interest", "model_interest"),
        ("URLPath", "url_path"),
    ],
)
def test_to_snake_case(key, expected):
    assert to_snake_case(key) == expected


@pytest.mark.unit
def test_normalize_keys_recurses():
    payload = {"boatType": "Sloop", "images": [{"altText": "Bow"}]}

    assert normalize_keys(payload) == {"boat_type": "Sloop", "images": [{"alt_text": "Bow"}]}


@pytest.mark.unit
def test_escape_like():
    assert escape_like("50%_off\\") == "50\\%\\_off\\\\"


@pytest.mark.unit
def test_audit_event_is_logged_and_persisted(db, logger, caplog):
    with caplog.at_level(logging.INFO, logger="tests"):
        log_audit_event(
            logger=logger,
            action="CREATE",
            entity_type="Client",
            entity_id="c1",
            user_id="u1",
            details={"email": "jane@x.com"},
            conn=db.sqlite,
            lock=db.write_lock,
        )

    assert any("AUDIT:" in record.getMessage() for record in caplog.records)
    row = db.sqlite.execute("SELECT * FROM audit_log WHERE entity_id = 'c1'").fetchone()
    assert row["action"] == "CREATE"
    assert json.loads(row["details"]) == {"email": "jane@x.com"}


@pytest.mark.unit
def test_audit_persistence_failure_does_not_raise(db, logger):
    db.sqlite.execute("DROP TABLE audit_log")

    log_audit_event(
        logger=logger,
        action="DELETE",
        entity_type="Boat",
        entity_id="b1",
        user_id="u1",
        conn=db.sqlite,
    )
