"""Unit tests for content fingerprints"""

from datetime import datetime, timezone

from notification_relay.models.notification import NotificationRecord
from notification_relay.services.notification.fingerprint import (
    content_fingerprint,
    serialize_payload,
)

CREATED = datetime(2025, 1, 1, 12, tzinfo=timezone.utc)


def _record(notification_id="a", **overrides):
    fields = {
        "id": notification_id,
        "title": "New Bid!",
        "body": "Someone bid on your listing",
        "data": {"screen": "listing_details", "listingId": "l1"},
        "created_at": CREATED,
    }
    fields.update(overrides)
    return NotificationRecord(**fields)


def test_fingerprint_layout():
    record = _record(data={"b": 1, "a": "x"})

    assert content_fingerprint(record) == (
        'New Bid!|Someone bid on your listing|{"a":"x","b":1}|1735732800000'
    )


def test_fingerprint_ignores_id():
    assert content_fingerprint(_record("a")) == content_fingerprint(_record("b"))


def test_payload_key_order_does_not_matter():
    first = _record(data={"screen": "chat", "chatId": "c1"})
    second = _record(data={"chatId": "c1", "screen": "chat"})

    assert content_fingerprint(first) == content_fingerprint(second)


def test_each_field_distinguishes():
    base = content_fingerprint(_record())

    assert content_fingerprint(_record(title="Other")) != base
    assert content_fingerprint(_record(body="Other")) != base
    assert content_fingerprint(_record(data={"screen": "chat"})) != base
    assert (
        content_fingerprint(_record(created_at=datetime(2025, 1, 1, 12, 0, 1, tzinfo=timezone.utc)))
        != base
    )


def test_millisecond_precision():
    first = _record(created_at=1735732800000)
    second = _record(created_at=1735732800001)

    assert content_fingerprint(first) != content_fingerprint(second)


def test_serialize_payload_stringifies_non_json_values():
    payload = {"when": CREATED, "nested": {"z": 1, "a": [1, 2]}}

    assert serialize_payload(payload) == (
        '{"nested":{"a":[1,2],"z":1},"when":"2025-01-01 12:00:00+00:00"}'
    )


def test_empty_payload():
    assert serialize_payload({}) == "{}"
