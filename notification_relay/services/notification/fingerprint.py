"""Content fingerprints for within-pass duplicate detection.

A backend may re-index the same logical event under a new id. Two records
with identical title, body, payload and creation instant share a
fingerprint and are treated as one event.
"""

import json
from typing import Any, Mapping

from notification_relay.models.notification import NotificationRecord

FINGERPRINT_SEPARATOR = "|"


def serialize_payload(data: Mapping[str, Any]) -> str:
    """Canonical JSON for a payload: sorted keys, compact, non-JSON stringified."""
    return json.dumps(
        data, sort_keys=True, separators=(",", ":"), default=str, ensure_ascii=False
    )


def content_fingerprint(record: NotificationRecord) -> str:
    """Stable identity of a record's semantic content.

    Args:
        record: Notification record.

    Returns:
        "title|body|payload-json|epoch-millis"
    """
    return FINGERPRINT_SEPARATOR.join(
        (
            record.title,
            record.body,
            serialize_payload(record.data),
            str(record.created_at_millis),
        )
    )
