"""Notification models for the relay pipeline.

Provides Pydantic models for:
- NotificationRecord: an unread record observed on the live feed
- AppState: foreground/background state reported by the lifecycle oracle
- ProcessorState: named states of the processing state machine
- PassResult: outcome of one processing pass

Usage:
    from notification_relay.models.notification import NotificationRecord

    record = NotificationRecord(
        id="n-1",
        title="New Bid!",
        body="Someone bid on your listing",
        data={"screen": "listing_details", "listingId": "l-9"},
        created_at=1735689600000,
    )
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

# Quiet period for coalescing bursts of feed snapshots (seconds)
DEBOUNCE_QUIET_PERIOD_SECONDS = 0.5

# Maximum number of processed ids kept per user
LEDGER_MAX_ENTRIES = 200

# Routing target injected into local deliveries that carry none
DEFAULT_ROUTE_SCREEN = "marketplace"


def utc_now() -> datetime:
    """Current instant as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


class AppState(str, Enum):
    """Foreground/background state of the host application."""

    FOREGROUND = "foreground"
    BACKGROUND = "background"


class ProcessorState(str, Enum):
    """States of the NotificationProcessor state machine."""

    UNINITIALIZED = "uninitialized"
    INITIALIZING = "initializing"
    LISTENING = "listening"
    PROCESSING = "processing"
    TORN_DOWN = "torn_down"


class NotificationRecord(BaseModel):
    """An unread notification as delivered by the live feed.

    Attributes:
        id: Backend-assigned identifier, stable across re-delivery.
        title: Display title.
        body: Display body.
        data: Opaque routing/business payload.
        created_at: Creation instant (timezone-aware, UTC).
        read: Server-side read flag; the feed only yields unread records.
    """

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    id: str = Field(..., min_length=1)
    title: str = ""
    body: str = ""
    data: Dict[str, Any] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=utc_now, alias="createdAt")
    read: bool = False

    @field_validator("data", mode="before")
    @classmethod
    def default_data(cls, v: Any) -> Any:
        """Treat a missing payload as an empty mapping."""
        if v is None:
            return {}
        return v

    @field_validator("created_at", mode="before")
    @classmethod
    def resolve_created_at(cls, v: Any) -> Any:
        """Resolve backend timestamps into a concrete instant.

        Accepts datetimes, epoch milliseconds and ISO-8601 strings. A pending
        server timestamp (None) resolves to now.
        """
        if v is None:
            return utc_now()
        if isinstance(v, bool):
            raise ValueError("created_at cannot be a boolean")
        if isinstance(v, (int, float)):
            return datetime.fromtimestamp(v / 1000.0, tz=timezone.utc)
        return v

    @field_validator("created_at")
    @classmethod
    def ensure_utc(cls, v: datetime) -> datetime:
        """Naive datetimes are taken as UTC."""
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v.astimezone(timezone.utc)

    @property
    def created_at_millis(self) -> int:
        """Creation instant as epoch milliseconds."""
        return int(round(self.created_at.timestamp() * 1000))


class PassResult(BaseModel):
    """Outcome of one processing pass.

    Attributes:
        snapshot_size: Number of unread records in the processed snapshot.
        truly_new_ids: Ids that passed all three filters, in snapshot order.
        presented_ids: Ids handed to the local delivery sink.
        suppressed_ids: Truly-new ids not presented (app backgrounded).
        ledger_size: Ledger entries after eviction.
        ledger_persisted: Whether the ledger write succeeded (True when no
            write was needed).
    """

    snapshot_size: int = 0
    truly_new_ids: List[str] = Field(default_factory=list)
    presented_ids: List[str] = Field(default_factory=list)
    suppressed_ids: List[str] = Field(default_factory=list)
    ledger_size: int = 0
    ledger_persisted: bool = True
    completed_at: Optional[datetime] = None

    @property
    def truly_new_count(self) -> int:
        return len(self.truly_new_ids)
