"""Shared fixtures for notification relay tests."""

import threading
from datetime import datetime, timedelta, timezone
from typing import Callable, List, Optional

import pytest
import structlog

from notification_relay.models.notification import NotificationRecord
from notification_relay.models.session import NotificationSession
from notification_relay.services.kv_store import MemoryKeyValueStore
from notification_relay.services.notification.debounce import DebounceCoalescer
from notification_relay.services.notification.delivery_gate import DeliveryGate
from notification_relay.services.notification.ledger import DedupLedger
from notification_relay.services.notification.replay import (
    MemoryReadStateBackend,
    RecordingDeliverySink,
    ScriptedFeedSource,
    StaticLifecycleOracle,
)

SESSION_START = datetime(2025, 1, 1, 12, 0, 0, tzinfo=timezone.utc)
USER_ID = "user-1"


class FakeTimer:
    def __init__(self, due: float, callback: Callable[[], None]) -> None:
        self.due = due
        self.callback = callback
        self.cancelled = False
        self.fired = False

    def cancel(self) -> None:
        self.cancelled = True


class FakeClock:
    """Manually advanced timer source for DebounceCoalescer."""

    def __init__(self) -> None:
        self.now = 0.0
        self.timers: List[FakeTimer] = []

    def call_later(self, delay: float, callback: Callable[[], None]) -> FakeTimer:
        timer = FakeTimer(self.now + delay, callback)
        self.timers.append(timer)
        return timer

    def advance(self, seconds: float) -> None:
        self.now += seconds
        for timer in sorted(self.timers, key=lambda t: t.due):
            if timer.due <= self.now and not timer.cancelled and not timer.fired:
                timer.fired = True
                timer.callback()

    @property
    def armed(self) -> List[FakeTimer]:
        return [t for t in self.timers if not t.cancelled and not t.fired]


class GatedStore(MemoryKeyValueStore):
    """MemoryKeyValueStore whose reads or writes can be held in their worker thread.

    Clear `reads` or `writes` to hold calls; `read_waiting` and
    `write_waiting` are set once a call reaches the gate.
    """

    def __init__(self) -> None:
        super().__init__()
        self.reads = threading.Event()
        self.writes = threading.Event()
        self.reads.set()
        self.writes.set()
        self.read_waiting = threading.Event()
        self.write_waiting = threading.Event()

    def get(self, key: str) -> Optional[str]:
        self.read_waiting.set()
        self.reads.wait(timeout=5)
        return super().get(key)

    def set(self, key: str, value: str) -> None:
        self.write_waiting.set()
        self.writes.wait(timeout=5)
        super().set(key, value)


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def coalescer(fake_clock: FakeClock) -> DebounceCoalescer:
    return DebounceCoalescer(timer_factory=fake_clock.call_later)


@pytest.fixture
def store() -> MemoryKeyValueStore:
    return MemoryKeyValueStore()


@pytest.fixture
def dedup_ledger(store: MemoryKeyValueStore) -> DedupLedger:
    return DedupLedger(store)


@pytest.fixture
def feed() -> ScriptedFeedSource:
    return ScriptedFeedSource()


@pytest.fixture
def sink() -> RecordingDeliverySink:
    return RecordingDeliverySink()


@pytest.fixture
def oracle() -> StaticLifecycleOracle:
    return StaticLifecycleOracle()


@pytest.fixture
def backend() -> MemoryReadStateBackend:
    return MemoryReadStateBackend()


@pytest.fixture
def gate(oracle: StaticLifecycleOracle, sink: RecordingDeliverySink) -> DeliveryGate:
    return DeliveryGate(oracle, sink)


@pytest.fixture
def session() -> NotificationSession:
    return NotificationSession(user_id=USER_ID, started_at=SESSION_START)


@pytest.fixture
def make_record() -> Callable[..., NotificationRecord]:
    """Factory for records created `offset` seconds after SESSION_START."""

    def _make(
        notification_id: str,
        offset: float = 1,
        title: str | None = None,
        body: str = "body",
        data: dict | None = None,
    ) -> NotificationRecord:
        return NotificationRecord(
            id=notification_id,
            title=title if title is not None else f"title {notification_id}",
            body=body,
            data=data if data is not None else {"type": "general"},
            created_at=SESSION_START + timedelta(seconds=offset),
        )

    return _make


@pytest.fixture(autouse=True)
def reset_logging():
    """Undo configure_logging so later tests never write to a closed capture."""
    yield
    structlog.reset_defaults()
    structlog.contextvars.clear_contextvars()
