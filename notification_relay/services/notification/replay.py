"""Scripted and in-memory collaborators.

Used by the replay CLI command to run the real pipeline over recorded
snapshots, and by hosts that want a dry run without a live backend.

Snapshot files are JSON: a list of snapshots, each a list of records.

    [
      [{"id": "a", "title": "Hi", "body": "...", "createdAt": 1735689600000}],
      [{"id": "a", ...}, {"id": "b", ...}]
    ]
"""

import asyncio
import json
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Set, Tuple

import structlog
from pydantic import TypeAdapter

from notification_relay.models.notification import (
    AppState,
    NotificationRecord,
    PassResult,
)
from notification_relay.services.ports import (
    DeliverySink,
    ErrorCallback,
    LifecycleOracle,
    LiveFeedSource,
    ReadStateBackend,
    SnapshotCallback,
    Unsubscribe,
)
from notification_relay.utils.exceptions import ReadStateError

if TYPE_CHECKING:
    from notification_relay.services.notification.relay import NotificationRelay

logger = structlog.get_logger()

_SNAPSHOTS = TypeAdapter(List[List[NotificationRecord]])


def load_snapshots(path: Path) -> List[List[NotificationRecord]]:
    """Read and validate a snapshot file.

    Raises:
        FileNotFoundError: If the file does not exist
        pydantic.ValidationError: If a record is malformed
    """
    with open(path) as f:
        raw = json.load(f)
    return _SNAPSHOTS.validate_python(raw)


class ScriptedFeedSource(LiveFeedSource):
    """Feed whose snapshots are pushed by the caller via emit()."""

    def __init__(self) -> None:
        self._subscribers: Dict[str, Tuple[SnapshotCallback, ErrorCallback]] = {}
        self.subscribe_calls = 0

    @property
    def subscribed_users(self) -> List[str]:
        return list(self._subscribers)

    def is_subscribed(self, user_id: str) -> bool:
        return user_id in self._subscribers

    def subscribe(
        self,
        user_id: str,
        on_snapshot: SnapshotCallback,
        on_error: ErrorCallback,
    ) -> Unsubscribe:
        self.subscribe_calls += 1
        self._subscribers[user_id] = (on_snapshot, on_error)

        def unsubscribe() -> None:
            self._subscribers.pop(user_id, None)

        return unsubscribe

    def emit(self, user_id: str, records: List[NotificationRecord]) -> bool:
        """Push a full snapshot. Returns False if nobody is subscribed."""
        callbacks = self._subscribers.get(user_id)
        if callbacks is None:
            return False
        callbacks[0](list(records))
        return True

    def fail(self, user_id: str, error: BaseException) -> bool:
        callbacks = self._subscribers.get(user_id)
        if callbacks is None:
            return False
        callbacks[1](error)
        return True


class RecordingDeliverySink(DeliverySink):
    """Keeps every presented alert in order."""

    def __init__(self) -> None:
        self.presented: List[Tuple[str, str, Dict[str, Any]]] = []

    def present(self, title: str, body: str, data: Dict[str, Any]) -> None:
        self.presented.append((title, body, dict(data)))


class StaticLifecycleOracle(LifecycleOracle):
    """Reports whatever state was last set."""

    def __init__(self, state: AppState = AppState.FOREGROUND) -> None:
        self.state = state

    def current_state(self) -> AppState:
        return self.state


class MemoryReadStateBackend(ReadStateBackend):
    """Records mark-read calls; ids in failing_ids raise ReadStateError."""

    def __init__(self, failing_ids: Optional[Set[str]] = None) -> None:
        self.read_ids: List[str] = []
        self.failing_ids: Set[str] = set(failing_ids or ())

    async def mark_read(self, notification_id: str) -> None:
        if notification_id in self.failing_ids:
            raise ReadStateError(
                f"Backend rejected mark-read for {notification_id}",
                notification_id=notification_id,
            )
        self.read_ids.append(notification_id)


async def run_replay(
    relay: "NotificationRelay",
    feed: ScriptedFeedSource,
    user_id: str,
    snapshots: List[List[NotificationRecord]],
    started_at: Optional[datetime] = None,
) -> List[Optional[PassResult]]:
    """Sign in, push each snapshot through the feed, sign out.

    Each snapshot is given its own quiet period so it gets its own pass.

    Returns:
        One PassResult per snapshot (None where the pass was dropped).
    """
    await relay.sign_in(user_id, started_at=started_at)
    processor = relay.processor
    if processor is None:
        raise RuntimeError(f"Relay has no active session for '{user_id}'")

    results: List[Optional[PassResult]] = []
    try:
        for snapshot in snapshots:
            passes_before = processor.passes_started
            feed.emit(user_id, snapshot)
            while processor.coalescer.pending:
                await asyncio.sleep(processor.coalescer.quiet_period)
            if processor.passes_started == passes_before:
                # Ignored or dropped: no pass of its own
                results.append(None)
                continue
            results.append(await processor.drain())
    finally:
        relay.sign_out()

    logger.info(
        "replay_completed",
        user_id=user_id,
        snapshots=len(snapshots),
        truly_new=sum(r.truly_new_count for r in results if r is not None),
    )
    return results
