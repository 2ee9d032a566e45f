"""In-memory list of currently unread records plus the displayed count."""

from typing import Iterable, List

from notification_relay.models.notification import NotificationRecord
from notification_relay.observability.metrics import UNREAD_COUNT


class UnreadWorkingSet:
    """Unread records as last observed on the feed.

    Replaced wholesale by each processing pass; ReadStateCoordinator removes
    entries as they are marked read. The displayed count is tracked
    separately because a mark-read decrements it even when the record has
    already left the list.
    """

    def __init__(self) -> None:
        self._records: List[NotificationRecord] = []
        self._count = 0

    @property
    def records(self) -> List[NotificationRecord]:
        """Records in snapshot order."""
        return list(self._records)

    @property
    def count(self) -> int:
        return self._count

    def newest_first(self) -> List[NotificationRecord]:
        """Display order: most recent first."""
        return sorted(self._records, key=lambda r: r.created_at, reverse=True)

    def ids(self) -> List[str]:
        return [r.id for r in self._records]

    def replace(self, records: Iterable[NotificationRecord]) -> None:
        self._records = list(records)
        self._set_count(len(self._records))

    def remove(self, notification_id: str) -> bool:
        """Drop a record and decrement the count (floored at zero).

        Returns:
            True if a record with that id was present.
        """
        before = len(self._records)
        self._records = [r for r in self._records if r.id != notification_id]
        self._set_count(max(0, self._count - 1))
        return len(self._records) < before

    def clear(self) -> None:
        self._records = []
        self._set_count(0)

    def _set_count(self, value: int) -> None:
        self._count = value
        UNREAD_COUNT.set(value)
