"""Ordered, bounded set of processed notification ids."""

from typing import Iterable, Iterator, List, Set

from notification_relay.models.notification import LEDGER_MAX_ENTRIES


class ProcessedIdLedger:
    """Insertion-ordered id set with FIFO eviction.

    Keeps an append-only list for ordering and a companion set for O(1)
    membership. Eviction order is part of the contract: the oldest
    inserted ids go first.
    """

    def __init__(self, ids: Iterable[str] = ()) -> None:
        self._order: List[str] = []
        self._members: Set[str] = set()
        self.extend(ids)

    def __contains__(self, notification_id: object) -> bool:
        return notification_id in self._members

    def __len__(self) -> int:
        return len(self._order)

    def __iter__(self) -> Iterator[str]:
        return iter(self._order)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ProcessedIdLedger):
            return NotImplemented
        return self._order == other._order

    def __repr__(self) -> str:
        return f"ProcessedIdLedger(size={len(self._order)})"

    def add(self, notification_id: str) -> bool:
        """Append an id. Returns False if it was already present."""
        if notification_id in self._members:
            return False
        self._order.append(notification_id)
        self._members.add(notification_id)
        return True

    def extend(self, ids: Iterable[str]) -> int:
        """Append ids in order, skipping ones already present."""
        added = 0
        for notification_id in ids:
            if self.add(notification_id):
                added += 1
        return added

    def evict(self, max_entries: int = LEDGER_MAX_ENTRIES) -> List[str]:
        """Drop the oldest ids until at most max_entries remain.

        Returns:
            The evicted ids, oldest first.
        """
        overflow = len(self._order) - max_entries
        if overflow <= 0:
            return []
        evicted = self._order[:overflow]
        self._order = self._order[overflow:]
        self._members.difference_update(evicted)
        return evicted

    def to_list(self) -> List[str]:
        """Ids oldest first."""
        return list(self._order)

    def copy(self) -> "ProcessedIdLedger":
        return ProcessedIdLedger(self._order)
