"""Interfaces for the relay's external collaborators.

The pipeline only talks to these abstractions. Concrete adapters live in
notification_relay.services.kv_store (durable storage) and
notification_relay.services.notification.replay (scripted/in-memory
collaborators); production hosts supply their own feed, sink, oracle and
backend.
"""

from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, List, Optional

from notification_relay.models.notification import AppState, NotificationRecord

SnapshotCallback = Callable[[List[NotificationRecord]], None]
ErrorCallback = Callable[[BaseException], None]
Unsubscribe = Callable[[], None]


class LiveFeedSource(ABC):
    """Push-based subscription to a user's unread notifications.

    Implementations must deliver full current-state snapshots, not deltas.
    """

    @abstractmethod
    def subscribe(
        self,
        user_id: str,
        on_snapshot: SnapshotCallback,
        on_error: ErrorCallback,
    ) -> Unsubscribe:
        """Start delivering snapshots for user_id

        Args:
            user_id: User whose unread records are observed
            on_snapshot: Called with every full snapshot
            on_error: Called when the subscription fails

        Returns:
            Zero-argument callable that stops the subscription
        """
        pass


class KeyValueStore(ABC):
    """Durable string store that survives process restarts"""

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        """Return the stored value or None when absent"""
        pass

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        pass

    @abstractmethod
    def remove(self, key: str) -> None:
        """Delete key; a missing key is not an error"""
        pass

    def close(self) -> None:
        """Release handles held by the store"""
        return None


class DeliverySink(ABC):
    """Plays a local alert. Fire-and-forget."""

    @abstractmethod
    def present(self, title: str, body: str, data: Dict[str, Any]) -> None:
        """Show an alert with the given routing payload

        Raises:
            DeliveryError: If the platform refuses to present it
        """
        pass


class LifecycleOracle(ABC):
    """Reports whether the host app is foregrounded"""

    @abstractmethod
    def current_state(self) -> AppState:
        """Point-in-time, synchronous state query"""
        pass


class ReadStateBackend(ABC):
    """Marks records read upstream"""

    @abstractmethod
    async def mark_read(self, notification_id: str) -> None:
        """Mark one record read

        Raises:
            ReadStateError: If the backend rejects or fails the update
        """
        pass
