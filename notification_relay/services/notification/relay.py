"""Notification relay: one object per signed-in user session.

Wires the pipeline together and ties its lifecycle to sign-in/sign-out.
Each sign-in builds a fresh NotificationSession and NotificationProcessor;
sign-out tears them down synchronously. The durable ledger outlives
sessions.

Usage:
    relay = NotificationRelay.from_config(config, feed, sink, oracle, backend)
    await relay.sign_in("user-42")
    ...
    await relay.mark_read("n-1")
    relay.sign_out()
"""

from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

import structlog

from notification_relay.models.config import RelayConfig
from notification_relay.models.notification import NotificationRecord, ProcessorState
from notification_relay.models.session import NotificationSession
from notification_relay.observability.logging import bind_context, clear_context
from notification_relay.services.kv_store import DiskCacheKeyValueStore
from notification_relay.services.notification.debounce import DebounceCoalescer
from notification_relay.services.notification.delivery_gate import DeliveryGate
from notification_relay.services.notification.ledger import DedupLedger
from notification_relay.services.notification.navigation import (
    NavigationHandler,
    NotificationNavigator,
)
from notification_relay.services.notification.processor import NotificationProcessor
from notification_relay.services.notification.read_state import ReadStateCoordinator
from notification_relay.services.ports import (
    DeliverySink,
    LifecycleOracle,
    LiveFeedSource,
    ReadStateBackend,
)

logger = structlog.get_logger()

CoalescerFactory = Callable[[], DebounceCoalescer]


class NotificationRelay:
    """Session-scoped facade over the dedup and delivery pipeline.

    Attributes:
        navigator: Routes notification taps to the host's navigation.
    """

    def __init__(
        self,
        feed: LiveFeedSource,
        ledger: DedupLedger,
        gate: DeliveryGate,
        backend: ReadStateBackend,
        coalescer_factory: Optional[CoalescerFactory] = None,
        navigator: Optional[NotificationNavigator] = None,
    ) -> None:
        self._feed = feed
        self._ledger = ledger
        self._gate = gate
        self._backend = backend
        self._coalescer_factory = coalescer_factory or DebounceCoalescer
        self.navigator = navigator or NotificationNavigator()

        self._processor: Optional[NotificationProcessor] = None
        self._read_state: Optional[ReadStateCoordinator] = None

    @classmethod
    def from_config(
        cls,
        config: RelayConfig,
        feed: LiveFeedSource,
        sink: DeliverySink,
        oracle: LifecycleOracle,
        backend: ReadStateBackend,
    ) -> "NotificationRelay":
        """Build a relay backed by the diskcache ledger store."""
        store = DiskCacheKeyValueStore(config.ledger.store_dir)
        ledger = DedupLedger(store, key_prefix=config.ledger.key_prefix)
        gate = DeliveryGate(oracle, sink, default_screen=config.delivery.default_screen)
        return cls(feed, ledger, gate, backend)

    # ==================== Session lifecycle ====================

    @property
    def processor(self) -> Optional[NotificationProcessor]:
        return self._processor

    @property
    def session(self) -> Optional[NotificationSession]:
        return self._processor.session if self._processor else None

    @property
    def is_active(self) -> bool:
        return self._processor is not None and self._processor.state in (
            ProcessorState.LISTENING,
            ProcessorState.PROCESSING,
        )

    async def sign_in(
        self,
        user_id: str,
        started_at: Optional[datetime] = None,
    ) -> NotificationSession:
        """Start observing user_id's feed.

        Args:
            user_id: User signing in.
            started_at: SessionStart override (defaults to now).

        Returns:
            The new session.
        """
        if self._processor is not None:
            self.sign_out()

        session = (
            NotificationSession(user_id=user_id, started_at=started_at)
            if started_at is not None
            else NotificationSession(user_id=user_id)
        )
        processor = NotificationProcessor(
            self._feed,
            self._ledger,
            self._gate,
            coalescer=self._coalescer_factory(),
        )
        self._processor = processor
        self._read_state = ReadStateCoordinator(self._backend, processor)

        bind_context(user_id=user_id)
        await processor.start(session)
        logger.info("relay_signed_in", user_id=user_id)
        return session

    def sign_out(self) -> None:
        """Tear down the session before returning. The ledger is kept."""
        if self._processor is None:
            return

        user_id = self._processor.session.user_id if self._processor.session else None
        self._processor.teardown()
        self._processor = None
        self._read_state = None
        self.navigator.clear()
        clear_context()
        logger.info("relay_signed_out", user_id=user_id)

    # ==================== Unread list ====================

    @property
    def notifications(self) -> List[NotificationRecord]:
        """Unread records, newest first."""
        if self._processor is None:
            return []
        return self._processor.working_set.newest_first()

    @property
    def unread_count(self) -> int:
        if self._processor is None:
            return 0
        return self._processor.working_set.count

    # ==================== Read state ====================

    async def mark_read(self, notification_id: str) -> bool:
        if self._read_state is None:
            logger.warning("mark_read_without_session", notification_id=notification_id)
            return False
        return await self._read_state.mark_read(notification_id)

    async def mark_all_read(self) -> int:
        if self._read_state is None:
            logger.warning("mark_all_read_without_session")
            return 0
        return await self._read_state.mark_all_read()

    async def clear_all(self) -> bool:
        if self._read_state is None:
            logger.warning("clear_all_without_session")
            return False
        cleared = await self._read_state.clear_all()
        self.navigator.clear()
        return cleared

    # ==================== Navigation ====================

    def set_navigation_handler(self, handler: Optional[NavigationHandler]) -> None:
        self.navigator.set_handler(handler)

    def handle_notification_tap(self, data: Optional[Dict[str, Any]]) -> bool:
        return self.navigator.handle_tap(data)
