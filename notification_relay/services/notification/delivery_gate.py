"""Foreground/background delivery gate.

When the app is backgrounded the OS presents the system push for the same
event, so a local alert would duplicate it. Local delivery only happens in
the foreground.
"""

from typing import Any, Dict

import structlog

from notification_relay.models.notification import (
    DEFAULT_ROUTE_SCREEN,
    AppState,
    NotificationRecord,
)
from notification_relay.observability.metrics import LOCAL_DELIVERIES
from notification_relay.services.ports import DeliverySink, LifecycleOracle

logger = structlog.get_logger()


class DeliveryGate:
    """Decides per truly-new record whether to present a local alert.

    Attributes:
        default_screen: Route injected into payloads that carry none.
    """

    def __init__(
        self,
        oracle: LifecycleOracle,
        sink: DeliverySink,
        default_screen: str = DEFAULT_ROUTE_SCREEN,
    ) -> None:
        self._oracle = oracle
        self._sink = sink
        self.default_screen = default_screen

    def deliver(self, record: NotificationRecord) -> bool:
        """Present a record locally if the app is foregrounded.

        Args:
            record: Truly-new record.

        Returns:
            True if the sink was invoked successfully.
        """
        state = self._oracle.current_state()

        if state != AppState.FOREGROUND:
            LOCAL_DELIVERIES.labels(outcome="suppressed_background").inc()
            logger.info(
                "local_delivery_suppressed",
                notification_id=record.id,
                app_state=state.value,
                reason="system_push_expected",
            )
            return False

        payload = self.routed_payload(record)

        try:
            self._sink.present(record.title, record.body, payload)
        except Exception as e:
            LOCAL_DELIVERIES.labels(outcome="failed").inc()
            logger.error(
                "local_delivery_error",
                notification_id=record.id,
                error=str(e),
                error_type=type(e).__name__,
            )
            return False

        LOCAL_DELIVERIES.labels(outcome="presented").inc()
        logger.info(
            "local_delivery_presented",
            notification_id=record.id,
            screen=payload["screen"],
        )
        return True

    def routed_payload(self, record: NotificationRecord) -> Dict[str, Any]:
        """Copy of the record payload with a routing target guaranteed."""
        payload = dict(record.data)
        if not payload.get("screen"):
            payload["screen"] = self.default_screen
        return payload
