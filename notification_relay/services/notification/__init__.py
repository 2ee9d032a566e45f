"""Real-time notification dedup and delivery pipeline.

Provides:
- NotificationRelay: per-session facade (sign in/out, read state, taps)
- NotificationProcessor: dedup state machine over live feed snapshots
- DedupLedger: bounded, durable per-user ledger of processed ids
- DebounceCoalescer: collapses snapshot bursts into one pass
- DeliveryGate: foreground-only local delivery
- ReadStateCoordinator: mark-as-read / clear-all actions

Usage:
    from notification_relay.services.notification import NotificationRelay

    relay = NotificationRelay.from_config(config, feed, sink, oracle, backend)
    await relay.sign_in(user_id)
"""

from notification_relay.services.notification.debounce import DebounceCoalescer
from notification_relay.services.notification.delivery_gate import DeliveryGate
from notification_relay.services.notification.fingerprint import content_fingerprint
from notification_relay.services.notification.ledger import DedupLedger
from notification_relay.services.notification.navigation import NotificationNavigator
from notification_relay.services.notification.processor import NotificationProcessor
from notification_relay.services.notification.read_state import ReadStateCoordinator
from notification_relay.services.notification.relay import NotificationRelay
from notification_relay.services.notification.working_set import UnreadWorkingSet

__all__ = [
    "DebounceCoalescer",
    "DeliveryGate",
    "DedupLedger",
    "NotificationNavigator",
    "NotificationProcessor",
    "NotificationRelay",
    "ReadStateCoordinator",
    "UnreadWorkingSet",
    "content_fingerprint",
]
