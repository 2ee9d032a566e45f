"""
Durable dedup ledger.

Persists each user's processed notification ids in the durable key-value
store as a JSON array, oldest first. Read failures degrade to an empty
ledger: the worst case is one re-delivery of an already seen notification.
"""

import json

import structlog

from notification_relay.models.ledger import ProcessedIdLedger
from notification_relay.models.notification import LEDGER_MAX_ENTRIES
from notification_relay.observability.metrics import (
    LEDGER_EVICTIONS,
    LEDGER_OPERATIONS,
)
from notification_relay.services.ports import KeyValueStore
from notification_relay.utils.exceptions import LedgerStoreError

logger = structlog.get_logger()

DEFAULT_KEY_PREFIX = "processed_notifications_"


class DedupLedger:
    """
    Load, save and clear per-user processed-id ledgers.

    The only component that writes ledgers to the store.
    """

    def __init__(
        self,
        store: KeyValueStore,
        key_prefix: str = DEFAULT_KEY_PREFIX,
        max_entries: int = LEDGER_MAX_ENTRIES,
    ):
        """
        Initialize the ledger.

        Args:
            store: Durable key-value store
            key_prefix: Prefix namespacing each user's key
            max_entries: FIFO bound applied on every save
        """
        self.store = store
        self.key_prefix = key_prefix
        self.max_entries = max_entries

    def load(self, user_id: str) -> ProcessedIdLedger:
        """
        Load the ledger for a user.

        Args:
            user_id: User identifier

        Returns:
            Persisted ledger, or an empty one if absent or unreadable
        """
        key = self.key_for(user_id)

        try:
            raw = self.store.get(key)
            if raw is None:
                logger.debug("ledger_not_found", user_id=user_id)
                LEDGER_OPERATIONS.labels(operation="load", status="success").inc()
                return ProcessedIdLedger()

            ids = json.loads(raw)
            if not isinstance(ids, list):
                raise LedgerStoreError(
                    f"Ledger payload for {user_id} is {type(ids).__name__}, not a list"
                )

            ledger = ProcessedIdLedger(str(i) for i in ids)
            LEDGER_OPERATIONS.labels(operation="load", status="success").inc()
            logger.debug("ledger_loaded", user_id=user_id, size=len(ledger))
            return ledger

        except Exception as e:
            LEDGER_OPERATIONS.labels(operation="load", status="failed").inc()
            logger.error("ledger_load_error", user_id=user_id, error=str(e))
            return ProcessedIdLedger()

    def save(self, user_id: str, ledger: ProcessedIdLedger) -> bool:
        """
        Evict to the bound and persist.

        The passed ledger is trimmed in place so the caller's mirror matches
        what was written.

        Args:
            user_id: User identifier
            ledger: Ledger to persist

        Returns:
            True if saved successfully
        """
        evicted = ledger.evict(self.max_entries)
        if evicted:
            LEDGER_EVICTIONS.inc(len(evicted))
            logger.debug(
                "ledger_evicted",
                user_id=user_id,
                evicted=len(evicted),
                oldest_evicted=evicted[0],
            )

        try:
            payload = json.dumps(ledger.to_list())
            self.store.set(self.key_for(user_id), payload)

            LEDGER_OPERATIONS.labels(operation="save", status="success").inc()
            logger.debug("ledger_saved", user_id=user_id, size=len(ledger))
            return True

        except Exception as e:
            LEDGER_OPERATIONS.labels(operation="save", status="failed").inc()
            logger.error("ledger_save_error", user_id=user_id, error=str(e))
            return False

    def clear(self, user_id: str) -> bool:
        """
        Delete a user's ledger.

        Args:
            user_id: User identifier

        Returns:
            True if cleared successfully
        """
        try:
            self.store.remove(self.key_for(user_id))
            LEDGER_OPERATIONS.labels(operation="clear", status="success").inc()
            logger.info("ledger_cleared", user_id=user_id)
            return True

        except Exception as e:
            LEDGER_OPERATIONS.labels(operation="clear", status="failed").inc()
            logger.error("ledger_clear_error", user_id=user_id, error=str(e))
            return False

    def key_for(self, user_id: str) -> str:
        """Store key for a user's ledger"""
        return f"{self.key_prefix}{user_id}"
