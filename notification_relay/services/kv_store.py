"""
Durable key-value stores for the dedup ledger.

DiskCacheKeyValueStore persists to a diskcache directory so ledgers survive
process restarts. MemoryKeyValueStore keeps values in a dict for replays and
tests.
"""

from pathlib import Path
from typing import Dict, Optional

import diskcache
import structlog

from notification_relay.services.ports import KeyValueStore
from notification_relay.utils.exceptions import LedgerStoreError

logger = structlog.get_logger()


class DiskCacheKeyValueStore(KeyValueStore):
    """
    diskcache-backed durable store.

    Thread-safe and process-safe. Entries never expire; the ledger bounds
    its own size.
    """

    def __init__(self, store_dir: str):
        """
        Initialize the store.

        Args:
            store_dir: Directory holding the cache files
        """
        self.store_dir = Path(store_dir)
        self.store_dir.mkdir(parents=True, exist_ok=True)
        self._cache = diskcache.Cache(str(self.store_dir))

        logger.info("kv_store_initialized", store_dir=str(self.store_dir))

    def get(self, key: str) -> Optional[str]:
        try:
            value = self._cache.get(key)
        except Exception as e:
            raise LedgerStoreError(f"Failed to read {key}: {e}") from e
        if value is None:
            return None
        return str(value)

    def set(self, key: str, value: str) -> None:
        try:
            self._cache.set(key, value)
        except Exception as e:
            raise LedgerStoreError(f"Failed to write {key}: {e}") from e

    def remove(self, key: str) -> None:
        try:
            self._cache.delete(key)
        except Exception as e:
            raise LedgerStoreError(f"Failed to delete {key}: {e}") from e

    def keys(self) -> list[str]:
        """All stored keys (for inspection tooling)"""
        return [str(k) for k in self._cache.iterkeys()]

    def close(self) -> None:
        self._cache.close()


class MemoryKeyValueStore(KeyValueStore):
    """In-process store. Values vanish with the process."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._values: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._values.get(key)

    def set(self, key: str, value: str) -> None:
        self._values[key] = value

    def remove(self, key: str) -> None:
        self._values.pop(key, None)

    def keys(self) -> list[str]:
        return list(self._values)
