"""Unit tests for key-value stores"""

from unittest.mock import patch

import pytest

from notification_relay.services.kv_store import (
    DiskCacheKeyValueStore,
    MemoryKeyValueStore,
)
from notification_relay.utils.exceptions import LedgerStoreError, TransientIOError


@pytest.fixture
def disk_store(tmp_path):
    store = DiskCacheKeyValueStore(str(tmp_path / "store"))
    yield store
    store.close()


def test_disk_store_creates_directory(tmp_path):
    store_dir = tmp_path / "nested" / "store"
    store = DiskCacheKeyValueStore(str(store_dir))

    assert store_dir.exists()
    store.close()


def test_disk_store_set_get_remove(disk_store):
    assert disk_store.get("k") is None

    disk_store.set("k", '["a"]')
    assert disk_store.get("k") == '["a"]'
    assert disk_store.keys() == ["k"]

    disk_store.remove("k")
    assert disk_store.get("k") is None


def test_disk_store_remove_missing(disk_store):
    disk_store.remove("missing")


def test_disk_store_wraps_errors(disk_store):
    with patch.object(disk_store._cache, "set", side_effect=OSError("disk full")):
        with pytest.raises(LedgerStoreError) as exc_info:
            disk_store.set("k", "v")

    assert isinstance(exc_info.value, TransientIOError)
    assert "disk full" in str(exc_info.value)


def test_disk_store_read_error_wrapped(disk_store):
    with patch.object(disk_store._cache, "get", side_effect=OSError("corrupt")):
        with pytest.raises(LedgerStoreError):
            disk_store.get("k")


def test_memory_store():
    store = MemoryKeyValueStore({"a": "1"})

    assert store.get("a") == "1"
    store.set("b", "2")
    store.remove("a")
    store.remove("a")

    assert store.keys() == ["b"]
    assert store.get("a") is None
