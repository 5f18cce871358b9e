"""Tests for storage media.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from unittest.mock import MagicMock

import pytest
import redis

from bookcache_core.cache.cache import CacheConfig, CacheService
from bookcache_core.store.backend import QuotaExceededError, StorageError
from bookcache_core.store.file import FileStore
from bookcache_core.store.memory import MemoryStore
from bookcache_core.store.redis import RedisStore


class TestMemoryStore:
    """Tests for the in-memory medium."""

    def test_basic_operations(self):
        """Test get/set/remove."""
        store = MemoryStore()

        store.set_item("key", b"value")
        assert store.get_item("key") == b"value"
        assert "key" in store
        assert store.keys() == ["key"]

        assert store.remove_item("key")
        assert not store.remove_item("key")
        assert store.get_item("key") is None

    def test_quota(self):
        """Test writes past the quota raise QuotaExceededError."""
        store = MemoryStore(quota_bytes=10)

        store.set_item("k", b"123456789")
        with pytest.raises(QuotaExceededError):
            store.set_item("k2", b"1")
        assert store.get_stats().quota_rejections == 1

    def test_overwrite_counts_once(self):
        """Test replacing a value only counts the new size."""
        store = MemoryStore(quota_bytes=10)

        store.set_item("k", b"123456789")
        store.set_item("k", b"987654321")
        assert store.get_item("k") == b"987654321"
        assert store.usage() == 10

    def test_health_check(self):
        """Test health check round trip."""
        store = MemoryStore()
        assert store.health_check()
        assert store.keys() == []


class TestFileStore:
    """Tests for the file medium."""

    def test_basic_operations(self, tmp_path):
        """Test get/set/remove."""
        store = FileStore(str(tmp_path))

        store.set_item("funzone_cache_events", b"payload")
        assert store.get_item("funzone_cache_events") == b"payload"
        assert store.keys() == ["funzone_cache_events"]

        assert store.remove_item("funzone_cache_events")
        assert not store.remove_item("funzone_cache_events")
        assert store.get_item("funzone_cache_events") is None

    def test_persists_across_instances(self, tmp_path):
        """Test items survive a new store on the same directory."""
        FileStore(str(tmp_path)).set_item("key", b"durable")
        assert FileStore(str(tmp_path)).get_item("key") == b"durable"

    def test_quota(self, tmp_path):
        """Test writes past the disk quota raise QuotaExceededError."""
        store = FileStore(str(tmp_path))
        store.set_item("key", b"x" * 100)
        store.quota_bytes = store.usage()

        with pytest.raises(QuotaExceededError):
            store.set_item("other", b"y" * 100)
        store.set_item("key", b"z" * 100)
        assert store.get_item("key") == b"z" * 100

    def test_unreadable_file_skipped(self, tmp_path):
        """Test garbage files are ignored when listing keys."""
        store = FileStore(str(tmp_path))
        store.set_item("key", b"value")
        (tmp_path / "00").mkdir(exist_ok=True)
        (tmp_path / "00" / "garbage").write_bytes(b"\xc1\xc1\xc1")

        assert store.keys() == ["key"]

    def test_cache_on_file_store(self, tmp_path):
        """Test the cache runs on the file medium."""
        cache = CacheService(CacheConfig(), store=FileStore(str(tmp_path)))

        cache.set_with_tags("events_list", [1, 2], ["events"])
        assert cache.get("events_list") == [1, 2]
        assert cache.invalidate_tag("events") == 1
        assert cache.keys() == []


class TestRedisStore:
    """Tests for the Redis medium against a mocked client."""

    def test_basic_operations(self):
        """Test calls are passed to the client."""
        client = MagicMock()
        client.get.return_value = b"value"
        client.delete.return_value = 1
        client.scan_iter.return_value = iter([b"funzone_cache_a", "funzone_cache_b"])
        store = RedisStore(client=client)

        assert store.get_item("funzone_cache_a") == b"value"
        store.set_item("funzone_cache_a", b"value")
        client.set.assert_called_once_with("funzone_cache_a", b"value")
        assert store.remove_item("funzone_cache_a")
        assert store.keys() == ["funzone_cache_a", "funzone_cache_b"]

    def test_remove_missing(self):
        """Test removing an absent key returns False."""
        client = MagicMock()
        client.delete.return_value = 0
        assert not RedisStore(client=client).remove_item("missing")

    def test_binary_keys_skipped(self):
        """Test keys that are not UTF-8 are left out of the listing."""
        client = MagicMock()
        client.scan_iter.return_value = iter([b"\xff\xfebinary", b"funzone_cache_a"])

        assert RedisStore(client=client).keys() == ["funzone_cache_a"]

    def test_cache_ignores_binary_keys(self):
        """Test a foreign binary key does not break the cache."""
        client = MagicMock()
        client.scan_iter.side_effect = lambda count: iter([b"\xff\xfebinary", b"funzone_cache_a"])
        client.get.return_value = None
        cache = CacheService(CacheConfig(), store=RedisStore(client=client))

        assert cache.keys() == ["a"]
        assert cache.delete_pattern("binary") == 0

    def test_oom_is_quota_error(self):
        """Test a Redis OOM refusal maps to QuotaExceededError."""
        client = MagicMock()
        client.set.side_effect = redis.ResponseError(
            "OOM command not allowed when used memory > 'maxmemory'."
        )

        with pytest.raises(QuotaExceededError):
            RedisStore(client=client).set_item("key", b"value")

    def test_other_errors_are_storage_errors(self):
        """Test connection failures map to StorageError."""
        client = MagicMock()
        client.get.side_effect = redis.ConnectionError("down")
        client.set.side_effect = redis.ResponseError("WRONGTYPE")
        store = RedisStore(client=client)

        with pytest.raises(StorageError):
            store.get_item("key")
        with pytest.raises(StorageError) as excinfo:
            store.set_item("key", b"value")
        assert not isinstance(excinfo.value, QuotaExceededError)

    def test_cache_survives_redis_outage(self):
        """Test the cache degrades to misses when Redis is down."""
        client = MagicMock()
        client.scan_iter.side_effect = redis.ConnectionError("down")
        client.get.side_effect = redis.ConnectionError("down")
        client.set.side_effect = redis.ConnectionError("down")
        cache = CacheService(CacheConfig(), store=RedisStore(client=client))

        assert not cache.set("key", "value")
        assert cache.get("key", default="live") == "live"
        assert cache.keys() == []


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
