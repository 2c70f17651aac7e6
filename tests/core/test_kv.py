"""
Tests for dindex.core.kv.

Covers:
- InMemoryStore: get/set/delete, TTL expiry on a fake clock, INCR/EXPIRE/TTL
  semantics, sorted sets, prefix scan and delete
- RedisStore: command mapping onto a mocked redis client
- escape_glob and create_store
"""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from dindex.core.errors import ConfigError
from dindex.core.kv import (
    TTL_MISSING,
    TTL_NO_EXPIRY,
    InMemoryStore,
    RedisStore,
    create_store,
    escape_glob,
)
from dindex.core.settings import DIndexSettings


class TestInMemoryStore:
    def test_get_set_delete(self, store):
        assert store.get("a") is None
        store.set("a", "1")
        assert store.get("a") == "1"
        store.delete("a")
        assert store.get("a") is None

    def test_delete_missing_is_noop(self, store):
        store.delete("nope")

    def test_ttl_expiry(self, store, clock):
        store.set("k", "v", ttl_seconds=10)
        clock.advance(9)
        assert store.get("k") == "v"
        clock.advance(1)
        assert store.get("k") is None

    def test_ttl_reporting(self, store, clock):
        assert store.ttl("missing") == TTL_MISSING
        store.set("forever", "v")
        assert store.ttl("forever") == TTL_NO_EXPIRY
        store.set("short", "v", ttl_seconds=60)
        clock.advance(15)
        assert store.ttl("short") == 45

    def test_expire_existing_key(self, store, clock):
        store.set("k", "v")
        assert store.expire("k", 30) is True
        clock.advance(10)
        assert store.ttl("k") == 20

    def test_expire_after_expiry_is_missing(self, store, clock):
        store.set("k", "v", ttl_seconds=5)
        clock.advance(5)
        assert store.expire("k", 10) is False

    def test_expire_missing_key(self, store):
        assert store.expire("missing", 10) is False

    def test_scan_prefix_skips_expired(self, store, clock):
        store.set("cache:a", "1")
        store.set("cache:b", "2", ttl_seconds=1)
        store.set("other:c", "3")
        clock.advance(2)
        assert sorted(store.scan("cache:")) == ["cache:a"]

    def test_delete_prefix(self, store):
        for i in range(3):
            store.set(f"cache:{i}", "x")
        store.set("activity:x", "1")
        assert store.delete_prefix("cache:") == 3
        assert list(store.scan("cache:")) == []
        assert store.get("activity:x") == "1"

    def test_flush_and_ping(self, store):
        store.set("a", "1")
        store.flush()
        assert store.get("a") is None
        assert list(store.scan("")) == []
        assert store.ping() is True

    @pytest.mark.parametrize("ttl", [0, -5])
    def test_non_positive_ttl_rejected(self, store, ttl):
        with pytest.raises(ValueError, match="ttl_seconds must be positive"):
            store.set("k", "v", ttl_seconds=ttl)
        assert store.get("k") is None

    def test_sorted_set_ops(self, store):
        key = "ratelimit:resolve:url:1.2.3.4"
        assert store.zcard(key) == 0
        assert store.zmin_score(key) is None
        store.zadd(key, "a", 10.0)
        store.zadd(key, "b", 20.0)
        store.zadd(key, "c", 30.0)
        assert store.zcard(key) == 3
        assert store.zmin_score(key) == 10.0

        assert store.zremrangebyscore(key, float("-inf"), 20.0) == 2
        assert store.zmin_score(key) == 30.0
        store.zrem(key, "c")
        store.zrem(key, "missing")
        assert store.ttl(key) == TTL_MISSING

    def test_sorted_set_expires(self, store, clock):
        store.zadd("z", "a", 1.0)
        store.expire("z", 10)
        clock.advance(10)
        assert store.zcard("z") == 0

    def test_wrong_type(self, store):
        store.set("s", "1")
        store.zadd("z", "a", 1.0)
        with pytest.raises(TypeError):
            store.zadd("s", "a", 1.0)
        with pytest.raises(TypeError):
            store.get("z")
        with pytest.raises(TypeError):
            store.zcard("s")


class TestRedisStore:
    def _store(self):
        client = MagicMock()
        return RedisStore(client=client, scan_count=2), client

    def test_set_with_ttl_uses_setex(self):
        store, client = self._store()
        store.set("k", "v", ttl_seconds=30)
        client.setex.assert_called_once_with("k", 30, "v")

    def test_set_without_ttl(self):
        store, client = self._store()
        store.set("k", "v")
        client.set.assert_called_once_with("k", "v")

    def test_ttl_cast_to_int(self):
        store, client = self._store()
        client.ttl.return_value = 12
        assert store.ttl("k") == 12

    def test_scan_escapes_glob(self):
        store, client = self._store()
        client.scan_iter.return_value = iter(["activity:a*b:x"])
        assert list(store.scan("activity:a*b:")) == ["activity:a*b:x"]
        client.scan_iter.assert_called_once_with(match="activity:a\\*b:*", count=2)

    def test_delete_prefix_batches_unlink(self):
        store, client = self._store()
        client.scan_iter.return_value = iter(["cache:1", "cache:2", "cache:3"])
        client.unlink.side_effect = lambda *keys: len(keys)
        assert store.delete_prefix("cache:") == 3
        assert client.unlink.call_count == 2

    def test_ping(self):
        store, client = self._store()
        client.ping.return_value = True
        assert store.ping() is True

    def test_zero_ttl_rejected(self):
        store, client = self._store()
        with pytest.raises(ValueError):
            store.set("k", "v", ttl_seconds=0)
        client.set.assert_not_called()
        client.setex.assert_not_called()

    def test_sorted_set_commands(self):
        store, client = self._store()
        client.zremrangebyscore.return_value = 2
        client.zcard.return_value = 3
        client.zrange.return_value = [("a", 1700000000.5)]
        store.zadd("z", "a", 1700000000.5)
        client.zadd.assert_called_once_with("z", {"a": 1700000000.5})
        assert store.zremrangebyscore("z", float("-inf"), 10.0) == 2
        assert store.zcard("z") == 3
        assert store.zmin_score("z") == 1700000000.5
        client.zrange.assert_called_once_with("z", 0, 0, withscores=True)
        store.zrem("z", "a")
        client.zrem.assert_called_once_with("z", "a")

    def test_zmin_score_empty(self):
        store, client = self._store()
        client.zrange.return_value = []
        assert store.zmin_score("z") is None


class TestHelpers:
    def test_escape_glob(self):
        assert escape_glob("a*b?c[d]e\\") == "a\\*b\\?c\\[d\\]e\\\\"
        assert escape_glob("10.0.0.1") == "10.0.0.1"

    def test_create_store_in_memory_by_default(self):
        assert isinstance(create_store(DIndexSettings(_env_file=None, redis_url=None)), InMemoryStore)

    def test_create_store_redis(self):
        store = create_store(DIndexSettings(_env_file=None, redis_url="redis://localhost:6379/5"))
        assert isinstance(store, RedisStore)

    @pytest.mark.parametrize("url", ["http://cache:6379/0", "redis://cache:port/0"])
    def test_create_store_rejects_malformed_url(self, url):
        with pytest.raises(ConfigError, match="Invalid DINDEX_REDIS_URL"):
            create_store(DIndexSettings(_env_file=None, redis_url=url))
