"""
Key-value store abstraction with in-memory and Redis implementations.

The cache-aside layer, the telemetry tracker and the rate limiter all sit
on the same small set of primitives: string values with a TTL, atomic
counters, sorted sets of timestamps and prefix scans.
``KeyValueStore`` captures that contract so each component is written
once and runs on either backend.

Manifesto:
    Ephemeral state (cache entries, telemetry counters, rate-limit
    windows) must never live in process memory of a horizontally scaled
    service. Redis is the production home; the in-memory store exists so
    development and tests need no server.

    - **Protocol-based:** KeyValueStore defines the contract
    - **Tier-aware:** InMemoryStore for dev/tests, RedisStore for production
    - **TTL everywhere:** every writer passes an expiry
    - **Lossy:** any key may vanish at any time

Architecture:
    ::

        KeyValueStore (Protocol)
        ├── InMemoryStore  — Tier 1 (single-process, lazy expiry)
        └── RedisStore     — Tier 2/3 (shared, server-side expiry)

        API: get(key) → str | None
             set(key, value, ttl_seconds=None)
             delete(key) / delete_prefix(prefix) → int
             expire(key, seconds) / ttl(key) → int
             zadd / zrem / zremrangebyscore / zcard / zmin_score
             scan(prefix) → iterator of keys
             flush() / ping()

Guardrails:
    ❌ DON'T: Use InMemoryStore behind multiple worker processes
    ✅ DO: Set ``DINDEX_REDIS_URL`` in every shared deployment

    ❌ DON'T: Call flush() to clear one namespace
    ✅ DO: Use delete_prefix("cache:")

Tags:
    key-value, redis, in-memory, ttl, dindex, protocol, tier-aware

Doc-Types:
    - API Reference
    - Infrastructure Guide
"""

from __future__ import annotations

import re
import threading
import time
from collections.abc import Callable, Iterator
from typing import TYPE_CHECKING, Protocol

import redis

from dindex.core.errors import ConfigError

if TYPE_CHECKING:
    from dindex.core.settings import DIndexSettings

# Redis ttl() sentinels
TTL_NO_EXPIRY = -1
TTL_MISSING = -2


class KeyValueStore(Protocol):
    """Protocol for key-value backends. Keys and values are strings."""

    def get(self, key: str) -> str | None:
        """Return the value, or ``None`` if missing or expired."""
        ...

    def set(self, key: str, value: str, *, ttl_seconds: int | None = None) -> None:
        """Store *value*; ``ttl_seconds=None`` means no expiry."""
        ...

    def delete(self, key: str) -> None:
        """Remove a key. No-op if missing."""
        ...

    def expire(self, key: str, seconds: int) -> bool:
        """Set a TTL on an existing key. Returns ``False`` if missing."""
        ...

    def ttl(self, key: str) -> int:
        """Remaining seconds, ``TTL_NO_EXPIRY`` or ``TTL_MISSING``."""
        ...

    def zadd(self, key: str, member: str, score: float) -> None:
        """Add *member* to the sorted set at *key* (created if missing)."""
        ...

    def zrem(self, key: str, member: str) -> None:
        """Remove *member* from the sorted set. No-op if missing."""
        ...

    def zremrangebyscore(self, key: str, min_score: float, max_score: float) -> int:
        """Drop members scored within ``[min_score, max_score]``; return the count."""
        ...

    def zcard(self, key: str) -> int:
        """Number of members in the sorted set (0 if missing)."""
        ...

    def zmin_score(self, key: str) -> float | None:
        """Lowest score in the sorted set, or ``None`` when empty."""
        ...

    def scan(self, prefix: str) -> Iterator[str]:
        """Iterate over live keys starting with *prefix*."""
        ...

    def delete_prefix(self, prefix: str) -> int:
        """Delete every key starting with *prefix*; return the count."""
        ...

    def flush(self) -> None:
        """Remove every key in the store."""
        ...

    def ping(self) -> bool:
        """Return ``True`` when the backend is reachable."""
        ...


# ------------------------------------------------------------------ #
# In-Memory Store (Tier 1)
# ------------------------------------------------------------------ #


def check_ttl(ttl_seconds: int | None) -> None:
    """Reject non-positive TTLs; ``None`` is the only way to say "forever"."""
    if ttl_seconds is not None and ttl_seconds <= 0:
        raise ValueError(f"ttl_seconds must be positive, got {ttl_seconds}")


class InMemoryStore:
    """Thread-safe in-process store with lazy TTL expiry.

    Values are strings or sorted sets (``member -> score``); using a key
    as the wrong type raises ``TypeError``, mirroring Redis ``WRONGTYPE``.
    ``clock`` is injectable so tests can move time forward without
    sleeping.

    Example:
        store = InMemoryStore()
        store.set("cache:metrics:global", "{}", ttl_seconds=60)
        store.zadd("ratelimit:resolve:url:10.0.0.1", "r1", 1700000000.0)
    """

    def __init__(self, *, clock: Callable[[], float] = time.time):
        self._data: dict[str, tuple[str | dict[str, float], float | None]] = {}
        self._lock = threading.Lock()
        self._clock = clock

    def _live(self, key: str) -> tuple[str | dict[str, float], float | None] | None:
        entry = self._data.get(key)
        if entry is None:
            return None
        _, expires_at = entry
        if expires_at is not None and self._clock() >= expires_at:
            del self._data[key]
            return None
        return entry

    def _string(self, key: str) -> tuple[str, float | None] | None:
        entry = self._live(key)
        if entry is not None and not isinstance(entry[0], str):
            raise TypeError(f"{key!r} holds a sorted set, not a string")
        return entry  # type: ignore[return-value]

    def _zset(self, key: str) -> dict[str, float] | None:
        entry = self._live(key)
        if entry is None:
            return None
        if not isinstance(entry[0], dict):
            raise TypeError(f"{key!r} holds a string, not a sorted set")
        return entry[0]

    def get(self, key: str) -> str | None:
        with self._lock:
            entry = self._string(key)
            return entry[0] if entry else None

    def set(self, key: str, value: str, *, ttl_seconds: int | None = None) -> None:
        check_ttl(ttl_seconds)
        with self._lock:
            expires_at = self._clock() + ttl_seconds if ttl_seconds is not None else None
            self._data[key] = (value, expires_at)

    def delete(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)

    def expire(self, key: str, seconds: int) -> bool:
        with self._lock:
            entry = self._live(key)
            if entry is None:
                return False
            self._data[key] = (entry[0], self._clock() + seconds)
            return True

    def ttl(self, key: str) -> int:
        with self._lock:
            entry = self._live(key)
            if entry is None:
                return TTL_MISSING
            expires_at = entry[1]
            if expires_at is None:
                return TTL_NO_EXPIRY
            return max(0, int(round(expires_at - self._clock())))

    def zadd(self, key: str, member: str, score: float) -> None:
        with self._lock:
            members = self._zset(key)
            if members is None:
                self._data[key] = ({member: score}, None)
            else:
                members[member] = score

    def zrem(self, key: str, member: str) -> None:
        with self._lock:
            members = self._zset(key)
            if members is not None:
                members.pop(member, None)
                if not members:
                    del self._data[key]

    def zremrangebyscore(self, key: str, min_score: float, max_score: float) -> int:
        with self._lock:
            members = self._zset(key)
            if members is None:
                return 0
            doomed = [m for m, s in members.items() if min_score <= s <= max_score]
            for member in doomed:
                del members[member]
            # Redis deletes a sorted set once its last member goes
            if not members:
                del self._data[key]
            return len(doomed)

    def zcard(self, key: str) -> int:
        with self._lock:
            members = self._zset(key)
            return len(members) if members else 0

    def zmin_score(self, key: str) -> float | None:
        with self._lock:
            members = self._zset(key)
            return min(members.values()) if members else None

    def scan(self, prefix: str) -> Iterator[str]:
        with self._lock:
            keys = [k for k in list(self._data) if k.startswith(prefix) and self._live(k)]
        return iter(keys)

    def delete_prefix(self, prefix: str) -> int:
        with self._lock:
            doomed = [k for k in list(self._data) if k.startswith(prefix) and self._live(k)]
            for key in doomed:
                del self._data[key]
            return len(doomed)

    def flush(self) -> None:
        with self._lock:
            self._data.clear()

    def ping(self) -> bool:
        return True


# ------------------------------------------------------------------ #
# Redis Store (Tier 2/3)
# ------------------------------------------------------------------ #

_GLOB_SPECIAL = re.compile(r"([*?\[\]\\])")


def escape_glob(text: str) -> str:
    """Escape Redis ``MATCH`` glob metacharacters in *text*."""
    return _GLOB_SPECIAL.sub(r"\\\1", text)


class RedisStore:
    """Redis-backed store shared by every API process and CLI run.

    Example:
        store = RedisStore("redis://localhost:6379/0")
        store.set("cache:ao:123", payload, ttl_seconds=604800)
    """

    def __init__(
        self,
        url: str = "redis://localhost:6379/0",
        *,
        client: redis.Redis | None = None,
        scan_count: int = 1000,
    ):
        self._client = client if client is not None else redis.from_url(url, decode_responses=True)
        self._scan_count = scan_count

    @property
    def client(self) -> redis.Redis:
        return self._client

    def get(self, key: str) -> str | None:
        return self._client.get(key)

    def set(self, key: str, value: str, *, ttl_seconds: int | None = None) -> None:
        check_ttl(ttl_seconds)
        if ttl_seconds is not None:
            self._client.setex(key, ttl_seconds, value)
        else:
            self._client.set(key, value)

    def delete(self, key: str) -> None:
        self._client.delete(key)

    def expire(self, key: str, seconds: int) -> bool:
        return bool(self._client.expire(key, seconds))

    def ttl(self, key: str) -> int:
        return int(self._client.ttl(key))

    def zadd(self, key: str, member: str, score: float) -> None:
        self._client.zadd(key, {member: score})

    def zrem(self, key: str, member: str) -> None:
        self._client.zrem(key, member)

    def zremrangebyscore(self, key: str, min_score: float, max_score: float) -> int:
        return int(self._client.zremrangebyscore(key, min_score, max_score))

    def zcard(self, key: str) -> int:
        return int(self._client.zcard(key))

    def zmin_score(self, key: str) -> float | None:
        oldest = self._client.zrange(key, 0, 0, withscores=True)
        return float(oldest[0][1]) if oldest else None

    def scan(self, prefix: str) -> Iterator[str]:
        return self._client.scan_iter(match=f"{escape_glob(prefix)}*", count=self._scan_count)

    def delete_prefix(self, prefix: str) -> int:
        deleted = 0
        batch: list[str] = []
        for key in self.scan(prefix):
            batch.append(key)
            if len(batch) >= self._scan_count:
                deleted += int(self._client.unlink(*batch))
                batch.clear()
        if batch:
            deleted += int(self._client.unlink(*batch))
        return deleted

    def flush(self) -> None:
        """Flush the whole Redis database — every namespace, not just cache."""
        self._client.flushdb()

    def ping(self) -> bool:
        return bool(self._client.ping())


def create_store(settings: DIndexSettings) -> KeyValueStore:
    """Pick the store tier from settings: Redis when configured, else in-memory.

    Raises:
        ConfigError: ``redis_url`` is not a ``redis://``, ``rediss://`` or
            ``unix://`` URL. No connection is attempted here.
    """
    if not settings.redis_url:
        return InMemoryStore()
    try:
        return RedisStore(settings.redis_url)
    except ValueError as exc:
        # keep the URL itself out of the message, it may carry a password
        raise ConfigError(f"Invalid DINDEX_REDIS_URL: {exc}", cause=exc) from exc


__all__ = [
    "KeyValueStore",
    "InMemoryStore",
    "RedisStore",
    "create_store",
    "check_ttl",
    "escape_glob",
    "TTL_NO_EXPIRY",
    "TTL_MISSING",
]
