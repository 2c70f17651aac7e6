"""
Cache-aside wrapper for expensive aggregate reads.

Manifesto:
    Organisation dashboards, global metrics and resolver lookups are
    computed from millions of rows but change slowly. Serving them from a
    TTL cache collapses read load on the primary store. The cache is never
    a source of truth: any entry may vanish and is recomputed on the next
    request.

    - **Lossy:** store failures degrade to computing, never to errors
    - **Observable:** every lookup reports whether it was a hit
    - **Namespaced:** all keys live under ``cache:`` so flushing is scoped

Architecture:
    ::

        get_or_compute(key, ttl, fn)
            │
            ├── store.get("cache:" + key) ──hit──► CacheResult(value, hit=True)
            │
            └── miss ─► fn() ─► store.set(..., ttl) ─► CacheResult(value, hit=False)

Examples:
    >>> from dindex.core.kv import InMemoryStore
    >>> cache = CacheAside(InMemoryStore())
    >>> cache.get_or_compute("metrics:global", 60, lambda: {"total": 3}).hit
    False
    >>> cache.get_or_compute("metrics:global", 60, lambda: {"total": 3}).hit
    True

Tags:
    cache, cache-aside, ttl, json, dindex

Doc-Types:
    - API Reference
"""

from __future__ import annotations

import json
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from dindex.core.kv import KeyValueStore
from dindex.core.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

CACHE_NAMESPACE = "cache"

_MISSING = object()


def _encode(value: Any) -> str:
    return json.dumps(value, default=str)


def cache_key(domain: str, *parts: Any) -> str:
    """Build a deterministic cache key ``<domain>:<part>:<part>``.

    ``None`` parts become empty segments and strings are stripped, so
    ``cache_key("ao", " x1 ")`` and ``cache_key("ao", "x1")`` share an
    entry. Case is preserved; normalise ids such as DOIs before calling.
    """
    segments = [domain]
    for part in parts:
        if part is None:
            segments.append("")
        elif isinstance(part, str):
            segments.append(part.strip())
        else:
            segments.append(str(part))
    return ":".join(segments)


@dataclass(frozen=True)
class CacheResult(Generic[T]):
    """Value plus whether it was served from the cache."""

    value: T
    hit: bool

    @property
    def header(self) -> str:
        """Value for the ``X-Cache`` response header."""
        return "HIT" if self.hit else "MISS"


class CacheAside:
    """TTL cache in front of a compute function.

    Values must be JSON-serialisable. Callers always get the JSON form:
    on a miss the computed value is round-tripped through the encoder, so
    a datetime comes back as the same string whether it was a hit or not.
    ``None`` is cached like any other value.

    A failed read is treated as a miss and a failed write is logged and
    ignored, so an unreachable store only costs latency.
    """

    def __init__(self, store: KeyValueStore, namespace: str = CACHE_NAMESPACE):
        self._store = store
        self._namespace = namespace

    @property
    def namespace(self) -> str:
        return self._namespace

    def _full_key(self, key: str) -> str:
        return f"{self._namespace}:{key}"

    def _read(self, key: str) -> Any:
        """Cached value, or ``_MISSING`` on miss, corrupt entry or store failure."""
        try:
            raw = self._store.get(self._full_key(key))
        except Exception as e:
            logger.warning("cache_read_failed", key=key, error=str(e))
            return _MISSING
        if raw is None:
            return _MISSING
        try:
            return json.loads(raw)
        except ValueError:
            logger.warning("cache_entry_corrupt", key=key)
            return _MISSING

    def _write(self, key: str, payload: str, ttl_seconds: int) -> None:
        try:
            self._store.set(self._full_key(key), payload, ttl_seconds=ttl_seconds)
        except Exception as e:
            logger.warning("cache_write_failed", key=key, error=str(e))

    def get(self, key: str) -> Any | None:
        """Return the cached value, or ``None`` on miss or store failure."""
        value = self._read(key)
        return None if value is _MISSING else value

    def set(self, key: str, value: Any, ttl_seconds: int) -> None:
        """Store *value*; store failures are logged and swallowed."""
        self._write(key, _encode(value), ttl_seconds)

    def get_or_compute(
        self,
        key: str,
        ttl_seconds: int,
        compute: Callable[[], T],
    ) -> CacheResult[T]:
        """Return the cached value or compute, store and return it.

        Exceptions raised by *compute* propagate and nothing is cached.
        """
        cached = self._read(key)
        if cached is not _MISSING:
            logger.debug("cache_hit", key=key)
            return CacheResult(value=cached, hit=True)

        payload = _encode(compute())
        self._write(key, payload, ttl_seconds)
        logger.debug("cache_miss", key=key, ttl=ttl_seconds)
        return CacheResult(value=json.loads(payload), hit=False)

    def flush(self) -> int:
        """Delete every entry in the namespace and return how many were removed.

        Unlike the other methods this propagates store errors: an operator
        asking for a flush needs to know it did not happen.
        """
        deleted = self._store.delete_prefix(f"{self._namespace}:")
        logger.info("cache_flushed", namespace=self._namespace, deleted=deleted)
        return deleted


__all__ = ["CacheAside", "CacheResult", "cache_key", "CACHE_NAMESPACE"]
