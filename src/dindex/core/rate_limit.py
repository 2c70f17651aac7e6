"""
Per-identity sliding-window rate limiting on the shared key-value store.

Each identity owns a sorted set ``ratelimit:<prefix>:<identity>`` holding
one member per admitted request, scored by its unix time. A check drops
members older than ``window_seconds``, adds the new request and counts.
Over the quota, the new member is removed again, so refused requests do
not extend the caller's penalty. The key expires one window after the
last admitted request.

Because the window slides, a caller cannot double its quota by bursting
on both sides of a minute boundary: at any instant at most
``max_requests`` requests from the last ``window_seconds`` are admitted.

Counting in the shared store (rather than in a per-process dict) keeps
limits correct when the API runs behind several workers.

Tags:
    rate-limiting, sliding-window, redis, 429, dindex

Doc-Types:
    api-reference
"""

from __future__ import annotations

import math
import time
import uuid
from collections.abc import Callable, Mapping
from dataclasses import dataclass

from dindex.core.errors import RateLimitExceeded
from dindex.core.kv import KeyValueStore
from dindex.core.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class RateLimitResult:
    """Outcome of a single rate-limit check.

    ``reset_at`` is a unix timestamp in seconds.
    """

    allowed: bool
    limit: int
    remaining: int
    reset_at: int

    def headers(self) -> dict[str, str]:
        """``X-RateLimit-*`` response headers."""
        return {
            "X-RateLimit-Limit": str(self.limit),
            "X-RateLimit-Remaining": str(self.remaining),
            "X-RateLimit-Reset": str(self.reset_at),
        }

    def retry_after(self, now: float | None = None) -> int:
        current = int(now if now is not None else time.time())
        return max(1, self.reset_at - current)

    def raise_for_limit(self) -> None:
        """Raise ``RateLimitExceeded`` if this check was refused."""
        if not self.allowed:
            raise RateLimitExceeded(
                limit=self.limit,
                remaining=self.remaining,
                reset_at=self.reset_at,
                retry_after=self.retry_after(),
            )


class RateLimiter:
    """Sliding-window limiter: ``max_requests`` per ``window_seconds`` per identity.

    Example:
        limiter = RateLimiter(store, max_requests=5, window_seconds=60,
                              key_prefix="resolve:url")
        result = limiter.check("10.0.0.1")
        if not result.allowed:
            ...  # 429
    """

    def __init__(
        self,
        store: KeyValueStore,
        *,
        max_requests: int,
        window_seconds: int = 60,
        key_prefix: str = "default",
        clock: Callable[[], float] = time.time,
    ):
        if max_requests < 1:
            raise ValueError("max_requests must be >= 1")
        if window_seconds < 1:
            raise ValueError("window_seconds must be >= 1")
        self._store = store
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.key_prefix = key_prefix
        self._clock = clock

    def key_for(self, identity: str) -> str:
        return f"ratelimit:{self.key_prefix}:{identity}"

    def check(self, identity: str) -> RateLimitResult:
        """Count one request for *identity* and decide whether it may proceed."""
        key = self.key_for(identity)
        now = self._clock()
        # a request exactly one window old has left the window
        self._store.zremrangebyscore(key, -math.inf, now - self.window_seconds)

        member = f"{now:.6f}:{uuid.uuid4().hex[:12]}"
        self._store.zadd(key, member, now)
        count = self._store.zcard(key)

        if count > self.max_requests:
            self._store.zrem(key, member)
            reset_at = self._reset_at(key, now)
            logger.info(
                "rate_limit_exceeded",
                scope=self.key_prefix,
                identity=identity,
                count=count - 1,
                limit=self.max_requests,
            )
            return RateLimitResult(
                allowed=False, limit=self.max_requests, remaining=0, reset_at=reset_at
            )

        self._store.expire(key, self.window_seconds)
        return RateLimitResult(
            allowed=True,
            limit=self.max_requests,
            remaining=self.max_requests - count,
            reset_at=self._reset_at(key, now),
        )

    def _reset_at(self, key: str, now: float) -> int:
        """When the oldest admitted request leaves the window, freeing a slot."""
        oldest = self._store.zmin_score(key)
        return math.ceil((oldest if oldest is not None else now) + self.window_seconds)

    def reset(self, identity: str) -> None:
        self._store.delete(self.key_for(identity))


def client_identity(headers: Mapping[str, str], peer: str | None = None) -> str:
    """Resolve the caller's address for rate limiting and telemetry.

    Order: first hop of ``X-Forwarded-For``, then ``X-Real-IP``, then the
    socket peer, then ``"unknown"``. Header lookup is case-insensitive for
    Starlette ``Headers``; plain dicts should use canonical casing.
    """
    forwarded = headers.get("x-forwarded-for") or headers.get("X-Forwarded-For")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    real_ip = headers.get("x-real-ip") or headers.get("X-Real-IP")
    if real_ip and real_ip.strip():
        return real_ip.strip()
    if peer:
        return peer
    return "unknown"


__all__ = ["RateLimiter", "RateLimitResult", "client_identity"]
