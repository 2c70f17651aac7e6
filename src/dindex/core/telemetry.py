"""
Short-lived activity counters for worker observability and abuse detection.

Manifesto:
    "How much work did each machine push through in the last ten
    minutes?" must be answerable without durable storage and without
    slowing the result-submission path. Every ``record`` writes a fresh,
    uniquely-suffixed key with a TTL instead of incrementing a shared
    counter: writers never contend, and old activity garbage-collects
    itself.

    - **Append-only:** one key per record, never read-modify-write
    - **Lossy:** entries vanish after TTL; losing one is never a fault
    - **Never raises into callers:** store failures are logged

Architecture:
    ::

        record("fuji.update", "worker-7", 12)
            → SET activity:fuji.update:worker-7:<nonce> "12" EX 600

        query("fuji.update")
            → SCAN activity:fuji.update:*
            → sum per actor, ranked descending

    Actor ids may contain ``:`` (IPv6 addresses); the actor is everything
    between the activity prefix and the final ``:<nonce>`` segment.

Tags:
    telemetry, observability, abuse-detection, ttl, redis, dindex

Doc-Types:
    - API Reference
    - Observability Guide
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field

from dindex.core.kv import KeyValueStore
from dindex.core.logging import get_logger

logger = get_logger(__name__)

ACTIVITY_NAMESPACE = "activity"
DEFAULT_TTL_SECONDS = 600


@dataclass(frozen=True)
class ActorCount:
    actor: str
    count: int


@dataclass
class ActivityReport:
    """Aggregated live counters for one activity."""

    activity: str
    total: int = 0
    actors: list[ActorCount] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "activity": self.activity,
            "total": self.total,
            "actors": [{"actor": a.actor, "count": a.count} for a in self.actors],
        }


class ActivityTracker:
    """Record and query TTL'd activity counters."""

    def __init__(
        self,
        store: KeyValueStore,
        *,
        ttl_seconds: int = DEFAULT_TTL_SECONDS,
        namespace: str = ACTIVITY_NAMESPACE,
    ):
        self._store = store
        self._ttl = ttl_seconds
        self._namespace = namespace

    def _prefix(self, activity: str) -> str:
        if not activity or ":" in activity:
            raise ValueError(f"activity name must be non-empty without ':' (got {activity!r})")
        return f"{self._namespace}:{activity}:"

    def record(self, activity: str, actor: str, count: int = 1) -> bool:
        """Write one counter entry. Returns ``False`` if it could not be stored."""
        key = f"{self._prefix(activity)}{actor or 'unknown'}:{uuid.uuid4().hex}"
        try:
            self._store.set(key, str(int(count)), ttl_seconds=self._ttl)
        except Exception as e:
            logger.warning("telemetry_write_failed", activity=activity, actor=actor, error=str(e))
            return False
        return True

    def query(self, activity: str, actor: str | None = None) -> ActivityReport:
        """Sum live counters for *activity*, optionally for one *actor*.

        Without *actor* the report lists every actor, highest count first
        (ties broken by actor name).
        """
        prefix = self._prefix(activity)
        scan_prefix = f"{prefix}{actor}:" if actor is not None else prefix

        totals: dict[str, int] = {}
        for key in self._store.scan(scan_prefix):
            raw = self._store.get(key)
            if raw is None:
                continue  # expired between scan and read
            remainder = key[len(prefix):]
            key_actor, sep, _nonce = remainder.rpartition(":")
            if not sep:
                continue
            if actor is not None and key_actor != actor:
                continue
            try:
                value = int(raw)
            except ValueError:
                logger.debug("telemetry_entry_invalid", key=key)
                continue
            totals[key_actor] = totals.get(key_actor, 0) + value

        ranked = sorted(totals.items(), key=lambda kv: (-kv[1], kv[0]))
        return ActivityReport(
            activity=activity,
            total=sum(totals.values()),
            actors=[ActorCount(actor=a, count=c) for a, c in ranked],
        )


__all__ = [
    "ActivityTracker",
    "ActivityReport",
    "ActorCount",
    "ACTIVITY_NAMESPACE",
    "DEFAULT_TTL_SECONDS",
]
