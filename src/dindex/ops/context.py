"""
Request-scoped context for operations.

Every operation function receives an :class:`OperationContext` as its first
argument. The context carries the session factory, the key-value store,
settings, outbound clients and the caller identity. Handlers are stateless:
everything an operation touches is reached through the context.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from functools import cached_property
from typing import Any

import httpx
from sqlalchemy.orm import sessionmaker

from dindex.core.alerts import AlertSink, LogAlertSink
from dindex.core.cache import CacheAside
from dindex.core.kv import KeyValueStore
from dindex.core.orm.session import DIndexSession
from dindex.core.settings import DIndexSettings
from dindex.core.telemetry import ActivityTracker


@dataclass
class OperationContext:
    """Context passed to every operation function.

    Attributes:
        sessions: ``sessionmaker`` producing :class:`DIndexSession` objects.
        store: Shared key-value store (cache, telemetry, rate limits).
        settings: Resolved :class:`DIndexSettings`.
        alerts: Out-of-band alert sink.
        http: Outbound HTTP client for upstream services (``None`` creates
            a short-lived client per call).
        request_id: Unique ID for this operation invocation (auto-generated).
        caller: Origin of the request: ``"api"``, ``"cli"`` or ``"sdk"``.
        client: Network identity of the remote caller, when known.
        dry_run: When ``True``, operations return a preview without side effects.
        metadata: Arbitrary key/value pairs forwarded to logging.
    """

    sessions: sessionmaker[DIndexSession]
    store: KeyValueStore
    settings: DIndexSettings = field(default_factory=DIndexSettings)
    alerts: AlertSink = field(default_factory=LogAlertSink)
    http: httpx.Client | None = None
    request_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    caller: str = "sdk"
    client: str | None = None
    dry_run: bool = False
    metadata: dict[str, Any] = field(default_factory=dict)

    def session(self) -> DIndexSession:
        """Open a new session. The caller closes it."""
        return self.sessions()

    @cached_property
    def cache(self) -> CacheAside:
        return CacheAside(self.store)

    @cached_property
    def tracker(self) -> ActivityTracker:
        return ActivityTracker(self.store, ttl_seconds=self.settings.telemetry_ttl_seconds)
