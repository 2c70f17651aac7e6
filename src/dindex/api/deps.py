"""
FastAPI dependency injection — shared singletons and per-request factories.

Usage in routers::

    from dindex.api.deps import OpContext, Settings

    @router.get("/things")
    def list_things(ctx: OpContext, settings: Settings):
        ...

Manifesto:
    Dependency injection keeps routers thin. Process-wide resources
    (engine, session factory, key-value store, HTTP client) are built
    once by the app factory and parked on ``app.state``; per-request
    objects (OpContext, rate-limit checks) are assembled from them.

Tags:
    dindex, api, dependency-injection, singletons, OpContext, rate-limit

Doc-Types:
    api-reference
"""

from __future__ import annotations

import uuid
from collections.abc import Callable
from functools import lru_cache
from typing import Annotated

from fastapi import Depends, Request, Response

from dindex.api.settings import DIndexAPISettings
from dindex.core.logging import get_logger
from dindex.core.rate_limit import RateLimiter, RateLimitResult, client_identity
from dindex.ops.context import OperationContext

logger = get_logger(__name__)

# ── Settings (singleton) ─────────────────────────────────────────────────


@lru_cache(maxsize=1)
def get_settings() -> DIndexAPISettings:
    """Cached settings — loaded once per process."""
    return DIndexAPISettings()


# ── Caller identity ──────────────────────────────────────────────────────


def get_client_identity(request: Request) -> str:
    """Forwarded address of the caller (proxy headers first, then the peer)."""
    peer = request.client.host if request.client else None
    return client_identity(request.headers, peer)


# ── Operation context (per-request) ──────────────────────────────────────


def get_operation_context(
    request: Request,
    client: Annotated[str, Depends(get_client_identity)],
) -> OperationContext:
    """Build an :class:`OperationContext` from the current request."""
    state = request.app.state
    request_id = getattr(request.state, "request_id", str(uuid.uuid4()))
    return OperationContext(
        sessions=state.sessions,
        store=state.store,
        settings=state.settings,
        alerts=state.alerts,
        http=state.http,
        request_id=request_id,
        caller="api",
        client=client,
    )


# ── Rate limiting (per-route) ────────────────────────────────────────────


def rate_limited(scope: str, rpm_setting: str) -> Callable[..., RateLimitResult | None]:
    """Dependency factory: count the request against ``scope`` and enforce it.

    ``rpm_setting`` names the settings attribute holding the per-window
    quota, so deployments can tune limits without code changes. On
    success the ``X-RateLimit-*`` headers are set on the response; when
    the quota is spent :class:`~dindex.core.errors.RateLimitExceeded` is
    raised and rendered as a 429 by the app's exception handler.
    """

    def dependency(
        request: Request,
        response: Response,
        client: Annotated[str, Depends(get_client_identity)],
    ) -> RateLimitResult | None:
        settings = request.app.state.settings
        limiter = RateLimiter(
            request.app.state.store,
            max_requests=getattr(settings, rpm_setting),
            window_seconds=settings.rate_limit_window_seconds,
            key_prefix=scope,
        )
        try:
            result = limiter.check(client)
        except Exception as exc:
            # the store only backs optimisations; serve unlimited while it is down
            logger.warning("rate_limit_unavailable", scope=scope, error=str(exc))
            return None
        result.raise_for_limit()
        response.headers.update(result.headers())
        return result

    dependency.__name__ = f"rate_limit_{scope.replace(':', '_')}"
    return dependency


# ── Convenience type aliases ─────────────────────────────────────────────

Settings = Annotated[DIndexAPISettings, Depends(get_settings)]
OpContext = Annotated[OperationContext, Depends(get_operation_context)]
ClientIdentity = Annotated[str, Depends(get_client_identity)]
