"""
FastAPI application factory.

``create_app()`` wires middleware, routers, error handlers, and
lifespan events into a single ``FastAPI`` instance.

Manifesto:
    The app factory is the single composition root — the engine, the
    key-value store, the outbound HTTP client and the alert sink are
    built here (or injected by tests) and parked on ``app.state``, so
    the rest of the codebase never constructs them itself.

Tags:
    dindex, api, app-factory, composition-root, FastAPI

Doc-Types:
    api-reference
"""

from __future__ import annotations

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import Engine

from dindex.api.deps import get_settings
from dindex.api.middleware.auth import AdminAuthMiddleware
from dindex.api.middleware.errors import (
    rate_limit_exception_handler,
    request_validation_handler,
    unhandled_exception_handler,
)
from dindex.api.middleware.request_context import RequestContextMiddleware
from dindex.api.settings import DIndexAPISettings
from dindex.core.alerts import AlertSink, WebhookAlertSink, create_alert_sink
from dindex.core.errors import RateLimitExceeded
from dindex.core.kv import KeyValueStore, create_store
from dindex.core.logging import configure_logging, get_logger
from dindex.core.orm.session import create_dindex_engine, init_schema, session_factory

log = get_logger("dindex.api")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan — startup / shutdown hooks."""
    settings: DIndexAPISettings = app.state.settings
    log.info("dindex_api_starting", version=app.version)

    if settings.auto_create_schema:
        init_schema(app.state.engine)
        log.info("database_schema_ready", url=app.state.engine.url.render_as_string(hide_password=True))

    yield

    for close in app.state.owned_resources:
        close()
    log.info("dindex_api_stopped")


def create_app(
    settings: DIndexAPISettings | None = None,
    *,
    engine: Engine | None = None,
    store: KeyValueStore | None = None,
    http_client: httpx.Client | None = None,
    alerts: AlertSink | None = None,
) -> FastAPI:
    """Build and return a fully-configured FastAPI application.

    Parameters
    ----------
    settings : DIndexAPISettings | None
        Override settings (useful for testing). When ``None`` the cached
        singleton from :func:`get_settings` is used.
    engine, store, http_client, alerts
        Pre-built resources. Anything not supplied is created from
        *settings*; resources created here are released on shutdown,
        injected ones are left to their owner.
    """
    settings = settings or get_settings()
    configure_logging(level=settings.log_level, json_format=settings.json_logs, service="dindex-api")

    app = FastAPI(
        title=settings.api_title,
        version=settings.api_version,
        lifespan=lifespan,
        docs_url=f"{settings.api_prefix}/docs",
        redoc_url=f"{settings.api_prefix}/redoc",
        openapi_url=f"{settings.api_prefix}/openapi.json",
    )

    owned: list = []
    if engine is None:
        engine = create_dindex_engine(settings.database_url, echo=settings.database_echo)
        owned.append(engine.dispose)
    if store is None:
        store = create_store(settings)
    if http_client is None:
        http_client = httpx.Client(timeout=settings.upstream_timeout_seconds)
        owned.append(http_client.close)
    if alerts is None:
        alerts = create_alert_sink(
            settings.alert_webhook_url, timeout=settings.upstream_timeout_seconds
        )
        if isinstance(alerts, WebhookAlertSink):
            owned.append(alerts.close)

    # Shared resources for dependencies and middleware
    app.state.settings = settings
    app.state.engine = engine
    app.state.sessions = session_factory(engine)
    app.state.store = store
    app.state.http = http_client
    app.state.alerts = alerts
    app.state.owned_resources = owned

    # Override DI so endpoints use the provided settings
    app.dependency_overrides[get_settings] = lambda: settings

    # ── Middleware (each add wraps the previous; CORS ends up outermost) ──
    app.add_middleware(
        AdminAuthMiddleware, api_key=settings.admin_api_key, prefix=settings.api_prefix
    )
    app.add_middleware(RequestContextMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=[
            "X-Cache",
            "X-RateLimit-Limit",
            "X-RateLimit-Remaining",
            "X-RateLimit-Reset",
            "Retry-After",
            "X-Request-ID",
            "X-Process-Time-Ms",
        ],
    )

    # ── Exception handlers ───────────────────────────────────────────
    app.add_exception_handler(RateLimitExceeded, rate_limit_exception_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    # ── Routers ──────────────────────────────────────────────────────
    from dindex.api.routers import (
        admin,
        datasets,
        fuji,
        health,
        metrics,
        resolve,
        rollups,
        shields,
    )

    prefix = settings.api_prefix

    # Health endpoints at root level (no prefix) for container healthchecks
    app.include_router(health.router)

    app.include_router(fuji.router, prefix=prefix, tags=["fuji"])
    app.include_router(datasets.router, prefix=prefix, tags=["datasets"])
    app.include_router(shields.router, prefix=prefix, tags=["shields"])
    app.include_router(rollups.router, prefix=prefix, tags=["rollups"])
    app.include_router(metrics.router, prefix=prefix, tags=["metrics"])
    app.include_router(resolve.router, prefix=prefix, tags=["resolve"])
    app.include_router(admin.router, prefix=prefix, tags=["admin"])

    return app
