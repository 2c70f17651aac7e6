"""Shared settings for dindex services, workers and CLI commands.

Manifesto:
    Configuration should be explicit, validated, and environment-driven.
    Queue batch sizes, cache TTLs and rate limits are operational knobs
    that change between deployments, never between code releases.

    - **Pydantic validation:** Type-checked at startup, not at first use
    - **Environment-driven:** ``DINDEX_*`` env vars and ``.env`` files
    - **Sensible defaults:** SQLite + in-process store work out of the box

Examples:
    >>> from dindex.core.settings import DIndexSettings
    >>> s = DIndexSettings(fuji_claim_limit=5)
    >>> s.fuji_claim_limit
    5

Tags:
    settings, configuration, pydantic, environment, dindex

Doc-Types:
    - API Reference
    - Configuration Guide
"""

from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class DIndexSettings(BaseSettings):
    """Settings shared by the API, the CLI and the seeder.

    Order of precedence (highest → lowest):
        1. Environment variables (``DINDEX_DATABASE_URL``, ...)
        2. ``.env`` file
        3. Defaults below
    """

    model_config = SettingsConfigDict(
        env_prefix="DINDEX_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Storage ──────────────────────────────────────────────────
    database_url: str = Field(
        default="sqlite:///dindex.db",
        description="SQLAlchemy connection URL (PostgreSQL in production)",
    )
    database_echo: bool = Field(default=False, description="Log every SQL statement")
    redis_url: str | None = Field(
        default=None,
        description="Redis URL for cache/telemetry/rate limits; None uses the in-process store",
    )

    # ── Observability ────────────────────────────────────────────
    log_level: str = "INFO"
    json_logs: bool | None = Field(default=None, description="None → JSON when stderr is not a tty")

    # ── Job queue ────────────────────────────────────────────────
    fuji_claim_limit: int = Field(default=3, ge=1, description="Jobs handed out per claim")
    fuji_claim_max: int = Field(default=10, ge=1, description="Upper bound for ?limit= overrides")
    seed_fetch_batch: int = Field(default=10_000, ge=1, description="Datasets read per seeding round")
    seed_insert_batch: int = Field(default=1_000, ge=1, description="Job rows per insert statement")

    # ── Telemetry ────────────────────────────────────────────────
    telemetry_ttl_seconds: int = Field(default=600, ge=1)

    # ── Cache TTLs (seconds) ─────────────────────────────────────
    cache_ttl_dataset: int = Field(default=5 * 60, ge=1)
    cache_ttl_progress: int = Field(default=60, ge=1)
    cache_ttl_resolve: int = Field(default=60 * 60, ge=1)
    cache_ttl_metrics: int = Field(default=24 * 60 * 60, ge=1)
    cache_ttl_rollup: int = Field(default=7 * 24 * 60 * 60, ge=1)

    # ── Rate limits ──────────────────────────────────────────────
    rate_limit_window_seconds: int = Field(default=60, ge=1)
    resolve_url_rpm: int = Field(default=5, ge=1)
    resolve_doi_rpm: int = Field(default=10, ge=1)

    # ── Upstream services ────────────────────────────────────────
    sindex_api_url: str = Field(
        default="http://localhost:6405",
        description="Base URL of the S-Index computation API",
    )
    upstream_timeout_seconds: float = 30.0
    alert_webhook_url: str | None = Field(
        default=None,
        description="Out-of-band alert endpoint; None logs alerts only",
    )
