"""
API-specific settings.

Extends :class:`~dindex.core.settings.DIndexSettings` with the knobs
only the HTTP service needs. Everything is read from ``DINDEX_*``
environment variables (or a ``.env`` file).

Tags:
    dindex, api, settings, pydantic-settings

Doc-Types:
    api-reference
"""

from __future__ import annotations

from pydantic import Field

from dindex.core.settings import DIndexSettings


class DIndexAPISettings(DIndexSettings):
    """Settings for the dindex REST API.

    Order of precedence (highest → lowest):
        1. Environment variables (``DINDEX_API_PREFIX``, etc.)
        2. ``.env`` file
        3. Defaults below
    """

    # ── Server ───────────────────────────────────────────────────────────
    host: str = Field(default="0.0.0.0", description="Bind address")
    port: int = Field(default=3000, description="Bind port")
    debug: bool = Field(default=False, description="Expose exception text in 500 responses")

    # ── API ──────────────────────────────────────────────────────────────
    api_prefix: str = Field(default="/api/v1", description="URL prefix for all endpoints")
    api_title: str = Field(default="dindex API", description="OpenAPI title")
    api_version: str = Field(default="0.3.0", description="OpenAPI version string")

    # ── CORS ─────────────────────────────────────────────────────────────
    cors_origins: list[str] = Field(default=["*"], description="Allowed CORS origins")

    # ── Auth ─────────────────────────────────────────────────────────────
    admin_api_key: str | None = Field(
        default=None,
        description="Key required by admin endpoints (cache flush, telemetry); None leaves them open",
    )

    # ── Lifecycle ────────────────────────────────────────────────────────
    auto_create_schema: bool = Field(
        default=True,
        description="Create missing tables on startup (disable when migrations own the schema)",
    )
