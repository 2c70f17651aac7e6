"""
Health operations.

Probes the relational store and the key-value store. The key-value store
only backs optimisations, so losing it degrades the service instead of
failing it.
"""

from __future__ import annotations

from sqlalchemy import text

import dindex
from dindex.core.logging import get_logger
from dindex.ops.context import OperationContext
from dindex.ops.responses import HealthStatus
from dindex.ops.result import OperationResult, start_timer

logger = get_logger(__name__)


def check_database(ctx: OperationContext) -> bool:
    try:
        with ctx.session() as session:
            session.execute(text("SELECT 1"))
        return True
    except Exception as exc:
        logger.warning("health_database_failed", error=str(exc))
        return False


def check_store(ctx: OperationContext) -> bool:
    try:
        return ctx.store.ping()
    except Exception as exc:
        logger.warning("health_store_failed", error=str(exc))
        return False


def get_health(ctx: OperationContext) -> OperationResult[HealthStatus]:
    """Aggregate health status across subsystems."""
    timer = start_timer()
    checks = {
        "database": "ok" if check_database(ctx) else "fail",
        "kv": "ok" if check_store(ctx) else "fail",
    }
    if checks["database"] == "fail":
        status = "unhealthy"
    elif checks["kv"] == "fail":
        status = "degraded"
    else:
        status = "healthy"
    return OperationResult.ok(
        HealthStatus(status=status, checks=checks, version=dindex.__version__),
        elapsed_ms=timer.elapsed_ms,
    )
