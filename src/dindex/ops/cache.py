"""Administrative cache flush."""

from __future__ import annotations

from dindex.core.logging import get_logger
from dindex.ops.context import OperationContext
from dindex.ops.responses import CacheFlushResult
from dindex.ops.result import OperationResult, start_timer

logger = get_logger(__name__)


def flush_cache(ctx: OperationContext) -> OperationResult[CacheFlushResult]:
    """Delete every ``cache:*`` entry. Telemetry and rate-limit keys survive."""
    timer = start_timer()
    if ctx.dry_run:
        count = sum(1 for _ in ctx.store.scan(f"{ctx.cache.namespace}:"))
        return OperationResult.ok(
            CacheFlushResult(deleted=count), elapsed_ms=timer.elapsed_ms, metadata={"dry_run": True}
        )
    try:
        deleted = ctx.cache.flush()
    except Exception as exc:
        logger.error("cache_flush_failed", error=str(exc))
        return OperationResult.fail(
            "TRANSIENT", f"Cache flush failed: {exc}", retryable=True, elapsed_ms=timer.elapsed_ms
        )
    return OperationResult.ok(CacheFlushResult(deleted=deleted), elapsed_ms=timer.elapsed_ms)
