"""
Job queue operations: claim, peek, seed, truncate and progress.

``claim_jobs`` is the worker-facing hot path and fails open: any error is
logged and answered with an empty batch, which a polling worker always
treats as "back off and retry".
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import timedelta

from sqlalchemy import func, select

from dindex.core import queue
from dindex.core.errors import DIndexError
from dindex.core.logging import get_logger
from dindex.core.models import DatasetDescriptor, SeedReport
from dindex.core.orm.tables import DatasetTable, FujiScoreTable
from dindex.core.timestamps import db_utc_now
from dindex.ops.context import OperationContext
from dindex.ops.requests import ClaimJobsRequest, PeekJobsRequest, SeedJobsRequest
from dindex.ops.responses import PendingQueue
from dindex.ops.result import OperationResult, start_timer

logger = get_logger(__name__)

ACTIVITY_CLAIM = "fuji.claim"
PROGRESS_WINDOW = timedelta(minutes=10)


def _resolve_limit(ctx: OperationContext, requested: int | None) -> int:
    if requested is None:
        return ctx.settings.fuji_claim_limit
    return max(1, min(requested, ctx.settings.fuji_claim_max))


def claim_jobs(
    ctx: OperationContext,
    request: ClaimJobsRequest,
) -> OperationResult[list[DatasetDescriptor]]:
    """Hand out a batch of pending jobs. Never fails: errors yield ``[]``."""
    timer = start_timer()
    limit = _resolve_limit(ctx, request.limit)
    worker = request.worker or ctx.client or "unknown"

    if ctx.dry_run:
        with ctx.session() as session:
            preview = queue.peek_jobs(session, limit)
        return OperationResult.ok(preview, elapsed_ms=timer.elapsed_ms, metadata={"dry_run": True})

    session = ctx.session()
    try:
        jobs = queue.claim_jobs(session, limit, alerts=ctx.alerts)
    except Exception as exc:
        logger.error("claim_failed", error=str(exc), worker=worker, limit=limit)
        return OperationResult.ok(
            [], warnings=[f"claim failed: {exc}"], elapsed_ms=timer.elapsed_ms
        )
    finally:
        session.close()

    if jobs:
        ctx.tracker.record(ACTIVITY_CLAIM, worker, len(jobs))
    return OperationResult.ok(jobs, elapsed_ms=timer.elapsed_ms)


def peek_jobs(ctx: OperationContext, request: PeekJobsRequest) -> OperationResult[PendingQueue]:
    """Show the head of the queue and the total pending, without claiming."""
    timer = start_timer()
    if request.limit < 1:
        return OperationResult.fail(
            "VALIDATION_FAILED", "limit must be >= 1", elapsed_ms=timer.elapsed_ms
        )
    with ctx.session() as session:
        head = queue.peek_jobs(session, request.limit)
        total = queue.count_pending(session)
    return OperationResult.ok(PendingQueue(total=total, head=head), elapsed_ms=timer.elapsed_ms)


def seed_jobs(
    ctx: OperationContext,
    request: SeedJobsRequest,
    *,
    on_progress: Callable[[SeedReport], None] | None = None,
) -> OperationResult[SeedReport]:
    """Queue every unscored dataset."""
    timer = start_timer()
    if ctx.dry_run:
        with ctx.session() as session:
            unscored = session.scalar(
                select(func.count(DatasetTable.id))
                .outerjoin(FujiScoreTable, FujiScoreTable.dataset_id == DatasetTable.id)
                .where(FujiScoreTable.dataset_id.is_(None))
            ) or 0
        return OperationResult.ok(
            SeedReport(total_candidates=unscored),
            elapsed_ms=timer.elapsed_ms,
            metadata={"dry_run": True},
        )

    with ctx.session() as session:
        try:
            report = queue.seed_jobs(
                session,
                fetch_batch=request.fetch_batch or ctx.settings.seed_fetch_batch,
                insert_batch=request.insert_batch or ctx.settings.seed_insert_batch,
                truncate=request.truncate,
                on_progress=on_progress,
            )
        except DIndexError as exc:
            return OperationResult.from_error(exc, elapsed_ms=timer.elapsed_ms)
    return OperationResult.ok(report, elapsed_ms=timer.elapsed_ms)


def truncate_jobs(ctx: OperationContext) -> OperationResult[int]:
    timer = start_timer()
    if ctx.dry_run:
        with ctx.session() as session:
            return OperationResult.ok(
                queue.count_pending(session),
                elapsed_ms=timer.elapsed_ms,
                metadata={"dry_run": True},
            )
    with ctx.session() as session:
        removed = queue.truncate_jobs(session)
    return OperationResult.ok(removed, elapsed_ms=timer.elapsed_ms)


def get_progress(ctx: OperationContext) -> OperationResult[dict]:
    """Share of datasets scored, jobs pending and scores landed recently."""
    timer = start_timer()

    def compute() -> dict:
        with ctx.session() as session:
            total = session.scalar(select(func.count()).select_from(DatasetTable)) or 0
            scored = session.scalar(select(func.count()).select_from(FujiScoreTable)) or 0
            since = db_utc_now() - PROGRESS_WINDOW
            recent = session.scalar(
                select(func.count())
                .select_from(FujiScoreTable)
                .where(FujiScoreTable.updated_at >= since)
            ) or 0
            pending = queue.count_pending(session)
        percentage = round(scored / total * 100, 3) if total else 0.0
        return {
            "percentage": percentage,
            "totalDatasets": total,
            "datasetsWithFujiScore": scored,
            "pendingJobs": pending,
            "jobsDoneLast10Minutes": recent,
        }

    cached = ctx.cache.get_or_compute("fuji:progress", ctx.settings.cache_ttl_progress, compute)
    return OperationResult.ok(
        cached.value, elapsed_ms=timer.elapsed_ms, metadata={"cache": cached.header}
    )
