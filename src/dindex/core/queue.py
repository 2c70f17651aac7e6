"""
FAIR-score job queue: claiming and seeding.

Manifesto:
    Thousands of worker machines poll for work at once. A claim must hand
    each pending dataset to exactly one caller without callers blocking
    on each other, and the queue must be refillable over tens of millions
    of datasets without quadratic re-scans.

    - **Delete-at-claim:** claimed rows leave the queue in the claiming
      transaction; a lost response loses at most one bounded batch
    - **SKIP LOCKED:** rows locked by another in-flight claim are skipped,
      not waited on
    - **Stable drain order:** dataset id ascending, within every batch
    - **Idempotent seeding:** keyset pagination plus insert-ignore

Architecture:
    ::

        claim_jobs(session, limit)
          BEGIN
            SELECT dataset_id FROM fuji_job
              ORDER BY dataset_id LIMIT :limit
              FOR UPDATE SKIP LOCKED
            DELETE FROM fuji_job WHERE dataset_id IN (...)
            SELECT id, identifier, identifier_type FROM dataset WHERE id IN (...)
          COMMIT

        seed_jobs(session)
          loop: SELECT d.id FROM dataset d LEFT JOIN fuji_score s
                  WHERE s.dataset_id IS NULL AND d.id > :last_id
                  ORDER BY d.id LIMIT :fetch_batch
                INSERT ... ON CONFLICT DO NOTHING   (insert_batch rows each)

Guardrails:
    ❌ DON'T: Page the seeder with OFFSET
    ✅ DO: Carry the last seen id forward

    ❌ DON'T: Leave claimed rows in the queue for the reconciler to clean up
    ✅ DO: Delete inside the claiming transaction

Tags:
    job-queue, skip-locked, dispatcher, seeder, keyset-pagination,
    sqlalchemy, dindex

Doc-Types:
    - API Reference
    - Architecture Documentation
"""

from __future__ import annotations

from collections.abc import Callable, Sequence

from sqlalchemy import delete, func, insert, select
from sqlalchemy.orm import Session

from dindex.core.alerts import Alert, AlertSeverity, AlertSink
from dindex.core.errors import ValidationError
from dindex.core.logging import get_logger
from dindex.core.models import DatasetDescriptor, SeedReport
from dindex.core.orm.tables import DatasetTable, FujiJobTable, FujiScoreTable

logger = get_logger(__name__)


# =============================================================================
# Dispatcher
# =============================================================================


def claim_jobs(
    session: Session,
    limit: int,
    *,
    alerts: AlertSink | None = None,
) -> list[DatasetDescriptor]:
    """Atomically claim and remove up to *limit* pending jobs.

    Returns descriptors ordered by dataset id. An empty queue yields
    ``[]``. The transaction is committed here; on any error it is rolled
    back and the exception propagates, leaving the jobs in place.

    Raises:
        ValidationError: *limit* is below 1.
    """
    if limit < 1:
        raise ValidationError(
            "limit must be at least 1",
            errors=[{"field": "limit", "message": f"must be >= 1, got {limit}"}],
        )

    try:
        ids = list(
            session.scalars(
                select(FujiJobTable.dataset_id)
                .order_by(FujiJobTable.dataset_id)
                .limit(limit)
                .with_for_update(skip_locked=True)
            )
        )
        if not ids:
            session.commit()
            return []

        session.execute(delete(FujiJobTable).where(FujiJobTable.dataset_id.in_(ids)))
        rows = session.execute(
            select(DatasetTable.id, DatasetTable.identifier, DatasetTable.identifier_type)
            .where(DatasetTable.id.in_(ids))
            .order_by(DatasetTable.id)
        ).all()
        session.commit()
    except Exception:
        session.rollback()
        raise

    jobs = [
        DatasetDescriptor(dataset_id=row.id, identifier=row.identifier, identifier_type=row.identifier_type)
        for row in rows
    ]

    if len(jobs) > limit:
        _alert_oversized_batch(alerts, jobs, limit)

    logger.info("jobs_claimed", count=len(jobs), limit=limit)
    return jobs


def _alert_oversized_batch(
    alerts: AlertSink | None, jobs: Sequence[DatasetDescriptor], limit: int
) -> None:
    alert = Alert(
        severity=AlertSeverity.WARNING,
        title="Job claim returned more rows than requested",
        message=f"claimed {len(jobs)} jobs with limit={limit}",
        source="dindex.dispatcher",
        metadata={"limit": limit, "count": len(jobs), "jobs": [j.to_wire() for j in jobs]},
    )
    logger.warning("claim_batch_oversized", count=len(jobs), limit=limit)
    if alerts is not None:
        try:
            alerts.send(alert)
        except Exception as e:
            logger.error("alert_send_failed", error=str(e))


def peek_jobs(session: Session, limit: int = 10) -> list[DatasetDescriptor]:
    """Read the head of the queue without claiming anything."""
    rows = session.execute(
        select(DatasetTable.id, DatasetTable.identifier, DatasetTable.identifier_type)
        .join(FujiJobTable, FujiJobTable.dataset_id == DatasetTable.id)
        .order_by(DatasetTable.id)
        .limit(limit)
    ).all()
    return [DatasetDescriptor(r.id, r.identifier, r.identifier_type) for r in rows]


def count_pending(session: Session) -> int:
    return session.scalar(select(func.count()).select_from(FujiJobTable)) or 0


# =============================================================================
# Seeder
# =============================================================================


def _insert_ignore(session: Session, dataset_ids: Sequence[int]) -> int:
    """Insert job rows, skipping ids already queued. Returns rows inserted."""
    if not dataset_ids:
        return 0
    values = [{"dataset_id": i} for i in dataset_ids]
    dialect = session.get_bind().dialect.name

    if dialect == "postgresql":
        from sqlalchemy.dialects.postgresql import insert as pg_insert

        stmt = pg_insert(FujiJobTable).values(values).on_conflict_do_nothing()
    elif dialect == "sqlite":
        from sqlalchemy.dialects.sqlite import insert as sqlite_insert

        stmt = sqlite_insert(FujiJobTable).values(values).on_conflict_do_nothing()
    elif dialect in ("mysql", "mariadb"):
        stmt = insert(FujiJobTable).values(values).prefix_with("IGNORE")
    else:
        existing = set(
            session.scalars(
                select(FujiJobTable.dataset_id).where(FujiJobTable.dataset_id.in_(dataset_ids))
            )
        )
        fresh = [{"dataset_id": i} for i in dataset_ids if i not in existing]
        if not fresh:
            return 0
        stmt = insert(FujiJobTable).values(fresh)

    result = session.execute(stmt)
    return max(result.rowcount or 0, 0)


def truncate_jobs(session: Session) -> int:
    """Remove every pending job. Returns the number removed."""
    result = session.execute(delete(FujiJobTable))
    session.commit()
    removed = max(result.rowcount or 0, 0)
    logger.info("jobs_truncated", removed=removed)
    return removed


def seed_jobs(
    session: Session,
    *,
    fetch_batch: int = 10_000,
    insert_batch: int = 1_000,
    truncate: bool = False,
    on_progress: Callable[[SeedReport], None] | None = None,
) -> SeedReport:
    """Queue a job for every dataset that has no FAIR score.

    Safe to re-run: datasets already queued are skipped by the insert.
    Each round commits, so an interrupted run keeps its progress.
    """
    if fetch_batch < 1 or insert_batch < 1:
        raise ValidationError("fetch_batch and insert_batch must be >= 1")

    report = SeedReport()
    if truncate:
        report.truncated = truncate_jobs(session)

    last_id = 0
    while True:
        ids = list(
            session.scalars(
                select(DatasetTable.id)
                .outerjoin(FujiScoreTable, FujiScoreTable.dataset_id == DatasetTable.id)
                .where(FujiScoreTable.dataset_id.is_(None), DatasetTable.id > last_id)
                .order_by(DatasetTable.id)
                .limit(fetch_batch)
            )
        )
        if not ids:
            session.commit()
            break

        for start in range(0, len(ids), insert_batch):
            report.inserted += _insert_ignore(session, ids[start:start + insert_batch])
        session.commit()

        report.rounds += 1
        report.total_candidates += len(ids)
        last_id = ids[-1]
        logger.debug("seed_round", round=report.rounds, candidates=len(ids), last_id=last_id)
        if on_progress is not None:
            on_progress(report)

        if len(ids) < fetch_batch:
            break

    logger.info("jobs_seeded", **report.to_dict())
    return report


def ensure_job(session: Session, dataset_id: int) -> bool:
    """Queue *dataset_id* if it is not queued yet. The caller commits.

    Returns ``True`` when a new job row was inserted.
    """
    return _insert_ignore(session, [dataset_id]) > 0


__all__ = [
    "claim_jobs",
    "peek_jobs",
    "count_pending",
    "seed_jobs",
    "truncate_jobs",
    "ensure_job",
]
