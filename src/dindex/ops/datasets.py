"""
Dataset lookups by DOI: the per-dataset summary and the DOI resolver.

Both are cached. Looking up a dataset that has no FAIR score yet queues
a job for it, so datasets people actually look at get scored first.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from dindex.core import queue
from dindex.core.cache import cache_key
from dindex.core.doi import normalize_doi
from dindex.core.errors import DIndexError, NotFoundError
from dindex.core.logging import get_logger
from dindex.core.orm.tables import (
    CitationTable,
    DatasetTable,
    DIndexTable,
    FujiScoreTable,
    MentionTable,
)
from dindex.core.timestamps import to_iso8601
from dindex.ops.context import OperationContext
from dindex.ops.result import OperationResult, start_timer

logger = get_logger(__name__)


def find_dataset_id(session: Session, doi: str) -> int | None:
    """Dataset id for an already-normalised DOI."""
    return session.scalar(
        select(DatasetTable.id).where(
            DatasetTable.identifier_type == "doi",
            DatasetTable.identifier == doi,
        )
    )


def latest_d_index(session: Session, dataset_id: int) -> DIndexTable | None:
    return session.scalars(
        select(DIndexTable)
        .where(DIndexTable.dataset_id == dataset_id)
        .order_by(DIndexTable.created.desc(), DIndexTable.id.desc())
        .limit(1)
    ).first()


def _summarise(ctx: OperationContext, doi: str) -> dict[str, Any]:
    with ctx.session() as session:
        dataset_id = find_dataset_id(session, doi)
        if dataset_id is None:
            raise NotFoundError("Dataset not found").with_context(doi=doi)

        citations = session.scalar(
            select(func.count()).select_from(CitationTable).where(CitationTable.dataset_id == dataset_id)
        ) or 0
        mentions = session.scalar(
            select(func.count()).select_from(MentionTable).where(MentionTable.dataset_id == dataset_id)
        ) or 0
        score = session.get(FujiScoreTable, dataset_id)
        d_index = latest_d_index(session, dataset_id)

        summary = {
            "datasetId": dataset_id,
            "doi": doi,
            "totalCitations": citations,
            "totalMentions": mentions,
            "fujiScore": (
                {
                    "score": score.score,
                    "evaluationDate": to_iso8601(score.evaluation_date),
                    "metricVersion": score.metric_version,
                    "softwareVersion": score.software_version,
                }
                if score is not None
                else None
            ),
            "latestDIndex": (
                {"score": d_index.score, "year": d_index.year, "created": to_iso8601(d_index.created)}
                if d_index is not None
                else None
            ),
        }
        if score is None and queue.ensure_job(session, dataset_id):
            logger.info("job_enqueued_on_read", dataset_id=dataset_id)
        session.commit()
    return summary


def get_dataset_by_doi(ctx: OperationContext, doi: str) -> OperationResult[dict]:
    """Citations, mentions, FAIR score and latest D-Index for one DOI."""
    timer = start_timer()
    if not doi or not doi.strip():
        return OperationResult.fail(
            "VALIDATION_FAILED", "DOI parameter is required", elapsed_ms=timer.elapsed_ms
        )
    normalized = normalize_doi(doi)

    try:
        cached = ctx.cache.get_or_compute(
            cache_key("datasets", "by-doi", normalized),
            ctx.settings.cache_ttl_dataset,
            lambda: _summarise(ctx, normalized),
        )
    except DIndexError as exc:
        return OperationResult.from_error(exc, elapsed_ms=timer.elapsed_ms)
    return OperationResult.ok(
        cached.value, elapsed_ms=timer.elapsed_ms, metadata={"cache": cached.header}
    )


def resolve_doi(ctx: OperationContext, doi: str) -> OperationResult[dict]:
    """Map a DOI in any common spelling to its dataset id."""
    timer = start_timer()
    normalized = normalize_doi(doi or "")
    if not normalized:
        return OperationResult.fail(
            "VALIDATION_FAILED", "DOI is required", elapsed_ms=timer.elapsed_ms
        )

    def compute() -> dict[str, Any]:
        with ctx.session() as session:
            dataset_id = find_dataset_id(session, normalized)
        if dataset_id is None:
            raise NotFoundError("Dataset not found for this DOI").with_context(doi=normalized)
        return {"datasetId": dataset_id, "doi": normalized}

    try:
        cached = ctx.cache.get_or_compute(
            cache_key("resolve", "doi", normalized), ctx.settings.cache_ttl_resolve, compute
        )
    except DIndexError as exc:
        return OperationResult.from_error(exc, elapsed_ms=timer.elapsed_ms)
    return OperationResult.ok(
        cached.value, elapsed_ms=timer.elapsed_ms, metadata={"cache": cached.header}
    )
