"""
Derived-index reads: D-Index badges and S-Index rollups.

The ``s_index`` table written by the offline index builder is the only
S-Index source served here. Rows are append-only, so every read takes the
latest row per key.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy import select

from dindex.core.cache import cache_key
from dindex.core.doi import normalize_doi
from dindex.core.errors import DIndexError, NotFoundError
from dindex.core.orm.tables import SIndexTable
from dindex.ops.context import OperationContext
from dindex.ops.datasets import find_dataset_id, latest_d_index
from dindex.ops.result import OperationResult, start_timer

BADGE_LABEL = "Dataset Index"
BADGE_LABEL_COLOR = "gray"

ENTITY_ORGANIZATION = "organization"
ENTITY_USER = "user"


def badge_message(score: float | None) -> tuple[str, str]:
    """``(message, color)`` for a D-Index score; ``None`` means not computed yet."""
    if score is None:
        return "pending", "lightgrey"
    return str(round(score)), "green"


def get_d_index_badge(ctx: OperationContext, doi: str) -> OperationResult[dict]:
    """shields.io endpoint payload for a dataset's latest D-Index."""
    timer = start_timer()
    normalized = normalize_doi(doi or "")
    if not normalized:
        return OperationResult.fail(
            "VALIDATION_FAILED", "DOI parameter is required", elapsed_ms=timer.elapsed_ms
        )

    with ctx.session() as session:
        dataset_id = find_dataset_id(session, normalized)
        if dataset_id is None:
            return OperationResult.fail(
                "NOT_FOUND",
                "Dataset not found",
                details={"doi": normalized},
                elapsed_ms=timer.elapsed_ms,
            )
        latest = latest_d_index(session, dataset_id)

    score = latest.score if latest is not None else None
    message, color = badge_message(score)
    return OperationResult.ok(
        {
            "schemaVersion": 1,
            "label": BADGE_LABEL,
            "labelColor": BADGE_LABEL_COLOR,
            "message": message,
            "color": color,
            "doi": normalized,
            "datasetId": dataset_id,
            "dIndexScore": score,
        },
        elapsed_ms=timer.elapsed_ms,
    )


def _rollup(ctx: OperationContext, entity_type: str, entity_id: str) -> dict[str, Any]:
    with ctx.session() as session:
        rows = session.scalars(
            select(SIndexTable)
            .where(SIndexTable.entity_type == entity_type, SIndexTable.entity_id == entity_id)
            .order_by(SIndexTable.year, SIndexTable.created, SIndexTable.id)
        ).all()
    if not rows:
        label = "Organization" if entity_type == ENTITY_ORGANIZATION else "User"
        raise NotFoundError(f"{label} not found").with_context(entity_id=entity_id)

    # later rows for the same year supersede earlier ones
    per_year: dict[int, SIndexTable] = {}
    for row in rows:
        per_year[row.year] = row
    series = [{"year": year, "score": per_year[year].score} for year in sorted(per_year)]
    name = next((r.name for r in reversed(rows) if r.name), None)

    return {
        "id": entity_id,
        "entityType": entity_type,
        "name": name or "",
        "sIndex": series[-1]["score"],
        "series": series,
    }


def _get_rollup(ctx: OperationContext, entity_type: str, domain: str, entity_id: str) -> OperationResult[dict]:
    timer = start_timer()
    if not entity_id or not entity_id.strip():
        return OperationResult.fail(
            "VALIDATION_FAILED", "ID is required", elapsed_ms=timer.elapsed_ms
        )
    entity_id = entity_id.strip()
    try:
        cached = ctx.cache.get_or_compute(
            cache_key(domain, entity_id),
            ctx.settings.cache_ttl_rollup,
            lambda: _rollup(ctx, entity_type, entity_id),
        )
    except DIndexError as exc:
        return OperationResult.from_error(exc, elapsed_ms=timer.elapsed_ms)
    return OperationResult.ok(
        cached.value, elapsed_ms=timer.elapsed_ms, metadata={"cache": cached.header}
    )


def get_organization_rollup(ctx: OperationContext, organization_id: str) -> OperationResult[dict]:
    """Latest S-Index and per-year series for an automated organisation."""
    return _get_rollup(ctx, ENTITY_ORGANIZATION, "ao", organization_id)


def get_user_rollup(ctx: OperationContext, user_id: str) -> OperationResult[dict]:
    """Latest S-Index and per-year series for an automated user."""
    return _get_rollup(ctx, ENTITY_USER, "au", user_id)
