"""
Catalog-wide metrics for the landing dashboard, cached for a day.

Totals come from SQL aggregates. Institution and research-field rankings
need the JSON ``authors``/``subjects`` columns, so those are streamed in
chunks rather than loaded at once.
"""

from __future__ import annotations

from collections import Counter
from datetime import datetime
from typing import Any

from sqlalchemy import distinct, func, select

from dindex.core.logging import get_logger
from dindex.core.models import parse_authors
from dindex.core.orm.tables import CitationTable, DatasetTable, FujiScoreTable
from dindex.core.timestamps import db_utc_now
from dindex.ops.context import OperationContext
from dindex.ops.result import OperationResult, start_timer

logger = get_logger(__name__)

TOP_N = 9
HIGH_FAIR_THRESHOLD = 70
_STREAM_CHUNK = 1000


def top_with_other(counts: Counter[str], other_label: str, n: int = TOP_N) -> list[dict[str, Any]]:
    """Top *n* entries plus one bucket summing the rest (omitted when empty)."""
    ranked = sorted(counts.items(), key=lambda kv: (-kv[1], kv[0]))
    top = [{"name": name, "value": value} for name, value in ranked[:n]]
    rest = sum(value for _, value in ranked[n:])
    if rest > 0:
        top.append({"name": other_label, "value": rest})
    return top


def last_twelve_months(now: datetime) -> list[tuple[int, int]]:
    """``(year, month)`` pairs for the 12 months ending with *now*'s month."""
    months = []
    year, month = now.year, now.month
    for _ in range(12):
        months.append((year, month))
        month -= 1
        if month == 0:
            year, month = year - 1, 12
    return list(reversed(months))


def _compute(ctx: OperationContext) -> dict[str, Any]:
    now = db_utc_now()
    months = last_twelve_months(now)
    window_start = datetime(months[0][0], months[0][1], 1)

    with ctx.session() as session:
        total = session.scalar(select(func.count()).select_from(DatasetTable)) or 0
        scored, avg_score = session.execute(
            select(func.count(), func.avg(FujiScoreTable.score)).select_from(FujiScoreTable)
        ).one()
        high_fair = session.scalar(
            select(func.count())
            .select_from(FujiScoreTable)
            .where(FujiScoreTable.score > HIGH_FAIR_THRESHOLD)
        ) or 0
        cited = session.scalar(select(func.count(distinct(CitationTable.dataset_id)))) or 0
        citations = session.scalar(select(func.count()).select_from(CitationTable)) or 0

        monthly: Counter[tuple[int, int]] = Counter()
        for published in session.scalars(
            select(DatasetTable.published_at).where(DatasetTable.published_at >= window_start)
        ):
            if published is not None:
                monthly[(published.year, published.month)] += 1

        institutions: Counter[str] = Counter()
        fields: Counter[str] = Counter()
        rows = session.execute(
            select(DatasetTable.authors, DatasetTable.subjects).execution_options(yield_per=_STREAM_CHUNK)
        )
        for authors, subjects in rows:
            for author in parse_authors(authors):
                for affiliation in author.affiliations:
                    if affiliation.strip():
                        institutions[affiliation.strip()] += 1
            for subject in subjects or []:
                if isinstance(subject, str) and subject.strip():
                    fields[subject.strip()] += 1

    return {
        "monthlyPublications": {
            "months": [datetime(y, m, 1).strftime("%b %Y") for y, m in months],
            "datasets": [monthly.get(key, 0) for key in months],
        },
        "institutions": top_with_other(institutions, "Other Institutions"),
        "fields": top_with_other(fields, "Other Fields"),
        "sIndexMetrics": {
            "totalDatasets": total,
            "datasetsWithFairScore": scored or 0,
            "averageFairScore": round((avg_score or 0) / 100, 2),
            "highFairDatasets": high_fair,
            "citedDatasets": cited,
            "averageCitationCount": round(citations / cited, 1) if cited else 0.0,
        },
    }


def get_global_metrics(ctx: OperationContext) -> OperationResult[dict]:
    """Publication trend, top institutions and fields, FAIR coverage."""
    timer = start_timer()
    cached = ctx.cache.get_or_compute(
        "metrics:global", ctx.settings.cache_ttl_metrics, lambda: _compute(ctx)
    )
    return OperationResult.ok(
        cached.value, elapsed_ms=timer.elapsed_ms, metadata={"cache": cached.header}
    )
