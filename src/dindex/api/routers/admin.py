"""
Admin router — cache flush and telemetry read-out.

Endpoints:
    POST /cache/flush                     Drop every cached aggregate
    GET  /telemetry/{activity}?actor=     Live per-actor activity counters

Both require ``X-API-Key`` when ``DINDEX_ADMIN_API_KEY`` is set (see
:mod:`dindex.api.middleware.auth`).

Doc-Types: API_REFERENCE
"""

from __future__ import annotations

from fastapi import APIRouter, Path, Query, Request

from dindex.api.deps import OpContext
from dindex.api.schemas.domains import ActivityReportSchema, CacheFlushSchema
from dindex.api.utils import _dc, _handle_error

router = APIRouter()


@router.post("/cache/flush", response_model=CacheFlushSchema)
def flush_cache(request: Request, ctx: OpContext):
    """Delete every cache entry. Telemetry counters and rate-limit windows are kept."""
    from dindex.ops.cache import flush_cache as _flush

    result = _flush(ctx)
    if not result.success:
        return _handle_error(result, request)
    return {"ok": True, "deleted": result.data.deleted}


@router.get("/telemetry/{activity}", response_model=ActivityReportSchema)
def activity_report(
    request: Request,
    ctx: OpContext,
    activity: str = Path(..., description="Activity name, e.g. fuji.claim"),
    actor: str | None = Query(None, description="Restrict to one actor"),
):
    """Per-actor totals for an activity over the telemetry window.

    Example:
        GET /api/v1/telemetry/fuji.update

        Response:
        {"activity": "fuji.update", "total": 12,
         "actors": [{"actor": "worker-1", "count": 9}, {"actor": "worker-2", "count": 3}]}
    """
    from dindex.ops.requests import TelemetryQueryRequest
    from dindex.ops.telemetry import query_activity

    result = query_activity(ctx, TelemetryQueryRequest(activity=activity, actor=actor))
    if not result.success:
        return _handle_error(result, request)
    return _dc(result.data)
