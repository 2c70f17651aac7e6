"""
Global metrics router.

Endpoints:
    GET /metrics   Publication trend, top institutions/fields, FAIR coverage

Computed over the whole dataset table and cached for a day.

Doc-Types: API_REFERENCE
"""

from __future__ import annotations

from fastapi import APIRouter, Request, Response

from dindex.api.deps import OpContext
from dindex.api.utils import _cache_headers, _handle_error

router = APIRouter()


@router.get("/metrics")
def global_metrics(request: Request, response: Response, ctx: OpContext):
    """Dashboard metrics across every dataset."""
    from dindex.ops.metrics import get_global_metrics

    result = get_global_metrics(ctx)
    if not result.success:
        return _handle_error(result, request)
    _cache_headers(response, result)
    return result.data
