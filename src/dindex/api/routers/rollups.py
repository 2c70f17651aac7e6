"""
Organisation and user S-Index rollups.

Endpoints:
    GET /ao/{id}   Automated organisation: latest S-Index and yearly series
    GET /au/{id}   Automated user: latest S-Index and yearly series

Both read the precomputed ``s_index`` table and are cached for a week.

Doc-Types: API_REFERENCE
"""

from __future__ import annotations

from fastapi import APIRouter, Request, Response

from dindex.api.deps import OpContext
from dindex.api.utils import _cache_headers, _handle_error

router = APIRouter()


@router.get("/ao/{organization_id}")
def organization_rollup(request: Request, response: Response, ctx: OpContext, organization_id: str):
    """S-Index rollup for one organisation."""
    from dindex.ops.indices import get_organization_rollup

    result = get_organization_rollup(ctx, organization_id)
    if not result.success:
        return _handle_error(result, request)
    _cache_headers(response, result)
    return result.data


@router.get("/au/{user_id}")
def user_rollup(request: Request, response: Response, ctx: OpContext, user_id: str):
    """S-Index rollup for one user."""
    from dindex.ops.indices import get_user_rollup

    result = get_user_rollup(ctx, user_id)
    if not result.success:
        return _handle_error(result, request)
    _cache_headers(response, result)
    return result.data
