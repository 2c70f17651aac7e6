"""
shields.io badge router.

Endpoints:
    GET /shields/d-index/{doi}   Endpoint-badge JSON for a dataset's D-Index

DOIs contain slashes, so the path parameter uses the ``path`` converter:
``/shields/d-index/10.5281/zenodo.1`` works without escaping.

Doc-Types: API_REFERENCE
"""

from __future__ import annotations

from fastapi import APIRouter, Request

from dindex.api.deps import OpContext
from dindex.api.schemas.domains import BadgeSchema
from dindex.api.utils import _handle_error

router = APIRouter(prefix="/shields")


@router.get("/d-index/{doi:path}", response_model=BadgeSchema)
def d_index_badge(request: Request, ctx: OpContext, doi: str):
    """Badge showing the latest D-Index, or ``pending`` before it is computed."""
    from dindex.ops.indices import get_d_index_badge

    result = get_d_index_badge(ctx, doi)
    if not result.success:
        return _handle_error(result, request)
    return result.data
