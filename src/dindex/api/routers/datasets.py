"""
Datasets router — per-dataset summary by DOI.

Endpoints:
    GET /datasets/by-doi?doi=   Citations, mentions, FAIR score, latest D-Index

Doc-Types: API_REFERENCE
"""

from __future__ import annotations

from fastapi import APIRouter, Query, Request, Response

from dindex.api.deps import OpContext
from dindex.api.utils import _cache_headers, _handle_error

router = APIRouter(prefix="/datasets")


@router.get("/by-doi")
def dataset_by_doi(
    request: Request,
    response: Response,
    ctx: OpContext,
    doi: str = Query("", description="DOI in any common spelling (URL, doi: prefix, bare)"),
):
    """Summary of one dataset.

    A dataset that has no FAIR score yet is queued for scoring as a side
    effect, so popular datasets get scored first.

    Example:
        GET /api/v1/datasets/by-doi?doi=10.5281/zenodo.1

        Response:
        {
            "datasetId": 42,
            "doi": "10.5281/zenodo.1",
            "totalCitations": 3,
            "totalMentions": 1,
            "fujiScore": {"score": 71.0, "evaluationDate": "2026-05-02T10:00:00Z", ...},
            "latestDIndex": {"score": 12.5, "year": 2025, "created": "..."}
        }
    """
    from dindex.ops.datasets import get_dataset_by_doi

    result = get_dataset_by_doi(ctx, doi)
    if not result.success:
        return _handle_error(result, request)
    _cache_headers(response, result)
    return result.data
