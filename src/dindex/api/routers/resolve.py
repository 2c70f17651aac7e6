"""
Resolver router — rate-limited lookups for the public site.

Endpoints:
    GET /resolve/url?url=&pubdate=&topic_id=   D-Index series for a landing-page URL
    GET /resolve/doi?doi=                      Dataset id for a DOI

Both are rate limited per caller (``X-RateLimit-*`` headers, 429 with
``Retry-After`` when exceeded) and cached for an hour (``X-Cache``
header, ``_cached`` in the body).

Doc-Types: API_REFERENCE
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Query, Request, Response

from dindex.api.deps import OpContext, rate_limited
from dindex.api.utils import _cache_headers, _handle_error

router = APIRouter(prefix="/resolve")


def _with_cached_flag(data: Any, hit: bool) -> dict[str, Any]:
    if isinstance(data, dict):
        return {**data, "_cached": hit}
    return {"data": data, "_cached": hit}


@router.get("/url", dependencies=[Depends(rate_limited("resolve:url", "resolve_url_rpm"))])
def resolve_url(
    request: Request,
    response: Response,
    ctx: OpContext,
    url: str = Query("", description="Dataset landing-page URL"),
    pubdate: str | None = Query(None, description="Publication date hint"),
    topic_id: str | None = Query(None, description="Topic id hint"),
):
    """Proxy to the S-Index API's ``dataset-index-series-from-url``."""
    from dindex.ops.requests import ResolveUrlRequest
    from dindex.ops.resolve import resolve_url as _resolve

    result = _resolve(ctx, ResolveUrlRequest(url=url, pubdate=pubdate, topic_id=topic_id))
    if not result.success:
        return _handle_error(result, request)
    hit = _cache_headers(response, result)
    return _with_cached_flag(result.data, hit)


@router.get("/doi", dependencies=[Depends(rate_limited("resolve:doi", "resolve_doi_rpm"))])
def resolve_doi(
    request: Request,
    response: Response,
    ctx: OpContext,
    doi: str = Query("", description="DOI in any common spelling"),
):
    """Resolve a DOI to ``{datasetId, doi}``."""
    from dindex.ops.datasets import resolve_doi as _resolve

    result = _resolve(ctx, doi)
    if not result.success:
        return _handle_error(result, request)
    hit = _cache_headers(response, result)
    return _with_cached_flag(result.data, hit)
