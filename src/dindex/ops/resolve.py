"""
URL resolver: proxies the S-Index API's dataset-index-series lookup.

Upstream answers are cached for an hour per (url, pubdate, topic) so a
popular URL costs one upstream call per hour however often it is asked
for. Rate limiting of callers is applied by the transport layer.
"""

from __future__ import annotations

from typing import Any
from urllib.parse import unquote

import httpx

from dindex.core.cache import cache_key
from dindex.core.errors import DIndexError, UpstreamError
from dindex.core.logging import get_logger
from dindex.ops.context import OperationContext
from dindex.ops.requests import ResolveUrlRequest
from dindex.ops.result import OperationResult, start_timer

logger = get_logger(__name__)

SERIES_PATH = "/dataset-index-series-from-url"


def _normalize(value: str | None) -> str | None:
    if value is None:
        return None
    return unquote(value).strip()


def _fetch_series(ctx: OperationContext, request: ResolveUrlRequest) -> Any:
    params = {"url": request.url}
    if request.pubdate:
        params["pubdate"] = request.pubdate
    if request.topic_id:
        params["topic_id"] = request.topic_id

    url = ctx.settings.sindex_api_url.rstrip("/") + SERIES_PATH
    client = ctx.http or httpx.Client(timeout=ctx.settings.upstream_timeout_seconds)
    try:
        response = client.get(url, params=params)
        response.raise_for_status()
        return response.json()
    except httpx.HTTPStatusError as exc:
        status = exc.response.status_code
        raise UpstreamError(
            f"Failed to fetch dataset: upstream returned {status}",
            retryable=status >= 500,
            cause=exc,
        ).with_context(url=url, http_status=status) from exc
    except httpx.HTTPError as exc:
        raise UpstreamError(
            f"Failed to fetch dataset: {exc}", retryable=True, cause=exc
        ).with_context(url=url) from exc
    except ValueError as exc:
        raise UpstreamError("Upstream returned invalid JSON", cause=exc).with_context(url=url) from exc
    finally:
        if ctx.http is None:
            client.close()


def resolve_url(ctx: OperationContext, request: ResolveUrlRequest) -> OperationResult[Any]:
    """D-Index series for a dataset landing-page URL."""
    timer = start_timer()
    if not request.url or not request.url.strip():
        return OperationResult.fail(
            "VALIDATION_FAILED", "Missing URL parameter", elapsed_ms=timer.elapsed_ms
        )

    key = cache_key(
        "resolve",
        "url",
        _normalize(request.url).lower(),
        _normalize(request.pubdate),
        _normalize(request.topic_id),
    )
    try:
        cached = ctx.cache.get_or_compute(
            key, ctx.settings.cache_ttl_resolve, lambda: _fetch_series(ctx, request)
        )
    except DIndexError as exc:
        logger.warning("resolve_url_failed", **exc.to_dict())
        return OperationResult.from_error(exc, elapsed_ms=timer.elapsed_ms)
    return OperationResult.ok(
        cached.value, elapsed_ms=timer.elapsed_ms, metadata={"cache": cached.header}
    )
