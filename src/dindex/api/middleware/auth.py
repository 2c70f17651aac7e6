"""
Admin API-key middleware.

Worker and public read endpoints are open. Admin endpoints (cache flush,
telemetry read-out) require a matching ``X-API-Key`` header (or
``?api_key=`` query param) when ``DINDEX_ADMIN_API_KEY`` is set.
Unauthenticated requests receive a 401 JSON response.

Protected paths (relative to the API prefix):
  - ``/cache/*``
  - ``/telemetry/*``

Manifesto:
    Only operations that can destroy cached state or reveal who is
    calling need a credential. Workers poll anonymously, as they
    always have.

Tags:
    dindex, api, middleware, authentication, API-key, admin

Doc-Types:
    api-reference
"""

from __future__ import annotations

import re

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

# Paths that require the admin key
_ADMIN_PATTERNS: list[re.Pattern[str]] = [
    re.compile(r"/cache(/|$)"),
    re.compile(r"/telemetry(/|$)"),
]


def _is_admin(path: str, prefix: str) -> bool:
    """Return True if *path* (under *prefix*) is an admin endpoint."""
    if not path.startswith(prefix):
        return False
    rest = path[len(prefix):]
    return any(p.match(rest) for p in _ADMIN_PATTERNS)


class AdminAuthMiddleware(BaseHTTPMiddleware):
    """Reject admin requests that lack a valid API key.

    If ``api_key`` is ``None`` (the default), enforcement is disabled.

    Parameters
    ----------
    app:
        The ASGI application to wrap.
    api_key:
        The expected API key value.  ``None`` disables enforcement.
    prefix:
        API prefix the admin routes are mounted under.
    """

    def __init__(self, app: object, api_key: str | None = None, prefix: str = "") -> None:
        super().__init__(app)  # type: ignore[arg-type]
        self._api_key = api_key
        self._prefix = prefix

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        if self._api_key is None or not _is_admin(request.url.path, self._prefix):
            return await call_next(request)

        provided = request.headers.get("X-API-Key") or request.query_params.get("api_key")
        if provided != self._api_key:
            return JSONResponse(
                status_code=401,
                content={
                    "type": "about:blank",
                    "title": "Unauthorized",
                    "status": 401,
                    "detail": "Missing or invalid API key. Provide X-API-Key header.",
                    "instance": request.url.path,
                    "errors": [],
                },
            )

        return await call_next(request)
