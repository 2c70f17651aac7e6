"""
Per-request context: correlation id, caller identity and access logging.

Every request gets an ``X-Request-ID`` (echoed from the caller when
present) and an ``X-Process-Time-Ms`` header. While the request is served
the structlog context carries ``request_id``, ``client`` and ``path``, so
log lines from the queue and the reconciler can be traced back to the
worker that triggered them.

Worker endpoints are polled continuously, so successful ``/fuji/jobs``
claims are logged at debug level only. Slow requests are always logged
at warning level.

Tags:
    dindex, api, middleware, request-id, access-log, tracing

Doc-Types:
    api-reference
"""

from __future__ import annotations

import time
import uuid

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from dindex.core.logging import LogContext, get_logger
from dindex.core.rate_limit import client_identity

logger = get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"
PROCESS_TIME_HEADER = "X-Process-Time-Ms"

_QUIET_SUFFIXES = ("/fuji/jobs", "/health", "/health/live")


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Bind request id and caller into the log context and time the request.

    Parameters
    ----------
    app:
        The ASGI application to wrap.
    slow_ms:
        Requests slower than this are logged as ``request_slow``.
    """

    def __init__(self, app: object, slow_ms: float = 1000.0) -> None:
        super().__init__(app)  # type: ignore[arg-type]
        self._slow_ms = slow_ms

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())
        request.state.request_id = request_id
        peer = request.client.host if request.client else None
        client = client_identity(request.headers, peer)

        start = time.perf_counter()
        with LogContext(request_id=request_id, client=client, path=request.url.path):
            response = await call_next(request)
            elapsed_ms = round((time.perf_counter() - start) * 1000, 2)
            self._log(request, response.status_code, elapsed_ms)

        response.headers[REQUEST_ID_HEADER] = request_id
        response.headers[PROCESS_TIME_HEADER] = str(elapsed_ms)
        return response

    def _log(self, request: Request, status: int, elapsed_ms: float) -> None:
        fields = {"method": request.method, "status": status, "elapsed_ms": elapsed_ms}
        if elapsed_ms >= self._slow_ms:
            logger.warning("request_slow", **fields)
        elif status < 400 and request.url.path.endswith(_QUIET_SUFFIXES):
            logger.debug("request_served", **fields)
        else:
            logger.info("request_served", **fields)
