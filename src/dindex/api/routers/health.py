"""
Health router — container probes at the root (no API prefix).

Endpoints:
    GET /health        Database and key-value store checks (503 when unhealthy)
    GET /health/live   Liveness probe, always 200
"""

from __future__ import annotations

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from dindex.api.deps import OpContext
from dindex.api.schemas.domains import HealthSchema
from dindex.api.utils import _dc

router = APIRouter(tags=["health"])


@router.get("/health", response_model=HealthSchema)
def health(ctx: OpContext):
    """Primary health. A dead key-value store only degrades the service."""
    from dindex.ops.health import get_health

    result = get_health(ctx)
    body = _dc(result.data)
    code = 503 if body.get("status") == "unhealthy" else 200
    return JSONResponse(content=body, status_code=code)


@router.get("/health/live")
def liveness():
    return {"status": "alive"}
