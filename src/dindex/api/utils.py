"""
Shared API router utilities.

- ``_dc()`` — convert a dataclass or dict to a plain dict
- ``_handle_error()`` — convert a failed OperationResult to a ``problem_response``
- ``_cache_headers()`` — copy the cache status of a result onto the response

Tags:
    dindex, api, utils, shared, dataclass-conversion

Doc-Types: API_INFRASTRUCTURE
"""

from __future__ import annotations

from dataclasses import asdict
from typing import Any

from fastapi import Request, Response
from fastapi.responses import JSONResponse

from dindex.api.middleware.errors import problem_response, status_for_error_code
from dindex.ops.result import OperationResult


def _dc(obj: Any) -> dict[str, Any]:
    """Convert a dataclass (or dict) to a plain dict.

    Objects exposing ``to_dict()`` use it, so wire names are kept.
    Returns an empty dict for anything else.
    """
    if hasattr(obj, "to_dict"):
        return obj.to_dict()
    if hasattr(obj, "__dataclass_fields__"):
        return asdict(obj)
    return obj if isinstance(obj, dict) else {}


def _handle_error(result: OperationResult, request: Request | None = None) -> JSONResponse:
    """Convert a failed ``OperationResult`` into a Problem Details response.

    The error code picks the HTTP status and the error message becomes the
    problem title. Field-level errors in ``details["errors"]`` are carried
    into ``errors[]``.
    """
    error = result.error
    code = error.code if error else "INTERNAL"
    errors = error.details.get("errors") if error else None
    detail = ""
    if error and error.details.get("missing"):
        detail = "missing dataset ids: " + ", ".join(str(i) for i in error.details["missing"])
    headers = None
    if error and error.retryable and code == "TRANSIENT":
        headers = {"Retry-After": "1"}
    return problem_response(
        status=status_for_error_code(code),
        title=error.message if error else "Operation failed",
        detail=detail,
        instance=request.url.path if request is not None else "",
        errors=errors,
        headers=headers,
    )


def _cache_headers(response: Response, result: OperationResult) -> bool:
    """Set ``X-Cache`` from the result and return whether it was a hit."""
    status = result.cache_status
    if status:
        response.headers["X-Cache"] = status
    return status == "HIT"
