"""
Common API schemas — RFC 7807 problem documents and small envelopes.

Successful responses keep the wire shapes existing clients already
parse (bare arrays for job batches, ``{"message": ...}`` for result
acknowledgements). Every 4xx/5xx response is a :class:`ProblemDetail`,
except the 429 from rate-limited endpoints, which uses
:class:`RateLimitBody` so browser clients can read ``resetAt``.

Doc-Types: API_REFERENCE
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

# ── RFC 7807 Problem Detail ─────────────────────────────────────────────


class ErrorDetail(BaseModel):
    """Field-level error detail.

    ``field`` is a dotted path into the request body, for example
    ``results.0.score``.
    """

    code: str = Field(default="INVALID_VALUE", description="Machine-readable error code")
    message: str = Field(description="Human-readable error description")
    field: str | None = Field(default=None, description="Field path if error is field-specific")


class ProblemDetail(BaseModel):
    """RFC 7807 «Problem Details for HTTP APIs».

    Error Codes:
        - ``VALIDATION_FAILED`` (400): Invalid input data
        - ``NOT_FOUND`` (404): Dataset, organisation or user does not exist
        - ``RATE_LIMITED`` (429): Too many requests
        - ``INTERNAL`` (500): Unexpected server error
        - ``UPSTREAM`` (502): The S-Index API failed
        - ``TRANSIENT`` (503): Temporary datastore failure, retry later

    Example:
        {
            "type": "about:blank",
            "title": "Invalid result payload",
            "status": 400,
            "detail": "",
            "instance": "/api/v1/fuji/jobs/results",
            "errors": [{"code": "INVALID_VALUE", "field": "results.0.score",
                        "message": "Input should be less than or equal to 100"}]
        }
    """

    type: str = Field(default="about:blank", description="Error type URI (usually 'about:blank')")
    title: str = Field(description="Short human-readable error summary")
    status: int = Field(description="HTTP status code (e.g., 400, 404, 500)")
    detail: str = Field(default="", description="Human-readable explanation of the error")
    instance: str = Field(default="", description="URI of the failing request")
    errors: list[ErrorDetail] = Field(
        default_factory=list,
        description="List of field-level or nested error details",
    )


class RateLimitBody(BaseModel):
    """Body of a 429 from a rate-limited endpoint."""

    model_config = ConfigDict(populate_by_name=True)

    message: str
    reset_at: int = Field(alias="resetAt", description="Unix time when the window resets")
    remaining: int = 0


class MessageResponse(BaseModel):
    message: str
