"""
Operation result envelope.

Every operation returns an :class:`OperationResult`. Expected failures
(bad input, unknown dataset, a datastore hiccup) come back as
``OperationResult.fail(code, ...)`` instead of raising, so the API and
the CLI turn them into responses the same way.

Error codes: ``VALIDATION_FAILED``, ``NOT_FOUND``, ``RATE_LIMITED``,
``TRANSIENT``, ``UPSTREAM``, ``INTERNAL``.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any

from dindex.core.errors import (
    DIndexError,
    NotFoundError,
    RateLimitExceeded,
    TransientError,
    UpstreamError,
    ValidationError,
)

# First match wins, so subclasses come before their parents.
_ERROR_CODES: tuple[tuple[type[DIndexError], str], ...] = (
    (ValidationError, "VALIDATION_FAILED"),
    (NotFoundError, "NOT_FOUND"),
    (RateLimitExceeded, "RATE_LIMITED"),
    (UpstreamError, "UPSTREAM"),
    (TransientError, "TRANSIENT"),
)


def error_code_for(exc: DIndexError) -> str:
    """Map a typed error to its operation error code."""
    for error_type, code in _ERROR_CODES:
        if isinstance(exc, error_type):
            return code
    return "INTERNAL"


@dataclass(frozen=True, slots=True)
class OperationError:
    """Why an operation failed.

    ``details`` carries whatever the caller needs to act on the failure:
    field errors under ``errors``, unknown dataset ids under ``missing``,
    quota numbers for ``RATE_LIMITED``.
    """

    code: str
    message: str
    details: dict[str, Any] = field(default_factory=dict)
    retryable: bool = False


@dataclass
class OperationResult[T]:
    """Success or failure of one operation, plus timing and cache status.

    Build instances with :meth:`ok`, :meth:`fail` or :meth:`from_error`.
    ``metadata["cache"]`` is ``"HIT"`` or ``"MISS"`` for reads served
    through the cache-aside layer.
    """

    success: bool
    data: T | None = None
    error: OperationError | None = None
    warnings: list[str] = field(default_factory=list)
    elapsed_ms: float = 0.0
    metadata: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def ok(
        cls,
        data: T,
        *,
        warnings: list[str] | None = None,
        elapsed_ms: float = 0.0,
        metadata: dict[str, Any] | None = None,
    ) -> OperationResult[T]:
        return cls(
            success=True,
            data=data,
            warnings=warnings or [],
            elapsed_ms=elapsed_ms,
            metadata=metadata or {},
        )

    @classmethod
    def fail(
        cls,
        code: str,
        message: str,
        *,
        details: dict[str, Any] | None = None,
        retryable: bool = False,
        elapsed_ms: float = 0.0,
    ) -> OperationResult[T]:
        return cls(
            success=False,
            error=OperationError(code, message, details or {}, retryable),
            elapsed_ms=elapsed_ms,
        )

    @classmethod
    def from_error(cls, exc: DIndexError, *, elapsed_ms: float = 0.0) -> OperationResult[T]:
        """Translate a typed dindex error into a failed result."""
        code = error_code_for(exc)
        details: dict[str, Any] = dict(exc.context.to_dict())
        message = exc.message
        if isinstance(exc, ValidationError):
            message = exc.detail
            if exc.errors:
                details["errors"] = exc.errors
        elif isinstance(exc, RateLimitExceeded):
            details.update(limit=exc.limit, remaining=exc.remaining, reset_at=exc.reset_at)
        return cls.fail(
            code, message, details=details, retryable=exc.retryable, elapsed_ms=elapsed_ms
        )

    @property
    def cache_status(self) -> str | None:
        return self.metadata.get("cache")


class _Timer:
    __slots__ = ("_start",)

    def __init__(self) -> None:
        self._start = time.perf_counter()

    @property
    def elapsed_ms(self) -> float:
        return (time.perf_counter() - self._start) * 1000


def start_timer() -> _Timer:
    """Return a stopwatch; read ``timer.elapsed_ms`` when the operation ends."""
    return _Timer()
