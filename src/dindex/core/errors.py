"""
Structured error types for dindex.

Every failure the scoring core can surface has a typed exception carrying
enough metadata for the transport layers to decide whether the caller
should retry (429, 5xx) or drop the request (400, 404).

Manifesto:
    - **Typed hierarchy:** validation, lookup, rate-limit and store
      failures are distinct types, not strings
    - **Explicit retry semantics:** every error knows if it is retryable
    - **Rich context:** errors carry dataset ids, callers and URLs for logs
    - **Error chaining:** the original driver exception is kept as ``cause``

Architecture:
    ::

        DIndexError (category, retryable, retry_after, context, cause)
        ├── ValidationError        (VALIDATION, field-level errors)
        ├── NotFoundError          (NOT_FOUND)
        ├── ConfigError            (CONFIG)
        ├── UpstreamError          (UPSTREAM)
        └── TransientError         (retryable)
            ├── TransientStoreError   (DATABASE)
            └── RateLimitExceeded     (RATE_LIMIT, limit/remaining/reset_at)

Guardrails:
    ❌ DON'T: Raise bare ``Exception`` from ops code
    ✅ DO: Raise the narrowest subclass and pass ``cause=``

    ❌ DON'T: Mark validation failures retryable
    ✅ DO: Let ``default_retryable`` decide

Tags:
    error-handling, exception-hierarchy, retry-logic, dindex

Doc-Types:
    - API Reference
    - Error Handling Guide
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """Standard error categories for classification and routing."""

    VALIDATION = "VALIDATION"     # Malformed input
    NOT_FOUND = "NOT_FOUND"       # Referenced entity missing
    RATE_LIMIT = "RATE_LIMIT"     # Caller exceeded its quota
    DATABASE = "DATABASE"         # Connection loss, lock timeout
    UPSTREAM = "UPSTREAM"         # Proxied HTTP services
    CONFIG = "CONFIG"             # Missing or invalid settings
    INTERNAL = "INTERNAL"         # Bugs, unexpected state


@dataclass
class ErrorContext:
    """Structured metadata attached to an error.

    Attributes:
        dataset_id: Dataset the failure relates to.
        caller: Worker machine name or client address.
        url: Upstream URL that was being accessed.
        http_status: Upstream HTTP status, when applicable.
        metadata: Additional key/value pairs.
    """

    dataset_id: int | None = None
    caller: str | None = None
    url: str | None = None
    http_status: int | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        result = {}
        for key in ["dataset_id", "caller", "url", "http_status"]:
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        if self.metadata:
            result.update(self.metadata)
        return result


class DIndexError(Exception):
    """Base exception for all dindex errors.

    Subclasses set ``default_category`` and ``default_retryable`` so call
    sites rarely need to pass them explicitly.

    Example:
        >>> err = NotFoundError("Dataset not found").with_context(dataset_id=42)
        >>> err.to_dict()["context"]
        {'dataset_id': 42}
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL
    default_retryable: bool = False

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        retryable: bool | None = None,
        retry_after: int | None = None,
        context: ErrorContext | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.retryable = retryable if retryable is not None else self.default_retryable
        self.retry_after = retry_after
        self.context = context or ErrorContext()
        self.cause = cause

        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> DIndexError:
        """Add context to this error (fluent API)."""
        for key, value in kwargs.items():
            if key != "metadata" and hasattr(self.context, key):
                setattr(self.context, key, value)
            else:
                self.context.metadata[key] = value
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        result = {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "category": self.category.value,
            "retryable": self.retryable,
        }
        if self.retry_after is not None:
            result["retry_after"] = self.retry_after
        context_dict = self.context.to_dict()
        if context_dict:
            result["context"] = context_dict
        if self.cause is not None:
            result["cause"] = str(self.cause)
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, category={self.category.value})"


# =============================================================================
# CALLER ERRORS (never retryable)
# =============================================================================


class ValidationError(DIndexError):
    """Malformed input.

    Carries a list of field-level violations so the HTTP layer can list
    every problem at once instead of failing on the first.
    """

    default_category = ErrorCategory.VALIDATION
    default_retryable = False

    def __init__(
        self,
        message: str,
        *,
        errors: list[dict[str, Any]] | None = None,
        **kwargs: Any,
    ):
        super().__init__(message, **kwargs)
        self.errors = errors or []

    @property
    def detail(self) -> str:
        """Human-readable summary of every field violation."""
        if not self.errors:
            return self.message
        return ", ".join(
            f"{e['field']}: {e['message']}" if e.get("field") else e["message"]
            for e in self.errors
        )

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        if self.errors:
            result["errors"] = self.errors
        return result


class NotFoundError(DIndexError):
    """Referenced entity does not exist. Callers should drop, not retry."""

    default_category = ErrorCategory.NOT_FOUND
    default_retryable = False


class ConfigError(DIndexError):
    """Missing or unsupported configuration."""

    default_category = ErrorCategory.CONFIG
    default_retryable = False


class UpstreamError(DIndexError):
    """A proxied HTTP service failed or answered with an error status."""

    default_category = ErrorCategory.UPSTREAM
    default_retryable = False


# =============================================================================
# TRANSIENT ERRORS (retryable)
# =============================================================================


class TransientError(DIndexError):
    """Temporary condition that may succeed on retry."""

    default_category = ErrorCategory.DATABASE
    default_retryable = True


class TransientStoreError(TransientError):
    """Datastore connection loss, lock timeout or statement failure."""

    default_category = ErrorCategory.DATABASE


class RateLimitExceeded(TransientError):
    """Caller exceeded its request quota for the current window."""

    default_category = ErrorCategory.RATE_LIMIT

    def __init__(
        self,
        message: str = "Rate limit exceeded. Please try again later.",
        *,
        limit: int = 0,
        remaining: int = 0,
        reset_at: int = 0,
        retry_after: int | None = None,
        **kwargs: Any,
    ):
        super().__init__(message, retry_after=retry_after, **kwargs)
        self.limit = limit
        self.remaining = remaining
        self.reset_at = reset_at


__all__ = [
    "ErrorCategory",
    "ErrorContext",
    "DIndexError",
    "ValidationError",
    "NotFoundError",
    "ConfigError",
    "UpstreamError",
    "TransientError",
    "TransientStoreError",
    "RateLimitExceeded",
]
