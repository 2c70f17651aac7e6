"""
Typed response objects for operations.

Each dataclass represents the *output* of a single operation beyond the
generic :class:`OperationResult` envelope. Cached read operations return
plain JSON-ready dicts instead, since that is what the cache stores.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from dindex.core.models import DatasetDescriptor


@dataclass(frozen=True, slots=True)
class PendingQueue:
    """Result payload for :func:`dindex.ops.jobs.peek_jobs`."""

    total: int
    head: list[DatasetDescriptor] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {"total": self.total, "jobs": [j.to_wire() for j in self.head]}


@dataclass(frozen=True, slots=True)
class CacheFlushResult:
    deleted: int


@dataclass(frozen=True, slots=True)
class HealthStatus:
    """Result payload for :func:`dindex.ops.health.get_health`."""

    status: str  # "healthy" | "degraded" | "unhealthy"
    checks: dict[str, str] = field(default_factory=dict)
    version: str = ""
