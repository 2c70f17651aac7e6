"""
Response schemas for the job queue, admin and health endpoints.

Field names are snake_case in Python and camelCase on the wire
(``datasetId``); FastAPI serialises ``response_model`` by alias.

Doc-Types: API_REFERENCE
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class _Wire(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


# ── Job queue ───────────────────────────────────────────────────────────


class JobSchema(_Wire):
    """One claimed job, as handed to a worker."""

    dataset_id: int = Field(alias="datasetId")
    identifier: str
    identifier_type: str = Field(alias="identifierType")


class PendingQueueSchema(_Wire):
    total: int = Field(description="Jobs waiting to be claimed")
    jobs: list[JobSchema] = Field(default_factory=list, description="Head of the queue")


class ProgressSchema(_Wire):
    percentage: float
    total_datasets: int = Field(alias="totalDatasets")
    datasets_with_fuji_score: int = Field(alias="datasetsWithFujiScore")
    pending_jobs: int = Field(alias="pendingJobs")
    jobs_done_last_10_minutes: int = Field(alias="jobsDoneLast10Minutes")


# ── Read side ───────────────────────────────────────────────────────────


class BadgeSchema(_Wire):
    """shields.io endpoint badge (https://shields.io/badges/endpoint-badge)."""

    schema_version: int = Field(default=1, alias="schemaVersion")
    label: str
    label_color: str = Field(alias="labelColor")
    message: str
    color: str
    doi: str
    dataset_id: int = Field(alias="datasetId")
    d_index_score: float | None = Field(default=None, alias="dIndexScore")


# ── Admin ───────────────────────────────────────────────────────────────


class CacheFlushSchema(BaseModel):
    ok: bool = True
    deleted: int


class ActorCountSchema(BaseModel):
    actor: str
    count: int


class ActivityReportSchema(BaseModel):
    activity: str
    total: int
    actors: list[ActorCountSchema] = Field(default_factory=list)


# ── Health ──────────────────────────────────────────────────────────────


class HealthSchema(BaseModel):
    status: str = Field(description="healthy | degraded | unhealthy")
    checks: dict[str, str] = Field(default_factory=dict)
    version: str
