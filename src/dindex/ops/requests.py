"""
Typed request objects for operations.

Dataclasses carry already-validated, transport-agnostic input. Worker
payloads arrive as raw JSON, so their shape is declared with pydantic and
validated inside the operation: the API and the CLI reject the same bad
batches with the same field messages.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from dindex.core.models import ScoreSubmission

# ------------------------------------------------------------------ #
# Job queue operations
# ------------------------------------------------------------------ #


@dataclass(frozen=True, slots=True)
class ClaimJobsRequest:
    """Request for :func:`dindex.ops.jobs.claim_jobs`.

    ``limit=None`` uses ``settings.fuji_claim_limit``.
    """

    limit: int | None = None
    worker: str | None = None


@dataclass(frozen=True, slots=True)
class PeekJobsRequest:
    limit: int = 10


@dataclass(frozen=True, slots=True)
class SeedJobsRequest:
    """Request for :func:`dindex.ops.jobs.seed_jobs`."""

    truncate: bool = False
    fetch_batch: int | None = None
    insert_batch: int | None = None


# ------------------------------------------------------------------ #
# Read-path operations
# ------------------------------------------------------------------ #


@dataclass(frozen=True, slots=True)
class ResolveUrlRequest:
    url: str
    pubdate: str | None = None
    topic_id: str | None = None


@dataclass(frozen=True, slots=True)
class TelemetryQueryRequest:
    activity: str
    actor: str | None = None


# ------------------------------------------------------------------ #
# Worker payloads (pydantic)
# ------------------------------------------------------------------ #


class ResultItem(BaseModel):
    """One computed score as posted by a worker."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    dataset_id: int = Field(alias="datasetId", strict=True)
    score: float = Field(strict=True, ge=0, le=100, allow_inf_nan=False)
    evaluation_date: datetime = Field(alias="evaluationDate")
    metric_version: str = Field(alias="metricVersion", min_length=1)
    software_version: str = Field(alias="softwareVersion", min_length=1)

    def to_submission(self) -> ScoreSubmission:
        return ScoreSubmission(
            dataset_id=self.dataset_id,
            score=self.score,
            evaluation_date=self.evaluation_date,
            metric_version=self.metric_version,
            software_version=self.software_version,
        )


class ResultBatch(BaseModel):
    """Body of ``POST /fuji/jobs/results``."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    results: list[ResultItem]
    machine_name: str | None = Field(default=None, alias="machineName")
