"""
FAIR-score job queue router — the worker-facing endpoints.

Endpoints:
    GET  /fuji/jobs            Claim a batch of pending jobs
    POST /fuji/jobs/results    Submit computed scores
    GET  /fuji/jobs/pending    Inspect the queue head without claiming
    GET  /fuji/progress        Scoring progress across all datasets

Manifesto:
    Workers are many, anonymous and impatient. The claim endpoint always
    answers with a JSON array, possibly empty, so a worker's only decision
    is "work or back off". Result submission reports precisely what was
    rejected so a worker can drop bad items and resubmit the rest.

Tags:
    dindex, api, fuji, job-queue, worker-protocol

Doc-Types: API_REFERENCE
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Body, Query, Request, Response

from dindex.api.deps import ClientIdentity, OpContext
from dindex.api.schemas.common import MessageResponse
from dindex.api.schemas.domains import JobSchema, PendingQueueSchema, ProgressSchema
from dindex.api.utils import _cache_headers, _handle_error

router = APIRouter(prefix="/fuji")


@router.get("/jobs", response_model=list[JobSchema])
def claim_jobs(
    ctx: OpContext,
    client: ClientIdentity,
    limit: int | None = Query(None, ge=1, description="Jobs to claim (capped by server settings)"),
):
    """Claim up to ``limit`` pending jobs.

    Claimed jobs leave the queue immediately. An empty array means there
    is nothing to do, or the queue could not be read; either way the
    worker should back off and poll again.

    Example:
        GET /api/v1/fuji/jobs

        Response:
        [
            {"datasetId": 42, "identifier": "10.5281/zenodo.1", "identifierType": "doi"}
        ]
    """
    from dindex.ops.jobs import claim_jobs as _claim
    from dindex.ops.requests import ClaimJobsRequest

    result = _claim(ctx, ClaimJobsRequest(limit=limit, worker=client))
    return [job.to_wire() for job in (result.data or [])]


@router.post("/jobs/results", response_model=MessageResponse)
def submit_results(
    request: Request,
    ctx: OpContext,
    payload: Any = Body(..., description="{results: [...], machineName?}"),
):
    """Submit a batch of computed FAIR scores.

    The payload is validated as a whole first; a single invalid item
    rejects the batch with 400 and a field list. Valid items are applied
    independently. Only strictly higher scores replace stored ones, so
    replays are harmless.

    Responses:
        200 ``{"message": "Results updated"}``
        400 problem document with ``errors[]``
        404 problem document naming unknown dataset ids (other items applied)
        503 problem document when the datastore failed; retry the batch
    """
    from dindex.ops.results import RESULTS_UPDATED
    from dindex.ops.results import submit_results as _submit

    result = _submit(ctx, payload)
    if not result.success:
        return _handle_error(result, request)
    return {"message": RESULTS_UPDATED}


@router.get("/jobs/pending", response_model=PendingQueueSchema)
def pending_jobs(
    request: Request,
    ctx: OpContext,
    limit: int = Query(10, ge=1, le=1000, description="Queue head entries to show"),
):
    """Total pending jobs and the next ``limit`` in claim order. Claims nothing."""
    from dindex.ops.jobs import peek_jobs
    from dindex.ops.requests import PeekJobsRequest

    result = peek_jobs(ctx, PeekJobsRequest(limit=limit))
    if not result.success:
        return _handle_error(result, request)
    return result.data.to_dict()


@router.get("/progress", response_model=ProgressSchema)
def progress(request: Request, response: Response, ctx: OpContext):
    """Share of datasets with a FAIR score and recent throughput."""
    from dindex.ops.jobs import get_progress

    result = get_progress(ctx)
    if not result.success:
        return _handle_error(result, request)
    _cache_headers(response, result)
    return result.data
