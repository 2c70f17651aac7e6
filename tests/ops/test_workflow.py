"""
End-to-end worker loop: seed, claim, submit, claim again.
"""

from __future__ import annotations

from dindex.ops.jobs import claim_jobs, get_progress, seed_jobs
from dindex.ops.requests import ClaimJobsRequest, SeedJobsRequest
from dindex.ops.results import submit_results


def _result(dataset_id: int, score: float) -> dict:
    return {
        "datasetId": dataset_id,
        "score": score,
        "evaluationDate": "2026-05-01T00:00:00Z",
        "metricVersion": "0.5",
        "softwareVersion": "3.2.1",
    }


def test_queue_drains_and_reseed_skips_scored(ctx, make_datasets):
    ids = make_datasets(5)
    assert seed_jobs(ctx, SeedJobsRequest()).data.inserted == 5

    first = claim_jobs(ctx, ClaimJobsRequest(worker="w-1")).data
    assert [j.dataset_id for j in first] == ids[:3]

    outcome = submit_results(
        ctx, {"machineName": "w-1", "results": [_result(j.dataset_id, 50) for j in first]}
    )
    assert len(outcome.data.updated) == 3

    second = claim_jobs(ctx, ClaimJobsRequest(worker="w-2")).data
    assert [j.dataset_id for j in second] == ids[3:]
    assert claim_jobs(ctx, ClaimJobsRequest()).data == []

    # unanswered claims are lost until the next seed; scored datasets stay out
    reseed = seed_jobs(ctx, SeedJobsRequest()).data
    assert reseed.inserted == 2
    again = claim_jobs(ctx, ClaimJobsRequest()).data
    assert [j.dataset_id for j in again] == ids[3:]

    progress = get_progress(ctx).data
    assert progress["datasetsWithFujiScore"] == 3
    assert progress["percentage"] == 60.0


def test_replayed_batch_is_harmless(ctx, make_dataset):
    dataset_id = make_dataset()
    payload = {"results": [_result(dataset_id, 42)]}
    assert len(submit_results(ctx, payload).data.updated) == 1
    replay = submit_results(ctx, payload).data
    assert replay.updated == []
    assert replay.duplicates == [dataset_id]
