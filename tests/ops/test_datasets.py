"""
Tests for dindex.ops.datasets — by-DOI summary and the DOI resolver.
"""

from __future__ import annotations

import datetime as dt

from dindex.ops.datasets import get_dataset_by_doi, resolve_doi
from dindex.ops.jobs import peek_jobs
from dindex.ops.requests import PeekJobsRequest


class TestDatasetByDoi:
    def test_full_summary(self, ctx, make_dataset, add_score, add_citations, add_d_index):
        dataset_id = make_dataset("10.1234/abc")
        add_score(dataset_id, 72.5)
        add_citations(dataset_id, citations=3, mentions=2)
        add_d_index(dataset_id, 4.0, 2024, dt.datetime(2025, 1, 1))
        add_d_index(dataset_id, 6.5, 2025, dt.datetime(2026, 1, 1))

        result = get_dataset_by_doi(ctx, "https://doi.org/10.1234/ABC")
        assert result.success
        assert result.data == {
            "datasetId": dataset_id,
            "doi": "10.1234/abc",
            "totalCitations": 3,
            "totalMentions": 2,
            "fujiScore": {
                "score": 72.5,
                "evaluationDate": "2026-01-01T12:00:00Z",
                "metricVersion": "0.5",
                "softwareVersion": "3.2.1",
            },
            "latestDIndex": {"score": 6.5, "year": 2025, "created": "2026-01-01T00:00:00Z"},
        }

    def test_second_read_is_cached(self, ctx, make_dataset, add_score):
        dataset_id = make_dataset("10.1234/cached")
        add_score(dataset_id, 10)
        assert get_dataset_by_doi(ctx, "10.1234/cached").cache_status == "MISS"
        assert get_dataset_by_doi(ctx, "10.1234/cached").cache_status == "HIT"
        assert ctx.store.get("cache:datasets:by-doi:10.1234/cached") is not None

    def test_unscored_dataset_is_queued(self, ctx, make_dataset):
        dataset_id = make_dataset("10.1234/unscored")
        result = get_dataset_by_doi(ctx, "10.1234/unscored")
        assert result.data["fujiScore"] is None
        assert result.data["latestDIndex"] is None

        pending = peek_jobs(ctx, PeekJobsRequest()).data
        assert [j.dataset_id for j in pending.head] == [dataset_id]

    def test_lookup_does_not_double_queue(self, ctx, make_dataset, enqueue):
        dataset_id = make_dataset("10.1234/queued")
        enqueue(dataset_id)
        get_dataset_by_doi(ctx, "10.1234/queued")
        assert peek_jobs(ctx, PeekJobsRequest()).data.total == 1

    def test_not_found(self, ctx):
        result = get_dataset_by_doi(ctx, "10.9999/missing")
        assert result.error.code == "NOT_FOUND"
        assert result.error.message == "Dataset not found"
        assert ctx.store.get("cache:datasets:by-doi:10.9999/missing") is None

    def test_blank_doi(self, ctx):
        result = get_dataset_by_doi(ctx, "  ")
        assert result.error.code == "VALIDATION_FAILED"
        assert result.error.message == "DOI parameter is required"


class TestResolveDoi:
    def test_resolves_any_spelling(self, ctx, make_dataset):
        dataset_id = make_dataset("10.5281/zenodo.123")
        for spelling in ("10.5281/zenodo.123", "doi:10.5281/ZENODO.123", "https://doi.org/10.5281%2Fzenodo.123"):
            result = resolve_doi(ctx, spelling)
            assert result.data == {"datasetId": dataset_id, "doi": "10.5281/zenodo.123"}

    def test_cached_after_first_lookup(self, ctx, make_dataset):
        make_dataset("10.5281/zenodo.9")
        assert resolve_doi(ctx, "10.5281/zenodo.9").cache_status == "MISS"
        assert resolve_doi(ctx, "10.5281/zenodo.9").cache_status == "HIT"

    def test_unknown(self, ctx):
        result = resolve_doi(ctx, "10.5281/zenodo.0")
        assert result.error.code == "NOT_FOUND"
        assert result.error.message == "Dataset not found for this DOI"

    def test_blank(self, ctx):
        assert resolve_doi(ctx, "").error.message == "DOI is required"
