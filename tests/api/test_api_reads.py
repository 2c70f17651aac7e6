"""
Tests for the public read endpoints: datasets, shields, rollups, metrics.
"""

from __future__ import annotations

import datetime as dt

PREFIX = "/api/v1"


class TestDatasetByDoi:
    def test_summary_and_cache_header(self, client, make_dataset, add_score, add_citations):
        dataset_id = make_dataset("10.5281/zenodo.1")
        add_score(dataset_id, 71.0)
        add_citations(dataset_id, citations=2, mentions=1)

        resp = client.get(f"{PREFIX}/datasets/by-doi", params={"doi": "https://doi.org/10.5281/zenodo.1"})
        assert resp.status_code == 200
        assert resp.headers["X-Cache"] == "MISS"
        body = resp.json()
        assert body["datasetId"] == dataset_id
        assert body["totalCitations"] == 2
        assert body["totalMentions"] == 1
        assert body["fujiScore"]["score"] == 71.0

        again = client.get(f"{PREFIX}/datasets/by-doi", params={"doi": "10.5281/zenodo.1"})
        assert again.headers["X-Cache"] == "HIT"

    def test_scored_dataset_with_d_index(self, client, make_dataset, add_score, add_d_index):
        dataset_id = make_dataset("10.5281/zenodo.2")
        add_score(dataset_id, 64.0)
        add_d_index(dataset_id, 8.25, 2025, dt.datetime(2026, 2, 1))

        resp = client.get(f"{PREFIX}/datasets/by-doi", params={"doi": "doi:10.5281/ZENODO.2"})
        assert resp.status_code == 200
        body = resp.json()
        assert body["fujiScore"] == {
            "score": 64.0,
            "evaluationDate": "2026-01-01T12:00:00Z",
            "metricVersion": "0.5",
            "softwareVersion": "3.2.1",
        }
        assert body["latestDIndex"] == {
            "score": 8.25,
            "year": 2025,
            "created": "2026-02-01T00:00:00Z",
        }
        pending = client.get(f"{PREFIX}/fuji/jobs/pending").json()
        assert pending["total"] == 0

    def test_missing_doi_param(self, client):
        resp = client.get(f"{PREFIX}/datasets/by-doi")
        assert resp.status_code == 400
        assert resp.json()["title"] == "DOI parameter is required"

    def test_unknown(self, client):
        resp = client.get(f"{PREFIX}/datasets/by-doi", params={"doi": "10.1/none"})
        assert resp.status_code == 404
        assert resp.json()["title"] == "Dataset not found"


class TestShields:
    def test_doi_with_slashes_in_path(self, client, make_dataset, add_d_index):
        dataset_id = make_dataset("10.5281/zenodo.77")
        add_d_index(dataset_id, 12.4, 2025, dt.datetime(2026, 1, 1))
        resp = client.get(f"{PREFIX}/shields/d-index/10.5281/zenodo.77")
        assert resp.status_code == 200
        assert resp.json() == {
            "schemaVersion": 1,
            "label": "Dataset Index",
            "labelColor": "gray",
            "message": "12",
            "color": "green",
            "doi": "10.5281/zenodo.77",
            "datasetId": dataset_id,
            "dIndexScore": 12.4,
        }

    def test_pending(self, client, make_dataset):
        make_dataset("10.5281/zenodo.78")
        body = client.get(f"{PREFIX}/shields/d-index/10.5281/zenodo.78").json()
        assert body["message"] == "pending"
        assert body["dIndexScore"] is None

    def test_unknown(self, client):
        assert client.get(f"{PREFIX}/shields/d-index/10.1/none").status_code == 404


class TestRollups:
    def test_organization(self, client, add_s_index):
        add_s_index("organization", "ror-01", 2024, 3.0, name="Institute")
        add_s_index("organization", "ror-01", 2025, 4.5, name="Institute")
        resp = client.get(f"{PREFIX}/ao/ror-01")
        assert resp.status_code == 200
        assert resp.headers["X-Cache"] == "MISS"
        body = resp.json()
        assert body["sIndex"] == 4.5
        assert body["name"] == "Institute"
        assert [p["year"] for p in body["series"]] == [2024, 2025]

    def test_user(self, client, add_s_index):
        add_s_index("user", "orcid-1", 2025, 1.25)
        body = client.get(f"{PREFIX}/au/orcid-1").json()
        assert body["entityType"] == "user"
        assert body["series"] == [{"year": 2025, "score": 1.25}]

    def test_unknown_organization(self, client):
        resp = client.get(f"{PREFIX}/ao/missing")
        assert resp.status_code == 404
        assert resp.json()["title"] == "Organization not found"


class TestMetrics:
    def test_shape(self, client, make_dataset):
        make_dataset()
        resp = client.get(f"{PREFIX}/metrics")
        assert resp.status_code == 200
        body = resp.json()
        assert set(body) == {"monthlyPublications", "institutions", "fields", "sIndexMetrics"}
        assert body["sIndexMetrics"]["totalDatasets"] == 1
        assert resp.headers["X-Cache"] == "MISS"
        assert client.get(f"{PREFIX}/metrics").headers["X-Cache"] == "HIT"
