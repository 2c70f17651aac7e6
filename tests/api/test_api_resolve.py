"""
Tests for the rate-limited /resolve endpoints.
"""

from __future__ import annotations

from unittest.mock import MagicMock

PREFIX = "/api/v1/resolve"


class TestResolveUrl:
    def test_proxies_and_flags_cache(self, client, upstream):
        first = client.get(f"{PREFIX}/url", params={"url": "https://example.org/ds/1"})
        assert first.status_code == 200
        assert first.headers["X-Cache"] == "MISS"
        assert first.json() == {"series": [{"year": 2024, "score": 1.5}], "_cached": False}

        second = client.get(f"{PREFIX}/url", params={"url": "https://example.org/ds/1"})
        assert second.json()["_cached"] is True
        assert second.headers["X-Cache"] == "HIT"
        assert len(upstream.requests) == 1

    def test_non_object_upstream_payload_is_wrapped(self, client, upstream):
        upstream.payload = [1, 2, 3]
        body = client.get(f"{PREFIX}/url", params={"url": "https://example.org/list"}).json()
        assert body == {"data": [1, 2, 3], "_cached": False}

    def test_rate_limit_headers(self, client):
        resp = client.get(f"{PREFIX}/url", params={"url": "https://example.org/h"})
        assert resp.headers["X-RateLimit-Limit"] == "5"
        assert resp.headers["X-RateLimit-Remaining"] == "4"
        assert int(resp.headers["X-RateLimit-Reset"]) > 0

    def test_sixth_request_is_429(self, client, upstream):
        for _ in range(5):
            assert client.get(f"{PREFIX}/url", params={"url": "https://example.org/r"}).status_code == 200

        resp = client.get(f"{PREFIX}/url", params={"url": "https://example.org/r"})
        assert resp.status_code == 429
        assert int(resp.headers["Retry-After"]) >= 1
        body = resp.json()
        assert body["remaining"] == 0
        assert body["resetAt"] == int(resp.headers["X-RateLimit-Reset"])
        assert "Rate limit exceeded" in body["message"]
        assert len(upstream.requests) == 1

    def test_limits_are_per_client(self, client):
        for _ in range(5):
            client.get(f"{PREFIX}/url", params={"url": "https://example.org/p"})
        other = client.get(
            f"{PREFIX}/url",
            params={"url": "https://example.org/p"},
            headers={"X-Forwarded-For": "198.51.100.7"},
        )
        assert other.status_code == 200

    def test_store_outage_fails_open(self, client, store, monkeypatch):
        monkeypatch.setattr(store, "zadd", MagicMock(side_effect=ConnectionError("down")))
        resp = client.get(f"{PREFIX}/url", params={"url": "https://example.org/o"})
        assert resp.status_code == 200
        assert "X-RateLimit-Limit" not in resp.headers

    def test_upstream_failure_is_502(self, client, upstream):
        upstream.status_code = 503
        resp = client.get(f"{PREFIX}/url", params={"url": "https://example.org/down"})
        assert resp.status_code == 502

    def test_missing_url(self, client):
        resp = client.get(f"{PREFIX}/url")
        assert resp.status_code == 400
        assert resp.json()["title"] == "Missing URL parameter"


class TestResolveDoi:
    def test_resolves(self, client, make_dataset):
        dataset_id = make_dataset("10.5061/dryad.abc")
        resp = client.get(f"{PREFIX}/doi", params={"doi": "doi:10.5061/DRYAD.ABC"})
        assert resp.status_code == 200
        assert resp.json() == {"datasetId": dataset_id, "doi": "10.5061/dryad.abc", "_cached": False}
        assert resp.headers["X-RateLimit-Limit"] == "10"

    def test_unknown(self, client):
        resp = client.get(f"{PREFIX}/doi", params={"doi": "10.5061/none"})
        assert resp.status_code == 404
        assert resp.json()["title"] == "Dataset not found for this DOI"

    def test_separate_quota_from_url(self, client):
        for _ in range(5):
            client.get(f"{PREFIX}/url", params={"url": "https://example.org/q"})
        assert client.get(f"{PREFIX}/doi", params={"doi": "10.5061/none"}).status_code == 404
