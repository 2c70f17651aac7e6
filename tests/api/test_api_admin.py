"""
Tests for admin endpoints, their API-key gate, health and middleware.
"""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

from dindex.api.app import create_app

PREFIX = "/api/v1"


@pytest.fixture()
def secured_client(api_settings, engine, store, http_client, alerts):
    settings = api_settings.model_copy(update={"admin_api_key": "s3cret"})
    app = create_app(settings, engine=engine, store=store, http_client=http_client, alerts=alerts)
    return TestClient(app, raise_server_exceptions=False)


class TestCacheFlush:
    def test_flush(self, client, ctx, make_dataset):
        make_dataset("10.1/a")
        client.get(f"{PREFIX}/datasets/by-doi", params={"doi": "10.1/a"})
        client.get(f"{PREFIX}/metrics")

        resp = client.post(f"{PREFIX}/cache/flush")
        assert resp.status_code == 200
        assert resp.json() == {"ok": True, "deleted": 2}
        assert client.get(f"{PREFIX}/metrics").headers["X-Cache"] == "MISS"

    def test_flush_keeps_rate_limit_windows(self, client):
        for _ in range(5):
            client.get(f"{PREFIX}/resolve/url", params={"url": "https://example.org/k"})
        client.post(f"{PREFIX}/cache/flush")
        resp = client.get(f"{PREFIX}/resolve/url", params={"url": "https://example.org/k"})
        assert resp.status_code == 429

    def test_store_failure_is_503(self, client, store, monkeypatch):
        monkeypatch.setattr(store, "delete_prefix", MagicMock(side_effect=ConnectionError("down")))
        resp = client.post(f"{PREFIX}/cache/flush")
        assert resp.status_code == 503
        assert resp.headers["Retry-After"] == "1"


class TestTelemetry:
    def test_report(self, client, make_datasets, enqueue):
        enqueue(*make_datasets(3))
        client.get(f"{PREFIX}/fuji/jobs", headers={"X-Forwarded-For": "192.0.2.1"})
        resp = client.get(f"{PREFIX}/telemetry/fuji.claim")
        assert resp.status_code == 200
        assert resp.json() == {
            "activity": "fuji.claim",
            "total": 3,
            "actors": [{"actor": "192.0.2.1", "count": 3}],
        }

    def test_filter_by_actor(self, client, ctx):
        ctx.tracker.record("fuji.update", "w-1", 4)
        ctx.tracker.record("fuji.update", "w-2", 1)
        body = client.get(f"{PREFIX}/telemetry/fuji.update", params={"actor": "w-2"}).json()
        assert body["total"] == 1

    def test_invalid_activity(self, client):
        assert client.get(f"{PREFIX}/telemetry/bad:name").status_code == 400


class TestAdminKey:
    def test_rejects_missing_key(self, secured_client):
        resp = secured_client.post(f"{PREFIX}/cache/flush")
        assert resp.status_code == 401
        assert resp.json()["title"] == "Unauthorized"
        assert resp.headers["X-Request-ID"]

    def test_rejects_wrong_key(self, secured_client):
        resp = secured_client.get(f"{PREFIX}/telemetry/fuji.claim", headers={"X-API-Key": "nope"})
        assert resp.status_code == 401

    def test_accepts_header_or_query_key(self, secured_client):
        assert secured_client.post(
            f"{PREFIX}/cache/flush", headers={"X-API-Key": "s3cret"}
        ).status_code == 200
        assert secured_client.get(
            f"{PREFIX}/telemetry/fuji.claim", params={"api_key": "s3cret"}
        ).status_code == 200

    def test_worker_endpoints_stay_open(self, secured_client):
        assert secured_client.get(f"{PREFIX}/fuji/jobs").status_code == 200


class TestHealth:
    def test_healthy(self, client):
        resp = client.get("/health")
        assert resp.status_code == 200
        body = resp.json()
        assert body["status"] == "healthy"
        assert body["checks"] == {"database": "ok", "kv": "ok"}

    def test_degraded_store_is_still_200(self, client, store, monkeypatch):
        monkeypatch.setattr(store, "ping", MagicMock(return_value=False))
        resp = client.get("/health")
        assert resp.status_code == 200
        assert resp.json()["status"] == "degraded"

    def test_liveness(self, client):
        assert client.get("/health/live").json() == {"status": "alive"}


class TestMiddleware:
    def test_request_id_is_echoed(self, client):
        resp = client.get("/health/live", headers={"X-Request-ID": "req-123"})
        assert resp.headers["X-Request-ID"] == "req-123"

    def test_request_id_is_generated(self, client):
        assert client.get("/health/live").headers["X-Request-ID"]

    def test_timing_header(self, client):
        assert float(client.get("/health/live").headers["X-Process-Time-Ms"]) >= 0

    def test_unhandled_error_is_500_problem(self, client, monkeypatch):
        monkeypatch.setattr(
            "dindex.ops.metrics._compute", MagicMock(side_effect=RuntimeError("boom"))
        )
        resp = client.get(f"{PREFIX}/metrics")
        assert resp.status_code == 500
        assert resp.json()["title"] == "Internal Server Error"
        assert "boom" not in resp.json()["detail"]
