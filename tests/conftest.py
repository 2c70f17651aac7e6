"""
Shared pytest fixtures for dindex tests.

This module provides:
- A file-backed SQLite engine with the schema created (one per test)
- A fake clock and an ``InMemoryStore`` driven by it
- An ``OperationContext`` wired to both, with a recording alert sink
- Factory fixtures for datasets, scores, citations and index rows
- A FastAPI ``TestClient`` whose upstream S-Index API is an ``httpx.MockTransport``
"""

from __future__ import annotations

import datetime as dt
from collections.abc import Callable, Iterator
from pathlib import Path
from typing import Any

import httpx
import pytest

from dindex.core.alerts import RecordingAlertSink
from dindex.core.kv import InMemoryStore
from dindex.core.orm.session import (
    create_dindex_engine,
    init_schema,
    session_factory,
    session_scope,
)
from dindex.core.orm.tables import (
    CitationTable,
    DatasetTable,
    DIndexTable,
    FujiJobTable,
    FujiScoreTable,
    MentionTable,
    SIndexTable,
)
from dindex.core.settings import DIndexSettings
from dindex.ops.context import OperationContext

# =============================================================================
# Test Markers Configuration
# =============================================================================


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Auto-mark tests based on their location."""
    for item in items:
        test_path = Path(item.fspath).relative_to(Path(__file__).parent)
        if test_path.parts[0] in ("api", "cli"):
            item.add_marker(pytest.mark.integration)
        markers = {mark.name for mark in item.iter_markers()}
        if not markers.intersection({"unit", "integration", "slow"}):
            item.add_marker(pytest.mark.unit)


# =============================================================================
# Clock and key-value store
# =============================================================================


class FakeClock:
    """Manually advanced clock for TTL and rate-limit tests."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def store(clock: FakeClock) -> InMemoryStore:
    return InMemoryStore(clock=clock)


# =============================================================================
# Database
# =============================================================================


@pytest.fixture()
def database_url(tmp_path: Path) -> str:
    return f"sqlite:///{tmp_path / 'dindex.db'}"


@pytest.fixture()
def engine(database_url: str) -> Iterator[Any]:
    engine = create_dindex_engine(database_url)
    init_schema(engine)
    yield engine
    engine.dispose()


@pytest.fixture()
def sessions(engine):
    return session_factory(engine)


# =============================================================================
# Operation context
# =============================================================================


@pytest.fixture()
def settings(database_url: str) -> DIndexSettings:
    return DIndexSettings(_env_file=None, database_url=database_url, redis_url=None)


@pytest.fixture()
def alerts() -> RecordingAlertSink:
    return RecordingAlertSink()


@pytest.fixture()
def ctx(sessions, store, settings, alerts) -> OperationContext:
    return OperationContext(
        sessions=sessions,
        store=store,
        settings=settings,
        alerts=alerts,
        caller="test",
        client="10.0.0.1",
    )


# =============================================================================
# Data factories
# =============================================================================


@pytest.fixture()
def make_dataset(sessions) -> Callable[..., int]:
    """Insert a dataset and return its id."""

    counter = {"n": 0}

    def _make(identifier: str | None = None, **fields: Any) -> int:
        counter["n"] += 1
        identifier = identifier or f"10.1234/ds.{counter['n']}"
        with session_scope(sessions) as session:
            row = DatasetTable(identifier=identifier, **fields)
            session.add(row)
            session.flush()
            dataset_id = row.id
        return dataset_id

    return _make


@pytest.fixture()
def make_datasets(sessions) -> Callable[[int], list[int]]:
    """Bulk-insert ``n`` datasets and return their ids in ascending order."""

    def _make(n: int, prefix: str = "10.5555/bulk") -> list[int]:
        with session_scope(sessions) as session:
            rows = [DatasetTable(identifier=f"{prefix}.{i}") for i in range(n)]
            session.add_all(rows)
            session.flush()
            ids = sorted(r.id for r in rows)
        return ids

    return _make


@pytest.fixture()
def enqueue(sessions) -> Callable[..., None]:
    def _enqueue(*dataset_ids: int) -> None:
        with sessions() as session:
            session.add_all(FujiJobTable(dataset_id=i) for i in dataset_ids)
            session.commit()

    return _enqueue


@pytest.fixture()
def add_score(sessions) -> Callable[..., None]:
    def _add(dataset_id: int, score: float, *, updated_at: dt.datetime | None = None) -> None:
        now = updated_at or dt.datetime(2026, 1, 1, 12, 0, 0)
        with sessions() as session:
            session.add(
                FujiScoreTable(
                    dataset_id=dataset_id,
                    score=score,
                    evaluation_date=now,
                    metric_version="0.5",
                    software_version="3.2.1",
                    created_at=now,
                    updated_at=now,
                )
            )
            session.commit()

    return _add


@pytest.fixture()
def add_citations(sessions) -> Callable[..., None]:
    def _add(dataset_id: int, citations: int = 0, mentions: int = 0) -> None:
        with sessions() as session:
            session.add_all(CitationTable(dataset_id=dataset_id) for _ in range(citations))
            session.add_all(MentionTable(dataset_id=dataset_id) for _ in range(mentions))
            session.commit()

    return _add


@pytest.fixture()
def add_d_index(sessions) -> Callable[..., None]:
    def _add(dataset_id: int, score: float, year: int, created: dt.datetime) -> None:
        with sessions() as session:
            session.add(DIndexTable(dataset_id=dataset_id, score=score, year=year, created=created))
            session.commit()

    return _add


@pytest.fixture()
def add_s_index(sessions) -> Callable[..., None]:
    def _add(
        entity_type: str,
        entity_id: str,
        year: int,
        score: float,
        *,
        name: str | None = None,
        created: dt.datetime | None = None,
    ) -> None:
        with sessions() as session:
            session.add(
                SIndexTable(
                    entity_type=entity_type,
                    entity_id=entity_id,
                    name=name,
                    year=year,
                    score=score,
                    created=created or dt.datetime(2026, 1, 1),
                )
            )
            session.commit()

    return _add


# =============================================================================
# Upstream S-Index API
# =============================================================================


class UpstreamStub:
    """Records requests and answers with a configurable status/payload."""

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.status_code = 200
        self.payload: Any = {"series": [{"year": 2024, "score": 1.5}]}

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return httpx.Response(self.status_code, json=self.payload)


@pytest.fixture()
def upstream() -> UpstreamStub:
    return UpstreamStub()


@pytest.fixture()
def http_client(upstream: UpstreamStub) -> Iterator[httpx.Client]:
    client = httpx.Client(transport=httpx.MockTransport(upstream.handler))
    yield client
    client.close()


# =============================================================================
# API
# =============================================================================


@pytest.fixture()
def api_settings(database_url: str):
    from dindex.api.settings import DIndexAPISettings

    return DIndexAPISettings(
        _env_file=None,
        database_url=database_url,
        redis_url=None,
        admin_api_key=None,
        auto_create_schema=False,
    )


@pytest.fixture()
def app(api_settings, engine, store, http_client, alerts):
    from dindex.api.app import create_app

    return create_app(api_settings, engine=engine, store=store, http_client=http_client, alerts=alerts)


@pytest.fixture()
def client(app):
    from fastapi.testclient import TestClient

    return TestClient(app, raise_server_exceptions=False)
