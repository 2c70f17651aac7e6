"""
Tests for dindex.core.queue — SKIP LOCKED dispatcher and keyset seeder.

Covers:
- claim order, batch size, delete-at-claim, empty queue
- no job is handed out twice under concurrent claimers
- oversized-batch alerting
- seeding: idempotence, truncation, skipping scored datasets, progress callback
"""

from __future__ import annotations

import threading

import pytest
from sqlalchemy import select

from dindex.core import queue
from dindex.core.alerts import AlertSeverity, RecordingAlertSink
from dindex.core.errors import ValidationError
from dindex.core.models import DatasetDescriptor
from dindex.core.orm.tables import FujiJobTable


def _queued(sessions) -> list[int]:
    with sessions() as session:
        return list(session.scalars(select(FujiJobTable.dataset_id).order_by(FujiJobTable.dataset_id)))


class TestClaimJobs:
    def test_claims_in_dataset_id_order(self, sessions, make_datasets, enqueue):
        ids = make_datasets(5)
        enqueue(*reversed(ids))
        with sessions() as session:
            jobs = queue.claim_jobs(session, 3)
        assert [j.dataset_id for j in jobs] == ids[:3]
        assert all(j.identifier_type == "doi" for j in jobs)
        assert jobs[0].identifier == "10.5555/bulk.0"

    def test_claimed_jobs_leave_the_queue(self, sessions, make_datasets, enqueue):
        ids = make_datasets(5)
        enqueue(*ids)
        with sessions() as session:
            queue.claim_jobs(session, 3)
        assert _queued(sessions) == ids[3:]

    def test_drains_then_returns_empty(self, sessions, make_datasets, enqueue):
        ids = make_datasets(5)
        enqueue(*ids)
        batches = []
        for _ in range(3):
            with sessions() as session:
                batches.append([j.dataset_id for j in queue.claim_jobs(session, 3)])
        assert batches == [ids[:3], ids[3:], []]

    def test_empty_queue(self, sessions):
        with sessions() as session:
            assert queue.claim_jobs(session, 3) == []

    def test_rejects_limit_below_one(self, sessions):
        with sessions() as session, pytest.raises(ValidationError) as exc_info:
            queue.claim_jobs(session, 0)
        assert exc_info.value.errors[0]["field"] == "limit"

    def test_no_double_claim_under_concurrency(self, sessions, make_datasets, enqueue):
        ids = make_datasets(60)
        enqueue(*ids)
        claimed: list[int] = []
        lock = threading.Lock()
        errors: list[Exception] = []

        def worker() -> None:
            try:
                while True:
                    with sessions() as session:
                        batch = queue.claim_jobs(session, 3)
                    if not batch:
                        return
                    with lock:
                        claimed.extend(j.dataset_id for j in batch)
            except Exception as exc:  # surfaced by the assertion below
                errors.append(exc)

        threads = [threading.Thread(target=worker) for _ in range(6)]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=60)

        assert errors == []
        assert len(claimed) == len(set(claimed))
        assert sorted(claimed) == ids
        assert _queued(sessions) == []


class TestOversizedBatchAlert:
    def test_alert_sent(self):
        sink = RecordingAlertSink()
        jobs = [DatasetDescriptor(i, f"10.1/{i}", "doi") for i in range(4)]
        queue._alert_oversized_batch(sink, jobs, 3)
        assert len(sink.alerts) == 1
        alert = sink.alerts[0]
        assert alert.severity is AlertSeverity.WARNING
        assert alert.metadata["count"] == 4
        assert alert.metadata["jobs"][0] == {"datasetId": 0, "identifier": "10.1/0", "identifierType": "doi"}

    def test_failing_sink_is_contained(self):
        class Broken:
            def send(self, alert):
                raise RuntimeError("down")

        queue._alert_oversized_batch(Broken(), [DatasetDescriptor(1, "x", "doi")], 0)


class TestPeekAndCount:
    def test_peek_does_not_claim(self, sessions, make_datasets, enqueue):
        ids = make_datasets(4)
        enqueue(*ids)
        with sessions() as session:
            head = queue.peek_jobs(session, 2)
            total = queue.count_pending(session)
        assert [j.dataset_id for j in head] == ids[:2]
        assert total == 4
        assert _queued(sessions) == ids


class TestSeedJobs:
    def test_seeds_unscored_datasets(self, sessions, make_datasets, add_score):
        ids = make_datasets(25)
        for scored in ids[:5]:
            add_score(scored, 50.0)
        with sessions() as session:
            report = queue.seed_jobs(session, fetch_batch=10, insert_batch=3)
        assert report.total_candidates == 20
        assert report.inserted == 20
        assert report.rounds == 2
        assert _queued(sessions) == ids[5:]

    def test_reseeding_is_idempotent(self, sessions, make_datasets):
        ids = make_datasets(7)
        with sessions() as session:
            queue.seed_jobs(session, fetch_batch=4)
        with sessions() as session:
            again = queue.seed_jobs(session, fetch_batch=4)
        assert again.inserted == 0
        assert again.total_candidates == 7
        assert _queued(sessions) == ids

    def test_already_queued_datasets_are_skipped(self, sessions, make_datasets, enqueue):
        ids = make_datasets(3)
        enqueue(ids[1])
        with sessions() as session:
            report = queue.seed_jobs(session)
        assert report.inserted == 2
        assert _queued(sessions) == ids

    def test_truncate_first(self, sessions, make_datasets, enqueue, add_score):
        ids = make_datasets(3)
        add_score(ids[0], 10.0)
        enqueue(ids[0])
        with sessions() as session:
            report = queue.seed_jobs(session, truncate=True)
        assert report.truncated == 1
        assert _queued(sessions) == ids[1:]

    def test_progress_callback(self, sessions, make_datasets):
        make_datasets(5)
        rounds = []
        with sessions() as session:
            queue.seed_jobs(session, fetch_batch=2, on_progress=lambda r: rounds.append(r.rounds))
        assert rounds == [1, 2, 3]

    def test_rejects_bad_batches(self, sessions):
        with sessions() as session, pytest.raises(ValidationError):
            queue.seed_jobs(session, fetch_batch=0)

    def test_empty_table(self, sessions):
        with sessions() as session:
            report = queue.seed_jobs(session)
        assert report.to_dict() == {"total_candidates": 0, "inserted": 0, "rounds": 0, "truncated": 0}


class TestEnsureJob:
    def test_inserts_once(self, sessions, make_dataset):
        dataset_id = make_dataset()
        with sessions() as session:
            assert queue.ensure_job(session, dataset_id) is True
            session.commit()
        with sessions() as session:
            assert queue.ensure_job(session, dataset_id) is False
            session.commit()
        assert _queued(sessions) == [dataset_id]

    def test_truncate(self, sessions, make_datasets, enqueue):
        enqueue(*make_datasets(3))
        with sessions() as session:
            assert queue.truncate_jobs(session) == 3
        assert _queued(sessions) == []
