"""dindex Core -- primitives shared by the API, the CLI and the seeder.

Manifesto:
    The job queue and the reconciler must behave identically whether they
    are driven by an HTTP request, a CLI command or a test. ``dindex.core``
    holds everything that does not know about transports: the datastore
    model, the queue and score rules, and the ephemeral-state helpers that
    sit on the key-value store.

    - **Sync-only primitives:** request handlers run them in a threadpool
    - **Datastore-coordinated:** no in-process locks, counters or queues
    - **Protocol-first:** KeyValueStore and AlertSink are protocols

Architecture::

    Layer 1 -- Types & Errors
        errors.py          Structured error hierarchy (DIndexError, TransientStoreError)
        models.py          DatasetDescriptor, ScoreSubmission, Author records
        timestamps.py      UTC helpers

    Layer 2 -- Storage
        orm/               SQLAlchemy tables, engine and sessions
        kv.py              KeyValueStore protocol (in-memory / Redis)

    Layer 3 -- Scoring core
        queue.py           claim_jobs (SKIP LOCKED), seed_jobs, ensure_job
        scores.py          monotonic reconciler

    Layer 4 -- Ephemeral state
        cache.py           CacheAside
        telemetry.py       ActivityTracker
        rate_limit.py      RateLimiter

    Layer 5 -- Infrastructure
        settings.py        DIndexSettings (pydantic-settings)
        logging.py         structlog configuration
        alerts.py          Log / webhook alert sinks
        doi.py             DOI normalisation

Tags:
    dindex, core, primitives

Doc-Types:
    - Architecture Documentation
"""

from dindex.core.errors import (
    DIndexError,
    NotFoundError,
    RateLimitExceeded,
    TransientStoreError,
    ValidationError,
)
from dindex.core.models import DatasetDescriptor, ScoreSubmission

__all__ = [
    "DIndexError",
    "NotFoundError",
    "RateLimitExceeded",
    "TransientStoreError",
    "ValidationError",
    "DatasetDescriptor",
    "ScoreSubmission",
]
