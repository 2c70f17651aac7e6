"""
Result submission: validate a worker batch, reconcile it, record telemetry.

The whole batch is validated before anything is written. Items are then
applied one by one (see :mod:`dindex.core.scores`); unknown dataset ids
are reported back as ``NOT_FOUND`` only after every other item has been
applied, so a worker that drops the failed ids loses nothing else.
"""

from __future__ import annotations

from typing import Any

from pydantic import ValidationError as PydanticValidationError

from dindex.core.errors import DIndexError, ValidationError
from dindex.core.logging import get_logger
from dindex.core.models import ReconcileOutcome
from dindex.core.scores import reconcile_results
from dindex.ops.context import OperationContext
from dindex.ops.requests import ResultBatch
from dindex.ops.result import OperationResult, start_timer

logger = get_logger(__name__)

ACTIVITY_UPDATE = "fuji.update"
ACTIVITY_DUPLICATE = "fuji.duplicate"

RESULTS_UPDATED = "Results updated"


def parse_result_batch(payload: Any) -> ResultBatch:
    """Validate a raw worker payload.

    Raises:
        ValidationError: with one ``{field, message}`` entry per violation,
            fields written as dotted paths (``results.0.score``).
    """
    try:
        return ResultBatch.model_validate(payload)
    except PydanticValidationError as exc:
        errors = [
            {
                "field": ".".join(str(part) for part in err["loc"]),
                "message": err["msg"],
            }
            for err in exc.errors()
        ]
        raise ValidationError("Invalid result payload", errors=errors) from exc


def submit_results(
    ctx: OperationContext,
    payload: Any,
    *,
    caller: str | None = None,
) -> OperationResult[ReconcileOutcome]:
    """Apply a batch of worker results with monotonic-score semantics.

    ``caller`` identifies the worker for telemetry only; when omitted the
    batch's ``machineName`` and then ``ctx.client`` are used.
    """
    timer = start_timer()

    try:
        batch = parse_result_batch(payload)
    except ValidationError as exc:
        logger.info("results_rejected", errors=len(exc.errors))
        return OperationResult.from_error(exc, elapsed_ms=timer.elapsed_ms)

    actor = caller or batch.machine_name or ctx.client or "unknown"
    submissions = [item.to_submission() for item in batch.results]

    if ctx.dry_run:
        return OperationResult.ok(
            ReconcileOutcome(), elapsed_ms=timer.elapsed_ms, metadata={"dry_run": True}
        )

    try:
        outcome = reconcile_results(ctx.sessions, submissions)
    except DIndexError as exc:
        logger.error("results_store_failed", actor=actor, **exc.to_dict())
        return OperationResult.from_error(exc, elapsed_ms=timer.elapsed_ms)

    if outcome.updated:
        ctx.tracker.record(ACTIVITY_UPDATE, actor, len(outcome.updated))
    if outcome.duplicates:
        ctx.tracker.record(ACTIVITY_DUPLICATE, actor, len(outcome.duplicates))

    logger.info("results_received", actor=actor, **outcome.to_dict())

    if outcome.missing:
        missing = sorted(set(outcome.missing))
        return OperationResult.fail(
            "NOT_FOUND",
            f"Dataset not found: {', '.join(str(i) for i in missing)}",
            details={**outcome.to_dict(), "missing": missing},
            elapsed_ms=timer.elapsed_ms,
        )
    return OperationResult.ok(outcome, elapsed_ms=timer.elapsed_ms)
