"""Telemetry read-out: live activity counters per actor."""

from __future__ import annotations

from dindex.core.telemetry import ActivityReport
from dindex.ops.context import OperationContext
from dindex.ops.requests import TelemetryQueryRequest
from dindex.ops.result import OperationResult, start_timer


def query_activity(
    ctx: OperationContext, request: TelemetryQueryRequest
) -> OperationResult[ActivityReport]:
    timer = start_timer()
    try:
        report = ctx.tracker.query(request.activity, request.actor)
    except ValueError as exc:
        return OperationResult.fail("VALIDATION_FAILED", str(exc), elapsed_ms=timer.elapsed_ms)
    return OperationResult.ok(report, elapsed_ms=timer.elapsed_ms)
