"""
CLI: ``dindex telemetry`` — live activity counters.

Reads the shared key-value store, so ``DINDEX_REDIS_URL`` must point at
the store the API writes to.
"""

from __future__ import annotations

import typer

from dindex.cli.utils import console, make_context, output_result
from dindex.ops.result import OperationResult

app = typer.Typer(no_args_is_help=True)


@app.command()
def show(
    activity: str = typer.Argument(..., help="Activity name, e.g. fuji.update"),
    actor: str | None = typer.Option(None, "--actor", "-a", help="Restrict to one actor"),
    json_out: bool = typer.Option(False, "--json", help="JSON output"),
) -> None:
    """Per-actor totals for an activity over the telemetry window."""
    from dindex.ops.requests import TelemetryQueryRequest
    from dindex.ops.telemetry import query_activity

    ctx = make_context()
    result = query_activity(ctx, TelemetryQueryRequest(activity=activity, actor=actor))
    if json_out or not result.success:
        output_result(result, as_json=json_out)
        return
    report = result.data
    console.print(f"[bold]{report.activity}[/bold]: {report.total} total")
    if report.actors:
        output_result(OperationResult.ok(report.actors), title="By Actor")
