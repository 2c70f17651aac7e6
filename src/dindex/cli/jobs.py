"""
CLI: ``dindex jobs`` — FAIR-score job queue commands.

``seed`` is the batch job that refills the queue; run it on a schedule
(cron, Kubernetes CronJob). It is safe to re-run and to interrupt.
"""

from __future__ import annotations

import typer

from dindex.cli.utils import console, make_context, output_result
from dindex.ops.result import OperationResult

app = typer.Typer(no_args_is_help=True)


@app.command()
def seed(
    truncate: bool = typer.Option(False, "--truncate", help="Empty the queue before seeding"),
    fetch_batch: int | None = typer.Option(None, "--fetch-batch", min=1, help="Datasets read per round"),
    insert_batch: int | None = typer.Option(None, "--insert-batch", min=1, help="Rows per insert"),
    database: str | None = typer.Option(None, "--database", "-d", help="Database URL"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Only count unscored datasets"),
    json_out: bool = typer.Option(False, "--json", help="JSON output"),
) -> None:
    """Queue a job for every dataset without a FAIR score."""
    from dindex.core.models import SeedReport
    from dindex.ops.jobs import seed_jobs
    from dindex.ops.requests import SeedJobsRequest

    ctx = make_context(database, dry_run=dry_run)

    def on_progress(report: SeedReport) -> None:
        if not json_out:
            console.print(
                f"[dim]round {report.rounds}:[/dim] {report.total_candidates} candidates, "
                f"{report.inserted} queued"
            )

    request = SeedJobsRequest(truncate=truncate, fetch_batch=fetch_batch, insert_batch=insert_batch)
    result = seed_jobs(ctx, request, on_progress=on_progress)
    output_result(result, as_json=json_out, title="Seed Report")


@app.command()
def claim(
    limit: int | None = typer.Option(None, "--limit", "-n", min=1, help="Jobs to claim"),
    worker: str = typer.Option("cli", "--worker", help="Name recorded in telemetry"),
    database: str | None = typer.Option(None, "--database", "-d", help="Database URL"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Show what would be claimed"),
    json_out: bool = typer.Option(False, "--json", help="JSON output"),
) -> None:
    """Claim jobs by hand (they leave the queue)."""
    from dindex.ops.jobs import claim_jobs
    from dindex.ops.requests import ClaimJobsRequest

    ctx = make_context(database, dry_run=dry_run)
    result = claim_jobs(ctx, ClaimJobsRequest(limit=limit, worker=worker))
    output_result(result, as_json=json_out, title="Claimed Jobs")


@app.command()
def peek(
    limit: int = typer.Option(10, "--limit", "-n", min=1, help="Queue head entries to show"),
    database: str | None = typer.Option(None, "--database", "-d", help="Database URL"),
    json_out: bool = typer.Option(False, "--json", help="JSON output"),
) -> None:
    """Show the head of the queue without claiming."""
    from dindex.ops.jobs import peek_jobs
    from dindex.ops.requests import PeekJobsRequest

    ctx = make_context(database)
    result = peek_jobs(ctx, PeekJobsRequest(limit=limit))
    if json_out or not result.success:
        output_result(result, as_json=json_out)
        return
    console.print(f"[bold]{result.data.total}[/bold] pending jobs")
    output_result(OperationResult.ok(result.data.head), title="Queue Head")


@app.command()
def stats(
    database: str | None = typer.Option(None, "--database", "-d", help="Database URL"),
    json_out: bool = typer.Option(False, "--json", help="JSON output"),
) -> None:
    """Scoring progress across every dataset."""
    from dindex.ops.jobs import get_progress

    ctx = make_context(database)
    result = get_progress(ctx)
    output_result(result, as_json=json_out, title="FAIR Scoring Progress")
