"""
CLI: ``dindex db`` — database management commands.
"""

from __future__ import annotations

import typer

from dindex.cli.utils import console, fail, load_settings, make_context, output_result

app = typer.Typer(no_args_is_help=True)


@app.command()
def init(
    database: str | None = typer.Option(None, "--database", "-d", help="Database URL"),
) -> None:
    """Create every missing table."""
    from dindex.core.orm.session import create_dindex_engine, init_schema

    settings = load_settings(database)
    engine = create_dindex_engine(settings.database_url)
    try:
        init_schema(engine)
    finally:
        engine.dispose()
    console.print(f"[green]Schema ready[/green] at {engine.url.render_as_string(hide_password=True)}")


@app.command("truncate-jobs")
def truncate_jobs(
    database: str | None = typer.Option(None, "--database", "-d", help="Database URL"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Only count pending jobs"),
    json_out: bool = typer.Option(False, "--json", help="JSON output"),
) -> None:
    """Remove every pending job from the queue."""
    from dindex.ops.jobs import truncate_jobs as _truncate

    if not (yes or dry_run):
        typer.confirm("Remove every pending job?", abort=True)
    ctx = make_context(database, dry_run=dry_run)
    result = _truncate(ctx)
    if json_out:
        output_result(result, as_json=True)
        return
    if not result.success:
        fail(result)
    verb = "Would remove" if dry_run else "Removed"
    console.print(f"{verb} [bold]{result.data}[/bold] pending jobs")
