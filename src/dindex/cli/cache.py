"""
CLI: ``dindex cache`` — cache maintenance.
"""

from __future__ import annotations

import typer

from dindex.cli.utils import console, make_context, output_result

app = typer.Typer(no_args_is_help=True)


@app.command()
def flush(
    dry_run: bool = typer.Option(False, "--dry-run", help="Only count cached entries"),
    json_out: bool = typer.Option(False, "--json", help="JSON output"),
) -> None:
    """Delete every cached aggregate (telemetry and rate limits are kept)."""
    from dindex.ops.cache import flush_cache

    ctx = make_context(dry_run=dry_run)
    result = flush_cache(ctx)
    if json_out or not result.success:
        output_result(result, as_json=json_out)
        return
    verb = "Would delete" if dry_run else "Deleted"
    console.print(f"{verb} [bold]{result.data.deleted}[/bold] cache entries")
