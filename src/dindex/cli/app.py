"""
Root Typer application for the dindex CLI.
"""

from __future__ import annotations

import typer
from typer import Typer

app = Typer(
    name="dindex",
    help="dindex — FAIR-score job queue and Dataset Index services.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


# ── Version callback ─────────────────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        from dindex import __version__

        typer.echo(f"dindex-core {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool | None = typer.Option(
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
    log_level: str = typer.Option("WARNING", "--log-level", help="Log level for diagnostics"),
) -> None:
    """dindex CLI — seed and inspect the job queue, manage the cache, run the API."""
    from dindex.core.logging import configure_logging

    configure_logging(level=log_level, json_format=False, service="dindex-cli")


# ── Sub-command registration ─────────────────────────────────────────────

from dindex.cli.cache import app as cache_app  # noqa: E402
from dindex.cli.db import app as db_app  # noqa: E402
from dindex.cli.jobs import app as jobs_app  # noqa: E402
from dindex.cli.serve import app as serve_app  # noqa: E402
from dindex.cli.telemetry import app as telemetry_app  # noqa: E402

app.add_typer(db_app, name="db", help="Database operations.")
app.add_typer(jobs_app, name="jobs", help="FAIR-score job queue.")
app.add_typer(telemetry_app, name="telemetry", help="Live activity counters.")
app.add_typer(cache_app, name="cache", help="Cache maintenance.")
app.add_typer(serve_app, name="serve", help="Start the API server.")
