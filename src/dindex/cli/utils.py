"""
CLI utility helpers — output formatting and context construction.
"""

from __future__ import annotations

import json
from dataclasses import asdict
from typing import Any

import typer
from rich.console import Console
from rich.table import Table

from dindex.core.alerts import create_alert_sink
from dindex.core.errors import ConfigError
from dindex.core.kv import create_store
from dindex.core.orm.session import create_dindex_engine, session_factory
from dindex.core.settings import DIndexSettings
from dindex.ops.context import OperationContext
from dindex.ops.result import OperationResult

console = Console()
err_console = Console(stderr=True)


# ── Context helper ───────────────────────────────────────────────────────


def load_settings(database: str | None = None) -> DIndexSettings:
    """Settings from the environment, with ``--database`` taking precedence."""
    settings = DIndexSettings()
    if database:
        settings = settings.model_copy(update={"database_url": database})
    return settings


def make_context(
    database: str | None = None,
    *,
    dry_run: bool = False,
) -> OperationContext:
    """Create an ``OperationContext`` for CLI commands.

    The database defaults to ``DINDEX_DATABASE_URL``; the key-value store
    is Redis when ``DINDEX_REDIS_URL`` is set, otherwise in-process (which
    makes telemetry and cache commands local to this invocation).
    """
    settings = load_settings(database)
    try:
        store = create_store(settings)
        alerts = create_alert_sink(settings.alert_webhook_url)
    except ConfigError as exc:
        err_console.print(f"[bold red]Configuration error[/bold red]: {exc.message}")
        raise typer.Exit(code=2) from exc
    engine = create_dindex_engine(settings.database_url, echo=settings.database_echo)
    return OperationContext(
        sessions=session_factory(engine),
        store=store,
        settings=settings,
        alerts=alerts,
        caller="cli",
        dry_run=dry_run,
    )


# ── Output helpers ───────────────────────────────────────────────────────


def _to_dict(obj: Any) -> dict[str, Any]:
    """Convert a domain object / dataclass / pydantic model / dict to a plain dict."""
    if hasattr(obj, "to_wire"):
        return obj.to_wire()
    if hasattr(obj, "to_dict"):
        return obj.to_dict()
    if hasattr(obj, "model_dump"):
        return obj.model_dump()
    if hasattr(obj, "__dataclass_fields__"):
        return asdict(obj)
    if isinstance(obj, dict):
        return obj
    return {"value": obj}


def fail(result: OperationResult) -> None:
    """Print a failed result to stderr and exit with status 1."""
    err = result.error
    msg = err.message if err else "Unknown error"
    code = err.code if err else "ERROR"
    err_console.print(f"[bold red]Error[/bold red] ({code}): {msg}")
    if err and err.details.get("errors"):
        for item in err.details["errors"]:
            err_console.print(f"  [yellow]{item.get('field')}[/yellow]: {item.get('message')}")
    raise typer.Exit(code=1)


def output_result(
    result: OperationResult,
    *,
    as_json: bool = False,
    title: str = "",
) -> None:
    """Render an ``OperationResult`` to the terminal."""
    if not result.success:
        fail(result)

    data = result.data

    if as_json:
        payload = [_to_dict(d) for d in data] if isinstance(data, list | tuple) else _to_dict(data)
        console.print_json(json.dumps(payload, default=str))
        return

    for warning in result.warnings:
        err_console.print(f"[yellow]Warning:[/yellow] {warning}")

    if isinstance(data, list):
        if not data:
            console.print("[dim]No items.[/dim]")
            return
        _print_table(data, title=title)
    else:
        _print_dict(_to_dict(data), title=title)


# ── Private helpers ──────────────────────────────────────────────────────


def _print_table(items: list, *, title: str = "") -> None:
    """Render a list of dataclasses/dicts as a Rich table."""
    first = _to_dict(items[0])
    table = Table(title=title or None, show_lines=False, pad_edge=False)
    for col in first:
        table.add_column(col, overflow="fold")
    for item in items:
        d = _to_dict(item)
        table.add_row(*(str(v) for v in d.values()))
    console.print(table)


def _print_dict(data: dict[str, Any], *, title: str = "") -> None:
    """Render a single dict as key-value pairs."""
    if title:
        console.print(f"[bold]{title}[/bold]")
    for k, v in data.items():
        console.print(f"  [cyan]{k}[/cyan]: {v}")
