"""
CLI: ``dindex serve`` — run the API under uvicorn.

Rate limits and telemetry key on the caller's address, so behind a load
balancer the proxy's ``X-Forwarded-For`` must be trusted: pass
``--forwarded-allow-ips`` with the balancer's address (``*`` trusts all).
"""

from __future__ import annotations

import typer
import uvicorn

from dindex.cli.utils import console

app = typer.Typer(no_args_is_help=True)


@app.command("start")
def start(
    host: str | None = typer.Option(None, "--host", help="Bind address (default: DINDEX_HOST)"),
    port: int | None = typer.Option(None, "--port", "-p", help="Bind port (default: DINDEX_PORT)"),
    workers: int = typer.Option(1, "--workers", "-w", min=1, help="Worker processes"),
    reload: bool = typer.Option(False, "--reload", help="Reload on code changes (development)"),
    forwarded_allow_ips: str = typer.Option(
        "127.0.0.1", "--forwarded-allow-ips", help="Proxies whose X-Forwarded-* headers are trusted"
    ),
) -> None:
    """Start the dindex REST API server."""
    from dindex.api.deps import get_settings

    settings = get_settings()
    host = host or settings.host
    port = port or settings.port
    if reload and workers > 1:
        console.print("[yellow]--reload ignores --workers; starting a single process[/yellow]")
        workers = 1

    console.print(
        f"[bold green]dindex API[/bold green] on http://{host}:{port}{settings.api_prefix} "
        f"([dim]{workers} worker(s), db {settings.database_url.split('://', 1)[0]}[/dim])"
    )
    uvicorn.run(
        "dindex.api.app:create_app",
        factory=True,
        host=host,
        port=port,
        workers=workers,
        reload=reload,
        proxy_headers=True,
        forwarded_allow_ips=forwarded_allow_ips,
        log_level=settings.log_level.lower(),
    )
