"""
taskmirror CLI - Serve command.

Runs the HTTP API with uvicorn.
"""

from pathlib import Path

import typer
import uvicorn
from rich.console import Console

from taskmirror.api.app import create_app
from taskmirror.cli.options import resolve_config, setup_logging

console = Console()


def serve(
    ctx: typer.Context,
    host: str | None = typer.Option(
        None,
        "--host",
        help="Interface to bind (default: api.host)",
    ),
    port: int | None = typer.Option(
        None,
        "--port",
        "-p",
        min=1,
        max=65535,
        help="Port to listen on (default: api.port)",
    ),
    backend: str | None = typer.Option(
        None,
        "--backend",
        help="Store backend: sqlite or memory",
    ),
    db: Path | None = typer.Option(
        None,
        "--db",
        help="SQLite database file",
    ),
    debug: bool = typer.Option(
        False,
        "--debug",
        help="Enable debug logging",
    ),
) -> None:
    """
    Start the taskmirror HTTP API.

    Examples:
        taskmirror serve
        taskmirror serve --port 9000 --db ./data/tasks.db
        taskmirror serve --backend memory
    """
    debug = debug or bool((ctx.obj or {}).get("debug"))
    config = resolve_config(backend, db)
    setup_logging(config, debug)

    if host:
        config.api.host = host
    if port:
        config.api.port = port

    if config.store.backend == "sqlite":
        config.store.path.parent.mkdir(parents=True, exist_ok=True)
        console.print(f"[dim]Database: {config.store.path}[/dim]")
    else:
        console.print("[yellow]Using in-memory store; data is lost on exit[/yellow]")

    url = f"http://{config.api.host}:{config.api.port}"
    console.print("[bold cyan]Starting taskmirror API...[/bold cyan]")
    console.print(f"[dim]API: {url}/api[/dim]")
    console.print(f"[dim]Docs: {url}/docs[/dim]")
    console.print("\n[dim]Press Ctrl+C to stop[/dim]\n")

    try:
        uvicorn.run(
            create_app(config),
            host=config.api.host,
            port=config.api.port,
            log_level="debug" if debug else config.logging.level.lower(),
        )
    except KeyboardInterrupt:
        console.print("\n[yellow]Server stopped[/yellow]")
        raise typer.Exit(0)
