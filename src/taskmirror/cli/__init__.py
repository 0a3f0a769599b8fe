"""
taskmirror CLI - Main application entry point.
"""

import typer
from rich.console import Console

from taskmirror import __version__
from taskmirror.cli import check, serve
from taskmirror.core.config.env import load_layered_env

app = typer.Typer(
    name="taskmirror",
    help="Users and tasks with a consistent assignment mirror",
    no_args_is_help=True,
)

console = Console()


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"taskmirror version {__version__}")
        raise typer.Exit(0)


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    debug: bool = typer.Option(
        False,
        "--debug",
        help="Enable debug logging",
    ),
    version: bool = typer.Option(
        False,
        "--version",
        help="Show version and exit",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    """
    taskmirror keeps each task's assignee and each user's pending list in sync.

    Run `taskmirror serve` to start the HTTP API, or `taskmirror check` to
    audit an existing database.
    """
    # Load .env files before any command reads TASKMIRROR_* settings
    load_layered_env()

    ctx.ensure_object(dict)
    ctx.obj["debug"] = debug


app.command(name="serve")(serve.serve)
app.command(name="check")(check.check)


def cli_main() -> None:
    """Main CLI entry point."""
    app()


__all__ = ["app", "cli_main"]
