"""
taskmirror CLI - Check command.

Audits a store for disagreements between task assignments and users'
pending lists.
"""

from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from taskmirror.cli.options import resolve_config, setup_logging
from taskmirror.core.exceptions import TaskMirrorError
from taskmirror.core.store import get_backend
from taskmirror.core.sync import IssueSeverity, verify_mirror

console = Console()


def check(
    ctx: typer.Context,
    fix: bool = typer.Option(
        False,
        "--fix",
        help="Rebuild inconsistent pending lists from task assignments",
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
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Show info-level issues such as stale cached names",
    ),
) -> None:
    """
    Check that pending lists mirror task assignments.

    Exits with status 1 when errors are found.

    Examples:

        # Audit the configured database
        taskmirror check

        # Audit and repair pending lists
        taskmirror check --fix --db ./data/tasks.db
    """
    debug = bool((ctx.obj or {}).get("debug"))
    config = resolve_config(backend, db)
    setup_logging(config, debug)

    if config.store.backend == "sqlite" and not config.store.path.exists():
        console.print(f"[red]Error:[/red] Database not found: {config.store.path}")
        raise typer.Exit(1)

    try:
        store = get_backend(config.store)
    except TaskMirrorError as e:
        console.print(f"[red]Error:[/red] {e.message}")
        raise typer.Exit(1)

    try:
        console.print("[cyan]Checking assignment mirror...[/cyan]")
        if fix:
            console.print("[yellow]Auto-fix mode enabled[/yellow]")
        result = verify_mirror(store, fix=fix)
    except TaskMirrorError as e:
        console.print(f"[red]Error:[/red] {e.message}")
        raise typer.Exit(1)
    finally:
        store.close()

    console.print(f"  Users checked: {result.users_checked}")
    console.print(f"  Tasks checked: {result.tasks_checked}")
    console.print()

    issues = result.issues
    if not verbose:
        issues = [i for i in issues if i.severity != IssueSeverity.INFO]

    if issues:
        table = Table(title="Issues Found", show_header=True)
        table.add_column("Severity", style="bold")
        table.add_column("Category", style="cyan")
        table.add_column("Message")
        table.add_column("Location", style="dim")

        for issue in issues:
            if issue.severity == IssueSeverity.ERROR:
                severity_str = f"[red]{issue.severity.value.upper()}[/red]"
            elif issue.severity == IssueSeverity.WARNING:
                severity_str = f"[yellow]{issue.severity.value.upper()}[/yellow]"
            else:
                severity_str = f"[blue]{issue.severity.value.upper()}[/blue]"
            table.add_row(severity_str, issue.category, issue.message, issue.location or "")

        console.print(table)
        console.print()

    if fix and result.auto_fixed > 0:
        console.print(f"[green]Rebuilt {result.auto_fixed} pending list(s)[/green]")

    # Fixable errors are gone after --fix; anything else still fails the check
    remaining = [
        i for i in result.issues
        if i.severity == IssueSeverity.ERROR and not (fix and i.auto_fixable)
    ]
    if remaining:
        console.print(f"[red]Found {len(remaining)} error(s)[/red]")
        raise typer.Exit(1)
    if result.has_warnings:
        console.print(f"[yellow]Found {result.warning_count} warning(s)[/yellow]")
    elif not result.has_errors:
        console.print("[green]No issues found - mirror is consistent[/green]")
