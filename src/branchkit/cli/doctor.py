"""Check runtime dependencies and configuration."""

from __future__ import annotations

import sys

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table
from rich.text import Text

from branchkit.cli.common import config_path_from
from branchkit.config.manager import ConfigManager, ConfigurationError
from branchkit.utils.dependencies import DependencyInfo, check_all
from branchkit.utils.exit_codes import ExitCode

console = Console()


def _render_table(results: list[DependencyInfo]) -> Table:
    table = Table(title="branchkit doctor")
    table.add_column("Dependency", style="bold")
    table.add_column("Installed")
    table.add_column("Version")
    table.add_column("Path", overflow="fold")

    for info in results:
        if info.installed:
            installed = Text("Yes", style="green")
        elif info.required:
            installed = Text("No", style="red")
        else:
            installed = Text("No (optional)", style="yellow")
        table.add_row(info.name, installed, info.version or "-", info.path or "-")
    return table


def doctor_command(ctx: typer.Context) -> None:
    """Check runtime dependencies and configuration."""
    results = check_all()
    required_missing = [r.name for r in results if r.required and not r.installed]

    console.print(_render_table(results))

    config = ConfigManager(config_path_from(ctx))
    try:
        config.load()
    except ConfigurationError as e:
        console.print(f"[red]Configuration:[/red] {escape(str(e))}")
        raise typer.Exit(ExitCode.INVALID_CONFIG) from e

    console.print(f"[green]Configuration:[/green] {escape(str(config.config_path))}")
    console.print(f"[green]History database:[/green] {escape(str(config.database_path()))}")

    if sys.version_info < (3, 10):
        py = next(r for r in results if r.name == "python")
        console.print(
            "[yellow]Warning:[/yellow] Python 3.10+ is required. Detected "
            f"[bold]{py.version}[/bold] at {py.path}"
        )

    if required_missing:
        console.print("[red]Missing required dependencies:[/red] " + ", ".join(required_missing))
        raise typer.Exit(ExitCode.MISSING_DEPS)

    console.print("[green]All required dependencies are installed.[/green]")
    raise typer.Exit(ExitCode.SUCCESS)
