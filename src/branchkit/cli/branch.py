"""Branch automation commands."""

import json
from pathlib import Path

import typer
from rich.markup import escape
from rich.table import Table

from branchkit.branches.models import BranchConfig, BranchConfigError, BranchCreateRequest, FeatureType
from branchkit.cli.common import console, load_commands, run
from branchkit.utils.exit_codes import ExitCode

branch_app = typer.Typer(help="Create branches from naming patterns", no_args_is_help=True)


def _parse_feature_type(value: str | None) -> FeatureType | None:
    if value is None:
        return None
    try:
        return FeatureType.parse(value)
    except BranchConfigError as e:
        choices = ", ".join(t.value for t in FeatureType)
        raise typer.BadParameter(f"{e}. Choose from: {choices}") from e


@branch_app.command("create")
def create_command(
    ctx: typer.Context,
    path: Path = typer.Argument(Path("."), help="Repository path"),
    workspace: str = typer.Option(..., "--workspace", "-w", help="Workspace name for the branch"),
    feature_type: str | None = typer.Option(
        None, "--type", "-t", help="Feature type (feature, bugfix, hotfix, ...)"
    ),
    description: str | None = typer.Option(
        None, "--description", "-d", help="Short description appended to the name"
    ),
    base: str | None = typer.Option(None, "--base", "-b", help="Base branch or revision"),
    no_switch: bool = typer.Option(
        False, "--no-switch", help="Stay on the base branch after creating"
    ),
) -> None:
    """Create a branch named after the workspace, user and machine."""
    kind = _parse_feature_type(feature_type)
    commands = load_commands(ctx)

    pattern = run(commands.suggest_branch_pattern(workspace, kind)).with_description(description)
    request = BranchCreateRequest(pattern=pattern, base_branch=base, auto_switch=not no_switch)
    result = run(commands.create_branch(path, request))

    if not result.created:
        console.print(f"[yellow]⚠[/yellow] {escape(result.message)}")
        raise typer.Exit(ExitCode.GENERAL_ERROR)

    console.print(f"[green]✓[/green] {escape(result.message)}")
    raise typer.Exit(ExitCode.SUCCESS)


@branch_app.command("suggest")
def suggest_command(
    ctx: typer.Context,
    workspace: str = typer.Argument(..., help="Workspace name"),
) -> None:
    """Show a branch name for every allowed feature type."""
    commands = load_commands(ctx)
    suggestions = run(commands.get_suggested_branches(workspace))

    table = Table(show_header=True, header_style="bold cyan")
    table.add_column("Type", style="cyan")
    table.add_column("Branch name")
    for kind, name in suggestions:
        table.add_row(kind.value, escape(name))
    console.print(table)
    raise typer.Exit(ExitCode.SUCCESS)


@branch_app.command("history")
def history_command(
    ctx: typer.Context,
    limit: int = typer.Option(50, "--limit", "-n", min=1, help="Number of entries to show"),
    workspace: str | None = typer.Option(
        None, "--workspace", "-w", help="Only show branches of this workspace"
    ),
    json_output: bool = typer.Option(False, "--json", help="Output in JSON format"),
) -> None:
    """Show branches created by branchkit, newest first."""
    commands = load_commands(ctx)
    entries = run(commands.get_branch_history(limit, workspace))

    if json_output:
        typer.echo(json.dumps([e.to_dict() for e in entries], indent=2))
        raise typer.Exit(ExitCode.SUCCESS)

    if not entries:
        console.print("[dim]No branches recorded yet[/dim]")
        raise typer.Exit(ExitCode.SUCCESS)

    table = Table(show_header=True, header_style="bold cyan")
    table.add_column("Created", style="dim")
    table.add_column("Branch", style="cyan")
    table.add_column("Workspace")
    table.add_column("Type")
    for entry in entries:
        table.add_row(
            entry.created_at.strftime("%Y-%m-%d %H:%M:%S"),
            escape(entry.branch_name),
            escape(entry.pattern.workspace),
            entry.pattern.feature_type.value,
        )
    console.print(table)
    raise typer.Exit(ExitCode.SUCCESS)


@branch_app.command("config")
def config_command(
    ctx: typer.Context,
    set_json: Path | None = typer.Option(
        None, "--set-json", help="Replace the branch config with the contents of a JSON file"
    ),
) -> None:
    """Show or replace the branch naming configuration."""
    commands = load_commands(ctx)

    if set_json is not None:
        try:
            config = BranchConfig.from_json(set_json.read_text())
        except OSError as e:
            console.print(f"[red]Error:[/red] Cannot read {escape(str(set_json))}: {escape(str(e))}")
            raise typer.Exit(ExitCode.INVALID_CONFIG) from e
        except BranchConfigError as e:
            console.print(f"[red]Error:[/red] {escape(str(e))}")
            raise typer.Exit(ExitCode.INVALID_CONFIG) from e
        run(commands.update_branch_config(config))
        console.print("[green]✓[/green] Branch configuration updated")

    config = run(commands.get_branch_config())
    typer.echo(json.dumps(config.to_dict(), indent=2))
    raise typer.Exit(ExitCode.SUCCESS)
