"""Repository commands: clone, init, status and branches."""

import json
from pathlib import Path

import typer
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from branchkit.cli.common import console, load_commands, run
from branchkit.git.models import GitCredentials
from branchkit.utils.exit_codes import ExitCode


def clone_command(
    ctx: typer.Context,
    url: str = typer.Argument(..., help="Remote repository URL"),
    path: Path = typer.Argument(..., help="Directory to clone into"),
    username: str | None = typer.Option(None, "--username", "-u", help="Username for HTTPS"),
    password: str | None = typer.Option(
        None, "--password", "-p", help="Password or token for HTTPS"
    ),
    credential_key: str | None = typer.Option(
        None, "--credential-key", "-k", help="Vault key holding credentials for this remote"
    ),
) -> None:
    """Clone a remote repository, using stored credentials when available."""
    credentials = None
    if username and password:
        credentials = GitCredentials(username=username, password=password)
    elif username or password:
        console.print("[red]Error:[/red] --username and --password must be given together")
        raise typer.Exit(ExitCode.INVALID_CONFIG)

    commands = load_commands(ctx)
    result = run(
        commands.prepare_workspace(
            path, url=url, credentials=credentials, credential_key=credential_key
        )
    )

    if not result.success:
        console.print(Panel(escape(result.message), title="Clone failed", border_style="red"))
        raise typer.Exit(ExitCode.GENERAL_ERROR)

    console.print(f"[green]✓[/green] Cloned [cyan]{escape(url)}[/cyan] into {escape(result.path)}")
    raise typer.Exit(ExitCode.SUCCESS)


def init_command(
    ctx: typer.Context,
    path: Path = typer.Argument(..., help="Directory for the new repository"),
) -> None:
    """Create a repository with a default .gitignore."""
    commands = load_commands(ctx)
    result = run(commands.prepare_workspace(path))

    if not result.success:
        console.print(f"[red]Error:[/red] {escape(result.message)}")
        raise typer.Exit(ExitCode.GENERAL_ERROR)

    console.print(f"[green]✓[/green] {result.message}: {escape(result.path)}")
    raise typer.Exit(ExitCode.SUCCESS)


def status_command(
    ctx: typer.Context,
    path: Path = typer.Argument(Path("."), help="Repository path"),
    json_output: bool = typer.Option(False, "--json", help="Output in JSON format"),
) -> None:
    """Show the branch and changed files of a repository."""
    commands = load_commands(ctx)
    status = run(commands.get_repository_status(path))

    if json_output:
        typer.echo(json.dumps(status.to_dict(), indent=2))
        raise typer.Exit(ExitCode.SUCCESS)

    state = "[green]clean[/green]" if status.is_clean else "[yellow]dirty[/yellow]"
    console.print(
        Panel(
            f"Branch: [cyan]{escape(status.current_branch)}[/cyan]\nWorking tree: {state}",
            title="Repository Status",
            border_style="green" if status.is_clean else "yellow",
        )
    )

    if not status.is_clean:
        table = Table(show_header=True, header_style="bold cyan")
        table.add_column("State", style="cyan")
        table.add_column("File")
        for label, files in (
            ("staged", status.staged_files),
            ("modified", status.modified_files),
            ("untracked", status.untracked_files),
        ):
            for name in files:
                table.add_row(label, escape(name))
        console.print(table)

    raise typer.Exit(ExitCode.SUCCESS)


def branches_command(
    ctx: typer.Context,
    path: Path = typer.Argument(Path("."), help="Repository path"),
    json_output: bool = typer.Option(False, "--json", help="Output in JSON format"),
) -> None:
    """List local branches with their latest commit."""
    commands = load_commands(ctx)
    branches = run(commands.get_branches(path))

    if json_output:
        typer.echo(json.dumps([b.to_dict() for b in branches], indent=2))
        raise typer.Exit(ExitCode.SUCCESS)

    table = Table(show_header=True, header_style="bold cyan")
    table.add_column("", width=1)
    table.add_column("Branch", style="cyan")
    table.add_column("Commit")
    table.add_column("Message")
    for branch in branches:
        table.add_row(
            "*" if branch.is_current else "",
            escape(branch.name),
            (branch.last_commit_hash or "-")[:8],
            escape(branch.last_commit_message or ""),
        )
    console.print(table)
    raise typer.Exit(ExitCode.SUCCESS)
