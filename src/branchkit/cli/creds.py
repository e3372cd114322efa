"""Credential vault commands."""

import typer
from rich.markup import escape
from rich.table import Table

from branchkit.cli.common import console, load_commands, run
from branchkit.git.models import GitCredentials
from branchkit.utils.exit_codes import ExitCode

creds_app = typer.Typer(help="Manage credentials stored in the system keyring", no_args_is_help=True)


@creds_app.command("store")
def store_command(
    ctx: typer.Context,
    key: str = typer.Argument(..., help="Vault key, e.g. github.com/acme/api"),
    username: str = typer.Option(..., "--username", "-u", prompt=True, help="Username"),
    password: str = typer.Option(
        ..., "--password", "-p", prompt=True, hide_input=True, help="Password or token"
    ),
    ssh_key: str | None = typer.Option(
        None, "--ssh-key", help="Private key to try before the default keys"
    ),
) -> None:
    """Store credentials for a remote."""
    commands = load_commands(ctx)
    credentials = GitCredentials(username=username, password=password, ssh_key_path=ssh_key)
    run(commands.store_credentials(key, credentials))
    console.print(f"[green]✓[/green] Stored credentials for [cyan]{escape(key)}[/cyan]")
    raise typer.Exit(ExitCode.SUCCESS)


@creds_app.command("get")
def get_command(
    ctx: typer.Context,
    key: str = typer.Argument(..., help="Vault key"),
) -> None:
    """Show stored credentials with the secret masked."""
    commands = load_commands(ctx)
    exists = run(commands.credentials_exist(key))
    if not exists:
        console.print(f"[yellow]No credentials stored for[/yellow] [cyan]{escape(key)}[/cyan]")
        raise typer.Exit(ExitCode.NOT_FOUND)

    credentials = run(commands.get_credentials(key))
    table = Table(show_header=False)
    table.add_column("Field", style="bold")
    table.add_column("Value")
    table.add_row("Key", escape(key))
    table.add_row("Username", escape(credentials.username))
    table.add_row("Password", "***")
    table.add_row("SSH key", escape(credentials.ssh_key_path or "-"))
    console.print(table)
    raise typer.Exit(ExitCode.SUCCESS)


@creds_app.command("delete")
def delete_command(
    ctx: typer.Context,
    key: str = typer.Argument(..., help="Vault key"),
) -> None:
    """Delete stored credentials."""
    commands = load_commands(ctx)
    if not run(commands.credentials_exist(key)):
        console.print(f"[yellow]No credentials stored for[/yellow] [cyan]{escape(key)}[/cyan]")
        raise typer.Exit(ExitCode.NOT_FOUND)

    run(commands.delete_credentials(key))
    console.print(f"[green]✓[/green] Deleted credentials for [cyan]{escape(key)}[/cyan]")
    raise typer.Exit(ExitCode.SUCCESS)


@creds_app.command("exists")
def exists_command(
    ctx: typer.Context,
    key: str = typer.Argument(..., help="Vault key"),
) -> None:
    """Exit with 0 when credentials are stored, 4 otherwise."""
    commands = load_commands(ctx)
    if run(commands.credentials_exist(key)):
        console.print(f"[green]✓[/green] Credentials stored for [cyan]{escape(key)}[/cyan]")
        raise typer.Exit(ExitCode.SUCCESS)

    console.print(f"[yellow]No credentials stored for[/yellow] [cyan]{escape(key)}[/cyan]")
    raise typer.Exit(ExitCode.NOT_FOUND)
