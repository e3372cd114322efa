"""Entry point for branchkit CLI."""

import sys
from pathlib import Path

import typer
from rich.console import Console

from branchkit import __version__
from branchkit.cli.branch import branch_app
from branchkit.cli.creds import creds_app
from branchkit.cli.doctor import doctor_command
from branchkit.cli.repo import branches_command, clone_command, init_command, status_command
from branchkit.config.manager import VALID_LOG_LEVELS, ConfigManager, ConfigurationError
from branchkit.utils.logging import setup_logging

app = typer.Typer(
    name="branchkit",
    help="Clone repositories and create consistently named branches",
    add_completion=True,
    no_args_is_help=True,
)
console = Console()

# Register commands
app.command("clone")(clone_command)
app.command("init")(init_command)
app.command("status")(status_command)
app.command("branches")(branches_command)
app.command("doctor")(doctor_command)
app.add_typer(creds_app, name="creds")
app.add_typer(branch_app, name="branch")


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"branchkit {__version__}")
        raise typer.Exit()


def _configured_log_level(config_path: Path | None) -> str:
    try:
        return ConfigManager(config_path).get("logging.level", "WARNING")
    except ConfigurationError:
        # Reported by the command that loads the config
        return "WARNING"


@app.callback()
def _global_options(
    ctx: typer.Context,
    version: bool = typer.Option(
        False,
        "--version",
        "-V",
        help="Show the branchkit version and exit",
        callback=_version_callback,
        is_eager=True,
    ),
    log_level: str | None = typer.Option(
        None,
        "--log-level",
        "-l",
        help="Set logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
        case_sensitive=False,
    ),
    config: Path | None = typer.Option(
        None,
        "--config",
        "-c",
        help="Configuration file (default: ~/.branchkit/config.json)",
    ),
) -> None:
    """Global options processed before subcommands."""
    level = (log_level or _configured_log_level(config)).upper()
    if level not in VALID_LOG_LEVELS:
        raise typer.BadParameter(
            f"must be one of {', '.join(VALID_LOG_LEVELS)}", param_hint="--log-level"
        )
    # Initialize logging as early as possible
    setup_logging(level)

    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config


def main() -> int:
    """Main entry point for the CLI."""
    try:
        app()
        return 0
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted by user[/yellow]")
        return 130
    except Exception as e:
        console.print(f"[red]Error: {e}[/red]")
        return 1


if __name__ == "__main__":
    sys.exit(main())
