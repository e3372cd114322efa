"""Helpers shared by the CLI commands."""

from __future__ import annotations

import asyncio
from collections.abc import Coroutine
from pathlib import Path
from typing import Any, TypeVar

import typer
from rich.console import Console
from rich.markup import escape

from branchkit.commands import CommandResult, GitCommands
from branchkit.config.manager import ConfigManager
from branchkit.errors import BranchkitError
from branchkit.utils.exit_codes import ExitCode

T = TypeVar("T")

console = Console()


def config_path_from(ctx: typer.Context) -> Path | None:
    return ctx.obj.get("config_path") if ctx.obj else None


def load_commands(ctx: typer.Context) -> GitCommands:
    """Build the command layer from the configuration selected on the command line."""
    try:
        return GitCommands.from_config(ConfigManager(config_path_from(ctx)))
    except BranchkitError as e:
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        raise typer.Exit(ExitCode.INVALID_CONFIG) from e


def run(coro: Coroutine[Any, Any, CommandResult[T]]) -> T:
    """Run a command and return its value; exit with an error otherwise."""
    result = asyncio.run(coro)
    if not result.ok:
        console.print(f"[red]Error:[/red] {escape(result.error or 'unknown error')}")
        raise typer.Exit(ExitCode.GENERAL_ERROR)
    return result.value  # type: ignore[return-value]
