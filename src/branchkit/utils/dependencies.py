"""Runtime dependency checks for branchkit.

Covers the pieces a repository or credential operation relies on:
- python: interpreter path and version
- pygit2: binding version and the libgit2 it was built against
- keyring: the active credential backend
- git: presence and version (optional, for working alongside the CLI)

The checks do not touch any repository or stored credential.
"""

from __future__ import annotations

import shutil
import subprocess
import sys
from dataclasses import dataclass

import keyring
import pygit2
from keyring.backends import fail


@dataclass
class DependencyInfo:
    """Basic information about a runtime dependency."""

    name: str
    installed: bool
    version: str | None = None
    path: str | None = None
    required: bool = True


def _run_version_command(args: list[str]) -> str | None:
    """Run a version command and return its output, or None on failure."""
    try:
        result = subprocess.run(
            args,
            check=False,
            capture_output=True,
            text=True,
        )
    except OSError:
        return None
    output = result.stdout.strip() or result.stderr.strip()
    return output or None


def check_python() -> DependencyInfo:
    """Return current Python interpreter information."""
    version = f"{sys.version_info.major}.{sys.version_info.minor}.{sys.version_info.micro}"
    return DependencyInfo(name="python", installed=True, version=version, path=sys.executable)


def check_pygit2() -> DependencyInfo:
    """Report the pygit2 binding and its libgit2."""
    version = f"{pygit2.__version__} (libgit2 {pygit2.LIBGIT2_VERSION})"
    return DependencyInfo(name="pygit2", installed=True, version=version, path=pygit2.__file__)


def check_keyring() -> DependencyInfo:
    """Report the active keyring backend.

    The fail backend means no usable credential store was found.
    """
    backend = keyring.get_keyring()
    name = f"{type(backend).__module__}.{type(backend).__name__}"
    return DependencyInfo(
        name="keyring", installed=not isinstance(backend, fail.Keyring), version=name
    )


def check_git() -> DependencyInfo:
    """Check for git presence and version."""
    path = shutil.which("git")
    if not path:
        return DependencyInfo(name="git", installed=False, required=False)
    version = _run_version_command([path, "--version"])
    return DependencyInfo(name="git", installed=True, version=version, path=path, required=False)


def check_all() -> list[DependencyInfo]:
    """Run all dependency checks and return results."""
    return [check_python(), check_pygit2(), check_keyring(), check_git()]
