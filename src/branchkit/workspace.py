"""Workspace preparation: clone a remote or start a fresh repository."""

from __future__ import annotations

import logging
from pathlib import Path

from branchkit.credentials.vault import (
    CredentialNotFoundError,
    CredentialVault,
    credential_key_for_url,
)
from branchkit.git.models import CloneResult, GitCredentials
from branchkit.git.repository import RepositoryDriver

logger = logging.getLogger(__name__)

DEFAULT_GITIGNORE = """\
# branchkit workspace files
.branchkit/cache/
.branchkit/logs/
.DS_Store
Thumbs.db

# Environment files with secrets
**/*.env.local
**/*.env.secret

# Temporary files
*.tmp
*.temp
"""


def clone_failure_message(url: str, message: str) -> str:
    """Turn a failed clone message into advice for the user."""
    lowered = message.lower()
    if "authentication" in lowered:
        return (
            "Git authentication failed. Please ensure:\n"
            "• Your SSH key is added to ssh-agent: `ssh-add ~/.ssh/id_ed25519`\n"
            "• Your SSH key is added to your Git provider\n"
            f"• The repository URL is correct: {url}\n\n"
            f"Original error: {message}"
        )
    if "not found" in lowered or "does not exist" in lowered:
        return (
            "Repository not found. Please check:\n"
            f"• The repository URL is correct: {url}\n"
            "• You have access to the repository\n"
            "• The repository exists\n\n"
            f"Original error: {message}"
        )
    return f"Failed to clone Git repository: {message}"


def prepare_workspace(
    driver: RepositoryDriver,
    vault: CredentialVault,
    path: str | Path,
    url: str | None = None,
    credentials: GitCredentials | None = None,
    credential_key: str | None = None,
) -> CloneResult:
    """Make ``path`` a usable repository.

    With a URL the remote is cloned, using inline credentials or those stored
    in the vault for the remote. Without one, the directory is created and
    initialized with a default ``.gitignore``.

    Raises:
        OSError: If the workspace directory cannot be created.
    """
    workspace_path = Path(path).expanduser()

    if url:
        if credentials is None:
            key = credential_key or credential_key_for_url(url)
            if vault.exists(key):
                try:
                    credentials = vault.get(key)
                    logger.debug(f"Using stored credentials for {key}")
                except CredentialNotFoundError:
                    credentials = None

        result = driver.clone(url, workspace_path, credentials)
        if not result.success:
            result.message = clone_failure_message(url, result.message)
        return result

    workspace_path.mkdir(parents=True, exist_ok=True)
    result = driver.initialize(workspace_path)
    if not result.success:
        return result

    gitignore = workspace_path / ".gitignore"
    if not gitignore.exists():
        gitignore.write_text(DEFAULT_GITIGNORE)
        logger.debug(f"Wrote default .gitignore to {gitignore}")

    return result
