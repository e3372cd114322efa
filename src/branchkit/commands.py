"""Async command layer.

Every command runs its blocking work on a worker thread and returns a
:class:`CommandResult`. Exceptions stop here: a failed command carries the
message ``"<Operation> failed: <error>"`` instead of raising.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Generic, TypeVar

from branchkit.branches.history import DEFAULT_HISTORY_LIMIT, BranchHistoryStore
from branchkit.branches.models import (
    BranchConfig,
    BranchCreateRequest,
    BranchCreateResult,
    BranchHistoryEntry,
    BranchPattern,
    FeatureType,
)
from branchkit.branches.service import BranchAutomationService
from branchkit.config.manager import ConfigManager
from branchkit.credentials.vault import CredentialVault
from branchkit.git.models import CloneResult, GitBranch, GitCredentials, GitStatus
from branchkit.git.repository import RepositoryDriver
from branchkit.utils.system_info import SystemInfo
from branchkit.workspace import prepare_workspace

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class CommandResult(Generic[T]):
    """Value of a command, or the error that replaced it."""

    ok: bool
    value: T | None = None
    error: str | None = None

    def unwrap(self) -> T:
        """Return the value, raising ``RuntimeError`` for a failed command."""
        if not self.ok:
            raise RuntimeError(self.error)
        return self.value  # type: ignore[return-value]


class GitCommands:
    """Caller-facing repository, credential and branch operations."""

    def __init__(
        self,
        driver: RepositoryDriver,
        vault: CredentialVault,
        service: BranchAutomationService,
    ):
        self.driver = driver
        self.vault = vault
        self.service = service

    @classmethod
    def from_config(cls, config: ConfigManager | None = None) -> GitCommands:
        """Wire the commands from a configuration file.

        Raises:
            ConfigurationError: If the configuration cannot be loaded.
            HistoryStoreError: If the history database cannot be opened.
        """
        config = config or ConfigManager()
        config.load()
        driver = RepositoryDriver(
            ssh_dir=config.ssh_dir(),
            fallback_name=config.get("commit.fallback_name"),
            fallback_email=config.get("commit.fallback_email"),
        )
        store = BranchHistoryStore.open(config.database_path())
        vault = CredentialVault(service_name=config.get("credentials.service_name"))
        return cls(driver, vault, BranchAutomationService.from_store(driver, store))

    async def _run(self, operation: str, func: Callable[..., T], *args: Any) -> CommandResult[T]:
        try:
            value = await asyncio.to_thread(func, *args)
        except Exception as e:
            logger.error(f"{operation} failed: {e}")
            return CommandResult(ok=False, error=f"{operation} failed: {e}")
        return CommandResult(ok=True, value=value)

    # Repository

    async def clone_repository(
        self, url: str, path: str | Path, credentials: GitCredentials | None = None
    ) -> CommandResult[CloneResult]:
        return await self._run("Clone", self.driver.clone, url, path, credentials)

    async def initialize_repository(self, path: str | Path) -> CommandResult[CloneResult]:
        return await self._run("Initialize repository", self.driver.initialize, path)

    async def get_repository_status(self, path: str | Path) -> CommandResult[GitStatus]:
        return await self._run("Get repository status", self.driver.status, path)

    async def get_branches(self, path: str | Path) -> CommandResult[list[GitBranch]]:
        return await self._run("Get branches", self.driver.list_branches, path)

    async def check_repository_exists(self, path: str | Path) -> CommandResult[bool]:
        return await self._run("Check repository", self.driver.repository_exists, path)

    async def add_all_changes(self, path: str | Path) -> CommandResult[CloneResult]:
        return await self._run("Add changes", self.driver.add_all, path)

    async def commit_changes(self, path: str | Path, message: str) -> CommandResult[CloneResult]:
        return await self._run("Commit", self.driver.commit, path, message)

    async def prepare_workspace(
        self,
        path: str | Path,
        url: str | None = None,
        credentials: GitCredentials | None = None,
        credential_key: str | None = None,
    ) -> CommandResult[CloneResult]:
        return await self._run(
            "Prepare workspace",
            prepare_workspace,
            self.driver,
            self.vault,
            path,
            url,
            credentials,
            credential_key,
        )

    # Credentials

    async def store_credentials(
        self, key: str, credentials: GitCredentials
    ) -> CommandResult[None]:
        return await self._run("Store credentials", self.vault.store, key, credentials)

    async def get_credentials(self, key: str) -> CommandResult[GitCredentials]:
        return await self._run("Get credentials", self.vault.get, key)

    async def delete_credentials(self, key: str) -> CommandResult[None]:
        return await self._run("Delete credentials", self.vault.delete, key)

    async def credentials_exist(self, key: str) -> CommandResult[bool]:
        return await self._run("Check credentials", self.vault.exists, key)

    # Branch automation

    async def get_system_info(self) -> CommandResult[SystemInfo]:
        return await self._run("Get system info", self.service.get_system_info)

    async def get_branch_config(self) -> CommandResult[BranchConfig]:
        return await self._run("Get branch config", self.service.get_branch_config)

    async def generate_branch_name(self, pattern: BranchPattern) -> CommandResult[str]:
        return await self._run(
            "Generate branch name", self.service.generate_branch_name, pattern
        )

    async def suggest_branch_pattern(
        self, workspace_name: str, feature_type: FeatureType | None = None
    ) -> CommandResult[BranchPattern]:
        return await self._run(
            "Suggest branch pattern", self.service.suggest_pattern, workspace_name, feature_type
        )

    async def create_branch(
        self, workspace_path: str | Path, request: BranchCreateRequest
    ) -> CommandResult[BranchCreateResult]:
        return await self._run(
            "Create branch", self.service.create_branch, workspace_path, request
        )

    async def quick_create_feature_branch(
        self,
        workspace_path: str | Path,
        workspace_name: str,
        description: str | None,
        feature_type: FeatureType | None = None,
    ) -> CommandResult[BranchCreateResult]:
        return await self._run(
            "Create branch",
            self.service.quick_create_feature_branch,
            workspace_path,
            workspace_name,
            description,
            feature_type,
        )

    async def list_branches(self, workspace_path: str | Path) -> CommandResult[list[GitBranch]]:
        return await self._run("List branches", self.service.list_branches, workspace_path)

    async def get_branch_history(
        self, limit: int = DEFAULT_HISTORY_LIMIT, workspace: str | None = None
    ) -> CommandResult[list[BranchHistoryEntry]]:
        return await self._run(
            "Get branch history", self.service.get_branch_history, limit, workspace
        )

    async def get_suggested_branches(
        self, workspace_name: str
    ) -> CommandResult[list[tuple[FeatureType, str]]]:
        return await self._run(
            "Get suggested branches", self.service.get_suggested_branches, workspace_name
        )

    async def update_branch_config(self, config: BranchConfig) -> CommandResult[None]:
        return await self._run("Update branch config", self.service.update_config, config)
