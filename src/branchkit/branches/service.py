"""Branch lifecycle operations on top of the repository driver."""

from __future__ import annotations

import logging
import threading
from pathlib import Path

from branchkit.branches.history import DEFAULT_HISTORY_LIMIT, BranchHistoryStore
from branchkit.branches.models import (
    BranchConfig,
    BranchConfigError,
    BranchCreateRequest,
    BranchCreateResult,
    BranchHistoryEntry,
    BranchPattern,
    FeatureType,
)
from branchkit.branches.naming import BranchNameError, BranchNameGenerator
from branchkit.git.models import GitBranch
from branchkit.git.repository import RepositoryDriver
from branchkit.utils.system_info import SystemInfo, detect_system_info

logger = logging.getLogger(__name__)


class BranchAutomationService:
    """Creates branches from naming patterns and keeps their history.

    The name generator is immutable. ``update_config`` builds a new one and
    swaps the reference under a lock; calls already running keep the
    generator they started with.
    """

    def __init__(
        self,
        driver: RepositoryDriver,
        store: BranchHistoryStore,
        system_info: SystemInfo | None = None,
        config: BranchConfig | None = None,
    ):
        self.driver = driver
        self.store = store
        self._lock = threading.Lock()
        self._generator = BranchNameGenerator(
            config or BranchConfig(), system_info or detect_system_info()
        )

    @classmethod
    def from_store(
        cls,
        driver: RepositoryDriver,
        store: BranchHistoryStore,
        system_info: SystemInfo | None = None,
    ) -> BranchAutomationService:
        """Create a service using the branch config persisted in ``store``.

        A missing or unreadable blob falls back to the default config.
        """
        config = BranchConfig()
        raw = store.load_config_blob()
        if raw is not None:
            try:
                config = BranchConfig.from_json(raw)
            except BranchConfigError as e:
                logger.warning(f"Ignoring stored branch config: {e}")
        return cls(driver, store, system_info=system_info, config=config)

    @property
    def generator(self) -> BranchNameGenerator:
        return self._generator

    def generate_branch_name(self, pattern: BranchPattern) -> str:
        return self._generator.generate(pattern)

    def suggest_pattern(
        self, workspace_name: str, feature_type: FeatureType | None = None
    ) -> BranchPattern:
        return self._generator.suggest_pattern(workspace_name, feature_type)

    def create_branch(
        self, workspace_path: str | Path, request: BranchCreateRequest
    ) -> BranchCreateResult:
        """Create a branch named from ``request.pattern``.

        An existing branch of the same name is reported, not raised. Every
        successful creation is recorded in the history, whether or not the
        switch back to the base branch works.

        Raises:
            BranchNameError: If the pattern yields an invalid name.
        """
        generator = self._generator
        branch_name = generator.generate(request.pattern)

        if self.driver.branch_exists(workspace_path, branch_name):
            logger.info(f"Branch {branch_name} already exists in {workspace_path}")
            return BranchCreateResult(
                branch_name=branch_name,
                created=False,
                switched=False,
                message=f"Branch '{branch_name}' already exists",
            )

        base_branch = request.base_branch or self.driver.current_branch(workspace_path)

        result = self.driver.create_branch(workspace_path, branch_name, base_branch)
        if not result.success:
            return BranchCreateResult(
                branch_name=branch_name, created=False, switched=False, message=result.message
            )

        switched = True
        message = f"Created and switched to branch '{branch_name}'"
        if not request.auto_switch:
            switch_back = self.driver.checkout_branch(workspace_path, base_branch)
            if switch_back.success:
                switched = False
                message = f"Created branch '{branch_name}' (stayed on '{base_branch}')"
            else:
                logger.warning(
                    f"Could not switch back to {base_branch}, staying on {branch_name}"
                )

        self.store.append(branch_name, request.pattern)
        logger.info(f"Created branch {branch_name} in {workspace_path}")

        return BranchCreateResult(
            branch_name=branch_name, created=True, switched=switched, message=message
        )

    def quick_create_feature_branch(
        self,
        workspace_path: str | Path,
        workspace_name: str,
        description: str | None,
        feature_type: FeatureType | None = None,
    ) -> BranchCreateResult:
        """Create and switch to a branch for the local user in one step."""
        pattern = self.suggest_pattern(workspace_name, feature_type).with_description(
            description
        )
        return self.create_branch(
            workspace_path, BranchCreateRequest(pattern=pattern, base_branch=None, auto_switch=True)
        )

    def list_branches(self, workspace_path: str | Path) -> list[GitBranch]:
        return self.driver.list_branches(workspace_path)

    def get_system_info(self) -> SystemInfo:
        return self._generator.system_info

    def get_branch_config(self) -> BranchConfig:
        return self._generator.config

    def get_branch_history(
        self, limit: int = DEFAULT_HISTORY_LIMIT, workspace: str | None = None
    ) -> list[BranchHistoryEntry]:
        """Return recorded creations, newest first.

        Records whose stored pattern cannot be read are skipped.
        """
        entries = []
        for record in self.store.recent(limit=limit, workspace=workspace):
            try:
                pattern = BranchPattern.from_json(record.pattern_json)
            except (ValueError, KeyError, TypeError) as e:
                logger.debug(f"Skipping history entry {record.branch_name}: {e}")
                continue
            entries.append(BranchHistoryEntry(record.branch_name, pattern, record.created_at))
        return entries

    def get_suggested_branches(self, workspace_name: str) -> list[tuple[FeatureType, str]]:
        """Generate a candidate name for every allowed feature type.

        Types whose name fails validation are left out.
        """
        generator = self._generator
        suggestions = []
        for feature_type in generator.config.allowed_feature_types:
            pattern = generator.suggest_pattern(workspace_name, feature_type)
            try:
                suggestions.append((feature_type, generator.generate(pattern)))
            except BranchNameError as e:
                logger.debug(f"No suggestion for {feature_type}: {e}")
        return suggestions

    def update_config(self, config: BranchConfig) -> None:
        """Replace the branch config and persist it.

        The system info resolved at construction is kept.
        """
        with self._lock:
            self._generator = BranchNameGenerator(config, self._generator.system_info)
            self.store.save_config_blob(config.to_json())
        logger.info("Branch configuration updated")
