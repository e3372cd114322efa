"""Branch name generation from naming templates.

A template such as ``{workspace}/{username}-{machine}/{feature}`` is filled
from a :class:`BranchPattern`, an optional description is appended, and the
result is checked against git's ref-name restrictions before it is handed to
the repository.
"""

from __future__ import annotations

from branchkit.branches.models import BranchConfig, BranchPattern, FeatureType
from branchkit.errors import BranchkitError
from branchkit.utils.system_info import SystemInfo

FORBIDDEN_CHARACTERS = frozenset("~^:?*[\\ ")


class BranchNameError(BranchkitError, ValueError):
    """Generated branch name violates the ref-name grammar."""

    pass


def sanitize_name(name: str) -> str:
    """Reduce free text to lowercase hyphen-separated words.

    Anything other than alphanumerics, ``-`` and ``_`` becomes a separator;
    runs of separators collapse and leading/trailing ones are dropped.

    >>> sanitize_name("API v2.0")
    'api-v2-0'
    """
    mapped = "".join(c if c.isalnum() or c in "-_" else "-" for c in name.lower())
    return "-".join(part for part in mapped.split("-") if part)


def validate_branch_name(name: str) -> None:
    """Check a branch name against git's ref-name restrictions.

    Raises:
        BranchNameError: Describing the first violated rule.
    """
    if not name:
        raise BranchNameError("Branch name cannot be empty")
    if name.startswith("-") or name.endswith("-"):
        raise BranchNameError("Branch name cannot start or end with hyphen")
    if ".." in name or "//" in name:
        raise BranchNameError("Branch name cannot contain consecutive dots or slashes")
    if any(c in FORBIDDEN_CHARACTERS for c in name):
        raise BranchNameError("Branch name contains forbidden characters")


class BranchNameGenerator:
    """Turns branch patterns into validated names. Immutable."""

    __slots__ = ("_config", "_system_info")

    def __init__(self, config: BranchConfig, system_info: SystemInfo):
        self._config = config
        self._system_info = system_info

    @property
    def config(self) -> BranchConfig:
        return self._config

    @property
    def system_info(self) -> SystemInfo:
        return self._system_info

    def generate(self, pattern: BranchPattern) -> str:
        """Fill the template from ``pattern`` and validate the result.

        Names longer than ``max_branch_name_length`` are cut at that length
        (possibly mid-word) and trailing hyphens are removed.

        Raises:
            BranchNameError: If the resulting name is not a valid ref name.
        """
        name = (
            self._config.branch_prefix_pattern.replace("{workspace}", sanitize_name(pattern.workspace))
            .replace("{username}", sanitize_name(pattern.username))
            .replace("{machine}", sanitize_name(pattern.machine))
            .replace("{feature}", pattern.feature_type.value)
        )

        if pattern.description:
            description = sanitize_name(pattern.description)
            if description:
                name = f"{name}-{description}"

        max_length = self._config.max_branch_name_length
        if len(name) > max_length:
            name = name[:max_length].rstrip("-")

        validate_branch_name(name)
        return name

    def suggest_pattern(
        self, workspace_name: str, feature_type: FeatureType | None = None
    ) -> BranchPattern:
        """Build a pattern for the local user and machine."""
        return BranchPattern(
            workspace=workspace_name,
            username=self._system_info.username,
            machine=self._system_info.machine_name,
            feature_type=feature_type or self._config.default_feature_type,
            description=None,
        )
