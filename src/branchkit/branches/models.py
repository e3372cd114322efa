"""Branch naming and creation models."""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass, replace
from datetime import datetime
from enum import Enum
from typing import Any, NamedTuple

from branchkit.errors import BranchkitError


class BranchConfigError(BranchkitError, ValueError):
    """Branch configuration is malformed."""

    pass


class FeatureType(str, Enum):
    """Kinds of work a branch is created for.

    The value is the token used in branch names and serialization.
    """

    FEATURE = "feature"
    BUGFIX = "bugfix"
    HOTFIX = "hotfix"
    EXPERIMENT = "experiment"
    REFACTOR = "refactor"
    DOCUMENTATION = "docs"

    def __str__(self) -> str:
        return self.value

    @classmethod
    def parse(cls, value: str | FeatureType) -> FeatureType:
        """Accept a token (``docs``) or a member name (``documentation``)."""
        if isinstance(value, cls):
            return value
        normalized = str(value).strip().lower()
        for member in cls:
            if normalized in (member.value, member.name.lower()):
                return member
        raise BranchConfigError(f"Unknown feature type: {value!r}")


DEFAULT_PREFIX_PATTERN = "{workspace}/{username}-{machine}/{feature}"
DEFAULT_MAX_BRANCH_NAME_LENGTH = 100


@dataclass(frozen=True)
class BranchConfig:
    """Branch naming settings. Replaced as a whole, never edited in place."""

    auto_create_branches: bool = True
    default_feature_type: FeatureType = FeatureType.FEATURE
    branch_prefix_pattern: str = DEFAULT_PREFIX_PATTERN
    max_branch_name_length: int = DEFAULT_MAX_BRANCH_NAME_LENGTH
    allowed_feature_types: tuple[FeatureType, ...] = tuple(FeatureType)

    def to_dict(self) -> dict[str, Any]:
        return {
            "auto_create_branches": self.auto_create_branches,
            "default_feature_type": self.default_feature_type.value,
            "branch_prefix_pattern": self.branch_prefix_pattern,
            "max_branch_name_length": self.max_branch_name_length,
            "allowed_feature_types": [t.value for t in self.allowed_feature_types],
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict())

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> BranchConfig:
        """Build a config, filling missing keys from the defaults.

        Raises:
            BranchConfigError: If a value has the wrong type or range.
        """
        if not isinstance(data, dict):
            raise BranchConfigError("Branch configuration must be a dictionary")

        defaults = cls()
        auto_create = data.get("auto_create_branches", defaults.auto_create_branches)
        if not isinstance(auto_create, bool):
            raise BranchConfigError("auto_create_branches must be a boolean")

        pattern = data.get("branch_prefix_pattern", defaults.branch_prefix_pattern)
        if not isinstance(pattern, str) or not pattern:
            raise BranchConfigError("branch_prefix_pattern must be a non-empty string")

        max_length = data.get("max_branch_name_length", defaults.max_branch_name_length)
        if isinstance(max_length, bool) or not isinstance(max_length, int) or max_length < 1:
            raise BranchConfigError("max_branch_name_length must be a positive integer")

        allowed = data.get("allowed_feature_types")
        if allowed is None:
            allowed_types = defaults.allowed_feature_types
        elif isinstance(allowed, list | tuple):
            # Ordered, without duplicates
            allowed_types = tuple(dict.fromkeys(FeatureType.parse(t) for t in allowed))
        else:
            raise BranchConfigError("allowed_feature_types must be a list")

        return cls(
            auto_create_branches=auto_create,
            default_feature_type=FeatureType.parse(
                data.get("default_feature_type", defaults.default_feature_type)
            ),
            branch_prefix_pattern=pattern,
            max_branch_name_length=max_length,
            allowed_feature_types=allowed_types,
        )

    @classmethod
    def from_json(cls, raw: str) -> BranchConfig:
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            raise BranchConfigError(f"Invalid JSON in branch configuration: {e}") from e
        return cls.from_dict(data)


@dataclass(frozen=True)
class BranchPattern:
    """Values filled into the branch name template."""

    workspace: str
    username: str
    machine: str
    feature_type: FeatureType
    description: str | None = None

    def with_description(self, description: str | None) -> BranchPattern:
        return replace(self, description=description)

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["feature_type"] = self.feature_type.value
        return data

    def to_json(self) -> str:
        return json.dumps(self.to_dict())

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> BranchPattern:
        return cls(
            workspace=data["workspace"],
            username=data["username"],
            machine=data["machine"],
            feature_type=FeatureType.parse(data["feature_type"]),
            description=data.get("description"),
        )

    @classmethod
    def from_json(cls, raw: str) -> BranchPattern:
        return cls.from_dict(json.loads(raw))


@dataclass
class BranchCreateRequest:
    """Request to create a branch from a pattern."""

    pattern: BranchPattern
    base_branch: str | None = None  # defaults to the current branch
    auto_switch: bool = True


@dataclass
class BranchCreateResult:
    """Outcome of a branch creation request."""

    branch_name: str
    created: bool
    switched: bool
    message: str

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


class BranchHistoryEntry(NamedTuple):
    """One recorded branch creation."""

    branch_name: str
    pattern: BranchPattern
    created_at: datetime

    def to_dict(self) -> dict[str, Any]:
        return {
            "branch_name": self.branch_name,
            "pattern": self.pattern.to_dict(),
            "created_at": self.created_at.isoformat(),
        }

