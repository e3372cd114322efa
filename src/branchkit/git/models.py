"""Value objects returned by repository operations."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any


@dataclass
class GitCredentials:
    """Inline credentials for a remote."""

    username: str
    password: str
    ssh_key_path: str | None = None

    def __repr__(self) -> str:
        return (
            f"GitCredentials(username={self.username!r}, password='***', "
            f"ssh_key_path={self.ssh_key_path!r})"
        )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> GitCredentials:
        return cls(
            username=data["username"],
            password=data["password"],
            ssh_key_path=data.get("ssh_key_path"),
        )


@dataclass
class CloneResult:
    """Outcome of a clone, init, stage or commit.

    ``success=False`` is an expected outcome the caller branches on, not an
    error. Hard failures are raised instead.
    """

    success: bool
    path: str
    message: str

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class GitStatus:
    """Working tree and index state of a repository."""

    current_branch: str
    is_clean: bool
    staged_files: list[str] = field(default_factory=list)
    modified_files: list[str] = field(default_factory=list)
    untracked_files: list[str] = field(default_factory=list)
    # Remote tracking is not computed
    ahead: int = 0
    behind: int = 0

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class GitBranch:
    """A local branch and its tip commit."""

    name: str
    is_current: bool
    is_remote: bool = False
    last_commit_hash: str | None = None
    last_commit_message: str | None = None
    last_commit_date: datetime | None = None
    ahead_count: int | None = None
    behind_count: int | None = None

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        if self.last_commit_date is not None:
            data["last_commit_date"] = self.last_commit_date.isoformat()
        return data
