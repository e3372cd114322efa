"""Repository operations backed by libgit2.

A pygit2 ``Repository`` must not be shared between threads, so every
operation opens its own handle and frees it before returning.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path

import pygit2
from pygit2.enums import FileStatus, RepositoryOpenFlag

from branchkit.git.auth import CredentialNegotiator, NegotiatingCallbacks
from branchkit.git.errors import (
    AuthenticationError,
    RepositoryError,
    RepositoryNotFoundError,
    UnbornBranchError,
)
from branchkit.git.models import CloneResult, GitBranch, GitCredentials, GitStatus

logger = logging.getLogger(__name__)

DEFAULT_INITIAL_BRANCH = "main"
FALLBACK_AUTHOR_NAME = "branchkit"
FALLBACK_AUTHOR_EMAIL = "branchkit@localhost"

STAGED_FLAGS = (
    FileStatus.INDEX_NEW
    | FileStatus.INDEX_MODIFIED
    | FileStatus.INDEX_DELETED
    | FileStatus.INDEX_RENAMED
    | FileStatus.INDEX_TYPECHANGE
)
MODIFIED_FLAGS = (
    FileStatus.WT_MODIFIED
    | FileStatus.WT_DELETED
    | FileStatus.WT_RENAMED
    | FileStatus.WT_TYPECHANGE
)
UNTRACKED_FLAGS = FileStatus.WT_NEW

# Engine errors that describe an expected outcome rather than a broken call.
# pygit2 maps some libgit2 codes onto KeyError, ValueError and OSError.
ENGINE_ERRORS = (pygit2.GitError, KeyError, ValueError, OSError)


class RepositoryDriver:
    """Drives clone, init, status, branch and commit operations."""

    def __init__(
        self,
        ssh_dir: Path | None = None,
        fallback_name: str = FALLBACK_AUTHOR_NAME,
        fallback_email: str = FALLBACK_AUTHOR_EMAIL,
    ):
        """Initialize repository driver.

        Args:
            ssh_dir: Directory searched for SSH key pairs. Defaults to ~/.ssh
            fallback_name: Author name used when git has no identity configured.
            fallback_email: Author email used when git has no identity configured.
        """
        self.ssh_dir = Path(ssh_dir) if ssh_dir else None
        self.fallback_name = fallback_name
        self.fallback_email = fallback_email

    @contextmanager
    def _open(self, repo_path: str | Path) -> Iterator[pygit2.Repository]:
        """Open a repository for the duration of one operation.

        Raises:
            RepositoryNotFoundError: If the path is not a repository.
        """
        try:
            repo = pygit2.Repository(str(repo_path), flags=RepositoryOpenFlag.NO_SEARCH)
        except (pygit2.GitError, KeyError, OSError) as e:
            raise RepositoryNotFoundError(f"Not a git repository: {repo_path}") from e
        try:
            yield repo
        finally:
            repo.free()

    def clone(
        self,
        url: str,
        destination: str | Path,
        credentials: GitCredentials | None = None,
    ) -> CloneResult:
        """Clone a remote repository.

        Args:
            url: Remote URL (ssh or https).
            destination: Directory to clone into.
            credentials: Optional inline credentials for the negotiation.

        Returns:
            CloneResult; ``success`` is False when the engine rejected the clone.
        """
        path = str(destination)
        negotiator = CredentialNegotiator(credentials=credentials, ssh_dir=self.ssh_dir)
        callbacks = NegotiatingCallbacks(negotiator)

        logger.info(f"Cloning {url} to {path}")
        try:
            pygit2.clone_repository(url, path, callbacks=callbacks)
        except (AuthenticationError, *ENGINE_ERRORS) as e:
            message = f"Failed to clone repository: {e}"
            logger.error(f"Git clone error: {message}")
            return CloneResult(success=False, path=path, message=message)

        logger.info(f"Successfully cloned repository: {url} -> {path}")
        return CloneResult(success=True, path=path, message="Repository cloned successfully")

    def initialize(self, repo_path: str | Path) -> CloneResult:
        """Create a new repository whose first branch is ``main``."""
        path = str(repo_path)
        try:
            repo = pygit2.init_repository(path, initial_head=DEFAULT_INITIAL_BRANCH)
        except ENGINE_ERRORS as e:
            logger.error(f"Failed to initialize repository at {path}: {e}")
            return CloneResult(
                success=False, path=path, message=f"Failed to initialize repository: {e}"
            )
        repo.free()

        logger.info(f"Initialized repository at {path}")
        return CloneResult(success=True, path=path, message="Repository initialized successfully")

    def repository_exists(self, repo_path: str | Path) -> bool:
        """Check if a path holds a repository that can be opened."""
        try:
            with self._open(repo_path):
                return True
        except RepositoryNotFoundError:
            return False

    def current_branch(self, repo_path: str | Path) -> str:
        """Return the checked out branch name.

        Returns ``"HEAD"`` for a detached head. For an unborn branch the name
        HEAD points at is returned.
        """
        with self._open(repo_path) as repo:
            return self._current_branch(repo)

    def _current_branch(self, repo: pygit2.Repository) -> str:
        if repo.head_is_unborn:
            target = repo.lookup_reference("HEAD").target
            return str(target).removeprefix("refs/heads/")
        if repo.head_is_detached:
            return "HEAD"
        return repo.head.shorthand

    def branch_exists(self, repo_path: str | Path, branch_name: str) -> bool:
        """Check if a local branch exists.

        A name libgit2 rejects as a reference name never exists.
        """
        with self._open(repo_path) as repo:
            try:
                return branch_name in repo.branches.local
            except ValueError as e:
                logger.debug(f"Invalid branch name {branch_name!r}: {e}")
                return False

    def status(self, repo_path: str | Path) -> GitStatus:
        """Classify working tree and index changes.

        A path differing from both HEAD and the working tree is listed as
        staged and modified.

        Raises:
            RepositoryNotFoundError: If the path is not a repository.
            UnbornBranchError: If the repository has no commits yet.
        """
        with self._open(repo_path) as repo:
            if repo.head_is_unborn:
                raise UnbornBranchError(
                    f"Repository at {repo_path} has no commits on "
                    f"'{self._current_branch(repo)}' yet"
                )
            current = "HEAD" if repo.head_is_detached else repo.head.shorthand

            staged: list[str] = []
            modified: list[str] = []
            untracked: list[str] = []

            entries = repo.status(untracked_files="all", ignored=False)
            for path in sorted(entries):
                flags = entries[path]
                if flags & STAGED_FLAGS:
                    staged.append(path)
                if flags & MODIFIED_FLAGS:
                    modified.append(path)
                if flags & UNTRACKED_FLAGS:
                    untracked.append(path)

        return GitStatus(
            current_branch=current,
            is_clean=not (staged or modified or untracked),
            staged_files=staged,
            modified_files=modified,
            untracked_files=untracked,
        )

    def list_branches(self, repo_path: str | Path) -> list[GitBranch]:
        """List local branches with their tip commits."""
        with self._open(repo_path) as repo:
            current = None if repo.head_is_unborn else repo.head.shorthand
            branches = []
            for name in sorted(repo.branches.local):
                branch = repo.branches.local[name]
                commit_hash, message, date = self._tip_info(branch)
                branches.append(
                    GitBranch(
                        name=name,
                        is_current=name == current,
                        is_remote=False,
                        last_commit_hash=commit_hash,
                        last_commit_message=message,
                        last_commit_date=date,
                    )
                )
        return branches

    def _tip_info(self, branch: pygit2.Branch) -> tuple[str, str, datetime | None]:
        try:
            commit = branch.peel(pygit2.Commit)
        except ENGINE_ERRORS as e:
            logger.debug(f"Branch {branch.shorthand} has no resolvable tip: {e}")
            return "unknown", "No commits", None
        summary = commit.message.splitlines()[0] if commit.message else ""
        date = datetime.fromtimestamp(commit.commit_time, tz=timezone.utc)
        return str(commit.id), summary, date

    def create_branch(self, repo_path: str | Path, branch_name: str, base: str) -> CloneResult:
        """Create ``branch_name`` from ``base`` and check it out.

        The new branch is removed again if it cannot be checked out.
        """
        path = str(repo_path)
        with self._open(repo_path) as repo:
            try:
                if base in repo.branches.local:
                    base_commit = repo.branches.local[base].peel(pygit2.Commit)
                else:
                    base_commit = repo.revparse_single(base).peel(pygit2.Commit)
                branch = repo.branches.local.create(branch_name, base_commit)
            except ENGINE_ERRORS as e:
                logger.error(f"Failed to create branch {branch_name} from {base}: {e}")
                return CloneResult(success=False, path=path, message=f"Failed to create branch: {e}")

            try:
                repo.checkout(branch)
            except pygit2.GitError as e:
                logger.error(f"Failed to check out new branch {branch_name}: {e}")
                branch.delete()
                return CloneResult(success=False, path=path, message=f"Failed to create branch: {e}")

        logger.info(f"Created branch {branch_name} from {base}")
        return CloneResult(success=True, path=path, message=f"Created branch '{branch_name}'")

    def checkout_branch(self, repo_path: str | Path, branch_name: str) -> CloneResult:
        """Check out a local branch, or detach HEAD at any other revision."""
        path = str(repo_path)
        with self._open(repo_path) as repo:
            try:
                if branch_name in repo.branches.local:
                    repo.checkout(repo.branches.local[branch_name])
                else:
                    commit = repo.revparse_single(branch_name).peel(pygit2.Commit)
                    repo.checkout_tree(commit)
                    repo.set_head(commit.id)
            except ENGINE_ERRORS as e:
                logger.warning(f"Failed to check out {branch_name}: {e}")
                return CloneResult(success=False, path=path, message=f"Failed to checkout: {e}")

        return CloneResult(success=True, path=path, message=f"Switched to branch '{branch_name}'")

    def add_all(self, repo_path: str | Path) -> CloneResult:
        """Stage every path in the working tree."""
        with self._open(repo_path) as repo:
            index = repo.index
            try:
                index.add_all(["*"])
                index.write()
            except pygit2.GitError as e:
                raise RepositoryError(f"Failed to add files: {e}") from e

        return CloneResult(
            success=True, path=str(repo_path), message="Added all changes to staging area"
        )

    def commit(self, repo_path: str | Path, message: str) -> CloneResult:
        """Commit the index on top of HEAD, or as the initial commit."""
        path = str(repo_path)
        with self._open(repo_path) as repo:
            try:
                signature = repo.default_signature
            except (KeyError, pygit2.GitError):
                logger.debug("No git identity configured, using fallback signature")
                signature = pygit2.Signature(self.fallback_name, self.fallback_email)

            index = repo.index
            try:
                tree_id = index.write_tree()
            except pygit2.GitError as e:
                raise RepositoryError(f"Failed to write tree: {e}") from e

            if repo.head_is_unborn:
                parents = []
                nothing_staged = len(index) == 0
            else:
                head_commit = repo.head.peel(pygit2.Commit)
                parents = [head_commit.id]
                nothing_staged = head_commit.tree_id == tree_id

            if nothing_staged:
                return CloneResult(success=False, path=path, message="Nothing to commit")

            try:
                repo.create_commit("HEAD", signature, signature, message, tree_id, parents)
            except pygit2.GitError as e:
                logger.error(f"Commit failed in {path}: {e}")
                return CloneResult(success=False, path=path, message=f"Failed to commit: {e}")

        logger.info(f"Committed changes in {path}: {message}")
        return CloneResult(success=True, path=path, message=f"Committed changes: {message}")
