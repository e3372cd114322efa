"""Exceptions raised by repository operations."""

from branchkit.errors import BranchkitError


class RepositoryError(BranchkitError):
    """Base exception for repository operations."""

    pass


class RepositoryNotFoundError(RepositoryError):
    """Path does not hold a repository that can be opened."""

    pass


class UnbornBranchError(RepositoryError):
    """HEAD points at a branch with no commits yet."""

    pass


class AuthenticationError(RepositoryError):
    """Credential negotiation with the remote was exhausted."""

    pass
