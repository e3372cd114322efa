"""Git operations module."""

from branchkit.git.auth import CredentialNegotiator, NegotiatingCallbacks, NegotiationState
from branchkit.git.errors import (
    AuthenticationError,
    RepositoryError,
    RepositoryNotFoundError,
    UnbornBranchError,
)
from branchkit.git.models import CloneResult, GitBranch, GitCredentials, GitStatus
from branchkit.git.repository import RepositoryDriver

__all__ = [
    "RepositoryDriver",
    "RepositoryError",
    "RepositoryNotFoundError",
    "UnbornBranchError",
    "AuthenticationError",
    "CredentialNegotiator",
    "NegotiatingCallbacks",
    "NegotiationState",
    "CloneResult",
    "GitBranch",
    "GitCredentials",
    "GitStatus",
]
