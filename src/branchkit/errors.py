"""Root of the branchkit exception hierarchy."""


class BranchkitError(Exception):
    """Base exception for branchkit failures."""

    pass
