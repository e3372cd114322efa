"""Branch naming, creation and history."""

from branchkit.branches.history import BranchHistoryStore, HistoryStoreError
from branchkit.branches.models import (
    BranchConfig,
    BranchConfigError,
    BranchCreateRequest,
    BranchCreateResult,
    BranchHistoryEntry,
    BranchPattern,
    FeatureType,
)
from branchkit.branches.naming import (
    BranchNameError,
    BranchNameGenerator,
    sanitize_name,
    validate_branch_name,
)
from branchkit.branches.service import BranchAutomationService

__all__ = [
    "BranchAutomationService",
    "BranchHistoryStore",
    "HistoryStoreError",
    "BranchConfig",
    "BranchConfigError",
    "BranchCreateRequest",
    "BranchCreateResult",
    "BranchHistoryEntry",
    "BranchPattern",
    "FeatureType",
    "BranchNameError",
    "BranchNameGenerator",
    "sanitize_name",
    "validate_branch_name",
]
