"""Exit codes for the branchkit command line."""

from enum import IntEnum


class ExitCode(IntEnum):
    """Process exit codes."""

    SUCCESS = 0
    GENERAL_ERROR = 1
    INVALID_CONFIG = 2
    MISSING_DEPS = 3
    NOT_FOUND = 4  # Repository, branch or credential entry missing
    INTERRUPTED = 130  # User cancelled operation
