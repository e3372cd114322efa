"""Utility modules for branchkit."""

from branchkit.utils.logging import SecretRedactingFilter, SecretRedactor, setup_logging
from branchkit.utils.system_info import SystemInfo, detect_system_info

__all__ = [
    "SecretRedactor",
    "SecretRedactingFilter",
    "setup_logging",
    "SystemInfo",
    "detect_system_info",
]
