"""Configuration management."""

from branchkit.config.manager import ConfigManager, ConfigurationError

__all__ = [
    "ConfigManager",
    "ConfigurationError",
]
