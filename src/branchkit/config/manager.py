"""Configuration file management."""

import copy
import json
import logging
from pathlib import Path
from typing import Any

from branchkit.errors import BranchkitError

logger = logging.getLogger(__name__)

# Configuration schema version
CONFIG_VERSION = "1.0.0"

CONFIG_DIR = Path("~/.branchkit")
VALID_LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]

# Default configuration schema
DEFAULT_CONFIG = {
    "version": CONFIG_VERSION,
    "storage": {
        "database_path": str(CONFIG_DIR / "branchkit.db"),
    },
    "credentials": {
        "service_name": "branchkit",
    },
    "auth": {
        "ssh_dir": None,  # None means ~/.ssh
    },
    "commit": {
        "fallback_name": "branchkit",
        "fallback_email": "branchkit@localhost",
    },
    "logging": {
        "level": "WARNING",
    },
}


class ConfigurationError(BranchkitError):
    """Configuration related errors."""

    pass


class ConfigManager:
    """Manages branchkit configuration."""

    def __init__(self, config_path: Path | None = None):
        """Initialize config manager.

        Args:
            config_path: Path to configuration file. Defaults to ~/.branchkit/config.json
        """
        self.config_path = config_path or (CONFIG_DIR / "config.json").expanduser()
        self._config: dict[str, Any] = {}

    def load(self) -> dict[str, Any]:
        """Load configuration from file.

        Returns:
            Configuration dictionary

        Raises:
            ConfigurationError: If config file is invalid
        """
        if not self.config_path.exists():
            logger.debug(f"Config file {self.config_path} not found, using defaults")
            self._config = copy.deepcopy(DEFAULT_CONFIG)
            return self._config

        try:
            with open(self.config_path) as f:
                self._config = json.load(f)
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Invalid JSON in config file: {e}") from e
        except OSError as e:
            raise ConfigurationError(f"Failed to load config: {e}") from e

        self._validate_config()
        self._merge_with_defaults()

        logger.debug(f"Loaded configuration from {self.config_path}")
        return self._config

    def save(self, config: dict[str, Any] | None = None) -> None:
        """Save configuration to file.

        Args:
            config: Configuration to save. If None, saves current config.

        Raises:
            ConfigurationError: If save fails
        """
        if config is not None:
            self._config = config
            self._validate_config()

        if not self._config:
            self._config = copy.deepcopy(DEFAULT_CONFIG)

        try:
            self.config_path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.config_path, "w") as f:
                json.dump(self._config, f, indent=2)
        except OSError as e:
            raise ConfigurationError(f"Failed to save config: {e}") from e
        logger.debug(f"Saved configuration to {self.config_path}")

    def get(self, key: str, default: Any = None) -> Any:
        """Get configuration value by key.

        Args:
            key: Configuration key (supports dot notation)
            default: Default value if key not found

        Returns:
            Configuration value or default
        """
        if not self._config:
            self.load()

        # Support dot notation (e.g., "storage.database_path")
        value = self._config
        for k in key.split("."):
            if isinstance(value, dict) and k in value:
                value = value[k]
            else:
                return default

        return value

    def set(self, key: str, value: Any) -> None:
        """Set configuration value.

        Args:
            key: Configuration key (supports dot notation)
            value: Value to set
        """
        if not self._config:
            self.load()

        keys = key.split(".")
        target = self._config

        for k in keys[:-1]:
            if k not in target:
                target[k] = {}
            target = target[k]

        target[keys[-1]] = value

    def database_path(self) -> Path:
        """History database location with ``~`` expanded."""
        return Path(self.get("storage.database_path")).expanduser()

    def ssh_dir(self) -> Path | None:
        ssh_dir = self.get("auth.ssh_dir")
        return Path(ssh_dir).expanduser() if ssh_dir else None

    def _validate_config(self) -> None:
        """Validate configuration structure.

        Raises:
            ConfigurationError: If config is invalid
        """
        if not isinstance(self._config, dict):
            raise ConfigurationError("Configuration must be a dictionary")

        if "version" in self._config and not isinstance(self._config["version"], str):
            raise ConfigurationError("Configuration version must be a string")

        for section in ("storage", "credentials", "auth", "commit", "logging"):
            if section in self._config and not isinstance(self._config[section], dict):
                raise ConfigurationError(f"'{section}' settings must be a dictionary")

        storage = self._config.get("storage", {})
        if "database_path" in storage:
            db_path = storage["database_path"]
            if not isinstance(db_path, str) or not db_path:
                raise ConfigurationError("storage.database_path must be a non-empty string")

        credentials = self._config.get("credentials", {})
        if "service_name" in credentials:
            service = credentials["service_name"]
            if not isinstance(service, str) or not service:
                raise ConfigurationError("credentials.service_name must be a non-empty string")

        auth = self._config.get("auth", {})
        if auth.get("ssh_dir") is not None and not isinstance(auth["ssh_dir"], str):
            raise ConfigurationError("auth.ssh_dir must be a string or null")

        commit = self._config.get("commit", {})
        for field in ("fallback_name", "fallback_email"):
            if field in commit and (not isinstance(commit[field], str) or not commit[field]):
                raise ConfigurationError(f"commit.{field} must be a non-empty string")

        logging_section = self._config.get("logging", {})
        if "level" in logging_section:
            level = logging_section["level"]
            if not isinstance(level, str) or level.upper() not in VALID_LOG_LEVELS:
                raise ConfigurationError(
                    f"logging.level must be one of {', '.join(VALID_LOG_LEVELS)}"
                )

    def _merge_with_defaults(self) -> None:
        """Merge loaded config with defaults for missing fields."""

        def deep_merge(default: dict, config: dict) -> dict:
            """Recursively merge config with defaults."""
            result = copy.deepcopy(default)
            for key, value in config.items():
                if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                    result[key] = deep_merge(result[key], value)
                else:
                    result[key] = value
            return result

        self._config = deep_merge(DEFAULT_CONFIG, self._config)

    def reset_to_defaults(self) -> None:
        """Reset configuration to defaults."""
        self._config = copy.deepcopy(DEFAULT_CONFIG)
        logger.info("Configuration reset to defaults")
