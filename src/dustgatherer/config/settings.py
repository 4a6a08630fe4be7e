"""
Configuration settings management for DustGatherer.

This module handles loading, validating, and saving configuration settings
from YAML files with support for environment variable overrides.

Configuration is loaded from ~/.dustgatherer/config.yaml by default, with the
path overridable via the DUSTGATHERER_CONFIG environment variable.
"""

import os
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

# Default configuration directory
DEFAULT_CONFIG_DIR = Path.home() / ".dustgatherer"
DEFAULT_CONFIG_FILE = DEFAULT_CONFIG_DIR / "config.yaml"

VALID_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
VALID_CONFLICT_STRATEGIES = {"skip_existing", "replace_existing", "import_as_new"}


@dataclass
class BackupConfig:
    """Backup and restore settings."""

    output_dir: str = str(DEFAULT_CONFIG_DIR / "backups")
    conflict_strategy: str = "skip_existing"


@dataclass
class Settings:
    """
    Complete DustGatherer configuration settings.

    Settings are loaded from a YAML configuration file and can be overridden
    by environment variables prefixed with DUSTGATHERER_.

    Attributes:
        data_dir: Directory for the database and item images.
        log_level: Logging verbosity (DEBUG, INFO, WARNING, ERROR).
        backup: Backup and restore settings.
    """

    data_dir: str = str(DEFAULT_CONFIG_DIR / "data")
    log_level: str = "INFO"

    backup: BackupConfig = field(default_factory=BackupConfig)

    @property
    def images_dir(self) -> Path:
        """Directory holding item images."""
        return Path(self.data_dir) / "images"


class ConfigurationError(Exception):
    """Raised when configuration is invalid or cannot be loaded."""

    pass


def get_config_path() -> Path:
    """
    Get the configuration file path.

    Returns the path from DUSTGATHERER_CONFIG environment variable if set,
    otherwise returns the default path (~/.dustgatherer/config.yaml).
    """
    env_path = os.environ.get("DUSTGATHERER_CONFIG")
    if env_path:
        return Path(env_path)
    return DEFAULT_CONFIG_FILE


def load_config(config_path: Path | None = None) -> Settings:
    """
    Load configuration from YAML file.

    Reads configuration from the specified path (or default if not provided),
    applies environment variable overrides, and validates the configuration.

    Args:
        config_path: Optional path to configuration file. If not provided,
                    uses DUSTGATHERER_CONFIG environment variable or default path.

    Returns:
        Validated Settings instance.

    Raises:
        ConfigurationError: If the configuration file cannot be read or
                          contains invalid settings.
    """
    if config_path is None:
        config_path = get_config_path()

    settings = Settings()

    if config_path.exists():
        try:
            with open(config_path) as f:
                config_data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in config file: {e}") from e
        except OSError as e:
            raise ConfigurationError(f"Cannot read config file: {e}") from e

        if not isinstance(config_data, dict):
            raise ConfigurationError("Config file must contain a mapping")

        settings = _apply_config_data(settings, config_data)

    settings = _apply_environment_overrides(settings)

    _validate_config(settings)

    return settings


def save_config(settings: Settings, config_path: Path | None = None) -> None:
    """
    Save configuration to YAML file.

    Raises:
        ConfigurationError: If the configuration cannot be written.
    """
    if config_path is None:
        config_path = get_config_path()

    config_path.parent.mkdir(parents=True, exist_ok=True)

    try:
        with open(config_path, "w") as f:
            yaml.safe_dump(_settings_to_dict(settings), f, default_flow_style=False, sort_keys=False)
    except OSError as e:
        raise ConfigurationError(f"Cannot write config file: {e}") from e


def _apply_config_data(settings: Settings, data: dict[str, Any]) -> Settings:
    """Apply configuration data from parsed YAML to settings."""
    app_data = data.get("dustgatherer", {}) or {}

    if "data_dir" in app_data:
        settings.data_dir = str(app_data["data_dir"])
    if "log_level" in app_data:
        settings.log_level = str(app_data["log_level"]).upper()

    backup = data.get("backup", {}) or {}
    if "output_dir" in backup:
        settings.backup.output_dir = str(backup["output_dir"])
    if "conflict_strategy" in backup:
        settings.backup.conflict_strategy = str(backup["conflict_strategy"]).lower()

    return settings


def _apply_environment_overrides(settings: Settings) -> Settings:
    """Apply environment variable overrides to settings."""
    env_map: dict[str, tuple[str, Callable[[str], Any]]] = {
        "DUSTGATHERER_DATA_DIR": ("data_dir", str),
        "DUSTGATHERER_LOG_LEVEL": ("log_level", str.upper),
        "DUSTGATHERER_BACKUP_DIR": ("backup.output_dir", str),
        "DUSTGATHERER_CONFLICT_STRATEGY": ("backup.conflict_strategy", str.lower),
    }

    for env_var, (attr_path, converter) in env_map.items():
        value = os.environ.get(env_var)
        if value is not None:
            _set_nested_attr(settings, attr_path, converter(value))

    return settings


def _set_nested_attr(obj: Any, path: str, value: Any) -> None:
    """Set a nested attribute on an object using dot notation."""
    parts = path.split(".")
    for part in parts[:-1]:
        obj = getattr(obj, part)
    setattr(obj, parts[-1], value)


def _validate_config(settings: Settings) -> None:
    """
    Validate configuration settings.

    Raises:
        ConfigurationError: If configuration is invalid.
    """
    if settings.log_level not in VALID_LOG_LEVELS:
        raise ConfigurationError(
            f"Invalid log_level: {settings.log_level}. "
            f"Must be one of: {', '.join(sorted(VALID_LOG_LEVELS))}"
        )

    if settings.backup.conflict_strategy not in VALID_CONFLICT_STRATEGIES:
        raise ConfigurationError(
            f"Invalid conflict_strategy: {settings.backup.conflict_strategy}. "
            f"Must be one of: {', '.join(sorted(VALID_CONFLICT_STRATEGIES))}"
        )


def _settings_to_dict(settings: Settings) -> dict[str, Any]:
    """Convert Settings instance to dictionary for YAML serialization."""
    return {
        "dustgatherer": {
            "data_dir": settings.data_dir,
            "log_level": settings.log_level,
        },
        "backup": {
            "output_dir": settings.backup.output_dir,
            "conflict_strategy": settings.backup.conflict_strategy,
        },
    }
