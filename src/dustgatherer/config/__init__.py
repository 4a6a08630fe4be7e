"""
Configuration management for DustGatherer.

This module handles loading, validating, and saving configuration settings.
"""

from dustgatherer.config.settings import (
    DEFAULT_CONFIG_DIR,
    BackupConfig,
    ConfigurationError,
    Settings,
    load_config,
    save_config,
)

__all__ = [
    "Settings",
    "BackupConfig",
    "DEFAULT_CONFIG_DIR",
    "load_config",
    "save_config",
    "ConfigurationError",
]
