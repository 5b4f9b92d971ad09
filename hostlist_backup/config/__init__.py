"""
hostlist_backup.config - Configuration management module

Contains configuration loading and validation.
"""

from hostlist_backup.config.loader import (
    DEFAULT_CONFIG_FILE,
    ConfigError,
    ConfigLoader,
)

__all__ = ["ConfigError", "ConfigLoader", "DEFAULT_CONFIG_FILE"]
