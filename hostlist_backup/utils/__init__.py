"""
hostlist_backup.utils - Utility module

Common utilities including logging configuration and path resolution.
"""

from hostlist_backup.utils.paths import (
    BACKUP_DIR_NAME,
    DATABASE_FILE_NAME,
    DEFAULT_CONFIG_DIR,
    resolve_config_dir,
    resolve_data_path,
)

__all__ = [
    "BACKUP_DIR_NAME",
    "DATABASE_FILE_NAME",
    "DEFAULT_CONFIG_DIR",
    "resolve_config_dir",
    "resolve_data_path",
]
