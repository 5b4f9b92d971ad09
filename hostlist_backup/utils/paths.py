"""
Path utilities for the hostlist-backup data locations.

Resolves the configuration directory and the default locations derived
from it: the SQLite database and the backup export directory.
"""

from __future__ import annotations

import os
from pathlib import Path

# Default configuration directory
DEFAULT_CONFIG_DIR = Path.home() / ".hostlist-backup"

# Environment variable for overriding config directory
CONFIG_DIR_ENV_VAR = "HOSTLIST_BACKUP_CONFIG_DIR"

# Names of the default data locations inside the configuration directory
DATABASE_FILE_NAME = "hostlist.db"
BACKUP_DIR_NAME = "backups"


def resolve_config_dir(config_dir: Path | str | None = None) -> Path:
    """
    Resolve the configuration directory path.

    Priority:
        1. Explicit config_dir parameter (if provided)
        2. HOSTLIST_BACKUP_CONFIG_DIR environment variable
        3. Default directory (~/.hostlist-backup)

    Returns:
        Resolved Path to the configuration directory
    """
    chosen = config_dir
    if chosen is None:
        chosen = os.environ.get(CONFIG_DIR_ENV_VAR)
    return Path(chosen or DEFAULT_CONFIG_DIR).expanduser().resolve()


def resolve_data_path(
    configured: Path | str | None, config_dir: Path, default_name: str
) -> Path:
    """
    Resolve a data location from configuration.

    Relative configured paths are taken relative to the configuration
    directory; a missing value falls back to default_name inside it.

    Args:
        configured: Value from the configuration file, if any
        config_dir: Resolved configuration directory
        default_name: File or directory name used when nothing is configured

    Returns:
        Absolute path to the data location
    """
    if not configured:
        return config_dir / default_name

    path = Path(configured).expanduser()
    if not path.is_absolute():
        path = config_dir / path
    return path
