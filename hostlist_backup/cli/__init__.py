"""CLI package for hostlist_backup."""

from hostlist_backup.cli.main import (
    VALID_LIST_TYPES,
    cli,
    get_config_dir,
    get_config_file,
)

__all__ = ["VALID_LIST_TYPES", "cli", "get_config_dir", "get_config_file"]
