"""
hostlist_backup.storage - SQLite storage for sources and host list items.
"""

from hostlist_backup.storage.db import HostListDatabase, StorageError

__all__ = ["HostListDatabase", "StorageError"]
