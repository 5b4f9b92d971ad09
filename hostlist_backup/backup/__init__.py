"""
Backup and restore functionality for hosts sources and host list items.

This module converts stored sources and user host rules into a single JSON
backup document, and restores them from such a document.
"""

from hostlist_backup.backup.deserializer import parse_backup
from hostlist_backup.backup.errors import (
    BackupError,
    DecodingError,
    DestinationUnavailableError,
    EncodingError,
    FieldError,
    MissingSectionError,
    SourceUnavailableError,
)
from hostlist_backup.backup.manager import BackupFlow, BackupManager, FlowState
from hostlist_backup.backup.schema import (
    BACKUP_FILE_NAME,
    decode_document,
    render_document,
)
from hostlist_backup.backup.serializer import build_backup

__all__ = [
    "BACKUP_FILE_NAME",
    "BackupError",
    "BackupFlow",
    "BackupManager",
    "DecodingError",
    "DestinationUnavailableError",
    "EncodingError",
    "FieldError",
    "FlowState",
    "MissingSectionError",
    "SourceUnavailableError",
    "build_backup",
    "decode_document",
    "parse_backup",
    "render_document",
]
