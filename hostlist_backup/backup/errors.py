"""
Exceptions raised while exporting or importing a backup document.
"""

from __future__ import annotations


class BackupError(Exception):
    """Base exception for backup and restore errors."""

    pass


class DestinationUnavailableError(BackupError):
    """Raised when the export destination cannot be written."""

    pass


class SourceUnavailableError(BackupError):
    """Raised when the import source cannot be opened or read."""

    pass


class DecodingError(BackupError):
    """Raised when backup bytes are not a valid JSON object."""

    pass


class EncodingError(BackupError):
    """Raised when an entity cannot be encoded into the backup document."""

    pass


class MissingSectionError(BackupError):
    """Raised when a required top-level section is absent from a document."""

    def __init__(self, section: str, message: str | None = None):
        self.section = section
        super().__init__(message or f"Missing backup section '{section}'")


class FieldError(BackupError):
    """
    Raised when an entry of a backup section has a missing or invalid field.

    Attributes:
        section: Name of the section containing the entry
        index: Position of the entry within its section
        field: Name of the offending field, or None if the entry itself
               is not an object
    """

    def __init__(self, section: str, index: int, field: str | None, reason: str):
        self.section = section
        self.index = index
        self.field = field
        location = f"{section}[{index}]"
        if field is not None:
            location = f"{location}.{field}"
        super().__init__(f"Invalid backup entry {location}: {reason}")
