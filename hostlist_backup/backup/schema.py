"""
Backup document schema and text encoding.

Document format:

    {
        "sources": [{"url": "https://example.com/hosts", "enabled": true}],
        "blocked": [{"host": "ads.example.com", "enabled": true}],
        "allowed": [{"host": "good.example.com", "enabled": false}],
        "redirected": [
            {"host": "track.example.com", "redirect": "0.0.0.0", "enabled": true}
        ]
    }

The category of a host list item is implied by the section it appears in.
"""

from __future__ import annotations

import json
from typing import Any

from hostlist_backup.backup.errors import DecodingError
from hostlist_backup.lists import ListType

# Structured backup document, as produced by json.loads
BackupDocument = dict[str, Any]

# Default backup file name
BACKUP_FILE_NAME = "adaway-backup.json"

# Text rendering settings
BACKUP_ENCODING = "utf-8"
BACKUP_INDENT = 4

# Top-level sections
SOURCES_KEY = "sources"
BLOCKED_KEY = "blocked"
ALLOWED_KEY = "allowed"
REDIRECTED_KEY = "redirected"

# Host list sections in export and import order
HOST_SECTIONS: tuple[tuple[str, ListType], ...] = (
    (BLOCKED_KEY, ListType.BLOCK),
    (ALLOWED_KEY, ListType.ALLOW),
    (REDIRECTED_KEY, ListType.REDIRECT),
)

SECTION_KEYS = (SOURCES_KEY,) + tuple(key for key, _ in HOST_SECTIONS)

# Entity fields
URL_FIELD = "url"
ENABLED_FIELD = "enabled"
HOST_FIELD = "host"
REDIRECT_FIELD = "redirect"


def render_document(document: BackupDocument) -> str:
    """
    Render a backup document as pretty-printed JSON text.

    Args:
        document: Backup document built by the serializer

    Returns:
        JSON text indented with 4 spaces, ending with a newline
    """
    return json.dumps(document, indent=BACKUP_INDENT, ensure_ascii=False) + "\n"


def decode_document(data: bytes | str) -> BackupDocument:
    """
    Decode backup text into a document.

    Both pretty-printed and compact JSON are accepted.

    Args:
        data: Raw UTF-8 bytes or already decoded text

    Returns:
        The decoded document

    Raises:
        DecodingError: If the data is not UTF-8, not JSON, or not a JSON object
    """
    try:
        if isinstance(data, bytes):
            data = data.decode(BACKUP_ENCODING)
        document = json.loads(data)
    except UnicodeDecodeError as e:
        raise DecodingError(f"Backup is not valid {BACKUP_ENCODING} text: {e}") from e
    except (ValueError, RecursionError) as e:
        # ValueError covers JSONDecodeError and oversized integer literals
        raise DecodingError(f"Backup is not valid JSON: {e}") from e

    if not isinstance(document, dict):
        raise DecodingError(
            f"Backup root must be a JSON object, got {type(document).__name__}"
        )

    return document
