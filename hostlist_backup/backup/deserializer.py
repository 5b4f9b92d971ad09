"""
Deserialization of a backup document into hosts sources and host list items.
"""

from __future__ import annotations

from typing import Any

from hostlist_backup.backup.errors import FieldError, MissingSectionError
from hostlist_backup.backup.schema import (
    ENABLED_FIELD,
    HOST_FIELD,
    HOST_SECTIONS,
    REDIRECT_FIELD,
    SECTION_KEYS,
    SOURCES_KEY,
    URL_FIELD,
    BackupDocument,
)
from hostlist_backup.lists import HostListItem, HostsSource, ListType


def parse_backup(
    document: BackupDocument,
) -> tuple[list[HostsSource], list[HostListItem]]:
    """
    Rebuild hosts sources and host list items from a backup document.

    The whole document is parsed before anything is returned: a single
    invalid entry rejects the document.

    Args:
        document: Decoded backup document

    Returns:
        Tuple of (sources, items). Sources keep document order; items are
        ordered blocked, allowed, then redirected, each in document order,
        and carry the type of the section they were read from.

    Raises:
        MissingSectionError: If a top-level section is absent or not a list
        FieldError: If an entry has a missing or invalid field
    """
    for section in SECTION_KEYS:
        _section_entries(document, section)

    sources = [
        source_from_dict(entry, index)
        for index, entry in enumerate(_section_entries(document, SOURCES_KEY))
    ]

    items: list[HostListItem] = []
    for section, list_type in HOST_SECTIONS:
        for index, entry in enumerate(_section_entries(document, section)):
            items.append(host_from_dict(entry, list_type, section, index))

    return sources, items


def source_from_dict(entry: Any, index: int = 0) -> HostsSource:
    """
    Decode a sources entry.

    Args:
        entry: Entry object from the sources section
        index: Position of the entry, for error reporting

    Raises:
        FieldError: If url or enabled is missing or has the wrong type
    """
    entry = _entry_object(entry, SOURCES_KEY, index)
    return HostsSource(
        url=_string_field(entry, URL_FIELD, SOURCES_KEY, index),
        enabled=_bool_field(entry, ENABLED_FIELD, SOURCES_KEY, index),
    )


def host_from_dict(
    entry: Any, list_type: ListType, section: str, index: int = 0
) -> HostListItem:
    """
    Decode a host list entry.

    The item type is taken from list_type; the entry itself never carries it.
    A missing redirect key gives an item without redirection (None).

    Args:
        entry: Entry object from a host list section
        list_type: Type of the section the entry was read from
        section: Name of the section, for error reporting
        index: Position of the entry, for error reporting

    Raises:
        FieldError: If host or enabled is missing or has the wrong type, or
                    redirect is present but not a string
    """
    entry = _entry_object(entry, section, index)

    redirection = None
    if REDIRECT_FIELD in entry:
        redirection = _string_field(entry, REDIRECT_FIELD, section, index)

    return HostListItem(
        host=_string_field(entry, HOST_FIELD, section, index),
        type=list_type,
        enabled=_bool_field(entry, ENABLED_FIELD, section, index),
        redirection=redirection,
    )


def _section_entries(document: BackupDocument, section: str) -> list[Any]:
    if section not in document:
        raise MissingSectionError(section)
    entries = document[section]
    if not isinstance(entries, list):
        raise MissingSectionError(
            section,
            f"Backup section '{section}' must be a list, "
            f"got {type(entries).__name__}",
        )
    return entries


def _entry_object(entry: Any, section: str, index: int) -> dict[str, Any]:
    if not isinstance(entry, dict):
        raise FieldError(
            section, index, None, f"expected an object, got {type(entry).__name__}"
        )
    return entry


def _string_field(entry: dict[str, Any], key: str, section: str, index: int) -> str:
    if key not in entry:
        raise FieldError(section, index, key, "missing field")
    value = entry[key]
    if not isinstance(value, str):
        raise FieldError(
            section, index, key, f"expected a string, got {type(value).__name__}"
        )
    return value


def _bool_field(entry: dict[str, Any], key: str, section: str, index: int) -> bool:
    if key not in entry:
        raise FieldError(section, index, key, "missing field")
    value = entry[key]
    if not isinstance(value, bool):
        raise FieldError(
            section, index, key, f"expected a boolean, got {type(value).__name__}"
        )
    return value
