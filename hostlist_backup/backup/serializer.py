"""
Serialization of hosts sources and host list items into a backup document.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from hostlist_backup.backup.errors import EncodingError
from hostlist_backup.backup.schema import (
    ENABLED_FIELD,
    HOST_FIELD,
    HOST_SECTIONS,
    REDIRECT_FIELD,
    SOURCES_KEY,
    URL_FIELD,
    BackupDocument,
)
from hostlist_backup.lists import HostListItem, HostsSource, ListType


def build_backup(
    all_sources: Iterable[HostsSource], all_host_items: Iterable[HostListItem]
) -> BackupDocument:
    """
    Build a backup document from every stored source and host list item.

    Host list items are partitioned by type into the blocked, allowed and
    redirected sections. Items keep their relative order within a section.

    Args:
        all_sources: All hosts sources, in storage order
        all_host_items: All host list items, in storage order

    Returns:
        Backup document with the sources, blocked, allowed and redirected keys

    Raises:
        EncodingError: If a source or item has a missing or invalid field
    """
    items = list(all_host_items)

    document: BackupDocument = {
        SOURCES_KEY: [source_to_dict(source) for source in all_sources]
    }
    for section, list_type in HOST_SECTIONS:
        document[section] = [
            host_to_dict(item) for item in items if _item_type(item) is list_type
        ]

    return document


def source_to_dict(source: HostsSource) -> dict[str, Any]:
    """
    Encode a hosts source as a document entry.

    Raises:
        EncodingError: If the url is not a non-empty string or enabled is
                       not a boolean
    """
    url = getattr(source, "url", None)
    if not isinstance(url, str) or not url:
        raise EncodingError(f"Hosts source has no valid url: {source!r}")

    return {
        URL_FIELD: url,
        ENABLED_FIELD: _enabled(source),
    }


def host_to_dict(item: HostListItem) -> dict[str, Any]:
    """
    Encode a host list item as a document entry.

    The redirect key is only written when the item has a non-empty
    redirection target.

    Raises:
        EncodingError: If the host is not a non-empty string, enabled is
                       not a boolean, or the redirection is not a string
    """
    host = getattr(item, "host", None)
    if not isinstance(host, str) or not host:
        raise EncodingError(f"Host list item has no valid host: {item!r}")

    entry: dict[str, Any] = {HOST_FIELD: host}

    redirection = getattr(item, "redirection", None)
    if redirection is not None and not isinstance(redirection, str):
        raise EncodingError(
            f"Host list item {host!r} has an invalid redirection: {redirection!r}"
        )
    if item.has_redirection():
        entry[REDIRECT_FIELD] = redirection

    entry[ENABLED_FIELD] = _enabled(item)
    return entry


def _enabled(entity: Any) -> bool:
    enabled = getattr(entity, "enabled", None)
    if not isinstance(enabled, bool):
        raise EncodingError(f"Entity has no valid enabled flag: {entity!r}")
    return enabled


def _item_type(item: HostListItem) -> ListType:
    try:
        return ListType(getattr(item, "type", None))
    except ValueError as e:
        raise EncodingError(f"Host list item has an unknown type: {item!r}") from e
