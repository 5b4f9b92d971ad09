"""
hostlist_backup.lists - Hosts sources and host list item models.
"""

from hostlist_backup.lists.host_item import HostListItem, ListType
from hostlist_backup.lists.source import HostsSource

__all__ = ["HostListItem", "HostsSource", "ListType"]
