"""
HostsSource data model for subscribed remote hosts lists.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass
class HostsSource:
    """
    A subscribed remote hosts list.

    Attributes:
        url: Location of the remote list (e.g., "https://example.com/hosts")
        enabled: Whether the source is used when building the hosts file
        id: Storage row identifier, None until the source is stored

    Usage:
        source = HostsSource("https://example.com/hosts")
        disabled = HostsSource("https://example.org/hosts", enabled=False)
    """

    url: str
    enabled: bool = True

    # Assigned by storage, not part of the source identity
    id: int | None = field(default=None, compare=False, repr=False)

    @classmethod
    def from_row(cls, row: Any) -> HostsSource:
        """
        Create a HostsSource from a hosts_sources database row.

        Args:
            row: sqlite3.Row (or mapping) with id, url and enabled columns

        Returns:
            HostsSource populated from the row
        """
        return cls(url=row["url"], enabled=bool(row["enabled"]), id=row["id"])
