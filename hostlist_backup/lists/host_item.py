"""
HostListItem data model for user host rules.

Provides the ListType categories and the HostListItem representation used by
storage and by the backup serializer.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ListType(str, Enum):
    """Category of a host list item."""

    BLOCK = "block"
    ALLOW = "allow"
    REDIRECT = "redirect"


@dataclass
class HostListItem:
    """
    A single user host rule.

    Attributes:
        host: Hostname pattern (e.g., "ads.example.com")
        type: Category of the rule (block, allow or redirect)
        enabled: Whether the rule is applied
        redirection: Redirection target address for redirect rules.
                    None means no target, which is distinct from "".
        id: Storage row identifier, None until the item is stored

    Usage:
        blocked = HostListItem("ads.example.com", ListType.BLOCK)
        redirected = HostListItem(
            "track.example.com", ListType.REDIRECT, redirection="0.0.0.0"
        )
    """

    host: str
    type: ListType
    enabled: bool = True
    redirection: str | None = None

    id: int | None = field(default=None, compare=False, repr=False)

    @classmethod
    def from_row(cls, row: Any) -> HostListItem:
        """
        Create a HostListItem from a host_list_items database row.

        Args:
            row: sqlite3.Row (or mapping) with id, host, type, enabled and
                 redirection columns

        Returns:
            HostListItem populated from the row
        """
        return cls(
            host=row["host"],
            type=ListType(row["type"]),
            enabled=bool(row["enabled"]),
            redirection=row["redirection"],
            id=row["id"],
        )

    def has_redirection(self) -> bool:
        """Check whether the item carries a non-empty redirection target."""
        return bool(self.redirection)
