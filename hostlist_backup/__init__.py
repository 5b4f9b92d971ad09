"""
hostlist_backup - Backup and restore for hosts sources and host list items.

Exports subscribed hosts sources together with the user's blocked, allowed
and redirected hosts into a single JSON document, and restores them again.
"""

__version__ = "0.1.0"
