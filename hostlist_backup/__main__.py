"""
Entry point for running hostlist_backup as a module.

Usage:
    python -m hostlist_backup --help
    python -m hostlist_backup export
    python -m hostlist_backup import adaway-backup.json
"""

from hostlist_backup.cli import cli

if __name__ == "__main__":
    cli()
