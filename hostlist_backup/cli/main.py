"""
Command-line interface for hostlist_backup.

Provides CLI commands to export stored hosts sources and host lists to a
backup file, import them back, and inspect or populate the local database.

Usage:
    # Show help
    hostlist-backup --help

    # Export to ~/.hostlist-backup/backups/adaway-backup.json
    hostlist-backup export

    # Export to another directory
    hostlist-backup export --output-dir /mnt/sdcard

    # Import a backup (all-or-nothing)
    hostlist-backup import adaway-backup.json --atomic

    # Inspect stored data
    hostlist-backup show
"""

import sys
from pathlib import Path
from typing import Any, Optional

import click

from hostlist_backup import __version__
from hostlist_backup.backup import BACKUP_FILE_NAME, BackupManager
from hostlist_backup.config import DEFAULT_CONFIG_FILE, ConfigError, ConfigLoader
from hostlist_backup.lists import HostListItem, HostsSource, ListType
from hostlist_backup.storage import HostListDatabase, StorageError
from hostlist_backup.utils import (
    BACKUP_DIR_NAME,
    DATABASE_FILE_NAME,
    resolve_config_dir,
    resolve_data_path,
)
from hostlist_backup.utils.logging import cleanup_old_logs, get_logger, setup_logging

# Valid host list types for CLI options
VALID_LIST_TYPES = tuple(list_type.value for list_type in ListType)

# Section titles used by the show command
LIST_TITLES = {
    ListType.BLOCK: "Blocked hosts",
    ListType.ALLOW: "Allowed hosts",
    ListType.REDIRECT: "Redirected hosts",
}


def get_config_dir(config_dir: Optional[str]) -> Path:
    """Get the configuration directory path."""
    return resolve_config_dir(config_dir)


def get_config_file(config_dir: Path, config_file: Optional[str]) -> Path:
    """Get the configuration file path."""
    if config_file:
        # Relative to the working directory, not to config_dir
        return Path(config_file).expanduser().absolute()
    return config_dir / DEFAULT_CONFIG_FILE


def open_database(ctx: click.Context) -> HostListDatabase:
    """Open and initialize the configured host list database."""
    config = ctx.obj["config"]
    db_path = resolve_data_path(
        config.get("database_path"), ctx.obj["config_dir"], DATABASE_FILE_NAME
    )
    db_path.parent.mkdir(parents=True, exist_ok=True)

    db = HostListDatabase(str(db_path))
    db.initialize()
    return db


def build_backup_manager(
    ctx: click.Context,
    db: HostListDatabase,
    output_dir: Optional[str] = None,
    atomic: Optional[bool] = None,
) -> BackupManager:
    """Create a BackupManager from configuration and CLI overrides."""
    config = ctx.obj["config"]

    if output_dir:
        backup_dir = Path(output_dir).expanduser()
    else:
        backup_dir = resolve_data_path(
            config.get("backup_dir"), ctx.obj["config_dir"], BACKUP_DIR_NAME
        )

    if atomic is None:
        atomic = config.get("atomic_import", False)

    return BackupManager(
        db,
        backup_dir,
        backup_file_name=config.get("backup_file_name", BACKUP_FILE_NAME),
        atomic_import=atomic,
    )


def _fail(message: str) -> None:
    click.echo(click.style(f"Error: {message}", fg="red"), err=True)
    sys.exit(1)


@click.group()
@click.version_option(version=__version__, prog_name="hostlist-backup")
@click.option(
    "--verbose", "-v", is_flag=True, help="Enable verbose output with detailed logging."
)
@click.option(
    "--config-dir",
    "-c",
    type=click.Path(exists=False, file_okay=False, dir_okay=True),
    envvar="HOSTLIST_BACKUP_CONFIG_DIR",
    help="Configuration directory path (default: ~/.hostlist-backup).",
)
@click.option(
    "--config-file",
    "-f",
    type=click.Path(exists=False, file_okay=True, dir_okay=False),
    envvar="HOSTLIST_BACKUP_CONFIG_FILE",
    help="Configuration file path (default: <config-dir>/config.yaml).",
)
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    config_dir: Optional[str],
    config_file: Optional[str],
) -> None:
    """
    Hosts list backup and restore.

    Exports hosts sources and blocked, allowed and redirected hosts to a
    single JSON backup file, and imports them back.
    """
    ctx.ensure_object(dict)

    resolved_config_dir = get_config_dir(config_dir)
    resolved_config_file = get_config_file(resolved_config_dir, config_file)

    ctx.obj["config_dir"] = resolved_config_dir
    ctx.obj["config_file"] = resolved_config_file

    loader = ConfigLoader(
        config_dir=resolved_config_dir, config_file=str(resolved_config_file)
    )
    config: dict[str, Any] = {}
    try:
        config = loader.load_and_validate()
    except ConfigError as e:
        # Keep working with defaults
        click.echo(
            click.style(f"Warning: Configuration error: {e}", fg="yellow"), err=True
        )
        config = {}

    ctx.obj["config"] = config

    # CLI flag takes precedence over config file
    effective_verbose = verbose or config.get("verbose", False)
    ctx.obj["verbose"] = effective_verbose

    log_dir = resolve_data_path(config.get("log_dir"), resolved_config_dir, "logs")
    setup_logging(verbose=effective_verbose, log_dir=log_dir)

    log_retention = config.get("log_retention_count", 10)
    if log_retention > 0:
        cleanup_old_logs(log_dir=log_dir, keep_count=log_retention)


# =============================================================================
# Export Command
# =============================================================================


@cli.command("export")
@click.option(
    "--output-dir",
    "-o",
    type=click.Path(file_okay=False, dir_okay=True),
    help="Directory to write the backup file to (default: <config-dir>/backups).",
)
@click.pass_context
def export_command(ctx: click.Context, output_dir: Optional[str]) -> None:
    """
    Export hosts sources and host lists to a backup file.

    Examples:

        hostlist-backup export

        hostlist-backup export --output-dir /mnt/sdcard
    """
    logger = get_logger(__name__)

    try:
        db = open_database(ctx)
    except (OSError, StorageError) as e:
        _fail(f"Cannot open database: {e}")
        return

    bm = build_backup_manager(ctx, db, output_dir=output_dir)
    logger.debug(f"Exporting backup to {bm.export_path}")

    click.echo("Exporting backup...")
    exported = bm.start_export().wait()

    if not exported:
        _fail("Failed to export backup.")
        return

    click.echo(click.style(f"Backup exported to {bm.last_export_path}", fg="green"))


# =============================================================================
# Import Command
# =============================================================================


@cli.command("import")
@click.argument(
    "backup_file", type=click.Path(exists=False, file_okay=True, dir_okay=False)
)
@click.option(
    "--atomic/--no-atomic",
    default=None,
    help="Roll back every imported record if one of them fails "
    "(default: atomic_import from config, else off).",
)
@click.pass_context
def import_command(
    ctx: click.Context, backup_file: str, atomic: Optional[bool]
) -> None:
    """
    Import hosts sources and host lists from a backup file.

    Imported records are added to the existing ones; nothing is replaced
    or deduplicated.

    Examples:

        hostlist-backup import adaway-backup.json

        hostlist-backup import adaway-backup.json --atomic
    """
    logger = get_logger(__name__)

    try:
        db = open_database(ctx)
    except (OSError, StorageError) as e:
        _fail(f"Cannot open database: {e}")
        return

    bm = build_backup_manager(ctx, db, atomic=atomic)
    logger.debug(f"Importing backup from {backup_file} (atomic={bm.atomic_import})")

    click.echo(f"Importing backup from {backup_file}...")
    imported = bm.start_import(Path(backup_file)).wait()

    if not imported:
        _fail("Failed to import backup.")
        return

    click.echo(click.style("Backup imported.", fg="green"))


# =============================================================================
# Show Command
# =============================================================================


@cli.command("show")
@click.pass_context
def show_command(ctx: click.Context) -> None:
    """
    Show stored hosts sources and host lists.
    """
    try:
        db = open_database(ctx)
        sources = db.get_all_sources()
        items = db.get_all_host_items()
    except (OSError, StorageError) as e:
        _fail(f"Cannot read database: {e}")
        return

    click.echo(f"Hosts sources ({len(sources)}):")
    for source in sources:
        state = "" if source.enabled else " (disabled)"
        click.echo(f"  {source.url}{state}")

    for list_type, title in LIST_TITLES.items():
        entries = [item for item in items if item.type is list_type]
        click.echo(f"\n{title} ({len(entries)}):")
        for item in entries:
            target = f" -> {item.redirection}" if item.has_redirection() else ""
            state = "" if item.enabled else " (disabled)"
            click.echo(f"  {item.host}{target}{state}")


# =============================================================================
# Add Commands
# =============================================================================


@cli.command("add-source")
@click.argument("url")
@click.option("--disabled", is_flag=True, help="Store the source as disabled.")
@click.pass_context
def add_source_command(ctx: click.Context, url: str, disabled: bool) -> None:
    """
    Subscribe to a remote hosts source.

    Example:

        hostlist-backup add-source https://example.com/hosts
    """
    try:
        db = open_database(ctx)
        db.insert_source(HostsSource(url=url, enabled=not disabled))
    except (OSError, StorageError) as e:
        _fail(f"Cannot store source: {e}")
        return

    click.echo(f"Added source {url}")


@cli.command("add-host")
@click.argument("host")
@click.option(
    "--type",
    "-t",
    "list_type",
    type=click.Choice(VALID_LIST_TYPES, case_sensitive=False),
    default=ListType.BLOCK.value,
    show_default=True,
    help="List to add the host to.",
)
@click.option(
    "--redirect",
    "-r",
    "redirection",
    help="Redirection target address (redirect list only).",
)
@click.option("--disabled", is_flag=True, help="Store the host as disabled.")
@click.pass_context
def add_host_command(
    ctx: click.Context,
    host: str,
    list_type: str,
    redirection: Optional[str],
    disabled: bool,
) -> None:
    """
    Add a host to the blocked, allowed or redirected list.

    Examples:

        hostlist-backup add-host ads.example.com

        hostlist-backup add-host track.example.com -t redirect -r 0.0.0.0
    """
    item_type = ListType(list_type.lower())
    if item_type is ListType.REDIRECT and not redirection:
        raise click.UsageError("--redirect is required for redirect hosts.")
    if item_type is not ListType.REDIRECT and redirection:
        raise click.UsageError("--redirect is only valid for redirect hosts.")

    try:
        db = open_database(ctx)
        db.insert_host_item(
            HostListItem(
                host=host,
                type=item_type,
                enabled=not disabled,
                redirection=redirection,
            )
        )
    except (OSError, StorageError) as e:
        _fail(f"Cannot store host: {e}")
        return

    click.echo(f"Added {item_type.value} host {host}")


# =============================================================================
# Health Command
# =============================================================================


@cli.command("health")
def health_command() -> None:
    """
    Check application health status.

    Example:

        hostlist-backup health
    """
    click.echo("healthy")
