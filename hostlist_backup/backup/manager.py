"""
Backup manager for exporting and importing hosts sources and host lists.

Provides functionality to:
- Export every stored source and host list item to a JSON backup file
- Import a backup file back into storage
- Run either flow on a dedicated background thread with a completion callback
"""

from __future__ import annotations

import contextlib
import logging
import os
import threading
from collections.abc import Callable
from enum import Enum
from pathlib import Path
from typing import Any

from hostlist_backup.backup.deserializer import parse_backup
from hostlist_backup.backup.errors import (
    BackupError,
    DestinationUnavailableError,
    EncodingError,
    SourceUnavailableError,
)
from hostlist_backup.backup.schema import (
    BACKUP_ENCODING,
    BACKUP_FILE_NAME,
    BackupDocument,
    decode_document,
    render_document,
)
from hostlist_backup.backup.serializer import build_backup
from hostlist_backup.lists import HostListItem, HostsSource
from hostlist_backup.storage.db import StorageError

logger = logging.getLogger(__name__)

# Called once per flow with True on success, False on failure
CompletionCallback = Callable[[bool], None]


class FlowState(str, Enum):
    """Lifecycle of a background backup flow."""

    IDLE = "idle"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class BackupFlow:
    """
    A single export or import run on a dedicated background thread.

    The flow moves from IDLE to RUNNING when started, then to SUCCEEDED or
    FAILED. The completion callback receives the outcome exactly once. A
    running flow cannot be cancelled.

    Attributes:
        name: Flow name ("export" or "import")
        state: Current FlowState
        result: Outcome once finished, None before
    """

    def __init__(
        self,
        name: str,
        work: Callable[[], bool],
        on_complete: CompletionCallback | None = None,
    ):
        self.name = name
        self.state = FlowState.IDLE
        self.result: bool | None = None
        self._work = work
        self._on_complete = on_complete
        self._thread = threading.Thread(
            target=self._run, name=f"backup-{name}", daemon=True
        )

    def start(self) -> BackupFlow:
        """
        Start the flow on its background thread.

        Returns:
            The flow itself, for chaining

        Raises:
            RuntimeError: If the flow was already started
        """
        if self.state is not FlowState.IDLE:
            raise RuntimeError(f"Backup {self.name} flow already started")
        self.state = FlowState.RUNNING
        self._thread.start()
        return self

    def wait(self, timeout: float | None = None) -> bool | None:
        """
        Wait for the flow to finish.

        Args:
            timeout: Maximum number of seconds to wait (None waits forever)

        Returns:
            The outcome, or None if the flow is still running
        """
        if self.state is not FlowState.IDLE:
            self._thread.join(timeout)
        return self.result

    @property
    def done(self) -> bool:
        """Whether the flow reached a terminal state."""
        return self.state in (FlowState.SUCCEEDED, FlowState.FAILED)

    def _run(self) -> None:
        try:
            succeeded = self._work()
        except Exception:
            logger.exception(f"Backup {self.name} flow failed unexpectedly")
            succeeded = False

        self.result = succeeded
        self.state = FlowState.SUCCEEDED if succeeded else FlowState.FAILED

        if self._on_complete is not None:
            try:
                self._on_complete(succeeded)
            except Exception:
                logger.exception(f"Backup {self.name} completion callback failed")


class BackupManager:
    """
    Orchestrates backup export and import against a storage collaborator.

    The storage object must provide get_all_sources(), get_all_host_items(),
    insert_source() and insert_host_item(). When atomic_import is enabled it
    must also provide a transaction() context manager.

    Every failure is logged and reported as a False outcome; no exception
    escapes export_backup() or import_backup().

    Attributes:
        storage: Storage collaborator (e.g., HostListDatabase)
        backup_dir: Directory the backup file is exported to
        backup_file_name: Name of the exported backup file
        atomic_import: Roll back every insert of an import on failure
        last_export_path: Path of the last successfully exported backup

    Usage:
        db = HostListDatabase("hostlist.db")
        db.initialize()
        bm = BackupManager(db, Path("~/backups"))

        # Synchronous
        if bm.export_backup():
            print(bm.last_export_path)

        # Background
        flow = bm.start_import(Path("adaway-backup.json"), on_complete=print)
        flow.wait()
    """

    def __init__(
        self,
        storage: Any,
        backup_dir: Path | str,
        backup_file_name: str = BACKUP_FILE_NAME,
        atomic_import: bool = False,
    ):
        """
        Initialize the backup manager.

        Args:
            storage: Storage collaborator for sources and host list items
            backup_dir: Directory where backups are exported
            backup_file_name: File name of exported backups
            atomic_import: Wrap all import inserts in a single transaction
        """
        self.storage = storage
        self.backup_dir = Path(backup_dir).expanduser()
        self.backup_file_name = backup_file_name
        self.atomic_import = atomic_import
        self.last_export_path: Path | None = None

    @property
    def export_path(self) -> Path:
        """Path the backup file is exported to."""
        return self.backup_dir / self.backup_file_name

    # =========================================================================
    # Export
    # =========================================================================

    def make_backup(self) -> BackupDocument:
        """
        Build a backup document from everything in storage.

        Raises:
            StorageError: If storage cannot be read
            EncodingError: If a stored entity cannot be encoded
        """
        return build_backup(
            self.storage.get_all_sources(), self.storage.get_all_host_items()
        )

    def export_backup(self) -> bool:
        """
        Export every source and host list item to the backup file.

        The document is fully rendered before the file is opened, so a
        failure to build it leaves any previous backup untouched.

        Returns:
            True if the backup file was written, False otherwise
        """
        try:
            path = self._write_backup()
        except DestinationUnavailableError as e:
            logger.error(f"Backup destination can not be written: {e}")
            return False
        except (EncodingError, StorageError) as e:
            logger.error(f"Failed to generate backup: {e}", exc_info=True)
            return False
        except OSError as e:
            logger.error(f"Could not write file: {e}", exc_info=True)
            return False

        self.last_export_path = path
        logger.info(f"Backup exported to {path}")
        return True

    def start_export(self, on_complete: CompletionCallback | None = None) -> BackupFlow:
        """
        Run export_backup() on a background thread.

        Args:
            on_complete: Called once with the outcome

        Returns:
            The started BackupFlow
        """
        return BackupFlow("export", self.export_backup, on_complete).start()

    def _write_backup(self) -> Path:
        directory = self._acquire_destination()
        content = render_document(self.make_backup())

        path = directory / self.backup_file_name
        with open(path, "w", encoding=BACKUP_ENCODING) as f:
            f.write(content)

        return path

    def _acquire_destination(self) -> Path:
        try:
            self.backup_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise DestinationUnavailableError(
                f"Cannot create backup directory {self.backup_dir}: {e}"
            ) from e

        if not os.access(self.backup_dir, os.W_OK):
            raise DestinationUnavailableError(
                f"Backup directory {self.backup_dir} is not writable"
            )

        return self.backup_dir

    # =========================================================================
    # Import
    # =========================================================================

    def read_backup(
        self, source: Path | str
    ) -> tuple[list[HostsSource], list[HostListItem]]:
        """
        Read and parse a backup file without touching storage.

        Args:
            source: Path to the backup file

        Returns:
            Tuple of (sources, items) as returned by parse_backup()

        Raises:
            SourceUnavailableError: If the file cannot be opened or read
            DecodingError: If the file is not a JSON object
            MissingSectionError: If a section is missing
            FieldError: If an entry is invalid
        """
        source = Path(source)
        try:
            with open(source, "rb") as f:
                data = f.read()
        except FileNotFoundError as e:
            raise SourceUnavailableError(f"Failed to find backup file {source}") from e
        except OSError as e:
            raise SourceUnavailableError(
                f"Failed to read backup file {source}: {e}"
            ) from e

        return parse_backup(decode_document(data))

    def import_backup(self, source: Path | str) -> bool:
        """
        Import a backup file into storage.

        The file is fully parsed before the first insert. Inserts are pure
        appends: existing records are neither updated nor deduplicated.
        Unless atomic_import is set, records inserted before a storage
        failure are kept.

        Args:
            source: Path to the backup file

        Returns:
            True if every record was inserted, False otherwise
        """
        try:
            sources, items = self.read_backup(source)
        except SourceUnavailableError as e:
            logger.error(str(e))
            return False
        except BackupError as e:
            logger.error(f"Failed to parse backup file: {e}")
            return False

        try:
            self.restore_records(sources, items)
        except StorageError as e:
            logger.error(f"Failed to store backup records: {e}", exc_info=True)
            return False

        logger.info(
            f"Imported {len(sources)} source(s) and {len(items)} host(s) from {source}"
        )
        return True

    def start_import(
        self, source: Path | str, on_complete: CompletionCallback | None = None
    ) -> BackupFlow:
        """
        Run import_backup() on a background thread.

        Args:
            source: Path to the backup file
            on_complete: Called once with the outcome

        Returns:
            The started BackupFlow
        """
        return BackupFlow(
            "import", lambda: self.import_backup(source), on_complete
        ).start()

    def restore_records(
        self, sources: list[HostsSource], items: list[HostListItem]
    ) -> None:
        """
        Insert parsed sources then host list items, in order.

        Raises:
            StorageError: If storage rejects a record
        """
        scope: contextlib.AbstractContextManager[Any] = contextlib.nullcontext()
        if self.atomic_import:
            scope = self.storage.transaction()

        with scope:
            for source in sources:
                self.storage.insert_source(source)
            for item in items:
                self.storage.insert_host_item(item)
