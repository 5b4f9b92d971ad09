"""
Unit tests for the backup module.

Tests the BackupManager export and import flows and the BackupFlow
background runner.
"""

import json
import threading
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from hostlist_backup.backup import (
    BACKUP_FILE_NAME,
    BackupFlow,
    BackupManager,
    FlowState,
    render_document,
)
from hostlist_backup.lists import HostListItem, HostsSource, ListType
from hostlist_backup.storage import HostListDatabase, StorageError

EXAMPLE_SOURCES = [HostsSource("https://example.com/hosts", True)]
EXAMPLE_ITEMS = [
    HostListItem("ads.example.com", ListType.BLOCK, True),
    HostListItem("good.example.com", ListType.ALLOW, False),
    HostListItem("track.example.com", ListType.REDIRECT, True, "0.0.0.0"),
]


def make_db(sources=(), items=()) -> HostListDatabase:
    """Helper to create an initialized in-memory database."""
    db = HostListDatabase(":memory:")
    db.initialize()
    for source in sources:
        db.insert_source(HostsSource(source.url, source.enabled))
    for item in items:
        db.insert_host_item(
            HostListItem(item.host, item.type, item.enabled, item.redirection)
        )
    return db


def write_backup(path: Path, document: dict) -> Path:
    """Helper to write a backup document to a file."""
    path.write_text(json.dumps(document), encoding="utf-8")
    return path


def mock_storage(sources=(), items=()) -> MagicMock:
    """Helper to create a storage mock."""
    storage = MagicMock()
    storage.get_all_sources.return_value = list(sources)
    storage.get_all_host_items.return_value = list(items)
    return storage


class TestBackupManagerInitialization:
    """Tests for BackupManager initialization."""

    def test_defaults(self, tmp_path):
        """Test default file name and import mode."""
        bm = BackupManager(mock_storage(), tmp_path)
        assert bm.backup_file_name == BACKUP_FILE_NAME == "adaway-backup.json"
        assert bm.atomic_import is False
        assert bm.last_export_path is None

    def test_export_path(self, tmp_path):
        """Test that the export path joins directory and file name."""
        bm = BackupManager(mock_storage(), tmp_path, backup_file_name="lists.json")
        assert bm.export_path == tmp_path / "lists.json"

    def test_path_expansion_with_tilde(self):
        """Test that paths with ~ are expanded."""
        bm = BackupManager(mock_storage(), "~/hostlist_backups")
        assert "~" not in str(bm.backup_dir)

    def test_directory_not_created_eagerly(self, tmp_path):
        """Test that the backup directory is only created on export."""
        backup_dir = tmp_path / "backups"
        BackupManager(mock_storage(), backup_dir)
        assert not backup_dir.exists()


class TestExportBackup:
    """Tests for the export flow."""

    def test_export_writes_document(self, tmp_path):
        """Test exporting the example data."""
        db = make_db(EXAMPLE_SOURCES, EXAMPLE_ITEMS)
        bm = BackupManager(db, tmp_path / "backups")

        assert bm.export_backup() is True

        path = tmp_path / "backups" / "adaway-backup.json"
        assert bm.last_export_path == path
        data = json.loads(path.read_text(encoding="utf-8"))
        assert len(data["sources"]) == 1
        assert len(data["blocked"]) == 1
        assert len(data["allowed"]) == 1
        assert data["redirected"] == [
            {"host": "track.example.com", "redirect": "0.0.0.0", "enabled": True}
        ]

    def test_export_is_pretty_printed(self, tmp_path):
        """Test that the file content is the rendered document."""
        db = make_db(EXAMPLE_SOURCES, EXAMPLE_ITEMS)
        bm = BackupManager(db, tmp_path)

        bm.export_backup()

        content = bm.export_path.read_text(encoding="utf-8")
        assert content == render_document(bm.make_backup())
        assert '\n    "sources": [' in content

    def test_export_empty_storage(self, tmp_path):
        """Test exporting when nothing is stored."""
        bm = BackupManager(make_db(), tmp_path)

        assert bm.export_backup() is True
        assert json.loads(bm.export_path.read_text()) == {
            "sources": [],
            "blocked": [],
            "allowed": [],
            "redirected": [],
        }

    def test_export_overwrites_previous_backup(self, tmp_path):
        """Test that a second export replaces the file."""
        bm = BackupManager(make_db(EXAMPLE_SOURCES), tmp_path)
        bm.export_path.write_text("old content")

        assert bm.export_backup() is True
        assert "old content" not in bm.export_path.read_text()

    def test_unwritable_destination_fails(self, tmp_path):
        """Test that a destination that cannot be created fails the export."""
        blocker = tmp_path / "not_a_dir"
        blocker.write_text("")
        storage = mock_storage(EXAMPLE_SOURCES, EXAMPLE_ITEMS)
        bm = BackupManager(storage, blocker / "backups")

        assert bm.export_backup() is False
        assert bm.last_export_path is None
        storage.get_all_sources.assert_not_called()

    def test_encoding_failure_leaves_previous_backup(self, tmp_path):
        """Test that an invalid entity does not truncate an existing file."""
        storage = mock_storage([HostsSource("")])
        bm = BackupManager(storage, tmp_path)
        bm.export_path.write_text("previous backup")

        assert bm.export_backup() is False
        assert bm.export_path.read_text() == "previous backup"

    def test_storage_failure_fails_export(self, tmp_path):
        """Test that a storage read error fails the export."""
        storage = mock_storage()
        storage.get_all_host_items.side_effect = StorageError("disk I/O error")
        bm = BackupManager(storage, tmp_path)

        assert bm.export_backup() is False
        assert not bm.export_path.exists()

    def test_write_failure_fails_export(self, tmp_path):
        """Test that an error opening the file fails the export."""
        bm = BackupManager(mock_storage(), tmp_path)
        bm.export_path.mkdir()

        assert bm.export_backup() is False

    def test_export_does_not_modify_storage(self, tmp_path):
        """Test that export only reads from storage."""
        storage = mock_storage(EXAMPLE_SOURCES, EXAMPLE_ITEMS)
        bm = BackupManager(storage, tmp_path)

        bm.export_backup()

        storage.insert_source.assert_not_called()
        storage.insert_host_item.assert_not_called()


class TestImportBackup:
    """Tests for the import flow."""

    @pytest.fixture
    def backup_file(self, tmp_path):
        """Create a backup file with the example data."""
        bm = BackupManager(make_db(EXAMPLE_SOURCES, EXAMPLE_ITEMS), tmp_path)
        bm.export_backup()
        return bm.export_path

    def test_import_example(self, backup_file):
        """Test importing the example data into an empty database."""
        db = make_db()
        bm = BackupManager(db, backup_file.parent)

        assert bm.import_backup(backup_file) is True

        assert db.get_all_sources() == EXAMPLE_SOURCES
        assert db.get_all_host_items() == EXAMPLE_ITEMS

    def test_import_accepts_string_path(self, backup_file):
        """Test that the source can be given as a string."""
        db = make_db()
        assert BackupManager(db, backup_file.parent).import_backup(str(backup_file))
        assert db.count_host_items() == 3

    def test_import_inserts_in_order(self, tmp_path):
        """Test that inserts follow sources, blocked, allowed, redirected."""
        path = write_backup(
            tmp_path / "backup.json",
            {
                "redirected": [
                    {"host": "r.example", "redirect": "::", "enabled": True}
                ],
                "allowed": [{"host": "a.example", "enabled": True}],
                "blocked": [{"host": "b.example", "enabled": True}],
                "sources": [
                    {"url": "https://1.example", "enabled": True},
                    {"url": "https://2.example", "enabled": False},
                ],
            },
        )
        storage = mock_storage()
        calls = []
        storage.insert_source.side_effect = lambda s: calls.append(s.url)
        storage.insert_host_item.side_effect = lambda i: calls.append(
            (i.host, i.type)
        )

        assert BackupManager(storage, tmp_path).import_backup(path) is True

        assert calls == [
            "https://1.example",
            "https://2.example",
            ("b.example", ListType.BLOCK),
            ("a.example", ListType.ALLOW),
            ("r.example", ListType.REDIRECT),
        ]

    def test_import_appends_without_deduplication(self, backup_file):
        """Test that importing twice stores every record twice."""
        db = make_db()
        bm = BackupManager(db, backup_file.parent)

        bm.import_backup(backup_file)
        bm.import_backup(backup_file)

        assert db.count_sources() == 2
        assert db.count_host_items() == 6

    def test_import_keeps_existing_records(self, backup_file):
        """Test that existing records are neither replaced nor removed."""
        db = make_db([HostsSource("https://existing.example/hosts")])
        bm = BackupManager(db, backup_file.parent)

        bm.import_backup(backup_file)

        urls = [source.url for source in db.get_all_sources()]
        assert urls == ["https://existing.example/hosts", "https://example.com/hosts"]

    def test_missing_file_fails(self, tmp_path):
        """Test that a missing backup file fails without inserts."""
        storage = mock_storage()
        bm = BackupManager(storage, tmp_path)

        assert bm.import_backup(tmp_path / "missing.json") is False
        storage.insert_source.assert_not_called()

    def test_directory_source_fails(self, tmp_path):
        """Test that a directory cannot be imported."""
        assert BackupManager(mock_storage(), tmp_path).import_backup(tmp_path) is False

    def test_malformed_json_fails(self, tmp_path):
        """Test that malformed JSON fails without inserts."""
        path = tmp_path / "backup.json"
        path.write_text('{"sources": [', encoding="utf-8")
        storage = mock_storage()

        assert BackupManager(storage, tmp_path).import_backup(path) is False
        storage.insert_source.assert_not_called()
        storage.insert_host_item.assert_not_called()

    def test_oversized_integer_fails(self, tmp_path):
        """Test that an unconvertible integer literal fails the import."""
        path = tmp_path / "backup.json"
        path.write_bytes(b'{"sources": [], "n": 1' + b"0" * 5000 + b"}")
        storage = mock_storage()

        assert BackupManager(storage, tmp_path).import_backup(path) is False
        storage.insert_source.assert_not_called()

    def test_deeply_nested_json_fails(self, tmp_path):
        """Test that nesting beyond the recursion limit fails the import."""
        path = tmp_path / "backup.json"
        path.write_bytes(b"[" * 200_000 + b"]" * 200_000)

        assert BackupManager(mock_storage(), tmp_path).import_backup(path) is False

    def test_missing_section_fails_without_inserts(self, tmp_path):
        """Test that a missing section rejects the whole document."""
        path = write_backup(
            tmp_path / "backup.json",
            {
                "sources": [{"url": "https://e.example", "enabled": True}],
                "blocked": [{"host": "b.example", "enabled": True}],
                "allowed": [],
            },
        )
        storage = mock_storage()

        assert BackupManager(storage, tmp_path).import_backup(path) is False
        storage.insert_source.assert_not_called()
        storage.insert_host_item.assert_not_called()

    def test_malformed_field_fails_without_inserts(self, tmp_path):
        """Test that an entry missing enabled rejects the whole document."""
        path = write_backup(
            tmp_path / "backup.json",
            {
                "sources": [{"url": "https://e.example", "enabled": True}],
                "blocked": [{"host": "b.example", "enabled": True}],
                "allowed": [{"host": "a.example"}],
                "redirected": [],
            },
        )
        db = make_db()

        assert BackupManager(db, tmp_path).import_backup(path) is False
        assert db.count_sources() == 0
        assert db.count_host_items() == 0

    def test_storage_failure_keeps_earlier_inserts(self, tmp_path):
        """Test that the default import is not rolled back on failure."""
        path = write_backup(
            tmp_path / "backup.json",
            {
                "sources": [{"url": "https://e.example", "enabled": True}],
                "blocked": [
                    {"host": "b.example", "enabled": True},
                    {"host": "", "enabled": True},
                    {"host": "c.example", "enabled": True},
                ],
                "allowed": [],
                "redirected": [],
            },
        )
        db = make_db()

        assert BackupManager(db, tmp_path).import_backup(path) is False

        assert db.count_sources() == 1
        assert [item.host for item in db.get_all_host_items()] == ["b.example"]

    def test_atomic_import_rolls_back_on_failure(self, tmp_path):
        """Test that an atomic import leaves storage untouched on failure."""
        path = write_backup(
            tmp_path / "backup.json",
            {
                "sources": [{"url": "https://e.example", "enabled": True}],
                "blocked": [
                    {"host": "b.example", "enabled": True},
                    {"host": "", "enabled": True},
                ],
                "allowed": [],
                "redirected": [],
            },
        )
        db = make_db([HostsSource("https://existing.example")])
        bm = BackupManager(db, tmp_path, atomic_import=True)

        assert bm.import_backup(path) is False

        assert db.get_all_sources() == [HostsSource("https://existing.example")]
        assert db.count_host_items() == 0

    def test_atomic_import_commits_on_success(self, backup_file):
        """Test that an atomic import stores every record."""
        db = make_db()
        bm = BackupManager(db, backup_file.parent, atomic_import=True)

        assert bm.import_backup(backup_file) is True
        assert db.get_all_host_items() == EXAMPLE_ITEMS

    def test_round_trip_between_databases(self, tmp_path):
        """Test exporting one database and importing into another."""
        items = [
            HostListItem("r1.example", ListType.REDIRECT, True, "10.0.0.1"),
            HostListItem("b1.example", ListType.BLOCK, False),
            HostListItem("a1.example", ListType.ALLOW, True),
            HostListItem("b2.example", ListType.BLOCK, True),
        ]
        source_db = make_db(EXAMPLE_SOURCES, items)
        BackupManager(source_db, tmp_path).export_backup()

        target_db = make_db()
        BackupManager(target_db, tmp_path).import_backup(tmp_path / BACKUP_FILE_NAME)

        assert target_db.get_all_sources() == source_db.get_all_sources()
        imported = target_db.get_all_host_items()
        for list_type in ListType:
            assert [i for i in imported if i.type is list_type] == [
                i for i in items if i.type is list_type
            ]

    def test_read_backup_does_not_touch_storage(self, backup_file):
        """Test that read_backup only parses."""
        storage = mock_storage()

        sources, items = BackupManager(storage, backup_file.parent).read_backup(
            backup_file
        )

        assert sources == EXAMPLE_SOURCES
        assert items == EXAMPLE_ITEMS
        storage.insert_source.assert_not_called()


class TestBackgroundFlows:
    """Tests for background export and import."""

    def test_start_export_reports_success(self, tmp_path):
        """Test that the export callback receives True once."""
        results = []
        bm = BackupManager(make_db(EXAMPLE_SOURCES, EXAMPLE_ITEMS), tmp_path)

        flow = bm.start_export(on_complete=results.append)

        assert flow.wait(timeout=5) is True
        assert flow.state is FlowState.SUCCEEDED
        assert results == [True]
        assert bm.export_path.exists()

    def test_start_import_reports_failure(self, tmp_path):
        """Test that the import callback receives False on failure."""
        results = []
        bm = BackupManager(mock_storage(), tmp_path)

        flow = bm.start_import(tmp_path / "missing.json", on_complete=results.append)

        assert flow.wait(timeout=5) is False
        assert flow.state is FlowState.FAILED
        assert results == [False]

    def test_start_import_stores_records(self, tmp_path):
        """Test a background import into a database."""
        BackupManager(make_db(EXAMPLE_SOURCES, EXAMPLE_ITEMS), tmp_path).export_backup()
        db = make_db()

        flow = BackupManager(db, tmp_path).start_import(tmp_path / BACKUP_FILE_NAME)

        assert flow.wait(timeout=5) is True
        assert db.get_all_host_items() == EXAMPLE_ITEMS

    def test_flow_runs_on_background_thread(self):
        """Test that the work runs on a separate named thread."""
        thread_names = []

        def work():
            thread_names.append(threading.current_thread().name)
            return True

        BackupFlow("export", work).start().wait(timeout=5)

        assert thread_names == ["backup-export"]

    def test_flow_state_transitions(self):
        """Test IDLE, RUNNING and terminal states."""
        release = threading.Event()
        flow = BackupFlow("import", lambda: release.wait(5))

        assert flow.state is FlowState.IDLE
        assert flow.wait(timeout=0) is None

        flow.start()
        assert flow.state is FlowState.RUNNING
        assert not flow.done

        release.set()
        assert flow.wait(timeout=5) is True
        assert flow.done

    def test_flow_cannot_start_twice(self):
        """Test that a flow is single use."""
        flow = BackupFlow("export", lambda: True).start()
        flow.wait(timeout=5)

        with pytest.raises(RuntimeError, match="already started"):
            flow.start()

    def test_unexpected_exception_fails_flow(self):
        """Test that an exception in the work reports failure."""
        results = []

        def work():
            raise ValueError("boom")

        flow = BackupFlow("export", work, results.append).start()

        assert flow.wait(timeout=5) is False
        assert flow.state is FlowState.FAILED
        assert results == [False]

    def test_callback_exception_keeps_outcome(self):
        """Test that a failing callback does not change the outcome."""
        callback = MagicMock(side_effect=RuntimeError("receiver gone"))

        flow = BackupFlow("export", lambda: True, callback).start()

        assert flow.wait(timeout=5) is True
        assert flow.state is FlowState.SUCCEEDED
        callback.assert_called_once_with(True)
