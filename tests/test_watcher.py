"""
Unit tests for the directory watcher service. The watchdog observer is
never started; events are fed to the handler directly.
"""
import io

import pytest
from watchdog.events import DirCreatedEvent, FileCreatedEvent, FileModifiedEvent

from core.document import write_document
from core.errors import InvalidConfiguration
from services.dataset_builder import DatasetWriter
from services.watcher import DatasetWatcherService, DiffDocumentHandler, DirectoryWatcher


class BrokenStream(io.StringIO):
    def write(self, text):
        raise OSError(5, "Input/output error")


@pytest.fixture
def document_file(tmp_path, sample_document):
    path = tmp_path / "diff.xml"
    with open(path, "wb") as f:
        write_document(sample_document, f)
    return str(path)


class TestDiffDocumentHandler:

    def test_matching_file_reported(self, document_file):
        seen = []
        handler = DiffDocumentHandler(seen.append, settle_seconds=0)
        handler.on_created(FileCreatedEvent(document_file))
        assert seen == [document_file]

    def test_pattern_is_case_insensitive(self, tmp_path):
        path = tmp_path / "DIFF.XML"
        path.write_bytes(b"<winregdiff/>")
        seen = []
        DiffDocumentHandler(seen.append, settle_seconds=0).on_created(FileCreatedEvent(str(path)))
        assert seen == [str(path)]

    def test_other_files_ignored(self, tmp_path):
        path = tmp_path / "notes.txt"
        path.write_text("x")
        seen = []
        DiffDocumentHandler(seen.append, settle_seconds=0).on_created(FileCreatedEvent(str(path)))
        assert seen == []

    def test_directories_ignored(self, tmp_path):
        folder = tmp_path / "sub.xml"
        folder.mkdir()
        seen = []
        DiffDocumentHandler(seen.append, settle_seconds=0).on_created(DirCreatedEvent(str(folder)))
        assert seen == []

    def test_same_version_reported_once(self, document_file):
        seen = []
        handler = DiffDocumentHandler(seen.append, settle_seconds=0)
        handler.on_created(FileCreatedEvent(document_file))
        handler.on_modified(FileModifiedEvent(document_file))
        assert seen == [document_file]

    def test_vanished_file_ignored(self, tmp_path):
        seen = []
        handler = DiffDocumentHandler(seen.append, settle_seconds=0)
        handler.on_modified(FileModifiedEvent(str(tmp_path / "gone.xml")))
        assert seen == []


class TestDirectoryWatcher:

    def test_scan_existing_in_name_order(self, tmp_path):
        for name in ("b.xml", "a.xml", "c.txt"):
            (tmp_path / name).write_text("x")
        seen = []

        count = DirectoryWatcher(str(tmp_path), seen.append).scan_existing()

        assert count == 2
        assert seen == [str(tmp_path / "a.xml"), str(tmp_path / "b.xml")]

    def test_scan_matches_like_events(self, tmp_path):
        path = tmp_path / "DIFF.XML"
        path.write_bytes(b"<winregdiff/>")
        scanned, reported = [], []

        DirectoryWatcher(str(tmp_path), scanned.append).scan_existing()
        DiffDocumentHandler(reported.append, settle_seconds=0).on_created(FileCreatedEvent(str(path)))

        assert scanned == reported == [str(path)]

    def test_start_missing_directory(self, tmp_path):
        watcher = DirectoryWatcher(str(tmp_path / "absent"), lambda path: None)
        with pytest.raises(FileNotFoundError):
            watcher.start()
        assert not watcher.is_running()

    def test_stop_when_not_running(self, tmp_path):
        watcher = DirectoryWatcher(str(tmp_path), lambda path: None)
        watcher.stop()
        assert not watcher.is_running()


class TestDatasetWatcherService:

    def test_handle_file_writes_records(self, document_file):
        stream = io.StringIO()
        service = DatasetWatcherService(DatasetWriter(stream))

        service._handle_file(document_file)

        assert len(stream.getvalue().splitlines()) == 5
        stats = service.get_stats()
        assert stats["files_processed"] == 1
        assert stats["last_file"] == document_file
        assert stats["is_running"] is False

    def test_bad_file_skipped(self, tmp_path):
        path = tmp_path / "bad.xml"
        path.write_bytes(b"<nope")
        service = DatasetWatcherService(DatasetWriter(io.StringIO()))

        service._handle_file(str(path))

        assert service.get_stats()["files_skipped"] == 1
        assert service.fatal_error is None

    def test_write_failure_is_fatal(self, document_file):
        service = DatasetWatcherService(DatasetWriter(BrokenStream()))

        service._handle_file(document_file)
        service._handle_file(document_file)

        assert service.fatal_error is not None
        assert service.get_stats()["files_processed"] == 0

    def test_start_without_directory(self, monkeypatch):
        monkeypatch.setattr("services.watcher.settings.WATCH_DIRECTORY", None)
        service = DatasetWatcherService(DatasetWriter(io.StringIO()))
        with pytest.raises(InvalidConfiguration):
            service.start()
