"""
Drop-folder watching for WiReD.

Difference documents copied into the watched directory are flattened
into the dataset as soon as they are complete. Built on watchdog.
"""
import fnmatch
import logging
import os
import time
from pathlib import Path
from typing import Callable, Optional

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from config import settings
from core.errors import DatasetWriteError, InvalidConfiguration
from services.dataset_builder import DatasetWriter, load_document

logger = logging.getLogger(__name__)

SEEN_LIMIT = 1000


def matches_pattern(path, pattern: str) -> bool:
    """Case-insensitive file name match, the same for scans and events."""
    return fnmatch.fnmatch(os.path.basename(str(path)).lower(), pattern.lower())


class DiffDocumentHandler(FileSystemEventHandler):
    """
    Reports each new version of a matching file exactly once.

    A version is identified by absolute path plus mtime, so a document
    rewritten in place is picked up again while the create/modify event
    pair of a single copy is not.
    """

    def __init__(
        self,
        callback: Callable[[str], None],
        pattern: str = "*.xml",
        settle_seconds: float = 0.5,
    ):
        self.callback = callback
        self.pattern = pattern
        self.settle_seconds = settle_seconds
        self._seen = set()

    def on_created(self, event: FileSystemEvent):
        if not event.is_directory and self._matches(event.src_path):
            # producer may still be writing
            time.sleep(self.settle_seconds)
            self._report(event.src_path)

    def on_modified(self, event: FileSystemEvent):
        if not event.is_directory and self._matches(event.src_path):
            self._report(event.src_path)

    def _matches(self, path: str) -> bool:
        return matches_pattern(path, self.pattern)

    def _report(self, path: str):
        try:
            version = (os.path.abspath(path), os.path.getmtime(path))
        except OSError:
            # removed before we got to it
            return

        if version in self._seen:
            return
        if len(self._seen) >= SEEN_LIMIT:
            self._seen.clear()
        self._seen.add(version)

        logger.info(f"New difference document: {path}")
        self.callback(path)


class DirectoryWatcher:
    """
    Runs a watchdog observer over one directory.

    Usage:
        watcher = DirectoryWatcher("/srv/wired/inbox", callback)
        watcher.scan_existing()
        watcher.start()
        ...
        watcher.stop()
    """

    def __init__(
        self,
        directory: str,
        callback: Callable[[str], None],
        pattern: str = "*.xml",
        recursive: bool = False,
        settle_seconds: float = 0.5,
    ):
        self.directory = Path(directory)
        self.callback = callback
        self.pattern = pattern
        self.recursive = recursive
        self.settle_seconds = settle_seconds
        self._observer: Optional[Observer] = None

    def start(self):
        if self._observer is not None:
            logger.warning(f"Already watching {self.directory}")
            return
        if not self.directory.is_dir():
            raise FileNotFoundError(f"Watch directory not found: {self.directory}")

        handler = DiffDocumentHandler(self.callback, self.pattern, self.settle_seconds)
        observer = Observer()
        observer.schedule(handler, str(self.directory), recursive=self.recursive)
        observer.start()
        self._observer = observer
        logger.info(f"Watching {self.directory} for {self.pattern}")

    def stop(self):
        observer, self._observer = self._observer, None
        if observer is None:
            return
        observer.stop()
        observer.join(timeout=5)
        logger.info(f"Stopped watching {self.directory}")

    def is_running(self) -> bool:
        return self._observer is not None

    def scan_existing(self) -> int:
        """Report documents already present, in name order. Returns the count."""
        finder = self.directory.rglob if self.recursive else self.directory.glob
        found = [
            path for path in sorted(finder("*"))
            if path.is_file() and matches_pattern(path, self.pattern)
        ]
        logger.info(f"{len(found)} document(s) already in {self.directory}")
        for path in found:
            self.callback(str(path))
        return len(found)


class DatasetWatcherService:
    """
    Keeps a dataset current with the documents dropped into a directory.

    Unreadable or malformed documents are skipped. A write failure on the
    dataset is fatal: later documents are ignored and the error is kept
    in `fatal_error` for the caller to act on.
    """

    def __init__(self, writer: DatasetWriter):
        self.writer = writer
        self.watcher: Optional[DirectoryWatcher] = None
        self.fatal_error: Optional[DatasetWriteError] = None
        self._stats = {
            "files_processed": 0,
            "files_skipped": 0,
            "records_written": 0,
            "last_file": None,
            "started_at": None,
        }

    def _handle_file(self, file_path: str):
        if self.fatal_error is not None:
            return

        document = load_document(file_path)
        if document is None:
            self._stats["files_skipped"] += 1
            return

        try:
            count = self.writer.write_document(document, source=file_path)
        except DatasetWriteError as e:
            logger.error(f"Fatal Error: {e}")
            self.fatal_error = e
            return

        self._stats["files_processed"] += 1
        self._stats["records_written"] += count
        self._stats["last_file"] = file_path

    def start(self, directory: Optional[str] = None):
        """Flatten what is already in the directory, then watch for more."""
        if self.watcher is not None and self.watcher.is_running():
            logger.warning("Dataset watcher already started")
            return

        directory = directory or settings.WATCH_DIRECTORY
        if not directory:
            raise InvalidConfiguration("No watch directory configured")

        self.watcher = DirectoryWatcher(
            directory,
            self._handle_file,
            pattern=settings.WATCH_PATTERN,
            settle_seconds=settings.WATCH_SETTLE_SECONDS,
        )
        self.watcher.scan_existing()
        self.watcher.start()
        self._stats["started_at"] = time.strftime("%Y-%m-%dT%H:%M:%S")

    def stop(self):
        if self.watcher is not None:
            self.watcher.stop()
            self.watcher = None

    def get_stats(self) -> dict:
        stats = dict(self._stats)
        stats["is_running"] = self.watcher is not None and self.watcher.is_running()
        return stats
