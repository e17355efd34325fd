# WiReD v1.0.0
"""
Dataset building service for WiReD.

Reads difference documents and appends their flattened records to one
shared dataset output. Documents may be read concurrently, but all of
one document's rows are written under a single lock so records of
different inputs never interleave.

A bad input (unreadable, empty, malformed XML) is skipped with a
warning. A failed write to the output aborts the whole run because the
output can no longer be trusted.
"""
import logging
import os
import sys
import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path
from typing import IO, Iterable, Optional

from core.dataset import DEFAULT_SEPARATOR, RecordFlattener, header_row
from core.document import DiffDocument, read_document
from core.errors import DatasetWriteError, MalformedDocument
from core.options import WriteMode

logger = logging.getLogger(__name__)


class DatasetWriter:
    """
    Serialized writer for the shared dataset output.

    Usage:
        with DatasetWriter.open("dataset.tsv", WriteMode.APPEND) as writer:
            writer.write_document(document, source="diff.xml")
    """

    def __init__(
        self,
        stream: IO[str],
        separator: str = DEFAULT_SEPARATOR,
        debug: bool = False,
        owns_stream: bool = False,
    ):
        self.stream = stream
        self.separator = separator
        self.debug = debug
        self._owns_stream = owns_stream
        self._lock = threading.Lock()
        self._failed = False
        self._stats = {
            "documents_written": 0,
            "records_written": 0,
        }

    @classmethod
    def open(
        cls,
        output: Optional[str] = None,
        mode: WriteMode = WriteMode.APPEND,
        separator: str = DEFAULT_SEPARATOR,
        debug: bool = False,
        headers: bool = True,
    ) -> "DatasetWriter":
        """
        Open the dataset output and write the header if wanted.

        The header is not repeated when appending to a file that already
        has content. Output defaults to stdout.

        Raises:
            DatasetWriteError: if the output cannot be opened or written
        """
        if output is None:
            writer = cls(sys.stdout, separator=separator, debug=debug)
            needs_header = headers
        else:
            has_content = (
                mode is WriteMode.APPEND
                and os.path.isfile(output)
                and os.path.getsize(output) > 0
            )
            try:
                stream = open(output, mode.file_mode, encoding="utf-8", newline="\n")
            except OSError as e:
                raise DatasetWriteError(output, e)
            writer = cls(stream, separator=separator, debug=debug, owns_stream=True)
            needs_header = headers and not has_content

        if needs_header:
            writer.write_header()
        return writer

    def write_header(self):
        with self._lock:
            try:
                self.stream.write(header_row(self.separator, self.debug) + "\n")
            except OSError as e:
                raise DatasetWriteError("header", e)

    def write_document(self, document: DiffDocument, source: Optional[str] = None) -> int:
        """
        Write every record of one document as a contiguous block.

        Returns:
            Number of rows written

        Raises:
            DatasetWriteError: on any I/O failure on the output
        """
        flattener = RecordFlattener(document, debug=self.debug)
        count = 0
        with self._lock:
            if self._failed:
                raise DatasetWriteError(source, OSError("output closed after an earlier write failure"))
            try:
                for row in flattener.rows(self.separator):
                    self.stream.write(row + "\n")
                    count += 1
                self.stream.flush()
            except OSError as e:
                self._failed = True
                raise DatasetWriteError(source, e)

            self._stats["documents_written"] += 1
            self._stats["records_written"] += count

        logger.info(f"{source}: wrote {count} records")
        return count

    def close(self):
        if self._owns_stream and not self.stream.closed:
            self.stream.close()

    def get_stats(self) -> dict:
        with self._lock:
            return dict(self._stats)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()


def _skip_reason(file_path: str, error: Exception) -> str:
    """Plain reason for skipping an input, with empty files called out."""
    path = Path(file_path)
    if path.is_file() and os.access(path, os.R_OK) and path.stat().st_size == 0:
        return "Empty file"
    return str(error)


def load_document(file_path: str) -> Optional[DiffDocument]:
    """
    Read one difference document, logging and returning None on failure.

    Only per-input problems are swallowed here; they never affect other
    inputs of a batch.
    """
    logger.info(f"Reading {file_path} ...")
    try:
        return read_document(file_path)
    except (OSError, MalformedDocument) as e:
        logger.warning(f"Ignoring file {file_path}: {_skip_reason(file_path, e)}")
        return None


def build_dataset(
    file_paths: Iterable[str],
    writer: DatasetWriter,
    workers: int = 1,
) -> dict:
    """
    Flatten a batch of difference documents into the dataset.

    Args:
        file_paths: Difference documents, written in the given order when
            workers is 1
        writer: Shared dataset writer
        workers: Number of threads reading documents

    Returns:
        {"processed": int, "skipped": int, "records": int}

    Raises:
        DatasetWriteError: if writing the output fails; remaining inputs
            are not processed
    """
    stats = {"processed": 0, "skipped": 0, "records": 0}

    def process(file_path: str) -> Optional[int]:
        document = load_document(file_path)
        if document is None:
            return None
        return writer.write_document(document, source=file_path)

    def tally(written: Optional[int]):
        if written is None:
            stats["skipped"] += 1
        else:
            stats["processed"] += 1
            stats["records"] += written

    if workers <= 1:
        for file_path in file_paths:
            tally(process(file_path))
        return stats

    executor = ThreadPoolExecutor(max_workers=workers)
    try:
        futures = [executor.submit(process, path) for path in file_paths]
        for future in as_completed(futures):
            tally(future.result())
    finally:
        # pending inputs are dropped when a write has failed
        executor.shutdown(wait=True, cancel_futures=True)
    return stats
