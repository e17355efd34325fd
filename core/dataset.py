# WiReD v1.0.0
"""
Flattening of difference documents into WiReD dataset records.

Each added, deleted or modified registry entry becomes one delimited
row tagged with its change type. Debug mode adds the baseline, delta
file and diff node columns; otherwise only the application columns are
carried.

Field values are written as-is. A separator inside registry data is
not escaped and will shift the columns of that row.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Iterator, Optional

from core.comparison import ChangeType
from core.document import DiffDocument, DiffMetadata, read_document

DEFAULT_SEPARATOR = "\t"

BASELINE_COLUMNS = ["BASELINE_NAME", "BASELINE_SHA1"]
DELTA_FILE_COLUMNS = ["DELTA_NAME", "DELTA_SHA1"]
APP_COLUMNS = ["APP_NAME", "NSRL_APP_ID", "ACTION"]
DIFFNODE_COLUMNS = ["ARCH", "SYS", "OS", "OSVER", "USER", "TIME"]
ENTRY_COLUMNS = ["ENTRY_TYPE", "PATH", "VALUE_NAME", "VALUE_DATA"]


class EntryType(str, Enum):
    KEY = "key"
    VALUE = "value"


def column_groups(debug: bool) -> list[list[str]]:
    """Column groups following CHANGE_TYPE, in output order."""
    if debug:
        return [
            BASELINE_COLUMNS,
            DELTA_FILE_COLUMNS + APP_COLUMNS,
            DIFFNODE_COLUMNS,
            ENTRY_COLUMNS,
        ]
    return [APP_COLUMNS, ENTRY_COLUMNS]


def header_columns(debug: bool = False) -> list[str]:
    columns = ["CHANGE_TYPE"]
    for group in column_groups(debug):
        columns.extend(group)
    return columns


def header_row(separator: str = DEFAULT_SEPARATOR, debug: bool = False) -> str:
    """Column header line for the dataset, without line terminator."""
    return separator.join(header_columns(debug))


@dataclass(frozen=True)
class FlatRecord:
    """One dataset row: a single changed key or value plus its provenance."""
    change_type: ChangeType
    entry_type: EntryType
    path: str
    metadata: DiffMetadata
    value_name: str = ""
    value_data: str = ""
    debug: bool = False

    def _groups(self) -> list[list[str]]:
        meta = self.metadata
        app = [meta.app_name, meta.nsrl_id or "", meta.action.value]
        entry = [self.entry_type.value, self.path, self.value_name, self.value_data]

        if self.debug:
            return [
                [meta.baseline_file, meta.baseline_hash],
                [meta.delta_file, meta.delta_hash] + app,
                [
                    meta.host_arch, meta.host_system_name, meta.host_os_name,
                    meta.host_os_version, meta.user, meta.timestamp,
                ],
                entry,
            ]
        return [app, entry]

    def to_row(self, separator: str = DEFAULT_SEPARATOR) -> Optional[str]:
        """
        Render the record as a delimited row.

        Every column group of the current mode is written, empty fields
        included, so rows always line up with the header. Returns None
        when the entry itself carries nothing.
        """
        groups = self._groups()
        if not any(groups[-1]):
            return None
        return separator.join([self.change_type.value] + [separator.join(group) for group in groups])


class RecordFlattener:
    """
    Restartable stream of FlatRecords for one difference document.

    Records are generated on each iteration, in the order added keys,
    added values, deleted keys, deleted values, modified values.

    Usage:
        for record in RecordFlattener(document, debug=False):
            row = record.to_row("\\t")
    """

    def __init__(self, document: DiffDocument, debug: bool = False):
        self.document = document
        self.debug = debug

    def _key_records(self, change_type: ChangeType, keys) -> Iterator[FlatRecord]:
        for key in keys:
            yield FlatRecord(
                change_type=change_type,
                entry_type=EntryType.KEY,
                path=key.path,
                metadata=self.document.metadata,
                debug=self.debug,
            )

    def _value_records(self, change_type: ChangeType, values) -> Iterator[FlatRecord]:
        for value in values:
            yield FlatRecord(
                change_type=change_type,
                entry_type=EntryType.VALUE,
                path=value.path,
                metadata=self.document.metadata,
                value_name=value.name,
                value_data=value.data,
                debug=self.debug,
            )

    def __iter__(self) -> Iterator[FlatRecord]:
        diff = self.document.diff
        yield from self._key_records(ChangeType.ADDED, diff.keys_added)
        yield from self._value_records(ChangeType.ADDED, diff.values_added)
        yield from self._key_records(ChangeType.DELETED, diff.keys_deleted)
        yield from self._value_records(ChangeType.DELETED, diff.values_deleted)
        yield from self._value_records(ChangeType.MODIFIED, diff.values_modified)

    def rows(self, separator: str = DEFAULT_SEPARATOR) -> Iterator[str]:
        """Rendered rows, skipping records with no content."""
        for record in self:
            row = record.to_row(separator)
            if row is not None:
                yield row


def flatten_file(file_path: str, debug: bool = False) -> RecordFlattener:
    """
    Read a difference document once and return its record stream.

    Raises:
        OSError: if the file cannot be opened
        MalformedDocument: if the document is incomplete
    """
    return RecordFlattener(read_document(file_path), debug=debug)
