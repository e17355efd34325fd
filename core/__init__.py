# WiReD v1.0.0
"""
Core package for the WiReD registry diff engine.
Contains patch file parsing, snapshot comparison, difference documents
and dataset flattening.
"""
from core.errors import (
    RegDiffError,
    InvalidConfiguration,
    MalformedDocument,
    DatasetWriteError
)
from core.patch_parser import (
    parse_patch_lines,
    parse_patch_file,
    parse_patch_content,
    qualified_name,
    RegKey,
    RegValue,
    Snapshot
)
from core.comparison import (
    compare_snapshots,
    compare_patch_files,
    ClassifiedDiff,
    ComparisonResult,
    ChangeType
)
from core.document import (
    collect_metadata,
    write_document,
    read_document,
    document_to_bytes,
    Action,
    DiffMetadata,
    DiffDocument
)
from core.dataset import (
    header_row,
    flatten_file,
    RecordFlattener,
    FlatRecord,
    EntryType
)

__all__ = [
    "RegDiffError",
    "InvalidConfiguration",
    "MalformedDocument",
    "DatasetWriteError",
    "parse_patch_lines",
    "parse_patch_file",
    "parse_patch_content",
    "qualified_name",
    "RegKey",
    "RegValue",
    "Snapshot",
    "compare_snapshots",
    "compare_patch_files",
    "ClassifiedDiff",
    "ComparisonResult",
    "ChangeType",
    "collect_metadata",
    "write_document",
    "read_document",
    "document_to_bytes",
    "Action",
    "DiffMetadata",
    "DiffDocument",
    "header_row",
    "flatten_file",
    "RecordFlattener",
    "FlatRecord",
    "EntryType"
]
