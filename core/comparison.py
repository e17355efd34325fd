# WiReD v1.0.0
"""
Registry Snapshot Comparison Engine

Sorts the keys and values of two parsed registry patch files into
added, deleted and modified sets. Keys are only ever added or deleted;
a key has no data that could be modified.
"""
from dataclasses import dataclass, field
from enum import Enum

from core.patch_parser import RegKey, RegValue, Snapshot, parse_patch_file


class ChangeType(str, Enum):
    ADDED = "add"
    DELETED = "del"
    MODIFIED = "mod"


def _value_sort_key(value: RegValue) -> tuple[str, str]:
    return (value.path, value.name)


@dataclass(frozen=True)
class ClassifiedDiff:
    """Keys and values of a delta classified against its baseline."""
    keys_added: tuple[RegKey, ...] = ()
    keys_deleted: tuple[RegKey, ...] = ()
    values_added: tuple[RegValue, ...] = ()
    values_deleted: tuple[RegValue, ...] = ()
    values_modified: tuple[RegValue, ...] = ()

    @property
    def change_count(self) -> int:
        return (
            len(self.keys_added) + len(self.keys_deleted)
            + len(self.values_added) + len(self.values_deleted)
            + len(self.values_modified)
        )

    @property
    def is_identical(self) -> bool:
        return self.change_count == 0


@dataclass
class ComparisonResult:
    """Result of comparing two registry patch files."""
    diff: ClassifiedDiff
    baseline_malformed: list[str] = field(default_factory=list)
    delta_malformed: list[str] = field(default_factory=list)

    @property
    def change_count(self) -> int:
        return self.diff.change_count


def compare_snapshots(baseline: Snapshot, delta: Snapshot) -> ClassifiedDiff:
    """
    Classify the differences between a baseline and a delta snapshot.

    Keys present on only one side are added or deleted. Values are
    matched on their fully qualified name; a value present on both
    sides with different data is modified and keeps the delta's data.
    Output is sorted by path, then value name.

    Args:
        baseline: The snapshot taken before the change
        delta: The snapshot taken after the change

    Returns:
        ClassifiedDiff with the five change sets
    """
    keys_added = []
    keys_deleted = []

    for path in set(baseline.keys) | set(delta.keys):
        if path not in baseline.keys:
            keys_added.append(delta.keys[path])
        elif path not in delta.keys:
            keys_deleted.append(baseline.keys[path])

    values_added = []
    values_deleted = []
    values_modified = []

    for name in set(baseline.values) | set(delta.values):
        old_value = baseline.values.get(name)
        new_value = delta.values.get(name)

        if old_value is None:
            values_added.append(new_value)
        elif new_value is None:
            values_deleted.append(old_value)
        elif old_value.data != new_value.data:
            values_modified.append(new_value)

    return ClassifiedDiff(
        keys_added=tuple(sorted(keys_added, key=lambda k: k.path)),
        keys_deleted=tuple(sorted(keys_deleted, key=lambda k: k.path)),
        values_added=tuple(sorted(values_added, key=_value_sort_key)),
        values_deleted=tuple(sorted(values_deleted, key=_value_sort_key)),
        values_modified=tuple(sorted(values_modified, key=_value_sort_key)),
    )


def compare_patch_files(
    baseline_path: str,
    delta_path: str,
    encoding: str = "utf-8",
    errors: str = "replace",
) -> ComparisonResult:
    """
    Main entry point for comparing two registry patch files on disk.

    Malformed value lines from either file are returned alongside the
    classification so the caller can decide whether to warn.

    Raises:
        OSError: if either file cannot be read
    """
    baseline = parse_patch_file(baseline_path, encoding=encoding, errors=errors)
    delta = parse_patch_file(delta_path, encoding=encoding, errors=errors)

    return ComparisonResult(
        diff=compare_snapshots(baseline, delta),
        baseline_malformed=list(baseline.malformed_lines),
        delta_malformed=list(delta.malformed_lines),
    )
