"""
Exceptions raised by the registry diff engine.

Malformed patch-file lines never raise; they are collected on the
Snapshot instead. Everything below is for conditions the caller must
act on.
"""
from typing import Optional


class RegDiffError(Exception):
    """Base class for all registry diff errors."""


class InvalidConfiguration(RegDiffError, ValueError):
    """A run option was rejected before any processing started."""


class MalformedDocument(RegDiffError):
    """A serialized diff document is missing a required element."""

    def __init__(self, source: Optional[str], reason: str):
        self.source = source
        self.reason = reason
        where = source or "<document>"
        super().__init__(f"Improper XML format for {where}: {reason}")


class DatasetWriteError(RegDiffError):
    """Writing to the shared dataset output failed; the output is suspect."""

    def __init__(self, source: Optional[str], cause: OSError):
        self.source = source
        self.cause = cause
        super().__init__(
            f"IO error while writing output for {source}, processing aborted: {cause}"
        )
