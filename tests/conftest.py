"""Shared fixtures for the WiReD test suite."""
import pytest

from core.comparison import ClassifiedDiff
from core.document import Action, DiffDocument, DiffMetadata
from core.patch_parser import RegKey, RegValue

HEADER = "Windows Registry Editor Version 5.00"


def patch_text(*lines: str) -> str:
    """A patch file body with the usual header line."""
    return "\n".join((HEADER,) + lines) + "\n"


@pytest.fixture
def write_patch(tmp_path):
    """Write a patch file under tmp_path and return its path as a string."""
    def _write(name: str, *lines: str) -> str:
        path = tmp_path / name
        path.write_text(patch_text(*lines), encoding="utf-8")
        return str(path)
    return _write


@pytest.fixture
def metadata():
    return DiffMetadata(
        baseline_file="base.reg",
        baseline_hash="a" * 40,
        delta_file="delta.reg",
        delta_hash="b" * 40,
        app_name="Acme Editor",
        nsrl_id="1234",
        action=Action.INSTALL,
        host_arch="x86_64",
        host_system_name="diffhost",
        host_os_name="Linux",
        host_os_version="6.1.0",
        user="analyst",
        timestamp="2024-01-15 10:30:00 +0000",
    )


@pytest.fixture
def sample_diff():
    return ClassifiedDiff(
        keys_added=(RegKey(r"HKEY_LOCAL_MACHINE\SOFTWARE\Acme"),),
        keys_deleted=(RegKey(r"HKEY_LOCAL_MACHINE\SOFTWARE\Old"),),
        values_added=(RegValue(r"HKEY_LOCAL_MACHINE\SOFTWARE\Acme", "Version", '"1.0"'),),
        values_deleted=(RegValue(r"HKEY_LOCAL_MACHINE\SOFTWARE\Old", "@", '"gone"'),),
        values_modified=(RegValue(r"HKEY_CURRENT_USER\Software\Acme", "Count", "dword:00000002"),),
    )


@pytest.fixture
def sample_document(metadata, sample_diff):
    return DiffDocument(metadata=metadata, diff=sample_diff)
