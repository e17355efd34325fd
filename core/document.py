# WiReD v1.0.0
"""
WiReD difference documents.

A difference document records where a registry diff came from (the two
patch files, the application and action that produced the delta, the
machine that ran the diff) and the classified keys and values. It is
stored as XML:

    winregdiff
     ├─ baseline/file/{name, sha}
     ├─ delta/file/{name, sha}
     ├─ delta/app/{name, nsrl, action}
     ├─ diffnode/{arch, sys, os, osver, user, time}
     ├─ add/{key*, value*}
     ├─ del/{key*, value*}
     └─ mod/{value*}

Value data is written as CDATA so it survives markup characters.
"""
import getpass
import hashlib
import logging
import platform
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import IO, Optional, Union

from lxml import etree

from core.comparison import ClassifiedDiff
from core.errors import InvalidConfiguration, MalformedDocument
from core.patch_parser import RegKey, RegValue, replace_control_chars

logger = logging.getLogger(__name__)

ROOT_TAG = "winregdiff"
TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S %z"
_CDATA_END = "]]>"


class Action(str, Enum):
    """What was done to the machine between the baseline and the delta."""
    INSTALL = "I"
    DEINSTALL = "D"
    EXECUTE = "E"
    OTHER = "O"

    @classmethod
    def parse(cls, value: str) -> "Action":
        """Parse an action letter, case-insensitively."""
        letter = (value or "").strip().upper()
        try:
            return cls(letter)
        except ValueError:
            raise InvalidConfiguration(f"Invalid action value: {value!r} (expected I, D, E or O)")


@dataclass(frozen=True)
class DiffMetadata:
    """Provenance of a registry diff."""
    baseline_file: str
    baseline_hash: str
    delta_file: str
    delta_hash: str
    app_name: str
    nsrl_id: Optional[str]
    action: Action
    host_arch: str = ""
    host_system_name: str = ""
    host_os_name: str = ""
    host_os_version: str = ""
    user: str = ""
    timestamp: str = ""

    def __post_init__(self):
        # an empty NSRL id is the same as none
        if not self.nsrl_id:
            object.__setattr__(self, "nsrl_id", None)


@dataclass(frozen=True)
class DiffDocument:
    """Metadata plus the classified differences."""
    metadata: DiffMetadata
    diff: ClassifiedDiff


def sha1_file(file_path: str, chunk_size: int = 65536) -> str:
    """Compute the SHA-1 hex digest of a file."""
    digest = hashlib.sha1()
    with open(file_path, 'rb') as f:
        for chunk in iter(lambda: f.read(chunk_size), b''):
            digest.update(chunk)
    return digest.hexdigest()


def _current_user() -> str:
    try:
        return getpass.getuser()
    except (KeyError, OSError):
        return ""


def collect_metadata(
    baseline_path: str,
    delta_path: str,
    app_name: str,
    nsrl_id: Optional[str],
    action: Union[Action, str],
) -> DiffMetadata:
    """
    Build DiffMetadata for a pair of patch files.

    Hashes both files and captures the machine running the diff.

    Raises:
        OSError: if either file cannot be read
        InvalidConfiguration: if the action is not I, D, E or O
    """
    if not isinstance(action, Action):
        action = Action.parse(action)

    uname = platform.uname()
    return DiffMetadata(
        baseline_file=baseline_path,
        baseline_hash=sha1_file(baseline_path),
        delta_file=delta_path,
        delta_hash=sha1_file(delta_path),
        app_name=app_name,
        nsrl_id=nsrl_id,
        action=action,
        host_arch=uname.machine,
        host_system_name=uname.node,
        host_os_name=uname.system,
        host_os_version=uname.release,
        user=_current_user(),
        timestamp=datetime.now().astimezone().strftime(TIMESTAMP_FORMAT),
    )


# ============================================================
# WRITER
# ============================================================

def _text_element(parent, tag: str, text: Optional[str]):
    element = etree.SubElement(parent, tag)
    if text:
        element.text = replace_control_chars(text)
    return element


def _data_element(parent, data: str):
    element = etree.SubElement(parent, "data")
    if not data:
        return element
    data = replace_control_chars(data)
    if _CDATA_END in data:
        # CDATA cannot contain its own terminator; escaped text reads back the same
        element.text = data
    else:
        element.text = etree.CDATA(data)
    return element


def _insert_keys(section, keys):
    for key in keys:
        key_element = etree.SubElement(section, "key")
        _text_element(key_element, "path", key.path)


def _insert_values(section, values):
    for value in values:
        value_element = etree.SubElement(section, "value")
        _text_element(value_element, "path", value.path)
        _text_element(value_element, "name", value.name)
        _data_element(value_element, value.data)


def document_to_element(document: DiffDocument):
    """Build the XML tree for a difference document."""
    meta = document.metadata
    diff = document.diff

    root = etree.Element(ROOT_TAG)

    baseline_file = etree.SubElement(etree.SubElement(root, "baseline"), "file")
    _text_element(baseline_file, "name", meta.baseline_file)
    _text_element(baseline_file, "sha", meta.baseline_hash)

    delta = etree.SubElement(root, "delta")
    delta_file = etree.SubElement(delta, "file")
    _text_element(delta_file, "name", meta.delta_file)
    _text_element(delta_file, "sha", meta.delta_hash)

    app = etree.SubElement(delta, "app")
    _text_element(app, "name", meta.app_name)
    _text_element(app, "nsrl", meta.nsrl_id)
    _text_element(app, "action", meta.action.value)

    diffnode = etree.SubElement(root, "diffnode")
    _text_element(diffnode, "arch", meta.host_arch)
    _text_element(diffnode, "sys", meta.host_system_name)
    _text_element(diffnode, "os", meta.host_os_name)
    _text_element(diffnode, "osver", meta.host_os_version)
    _text_element(diffnode, "user", meta.user)
    _text_element(diffnode, "time", meta.timestamp)

    added = etree.SubElement(root, "add")
    _insert_keys(added, diff.keys_added)
    _insert_values(added, diff.values_added)

    deleted = etree.SubElement(root, "del")
    _insert_keys(deleted, diff.keys_deleted)
    _insert_values(deleted, diff.values_deleted)

    modified = etree.SubElement(root, "mod")
    _insert_values(modified, diff.values_modified)

    return root


def document_to_bytes(document: DiffDocument) -> bytes:
    """Serialize a difference document to UTF-8 XML."""
    root = document_to_element(document)
    return etree.tostring(
        root,
        xml_declaration=True,
        encoding="UTF-8",
        standalone=True,
        pretty_print=True,
    )


def write_document(document: DiffDocument, fp: IO[bytes]):
    """Write a difference document to a binary file object."""
    fp.write(document_to_bytes(document))


# ============================================================
# READER
# ============================================================

_METADATA_PATHS = {
    "baseline_file": "baseline/file/name",
    "baseline_hash": "baseline/file/sha",
    "delta_file": "delta/file/name",
    "delta_hash": "delta/file/sha",
    "app_name": "delta/app/name",
    "nsrl_id": "delta/app/nsrl",
    "action": "delta/app/action",
    "host_arch": "diffnode/arch",
    "host_system_name": "diffnode/sys",
    "host_os_name": "diffnode/os",
    "host_os_version": "diffnode/osver",
    "user": "diffnode/user",
    "timestamp": "diffnode/time",
}


def _required_text(element, path: str, source: Optional[str]) -> str:
    child = element.find(path)
    if child is None:
        raise MalformedDocument(source, f"missing element {path}")
    return child.text or ""


def _read_metadata(root, source: Optional[str]) -> DiffMetadata:
    fields = {
        name: _required_text(root, path, source)
        for name, path in _METADATA_PATHS.items()
    }

    try:
        fields["action"] = Action.parse(fields["action"])
    except InvalidConfiguration:
        raise MalformedDocument(source, f"invalid action {fields['action']!r}")

    fields["nsrl_id"] = fields["nsrl_id"] or None
    return DiffMetadata(**fields)


def _read_keys(root, section: str, source: Optional[str]) -> tuple:
    return tuple(
        RegKey(_required_text(element, "path", source))
        for element in root.iterfind(f"{section}/key")
    )


def _read_values(root, section: str, source: Optional[str]) -> tuple:
    return tuple(
        RegValue(
            path=_required_text(element, "path", source),
            name=_required_text(element, "name", source),
            data=_required_text(element, "data", source),
        )
        for element in root.iterfind(f"{section}/value")
    )


def document_from_element(root, source: Optional[str] = None) -> DiffDocument:
    """
    Rebuild a difference document from its XML tree.

    Raises:
        MalformedDocument: if a required element is missing
    """
    if root.tag != ROOT_TAG:
        raise MalformedDocument(source, f"unexpected root element {root.tag!r}")

    metadata = _read_metadata(root, source)
    diff = ClassifiedDiff(
        keys_added=_read_keys(root, "add", source),
        keys_deleted=_read_keys(root, "del", source),
        values_added=_read_values(root, "add", source),
        values_deleted=_read_values(root, "del", source),
        values_modified=_read_values(root, "mod", source),
    )
    return DiffDocument(metadata=metadata, diff=diff)


def read_document(source: Union[str, IO[bytes]], name: Optional[str] = None) -> DiffDocument:
    """
    Read a difference document from a path or binary file object.

    Args:
        source: File path or open binary file
        name: Name used in error messages, defaults to the path

    Raises:
        OSError: if the file cannot be opened
        MalformedDocument: if the XML is not well formed or incomplete
    """
    if name is None and isinstance(source, str):
        name = source

    parser = etree.XMLParser(resolve_entities=False)
    try:
        tree = etree.parse(source, parser)
    except etree.XMLSyntaxError as e:
        raise MalformedDocument(name, str(e))

    logger.debug(f"Parsed difference document {name}")
    return document_from_element(tree.getroot(), name)


def read_document_bytes(content: bytes, name: Optional[str] = None) -> DiffDocument:
    """Read a difference document held in memory."""
    parser = etree.XMLParser(resolve_entities=False)
    try:
        root = etree.fromstring(content, parser)
    except etree.XMLSyntaxError as e:
        raise MalformedDocument(name, str(e))
    return document_from_element(root, name)
