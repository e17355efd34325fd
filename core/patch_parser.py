# WiReD v1.0.0
"""
Registry patch file parsing for the WiReD diff engine.

A patch file is the text export written by RegEdit: a header line,
then [key] lines each followed by "name"=data value lines. Long values
are wrapped with a trailing backslash. Lines that cannot be read as a
value are collected, never raised.
"""
import re
from dataclasses import dataclass, field
from typing import Iterable

# Control characters (C0, DEL and C1) plus code points XML 1.0 cannot carry
_CONTROL_CHARS = re.compile(r'[\x00-\x1f\x7f-\x9f\ud800-\udfff\ufffe\uffff]')
_KEY_LINE = re.compile(r'^\[.*\]$')

DEFAULT_VALUE_NAME = "@"
PATH_SEPARATOR = "\\"


@dataclass(frozen=True)
class RegKey:
    """A single registry key. Keys carry no data of their own."""
    path: str


@dataclass(frozen=True)
class RegValue:
    """A single registry value, identified by (path, name)."""
    path: str
    name: str
    data: str

    @property
    def qualified_name(self) -> str:
        return qualified_name(self.path, self.name)


@dataclass(frozen=True)
class Snapshot:
    """Parsed view of one registry patch file."""
    keys: dict = field(default_factory=dict)      # path -> RegKey
    values: dict = field(default_factory=dict)    # qualified name -> RegValue
    malformed_lines: list = field(default_factory=list)


def qualified_name(path: str, name: str) -> str:
    """Fully qualified value name used for existence checks."""
    return f"{path}{PATH_SEPARATOR}{name}"


def replace_control_chars(text: str) -> str:
    return _CONTROL_CHARS.sub('?', text)


def normalize_line(line: str) -> str:
    """Strip a raw line and replace embedded control characters with '?'."""
    return replace_control_chars(line.strip())


def split_value_line(text: str) -> tuple[str, str]:
    """
    Split a value line into (name, data).

    Names and data may both contain '=', so when the line does not split
    into exactly two parts the pieces are re-joined: everything up to the
    first segment that closes the quoted name belongs to the name, the
    rest to the data.
    """
    parts = text.split('=')
    if len(parts) == 2:
        return parts[0], parts[1]

    if parts[0] == DEFAULT_VALUE_NAME:
        return parts[0], '='.join(parts[1:])

    name_parts = []
    data_parts = []
    in_name = True
    for part in parts:
        if in_name:
            name_parts.append(part)
            if part.endswith('"'):
                in_name = False
        else:
            data_parts.append(part)

    return '='.join(name_parts), '='.join(data_parts)


def is_valid_value_name(name: str) -> bool:
    """A value name is either '@' or fully wrapped in double quotes."""
    if name == DEFAULT_VALUE_NAME:
        return True
    return len(name) >= 2 and name.startswith('"') and name.endswith('"')


def unquote_name(name: str) -> str:
    if name == DEFAULT_VALUE_NAME:
        return name
    return name[1:-1]


def parse_patch_lines(lines: Iterable[str]) -> Snapshot:
    """
    Parse the lines of a registry patch file into a Snapshot.

    The first line is the format header and is always discarded.

    Args:
        lines: Raw lines, with or without trailing newlines

    Returns:
        Snapshot with keys, values and any malformed value lines
    """
    keys = {}
    values = {}
    malformed = []

    current_path = ''
    pending = ''

    iterator = iter(lines)
    next(iterator, None)  # format header

    for raw in iterator:
        line = normalize_line(raw)

        if not line:
            continue

        if _KEY_LINE.match(line):
            current_path = line[1:-1]
            keys[current_path] = RegKey(current_path)
            continue

        if line.endswith('\\'):
            pending += line[:-1].lstrip()
            continue

        text = (pending + line).lstrip()
        pending = ''

        name, data = split_value_line(text)

        if not is_valid_value_name(name):
            malformed.append(f"[{current_path}] {name}={data}")
            continue

        name = unquote_name(name)
        values[qualified_name(current_path, name)] = RegValue(current_path, name, data)

    return Snapshot(keys=keys, values=values, malformed_lines=malformed)


def parse_patch_file(
    file_path: str,
    encoding: str = "utf-8",
    errors: str = "replace",
) -> Snapshot:
    """
    Parse a registry patch file from disk.

    The file must already be in a single-byte or UTF-8 compatible text
    encoding; RegEdit's UTF-16LE exports are converted beforehand.

    Raises:
        OSError: if the file cannot be opened or read
    """
    with open(file_path, 'r', encoding=encoding, errors=errors) as f:
        return parse_patch_lines(f)


def parse_patch_content(content: str) -> Snapshot:
    """Parse patch file content already held in memory."""
    return parse_patch_lines(content.splitlines())
