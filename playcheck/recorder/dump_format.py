"""
Dump file format for playback outputs.

Line-oriented and diff-friendly:

    # playcheck-dump v1
    <sequence> <track> <KIND>[ key=value ...]

Values that are empty or contain whitespace, '"', '=' or '\\' are written
as JSON strings; every other value is written bare. Field order is decided
by the record producer and preserved verbatim.
"""

import json
import re
from dataclasses import dataclass
from typing import Iterable, List, Tuple

DUMP_FORMAT_VERSION = 1
DUMP_HEADER = f"# playcheck-dump v{DUMP_FORMAT_VERSION}"

_HEADER_PATTERN = re.compile(r"^# playcheck-dump v(\d+)$")
_KEY_PATTERN = re.compile(r"^[A-Za-z][A-Za-z0-9_]*$")
_NAME_PATTERN = re.compile(r"^[A-Za-z][A-Za-z0-9_]*$")
_FIELD_PATTERN = re.compile(r'\s+([A-Za-z][A-Za-z0-9_]*)=("(?:[^"\\]|\\.)*"|[^\s"]+)')
_NEEDS_QUOTING = re.compile(r'[\s"=\\]')
# Line breaks json.dumps leaves raw; escaped so a record stays on one line
_UNICODE_LINE_BREAKS = {ord(c): f"\\u{ord(c):04x}" for c in "\x85\u2028\u2029"}


class DumpFormatError(ValueError):
    """Raised for malformed dump text or records that cannot be serialized."""


@dataclass(frozen=True)
class OutputRecord:
    """
    One line of a playback output.

    Attributes:
        sequence: Position in the scenario-wide event log
        track: "player" or a track type name
        kind: Event kind (e.g. FORMAT_CHANGED)
        fields: Ordered (key, value) string pairs
    """
    sequence: int
    track: str
    kind: str
    fields: Tuple[Tuple[str, str], ...] = ()

    def field(self, key: str) -> str:
        """
        Raises:
            KeyError: If the record has no such field
        """
        for name, value in self.fields:
            if name == key:
                return value
        raise KeyError(key)


def render_value(value: str) -> str:
    if value == "" or _NEEDS_QUOTING.search(value):
        return json.dumps(value, ensure_ascii=False).translate(_UNICODE_LINE_BREAKS)
    return value


def render_record(record: OutputRecord) -> str:
    """
    Render one record as a dump line.

    Raises:
        DumpFormatError: If the track, kind or a key is not a plain identifier
    """
    if record.sequence < 0:
        raise DumpFormatError(f"Negative sequence {record.sequence}")
    for name in (record.track, record.kind):
        if not _NAME_PATTERN.match(name):
            raise DumpFormatError(f"Invalid track/kind name {name!r}")
    parts = [str(record.sequence), record.track, record.kind]
    for key, value in record.fields:
        if not _KEY_PATTERN.match(key):
            raise DumpFormatError(f"Invalid field key {key!r}")
        parts.append(f"{key}={render_value(value)}")
    return " ".join(parts)


def parse_record(line: str, line_number: int = 0) -> OutputRecord:
    """
    Parse one dump line.

    Raises:
        DumpFormatError: If the line is malformed
    """
    head = line.split(" ", 3)
    if len(head) < 3:
        raise DumpFormatError(f"Line {line_number}: expected '<sequence> <track> <KIND>': {line!r}")
    sequence_text, track, kind = head[0], head[1], head[2]
    if not sequence_text.isdigit():
        raise DumpFormatError(f"Line {line_number}: invalid sequence {sequence_text!r}")
    if not _NAME_PATTERN.match(track) or not _NAME_PATTERN.match(kind):
        raise DumpFormatError(f"Line {line_number}: invalid track/kind in {line!r}")

    rest = " " + head[3] if len(head) == 4 else ""
    fields: List[Tuple[str, str]] = []
    position = 0
    while position < len(rest):
        match = _FIELD_PATTERN.match(rest, position)
        if not match:
            raise DumpFormatError(f"Line {line_number}: malformed field at {rest[position:]!r}")
        key, raw = match.group(1), match.group(2)
        if raw.startswith('"'):
            try:
                value = json.loads(raw)
            except json.JSONDecodeError as e:
                raise DumpFormatError(f"Line {line_number}: invalid quoted value {raw!r}: {e}")
        else:
            value = raw
        fields.append((key, value))
        position = match.end()
    return OutputRecord(int(sequence_text), track, kind, tuple(fields))


def render_dump(records: Iterable[OutputRecord]) -> str:
    """Render records as full dump text (header line, one record per line, trailing newline)."""
    lines = [DUMP_HEADER]
    lines.extend(render_record(record) for record in records)
    return "\n".join(lines) + "\n"


def parse_dump(text: str) -> List[OutputRecord]:
    """
    Parse full dump text.

    Blank lines and '#' comment lines after the header are ignored.

    Raises:
        DumpFormatError: On a missing/unsupported header or a malformed line
    """
    lines = [line.rstrip("\r") for line in text.split("\n")]
    if not lines:
        raise DumpFormatError("Empty dump")
    header = _HEADER_PATTERN.match(lines[0].strip())
    if not header:
        raise DumpFormatError(f"Missing dump header, expected {DUMP_HEADER!r}")
    version = int(header.group(1))
    if version != DUMP_FORMAT_VERSION:
        raise DumpFormatError(f"Unsupported dump version {version} (supported: {DUMP_FORMAT_VERSION})")

    records = []
    for number, line in enumerate(lines[1:], start=2):
        if not line.strip() or line.startswith("#"):
            continue
        records.append(parse_record(line, number))
    return records
