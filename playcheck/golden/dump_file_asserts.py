"""
Golden dump comparison for playcheck.

assert_output() compares a fresh playback output with the reference dump
on disk and fails at the first differing line. update_reference() is the
operator path for intentional behaviour changes; it is never reached from
assert mode, and the mode is always an explicit argument.
"""

import logging
from enum import Enum
from pathlib import Path
from typing import List, Optional, Union

from playcheck.recorder.playback_output import PlaybackOutput

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]

END_OF_FILE = "<end of file>"
CONTEXT_LINES = 3


class ComparisonMode(Enum):
    ASSERT = "assert"
    UPDATE = "update"


class DumpMismatchError(AssertionError):
    """
    Playback output diverged from the reference dump.

    Attributes:
        reference_path: Dump that was compared against
        line_number: 1-based number of the first differing line
        expected: Reference line (or END_OF_FILE)
        actual: Recorded line (or END_OF_FILE)
        context: Lines preceding the divergence (identical in both)
    """

    def __init__(
        self,
        reference_path: Path,
        line_number: int,
        expected: str,
        actual: str,
        context: List[str],
    ) -> None:
        self.reference_path = reference_path
        self.line_number = line_number
        self.expected = expected
        self.actual = actual
        self.context = context
        super().__init__(self._describe())

    def _describe(self) -> str:
        lines = [f"Playback output differs from {self.reference_path} at line {self.line_number}:"]
        first_context = self.line_number - len(self.context)
        for offset, line in enumerate(self.context):
            lines.append(f"  {first_context + offset:>5}   {line}")
        lines.append(f"  {self.line_number:>5} - {self.expected}")
        lines.append(f"  {self.line_number:>5} + {self.actual}")
        lines.append("(- expected, + actual) Regenerate with: python -m playcheck update <scenario-file>")
        return "\n".join(lines)


class MissingReferenceError(AssertionError):
    """The reference dump does not exist."""

    def __init__(self, reference_path: Path) -> None:
        self.reference_path = reference_path
        super().__init__(
            f"No reference dump at {reference_path}. "
            f"Generate it with: python -m playcheck update <scenario-file>"
        )


def resolve_reference(reference_path: PathLike, dump_root: Optional[PathLike] = None) -> Path:
    """Resolve a reference path; relative paths are taken against dump_root when given."""
    path = Path(reference_path)
    if dump_root is not None and not path.is_absolute():
        path = Path(dump_root) / path
    return path


def first_divergence(expected_lines: List[str], actual_lines: List[str]) -> Optional[int]:
    """Return the 0-based index of the first differing line, or None if identical."""
    for index, (expected, actual) in enumerate(zip(expected_lines, actual_lines)):
        if expected != actual:
            return index
    if len(expected_lines) != len(actual_lines):
        return min(len(expected_lines), len(actual_lines))
    return None


def assert_output(
    output: PlaybackOutput,
    reference_path: PathLike,
    dump_root: Optional[PathLike] = None,
) -> None:
    """
    Assert that output serializes exactly to the reference dump.

    Comparison is exact and line based; trailing newline differences are
    ignored, nothing else is.

    Args:
        output: Recorded playback output
        reference_path: Reference dump path (relative to dump_root if given)
        dump_root: Directory holding reference dumps

    Raises:
        MissingReferenceError: If the reference dump does not exist
        DumpMismatchError: At the first differing line
    """
    path = resolve_reference(reference_path, dump_root)
    if not path.exists():
        raise MissingReferenceError(path)

    expected_lines = path.read_text(encoding="utf-8").splitlines()
    actual_lines = output.to_text().splitlines()
    index = first_divergence(expected_lines, actual_lines)
    if index is None:
        logger.debug(f"[DUMP] Output matches {path} ({len(actual_lines)} lines)")
        return

    expected = expected_lines[index] if index < len(expected_lines) else END_OF_FILE
    actual = actual_lines[index] if index < len(actual_lines) else END_OF_FILE
    context = actual_lines[max(0, index - CONTEXT_LINES):index]
    logger.info(f"[DUMP] Output differs from {path} at line {index + 1}")
    raise DumpMismatchError(path, index + 1, expected, actual, context)


def update_reference(
    output: PlaybackOutput,
    reference_path: PathLike,
    dump_root: Optional[PathLike] = None,
) -> Path:
    """
    Overwrite the reference dump with output.

    Operator-invoked only (python -m playcheck update); never part of a
    verification run.

    Returns:
        Path written
    """
    path = resolve_reference(reference_path, dump_root)
    path.parent.mkdir(parents=True, exist_ok=True)
    text = output.to_text()
    previous = path.read_text(encoding="utf-8") if path.exists() else None
    path.write_text(text, encoding="utf-8")
    if previous is None:
        logger.warning(f"[DUMP] Created reference dump {path} ({len(output)} records)")
    elif previous != text:
        logger.warning(f"[DUMP] Updated reference dump {path} ({len(output)} records)")
    else:
        logger.info(f"[DUMP] Reference dump {path} unchanged")
    return path


def check_output(
    output: PlaybackOutput,
    reference_path: PathLike,
    mode: ComparisonMode,
    dump_root: Optional[PathLike] = None,
) -> None:
    """Dispatch to assert_output() or update_reference() according to mode."""
    if mode is ComparisonMode.UPDATE:
        update_reference(output, reference_path, dump_root)
    else:
        assert_output(output, reference_path, dump_root)
