"""
Golden module for playcheck.

Reference dump comparison and the operator update path.
"""

from playcheck.golden.dump_file_asserts import (
    ComparisonMode,
    DumpMismatchError,
    MissingReferenceError,
    assert_output,
    check_output,
    update_reference,
)

__all__ = [
    "ComparisonMode",
    "DumpMismatchError",
    "MissingReferenceError",
    "assert_output",
    "check_output",
    "update_reference",
]
