from treediff.dates import format_timestamp, parse_timestamp
from treediff.delta import (
    Added,
    ArrayChange,
    ArrayItem,
    Delta,
    Deleted,
    Edit,
    Inserted,
    Removed,
)
from treediff.diff import diff, iter_diff, observable_diff
from treediff.errors import (
    DiffError,
    EmptyPath,
    InvalidChange,
    InvalidPath,
    InvalidTarget,
    NotObject,
)
from treediff.json_path import format_path, get_by_path
from treediff.patch import apply_change, apply_diff, revert_change, revert_diff
from treediff.serialization import dumps, from_wire, loads, to_wire
from treediff.value_type import MISSING, ValueType, classify

__version__ = "0.1.0"
__all__ = [
    "Added",
    "ArrayChange",
    "ArrayItem",
    "Delta",
    "Deleted",
    "Edit",
    "Inserted",
    "Removed",
    "diff",
    "iter_diff",
    "observable_diff",
    "apply_change",
    "apply_diff",
    "revert_change",
    "revert_diff",
    "DiffError",
    "EmptyPath",
    "InvalidChange",
    "InvalidPath",
    "InvalidTarget",
    "NotObject",
    "format_path",
    "get_by_path",
    "dumps",
    "loads",
    "to_wire",
    "from_wire",
    "format_timestamp",
    "parse_timestamp",
    "MISSING",
    "ValueType",
    "classify",
]
