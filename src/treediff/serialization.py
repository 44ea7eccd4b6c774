"""
Wire shape of difference records.

    {"kind": "E"|"N"|"D"|"A", "path"?: [...], "lhs"?: ..., "rhs"?: ...,
     "index"?: int, "item"?: {"kind": "N"|"D", "lhs"?: ..., "rhs"?: ...},
     "$dates"?: [[...], ...]}

Absent fields are omitted rather than written as null. Readers that ignore
``$dates`` still get a structurally correct patch, with timestamps left as
strings.
"""

import datetime
import json
import re
import typing
from collections.abc import Mapping

from treediff.dates import format_timestamp
from treediff.delta import (
    ITEM_TYPES,
    RECORD_TYPES,
    Added,
    ArrayChange,
    Delta,
    Deleted,
    Edit,
    Inserted,
    Removed,
)
from treediff.errors import InvalidChange
from treediff.value_type import pattern_text

DATES_FIELD = "$dates"


def _item_to_wire(item: Inserted | Deleted) -> dict[str, typing.Any]:
    if isinstance(item, Inserted):
        return {"kind": item.kind, "rhs": item.rhs}
    return {"kind": item.kind, "lhs": item.lhs}


def to_wire(delta: Delta) -> dict[str, typing.Any]:
    """Plain-dict form of one record, ready for any JSON-like encoder."""
    out: dict[str, typing.Any] = {"kind": delta.kind}
    if delta.path:
        out["path"] = list(delta.path)
    if isinstance(delta, (Edit, Removed)):
        out["lhs"] = delta.lhs
    if isinstance(delta, (Edit, Added)):
        out["rhs"] = delta.rhs
    if isinstance(delta, ArrayChange):
        out["index"] = delta.index
        out["item"] = _item_to_wire(delta.item)
    if delta.dates:
        out[DATES_FIELD] = [list(p) for p in delta.dates]
    return out


def _read_path(data: Mapping[str, typing.Any]) -> list | None:
    path = data.get("path")
    if path is None:
        return None
    if not isinstance(path, (list, tuple)) or not all(
        isinstance(tok, (str, int)) and not isinstance(tok, bool) for tok in path
    ):
        raise InvalidChange(f"Change path must be a list of keys and indices, got {path!r}")
    return list(path)


def _read_item(data: typing.Any) -> Inserted | Deleted:
    if not isinstance(data, Mapping):
        raise InvalidChange("Array change must have an item")
    kind = data.get("kind")
    item_type = ITEM_TYPES.get(kind) if isinstance(kind, str) else None
    if item_type is Inserted:
        return Inserted(data.get("rhs"))
    if item_type is Deleted:
        return Deleted(data.get("lhs"))
    raise InvalidChange(f"Invalid array item kind: {kind!r}")


def from_wire(data: Mapping[str, typing.Any]) -> Delta:
    """
    Rebuild a record from its wire mapping.

    Raises InvalidChange for an unknown kind, a malformed path, or an array
    change without a numeric index or an item.
    """
    if not isinstance(data, Mapping):
        raise InvalidChange("Change must be a mapping")
    kind = data.get("kind")
    record_type = RECORD_TYPES.get(kind) if isinstance(kind, str) else None
    if record_type is None:
        raise InvalidChange(f"Invalid change kind: {kind!r}")

    path = _read_path(data)
    dates = data.get(DATES_FIELD)
    if record_type is Edit:
        return Edit(path, data.get("lhs"), data.get("rhs"), dates)
    if record_type is Added:
        return Added(path, data.get("rhs"), dates)
    if record_type is Removed:
        return Removed(path, data.get("lhs"), dates)

    index = data.get("index")
    if not isinstance(index, int) or isinstance(index, bool):
        raise InvalidChange("Array change must have a numeric index")
    return ArrayChange(path, index, _read_item(data.get("item")), dates)


def _default(obj: typing.Any) -> typing.Any:
    if isinstance(obj, datetime.datetime):
        return format_timestamp(obj)
    if isinstance(obj, re.Pattern):
        return pattern_text(obj)
    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")


def dumps(differences: typing.Iterable[Delta] | None, **kwargs: typing.Any) -> str:
    """
    Encode records as JSON. Timestamps become ISO-8601 strings with
    milliseconds; extra keyword arguments go to `json.dumps`.
    """
    payload = None if differences is None else [to_wire(d) for d in differences]
    return json.dumps(payload, default=_default, **kwargs)


def loads(text: str | bytes) -> list[Delta] | None:
    """Decode records written by `dumps` (or any producer of the wire shape)."""
    data = json.loads(text)
    if data is None:
        return None
    if not isinstance(data, list):
        raise InvalidChange("Serialized differences must be a list")
    return [from_wire(d) for d in data] or None
