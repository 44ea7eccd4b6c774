import logging
import typing
from collections.abc import Mapping

from treediff.dates import Token, timestamp_millis
from treediff.delta import Added, ArrayChange, Delta, Deleted, Edit, Inserted, Removed
from treediff.value_type import (
    CONTAINER_TYPES,
    MISSING,
    ValueType,
    classify,
    is_nan,
    pattern_text,
)

logger = logging.getLogger(__name__)


def _members(obj: typing.Any) -> typing.Any:
    """Key/value view of an object-classified value, or None if it has none."""
    if isinstance(obj, Mapping):
        return obj
    try:
        return vars(obj)
    except TypeError:
        return None


def _ordered_keys(obj: Mapping, sort_keys: bool) -> list:
    keys = list(obj.keys())
    if sort_keys:
        keys.sort(key=str)
    return keys


def iter_diff(
    lhs: typing.Any,
    rhs: typing.Any,
    *,
    sort_keys: bool = False,
) -> typing.Iterator[Delta]:
    """
    Depth-first comparison of `lhs` and `rhs` yielding difference records
    in traversal order.

    Args:
    lhs: the original value; `MISSING` stands for "absent".
    rhs: the new value; `MISSING` stands for "absent".
    sort_keys: If True, visit mapping keys in sorted(str(key)) order
    (deterministic output across insertion orders).

    Never raises for any input shape: values it cannot classify precisely
    are compared as generic objects.
    """
    # Identity stack of lhs containers currently being visited.
    open_ids: list[int] = []

    def rec(left: typing.Any, right: typing.Any, path: tuple[Token, ...]):
        ltype = classify(left)
        rtype = classify(right)

        if ltype is ValueType.REGEXP and rtype is ValueType.REGEXP:
            if pattern_text(left) != pattern_text(right):
                yield Edit(path, left, right)
            return

        if ltype is ValueType.UNDEFINED:
            if rtype is not ValueType.UNDEFINED:
                yield Added(path, right)
            return
        if rtype is ValueType.UNDEFINED:
            yield Removed(path, left)
            return
        if ltype is not rtype:
            yield Edit(path, left, right)
            return

        if ltype is ValueType.DATE:
            if timestamp_millis(left) != timestamp_millis(right):
                yield Edit(path, left, right)
            return

        if ltype in CONTAINER_TYPES:
            oid = id(left)
            if oid in open_ids:
                # Cycle closed; anything that differs was reported on the way in.
                return
            open_ids.append(oid)
            try:
                if ltype is ValueType.ARRAY:
                    yield from _diff_arrays(left, right, path)
                else:
                    yield from _diff_objects(left, right, path)
            finally:
                open_ids.pop()
            return

        if is_nan(left) and is_nan(right):
            return
        if _unequal(left, right):
            yield Edit(path, left, right)

    def _diff_arrays(left, right, path):
        shared = min(len(left), len(right))
        for index in range(shared):
            yield from rec(left[index], right[index], (*path, index))
        for index in range(shared, len(left)):
            yield ArrayChange(path, index, Deleted(left[index]))
        for index in range(shared, len(right)):
            yield ArrayChange(path, index, Inserted(right[index]))

    def _diff_objects(left, right, path):
        left_members = _members(left)
        right_members = _members(right)
        if left_members is None or right_members is None:
            if _unequal(left, right):
                yield Edit(path, left, right)
            return
        right_keys = _ordered_keys(right_members, sort_keys)
        for key in _ordered_keys(left_members, sort_keys):
            yield from rec(
                left_members[key], right_members.get(key, MISSING), (*path, key)
            )
        for key in right_keys:
            if key not in left_members:
                yield from rec(MISSING, right_members[key], (*path, key))

    yield from rec(lhs, rhs, ())


def _unequal(left: typing.Any, right: typing.Any) -> bool:
    try:
        return bool(left != right)
    except Exception:  # noqa: BLE001
        # Objects whose comparison raises (or is ambiguous) are compared by identity.
        return left is not right


def diff(
    lhs: typing.Any,
    rhs: typing.Any,
    *,
    sort_keys: bool = False,
) -> list[Delta] | None:
    """
    Compute the records that turn `lhs` into `rhs`.

    Returns None when the two values are equal, never an empty list.
    """
    deltas = list(iter_diff(lhs, rhs, sort_keys=sort_keys))
    logger.debug("diff produced %d record(s)", len(deltas))
    return deltas or None


def observable_diff(
    lhs: typing.Any,
    rhs: typing.Any,
    observer: typing.Callable[[Delta], typing.Any],
    *,
    sort_keys: bool = False,
) -> None:
    """Call `observer` with each record as the comparison finds it."""
    for delta in iter_diff(lhs, rhs, sort_keys=sort_keys):
        observer(delta)
