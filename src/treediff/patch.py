import copy
import logging
import typing
from collections.abc import Mapping, MutableMapping, MutableSequence

from treediff.dates import DatePath, revive_dates
from treediff.delta import Added, ArrayChange, Deleted, Delta, Edit, Inserted, Removed
from treediff.errors import EmptyPath, InvalidChange, InvalidPath, InvalidTarget, NotObject
from treediff.json_path import assign, format_path, resolve_parent
from treediff.serialization import from_wire
from treediff.value_type import MISSING

logger = logging.getLogger(__name__)

Change = Delta | Mapping[str, typing.Any]


def _assert_target(target: typing.Any) -> None:
    if target is None:
        raise InvalidTarget("target cannot be None")
    if not isinstance(target, (MutableMapping, MutableSequence)):
        raise InvalidTarget(
            f"target must be a mutable mapping or sequence (found {type(target).__name__})"
        )


def _coerce(change: Change) -> Delta:
    """Accept a record instance or its wire mapping; reject anything malformed."""
    if isinstance(change, ArrayChange):
        if not isinstance(change.index, int) or isinstance(change.index, bool):
            raise InvalidChange("Array change must have a numeric index")
        if not isinstance(change.item, (Inserted, Deleted)):
            raise InvalidChange("Array change must have an item")
        return change
    if isinstance(change, (Edit, Added, Removed)):
        return change
    if isinstance(change, Mapping):
        return from_wire(change)
    raise InvalidChange(f"Change must be a record or a mapping (found {type(change).__name__})")


def _get(parent: typing.Any, key: typing.Any) -> typing.Any:
    if isinstance(parent, Mapping):
        return parent.get(key, MISSING)
    if 0 <= key < len(parent):
        return parent[key]
    return MISSING


def _delete_in_parent(parent: typing.Any, key: typing.Any) -> None:
    """
    Remove the child referenced by `key` from `parent`.
    A missing key or an out-of-range index is a no-op.
    """
    if isinstance(parent, MutableMapping):
        parent.pop(key, None)
    elif 0 <= key < len(parent):
        del parent[key]


def _prepare(value: typing.Any, dates: list[DatePath] | None, side: str) -> typing.Any:
    # Copy first: the target must not share structure with the record,
    # and reviving dates must not rewrite the record itself.
    return revive_dates(copy.deepcopy(value), dates, side)


def _item_dates(dates: list[DatePath] | None) -> list[DatePath] | None:
    if not dates:
        return None
    return [marker[1:] for marker in dates if marker and marker[0] == "item"]


def _removal_parent(target: typing.Any, path: tuple) -> tuple[typing.Any, typing.Any] | None:
    """
    Resolve the parent of `path` without creating anything. A missing or
    None intermediate means there is nothing to remove: returns None.
    """
    try:
        return resolve_parent(target, path, create_missing=False)
    except InvalidPath:
        logger.debug("Nothing to remove at %s", format_path(path))
        return None


def _locate_array(
    target: typing.Any, path: tuple | None, *, create: bool
) -> MutableSequence | None:
    if path is None:
        container = target
    else:
        if create:
            parent, key = resolve_parent(target, path)
        else:
            located = _removal_parent(target, path)
            if located is None:
                return None
            parent, key = located
        container = _get(parent, key)
        if container is MISSING or container is None:
            if not create:
                return None
            container = []
            assign(parent, key, container)
    if not isinstance(container, MutableSequence):
        raise NotObject(
            f"Expected a list at {format_path(path)}, found {type(container).__name__}"
        )
    return container


def _change_array(target: typing.Any, change: ArrayChange, *, revert: bool) -> None:
    item = change.item
    # Apply writes an Inserted item; revert writes a Deleted one back.
    writing = isinstance(item, Inserted) != revert
    value = None
    if writing:
        value = _prepare(item.value, _item_dates(change.dates), item.side)

    array = _locate_array(target, change.path, create=writing)
    if array is None:
        return
    if writing:
        assign(array, change.index, value)
    else:
        _delete_in_parent(array, change.index)


def _remove(target: typing.Any, path: tuple) -> None:
    located = _removal_parent(target, path)
    if located is not None:
        _delete_in_parent(*located)


def apply_change(target: typing.Any, change: Change) -> None:
    """
    Mutate `target` in place one step toward the right-hand side of `change`.

    Raises:
    - InvalidTarget when `target` is None or not a mutable container.
    - InvalidChange for an unknown kind or an array change without index/item.
    - NotObject when the path runs through a scalar.

    Writes create missing intermediates; removals through a missing one
    do nothing.
    """
    _assert_target(target)
    change = _coerce(change)

    if isinstance(change, ArrayChange):
        _change_array(target, change, revert=False)
        return
    if change.path is None:
        # Nothing holds the root, so there is nothing to rebind.
        logger.debug("Skipping root-level %r record on apply", change.kind)
        return

    if isinstance(change, Removed):
        _remove(target, change.path)
        return

    value = _prepare(change.rhs, change.dates, "rhs")
    parent, key = resolve_parent(target, change.path)
    assign(parent, key, value)


def revert_change(target: typing.Any, change: Change) -> None:
    """
    Mutate `target` in place one step back toward the left-hand side of `change`.

    Same errors as `apply_change`, plus EmptyPath for root-level records.
    """
    _assert_target(target)
    change = _coerce(change)
    if change.path is None:
        raise EmptyPath("revert_change requires a non-empty path")

    if isinstance(change, ArrayChange):
        _change_array(target, change, revert=True)
        return

    if isinstance(change, Added):
        _remove(target, change.path)
        return

    value = _prepare(change.lhs, change.dates, "lhs")
    parent, key = resolve_parent(target, change.path)
    assign(parent, key, value)


def _is_array_deletion(change: Delta) -> bool:
    return isinstance(change, ArrayChange) and isinstance(change.item, Deleted)


def _order_deletions(changes: list[Delta], *, descending: bool) -> list[Delta]:
    """
    Reorder only the array deletions, by index, among the slots they
    already occupy. Every other record keeps its position.
    """
    slots = [i for i, change in enumerate(changes) if _is_array_deletion(change)]
    if not slots:
        return changes
    logger.debug("Reordering %d array deletion(s)", len(slots))
    deletions = sorted(
        (changes[i] for i in slots), key=lambda c: c.index, reverse=descending
    )
    ordered = list(changes)
    for slot, deletion in zip(slots, deletions):
        ordered[slot] = deletion
    return ordered


def apply_diff(target: typing.Any, differences: typing.Iterable[Change] | None) -> None:
    """
    Apply every record to `target` in place, so that
    ``apply_diff(before, diff(before, after))`` leaves `before` equal to `after`.

    Array deletions run from the highest index down so earlier removals
    cannot shift later ones. None/empty `differences` or a None target is a
    no-op. A failing record aborts the batch; records already applied stay
    applied.
    """
    if target is None or not differences:
        return
    changes = [_coerce(d) for d in differences]
    for change in _order_deletions(changes, descending=True):
        apply_change(target, change)


def revert_diff(target: typing.Any, differences: typing.Iterable[Change] | None) -> None:
    """
    Undo `differences` on `target` in place: records are reverted last to
    first, with deleted array elements restored from the lowest index up.
    """
    if target is None or not differences:
        return
    changes = [_coerce(d) for d in reversed(list(differences))]
    for change in _order_deletions(changes, descending=False):
        revert_change(target, change)
