"""
Timestamp markers for records that travel through a text format.

A JSON encoder turns a ``datetime`` leaf into its ISO-8601 string and the
decoder cannot tell that string from any other. Each record therefore
carries ``$dates``: the paths, rooted at ``lhs``/``rhs`` (or ``item`` for
array changes), of every timestamp inside its payload. The patch engine
uses them to turn those strings back into ``datetime`` objects.
"""

import datetime
import typing
from collections.abc import Mapping

from treediff.errors import InvalidChange

Token = str | int
DatePath = tuple[Token, ...]

EPOCH = datetime.datetime(1970, 1, 1, tzinfo=datetime.timezone.utc)


def _as_utc(value: datetime.datetime) -> datetime.datetime:
    # Naive datetimes are read as UTC, never as local time.
    if value.tzinfo is None:
        return value.replace(tzinfo=datetime.timezone.utc)
    return value.astimezone(datetime.timezone.utc)


def timestamp_millis(value: datetime.datetime) -> int:
    """Millisecond instant of `value`, the precision timestamps are compared at."""
    return (_as_utc(value) - EPOCH) // datetime.timedelta(milliseconds=1)


def format_timestamp(value: datetime.datetime) -> str:
    """Canonical text form: ``2020-01-01T00:00:00.000Z``."""
    text = _as_utc(value).isoformat(timespec="milliseconds")
    return text.replace("+00:00", "Z")


def parse_timestamp(text: str) -> datetime.datetime:
    """Inverse of `format_timestamp`; always returns an aware UTC datetime."""
    try:
        parsed = datetime.datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError as e:
        raise InvalidChange(f"Cannot parse timestamp {text!r}: {e}") from e
    return _as_utc(parsed)


def collect_date_paths(value: typing.Any, prefix: DatePath) -> list[DatePath]:
    """
    Return the path of every ``datetime`` reachable inside `value`,
    each path starting with `prefix`.
    """
    paths: list[DatePath] = []
    open_ids: set[int] = set()

    def rec(current: typing.Any, path: DatePath):
        if isinstance(current, datetime.datetime):
            paths.append(path)
            return
        if isinstance(current, (list, tuple)):
            children = enumerate(current)
        elif isinstance(current, Mapping):
            children = current.items()
        else:
            return
        oid = id(current)
        if oid in open_ids:
            return
        open_ids.add(oid)
        for key, child in children:
            rec(child, (*path, key))
        open_ids.discard(oid)

    rec(value, tuple(prefix))
    return paths


def normalize_dates(dates: typing.Iterable[typing.Iterable[Token]] | None) -> list[DatePath] | None:
    """Tuple-ize marker paths; an empty marker list becomes ``None``."""
    if not dates:
        return None
    return [tuple(p) for p in dates]


def _revive_leaf(leaf: typing.Any) -> typing.Any:
    if isinstance(leaf, str):
        return parse_timestamp(leaf)
    return leaf


def revive_dates(value: typing.Any, dates: list[DatePath] | None, side: str) -> typing.Any:
    """
    Turn the marked string leaves of `value` back into timestamps.

    Only markers rooted at `side` are used. Nested leaves are replaced in
    place; a marker on the root returns the revived value. Leaves that are
    already ``datetime`` (the record never left memory) pass through.
    """
    if not dates:
        return value
    for marker in dates:
        if not marker or marker[0] != side:
            continue
        rest = marker[1:]
        if not rest:
            value = _revive_leaf(value)
            continue
        current = value
        try:
            for tok in rest[:-1]:
                current = current[tok]
            leaf = current[rest[-1]]
            if isinstance(leaf, str):
                current[rest[-1]] = _revive_leaf(leaf)
        except (KeyError, IndexError, TypeError) as e:
            raise InvalidChange(
                f"Date marker {list(marker)!r} does not match the record value"
            ) from e
    return value
