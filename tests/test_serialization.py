import copy
import datetime
import json
import re

import pytest

from treediff import (
    ArrayChange,
    Deleted,
    Edit,
    InvalidChange,
    apply_diff,
    diff,
    dumps,
    format_timestamp,
    from_wire,
    loads,
    parse_timestamp,
    revert_diff,
    to_wire,
)

UTC = datetime.timezone.utc
D1 = datetime.datetime(2020, 1, 1, tzinfo=UTC)
D2 = datetime.datetime(2020, 6, 15, 12, 30, tzinfo=UTC)
D3 = datetime.datetime(2021, 3, 3, 3, 3, 3, 333000, tzinfo=UTC)


def _wire(old, new):
    return json.loads(dumps(diff(old, new)))


# --- $dates markers on the wire ---------------------------------------------


def test_edit_between_dates_is_marked_on_both_sides():
    (record,) = _wire({"d": D1}, {"d": D2})
    assert record["lhs"] == "2020-01-01T00:00:00.000Z"
    assert record["rhs"] == "2020-06-15T12:30:00.000Z"
    assert record["$dates"] == [["lhs"], ["rhs"]]


@pytest.mark.parametrize(
    ("old", "new", "expected_dates"),
    [
        ({}, {"d": D1}, [["rhs"]]),
        ({"d": D1}, {}, [["lhs"]]),
        ({"d": None}, {"d": D1}, [["rhs"]]),
        ({"d": D1}, {"d": "x"}, [["lhs"]]),
        ({}, {"user": {"created": D1, "tags": ["x", D2]}}, [["rhs", "created"], ["rhs", "tags", 1]]),
        ({"a": []}, {"a": [D1]}, [["item", "rhs"]]),
        ({"a": [{"at": D1}]}, {"a": []}, [["item", "lhs", "at"]]),
    ],
)
def test_date_markers(old, new, expected_dates):
    (record,) = _wire(old, new)
    assert record["$dates"] == expected_dates


def test_array_item_carries_no_markers():
    (record,) = _wire({"a": []}, {"a": [D1]})
    assert "$dates" not in record["item"]
    assert record["item"] == {"kind": "N", "rhs": "2020-01-01T00:00:00.000Z"}


def test_absent_fields_are_omitted():
    (record,) = _wire(1, 2)
    assert record == {"kind": "E", "lhs": 1, "rhs": 2}


def test_wire_shape_for_each_kind():
    records = _wire({"a": 1, "b": 2, "l": [1]}, {"a": 3, "c": 4, "l": []})
    assert records == [
        {"kind": "E", "path": ["a"], "lhs": 1, "rhs": 3},
        {"kind": "D", "path": ["b"], "lhs": 2},
        {"kind": "A", "path": ["l"], "index": 0, "item": {"kind": "D", "lhs": 1}},
        {"kind": "N", "path": ["c"], "rhs": 4},
    ]


# --- Restoring dates --------------------------------------------------------


def test_roundtrip_restores_dates():
    before = {
        "event": "Conference",
        "start": D1,
        "meta": {"created": D1},
        "attendees": [{"name": "a", "joined": D1}],
    }
    after = {
        "event": "Conference 2024",
        "start": D2,
        "meta": {"created": D1, "updated": D3},
        "attendees": [{"name": "a", "joined": D2}, {"name": "b", "joined": D3}],
    }
    deltas = loads(dumps(diff(before, after)))
    target = copy.deepcopy(before)
    apply_diff(target, deltas)
    assert target == after
    assert isinstance(target["start"], datetime.datetime)
    assert isinstance(target["attendees"][1]["joined"], datetime.datetime)


def test_raw_parsed_json_applies_with_dates():
    records = json.loads(dumps(diff({"d": D1}, {"d": D2})))
    target = {"d": D1}
    apply_diff(target, records)
    assert target == {"d": D2}


def test_revert_restores_dates_from_lhs():
    before = {"events": [{"at": D1}, {"at": D2}], "when": D1}
    after = {"events": [{"at": D1}], "when": D3}
    deltas = loads(dumps(diff(before, after)))
    target = copy.deepcopy(after)
    revert_diff(target, deltas)
    assert target == before
    assert isinstance(target["events"][1]["at"], datetime.datetime)


def test_markers_ignored_when_absent():
    records = json.loads(dumps(diff({"d": D1}, {"d": D2})))
    for record in records:
        record.pop("$dates")
    target = {"d": D1}
    apply_diff(target, records)
    assert target == {"d": "2020-06-15T12:30:00.000Z"}


def test_non_date_values_pass_through():
    deltas = loads(dumps(diff({"s": "2020-01-01T00:00:00.000Z"}, {"s": "x", "n": 1})))
    target = {"s": "2020-01-01T00:00:00.000Z"}
    apply_diff(target, deltas)
    assert target == {"s": "x", "n": 1}


def test_mismatched_marker_is_invalid_change():
    target = {"a": 1}
    with pytest.raises(InvalidChange):
        apply_diff(target, [{"kind": "E", "path": ["a"], "lhs": 1, "rhs": 2, "$dates": [["rhs", "x"]]}])
    assert target == {"a": 1}


# --- to_wire / from_wire / loads ------------------------------------------


def test_from_wire_rebuilds_records():
    record = from_wire({"kind": "A", "path": ["a"], "index": 0, "item": {"kind": "D", "lhs": 1}})
    assert record == ArrayChange(path=("a",), index=0, item=Deleted(1))


def test_to_wire_keeps_dates_as_objects():
    wire = to_wire(Edit(["d"], D1, D2))
    assert wire["lhs"] is D1
    assert wire["$dates"] == [["lhs"], ["rhs"]]


def test_loaded_markers_survive_without_dates_in_values():
    (delta,) = loads(dumps(diff({"d": D1}, {"d": D2})))
    assert delta.dates == [("lhs",), ("rhs",)]
    assert delta.lhs == "2020-01-01T00:00:00.000Z"


def test_patterns_keep_their_flags_on_the_wire():
    (record,) = _wire({"r": re.compile("a+")}, {"r": re.compile("a+", re.I)})
    assert record["lhs"].startswith("/a+/")
    assert record["rhs"].startswith("/a+/")
    assert record["lhs"] != record["rhs"]


@pytest.mark.parametrize("text", ["null", "[]"])
def test_loads_no_differences(text):
    assert loads(text) is None


def test_dumps_none():
    assert dumps(None) == "null"


def test_loads_rejects_non_list():
    with pytest.raises(InvalidChange):
        loads('{"kind": "E"}')


# --- Timestamp text form ----------------------------------------------------


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        (D1, "2020-01-01T00:00:00.000Z"),
        (datetime.datetime(2020, 1, 1, 0, 0, 0, 123456, tzinfo=UTC), "2020-01-01T00:00:00.123Z"),
        (datetime.datetime(2020, 1, 1), "2020-01-01T00:00:00.000Z"),
        (
            datetime.datetime(2020, 1, 1, 1, 0, tzinfo=datetime.timezone(datetime.timedelta(hours=1))),
            "2020-01-01T00:00:00.000Z",
        ),
    ],
)
def test_format_timestamp(value, expected):
    assert format_timestamp(value) == expected


def test_parse_timestamp():
    assert parse_timestamp("2020-06-15T12:30:00.000Z") == D2
    assert parse_timestamp("2020-06-15T12:30:00.000Z").tzinfo is not None


def test_parse_timestamp_rejects_garbage():
    with pytest.raises(InvalidChange):
        parse_timestamp("not a date")
