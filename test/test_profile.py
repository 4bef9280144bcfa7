import datetime

import pytest

from tabshaper import ColumnProfile, profile, profile_columns
from tabshaper.profile import SAMPLE_SIZE, infer_type


@pytest.mark.parametrize(
    "values, expected",
    [
        (["0", "1", "0"], "number"),
        ([1, 2.5, "3"], "number"),
        (["yes", "No", "TRUE", "0"], "boolean"),
        ([True, False], "boolean"),
        (["2024-01-01", "03/15/2024", "Mar 3, 2024"], "date"),
        ([datetime.date(2024, 1, 1)], "date"),
        (["Rome", "Milan"], "string"),
        (["1", "two"], "string"),
        ([], "empty"),
    ],
)
def test_infer_type(values, expected):
    assert infer_type(values) == expected


def test_infer_type_only_looks_at_sample():
    values = ["1"] * SAMPLE_SIZE + ["not a number"]
    assert infer_type(values) == "number"


def test_profile_number_column():
    rows = [{"v": "3"}, {"v": 10}, {"v": ""}, {"v": None}, {}, {"v": "3"}]
    assert profile(rows, "v") == ColumnProfile(
        name="v", type="number", missing_count=3, unique_count=2, min=3.0, max=10.0
    )


def test_profile_string_column():
    rows = [{"c": "Rome"}, {"c": "Milan"}, {"c": "Turin"}, {"c": "Rome"}]
    assert profile(rows, "c") == ColumnProfile(
        name="c", type="string", missing_count=0, unique_count=3, min="Milan", max="Turin"
    )


def test_profile_date_column_lexicographic_extremes():
    rows = [{"d": "2024-05-01"}, {"d": "2023-12-31"}, {"d": "2024-01-15"}]
    result = profile(rows, "d")
    assert result.type == "date"
    assert (result.min, result.max) == ("2023-12-31", "2024-05-01")


def test_profile_boolean_column_has_no_extremes():
    rows = [{"b": "yes"}, {"b": "no"}, {"b": True}]
    assert profile(rows, "b") == ColumnProfile(
        name="b", type="boolean", missing_count=0, unique_count=3
    )


def test_profile_empty_column():
    rows = [{"e": ""}, {"e": None}, {}]
    assert profile(rows, "e") == ColumnProfile(
        name="e", type="empty", missing_count=3, unique_count=0
    )


def test_profile_unparseable_values_excluded_from_extremes():
    rows = [{"v": i} for i in range(1, SAMPLE_SIZE + 1)] + [{"v": "oops"}, {"v": 1000}]
    result = profile(rows, "v")
    assert result.type == "number"
    assert (result.min, result.max) == (1.0, 1000.0)


@pytest.mark.parametrize(
    "rows",
    [
        [{"v": 1}, {"v": ""}, {}],
        [{"v": "a"}, {"v": "a"}, {"v": None}, {"v": "b"}],
        [],
    ],
)
def test_profile_missing_plus_present_is_total(rows):
    result = profile(rows, "v")
    present = sum(1 for row in rows if row.get("v") not in (None, ""))
    assert result.missing_count + present == len(rows)


def test_profile_columns_keeps_order():
    rows = [{"a": 1, "b": "x"}]
    profiles = profile_columns(rows, ["b", "a"])
    assert [p.name for p in profiles] == ["b", "a"]
    assert profiles[1].to_dict() == {
        "name": "a",
        "type": "number",
        "missing_count": 0,
        "unique_count": 1,
        "min": 1.0,
        "max": 1.0,
    }
