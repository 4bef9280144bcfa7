"""Infer the type of columns and compute their statistics.

Rows coming from the ingestion are not typed, a column might contain
numbers stored as text, booleans written as ``yes``/``no`` or dates
in a few different layouts. The profiler looks at the values of a column
and infers which kind of data it contains, along with a few statistics
useful to present the column to the user.

The type is decided by looking at the first 100 non empty values
of the column and checking them in a fixed order:

1. ``number`` if all the values are finite numbers.
2. ``boolean`` if all the values are booleans or one of
   ``true, false, 1, 0, yes, no`` in any case.
3. ``date`` if all the values are dates.
4. ``string`` otherwise.

A column without any non empty value is of type ``empty``.
As numbers are checked first, a column containing only ``0`` and ``1``
is a ``number`` column, not a ``boolean`` one.

>>> rows = [{"flag": "0"}, {"flag": "1"}, {"flag": ""}]
>>> profile(rows, "flag")
ColumnProfile(name='flag', type='number', missing_count=1, unique_count=2, min=0.0, max=1.0)
"""

import dataclasses
from typing import Any

import pyarrow as pa
import pyarrow.compute as pc

from .compute.base import Row
from .compute.values import is_empty, is_finite_number, parse_date, stringify, to_number

SAMPLE_SIZE = 100
"""How many non empty values are inspected to infer the type of a column."""

BOOLEAN_TOKENS = ("true", "false", "1", "0", "yes", "no")

COLUMN_TYPES = ("string", "number", "boolean", "date", "empty")


@dataclasses.dataclass(frozen=True)
class ColumnProfile:
    """The inferred type and the statistics of a column.

    ``min`` and ``max`` are numbers for ``number`` columns,
    strings for ``string`` and ``date`` columns and ``None``
    for the other types.
    """

    name: str
    type: str
    missing_count: int
    unique_count: int
    min: float | str | None = None
    max: float | str | None = None

    def to_dict(self) -> dict[str, Any]:
        return dataclasses.asdict(self)


def infer_type(values: list[Any]) -> str:
    """Infer the type of a column from its non empty values."""
    if not values:
        return "empty"

    sample = values[:SAMPLE_SIZE]
    if all(is_finite_number(v) for v in sample):
        return "number"
    if all(
        isinstance(v, bool) or stringify(v).lower() in BOOLEAN_TOKENS for v in sample
    ):
        return "boolean"
    if all(parse_date(v) is not None for v in sample):
        return "date"
    return "string"


def profile(rows: list[Row], column: str) -> ColumnProfile:
    """Profile a column of the dataset.

    Values that don't match the inferred type, like a word
    in a ``number`` column, are tolerated and are simply
    excluded from the ``min`` and ``max`` statistics.

    :param rows: The rows of the dataset.
    :param column: The name of the column to profile.
    """
    values = [row.get(column) for row in rows]
    non_empty = [v for v in values if not is_empty(v)]
    strings = pa.array([stringify(v) for v in non_empty], type=pa.string())
    column_type = infer_type(non_empty)

    minimum = maximum = None
    if column_type == "number":
        numbers = pa.array([to_number(v) for v in non_empty], type=pa.float64())
        numbers = pc.filter(numbers, pc.is_finite(numbers))
        if len(numbers):
            extremes = pc.min_max(numbers)
            minimum, maximum = extremes["min"].as_py(), extremes["max"].as_py()
    elif column_type in ("string", "date"):
        extremes = pc.min_max(strings)
        minimum, maximum = extremes["min"].as_py(), extremes["max"].as_py()

    return ColumnProfile(
        name=column,
        type=column_type,
        missing_count=len(values) - len(non_empty),
        unique_count=pc.count_distinct(strings).as_py(),
        min=minimum,
        max=maximum,
    )


def profile_columns(rows: list[Row], columns: list[str]) -> list[ColumnProfile]:
    """Profile all the columns of the dataset, in order."""
    return [profile(rows, column) for column in columns]
