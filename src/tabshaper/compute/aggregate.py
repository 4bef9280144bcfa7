"""Plan nodes that compute aggregations.

Frequently when analysing data is necessary
to compute statistics like the min, max, average, etc...
of the values stored in a column.

The aggregate node groups the rows by the values of a column
and reduces each group to a single summary row.
The grouping column is also the column being reduced, so
the node answers questions like "how many times does each
value appear" or "what's the total of each distinct amount".

For example, given the following data::

    city, n_employees
    New York, 10
    New York, 10
    Los Angeles, 8

Aggregating ``n_employees`` with ``sum`` would lead to::

    n_employees, _count, _value
    10, 2, 20
    8, 1, 8

The reductions themselves are performed by :mod:`pyarrow.compute`
on the numeric form of the values, values that are not numbers
are excluded from the reduction.
"""

import dataclasses
import math
from typing import Any

import pyarrow as pa
import pyarrow.compute as pc

from .base import PlanNode, Row
from .values import stringify, to_number

__all__ = (
    "AggregateNode",
    "AggregationConfig",
    "numeric_values",
    "reduce_values",
)

OPERATIONS = ("sum", "mean", "median", "count", "min", "max")


@dataclasses.dataclass(frozen=True)
class AggregationConfig:
    """Group by ``column`` and reduce its values with ``operation``."""

    column: str
    operation: str

    def __post_init__(self) -> None:
        if self.operation not in OPERATIONS:
            raise ValueError(
                f"Aggregation operation must be one of {OPERATIONS}, got {self.operation!r}"
            )

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "AggregationConfig":
        return cls(column=data["column"], operation=data["operation"])

    def to_dict(self) -> dict[str, Any]:
        return dataclasses.asdict(self)


def numeric_values(rows: list[Row], column: str) -> pa.Array:
    """Numeric form of the values of a column, excluding those that are not numbers."""
    numbers = (to_number(row.get(column)) for row in rows)
    return pa.array([n for n in numbers if not math.isnan(n)], type=pa.float64())


def reduce_values(values: pa.Array, operation: str) -> float | None:
    """Reduce numeric values to a single number.

    ``sum`` of no values is ``0``, ``mean`` is the arithmetic mean
    and ``median`` is the lower median: the value at index ``n // 2``
    of the sorted values.

    ``min``, ``max`` and ``median`` of no values are ``None``.

    >>> reduce_values(pa.array([2.0, 4.0, 6.0, 8.0]), "median")
    6.0
    """
    if operation == "sum":
        return pc.sum(values, min_count=0).as_py()
    elif operation in ("mean", "avg"):
        return pc.mean(values).as_py()
    elif operation == "median":
        if len(values) == 0:
            return None
        sorted_values = pc.take(values, pc.array_sort_indices(values))
        return sorted_values[len(values) // 2].as_py()
    elif operation == "count":
        return len(values)
    elif operation == "min":
        return pc.min(values).as_py()
    elif operation == "max":
        return pc.max(values).as_py()
    raise ValueError(f"Unsupported reduction: {operation}")


def group_rows(rows: list[Row], key: Any) -> dict[str, list[Row]]:
    """Group the rows by a key function.

    The groups are in order of first appearance of their key.
    """
    groups: dict[str, list[Row]] = {}
    for row in rows:
        groups.setdefault(key(row), []).append(row)
    return groups


class AggregateNode(PlanNode):
    """Group rows by the values of a column and reduce them.

    One row is emitted for each distinct value of the column,
    in order of first appearance, containing:

    * the column itself, with the string form of the grouped value.
    * ``_count``, the number of rows in the group.
    * ``_value``, the result of the reduction.

    The ``count`` operation counts the rows of the group,
    while the other operations only consider values that are numbers.

    >>> from tabshaper.compute import RowsDataSource
    >>> data = RowsDataSource([{"n": 10}, {"n": 8}, {"n": 10}])
    >>> AggregateNode(AggregationConfig("n", "sum"), data).rows()
    [{'n': '10', '_count': 2, '_value': 20.0}, {'n': '8', '_count': 1, '_value': 8.0}]
    """

    def __init__(self, aggregation: AggregationConfig, child: PlanNode) -> None:
        """
        :param aggregation: The column to group by and the reduction to apply.
        :param child: The child node that will provide the data to aggregate.
        """
        self.aggregation = aggregation
        self.child = child

    def __str__(self) -> str:
        return f"AggregateNode(aggregation={self.aggregation}, {self.child})"

    def rows(self) -> list[Row]:
        """Group the rows of the child node and emit one summary row per group."""
        column = self.aggregation.column
        operation = self.aggregation.operation

        groups = group_rows(self.child.rows(), lambda row: stringify(row.get(column)))

        result = []
        for key, group in groups.items():
            if operation == "count":
                value = len(group)
            else:
                value = reduce_values(numeric_values(group, column), operation)
                if operation == "mean" and value is None:
                    value = 0
            result.append({column: key, "_count": len(group), "_value": value})
        return result
