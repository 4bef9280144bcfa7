"""Plan nodes that pivot data.

Pivoting summarizes data by grouping the rows
on the combination of the values of multiple columns
and reducing one or more value columns for each group.

For example, given the following data::

    city, shop, sales
    Rome, A, 10
    Rome, A, 5
    Rome, B, 8

Pivoting on rows ``city, shop`` with values ``sales`` and ``sum``
would lead to::

    city, shop, sales_sum
    Rome, A, 15
    Rome, B, 8

Only the row axis is supported, the ``columns`` of a :class:`PivotConfig`
are accepted but not used to spread values over new columns.
"""

import dataclasses
from typing import Any

from .aggregate import group_rows, numeric_values, reduce_values
from .base import PlanNode, Row
from .values import stringify

AGGREGATIONS = ("sum", "count", "avg", "min", "max")

KEY_SEPARATOR = "::"
"""Joins the values of the row columns in the composite key of a group.

Values that contain the separator themselves can lead
to groups that are merged or labels that are split wrongly.
"""


@dataclasses.dataclass(frozen=True)
class PivotConfig:
    """Group by the ``rows`` columns and reduce each of the ``values`` columns.

    ``columns`` is reserved for pivoting on the column axis,
    it is part of the configuration but doesn't affect the result.
    """

    rows: tuple[str, ...] = ()
    columns: tuple[str, ...] = ()
    values: tuple[str, ...] = ()
    aggregation: str = "sum"

    def __post_init__(self) -> None:
        if self.aggregation not in AGGREGATIONS:
            raise ValueError(
                f"Pivot aggregation must be one of {AGGREGATIONS}, got {self.aggregation!r}"
            )
        # Accept any sequence, but store tuples to keep the config hashable.
        object.__setattr__(self, "rows", tuple(self.rows))
        object.__setattr__(self, "columns", tuple(self.columns))
        object.__setattr__(self, "values", tuple(self.values))

    @property
    def is_active(self) -> bool:
        """Pivoting only happens when there are both rows and values to pivot."""
        return bool(self.rows) and bool(self.values)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "PivotConfig":
        return cls(
            rows=data.get("rows", ()),
            columns=data.get("columns", ()),
            values=data.get("values", ()),
            aggregation=data.get("aggregation", "sum"),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "rows": list(self.rows),
            "columns": list(self.columns),
            "values": list(self.values),
            "aggregation": self.aggregation,
        }


class PivotNode(PlanNode):
    """Group rows by a composite key and reduce the value columns.

    The composite key of a row is the string form of the values
    of the ``rows`` columns joined by :data:`KEY_SEPARATOR`.
    One row is emitted for each distinct key, in order of first appearance,
    containing the row columns, with the parts of the key, and
    a ``<value>_<aggregation>`` column for each value column.

    Unlike :class:`tabshaper.compute.AggregateNode`, the ``count``
    aggregation counts the values that are numbers, not the rows.

    When the configuration has no rows or no values the
    data is forwarded as is.

    >>> from tabshaper.compute import RowsDataSource
    >>> data = RowsDataSource([
    ...     {"city": "Rome", "sales": 10},
    ...     {"city": "Rome", "sales": "n/a"},
    ...     {"city": "Milan", "sales": 8},
    ... ])
    >>> PivotNode(PivotConfig(rows=["city"], values=["sales"], aggregation="count"), data).rows()
    [{'city': 'Rome', 'sales_count': 1}, {'city': 'Milan', 'sales_count': 1}]
    """

    def __init__(self, pivot: PivotConfig, child: PlanNode) -> None:
        """
        :param pivot: The columns to group by, the value columns and how to reduce them.
        :param child: The child node that will provide the data to pivot.
        """
        self.pivot = pivot
        self.child = child

    def __str__(self) -> str:
        return f"PivotNode(pivot={self.pivot}, {self.child})"

    def composite_key(self, row: Row) -> str:
        """The key identifying the group of a row."""
        return KEY_SEPARATOR.join(stringify(row.get(c)) for c in self.pivot.rows)

    def rows(self) -> list[Row]:
        """Group the rows of the child node and emit one row per group."""
        rows = self.child.rows()
        if not self.pivot.is_active:
            return rows

        aggregation = self.pivot.aggregation
        result = []
        for key, group in group_rows(rows, self.composite_key).items():
            parts = key.split(KEY_SEPARATOR)
            pivoted: Row = {}
            for idx, column in enumerate(self.pivot.rows):
                pivoted[column] = parts[idx] if idx < len(parts) else None

            for column in self.pivot.values:
                values = numeric_values(group, column)
                pivoted[f"{column}_{aggregation}"] = reduce_values(values, aggregation)
            result.append(pivoted)
        return result
