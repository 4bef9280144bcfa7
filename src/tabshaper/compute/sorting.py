"""Plan nodes that perform sorting of data.

When computing ranks or looking for most significant
values, it's often necessary to sort the data based
on one or more columns.

This module implements the sorting capabilities.
"""

import dataclasses
import functools
from typing import Any

from .base import PlanNode, Row
from .values import compare_text, is_number, stringify

DIRECTIONS = ("asc", "desc")


@dataclasses.dataclass(frozen=True)
class SortConfig:
    """Sort by ``column`` in ``direction`` order, either ``asc`` or ``desc``."""

    column: str
    direction: str = "asc"

    def __post_init__(self) -> None:
        if self.direction not in DIRECTIONS:
            raise ValueError(
                f"Sort direction must be one of {DIRECTIONS}, got {self.direction!r}"
            )

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SortConfig":
        return cls(column=data["column"], direction=data.get("direction", "asc"))

    def to_dict(self) -> dict[str, Any]:
        return dataclasses.asdict(self)


def compare_values(left: Any, right: Any) -> float:
    """Compare two row values.

    Numbers are compared numerically, anything else
    is compared by its string form according to the locale.
    """
    if is_number(left) and is_number(right):
        return left - right
    return compare_text(stringify(left), stringify(right))


class SortNode(PlanNode):
    """Sort data in-memory based on one or more columns.

    The node expects a list of :class:`SortConfig`. The data will be sorted based on
    the columns in the order they are provided, the first column
    whose values differ decides the order of two rows.

    Rows that are equal on all the sort keys retain their
    relative order.

    >>> from tabshaper.compute import RowsDataSource
    >>> data = RowsDataSource([{"v": 1, "k": "a"}, {"v": 2, "k": "b"}, {"v": 1, "k": "c"}])
    >>> # Sort the data in descending order
    >>> [row["k"] for row in SortNode([SortConfig("v", "desc")], data).rows()]
    ['b', 'a', 'c']
    """

    def __init__(self, keys: list[SortConfig], child: PlanNode) -> None:
        """
        :param keys: The columns to sort by in the order they should be sorted.
        :param child: The node emitting the data to be sorted.
        """
        self.keys = list(keys)
        self.child = child

    def __str__(self) -> str:
        sorting = [(k.column, k.direction) for k in self.keys]
        return f"SortNode(sorting={sorting}, {self.child})"

    def compare_rows(self, left: Row, right: Row) -> float:
        """Compare two rows by the sort keys.

        The comparison of the first key that differs is returned,
        negated when that key sorts in descending order.
        """
        for key in self.keys:
            comparison = compare_values(left.get(key.column), right.get(key.column))
            if comparison != 0:
                return -comparison if key.direction == "desc" else comparison
        return 0

    def rows(self) -> list[Row]:
        """Sort the rows of the child node.

        Python sorting is stable, so rows that compare
        equal keep the order they had in the child node.
        """
        rows = self.child.rows()
        if not self.keys:
            return rows
        return sorted(rows, key=functools.cmp_to_key(self.compare_rows))
