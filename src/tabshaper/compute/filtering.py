"""Plan nodes that implement filtering of rows.

A common request when exploring data is to pick only
the rows that respect some conditions, like the
``WHERE`` condition in SQL queries.

Each condition is described by a :class:`FilterConfig`,
which compares the value of a column using an operator:

============== ==================================================
operator       keeps the row when
============== ==================================================
``equals``     the string form of the value equals ``value``
``contains``   the string form of the value contains ``value``
``startsWith`` the string form of the value starts with ``value``
``endsWith``   the string form of the value ends with ``value``
``gt``         the value is greater than ``value``
``lt``         the value is less than ``value``
``gte``        the value is greater or equal to ``value``
``lte``        the value is less or equal to ``value``
``between``    the value is within ``value`` and ``value2``
``isEmpty``    the value is missing, empty or falsy
``isNotEmpty`` the value is not empty
============== ==================================================

Text comparisons are case insensitive, numeric comparisons
are false whenever one of the two sides is not a number.
"""

import dataclasses
import logging
import math
from typing import Any, Callable

from .base import PlanNode, Row
from .values import stringify, to_number

logger = logging.getLogger(__name__)

OPERATORS = (
    "equals",
    "contains",
    "startsWith",
    "endsWith",
    "gt",
    "lt",
    "gte",
    "lte",
    "between",
    "isEmpty",
    "isNotEmpty",
)


@dataclasses.dataclass(frozen=True)
class FilterConfig:
    """A predicate over the values of a column.

    ``value2`` is only meaningful for the ``between`` operator,
    while ``isEmpty`` and ``isNotEmpty`` ignore ``value`` entirely.
    """

    column: str
    operator: str
    value: str = ""
    value2: str | None = None

    def __post_init__(self) -> None:
        # Values are compared in their string form, numbers are accepted too.
        if not isinstance(self.value, str):
            object.__setattr__(self, "value", stringify(self.value))
        if self.value2 is not None and not isinstance(self.value2, str):
            object.__setattr__(self, "value2", stringify(self.value2))

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "FilterConfig":
        """Build the filter from its plain dictionary form."""
        value2 = data.get("value2")
        return cls(
            column=data["column"],
            operator=data["operator"],
            value=stringify(data.get("value")),
            value2=None if value2 is None else stringify(value2),
        )

    def to_dict(self) -> dict[str, Any]:
        return dataclasses.asdict(self)

    def predicate(self) -> Callable[[Row], bool]:
        """Build a function telling if a row satisfies the filter.

        Operators that are not known result in a predicate
        that is always satisfied, so that a misconfigured
        filter never hides data.
        """
        column = self.column
        value = self.value.lower()
        number = to_number(self.value)

        def text(row: Row) -> str:
            return stringify(row.get(column)).lower()

        def numeric(row: Row) -> float:
            return to_number(row.get(column))

        if self.operator == "equals":
            return lambda row: text(row) == value
        elif self.operator == "contains":
            return lambda row: value in text(row)
        elif self.operator == "startsWith":
            return lambda row: text(row).startswith(value)
        elif self.operator == "endsWith":
            return lambda row: text(row).endswith(value)
        elif self.operator == "gt":
            return lambda row: numeric(row) > number
        elif self.operator == "lt":
            return lambda row: numeric(row) < number
        elif self.operator == "gte":
            return lambda row: numeric(row) >= number
        elif self.operator == "lte":
            return lambda row: numeric(row) <= number
        elif self.operator == "between":
            upper = to_number(self.value2) if self.value2 is not None else math.nan
            return lambda row: number <= numeric(row) <= upper
        elif self.operator == "isEmpty":
            return lambda row: _is_falsy(row.get(column))
        elif self.operator == "isNotEmpty":
            return lambda row: not _is_falsy(row.get(column))
        else:
            logger.warning(
                "Unknown filter operator %r on column %r, all rows pass",
                self.operator,
                self.column,
            )
            return lambda row: True


def _is_falsy(value: Any) -> bool:
    """Missing, empty and falsy values (``0``, ``False``) are considered empty."""
    if isinstance(value, float) and math.isnan(value):
        return True
    return not value


class FilterNode(PlanNode):
    """Filter rows based on a set of filters.

    All the filters must be satisfied for a row to be kept,
    the filters are applied one after the other, each one
    narrowing down the rows left by the previous one.
    The relative order of the rows is preserved.

    >>> from tabshaper.compute import RowsDataSource
    >>> data = RowsDataSource([{"n": 1}, {"n": 5}, {"n": 3}])
    >>> FilterNode([FilterConfig("n", "gte", "3")], data).rows()
    [{'n': 5}, {'n': 3}]
    """

    def __init__(self, filters: list[FilterConfig], child: PlanNode) -> None:
        """
        :param filters: The filters that rows must satisfy.
        :param child: The node emitting the data to be filtered.
        """
        self.filters = list(filters)
        self.child = child

    def __str__(self) -> str:
        return f"FilterNode(filters={self.filters}, child={self.child})"

    def rows(self) -> list[Row]:
        """Apply the filters to the rows of the child node.

        Each filter is converted to a predicate and the
        rows are narrowed down by one predicate at a time.
        """
        rows = self.child.rows()
        for config in self.filters:
            predicate = config.predicate()
            rows = [row for row in rows if predicate(row)]
        return rows
