"""Plan nodes that compute new columns from formulas.

Each formula appends a new column to every row, whose value
is computed by evaluating the formula on that row.
See :mod:`tabshaper.formula` for the formula language itself.

Formulas never abort the transformation: when a formula can't be
parsed, or can't be evaluated for a specific row, the value of the
new column is ``None`` for the rows affected and all other rows
and formulas are computed as usual.
"""

import dataclasses
import logging
from typing import Any

from ..formula import (
    FormulaEvaluationError,
    FormulaEvaluator,
    FormulaParseError,
    FormulaTokenizeException,
    parse_formula,
)
from .base import PlanNode, Row

logger = logging.getLogger(__name__)


@dataclasses.dataclass(frozen=True)
class FormulaConfig:
    """A new column named ``name`` computed by the ``formula`` expression."""

    name: str
    formula: str

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "FormulaConfig":
        return cls(name=data["name"], formula=data["formula"])

    def to_dict(self) -> dict[str, Any]:
        return dataclasses.asdict(self)


class FormulaNode(PlanNode):
    """Append to each row a column computed by a formula.

    The formula can refer to any column of the row, including
    columns added by previous formulas or produced by aggregations.

    >>> from tabshaper.compute import RowsDataSource
    >>> data = RowsDataSource([{"x": 1}, {"x": 2}, {"x": 3}])
    >>> FormulaNode(FormulaConfig("total", "SUM(x)"), ["x"], data).rows()
    [{'x': 1, 'total': 1.0}, {'x': 2, 'total': 3.0}, {'x': 3, 'total': 6.0}]
    """

    def __init__(self, formula: FormulaConfig, columns: list[str], child: PlanNode) -> None:
        """
        :param formula: The name of the new column and the formula computing it.
        :param columns: The declared columns of the dataset.
        :param child: The node emitting the rows to extend.
        """
        self.formula = formula
        self.columns = list(columns)
        self.child = child

    def __str__(self) -> str:
        return f"FormulaNode(formula={self.formula}, {self.child})"

    def rows(self) -> list[Row]:
        """Evaluate the formula on each row of the child node.

        The formula is parsed only once, then evaluated for
        each row. Rows are copied, never modified, when
        the new column is added.
        """
        rows = self.child.rows()
        name = self.formula.name
        try:
            ast = parse_formula(self.formula.formula)
        except (FormulaTokenizeException, FormulaParseError) as e:
            logger.warning("Invalid formula %r for %r: %s", self.formula.formula, name, e)
            return [{**row, name: None} for row in rows]

        evaluator = FormulaEvaluator(ast, rows, self.columns)
        result = []
        for idx, row in enumerate(rows):
            try:
                value = evaluator.evaluate(idx)
            except FormulaEvaluationError as e:
                logger.debug("Formula %r failed on row %d: %s", name, idx, e)
                value = None
            result.append({**row, name: value})
        return result
