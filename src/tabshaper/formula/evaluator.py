"""Evaluate parsed formulas against the rows of a dataset.

The evaluator walks the AST produced by :class:`tabshaper.formula.expressions.ExpressionParser`
once for each row. Names in the formula are bound to the values of the row being evaluated,
while a few functions give access to the position of the row and to the rows
that precede it:

============= ===================================================================
``SUM(col)``  running total of the numeric values of ``col`` up to the current row
``AVG(col)``  running mean of the numeric values of ``col`` up to the current row,
              ``0`` when none of them is a number
``LEN(col)``  number of characters of the value of ``col`` in the current row
``IF(c,a,b)`` ``a`` when the comparison ``c`` holds, ``b`` otherwise
``ROW()``     the position of the current row, starting from ``1``
============= ===================================================================

The running aggregates are computed once per column with
:func:`pyarrow.compute.cumulative_sum` and then looked up by row position.

>>> from tabshaper.formula import parse_formula
>>> rows = [{"x": 1}, {"x": 2}, {"x": 3}]
>>> evaluator = FormulaEvaluator(parse_formula("SUM(x) * 10"), rows, ["x"])
>>> [evaluator.evaluate(idx) for idx in range(len(rows))]
[10.0, 30.0, 60.0]
"""

import math
from typing import Any

import pyarrow as pa
import pyarrow.compute as pc

from ..compute.base import Row
from ..compute.values import is_number, stringify, to_number


class FormulaEvaluator:
    """Evaluate a formula AST for the rows of a dataset.

    The evaluator is bound to the whole list of rows, as
    prefix aggregates like ``SUM(col)`` need to know the
    rows that precede the one being evaluated.
    """

    def __init__(self, ast: dict, rows: list[Row], columns: list[str]) -> None:
        """
        :param ast: The formula parsed by :func:`tabshaper.formula.parse_formula`.
        :param rows: The rows the formula is evaluated on.
        :param columns: The declared columns of the dataset, names of declared columns
                        that are missing from a row evaluate to ``None``.
        """
        self.ast = ast
        self.rows = rows
        self.columns = set(columns)
        self._running_totals: dict[str, tuple[list[float], list[int]]] = {}

    def evaluate(self, idx: int) -> Any:
        """Evaluate the formula for the row at position ``idx``.

        Any error in the evaluation is reported as a :class:`FormulaEvaluationError`.
        """
        try:
            return self._eval(self.ast, idx)
        except FormulaEvaluationError:
            raise
        except (TypeError, ValueError, ArithmeticError, RecursionError) as e:
            raise FormulaEvaluationError(str(e)) from e

    def _eval(self, node: dict, idx: int) -> Any:
        node_type = node["type"]
        if node_type == "literal":
            return node["value"]
        elif node_type == "identifier":
            return self._lookup(node["value"], idx)
        elif node_type == "unary_op":
            operand = self._eval(node["operand"], idx)
            if node["op"] == "NOT":
                return not _truthy(operand)
            if operand is None:
                return None
            return -_as_number(operand)
        elif node_type == "binary_op":
            return _arithmetic(
                node["op"], self._eval(node["left"], idx), self._eval(node["right"], idx)
            )
        elif node_type == "comparison":
            return _compare(
                node["op"], self._eval(node["left"], idx), self._eval(node["right"], idx)
            )
        elif node_type == "conjunction":
            left = _truthy(self._eval(node["left"], idx))
            if node["op"] == "AND":
                return left and _truthy(self._eval(node["right"], idx))
            return left or _truthy(self._eval(node["right"], idx))
        elif node_type == "function_call":
            return self._call(node["name"], node["args"], idx)
        raise FormulaEvaluationError(f"Unsupported expression: {node_type}")

    def _lookup(self, name: str, idx: int) -> Any:
        row = self.rows[idx]
        if name in row:
            return row[name]
        elif name in self.columns:
            return None
        raise FormulaEvaluationError(f"Unknown column: {name}")

    def _call(self, name: str, args: list[dict], idx: int) -> Any:
        if name in ("SUM", "AVG"):
            column = _column_argument(name, args)
            totals, counts = self._running_total(column)
            if name == "SUM":
                return totals[idx]
            return totals[idx] / counts[idx] if counts[idx] else 0
        elif name == "LEN":
            if len(args) != 1:
                raise FormulaEvaluationError("LEN expects exactly one argument")
            (arg,) = args
            if arg["type"] == "identifier":
                value = self.rows[idx].get(arg["value"])
            else:
                value = self._eval(arg, idx)
            return len(stringify(value))
        elif name == "IF":
            if len(args) != 3:
                raise FormulaEvaluationError("IF expects exactly three arguments")
            condition, when_true, when_false = args
            chosen = when_true if self._condition(condition, idx) else when_false
            return self._eval(chosen, idx)
        elif name == "ROW":
            if args:
                raise FormulaEvaluationError("ROW expects no arguments")
            return idx + 1
        raise FormulaEvaluationError(f"Unknown function: {name}")

    def _condition(self, node: dict, idx: int) -> bool:
        """Evaluate the condition of an IF.

        Both sides of a comparison are compared by their numeric value,
        for column names this is the numeric value of the column in the current row.
        Conditions that fail to evaluate are false.
        """
        try:
            if node["type"] != "comparison":
                return _truthy(self._eval(node, idx))
            left = self._numeric_operand(node["left"], idx)
            right = self._numeric_operand(node["right"], idx)
            return _compare(node["op"], left, right)
        except (FormulaEvaluationError, TypeError, ValueError, ArithmeticError):
            return False

    def _numeric_operand(self, node: dict, idx: int) -> float:
        if node["type"] == "identifier":
            return to_number(self.rows[idx].get(node["value"]))
        return to_number(self._eval(node, idx))

    def _running_total(self, column: str) -> tuple[list[float], list[int]]:
        """Running sums and counts of the numeric values of a column."""
        if column not in self._running_totals:
            numbers = [to_number(row.get(column)) for row in self.rows]
            valid = [not math.isnan(n) for n in numbers]
            totals = pc.cumulative_sum(
                pa.array([n if ok else 0.0 for n, ok in zip(numbers, valid)], pa.float64())
            )
            counts = pc.cumulative_sum(pa.array([int(ok) for ok in valid], pa.int64()))
            self._running_totals[column] = (totals.to_pylist(), counts.to_pylist())
        return self._running_totals[column]


def _column_argument(function: str, args: list[dict]) -> str:
    if len(args) != 1 or args[0]["type"] != "identifier":
        raise FormulaEvaluationError(f"{function} expects a column name")
    return args[0]["value"]


def _truthy(value: Any) -> bool:
    if isinstance(value, float) and math.isnan(value):
        return False
    return bool(value)


def _as_number(value: Any) -> int | float:
    """Numeric value of an arithmetic operand, numeric strings are accepted."""
    if is_number(value):
        return value
    if isinstance(value, bool):
        return int(value)
    number = to_number(value)
    if math.isnan(number):
        raise FormulaEvaluationError(f"Not a number: {value!r}")
    return number


def _arithmetic(op: str, left: Any, right: Any) -> Any:
    if left is None or right is None:
        return None
    if op == "+" and (isinstance(left, str) or isinstance(right, str)):
        return stringify(left) + stringify(right)

    left, right = _as_number(left), _as_number(right)
    if op == "+":
        return left + right
    elif op == "-":
        return left - right
    elif op == "*":
        return left * right
    elif op == "/":
        if right == 0:
            raise FormulaEvaluationError("Division by zero")
        return left / right
    elif op == "%":
        if right == 0:
            raise FormulaEvaluationError("Division by zero")
        return math.fmod(left, right)
    raise FormulaEvaluationError(f"Unsupported operator: {op}")


def _compare(op: str, left: Any, right: Any) -> bool:
    if op in ("=", "=="):
        return _equals(left, right)
    elif op in ("!=", "<>"):
        return not _equals(left, right)

    if left is None or right is None:
        return False
    if isinstance(left, str) and isinstance(right, str):
        pair = (left, right)
    else:
        pair = (to_number(left), to_number(right))
    if op == "<":
        return pair[0] < pair[1]
    elif op == ">":
        return pair[0] > pair[1]
    elif op == "<=":
        return pair[0] <= pair[1]
    elif op == ">=":
        return pair[0] >= pair[1]
    raise FormulaEvaluationError(f"Unsupported comparison: {op}")


def _equals(left: Any, right: Any) -> bool:
    if left is None or right is None:
        return left is None and right is None
    if isinstance(left, str) and isinstance(right, str):
        return left == right
    if isinstance(left, bool) and isinstance(right, bool):
        return left == right
    return to_number(left) == to_number(right)


class FormulaEvaluationError(Exception):
    """Exception raised when a formula can't be evaluated for a row."""

    pass
