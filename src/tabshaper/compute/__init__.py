"""The TabShaper Compute Engine

The compute engine defines the transformation plans
and the plan nodes supported.

Each node consumes the list of rows emitted by its child node,
and emits a new list of rows as the result of its execution,
rows are plain dictionaries mapping column names to values.

This allows to easily build transformation pipelines like::

    (rows)-->Node1--(rows)-->Node2--(rows)-->...

The plan nodes themselves are in charge of their execution,
this keeps the behavior near to the node and thus makes easy to
know how a Node is actually executed without having to look around too much.

Building a plan requires to combine the nodes that we want
to be executed starting with a ``DataSource`` node as the
leaf node of the plan:

>>> from tabshaper.compute import RowsDataSource, FilterNode, FilterConfig, SortNode, SortConfig
>>> data = [
...    {"animals": "Flamingo", "n_legs": 2},
...    {"animals": "Horse", "n_legs": 4},
...    {"animals": "Brittle stars", "n_legs": 5},
...    {"animals": "Centipede", "n_legs": 100},
... ]
>>> plan = SortNode(
...     [SortConfig("n_legs", "desc")],
...     child=FilterNode(
...         [FilterConfig("n_legs", "gte", "4")],
...         child=RowsDataSource(data)
...     )
... )
>>> for row in plan.rows():
...     print(row)
{'animals': 'Centipede', 'n_legs': 100}
{'animals': 'Brittle stars', 'n_legs': 5}
{'animals': 'Horse', 'n_legs': 4}
"""

from .aggregate import AggregateNode, AggregationConfig
from .base import PlanNode, Row
from .datasources import (
    CSVDataSource,
    ExcelDataSource,
    JSONDataSource,
    ParquetDataSource,
    PyArrowTableDataSource,
    RowsDataSource,
    open_datasource,
)
from .filtering import FilterConfig, FilterNode
from .formula import FormulaConfig, FormulaNode
from .pivot import PivotConfig, PivotNode
from .sorting import SortConfig, SortNode
from .values import is_empty, parse_date, stringify, to_number

__all__ = (
    "PlanNode",
    "Row",
    "CSVDataSource",
    "ExcelDataSource",
    "JSONDataSource",
    "ParquetDataSource",
    "PyArrowTableDataSource",
    "RowsDataSource",
    "open_datasource",
    "FilterNode",
    "FilterConfig",
    "SortNode",
    "SortConfig",
    "AggregateNode",
    "AggregationConfig",
    "PivotNode",
    "PivotConfig",
    "FormulaNode",
    "FormulaConfig",
    "is_empty",
    "parse_date",
    "stringify",
    "to_number",
)
