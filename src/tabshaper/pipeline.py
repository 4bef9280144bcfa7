"""The transformation pipeline.

The :class:`Pipeline` owns the loaded dataset and the declarative
configuration of every stage. Whenever the dataset or any configuration
changes, the transformed rows are recomputed from scratch by running the
stages in a fixed order::

    Filter -> Sort -> Aggregate -> Pivot -> Formulas

The order matters: sorting acts on filtered rows, aggregation and pivoting
replace the rows with summary rows, and formulas are computed last so that
they can refer to the columns produced by aggregation and pivoting.

Recomputing is synchronous, by the time a method changing the configuration
returns, :attr:`Pipeline.transformed_rows` already reflects the new configuration.

>>> pipeline = Pipeline()
>>> pipeline.load([{"a": 1, "b": "x"}, {"a": 2, "b": "y"}, {"a": 3, "b": "x"}], ["a", "b"])
>>> pipeline.add_filter(FilterConfig("b", "equals", "x"))
>>> pipeline.toggle_sort("a")
>>> pipeline.toggle_sort("a")
>>> pipeline.transformed_rows
[{'a': 3, 'b': 'x'}, {'a': 1, 'b': 'x'}]
"""

import dataclasses
import logging
from typing import Any

from .compute import (
    AggregateNode,
    AggregationConfig,
    FilterConfig,
    FilterNode,
    FormulaConfig,
    FormulaNode,
    PivotConfig,
    PivotNode,
    PlanNode,
    Row,
    RowsDataSource,
    SortConfig,
    SortNode,
)
from .profile import ColumnProfile, profile_columns

logger = logging.getLogger(__name__)


class Pipeline:
    """Hold the dataset and the configuration of the stages transforming it.

    The source rows are never modified, every recompute
    produces a new list of transformed rows.
    """

    def __init__(self) -> None:
        self.raw_rows: list[Row] = []
        self.source_columns: list[str] = []
        self.profiles: list[ColumnProfile] = []
        self.filters: list[FilterConfig] = []
        self.sort: list[SortConfig] = []
        self.aggregation: AggregationConfig | None = None
        self.pivot: PivotConfig | None = None
        self.formulas: list[FormulaConfig] = []
        self.transformed_rows: list[Row] = []

    def __str__(self) -> str:
        return f"Pipeline({self.plan()})"

    @property
    def columns(self) -> list[str]:
        """The columns of the transformed rows.

        Aggregation, pivoting and formulas change the columns,
        so they are collected from the transformed rows themselves,
        in order of appearance.
        """
        if not self.transformed_rows:
            return list(self.source_columns)
        return list(dict.fromkeys(k for row in self.transformed_rows for k in row))

    def load(self, rows: list[Row], columns: list[str] | None = None) -> None:
        """Replace the dataset being transformed.

        The columns are profiled again, the configuration
        of the stages is preserved.

        :param rows: The rows of the dataset.
        :param columns: The ordered column names, when not provided
                        they are the keys of the rows in order of appearance.
        """
        source = RowsDataSource(rows, columns)
        self.raw_rows = source.rows()
        self.source_columns = source.columns()
        self.profiles = profile_columns(self.raw_rows, self.source_columns)
        logger.debug(
            "Loaded %d rows with columns %s", len(self.raw_rows), self.source_columns
        )
        self.recompute()

    def load_datasource(self, datasource: Any) -> None:
        """Load the dataset from a datasource node, like :class:`tabshaper.compute.CSVDataSource`."""
        self.load(datasource.rows(), datasource.columns())

    def add_filter(self, config: FilterConfig) -> None:
        self.filters = [*self.filters, config]
        self.recompute()

    def update_filter(self, index: int, **changes: Any) -> None:
        """Change some of the fields of the filter at ``index``."""
        self._check_filter_index(index)
        filters = list(self.filters)
        filters[index] = dataclasses.replace(filters[index], **changes)
        self.filters = filters
        self.recompute()

    def remove_filter(self, index: int) -> None:
        self._check_filter_index(index)
        self.filters = [f for i, f in enumerate(self.filters) if i != index]
        self.recompute()

    def clear_filters(self) -> None:
        self.filters = []
        self.recompute()

    def toggle_sort(self, column: str) -> None:
        """Cycle the sorting of a column: ascending, descending, not sorted.

        Columns that start being sorted are added as the last sort key.
        """
        existing = next((s for s in self.sort if s.column == column), None)
        if existing is None:
            self.sort = [*self.sort, SortConfig(column, "asc")]
        elif existing.direction == "asc":
            self.sort = [
                SortConfig(column, "desc") if s.column == column else s
                for s in self.sort
            ]
        else:
            self.sort = [s for s in self.sort if s.column != column]
        self.recompute()

    def set_sort(self, keys: list[SortConfig]) -> None:
        self.sort = list(keys)
        self.recompute()

    def clear_sort(self) -> None:
        self.sort = []
        self.recompute()

    def set_aggregation(self, config: AggregationConfig | None) -> None:
        self.aggregation = config
        self.recompute()

    def set_pivot(self, config: PivotConfig | None) -> None:
        self.pivot = config
        self.recompute()

    def add_formula(self, name: str, formula: str) -> None:
        """Add a formula computing a new column.

        The formula is rejected, leaving the pipeline unchanged,
        when the name or the formula are empty or when another
        formula with the same name already exists.
        """
        if not name or not formula:
            raise PipelineConfigError("Please enter both formula name and expression")
        if any(f.name == name for f in self.formulas):
            raise PipelineConfigError("Formula name already exists")
        self.formulas = [*self.formulas, FormulaConfig(name, formula)]
        self.recompute()

    def remove_formula(self, name: str) -> None:
        self.formulas = [f for f in self.formulas if f.name != name]
        self.recompute()

    def plan(self) -> PlanNode:
        """Build the transformation plan for the current configuration.

        Stages that are not configured are not part of the plan.
        """
        node: PlanNode = RowsDataSource(self.raw_rows, self.source_columns)
        if self.filters:
            node = FilterNode(self.filters, node)
        if self.sort:
            node = SortNode(self.sort, node)
        if self.aggregation is not None:
            node = AggregateNode(self.aggregation, node)
        if self.pivot is not None and self.pivot.is_active:
            node = PivotNode(self.pivot, node)
        for formula in self.formulas:
            node = FormulaNode(formula, self.source_columns, node)
        return node

    def recompute(self) -> list[Row]:
        """Run the whole transformation plan and publish its result."""
        plan = self.plan()
        logger.debug("Recomputing %s", plan)
        self.transformed_rows = plan.rows()
        logger.debug(
            "Transformed %d rows into %d rows",
            len(self.raw_rows),
            len(self.transformed_rows),
        )
        return self.transformed_rows

    def describe(self) -> list[str]:
        """Human readable summary of the configuration, one line per stage."""
        filters = ", ".join(f'{f.column} {f.operator} "{f.value}"' for f in self.filters)
        sort = ", ".join(f"{s.column} {s.direction}" for s in self.sort)
        aggregation = (
            f"{self.aggregation.operation}({self.aggregation.column})"
            if self.aggregation
            else ""
        )
        pivot = (
            f"rows={list(self.pivot.rows)}, columns={list(self.pivot.columns)}, "
            f"values={list(self.pivot.values)}, aggregation={self.pivot.aggregation}"
            if self.pivot
            else ""
        )
        formulas = ", ".join(f"{f.name} = {f.formula}" for f in self.formulas)
        return [
            f"Applied filters: {filters or 'None'}",
            f"Applied sorting: {sort or 'None'}",
            f"Applied aggregation: {aggregation or 'None'}",
            f"Applied pivot: {pivot or 'None'}",
            f"Applied formulas: {formulas or 'None'}",
        ]

    def to_config(self) -> dict[str, Any]:
        """The configuration of the stages, in a JSON compatible form."""
        return {
            "filters": [f.to_dict() for f in self.filters],
            "sort": [s.to_dict() for s in self.sort],
            "aggregation": self.aggregation.to_dict() if self.aggregation else None,
            "pivot": self.pivot.to_dict() if self.pivot else None,
            "formulas": [f.to_dict() for f in self.formulas],
        }

    def configure(self, config: dict[str, Any]) -> None:
        """Replace the configuration of all stages with the one in ``config``.

        ``config`` is in the form returned by :meth:`to_config`,
        all keys are optional. The configuration is validated as a whole
        before being applied, so an invalid configuration leaves
        the pipeline unchanged.
        """
        try:
            filters = [FilterConfig.from_dict(f) for f in config.get("filters", [])]
            sort = [SortConfig.from_dict(s) for s in config.get("sort", [])]
            aggregation = config.get("aggregation")
            aggregation = AggregationConfig.from_dict(aggregation) if aggregation else None
            pivot = config.get("pivot")
            pivot = PivotConfig.from_dict(pivot) if pivot else None
            formulas = [FormulaConfig.from_dict(f) for f in config.get("formulas", [])]
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            raise PipelineConfigError(f"Invalid pipeline configuration: {e}") from e

        names = [f.name for f in formulas]
        if any(not f.name or not f.formula for f in formulas):
            raise PipelineConfigError("Please enter both formula name and expression")
        if len(set(names)) != len(names):
            raise PipelineConfigError("Formula name already exists")

        self.filters = filters
        self.sort = sort
        self.aggregation = aggregation
        self.pivot = pivot
        self.formulas = formulas
        self.recompute()

    @classmethod
    def from_config(cls, config: dict[str, Any]) -> "Pipeline":
        """Create a pipeline, with no data loaded, configured as described by ``config``."""
        pipeline = cls()
        pipeline.configure(config)
        return pipeline

    def _check_filter_index(self, index: int) -> None:
        if not 0 <= index < len(self.filters):
            raise PipelineConfigError(f"There is no filter at position {index}")


class PipelineConfigError(ValueError):
    """A configuration change was rejected, the message is meant for the user."""

    pass
