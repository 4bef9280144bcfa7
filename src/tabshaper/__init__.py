"""TabShaper

Interactively reshape tabular data through a pipeline of declarative operations.

A dataset is loaded as an ordered list of rows (mappings from column name to a
scalar value) plus the ordered list of its column names. The data is then
reshaped by a fixed sequence of stages, each configured declaratively:

* Filtering, which keeps the rows matching all the configured predicates.
* Sorting, by one or more columns in ascending or descending order.
* Aggregation, which collapses the rows into one summary row per group.
* Pivoting, which groups by multiple columns and reduces value columns.
* Formulas, which append computed columns evaluated by a small expression language.

The package is constituted by multiple components, each isolated within its own
module and each self documented:

* The Compute Engine (:mod:`tabshaper.compute`), the stages themselves.
* The Formula language (:mod:`tabshaper.formula`), tokenizer, parser and evaluator.
* The Type Profiler (:mod:`tabshaper.profile`), type inference and column statistics.
* The Pipeline (:mod:`tabshaper.pipeline`), that owns the configuration and
  recomputes the transformed rows whenever it changes.
* The Export helpers (:mod:`tabshaper.export`), to serialize the transformed rows.
"""

from . import compute
from .pipeline import Pipeline, PipelineConfigError
from .profile import ColumnProfile, profile, profile_columns

__all__ = (
    "compute",
    "Pipeline",
    "PipelineConfigError",
    "ColumnProfile",
    "profile",
    "profile_columns",
)
