"""Command line interface for transforming the data of files.

This module provides a command line interface that loads a file,
runs its data through a :class:`tabshaper.pipeline.Pipeline` configured
from the command line arguments and prints the transformed rows.

The results are printed to the console in a tabular format
using the :mod:`tabshaper.utils.tabulate` module, or
written to a file using the :mod:`tabshaper.export` module.
"""

import argparse
import json
import logging

import pyarrow as pa

from tabshaper import export
from tabshaper.compute import (
    AggregationConfig,
    FilterConfig,
    PivotConfig,
    SortConfig,
    open_datasource,
)
from tabshaper.pipeline import Pipeline, PipelineConfigError
from tabshaper.utils import tabulate

logger = logging.getLogger(__name__)


def parse_filter(text: str) -> FilterConfig:
    """Parse a ``COLUMN:OPERATOR:VALUE[:VALUE2]`` filter argument."""
    parts = text.split(":", 2)
    if len(parts) < 2:
        raise ValueError(f"Filters must be in the form COLUMN:OPERATOR:VALUE, got {text!r}")
    column, operator = parts[0], parts[1]
    value = parts[2] if len(parts) > 2 else ""
    value2 = None
    if operator == "between":
        value, _, value2 = value.partition(":")
    return FilterConfig(column, operator, value, value2)


def parse_sort(text: str) -> SortConfig:
    """Parse a ``COLUMN[:asc|desc]`` sort argument."""
    column, _, direction = text.rpartition(":")
    if not column or direction not in ("asc", "desc"):
        return SortConfig(text, "asc")
    return SortConfig(column, direction)


def parse_aggregation(text: str) -> AggregationConfig:
    """Parse a ``COLUMN:OPERATION`` aggregation argument."""
    column, sep, operation = text.rpartition(":")
    if not sep or not column:
        raise ValueError(f"Aggregations must be in the form COLUMN:OPERATION, got {text!r}")
    return AggregationConfig(column, operation)


def parse_pivot(text: str) -> PivotConfig:
    """Parse a ``ROWS:VALUES:AGGREGATION`` pivot argument.

    Multiple row and value columns are separated by commas.
    """
    parts = text.split(":")
    if len(parts) != 3:
        raise ValueError(f"Pivots must be in the form ROWS:VALUES:AGGREGATION, got {text!r}")
    rows, values, aggregation = parts
    return PivotConfig(
        rows=[c for c in rows.split(",") if c],
        values=[c for c in values.split(",") if c],
        aggregation=aggregation,
    )


def parse_formula(text: str) -> tuple[str, str]:
    """Parse a ``NAME=EXPRESSION`` formula argument."""
    name, sep, formula = text.partition("=")
    if not sep:
        raise ValueError(f"Formulas must be in the form NAME=EXPRESSION, got {text!r}")
    return name.strip(), formula.strip()


def build_pipeline(args: argparse.Namespace) -> Pipeline:
    """Configure a pipeline from the parsed command line arguments.

    Stages provided on the command line are added on top
    of the ones loaded from the ``--config`` file.
    """
    if args.config:
        try:
            with open(args.config, encoding="utf-8") as f:
                config = json.load(f)
        except (OSError, ValueError) as e:
            raise PipelineConfigError(f"Unable to read {args.config}, {e}") from e
        pipeline = Pipeline.from_config(config)
    else:
        pipeline = Pipeline()

    try:
        for text in args.filter or []:
            pipeline.add_filter(parse_filter(text))
        if args.sort:
            pipeline.set_sort([*pipeline.sort, *(parse_sort(t) for t in args.sort)])
        if args.aggregate:
            pipeline.set_aggregation(parse_aggregation(args.aggregate))
        if args.pivot:
            pipeline.set_pivot(parse_pivot(args.pivot))
    except ValueError as e:
        raise PipelineConfigError(str(e)) from e
    for text in args.formula or []:
        pipeline.add_formula(*parse_formula(text))
    return pipeline


def write_output(pipeline: Pipeline, filename: str) -> None:
    """Write the transformed rows to a file, the format depends on the extension."""
    rows, columns = pipeline.transformed_rows, pipeline.columns
    extension = filename.rsplit(".", 1)[-1].lower() if "." in filename else ""
    if extension == "csv":
        export.write_csv(rows, filename, columns)
    elif extension == "parquet":
        export.write_parquet(rows, filename, columns)
    elif extension == "sql":
        with open(filename, "w", encoding="utf-8") as f:
            f.write(export.generate_sql(rows, columns))
    elif extension == "xlsx":
        export.write_excel(rows, filename, columns)
    elif extension == "py":
        with open(filename, "w", encoding="utf-8") as f:
            f.write(export.generate_script(rows, pipeline, columns))
    else:
        raise ValueError(f"Unsupported output file type: {filename}")


def main(argv: list[str] | None = None) -> None:
    """Parse the command line arguments and transform the file."""
    parser = argparse.ArgumentParser(
        description="Filter, sort, aggregate, pivot and compute columns on files."
    )
    parser.add_argument("file", type=str, help="The CSV, TSV, JSON, Parquet or Excel file to load.")
    parser.add_argument(
        "--filter",
        action="append",
        help="Filter rows as COLUMN:OPERATOR:VALUE[:VALUE2]. Can be provided multiple times.",
    )
    parser.add_argument(
        "--sort",
        action="append",
        help="Sort rows as COLUMN[:asc|desc]. Can be provided multiple times.",
    )
    parser.add_argument("--aggregate", help="Aggregate rows as COLUMN:OPERATION.")
    parser.add_argument(
        "--pivot",
        help="Pivot rows as ROWS:VALUES:AGGREGATION, multiple columns separated by commas.",
    )
    parser.add_argument(
        "--formula",
        action="append",
        help="Add a computed column as NAME=EXPRESSION. Can be provided multiple times.",
    )
    parser.add_argument("--config", help="Load the pipeline configuration from a JSON file.")
    parser.add_argument(
        "--stats", action="store_true", help="Print the profile of the source columns."
    )
    parser.add_argument(
        "--output",
        help="Write the transformed rows to a .csv, .parquet, .xlsx, .sql or .py (pandas script) file.",
    )
    parser.add_argument(
        "--max-rows", type=int, default=20, help="Maximum number of rows to print."
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Log the execution of the pipeline."
    )
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        datasource = open_datasource(args.file)
        pipeline = build_pipeline(args)
        pipeline.load_datasource(datasource)
    except PipelineConfigError as e:
        print(f"Invalid pipeline, {e}")
        return
    except (OSError, ValueError, pa.ArrowInvalid) as e:
        print(f"Unable to load {args.file}, {e}")
        return

    if args.stats:
        print(tabulate.tabulate_profiles(pipeline.profiles))
        print()

    for line in pipeline.describe():
        logger.info(line)

    if args.output:
        try:
            write_output(pipeline, args.output)
        except ValueError as e:
            print(f"Unable to write {args.output}, {e}")
            return
        print(f"Written {len(pipeline.transformed_rows)} rows to {args.output}")
    else:
        print(tabulate.tabulate(pipeline.transformed_rows, pipeline.columns, args.max_rows))


if __name__ == "__main__":
    main()
