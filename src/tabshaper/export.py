"""Export the transformed rows.

The rows produced by the pipeline can be converted to a
:class:`pyarrow.Table`, and through it written to CSV or Parquet
files. They can also be written to Excel workbooks, turned into a SQL
script that recreates them in a database or into a pandas script
that loads them in a DataFrame.

>>> rows = [{"name": "O'Brien", "age": 30}, {"name": "Ann"}]
>>> print(generate_sql(rows, ["name", "age"]))
CREATE TABLE transformed_data (
  name TEXT,
  age TEXT
);
<BLANKLINE>
INSERT INTO transformed_data (name, age) VALUES
('O''Brien', 30),
('Ann', NULL);
"""

import datetime
import logging
import math
import pprint
import re

import openpyxl
import pyarrow as pa
import pyarrow.csv
import pyarrow.parquet

from .compute.base import Row
from .compute.values import is_number, stringify
from .pipeline import Pipeline

logger = logging.getLogger(__name__)

_WHITESPACE_RE = re.compile(r"\s+")


def columns_of(rows: list[Row]) -> list[str]:
    """The keys of the rows, in order of appearance."""
    return list(dict.fromkeys(k for row in rows for k in row))


def to_arrow(rows: list[Row], columns: list[str] | None = None) -> pa.Table:
    """Convert rows to a :class:`pyarrow.Table`.

    Columns whose values can't be represented with a single
    Arrow type, like a mix of numbers and strings, are
    stored as strings. Missing values are nulls.

    :param rows: The rows to convert.
    :param columns: The columns to include, in order. Defaults
                    to all the keys of the rows.
    """
    if columns is None:
        columns = columns_of(rows)

    arrays = {}
    for column in columns:
        values = [row.get(column) for row in rows]
        try:
            array = pa.array(values)
            # Columns holding only missing values are stored as strings.
            arrays[column] = array.cast(pa.string()) if pa.types.is_null(array.type) else array
        except (pa.ArrowInvalid, pa.ArrowTypeError):
            logger.debug("Column %r has mixed types, exporting it as strings", column)
            arrays[column] = pa.array(
                [None if v is None else stringify(v) for v in values], type=pa.string()
            )
    return pa.table(arrays)


def write_csv(rows: list[Row], filename: str, columns: list[str] | None = None) -> None:
    """Write rows to a CSV file, with a header line."""
    pa.csv.write_csv(to_arrow(rows, columns), filename)
    logger.info("Written %d rows to %s", len(rows), filename)


def write_parquet(rows: list[Row], filename: str, columns: list[str] | None = None) -> None:
    """Write rows to a Parquet file."""
    pa.parquet.write_table(to_arrow(rows, columns), filename)
    logger.info("Written %d rows to %s", len(rows), filename)


def generate_sql(
    rows: list[Row],
    columns: list[str] | None = None,
    table_name: str = "transformed_data",
) -> str:
    """Generate a SQL script creating a table and inserting the rows into it.

    All columns are declared as ``TEXT``, whitespace in
    column names is replaced by underscores. Numbers are
    inserted as they are, any other value is quoted and
    missing values are ``NULL``.

    Returns an empty string when there are no rows.
    """
    if not rows:
        return ""
    if columns is None:
        columns = columns_of(rows)

    names = [_WHITESPACE_RE.sub("_", c) for c in columns]
    definitions = ",\n".join(f"  {name} TEXT" for name in names)
    values = ",\n".join(
        "(" + ", ".join(sql_literal(row.get(c)) for c in columns) + ")" for row in rows
    )
    return (
        f"CREATE TABLE {table_name} (\n{definitions}\n);\n\n"
        f"INSERT INTO {table_name} ({', '.join(names)}) VALUES\n{values};"
    )


def sql_literal(value) -> str:
    """Format a value as a SQL literal."""
    if value is None:
        return "NULL"
    if is_number(value):
        return stringify(value)
    text = stringify(value).replace("'", "''")
    return f"'{text}'"


def write_excel(
    rows: list[Row],
    filename: str,
    columns: list[str] | None = None,
    sheet_name: str = "Data",
) -> None:
    """Write rows to an Excel workbook with a single sheet.

    The first row of the sheet holds the column names. Text is
    always stored as text, even when it looks like a spreadsheet formula.
    """
    if columns is None:
        columns = columns_of(rows)

    workbook = openpyxl.Workbook()
    worksheet = workbook.active
    worksheet.title = sheet_name
    for values in [columns, *([_cell_value(row.get(c)) for c in columns] for row in rows)]:
        worksheet.append(values)
        for cell in worksheet[worksheet.max_row]:
            if cell.data_type == "f":
                cell.data_type = "s"
    workbook.save(filename)
    logger.info("Written %d rows to %s", len(rows), filename)


def _cell_value(value):
    if isinstance(value, float) and not math.isfinite(value):
        return None
    if value is None or isinstance(value, (str, int, float, datetime.date, datetime.time)):
        return value
    return stringify(value)


def generate_script(rows: list[Row], pipeline: Pipeline, columns: list[str] | None = None) -> str:
    """Generate a pandas script that loads the rows into a DataFrame.

    The script embeds the rows as a Python literal, reports the
    stages configured in ``pipeline`` as comments, prints a summary
    of the data and saves it to ``output.csv``.
    Dates and other values with no Python literal form are embedded
    as text, non finite numbers as ``None``.
    """
    if columns is None:
        columns = columns_of(rows)

    records = [{c: _literal_value(row.get(c)) for c in columns} for row in rows]
    stages = "\n".join(f"# {line}" for line in pipeline.describe())
    return f"""# Python/Pandas script for data transformation
import pandas as pd

# Sample data ({len(rows)} rows)
data = {pprint.pformat(records, sort_dicts=False)}

df = pd.DataFrame(data)

{stages}

# Display first few rows
print(df.head())

# Basic statistics
print("\\nData types:")
print(df.dtypes)

print("\\nSummary statistics:")
print(df.describe())

# Export to CSV
df.to_csv('output.csv', index=False)
print("\\nData exported to output.csv")
"""


def _literal_value(value):
    if isinstance(value, float) and not math.isfinite(value):
        return None
    if value is None or isinstance(value, (str, int, float)):
        return value
    return stringify(value)
