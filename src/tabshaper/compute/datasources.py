"""Plan nodes that load data

The datasource nodes are expected to fetch the data from some source,
convert it into rows and forward them to the next node in the plan.

Along with the rows, each datasource knows the ordered list of
columns of the data it loads, which is what the Type Profiler
and the Formula stage need to know which names refer to columns.

They are used to do things like loading
data from CSV files or equivalent operations.
"""

import json
import zipfile
from abc import abstractmethod

import openpyxl
from openpyxl.utils.exceptions import InvalidFileException
import pyarrow as pa
import pyarrow.csv
import pyarrow.parquet

from .base import PlanNode, Row
from .values import stringify


class DataSourceNode(PlanNode):
    """Base class for nodes that load data from a source."""

    @abstractmethod
    def columns(self) -> list[str]:
        """The ordered list of column names of the data source."""
        ...


class RowsDataSource(DataSourceNode):
    """Emit rows that are already in memory.

    This is the leaf of every plan built by :class:`tabshaper.pipeline.Pipeline`,
    the source rows are provided by the ingestion and never modified.

    >>> source = RowsDataSource([{"a": 1}, {"a": 2, "b": "x"}])
    >>> source.columns()
    ['a', 'b']
    >>> str(source)
    "RowsDataSource(columns=['a', 'b'], rows=2)"
    """

    def __init__(self, rows: list[Row], columns: list[str] | None = None) -> None:
        """
        :param rows: The rows to emit.
        :param columns: The ordered column names, when not provided
                        they are the keys of the rows in order of appearance.
        """
        self._rows = rows
        if columns is None:
            columns = list(dict.fromkeys(k for row in rows for k in row))
        self._columns = list(columns)

    def __str__(self) -> str:
        return f"RowsDataSource(columns={self._columns}, rows={len(self._rows)})"

    def rows(self) -> list[Row]:
        """Emit a copy of the list of source rows."""
        return list(self._rows)

    def columns(self) -> list[str]:
        return list(self._columns)


class PyArrowTableDataSource(DataSourceNode):
    """Load data from an in-memory pyarrow.Table or pyarrow.RecordBatch.

    Given a :class:`pyarrow.Table` or `pyarrow.RecordBatch` object,
    allow to use its data in a transformation plan.
    """

    def __init__(self, table: pa.Table | pa.RecordBatch) -> None:
        """
        :param table: The table or recordbatch with the data to read.
        """
        self.table = table

    def __str__(self) -> str:
        return f"PyArrowTableDataSource(columns={self.table.column_names}, rows={self.table.num_rows})"

    def rows(self) -> list[Row]:
        """Convert the data contained in the Table to rows."""
        return self.table.to_pylist()

    def columns(self) -> list[str]:
        return list(self.table.column_names)


class CSVDataSource(DataSourceNode):
    """Load data from a CSV file.

    Given a local CSV file path, load the content
    through the Arrow CSV reader, which takes care of
    detecting the type of each column, and emit it as rows.

    Empty lines are skipped and only empty cells become missing values,
    text like ``NA`` or ``null`` is loaded as it is.
    """

    def __init__(self, filename: str, delimiter: str = ",") -> None:
        """
        :param filename: The path of the local CSV file.
        :param delimiter: The character separating the fields.
        """
        self.filename = filename
        self.delimiter = delimiter

    def __str__(self) -> str:
        return f"CSVDataSource({self.filename}, delimiter={self.delimiter!r})"

    def read(self) -> pa.Table:
        """Read the whole CSV file as a :class:`pyarrow.Table`."""
        return pa.csv.read_csv(
            self.filename,
            parse_options=pa.csv.ParseOptions(delimiter=self.delimiter),
            convert_options=pa.csv.ConvertOptions(null_values=[""], strings_can_be_null=True),
        )

    def rows(self) -> list[Row]:
        """Open CSV file and emit its rows."""
        return self.read().to_pylist()

    def columns(self) -> list[str]:
        """Poll the column names of the CSV file."""
        with pa.csv.open_csv(
            self.filename,
            parse_options=pa.csv.ParseOptions(delimiter=self.delimiter),
        ) as reader:
            return list(reader.schema.names)


class ParquetDataSource(DataSourceNode):
    """Load data from a Parquet file.

    Given a local parquet file path, load the content
    and emit it as rows.
    """

    def __init__(self, filename: str) -> None:
        """
        :param filename: The path of the local parquet file.
        """
        self.filename = filename

    def __str__(self) -> str:
        return f"ParquetDataSource({self.filename})"

    def rows(self) -> list[Row]:
        """Open Parquet file and emit its rows."""
        return pa.parquet.read_table(self.filename).to_pylist()

    def columns(self) -> list[str]:
        """Poll the column names of the Parquet file."""
        with pa.parquet.ParquetFile(self.filename) as reader:
            return list(reader.schema_arrow.names)


class JSONDataSource(DataSourceNode):
    """Load data from a JSON document containing records.

    The document is expected to contain an array of objects,
    each object being a row. A document containing a single
    object is loaded as a dataset with only one row.

    The columns are the keys of the first record, like the records
    are expected to share the same keys, but rows with
    irregular keys are loaded as they are.
    """

    def __init__(self, filename: str) -> None:
        """
        :param filename: The path of the local JSON file.
        """
        self.filename = filename

    def __str__(self) -> str:
        return f"JSONDataSource({self.filename})"

    def rows(self) -> list[Row]:
        """Open JSON file and emit its records."""
        with open(self.filename, encoding="utf-8") as f:
            data = json.load(f)
        if not isinstance(data, list):
            data = [data]
        for record in data:
            if not isinstance(record, dict):
                raise ValueError(
                    f"Expected a JSON object for each record, got {type(record).__name__}"
                )
        return data

    def columns(self) -> list[str]:
        rows = self.rows()
        return list(rows[0].keys()) if rows else []


class ExcelDataSource(DataSourceNode):
    """Load data from a sheet of an Excel workbook.

    The first row of the sheet holds the column names and every
    following row is a record. Empty cells are left out of the
    records and rows with no values at all are skipped.
    Cells without a name in the header row are named ``__EMPTY``,
    repeated names get a numeric suffix like ``Price_1``.

    Formulas are loaded as the value they had when the workbook
    was last saved.
    """

    def __init__(self, filename: str, sheet: str | None = None) -> None:
        """
        :param filename: The path of the local ``.xlsx`` file.
        :param sheet: The name of the sheet to load, the first one by default.
        """
        self.filename = filename
        self.sheet = sheet

    def __str__(self) -> str:
        return f"ExcelDataSource({self.filename}, sheet={self.sheet!r})"

    def read(self) -> tuple[list[str], list[Row]]:
        """Read the column names and the records of the sheet."""
        try:
            workbook = openpyxl.load_workbook(self.filename, read_only=True, data_only=True)
        except (zipfile.BadZipFile, InvalidFileException) as e:
            raise ValueError(f"Not a valid Excel workbook: {self.filename}") from e
        try:
            if self.sheet is None:
                worksheet = workbook.worksheets[0]
            elif self.sheet in workbook.sheetnames:
                worksheet = workbook[self.sheet]
            else:
                raise ValueError(f"Worksheet {self.sheet!r} not found in {self.filename}")

            lines = worksheet.iter_rows(values_only=True)
            header = _header_names(next(lines, ()))
            records = []
            for values in lines:
                record = {
                    name: value for name, value in zip(header, values) if value is not None
                }
                if record:
                    records.append(record)
        finally:
            workbook.close()
        return header, records

    def rows(self) -> list[Row]:
        """Open the workbook and emit the records of the sheet."""
        return self.read()[1]

    def columns(self) -> list[str]:
        return self.read()[0]


def _header_names(cells: tuple) -> list[str]:
    cells = list(cells)
    while cells and cells[-1] is None:
        cells.pop()
    names: list[str] = []
    for cell in cells:
        name = "__EMPTY" if cell is None else stringify(cell)
        candidate, counter = name, 0
        while candidate in names:
            counter += 1
            candidate = f"{name}_{counter}"
        names.append(candidate)
    return names


def open_datasource(filename: str) -> DataSourceNode:
    """Pick the datasource node able to read a file based on its extension.

    :param filename: The path of the local file, must end with
                     ``.csv``, ``.tsv``, ``.json``, ``.parquet`` or ``.xlsx``.
    """
    extension = filename.rsplit(".", 1)[-1].lower() if "." in filename else ""
    if extension == "csv":
        return CSVDataSource(filename)
    elif extension == "tsv":
        return CSVDataSource(filename, delimiter="\t")
    elif extension == "json":
        return JSONDataSource(filename)
    elif extension == "parquet":
        return ParquetDataSource(filename)
    elif extension == "xlsx":
        return ExcelDataSource(filename)
    raise ValueError(f"Unsupported file type: {filename}")
