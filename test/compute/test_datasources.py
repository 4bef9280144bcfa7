import json
import os
import tempfile

import openpyxl
import pyarrow as pa
import pyarrow.csv as csv
import pyarrow.parquet as pq
import pytest

from tabshaper.compute.datasources import (
    CSVDataSource,
    ExcelDataSource,
    JSONDataSource,
    ParquetDataSource,
    PyArrowTableDataSource,
    RowsDataSource,
    open_datasource,
)

# Mock data for testing
MOCK_PYARROW_TABLE = pa.table({"col1": [1, 4, 7], "col2": ["a", "b", None], "col3": [3.5, 6.0, 9.5]})
EXPECTED_ROWS = [
    {"col1": 1, "col2": "a", "col3": 3.5},
    {"col1": 4, "col2": "b", "col3": 6.0},
    {"col1": 7, "col2": None, "col3": 9.5},
]

MOCK_CSV_FILE = tempfile.NamedTemporaryFile(delete=False, mode="w+", suffix=".csv")
MOCK_TSV_FILE = tempfile.NamedTemporaryFile(delete=False, mode="w+", suffix=".tsv")
MOCK_PARQUET_FILE = tempfile.NamedTemporaryFile(delete=False, mode="w+", suffix=".parquet")
MOCK_JSON_FILE = tempfile.NamedTemporaryFile(delete=False, mode="w+", suffix=".json")
MOCK_XLSX_FILE = tempfile.NamedTemporaryFile(delete=False, suffix=".xlsx")


def setup_module():
    csv.write_csv(MOCK_PYARROW_TABLE, MOCK_CSV_FILE.name)
    MOCK_CSV_FILE.close()
    csv.write_csv(
        MOCK_PYARROW_TABLE,
        MOCK_TSV_FILE.name,
        write_options=csv.WriteOptions(delimiter="\t"),
    )
    MOCK_TSV_FILE.close()
    pq.write_table(MOCK_PYARROW_TABLE, MOCK_PARQUET_FILE.name)
    MOCK_PARQUET_FILE.close()
    json.dump(EXPECTED_ROWS, MOCK_JSON_FILE)
    MOCK_JSON_FILE.close()
    MOCK_XLSX_FILE.close()
    workbook = openpyxl.Workbook()
    workbook.active.append(MOCK_PYARROW_TABLE.column_names)
    for row in EXPECTED_ROWS:
        workbook.active.append(list(row.values()))
    workbook.save(MOCK_XLSX_FILE.name)


def teardown_module():
    for f in (MOCK_CSV_FILE, MOCK_TSV_FILE, MOCK_PARQUET_FILE, MOCK_JSON_FILE, MOCK_XLSX_FILE):
        os.unlink(f.name)


@pytest.mark.parametrize(
    "data_source_class, init_args, expected_str",
    [
        (
            CSVDataSource,
            (MOCK_CSV_FILE.name,),
            f"CSVDataSource({MOCK_CSV_FILE.name}, delimiter=',')",
        ),
        (
            ParquetDataSource,
            (MOCK_PARQUET_FILE.name,),
            f"ParquetDataSource({MOCK_PARQUET_FILE.name})",
        ),
        (
            JSONDataSource,
            (MOCK_JSON_FILE.name,),
            f"JSONDataSource({MOCK_JSON_FILE.name})",
        ),
        (
            ExcelDataSource,
            (MOCK_XLSX_FILE.name, "Data"),
            f"ExcelDataSource({MOCK_XLSX_FILE.name}, sheet='Data')",
        ),
        (
            PyArrowTableDataSource,
            (MOCK_PYARROW_TABLE,),
            "PyArrowTableDataSource(columns=['col1', 'col2', 'col3'], rows=3)",
        ),
    ],
)
def test_data_source_str(data_source_class, init_args, expected_str):
    data_source = data_source_class(*init_args)
    assert str(data_source) == expected_str


@pytest.mark.parametrize(
    "data_source",
    [
        CSVDataSource(MOCK_CSV_FILE.name),
        CSVDataSource(MOCK_TSV_FILE.name, delimiter="\t"),
        ParquetDataSource(MOCK_PARQUET_FILE.name),
        JSONDataSource(MOCK_JSON_FILE.name),
        PyArrowTableDataSource(MOCK_PYARROW_TABLE),
        RowsDataSource(EXPECTED_ROWS),
    ],
)
def test_data_source_rows(data_source):
    assert data_source.rows() == EXPECTED_ROWS
    assert data_source.columns() == ["col1", "col2", "col3"]


@pytest.mark.parametrize(
    "filename, expected_class",
    [
        (MOCK_CSV_FILE.name, CSVDataSource),
        (MOCK_TSV_FILE.name, CSVDataSource),
        (MOCK_PARQUET_FILE.name, ParquetDataSource),
        (MOCK_JSON_FILE.name, JSONDataSource),
    ],
)
def test_open_datasource(filename, expected_class):
    data_source = open_datasource(filename)
    assert isinstance(data_source, expected_class)
    assert data_source.rows() == EXPECTED_ROWS


def test_open_datasource_tsv_delimiter():
    assert open_datasource(MOCK_TSV_FILE.name).delimiter == "\t"


@pytest.mark.parametrize("filename", ["data.xls", "data", "archive.csv.gz"])
def test_open_datasource_unsupported(filename):
    with pytest.raises(ValueError):
        open_datasource(filename)


def test_json_single_object(tmp_path):
    path = tmp_path / "record.json"
    path.write_text(json.dumps({"name": "Alice", "age": 30}))
    data_source = JSONDataSource(str(path))
    assert data_source.rows() == [{"name": "Alice", "age": 30}]
    assert data_source.columns() == ["name", "age"]


def test_json_irregular_records(tmp_path):
    path = tmp_path / "records.json"
    path.write_text(json.dumps([{"a": 1}, {"a": 2, "b": 3}]))
    data_source = JSONDataSource(str(path))
    assert data_source.rows() == [{"a": 1}, {"a": 2, "b": 3}]
    assert data_source.columns() == ["a"]


def test_json_invalid_records(tmp_path):
    path = tmp_path / "values.json"
    path.write_text(json.dumps([1, 2, 3]))
    with pytest.raises(ValueError):
        JSONDataSource(str(path)).rows()


def test_json_empty_array(tmp_path):
    path = tmp_path / "empty.json"
    path.write_text("[]")
    assert JSONDataSource(str(path)).columns() == []


def test_csv_blank_lines_skipped(tmp_path):
    path = tmp_path / "blank.csv"
    path.write_text("a,b\n1,x\n\n2,y\n")
    assert CSVDataSource(str(path)).rows() == [{"a": 1, "b": "x"}, {"a": 2, "b": "y"}]


def test_rows_datasource_copies_list():
    rows = [{"a": 1}]
    data_source = RowsDataSource(rows)
    emitted = data_source.rows()
    emitted.append({"a": 2})
    assert rows == [{"a": 1}]


def test_csv_only_empty_cells_are_missing(tmp_path):
    path = tmp_path / "codes.csv"
    path.write_text("country,code\nNamibia,NA\nNone,null\nNowhere,\nUnknown,N/A\n")
    assert CSVDataSource(str(path)).rows() == [
        {"country": "Namibia", "code": "NA"},
        {"country": "None", "code": "null"},
        {"country": "Nowhere", "code": None},
        {"country": "Unknown", "code": "N/A"},
    ]


def test_csv_numeric_column_with_empty_cells(tmp_path):
    path = tmp_path / "numbers.csv"
    path.write_text("n,m\n1,a\n,b\n3,c\n")
    assert [row["n"] for row in CSVDataSource(str(path)).rows()] == [1, None, 3]


def test_excel_rows():
    data_source = open_datasource(MOCK_XLSX_FILE.name)
    assert isinstance(data_source, ExcelDataSource)
    # Empty cells are left out of the records.
    assert data_source.rows() == [
        {"col1": 1, "col2": "a", "col3": 3.5},
        {"col1": 4, "col2": "b", "col3": 6.0},
        {"col1": 7, "col3": 9.5},
    ]
    assert data_source.columns() == ["col1", "col2", "col3"]


def test_excel_header_names_and_blank_rows(tmp_path):
    path = str(tmp_path / "sheet.xlsx")
    workbook = openpyxl.Workbook()
    sheet = workbook.active
    sheet.append(["name", None, "name", 2024, None])
    sheet.append(["a", 1, "b", True])
    sheet.append([None, None, None, None])
    sheet.append([None, 2])
    workbook.save(path)

    data_source = ExcelDataSource(path)
    assert data_source.columns() == ["name", "__EMPTY", "name_1", "2024"]
    assert data_source.rows() == [
        {"name": "a", "__EMPTY": 1, "name_1": "b", "2024": True},
        {"__EMPTY": 2},
    ]


def test_excel_sheet_by_name(tmp_path):
    path = str(tmp_path / "book.xlsx")
    workbook = openpyxl.Workbook()
    workbook.active.append(["first"])
    workbook.active.append([1])
    second = workbook.create_sheet("Second")
    second.append(["second"])
    second.append(["x"])
    workbook.save(path)

    assert ExcelDataSource(path).rows() == [{"first": 1}]
    assert ExcelDataSource(path, sheet="Second").rows() == [{"second": "x"}]
    with pytest.raises(ValueError, match="Worksheet 'Third' not found"):
        ExcelDataSource(path, sheet="Third").rows()


def test_excel_empty_sheet(tmp_path):
    path = str(tmp_path / "empty.xlsx")
    openpyxl.Workbook().save(path)
    assert ExcelDataSource(path).rows() == []
    assert ExcelDataSource(path).columns() == []


def test_excel_invalid_file(tmp_path):
    path = tmp_path / "broken.xlsx"
    path.write_text("name,value\n")
    with pytest.raises(ValueError, match="Not a valid Excel workbook"):
        ExcelDataSource(str(path)).rows()
