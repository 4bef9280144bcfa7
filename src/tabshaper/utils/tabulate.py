"""Format rows into a text table for print.

the `tabulate` function takes a list of rows and the columns to show and
formats them into a text table.
It will truncate long strings, format floats to 2 decimal places, and limit the number of rows to display.
The function is used to display the transformed rows of a pipeline in the ``tabshaper-fshape`` command.

Example:

    >>> rows = [
    ...     {"Product": "Videogame", "Quantity": 8, "Price": 66.5},
    ...     {"Product": "Laptop", "Quantity": 8, "Price": 38.72},
    ...     {"Product": "Laptop", "Quantity": 7},
    ... ]
    >>> print(tabulate(rows, ["Product", "Quantity", "Price"]))
    Product   | Quantity | Price
    --------- | -------- | -----
    Videogame | 8        | 66.50
    Laptop    | 8        | 38.72
    Laptop    | 7        |
"""

from typing import Any

from ..compute.values import stringify
from ..profile import ColumnProfile


def tabulate(rows: list[dict[str, Any]], columns: list[str], max_rows: int = 20) -> str:
    """Format rows into a text table.

    Will produce a string like::

        Product   | Quantity | Price | Total
        --------- | -------- | ----- | ------
        Videogame | 8        | 66.50 | 532.00
        Laptop    | 8        | 38.72 | 309.76
        Laptop    | 7        | 77.46 | 542.22
    """
    textrows = [[format_value(row.get(c)) for c in columns] for row in rows[:max_rows]]

    colsizes = compute_max_colsize(columns, textrows)
    header = [maketablerow(columns, colsizes=colsizes)]
    separator = [maketablerow(["-"] * len(columns), colsizes=colsizes, fillvalue="-")]
    lines = [maketablerow(row, colsizes=colsizes) for row in textrows]

    table = "\n".join(header + separator + lines)
    if len(rows) > max_rows:
        table += f"\n... and {len(rows) - max_rows} more rows"
    return table


def tabulate_profiles(profiles: list[ColumnProfile]) -> str:
    """Format the profiles of the columns into a text table.

    >>> print(tabulate_profiles([ColumnProfile("age", "number", 1, 3, 18.0, 40.0)]))
    column | type   | missing | unique | min   | max
    ------ | ------ | ------- | ------ | ----- | -----
    age    | number | 1       | 3      | 18.00 | 40.00
    """
    rows = [
        {
            "column": p.name,
            "type": p.type,
            "missing": p.missing_count,
            "unique": p.unique_count,
            "min": p.min,
            "max": p.max,
        }
        for p in profiles
    ]
    columns = ["column", "type", "missing", "unique", "min", "max"]
    return tabulate(rows, columns, max_rows=len(rows))


def compute_max_colsize(cols: list[str], rows: list[list[str]]) -> list[int]:
    """Compute the maximum size of each column in a table."""
    return [
        max([len(row[colidx]) for row in rows] + [len(cols[colidx])])
        for colidx, _ in enumerate(cols)
    ]


def maketablerow(cols: list[str], colsizes: list[int], fillvalue: str = " ") -> str:
    """Make a table row with the given column sizes."""
    return " | ".join(
        [col.ljust(colsizes[idx], fillvalue) for idx, col in enumerate(cols)]
    ).rstrip(" ")


def format_value(v: Any) -> str:
    """Format a value to be printed in the table.

    This function will format floats to 2 decimal places,
    print missing values as empty cells and truncate long strings.
    """
    if isinstance(v, float):
        return f"{v:.2f}"

    v = stringify(v)
    if len(v) > 30:
        v = v[:27] + "..."
    return v
