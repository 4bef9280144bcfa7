"""Coercion of the scalar values stored in rows.

Rows are not typed, any column can hold strings, numbers,
booleans, dates or be missing entirely. The stages of the
compute engine rely on a few coercions to compare and reduce
those values consistently:

* :func:`stringify`, the string form of a value used for
  grouping keys and text comparisons.
* :func:`to_number`, the numeric form of a value, ``NaN`` when the
  value can't be interpreted as a number.
* :func:`parse_date`, the date a value represents, if any.

>>> stringify(3.0), stringify(True), stringify(None)
('3', 'true', '')
>>> to_number(" 12.5 "), to_number("abc")
(12.5, nan)
"""

import datetime
import locale
import math
import re
from typing import Any

_NUMBER_RE = re.compile(r"^[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?$")

_DATE_FORMATS = (
    "%m/%d/%Y",
    "%Y/%m/%d",
    "%d %b %Y",
    "%d %B %Y",
    "%b %d %Y",
    "%b %d, %Y",
    "%B %d %Y",
    "%B %d, %Y",
)


def is_empty(value: Any) -> bool:
    """Tell if a value counts as missing: ``None`` or an empty string."""
    return value is None or value == ""


def is_number(value: Any) -> bool:
    """Tell if a value is stored as a number (booleans are not numbers)."""
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def stringify(value: Any) -> str:
    """Return the string form of a row value.

    Missing values are the empty string, booleans are
    lowercase and floats that hold an integer are printed
    without the fractional part, so that ``3.0`` and ``3``
    have the same string form.
    """
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        if math.isnan(value):
            return "NaN"
        if math.isinf(value):
            return "Infinity" if value > 0 else "-Infinity"
        if value.is_integer() and abs(value) < 1e16:
            return str(int(value))
        return repr(value)
    if isinstance(value, (datetime.date, datetime.time)):
        return value.isoformat()
    return str(value)


def to_number(value: Any) -> float:
    """Return the numeric form of a row value.

    Numbers are returned as floats, strings are parsed
    when they hold a plain decimal number.

    Anything else, booleans and missing values included,
    is not numeric and results in ``NaN``.
    """
    if is_number(value):
        return float(value)
    if isinstance(value, str):
        text = value.strip()
        if _NUMBER_RE.match(text):
            return float(text)
    return math.nan


def is_finite_number(value: Any) -> bool:
    """Tell if a value parses as a finite number."""
    return math.isfinite(to_number(value))


def parse_date(value: Any) -> datetime.date | None:
    """Return the date represented by a value, or ``None``.

    Accepts date objects, ISO 8601 strings and a few of the
    most common textual layouts like ``12/31/2024`` or ``Mar 3, 2024``.
    """
    if isinstance(value, (datetime.date, datetime.datetime)):
        return value
    if not isinstance(value, str):
        return None

    text = value.strip()
    if not text:
        return None
    try:
        return datetime.datetime.fromisoformat(text)
    except ValueError:
        pass
    for fmt in _DATE_FORMATS:
        try:
            return datetime.datetime.strptime(text, fmt)
        except ValueError:
            continue
    return None


def compare_text(left: str, right: str) -> int:
    """Compare two strings according to the current locale.

    Strings are compared ignoring case first and only
    strings that differ by case alone are ordered by case.

    Returns a negative number, zero or a positive number
    like the classic ``cmp`` functions.
    """
    result = locale.strcoll(left.casefold(), right.casefold())
    if result == 0:
        result = locale.strcoll(left, right)
    return result
