"""
app/domain/row_document.py

Row documents and scalar value handling.

A row document maps field names to scalars. Raw values arrive as strings from
CSV files or as native scalars from Excel sheets; the helpers here recognize
and coerce them according to a schema field's declared data type.
"""

from __future__ import annotations

import math
import re
from datetime import date, datetime
from typing import Any, Iterable, Mapping, Union

from db.models.dataset_schema import FieldDataType

CellValue = Union[str, int, float, bool, None]
RowDocument = dict[str, CellValue]

DATE_FORMATS: tuple[str, ...] = (
    "%Y-%m-%d",
    "%Y-%m-%d %H:%M:%S",
    "%m/%d/%Y",
    "%d-%m-%Y",
)

EMAIL_PATTERN = re.compile(r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$")
URL_PATTERN = re.compile(r"^https?://[^\s/$.?#][^\s]*$", re.IGNORECASE)

TRUE_VALUES = frozenset({"true", "1"})
FALSE_VALUES = frozenset({"false", "0"})


def is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    return str(value).strip() == ""


def stringify(value: Any) -> str:
    """Render a scalar the way it appears in a text file."""

    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def parse_number(value: Any) -> float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    else:
        try:
            number = float(str(value).strip())
        except ValueError:
            return None
    if math.isnan(number) or math.isinf(number):
        return None
    return number


def parse_boolean(value: Any) -> bool | None:
    if isinstance(value, bool):
        return value
    lowered = stringify(value).lower()
    if lowered in TRUE_VALUES:
        return True
    if lowered in FALSE_VALUES:
        return False
    return None


def parse_date(value: Any) -> date | None:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    raw = stringify(value)
    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(raw, fmt).date()
        except ValueError:
            continue
    return None


def is_valid_email(value: Any) -> bool:
    return EMAIL_PATTERN.match(stringify(value)) is not None


def is_valid_url(value: Any) -> bool:
    return URL_PATTERN.match(stringify(value)) is not None


def matches_data_type(value: Any, data_type: str) -> bool:
    """
    Return True when a non-blank value is acceptable for ``data_type``.
    """

    if data_type == FieldDataType.NUMBER:
        return parse_number(value) is not None
    if data_type == FieldDataType.BOOLEAN:
        return parse_boolean(value) is not None
    if data_type == FieldDataType.DATE:
        return parse_date(value) is not None
    if data_type == FieldDataType.EMAIL:
        return is_valid_email(value)
    if data_type == FieldDataType.URL:
        return is_valid_url(value)
    return True


def coerce_value(value: Any, data_type: str) -> CellValue:
    """
    Convert a raw value to its stored form for ``data_type``.

    Values that do not parse are kept as their text so nothing is lost.
    Dates are stored as ISO ``YYYY-MM-DD`` strings.
    """

    if is_blank(value):
        return None

    if data_type == FieldDataType.NUMBER:
        number = parse_number(value)
        if number is None:
            return stringify(value)
        return int(number) if number.is_integer() else number

    if data_type == FieldDataType.BOOLEAN:
        flag = parse_boolean(value)
        return stringify(value) if flag is None else flag

    if data_type == FieldDataType.DATE:
        parsed = parse_date(value)
        return stringify(value) if parsed is None else parsed.isoformat()

    return stringify(value)


def coerce_row(
    data: Mapping[str, Any],
    field_types: Mapping[str, str],
    defaults: Mapping[str, str | None] | None = None,
) -> RowDocument:
    """
    Coerce every value of a row document.

    Fields missing from ``field_types`` keep their value as-is; blank values of
    schema fields take the field's default when one is defined.
    """

    defaults = defaults or {}
    coerced: RowDocument = {}
    for name, value in data.items():
        data_type = field_types.get(name)
        if data_type is None:
            coerced[name] = normalize_cell(value)
            continue
        if is_blank(value) and defaults.get(name) is not None:
            value = defaults[name]
        coerced[name] = coerce_value(value, data_type)

    for name, default in defaults.items():
        if name not in coerced and default is not None and name in field_types:
            coerced[name] = coerce_value(default, field_types[name])
    return coerced


def normalize_cell(value: Any) -> CellValue:
    """
    Reduce any parsed cell to a JSON-safe scalar.
    """

    if is_blank(value):
        return None
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value.is_integer() else value
    if isinstance(value, datetime):
        if value.time() == datetime.min.time():
            return value.date().isoformat()
        return value.isoformat(sep=" ")
    if isinstance(value, date):
        return value.isoformat()
    return str(value).strip()


def uniqueness_key(value: Any, data_type: str | None = None) -> str | None:
    """
    Comparable key for duplicate detection; None for blank values.

    Numbers compare numerically so that ``"5"`` and ``5.0`` collide.
    """

    if is_blank(value):
        return None
    if data_type == FieldDataType.NUMBER:
        number = parse_number(value)
        if number is not None:
            return repr(number)
    return stringify(value)


def rows_equal(left: Iterable[Mapping[str, Any]], right: Iterable[Mapping[str, Any]]) -> bool:
    """Compare two ordered row sequences by their normalized values."""

    left_rows = [{k: normalize_cell(v) for k, v in row.items()} for row in left]
    right_rows = [{k: normalize_cell(v) for k, v in row.items()} for row in right]
    return left_rows == right_rows
