"""Conversion between database cells and JSON values.

Values travelling through the API are the scalars ``None``, ``int``,
``float`` and ``str``. Outbound, :func:`coerce_row` turns scanned cells into
those scalars according to each column's :class:`~db_explorer.catalog.ValueKind`.
Inbound, :func:`check_value` decides whether a caller-supplied value may be
written to a column.
"""

from __future__ import annotations

import datetime
import decimal
from typing import Any, Sequence, Union

from .catalog import ColumnInfo, Table, ValueKind
from .errors import CastingError
from .guardrails import MAX_SQL_INT

Scalar = Union[None, int, float, str]


def _as_text(raw: Any) -> str:
    if isinstance(raw, (bytes, bytearray, memoryview)):
        try:
            return bytes(raw).decode("utf-8")
        except UnicodeDecodeError as exc:
            raise CastingError(f"casting type error: {exc}") from exc
    if isinstance(raw, (datetime.date, datetime.time)):
        return raw.isoformat()
    return str(raw)


def coerce_value(raw: Any, column: ColumnInfo) -> Scalar:
    if raw is None:
        return None

    if column.kind is ValueKind.INTEGER:
        if isinstance(raw, bool):
            return int(raw)
        if isinstance(raw, int):
            return raw
        try:
            if isinstance(raw, decimal.Decimal):
                return int(raw)
            return int(_as_text(raw).strip())
        except (ValueError, ArithmeticError) as exc:
            raise CastingError(f"casting type error: column {column.name}") from exc

    if column.kind is ValueKind.FLOAT:
        try:
            if isinstance(raw, (int, float, decimal.Decimal)):
                return float(raw)
            return float(_as_text(raw).strip())
        except (ValueError, ArithmeticError) as exc:
            raise CastingError(f"casting type error: column {column.name}") from exc

    return _as_text(raw)


def coerce_row(cells: Sequence[Any], table: Table) -> dict[str, Scalar]:
    """Map a scanned row onto ``table``'s columns, coercing every cell.

    Cells are matched to columns by position.
    """
    if len(cells) != len(table.column_types):
        raise CastingError(
            f"casting type error: got {len(cells)} cells for {len(table.columns)} columns"
        )
    return {
        column.name: coerce_value(cell, column)
        for cell, column in zip(cells, table.column_types)
    }


def check_value(name: str, value: Any, table: Table) -> bool:
    column = table.column(name)
    if column is None:
        return True

    if value is None:
        return column.nullable
    if isinstance(value, str):
        return not column.kind.numeric
    if isinstance(value, bool):
        return column.kind.numeric
    if isinstance(value, int):
        return column.kind.numeric and abs(value) <= MAX_SQL_INT
    if isinstance(value, float):
        if column.kind is ValueKind.INTEGER:
            return value.is_integer() and abs(value) <= MAX_SQL_INT
        return column.kind is ValueKind.FLOAT
    return False


def zero_value(column: ColumnInfo) -> Scalar:
    """Placeholder written to a non-nullable column the caller left out."""
    if column.kind is ValueKind.INTEGER:
        return 0
    if column.kind is ValueKind.FLOAT:
        return 0.0
    return ""


def bind_value(value: Any, column: ColumnInfo) -> Scalar:
    """Shape an accepted value for binding to ``column``."""
    if column.kind is ValueKind.INTEGER and isinstance(value, (bool, float)):
        return int(value)
    if column.kind is ValueKind.FLOAT and isinstance(value, (bool, int)):
        return float(value)
    return value
