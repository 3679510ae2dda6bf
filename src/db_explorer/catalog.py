"""Schema catalog built once at startup.

The catalog maps every table the database reports to its ordered columns and
their metadata. It is constructed by :func:`discover` and never mutated
afterwards, so request handlers can share it across threads without locking.
Tables created after startup are not visible until the process restarts.
"""

from __future__ import annotations

import enum
import logging
import re
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Iterator, Mapping

from .db import SQLClient
from .errors import BadRequest, CatalogError, QueryError, UnknownTable

_INTEGER_RE = re.compile(r"^(tiny|small|medium|big)?int(eger|\d)?\b")
_FLOAT_MARKERS = ("float", "double", "real", "decimal", "numeric")
_TEXT_MARKERS = ("char", "text", "clob", "blob", "binary", "enum", "string")


class ValueKind(enum.Enum):
    INTEGER = "integer"
    FLOAT = "float"
    TEXT = "text"
    OTHER = "other"

    @property
    def numeric(self) -> bool:
        return self in (ValueKind.INTEGER, ValueKind.FLOAT)


def value_kind(type_name: str) -> ValueKind:
    """Classify a declared column type such as ``VARCHAR(255)`` or ``BIGINT``."""
    name = type_name.strip().lower()
    if _INTEGER_RE.match(name):
        return ValueKind.INTEGER
    if any(marker in name for marker in _FLOAT_MARKERS):
        return ValueKind.FLOAT
    if any(marker in name for marker in _TEXT_MARKERS):
        return ValueKind.TEXT
    return ValueKind.OTHER


@dataclass(frozen=True)
class ColumnInfo:
    name: str
    type_name: str
    kind: ValueKind
    nullable: bool
    primary_key: bool = False


@dataclass(frozen=True)
class Table:
    name: str
    columns: tuple[str, ...]
    column_types: tuple[ColumnInfo, ...]

    def __post_init__(self) -> None:
        if len(self.columns) != len(self.column_types):
            raise ValueError(f"Column metadata of {self.name} does not line up with its columns")

    def column(self, name: str) -> ColumnInfo | None:
        for info in self.column_types:
            if info.name == name:
                return info
        return None

    def has_column(self, name: str) -> bool:
        return name in self.columns

    def id_column(self) -> str:
        """Name of the column identifying a row.

        A single declared primary key wins. Otherwise the first column whose
        name contains ``id`` (any case) is used.
        """
        declared = [info.name for info in self.column_types if info.primary_key]
        if len(declared) == 1:
            return declared[0]
        for name in self.columns:
            if "id" in name.lower():
                return name
        raise BadRequest("unknown id column")


class Catalog:
    """Read-only mapping of table name to :class:`Table`."""

    def __init__(self, tables: Mapping[str, Table]) -> None:
        self._tables = MappingProxyType(dict(tables))

    def get(self, name: str) -> Table:
        try:
            return self._tables[name]
        except KeyError:
            raise UnknownTable() from None

    def names(self) -> list[str]:
        return sorted(self._tables)

    def __contains__(self, name: object) -> bool:
        return name in self._tables

    def __iter__(self) -> Iterator[Table]:
        return iter(self._tables.values())

    def __len__(self) -> int:
        return len(self._tables)


def _column_info(raw: Mapping[str, Any], primary_keys: list[str]) -> ColumnInfo:
    type_name = str(raw.get("type", ""))
    return ColumnInfo(
        name=raw["name"],
        type_name=type_name,
        kind=value_kind(type_name),
        nullable=bool(raw.get("nullable", True)),
        primary_key=raw["name"] in primary_keys,
    )


def discover(client: SQLClient) -> Catalog:
    """Introspect every table reachable through ``client``.

    Any failure aborts discovery; there is no partial catalog.
    """
    log = logging.getLogger(__name__)
    tables: dict[str, Table] = {}
    try:
        for table_name in client.list_tables():
            raw_columns, primary_keys = client.describe_table(table_name)
            infos = tuple(_column_info(col, primary_keys) for col in raw_columns)
            tables[table_name] = Table(
                name=table_name,
                columns=tuple(info.name for info in infos),
                column_types=infos,
            )
            log.debug(f"Discovered table {table_name} with {len(infos)} columns")
    except QueryError as exc:
        raise CatalogError(f"Schema discovery failed: {exc}") from exc

    log.info(f"Schema catalog built with {len(tables)} tables")
    return Catalog(tables)
