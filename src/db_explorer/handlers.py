"""CRUD handlers for every discovered table.

Each handler takes an :class:`~db_explorer.router.ApiRequest` and returns the
JSON document to send back, or raises an :class:`~db_explorer.errors.ApiError`
that the HTTP layer turns into an ``{"error": ...}`` response. Identifiers
placed in SQL text always come from the catalog and are quoted by the
dialect; every value is a bound parameter.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from .catalog import Catalog, Table
from .coercion import bind_value, check_value, coerce_row, zero_value
from .config import ApiConfig
from .db import SQLClient
from .errors import BadRequest, InvalidFieldType, RecordNotFound
from .guardrails import clamp_limit, page_param, path_segments, record_id
from .logging_utils import current_request_id, log_extra
from .router import ApiRequest, Router, Rule

_IDENT = r"[A-Za-z_][A-Za-z0-9_]*"


class CrudHandlers:
    def __init__(self, catalog: Catalog, client: SQLClient, api: ApiConfig | None = None) -> None:
        self._catalog = catalog
        self._client = client
        self._api = api or ApiConfig()
        self._log = logging.getLogger(__name__)

    def list_tables(self, request: ApiRequest) -> dict[str, Any]:
        return {"response": {"tables": self._catalog.names()}}

    def list_rows(self, request: ApiRequest) -> dict[str, Any]:
        table = self._table(request)
        limit = clamp_limit(
            page_param(request.query.get("limit"), self._api.default_limit),
            self._api.max_limit,
        )
        offset = page_param(request.query.get("offset"), self._api.default_offset)

        sql = f"SELECT {self._column_list(table)} FROM {self._quote(table.name)} LIMIT :limit OFFSET :offset"
        rows = self._client.fetch_all(sql, {"limit": limit, "offset": offset})
        return {"response": {"records": [coerce_row(row, table) for row in rows]}}

    def get_row(self, request: ApiRequest) -> dict[str, Any]:
        table = self._table(request)
        row_id = record_id(request.path)
        id_column = table.id_column()
        self._ensure_exists(table, id_column, row_id)

        sql = (
            f"SELECT {self._column_list(table)} FROM {self._quote(table.name)} "
            f"WHERE {self._quote(id_column)} = :id"
        )
        rows = self._client.fetch_all(sql, {"id": row_id})
        if not rows:
            raise RecordNotFound()
        return {"response": {"record": coerce_row(rows[0], table)}}

    def insert_row(self, request: ApiRequest) -> dict[str, Any]:
        table = self._table(request)
        payload = self._json_body(request)
        id_column = table.id_column()

        values: dict[str, Any] = {name: None for name in table.columns}
        values.update(payload)
        for key in list(values):
            if not table.has_column(key):
                del values[key]

        names: list[str] = []
        params: dict[str, Any] = {}
        for column in table.column_types:
            if column.name == id_column:
                continue
            value = values[column.name]
            if column.name in payload:
                if check_value(column.name, value, table):
                    value = bind_value(value, column)
                elif self._api.strict_inserts:
                    raise InvalidFieldType(column.name)
                else:
                    value = ""
            elif value is None and not column.nullable:
                value = zero_value(column)
            params[f"p{len(names)}"] = value
            names.append(column.name)

        if names:
            sql = "INSERT INTO {} ({}) VALUES ({})".format(
                self._quote(table.name),
                ", ".join(self._quote(name) for name in names),
                ", ".join(f":{key}" for key in params),
            )
        elif self._client.dialect_name == "mysql":
            sql = f"INSERT INTO {self._quote(table.name)} () VALUES ()"
        else:
            sql = f"INSERT INTO {self._quote(table.name)} DEFAULT VALUES"

        result = self._client.execute(sql, params)
        self._log.info(
            "Record inserted",
            extra=log_extra(
                request_id=current_request_id(), table=table.name, record_id=result.lastrowid
            ),
        )
        return {"response": {id_column: result.lastrowid}}

    def update_row(self, request: ApiRequest) -> dict[str, Any]:
        table = self._table(request)
        row_id = record_id(request.path)
        id_column = table.id_column()
        self._ensure_exists(table, id_column, row_id)

        payload = self._json_body(request)
        if not payload:
            raise BadRequest("no fields to update")

        assignments: list[str] = []
        params: dict[str, Any] = {"id": row_id}
        for name, value in payload.items():
            column = table.column(name)
            if column is None or name == id_column or not check_value(name, value, table):
                raise InvalidFieldType(name)
            key = f"p{len(assignments)}"
            assignments.append(f"{self._quote(name)} = :{key}")
            params[key] = bind_value(value, column)

        sql = "UPDATE {} SET {} WHERE {} = :id".format(
            self._quote(table.name), ", ".join(assignments), self._quote(id_column)
        )
        result = self._client.execute(sql, params)
        return {"response": {"updated": result.rowcount}}

    def delete_row(self, request: ApiRequest) -> dict[str, Any]:
        table = self._table(request)
        id_column = table.id_column()
        try:
            row_id = record_id(request.path)
        except RecordNotFound:
            return {"response": {"deleted": 0}}

        sql = f"DELETE FROM {self._quote(table.name)} WHERE {self._quote(id_column)} = :id"
        result = self._client.execute(sql, {"id": row_id})
        return {"response": {"deleted": result.rowcount}}

    def _table(self, request: ApiRequest) -> Table:
        segments = path_segments(request.path)
        if not segments:
            raise BadRequest("bad request")
        return self._catalog.get(segments[0])

    def _ensure_exists(self, table: Table, id_column: str, row_id: int) -> None:
        sql = (
            f"SELECT EXISTS(SELECT 1 FROM {self._quote(table.name)} "
            f"WHERE {self._quote(id_column)} = :id)"
        )
        if not self._client.fetch_scalar(sql, {"id": row_id}):
            raise RecordNotFound()

    def _json_body(self, request: ApiRequest) -> dict[str, Any]:
        if not request.body.strip():
            return {}
        try:
            payload = json.loads(request.body)
        except ValueError as exc:
            raise BadRequest(f"invalid json body: {exc}") from exc
        if not isinstance(payload, dict):
            raise BadRequest("json body must be an object")
        return payload

    def _column_list(self, table: Table) -> str:
        return ", ".join(self._quote(name) for name in table.columns)

    def _quote(self, identifier: str) -> str:
        return self._client.quote(identifier)


def build_router(handlers: CrudHandlers) -> Router:
    return Router(
        [
            Rule.build(r"^/$", "GET", handlers.list_tables),
            Rule.build(r"^/[^/?]+$", "GET", handlers.list_rows),
            Rule.build(rf"^/{_IDENT}/\d+$", "GET", handlers.get_row),
            Rule.build(rf"^/{_IDENT}[A-Za-z0-9_/]*/$", "PUT", handlers.insert_row),
            Rule.build(rf"^/{_IDENT}[A-Za-z0-9_/]*/\d+$", "POST", handlers.update_row),
            Rule.build(rf"^/{_IDENT}[A-Za-z0-9_/]*/\d+$", "DELETE", handlers.delete_row),
        ]
    )
