from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from typing import Any, Mapping, NoReturn

from sqlalchemy import create_engine, inspect, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from ..config import DatabaseConfig
from ..errors import QueryError
from ..guardrails import detect_statement_type
from ..logging_utils import current_request_id, log_extra


@dataclass(frozen=True)
class ExecResult:
    rowcount: int
    lastrowid: int | None


class SQLClient:
    """Runs SQL against a pooled SQLAlchemy engine.

    Every call checks a connection out of the pool inside a ``with`` block, so
    it goes back to the pool whether the statement succeeds or fails. Write
    statements run inside ``engine.begin()`` and are committed on success.
    """

    def __init__(self, engine: Engine) -> None:
        self._engine = engine
        self._log = logging.getLogger(__name__)

    @classmethod
    def from_config(cls, config: DatabaseConfig) -> "SQLClient":
        options: dict[str, Any] = {"pool_pre_ping": config.pool_pre_ping}
        if config.pool_size is not None:
            options["pool_size"] = config.pool_size
        if config.max_overflow is not None:
            options["max_overflow"] = config.max_overflow
        return cls(create_engine(config.url, **options))

    @property
    def dialect_name(self) -> str:
        return self._engine.dialect.name

    def quote(self, identifier: str) -> str:
        return self._engine.dialect.identifier_preparer.quote(identifier)

    def list_tables(self) -> list[str]:
        try:
            with self._engine.connect() as connection:
                return list(inspect(connection).get_table_names())
        except SQLAlchemyError as exc:
            self._log.warning(
                "Table listing failed", extra=log_extra(error_message=str(exc))
            )
            raise QueryError(f"Table listing failed: {exc}") from exc

    def describe_table(self, table: str) -> tuple[list[dict[str, Any]], list[str]]:
        """Return the reflected columns and primary-key column names of ``table``."""
        try:
            with self._engine.connect() as connection:
                inspector = inspect(connection)
                columns = inspector.get_columns(table)
                pk_constraint = inspector.get_pk_constraint(table) or {}
        except SQLAlchemyError as exc:
            self._log.warning(
                "Table introspection failed",
                extra=log_extra(table=table, error_message=str(exc)),
            )
            raise QueryError(f"Introspection of {table} failed: {exc}") from exc
        return list(columns), list(pk_constraint.get("constrained_columns") or [])

    def fetch_all(self, sql: str, params: Mapping[str, Any] | None = None) -> list[tuple[Any, ...]]:
        statement_type = detect_statement_type(sql)
        query_id = str(uuid.uuid4())
        try:
            with self._engine.connect() as connection:
                result = connection.execute(text(sql), dict(params or {}))
                rows = [tuple(row) for row in result.fetchall()]
        except SQLAlchemyError as exc:
            self._fail(exc, query_id, statement_type)

        self._log.info(
            "Query executed",
            extra=log_extra(
                request_id=current_request_id(),
                query_id=query_id,
                statement_type=statement_type,
                rowcount=len(rows),
            ),
        )
        return rows

    def fetch_scalar(self, sql: str, params: Mapping[str, Any] | None = None) -> Any:
        rows = self.fetch_all(sql, params)
        if not rows:
            return None
        return rows[0][0]

    def execute(self, sql: str, params: Mapping[str, Any] | None = None) -> ExecResult:
        statement_type = detect_statement_type(sql)
        query_id = str(uuid.uuid4())
        try:
            with self._engine.begin() as connection:
                result = connection.execute(text(sql), dict(params or {}))
                outcome = ExecResult(rowcount=result.rowcount, lastrowid=result.lastrowid)
        except SQLAlchemyError as exc:
            self._fail(exc, query_id, statement_type)

        self._log.info(
            "Statement executed",
            extra=log_extra(
                request_id=current_request_id(),
                query_id=query_id,
                statement_type=statement_type,
                rowcount=outcome.rowcount,
            ),
        )
        return outcome

    def dispose(self) -> None:
        self._engine.dispose()

    def _fail(self, exc: SQLAlchemyError, query_id: str, statement_type: str) -> NoReturn:
        self._log.warning(
            "Query failed",
            extra=log_extra(
                request_id=current_request_id(),
                query_id=query_id,
                statement_type=statement_type,
                error_message=str(exc),
            ),
        )
        raise QueryError(f"Query execution failed: {exc}") from exc
