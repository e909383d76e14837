"""Shared psycopg plumbing for the Postgres stores."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, Iterable, Iterator, List, Optional
from uuid import UUID

import psycopg
import psycopg.errors
from psycopg import sql
from psycopg.rows import dict_row
from psycopg.types.json import Jsonb

from cardinalnews.errors import DatabaseError, DuplicateArticleError, InvalidRequestError

logger = logging.getLogger(__name__)


def to_jsonable(value: Any) -> Any:
    """Convert psycopg values (UUID, datetime, Decimal) into JSON-friendly ones."""
    if isinstance(value, UUID):
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, dict):
        return {k: to_jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_jsonable(v) for v in value]
    return value


def row_to_dict(row: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    if row is None:
        return None
    return {k: to_jsonable(v) for k, v in row.items()}


@contextmanager
def translate_errors() -> Iterator[None]:
    """Turn driver errors the caller caused into 4xx service errors.

    Malformed values (a non-UUID id, a bad date) become InvalidRequestError,
    unique-key clashes become DuplicateArticleError and a lost or refused
    connection becomes DatabaseError.
    """
    try:
        yield
    except psycopg.errors.UniqueViolation as e:
        logger.info(f"Unique constraint hit: {e}")
        raise DuplicateArticleError(f"Duplicate value: {str(e).splitlines()[0]}") from e
    except psycopg.errors.DataError as e:
        logger.info(f"Rejected value: {e}")
        raise InvalidRequestError(f"Invalid value: {str(e).splitlines()[0]}") from e
    except psycopg.OperationalError as e:
        raise DatabaseError(f"Database unavailable: {e}") from e


def insert_query(table: str, columns: Iterable[str]) -> sql.Composed:
    cols = list(columns)
    return sql.SQL("INSERT INTO {} ({}) VALUES ({}) RETURNING *").format(
        sql.Identifier(table),
        sql.SQL(", ").join(sql.Identifier(c) for c in cols),
        sql.SQL(", ").join(sql.Placeholder(c) for c in cols),
    )


@dataclass
class PostgresStore:
    pg_dsn: str

    # Columns that hold JSONB; values are wrapped before binding.
    json_columns: tuple = ()

    def _connect(self):
        try:
            return psycopg.connect(self.pg_dsn, autocommit=True, row_factory=dict_row)
        except psycopg.OperationalError as e:
            raise DatabaseError(f"Database unavailable: {e}") from e

    @contextmanager
    def _cursor(self) -> Iterator[Any]:
        with translate_errors():
            with self._connect() as conn:
                with conn.cursor() as cur:
                    yield cur

    @contextmanager
    def _transaction(self) -> Iterator[Any]:
        """Cursor whose statements commit together or not at all."""
        with translate_errors():
            with self._connect() as conn:
                with conn.transaction():
                    with conn.cursor() as cur:
                        yield cur

    def _adapt(self, fields: Dict[str, Any]) -> Dict[str, Any]:
        out = {}
        for k, v in fields.items():
            if k in self.json_columns and v is not None and not isinstance(v, Jsonb):
                v = Jsonb(v)
            out[k] = v
        return out

    def _insert(self, table: str, fields: Dict[str, Any]) -> Dict[str, Any]:
        fields = self._adapt(fields)
        with self._cursor() as cur:
            cur.execute(insert_query(table, fields.keys()), fields)
            return row_to_dict(cur.fetchone())

    def _update(self, table: str, row_id: str, fields: Dict[str, Any], *, touch: bool = True) -> Optional[Dict[str, Any]]:
        fields = self._adapt(fields)
        assignments = [sql.SQL("{} = {}").format(sql.Identifier(c), sql.Placeholder(c)) for c in fields]
        if touch:
            assignments.append(sql.SQL("updated_at = now()"))
        query = sql.SQL("UPDATE {} SET {} WHERE id = {} RETURNING *").format(
            sql.Identifier(table),
            sql.SQL(", ").join(assignments),
            sql.Placeholder("_row_id"),
        )
        params = dict(fields)
        params["_row_id"] = row_id
        with self._cursor() as cur:
            cur.execute(query, params)
            return row_to_dict(cur.fetchone())

    def _fetch_all(self, query: str, params: Iterable[Any] = ()) -> List[Dict[str, Any]]:
        with self._cursor() as cur:
            cur.execute(query, list(params))
            return [row_to_dict(r) for r in cur.fetchall()]

    def _fetch_one(self, query: str, params: Iterable[Any] = ()) -> Optional[Dict[str, Any]]:
        with self._cursor() as cur:
            cur.execute(query, list(params))
            return row_to_dict(cur.fetchone())

    def _execute(self, query: str, params: Iterable[Any] = ()) -> int:
        with self._cursor() as cur:
            cur.execute(query, list(params))
            return cur.rowcount

    def select_rows(self, table: str, filters: Dict[str, Any], *, limit: int) -> List[Dict[str, Any]]:
        """SELECT * with equality filters; table and column names are bound as identifiers."""
        clauses = [sql.SQL("{} = {}").format(sql.Identifier(c), sql.Placeholder(c)) for c in filters]
        query = sql.SQL("SELECT * FROM {}{} ORDER BY created_at DESC LIMIT {}").format(
            sql.Identifier(table),
            sql.SQL(" WHERE ") + sql.SQL(" AND ").join(clauses) if clauses else sql.SQL(""),
            sql.Literal(int(limit)),
        )
        with self._cursor() as cur:
            cur.execute(query, dict(filters))
            return [row_to_dict(r) for r in cur.fetchall()]
