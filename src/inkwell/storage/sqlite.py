"""SQLite driver: one table of one registry database as a record store."""

from __future__ import annotations

import json
import logging
import re
import sqlite3
from collections.abc import Iterator
from typing import Any

from inkwell.db.registry import DatabaseRegistry
from inkwell.shared.errors import StorageUnavailableError
from inkwell.storage.base import RawRecord, StorageDriver

logger = logging.getLogger(__name__)

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def _quote(identifier: str) -> str:
    if not _IDENTIFIER.match(identifier):
        raise ValueError(f"Invalid SQL identifier: {identifier!r}")
    return f'"{identifier}"'


class SqliteDriver(StorageDriver):
    """Stores each record as a row keyed by ``key_column``.

    Columns are introspected from the live table.  Lists and dicts are
    written as JSON text and booleans as integers; rows come back exactly as
    SQLite returns them, so models decode JSON columns themselves.
    """

    def __init__(
        self,
        registry: DatabaseRegistry,
        database: str,
        table: str,
        *,
        key_column: str = "id",
    ) -> None:
        self._registry = registry
        self._database = database
        self._table = _quote(table)
        self._table_name = table
        self._key_column = key_column
        self._key = _quote(key_column)
        self._columns: list[str] | None = None

    @property
    def database(self) -> str:
        return self._database

    @property
    def connection(self) -> sqlite3.Connection:
        return self._registry.connection_for(self._database)

    def columns(self) -> list[str]:
        if self._columns is None:
            rows = self._execute(f"PRAGMA table_info({self._table})").fetchall()
            if not rows:
                raise StorageUnavailableError(
                    f"Table '{self._table_name}' does not exist", database=self._database
                )
            self._columns = [row["name"] for row in rows]
        return self._columns

    # -- StorageDriver ----------------------------------------------------------

    def load(self, key: str) -> RawRecord | None:
        row = self._execute(
            f"SELECT * FROM {self._table} WHERE {self._key} = ?", (key,)
        ).fetchone()
        return dict(row) if row is not None else None

    def save(self, key: str, record: RawRecord) -> None:
        data = {**record, self._key_column: key}
        known = set(self.columns())
        unknown = sorted(set(data) - known)
        if unknown:
            raise ValueError(
                f"Unknown column(s) for table '{self._table_name}': {', '.join(unknown)}"
            )

        names = list(data)
        placeholders = ", ".join("?" for _ in names)
        updates = ", ".join(
            f"{_quote(n)} = excluded.{_quote(n)}" for n in names if n != self._key_column
        )
        sql = (
            f"INSERT INTO {self._table} ({', '.join(_quote(n) for n in names)}) "
            f"VALUES ({placeholders})"
        )
        if updates:
            sql += f" ON CONFLICT({self._key}) DO UPDATE SET {updates}"
        else:
            sql += f" ON CONFLICT({self._key}) DO NOTHING"

        with self.connection:
            self._execute(sql, tuple(_to_column(data[n]) for n in names))

    def delete(self, key: str) -> bool:
        with self.connection:
            cursor = self._execute(f"DELETE FROM {self._table} WHERE {self._key} = ?", (key,))
        return cursor.rowcount > 0

    def list(self) -> Iterator[str]:
        cursor = self._execute(f"SELECT {self._key} FROM {self._table} ORDER BY {self._key}")
        for row in cursor:
            yield str(row[0])

    def exists(self, key: str) -> bool:
        row = self._execute(
            f"SELECT 1 FROM {self._table} WHERE {self._key} = ?", (key,)
        ).fetchone()
        return row is not None

    def select(
        self,
        where: str = "",
        params: tuple[Any, ...] = (),
        order_by: str = "",
        limit: int | None = None,
    ) -> list[RawRecord]:
        """Run a filtered ``SELECT *`` on this driver's table.

        ``where`` and ``order_by`` are SQL fragments written by the calling
        repository; values always travel through ``params``.
        """
        sql = f"SELECT * FROM {self._table}"
        if where:
            sql += f" WHERE {where}"
        if order_by:
            sql += f" ORDER BY {order_by}"
        if limit is not None:
            sql += " LIMIT ?"
            params = (*params, limit)
        return [dict(row) for row in self._execute(sql, params).fetchall()]

    def _execute(self, sql: str, params: tuple[Any, ...] = ()) -> sqlite3.Cursor:
        try:
            return self.connection.execute(sql, params)
        except sqlite3.OperationalError as exc:
            logger.error("Query on %s failed: %s", self._database, exc)
            raise StorageUnavailableError(
                f"Query on table '{self._table_name}' failed: {exc}", database=self._database
            ) from exc


def _to_column(value: Any) -> Any:
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, (list, tuple, set, dict)):
        return json.dumps(sorted(value) if isinstance(value, set) else value)
    return value
