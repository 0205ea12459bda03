"""Per-concern SQLite databases.

The registry owns exactly one connection per registered database name and
opens it lazily.  The first ``connection_for(name)`` resolves the file
through the ``PathResolver``, applies the connection pragmas, and runs the
database's idempotent schema.  There is no default database: callers always
ask for a concern by name, and a handle for one concern is never handed out
for another.
"""

from __future__ import annotations

import logging
import os
import sqlite3
from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel

from inkwell.db.schemas import ACCOUNTS, AUDIT, CONTENT_INDEX, SCHEMAS
from inkwell.paths import PathResolver, PathToken
from inkwell.shared.errors import StorageUnavailableError, UnknownDatabaseError

logger = logging.getLogger(__name__)

# WAL lets readers proceed while the single writer holds the write lock.
PRAGMAS: tuple[str, ...] = (
    "PRAGMA foreign_keys = ON",
    "PRAGMA journal_mode = WAL",
    "PRAGMA synchronous = NORMAL",
    "PRAGMA temp_store = MEMORY",
)


class DatabaseSpec(BaseModel):
    """Registration entry for one logical database."""

    filename: str
    description: str = ""
    schema_sql: str = ""


def default_specs() -> dict[str, DatabaseSpec]:
    return {
        CONTENT_INDEX: DatabaseSpec(
            filename="content-index.db",
            description="Metadata index for file-backed content",
            schema_sql=SCHEMAS[CONTENT_INDEX],
        ),
        ACCOUNTS: DatabaseSpec(
            filename="accounts.db",
            description="User accounts",
            schema_sql=SCHEMAS[ACCOUNTS],
        ),
        AUDIT: DatabaseSpec(
            filename="audit.db",
            description="Audit trail of administrative actions",
            schema_sql=SCHEMAS[AUDIT],
        ),
    }


class DatabaseRegistry:
    """Lazily opened, schema-initialized connections keyed by database name.

    Owned by the application root: create it at startup, pass it to the
    repositories that need it, and call ``close_all()`` (or use it as a
    context manager) at shutdown.
    """

    def __init__(
        self,
        resolver: PathResolver,
        specs: Mapping[str, DatabaseSpec] | None = None,
        *,
        base: str = "databases",
    ) -> None:
        self._resolver = resolver
        self._base = base
        self._specs: dict[str, DatabaseSpec] = dict(specs) if specs is not None else default_specs()
        self._connections: dict[str, sqlite3.Connection] = {}

    def __enter__(self) -> DatabaseRegistry:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close_all()

    # -- Registration ---------------------------------------------------------

    def register(self, name: str, spec: DatabaseSpec) -> None:
        if name in self._connections:
            raise ValueError(f"Database '{name}' is already open; close it before re-registering")
        self._specs[name] = spec

    def registered(self) -> dict[str, DatabaseSpec]:
        return dict(self._specs)

    def is_open(self, name: str) -> bool:
        return name in self._connections

    def database_path(self, name: str) -> PathToken:
        spec = self._spec(name)
        return self._resolver.resolve(self._base, spec.filename)

    # -- Connections ----------------------------------------------------------

    def connection_for(self, name: str) -> sqlite3.Connection:
        """Return the connection for ``name``, opening it on first use."""
        conn = self._connections.get(name)
        if conn is None:
            conn = self._open(name)
            self._connections[name] = conn
        return conn

    def close(self, name: str) -> None:
        conn = self._connections.pop(name, None)
        if conn is not None:
            conn.close()
            logger.debug("Closed database %s", name)

    def close_all(self) -> None:
        for name in list(self._connections):
            self.close(name)

    def _spec(self, name: str) -> DatabaseSpec:
        try:
            return self._specs[name]
        except KeyError:
            raise UnknownDatabaseError(name) from None

    def _open(self, name: str) -> sqlite3.Connection:
        spec = self._spec(name)
        token = self.database_path(name)
        path = token.path

        try:
            path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            reason = f"cannot create database directory: {exc}"
            raise self._unavailable(name, token, reason) from exc

        if not os.access(path.parent, os.W_OK) or (path.exists() and not os.access(path, os.W_OK)):
            raise self._unavailable(name, token, "database location is not writable")

        conn: sqlite3.Connection | None = None
        try:
            conn = sqlite3.connect(os.fspath(token))
            conn.row_factory = sqlite3.Row
            for pragma in PRAGMAS:
                conn.execute(pragma)
            if spec.schema_sql:
                conn.executescript(spec.schema_sql)
            conn.commit()
        except sqlite3.Error as exc:
            if conn is not None:
                conn.close()
            raise self._unavailable(name, token, f"cannot open database: {exc}") from exc

        logger.info("Opened database %s at %s", name, path)
        return conn

    def _unavailable(self, name: str, token: PathToken, reason: str) -> StorageUnavailableError:
        path = token.path
        err = StorageUnavailableError(
            f"Database '{name}' is unavailable: {reason}",
            database=name,
            path=str(path),
            dir_exists=path.parent.is_dir(),
            file_exists=path.exists(),
            writable=os.access(path.parent, os.W_OK) if path.parent.is_dir() else False,
        )
        logger.error("%s", err)
        return err

    # -- Diagnostics ----------------------------------------------------------

    def health_status(self) -> dict[str, dict[str, Any]]:
        """Report file and connection state for every registered database.

        Databases whose file does not exist yet are reported without being
        created.
        """
        status: dict[str, dict[str, Any]] = {}
        for name, spec in self._specs.items():
            path = self.database_path(name).path
            entry: dict[str, Any] = {
                "name": name,
                "filename": spec.filename,
                "path": str(path),
                "description": spec.description,
                "exists": path.exists(),
                "size": path.stat().st_size if path.exists() else 0,
                "writable": os.access(path.parent, os.W_OK) if path.parent.is_dir() else False,
                "connected": False,
            }
            if entry["exists"]:
                try:
                    conn = self.connection_for(name)
                    entry["connected"] = True
                    entry["sqlite_version"] = conn.execute("SELECT sqlite_version()").fetchone()[0]
                    entry["table_count"] = conn.execute(
                        "SELECT COUNT(*) FROM sqlite_master WHERE type = 'table'"
                    ).fetchone()[0]
                except (StorageUnavailableError, sqlite3.Error) as exc:
                    entry["error"] = str(exc)
            status[name] = entry
        return status
