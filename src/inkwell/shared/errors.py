"""Error taxonomy and the skip-and-continue load report.

Fatal conditions (path traversal, storage unavailability, duplicate keys)
are raised.  Recoverable per-record parse failures encountered during bulk
loads are collected on a ``LoadReport`` instead of being raised, so one
broken file never hides the rest of a collection.
"""

from __future__ import annotations

from typing import Generic, TypeVar

from pydantic import BaseModel, Field

T = TypeVar("T")


class InkwellError(Exception):
    """Base class for all storage-layer errors."""


class PathTraversalError(InkwellError):
    """A relative path tried to escape (or name) a disallowed base directory."""

    def __init__(self, message: str, *, base: str = "", relative_path: str = "") -> None:
        super().__init__(message)
        self.base = base
        self.relative_path = relative_path


class ParseError(InkwellError):
    """A stored record could not be decoded."""

    def __init__(self, key: str, reason: str) -> None:
        super().__init__(f"Cannot parse record '{key}': {reason}")
        self.key = key
        self.reason = reason


class StorageUnavailableError(InkwellError):
    """The filesystem or database backing a store cannot be used.

    Carries enough detail for an operator to see *why* without reproducing
    the failure: the resolved path, whether its directory and file exist,
    and whether the location is writable.
    """

    def __init__(
        self,
        message: str,
        *,
        path: str = "",
        dir_exists: bool | None = None,
        file_exists: bool | None = None,
        writable: bool | None = None,
        database: str = "",
    ) -> None:
        self.message = message
        self.path = path
        self.dir_exists = dir_exists
        self.file_exists = file_exists
        self.writable = writable
        self.database = database
        super().__init__(self._render())

    def _render(self) -> str:
        parts = [self.message]
        if self.database:
            parts.append(f"database: {self.database}")
        if self.path:
            parts.append(f"path: {self.path}")
        for label, flag in (
            ("dir exists", self.dir_exists),
            ("file exists", self.file_exists),
            ("writable", self.writable),
        ):
            if flag is not None:
                parts.append(f"{label}: {'yes' if flag else 'no'}")
        return " | ".join(parts)


class DuplicateKeyError(InkwellError):
    """A record with this key already exists."""

    def __init__(self, key: str, field: str = "slug") -> None:
        super().__init__(f"A record with {field} '{key}' already exists")
        self.key = key
        self.field = field


class UnknownDatabaseError(InkwellError, KeyError):
    """The registry has no database registered under this name."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Database '{name}' is not registered")
        self.name = name

    def __str__(self) -> str:
        return str(self.args[0])


class LoadFailure(BaseModel):
    """A single record skipped during a bulk load."""

    key: str
    message: str
    error_type: str = "parse_error"


class LoadReport(BaseModel, Generic[T]):
    """Records loaded by a bulk operation plus the ones that were skipped."""

    records: list[T] = Field(default_factory=list)
    failures: list[LoadFailure] = Field(default_factory=list)

    model_config = {"arbitrary_types_allowed": True}

    def add_error(self, key: str, message: str, error_type: str = "parse_error") -> None:
        self.failures.append(LoadFailure(key=key, message=message, error_type=error_type))

    @property
    def ok(self) -> bool:
        return not self.failures
