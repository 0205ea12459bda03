"""Storage drivers and their factory."""

from __future__ import annotations

from inkwell.paths import PathResolver
from inkwell.storage.base import FileDriver, RawRecord, StorageDriver
from inkwell.storage.json_driver import JsonDriver
from inkwell.storage.markdown import MarkdownDriver
from inkwell.storage.sqlite import SqliteDriver


def create_file_driver(
    kind: str,
    resolver: PathResolver,
    collection: str,
    *,
    base: str = "content",
) -> FileDriver:
    """Create a file-backed driver for ``collection`` under ``base``.

    Raises:
        ValueError: If the driver kind is unknown.
    """
    drivers: dict[str, type[FileDriver]] = {
        "markdown": MarkdownDriver,
        "json": JsonDriver,
    }
    if kind not in drivers:
        raise ValueError(f"Unknown storage driver: {kind!r}")
    return drivers[kind](resolver, base, collection)


__all__ = [
    "FileDriver",
    "JsonDriver",
    "MarkdownDriver",
    "RawRecord",
    "SqliteDriver",
    "StorageDriver",
    "create_file_driver",
]
