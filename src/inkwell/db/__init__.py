"""Per-concern SQLite databases."""

from inkwell.db.registry import DatabaseRegistry, DatabaseSpec, default_specs
from inkwell.db.schemas import ACCOUNTS, AUDIT, CONTENT_INDEX

__all__ = [
    "ACCOUNTS",
    "AUDIT",
    "CONTENT_INDEX",
    "DatabaseRegistry",
    "DatabaseSpec",
    "default_specs",
]
