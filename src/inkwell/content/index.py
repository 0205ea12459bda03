"""SQLite mirror of article metadata in the ``content-index`` database.

Files stay the source of truth.  The index holds one row per article plus
a tag table, so category and tag lookups do not have to parse every file.
Rows carry the file mtime seen at sync time, which is what ``is_stale``
compares against.
"""

from __future__ import annotations

import json
import logging
import sqlite3
from datetime import datetime
from typing import TYPE_CHECKING, Any

from inkwell.content.models import Article, format_timestamp, utcnow
from inkwell.db.registry import DatabaseRegistry
from inkwell.db.schemas import CONTENT_INDEX
from inkwell.shared.errors import LoadReport

if TYPE_CHECKING:
    from inkwell.content.repository import ArticleRepository

logger = logging.getLogger(__name__)


class ArticleIndex:
    """Read/write access to the ``articles_index`` and ``article_tags`` tables."""

    def __init__(self, registry: DatabaseRegistry, *, now: datetime | None = None) -> None:
        self._registry = registry
        self._now = now

    @property
    def connection(self) -> sqlite3.Connection:
        return self._registry.connection_for(CONTENT_INDEX)

    # ── Writes ───────────────────────────────────────────────────

    def upsert(self, article: Article, file_mtime: float | None = None) -> None:
        """Insert or replace the row for ``article`` and its tag rows."""
        now = format_timestamp(self._now or utcnow())
        row = {
            "slug": article.slug,
            "title": article.title,
            "author": article.author,
            "category": article.category,
            "tags": json.dumps(article.tags),
            "published": int(article.published),
            "published_at": (
                format_timestamp(article.published_at) if article.published_at else None
            ),
            "featured": int(article.featured),
            "reading_time": article.get_reading_time(),
            "file_mtime": file_mtime,
            "created_at": format_timestamp(article.created_at) if article.created_at else now,
            "updated_at": format_timestamp(article.updated_at) if article.updated_at else now,
        }
        columns = ", ".join(row)
        placeholders = ", ".join(f":{name}" for name in row)
        updates = ", ".join(f"{name} = excluded.{name}" for name in row if name != "slug")

        conn = self.connection
        with conn:
            conn.execute(
                f"INSERT INTO articles_index ({columns}) VALUES ({placeholders}) "
                f"ON CONFLICT(slug) DO UPDATE SET {updates}",
                row,
            )
            conn.execute("DELETE FROM article_tags WHERE slug = ?", (article.slug,))
            conn.executemany(
                "INSERT INTO article_tags (slug, tag) VALUES (?, ?)",
                [(article.slug, tag) for tag in article.tags],
            )
        logger.debug("Indexed article %s", article.slug)

    def remove(self, slug: str) -> bool:
        conn = self.connection
        with conn:
            cursor = conn.execute("DELETE FROM articles_index WHERE slug = ?", (slug,))
        return cursor.rowcount > 0

    def rebuild(self, articles: ArticleRepository) -> LoadReport[str]:
        """Re-sync every article file and drop rows whose file is gone.

        Unparseable files are reported, not indexed; their existing rows are
        removed so lookups never point at a record ``find()`` would reject.
        """
        loaded = articles.load_all()
        report: LoadReport[str] = LoadReport(failures=list(loaded.failures))

        for article in loaded.records:
            self.upsert(article, articles.modified_at(article.slug))
            report.records.append(article.slug)

        keep = set(report.records)
        stale = [slug for slug in self.slugs() if slug not in keep]
        for slug in stale:
            self.remove(slug)

        logger.info(
            "Rebuilt article index: %d indexed, %d removed, %d failed",
            len(report.records),
            len(stale),
            len(report.failures),
        )
        return report

    # ── Reads ────────────────────────────────────────────────────

    def get(self, slug: str) -> dict[str, Any] | None:
        row = self.connection.execute(
            "SELECT * FROM articles_index WHERE slug = ?", (slug,)
        ).fetchone()
        if row is None:
            return None
        data = dict(row)
        data["tags"] = json.loads(data["tags"] or "[]")
        data["published"] = bool(data["published"])
        data["featured"] = bool(data["featured"])
        return data

    def is_stale(self, slug: str, file_mtime: float | None) -> bool:
        """True if the row is missing or older than the file's mtime."""
        row = self.connection.execute(
            "SELECT file_mtime FROM articles_index WHERE slug = ?", (slug,)
        ).fetchone()
        if row is None or row["file_mtime"] is None:
            return True
        if file_mtime is None:
            return True
        return row["file_mtime"] < file_mtime

    def slugs(self) -> list[str]:
        rows = self.connection.execute("SELECT slug FROM articles_index ORDER BY slug")
        return [row["slug"] for row in rows]

    def slugs_by_category(self, category: str) -> list[str]:
        rows = self.connection.execute(
            "SELECT slug FROM articles_index WHERE category = ? ORDER BY slug", (category,)
        )
        return [row["slug"] for row in rows]

    def slugs_by_tag(self, tag: str) -> list[str]:
        rows = self.connection.execute(
            "SELECT slug FROM article_tags WHERE tag = ? ORDER BY slug", (tag,)
        )
        return [row["slug"] for row in rows]

    def count(self) -> int:
        return self.connection.execute("SELECT COUNT(*) FROM articles_index").fetchone()[0]
