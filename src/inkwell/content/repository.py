"""Repositories: the query and persistence surface for content collections.

A repository is constructed with the ``StorageDriver`` holding its
collection and is passed to whatever needs the content.  Bulk reads
materialize the whole collection; records that fail to parse are skipped,
logged and reported, while storage and path errors propagate unchanged.
"""

from __future__ import annotations

import logging
import sqlite3
from collections.abc import Iterable
from datetime import datetime
from typing import Any, ClassVar, Generic, TypeVar

from inkwell.content import query
from inkwell.content.index import ArticleIndex
from inkwell.content.models import (
    EXCERPT_LENGTH,
    WORDS_PER_MINUTE,
    Article,
    ContentModel,
    Documentation,
    as_utc,
    utcnow,
)
from inkwell.content.query import Query
from inkwell.shared.errors import DuplicateKeyError, InkwellError, LoadReport, ParseError
from inkwell.storage.base import StorageDriver

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=ContentModel)


class FileRepository(Generic[M]):
    """CRUD and bulk loading for one collection of ``model`` records."""

    model: ClassVar[type[ContentModel]] = ContentModel

    def __init__(self, driver: StorageDriver, *, now: datetime | None = None) -> None:
        self._driver = driver
        self._now = now

    @property
    def driver(self) -> StorageDriver:
        return self._driver

    def now(self) -> datetime:
        return as_utc(self._now) if self._now is not None else utcnow()

    # ── Reads ────────────────────────────────────────────────────

    def load_all(self) -> LoadReport[M]:
        """Load every record, collecting parse failures instead of raising."""
        report: LoadReport[M] = LoadReport()
        for key in self._driver.list():
            try:
                raw = self._driver.load(key)
                if raw is None:
                    continue
                report.records.append(self.model.from_raw(key, raw))
            except ParseError as exc:
                logger.warning("Skipping %s: %s", key, exc)
                report.add_error(key, str(exc))
        return report

    def all(self) -> list[M]:
        return self.load_all().records

    def find(self, key: str) -> M | None:
        """Return the record stored under ``key``, or ``None``.

        A record that exists but cannot be parsed raises ``ParseError``.
        """
        raw = self._driver.load(key)
        if raw is None:
            return None
        return self.model.from_raw(key, raw)  # type: ignore[return-value]

    def exists(self, key: str) -> bool:
        return self._driver.exists(key)

    def modified_at(self, key: str) -> float | None:
        return self._driver.modified_at(key)

    def where(self, field: str, value: Any) -> Query[M]:
        return Query(self.all()).where(field, value)

    def categories(self) -> list[str]:
        return query.collect_categories(self.all())

    def tags(self) -> list[str]:
        return query.collect_tags(self.all())

    # ── Writes ───────────────────────────────────────────────────

    def create(self, record: M | None = None, **fields: Any) -> M:
        """Persist a new record.

        Accepts a model instance or the model's fields as keywords.  The
        slug is derived from the title when not given.

        Raises:
            DuplicateKeyError: If a record with the same slug exists.  The
                existing record is left untouched.
        """
        if record is None:
            record = self.model.model_validate(fields)  # type: ignore[assignment]
        if record.key and self._driver.exists(record.key):
            raise DuplicateKeyError(record.key)
        if record.created_at is None:
            record.created_at = self.now().replace(microsecond=0)
        return self.save(record)

    def save(self, record: M) -> M:
        """Write the whole record, replacing whatever is stored under its key."""
        if not record.key:
            raise ValueError(f"Cannot derive a slug from title {record.title!r}")
        now = self.now().replace(microsecond=0)
        if record.created_at is None:
            record.created_at = now
        record.updated_at = now
        self._before_save(record)
        self._driver.save(record.key, record.to_raw())
        self._after_save(record)
        return record

    def delete(self, record: M | str) -> bool:
        key = record if isinstance(record, str) else record.key
        deleted = self._driver.delete(key)
        if deleted:
            self._after_delete(key)
        return deleted

    def _before_save(self, record: M) -> None:
        """Hook for fields derived at write time."""

    def _after_save(self, record: M) -> None:
        """Hook run after a successful write."""

    def _after_delete(self, key: str) -> None:
        """Hook run after a successful delete."""


class ArticleRepository(FileRepository[Article]):
    """Articles, with publishing-aware queries and an optional metadata index.

    When an ``ArticleIndex`` is attached it is updated after every write.
    An index failure is logged and does not undo the file write.
    """

    model = Article

    def __init__(
        self,
        driver: StorageDriver,
        *,
        index: ArticleIndex | None = None,
        now: datetime | None = None,
        words_per_minute: int = WORDS_PER_MINUTE,
        excerpt_length: int = EXCERPT_LENGTH,
    ) -> None:
        super().__init__(driver, now=now)
        self._index = index
        self._words_per_minute = words_per_minute
        self._excerpt_length = excerpt_length

    @property
    def index(self) -> ArticleIndex | None:
        return self._index

    def published(self, now: datetime | None = None) -> list[Article]:
        """Published articles whose publish date has arrived."""
        return query.published(self.all(), now or self.now())

    def featured(self) -> list[Article]:
        return [article for article in self.all() if article.featured]

    def by_category(self, category: str) -> list[Article]:
        return [article for article in self.all() if article.category == category]

    def by_tag(self, tag: str) -> list[Article]:
        return [article for article in self.all() if tag in article.tags]

    def recent(self, limit: int = 10, now: datetime | None = None) -> list[Article]:
        """The ``limit`` most recently published articles, newest first."""
        return query.newest_first(self.published(now))[: max(limit, 0)]

    def search(self, text: str, now: datetime | None = None) -> list[Article]:
        """Published articles matching ``text``, most relevant first."""
        return query.search(self.published(now), text)

    def excerpt_for(self, article: Article) -> str:
        """The explicit excerpt, or one generated from the body."""
        return article.get_excerpt(self._excerpt_length)

    def reading_time_for(self, article: Article) -> int:
        return article.get_reading_time(self._words_per_minute)

    def _before_save(self, record: Article) -> None:
        record.prepare_for_save(self.now(), self._words_per_minute)

    def _after_save(self, record: Article) -> None:
        if self._index is None:
            return
        try:
            self._index.upsert(record, self._driver.modified_at(record.key))
        except (InkwellError, sqlite3.Error):
            logger.warning("Failed to index article %s after save", record.key, exc_info=True)

    def _after_delete(self, key: str) -> None:
        if self._index is None:
            return
        try:
            self._index.remove(key)
        except (InkwellError, sqlite3.Error):
            logger.warning("Failed to drop article %s from index", key, exc_info=True)


class DocumentationRepository(FileRepository[Documentation]):
    """Documentation pages, ordered within each category by ``order``.

    Pages without a category form their own group, keyed ``""``.
    Navigation between pages (previous, next, related) stays inside that
    group.
    """

    model = Documentation

    related_field: ClassVar[str] = "related_docs"

    def by_category(self, category: str) -> list[Documentation]:
        return _by_order(doc for doc in self.all() if (doc.category or "") == category)

    def by_difficulty(self, difficulty: str) -> list[Documentation]:
        return _by_order(doc for doc in self.all() if doc.difficulty == difficulty)

    def grouped_by_category(self) -> dict[str, list[Documentation]]:
        """Pages grouped under their category; uncategorized pages under ``""``."""
        groups: dict[str, list[Documentation]] = {}
        for doc in self.all():
            groups.setdefault(doc.category or "", []).append(doc)
        return {name: _by_order(docs) for name, docs in sorted(groups.items())}

    def search(self, text: str) -> list[Documentation]:
        """Pages matching ``text`` in title, category, tags, description or body."""
        return query.search(self.all(), text, query.DOC_SEARCH_WEIGHTS)

    def navigation(self) -> dict[str, list[dict[str, str]]]:
        """Sidebar entries per category, in page order."""
        return {
            category: [
                {
                    "title": doc.title,
                    "slug": doc.slug,
                    "url": doc.url,
                    "description": doc.description,
                    "difficulty": doc.difficulty,
                }
                for doc in docs
            ]
            for category, docs in self.grouped_by_category().items()
        }

    def related(self, doc: Documentation, limit: int = 3) -> list[Documentation]:
        """Pages listed in the page's ``related_docs`` front-matter.

        Without that list, up to ``limit`` other pages of the same category.
        """
        wanted = doc.extra.get(self.related_field)
        if isinstance(wanted, str):
            wanted = [wanted]
        if wanted:
            slugs = {str(slug) for slug in wanted}
            return _by_order(other for other in self.all() if other.slug in slugs)
        siblings = [other for other in self._siblings(doc) if other.slug != doc.slug]
        return siblings[: max(limit, 0)]

    def previous(self, doc: Documentation) -> Documentation | None:
        """The page before ``doc`` in its category, or ``None`` at the start."""
        siblings = self._siblings(doc)
        position = _position(siblings, doc)
        if position is None or position == 0:
            return None
        return siblings[position - 1]

    def next(self, doc: Documentation) -> Documentation | None:
        """The page after ``doc`` in its category, or ``None`` at the end."""
        siblings = self._siblings(doc)
        position = _position(siblings, doc)
        if position is None or position + 1 >= len(siblings):
            return None
        return siblings[position + 1]

    def breadcrumbs(self, doc: Documentation) -> list[dict[str, str]]:
        """Trail from the docs root through the page's category to the page."""
        trail = [{"title": "Documentation", "url": "/docs"}]
        if doc.category:
            trail.append(
                {
                    "title": doc.category[:1].upper() + doc.category[1:],
                    "url": f"/docs/category/{doc.category}",
                }
            )
        trail.append({"title": doc.title, "url": doc.url})
        return trail

    def _siblings(self, doc: Documentation) -> list[Documentation]:
        return self.by_category(doc.category or "")


def _by_order(docs: Iterable[Documentation]) -> list[Documentation]:
    return sorted(docs, key=lambda doc: (doc.order, doc.title.lower()))


def _position(docs: list[Documentation], doc: Documentation) -> int | None:
    for position, candidate in enumerate(docs):
        if candidate.slug == doc.slug:
            return position
    return None
