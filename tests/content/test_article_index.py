"""Tests for the SQLite article index."""

from datetime import UTC, datetime
from pathlib import Path

import pytest

from inkwell.content import ArticleIndex, ArticleRepository
from inkwell.db import DatabaseRegistry
from inkwell.paths import PathResolver
from inkwell.storage import MarkdownDriver

NOW = datetime(2024, 6, 1, 12, 0, tzinfo=UTC)


@pytest.fixture
def registry(tmp_path: Path):
    resolver = PathResolver({"databases": tmp_path / "db"})
    with DatabaseRegistry(resolver) as reg:
        yield reg


def _make_repo(tmp_path: Path, index: ArticleIndex | None) -> ArticleRepository:
    resolver = PathResolver({"content": tmp_path / "content"})
    driver = MarkdownDriver(resolver, "content", "articles")
    return ArticleRepository(driver, index=index, now=NOW)


class TestIndexSync:
    def test_save_upserts_row_and_tags(self, tmp_path: Path, registry: DatabaseRegistry):
        index = ArticleIndex(registry, now=NOW)
        repo = _make_repo(tmp_path, index)
        repo.create(
            title="PHP Guide",
            author="Ada",
            category="php",
            tags=["php", "web"],
            published=True,
        )

        row = index.get("php-guide")
        assert row is not None
        assert row["title"] == "PHP Guide"
        assert row["tags"] == ["php", "web"]
        assert row["published"] is True
        assert row["published_at"] == "2024-06-01 12:00:00"
        assert row["reading_time"] == 1
        assert row["file_mtime"] == repo.modified_at("php-guide")
        assert index.slugs_by_tag("web") == ["php-guide"]
        assert index.slugs_by_category("php") == ["php-guide"]

    def test_resave_replaces_tags(self, tmp_path: Path, registry: DatabaseRegistry):
        index = ArticleIndex(registry, now=NOW)
        repo = _make_repo(tmp_path, index)
        article = repo.create(title="Post", tags=["old"])
        article.tags = ["new"]
        repo.save(article)

        assert index.slugs_by_tag("old") == []
        assert index.slugs_by_tag("new") == ["post"]
        assert index.count() == 1

    def test_delete_removes_row_and_tags(self, tmp_path: Path, registry: DatabaseRegistry):
        index = ArticleIndex(registry, now=NOW)
        repo = _make_repo(tmp_path, index)
        repo.create(title="Post", tags=["t"])
        repo.delete("post")

        assert index.get("post") is None
        assert index.slugs_by_tag("t") == []

    def test_remove_missing(self, registry: DatabaseRegistry):
        assert ArticleIndex(registry).remove("ghost") is False


class TestRebuild:
    def test_rebuild_indexes_files_and_drops_stale_rows(
        self, tmp_path: Path, registry: DatabaseRegistry
    ):
        index = ArticleIndex(registry, now=NOW)
        unindexed = _make_repo(tmp_path, None)
        unindexed.create(title="First")
        unindexed.create(title="Second")

        indexed = _make_repo(tmp_path, index)
        indexed.create(title="Third")
        (tmp_path / "content" / "articles" / "third.md").unlink()

        report = index.rebuild(indexed)

        assert report.ok
        assert sorted(report.records) == ["first", "second"]
        assert index.slugs() == ["first", "second"]

    def test_rebuild_reports_unparseable_files(
        self, tmp_path: Path, registry: DatabaseRegistry
    ):
        index = ArticleIndex(registry, now=NOW)
        repo = _make_repo(tmp_path, index)
        repo.create(title="Good")
        repo.create(title="Soon Broken")
        (tmp_path / "content" / "articles" / "soon-broken.md").write_text(
            "---\ntitle: Broken\n", encoding="utf-8"
        )

        report = index.rebuild(repo)

        assert [f.key for f in report.failures] == ["soon-broken"]
        assert index.slugs() == ["good"]


class TestStaleness:
    def test_missing_row_is_stale(self, registry: DatabaseRegistry):
        assert ArticleIndex(registry).is_stale("nope", 1.0) is True

    def test_row_compared_against_file_mtime(self, tmp_path: Path, registry: DatabaseRegistry):
        index = ArticleIndex(registry, now=NOW)
        repo = _make_repo(tmp_path, index)
        repo.create(title="Post")
        mtime = repo.modified_at("post")
        assert mtime is not None

        assert index.is_stale("post", mtime) is False
        assert index.is_stale("post", mtime + 10) is True
