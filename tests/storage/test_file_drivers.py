"""Tests for the Markdown and JSON file drivers."""

import json
import os
from pathlib import Path

import pytest

from inkwell.paths import PathResolver
from inkwell.shared.errors import ParseError, PathTraversalError, StorageUnavailableError
from inkwell.storage import JsonDriver, MarkdownDriver, create_file_driver


def _make_resolver(tmp_path: Path) -> PathResolver:
    return PathResolver({"content": tmp_path / "content"})


def _write(tmp_path: Path, relative: str, text: str) -> Path:
    path = tmp_path / "content" / relative
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path


class TestMarkdownDriver:
    def test_save_then_load(self, tmp_path: Path):
        driver = MarkdownDriver(_make_resolver(tmp_path), "content", "articles")
        driver.save("hello", {"title": "Hello", "tags": ["a", "b"], "body": "# Hi\n\nText"})

        path = tmp_path / "content" / "articles" / "hello.md"
        assert path.read_text(encoding="utf-8") == (
            "---\ntitle: Hello\ntags: [a, b]\n---\n\n# Hi\n\nText\n"
        )
        assert driver.load("hello") == {
            "title": "Hello",
            "tags": ["a", "b"],
            "body": "# Hi\n\nText",
        }

    def test_load_missing_returns_none(self, tmp_path: Path):
        driver = MarkdownDriver(_make_resolver(tmp_path), "content", "articles")
        assert driver.load("nope") is None

    def test_unmodified_file_is_rewritten_verbatim(self, tmp_path: Path):
        original = "---\ntitle: Hello\npublished: true\ntags: [php, web]\n---\n\nBody\n"
        path = _write(tmp_path, "articles/hello.md", original)
        driver = MarkdownDriver(_make_resolver(tmp_path), "content", "articles")

        driver.save("hello", driver.load("hello"))  # type: ignore[arg-type]

        assert path.read_text(encoding="utf-8") == original

    def test_custom_content_column(self, tmp_path: Path):
        driver = MarkdownDriver(
            _make_resolver(tmp_path), "content", "docs", content_column="content"
        )
        driver.save("intro", {"title": "Intro", "content": "Welcome"})
        assert driver.load("intro") == {"title": "Intro", "content": "Welcome"}

    def test_malformed_front_matter_raises_parse_error(self, tmp_path: Path):
        _write(tmp_path, "articles/broken.md", "---\ntitle: T\n")
        driver = MarkdownDriver(_make_resolver(tmp_path), "content", "articles")

        with pytest.raises(ParseError) as excinfo:
            driver.load("broken")
        assert excinfo.value.key == "broken"

    def test_nested_front_matter_raises_parse_error(self, tmp_path: Path):
        _write(tmp_path, "articles/guide.md", "---\ntitle: Real\nseo:\n  title: Other\n---\n")
        driver = MarkdownDriver(_make_resolver(tmp_path), "content", "articles")

        with pytest.raises(ParseError, match="nested"):
            driver.load("guide")

    def test_body_key_in_front_matter_raises_parse_error(self, tmp_path: Path):
        _write(tmp_path, "articles/clash.md", "---\ntitle: T\nbody: hidden\n---\n\nVisible\n")
        driver = MarkdownDriver(_make_resolver(tmp_path), "content", "articles")

        with pytest.raises(ParseError, match="body"):
            driver.load("clash")

    def test_indented_body_round_trips(self, tmp_path: Path):
        driver = MarkdownDriver(_make_resolver(tmp_path), "content", "articles")
        driver.save("code", {"title": "Code", "body": "    print('hi')\n\nAfter."})

        record = driver.load("code")
        assert record is not None
        assert record["body"] == "    print('hi')\n\nAfter."

    def test_invalid_utf8_raises_parse_error(self, tmp_path: Path):
        path = tmp_path / "content" / "articles" / "binary.md"
        path.parent.mkdir(parents=True)
        path.write_bytes(b"\xff\xfe\x00bad")
        driver = MarkdownDriver(_make_resolver(tmp_path), "content", "articles")

        with pytest.raises(ParseError):
            driver.load("binary")

    def test_list_yields_keys_sorted(self, tmp_path: Path):
        for name in ("b.md", "a.md", "notes.txt", ".hidden.md"):
            _write(tmp_path, f"articles/{name}", "x")
        driver = MarkdownDriver(_make_resolver(tmp_path), "content", "articles")

        assert list(driver.list()) == ["a", "b"]

    def test_list_on_missing_collection_is_empty(self, tmp_path: Path):
        driver = MarkdownDriver(_make_resolver(tmp_path), "content", "articles")
        assert list(driver.list()) == []

    def test_delete(self, tmp_path: Path):
        driver = MarkdownDriver(_make_resolver(tmp_path), "content", "articles")
        driver.save("gone", {"title": "Gone", "body": ""})

        assert driver.delete("gone") is True
        assert driver.delete("gone") is False
        assert driver.exists("gone") is False

    def test_exists_and_modified_at(self, tmp_path: Path):
        driver = MarkdownDriver(_make_resolver(tmp_path), "content", "articles")
        assert driver.modified_at("a") is None
        driver.save("a", {"title": "A", "body": ""})

        assert driver.exists("a") is True
        mtime = driver.modified_at("a")
        assert mtime == os.stat(tmp_path / "content" / "articles" / "a.md").st_mtime

    @pytest.mark.parametrize("key", ["../escape", "a/b", "a\\b", ".hidden", ""])
    def test_unsafe_keys_are_rejected(self, tmp_path: Path, key: str):
        driver = MarkdownDriver(_make_resolver(tmp_path), "content", "articles")
        with pytest.raises(PathTraversalError):
            driver.save(key, {"title": "x", "body": ""})

    def test_unwritable_location_raises_storage_unavailable(self, tmp_path: Path):
        # A regular file where the collection directory should be.
        (tmp_path / "content").mkdir()
        (tmp_path / "content" / "articles").write_text("not a dir", encoding="utf-8")
        driver = MarkdownDriver(_make_resolver(tmp_path), "content", "articles")

        with pytest.raises(StorageUnavailableError) as excinfo:
            driver.save("post", {"title": "Post", "body": ""})
        assert "articles" in excinfo.value.path
        assert excinfo.value.dir_exists is False


class TestJsonDriver:
    def test_save_then_load(self, tmp_path: Path):
        driver = JsonDriver(_make_resolver(tmp_path), "content", "settings")
        record = {"name": "site", "options": {"theme": "dark"}, "count": 3}
        driver.save("site", record)

        path = tmp_path / "content" / "settings" / "site.json"
        assert json.loads(path.read_text(encoding="utf-8")) == record
        assert driver.load("site") == record

    def test_invalid_json_raises_parse_error(self, tmp_path: Path):
        _write(tmp_path, "settings/bad.json", "{not json")
        driver = JsonDriver(_make_resolver(tmp_path), "content", "settings")
        with pytest.raises(ParseError):
            driver.load("bad")

    def test_non_object_raises_parse_error(self, tmp_path: Path):
        _write(tmp_path, "settings/list.json", "[1, 2]")
        driver = JsonDriver(_make_resolver(tmp_path), "content", "settings")
        with pytest.raises(ParseError):
            driver.load("list")

    def test_list_ignores_other_extensions(self, tmp_path: Path):
        _write(tmp_path, "settings/a.json", "{}")
        _write(tmp_path, "settings/b.md", "x")
        driver = JsonDriver(_make_resolver(tmp_path), "content", "settings")
        assert list(driver.list()) == ["a"]


class TestCreateFileDriver:
    def test_known_kinds(self, tmp_path: Path):
        resolver = _make_resolver(tmp_path)
        assert isinstance(create_file_driver("markdown", resolver, "articles"), MarkdownDriver)
        assert isinstance(create_file_driver("json", resolver, "articles"), JsonDriver)

    def test_unknown_kind(self, tmp_path: Path):
        with pytest.raises(ValueError, match="Unknown storage driver"):
            create_file_driver("yaml", _make_resolver(tmp_path), "articles")
