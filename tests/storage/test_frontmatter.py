"""Tests for the front-matter codec."""

import pytest
import yaml

from inkwell.storage import frontmatter
from inkwell.storage.frontmatter import FrontMatterError


class TestLoads:
    def test_scalars_and_lists(self):
        text = (
            "---\n"
            'title: "PHP: A Guide"\n'
            "published: true\n"
            "featured: no\n"
            "reading_time: 5\n"
            "rating: 4.5\n"
            "tags: [php, programming]\n"
            "category: ~\n"
            "---\n"
            "\n"
            "Body text.\n"
        )
        meta, body = frontmatter.loads(text)

        assert meta == {
            "title": "PHP: A Guide",
            "published": True,
            "featured": False,
            "reading_time": 5,
            "rating": 4.5,
            "tags": ["php", "programming"],
            "category": None,
        }
        assert body == "Body text."

    def test_preserves_key_order(self):
        meta, _ = frontmatter.loads("---\nz: 1\na: 2\nm: 3\n---\n")
        assert list(meta) == ["z", "a", "m"]

    def test_block_list(self):
        text = "---\ntags:\n  - php\n  - 'web dev'\ntitle: T\n---\nbody"
        meta, body = frontmatter.loads(text)
        assert meta["tags"] == ["php", "web dev"]
        assert meta["title"] == "T"
        assert body == "body"

    def test_comments_and_blank_lines_are_skipped(self):
        meta, _ = frontmatter.loads("---\n# note\n\ntitle: T\n---\n")
        assert meta == {"title": "T"}

    def test_empty_value_without_items_is_none(self):
        meta, _ = frontmatter.loads("---\nexcerpt:\ntitle: T\n---\n")
        assert meta["excerpt"] is None

    def test_quoted_list_items_keep_commas(self):
        meta, _ = frontmatter.loads('---\ntags: ["a, b", c]\n---\n')
        assert meta["tags"] == ["a, b", "c"]

    def test_no_front_matter_returns_whole_text_as_body(self):
        meta, body = frontmatter.loads("Just a body.\n")
        assert meta == {}
        assert body == "Just a body."

    def test_body_keeps_leading_indentation(self):
        text = "---\ntitle: T\n---\n\n    indented code\n\nprose\n\n"
        _, body = frontmatter.loads(text)
        assert body == "    indented code\n\nprose"

    def test_body_without_front_matter_keeps_indentation(self):
        _, body = frontmatter.loads("\n    code block\n")
        assert body == "    code block"

    def test_body_may_contain_delimiters(self):
        meta, body = frontmatter.loads("---\ntitle: T\n---\n\nabove\n---\nbelow\n")
        assert meta == {"title": "T"}
        assert body == "above\n---\nbelow"


class TestMalformed:
    @pytest.mark.parametrize(
        "text",
        [
            "---\ntitle: T\n",
            "---\njust words\n---\n",
            "---\n- orphan\n---\n",
            "---\ntitle: \"unterminated\n---\n",
            "---\ntags: [a, b\n---\n",
            "---\nbad key: 1\n---\n",
            "---\ntitle: Real Title\nseo:\n  title: SEO Override\n---\n",
            "---\ntitle: T\n  indented: 1\n---\n",
            "---\ntitle: First\ntitle: Second\n---\n",
            "---\ntags: [a]\ntags:\n  - b\n---\n",
        ],
    )
    def test_raises_front_matter_error(self, text: str):
        with pytest.raises(FrontMatterError):
            frontmatter.loads(text)

    def test_nested_mapping_does_not_overwrite_top_level_key(self):
        with pytest.raises(FrontMatterError, match="line 3: nested"):
            frontmatter.loads("---\ntitle: Real Title\nseo:\n  title: SEO Override\n---\n")

    def test_duplicate_key(self):
        with pytest.raises(FrontMatterError, match="duplicate key 'title'"):
            frontmatter.loads("---\ntitle: First\ntitle: Second\n---\n")


class TestDumps:
    def test_layout(self):
        text = frontmatter.dumps({"title": "Hello", "tags": ["a", "b"]}, "Body")
        assert text == "---\ntitle: Hello\ntags: [a, b]\n---\n\nBody\n"

    @pytest.mark.parametrize(
        "value",
        [
            "PHP: A Guide",
            "true",
            "no",
            "null",
            "",
            "42",
            "3.14",
            "- dash",
            "  padded  ",
            "#hashtag",
            'say "hi"',
            "back\\slash",
            "line\nbreak",
            "[not a list]",
        ],
    )
    def test_strings_survive_round_trip(self, value: str):
        meta, _ = frontmatter.loads(frontmatter.dumps({"v": value}, ""))
        assert meta["v"] == value

    def test_typed_values_survive_round_trip(self):
        original = {
            "n": 7,
            "f": 1.5,
            "yes": True,
            "no": False,
            "nothing": None,
            "tags": ["php", "web, dev", "true", "1"],
        }
        meta, _ = frontmatter.loads(frontmatter.dumps(original, "b"))
        assert meta == original

    def test_output_is_valid_yaml(self):
        metadata = {
            "title": "PHP: A Guide",
            "slug": "php-a-guide",
            "published": True,
            "published_at": "2024-01-15 10:00:00",
            "tags": ["php", "programming"],
            "reading_time": 3,
            "excerpt": 'He said "hi" & left',
        }
        text = frontmatter.dumps(metadata, "Body")
        block = text.split("---\n")[1]

        assert yaml.safe_load(block) == metadata

    def test_without_metadata_writes_body_only(self):
        assert frontmatter.dumps({}, "Body") == "Body\n"
