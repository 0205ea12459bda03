"""Content models for file-backed collections.

Each model is a typed record with named fields plus an ``extra`` map that
keeps front-matter keys the model does not know about, so a load/save
cycle never drops metadata written by other tools.
"""

from __future__ import annotations

import math
import re
import unicodedata
from datetime import UTC, date, datetime
from typing import Any, ClassVar, Self

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)

from inkwell.shared.errors import ParseError

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"
WORDS_PER_MINUTE = 200
EXCERPT_LENGTH = 160
ELLIPSIS = "..."

_SLUG_STRIP = re.compile(r"[^a-z0-9]+")
_MD_LINK = re.compile(r"!?\[([^\]]*)\]\([^)]*\)")
_MD_MARKUP = re.compile(r"(^|\s)#{1,6}\s+|[*_`>~]")
_HTML_TAG = re.compile(r"<[^>]+>")
_WHITESPACE = re.compile(r"\s+")

# Written after the model-specific fields.
_TRAILING_FIELDS = ("created_at", "updated_at")


def slugify(text: str) -> str:
    """Derive a URL-safe slug: lowercase ASCII words joined by single hyphens."""
    ascii_text = unicodedata.normalize("NFKD", text).encode("ascii", "ignore").decode("ascii")
    return _SLUG_STRIP.sub("-", ascii_text.lower()).strip("-")


def format_timestamp(value: datetime) -> str:
    """Render ``value`` in the fixed-width UTC storage format."""
    if value.tzinfo is not None:
        value = value.astimezone(UTC)
    return value.strftime(TIMESTAMP_FORMAT)


def parse_timestamp(value: Any) -> datetime | None:
    """Parse a stored timestamp.  Naive values are taken to be UTC."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day)
    elif isinstance(value, str):
        parsed = datetime.fromisoformat(value.strip())
    else:
        raise ValueError(f"not a timestamp: {value!r}")
    return as_utc(parsed)


def utcnow() -> datetime:
    return datetime.now(UTC)


def as_utc(value: datetime) -> datetime:
    return value if value.tzinfo is not None else value.replace(tzinfo=UTC)


def plain_text(markdown: str) -> str:
    """Strip the common Markdown and HTML markup and collapse whitespace."""
    text = _HTML_TAG.sub(" ", markdown)
    text = _MD_LINK.sub(r"\1", text)
    text = _MD_MARKUP.sub(r"\1", text)
    return _WHITESPACE.sub(" ", text).strip()


class ContentModel(BaseModel):
    """Shared fields and persistence mapping for file-backed content."""

    model_config = ConfigDict(validate_assignment=True)

    # Field written first in the metadata block, then in declaration order.
    key_field: ClassVar[str] = "slug"
    # Fields that are written even when empty.
    required_fields: ClassVar[frozenset[str]] = frozenset({"title"})

    slug: str = ""
    title: str
    body: str = ""
    category: str | None = None
    tags: list[str] = Field(default_factory=list)
    created_at: datetime | None = None
    updated_at: datetime | None = None
    extra: dict[str, Any] = Field(default_factory=dict)

    @field_validator("slug", "title", "category", mode="before")
    @classmethod
    def _coerce_text(cls, value: Any) -> Any:
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        return value

    @field_validator("slug")
    @classmethod
    def _check_slug(cls, value: str) -> str:
        if value and value != slugify(value):
            raise ValueError(
                f"slug {value!r} must be lowercase ASCII letters and digits joined by hyphens"
            )
        return value

    @field_validator("tags", mode="before")
    @classmethod
    def _coerce_tags(cls, value: Any) -> Any:
        if value is None:
            return []
        if isinstance(value, str):
            value = value.split(",")
        if isinstance(value, (list, tuple, set)):
            seen: dict[str, None] = {}
            for tag in value:
                text = str(tag).strip()
                if text:
                    seen.setdefault(text, None)
            return list(seen)
        return value

    @field_validator("created_at", "updated_at", mode="before")
    @classmethod
    def _coerce_timestamp(cls, value: Any) -> Any:
        return parse_timestamp(value)

    @model_validator(mode="after")
    def _derive_slug(self) -> ContentModel:
        if not self.slug:
            self.slug = slugify(self.title)
        return self

    @property
    def key(self) -> str:
        return self.slug

    # ── Persistence mapping ──────────────────────────────────────

    @classmethod
    def from_raw(cls, key: str, raw: dict[str, Any]) -> Self:
        """Build a model from a driver record stored under ``key``.

        The storage key is authoritative: a stored slug that names a
        different record is rejected rather than adopted.

        Raises:
            ParseError: If the record's values do not fit the model.
        """
        known = set(cls.model_fields) - {"extra"}
        data: dict[str, Any] = {"extra": {}}
        for name, value in raw.items():
            if name in known:
                data[name] = value
            else:
                data["extra"][name] = value
        stored = data.get(cls.key_field)
        if stored in (None, ""):
            data[cls.key_field] = key
        elif str(stored) != key:
            raise ParseError(key, f"{cls.key_field} '{stored}' does not match the storage key")
        try:
            return cls.model_validate(data)
        except ValidationError as exc:
            problems = "; ".join(
                f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in exc.errors()
            )
            raise ParseError(key, problems) from exc

    def to_raw(self) -> dict[str, Any]:
        """Flatten the model into a driver record.

        Empty optional values are omitted so the written metadata block
        carries only what was set.  ``body`` is always present.
        """
        raw: dict[str, Any] = {self.key_field: getattr(self, self.key_field)}
        names = [n for n in type(self).model_fields if n not in _TRAILING_FIELDS]
        for name in [*names, *_TRAILING_FIELDS]:
            if name in (self.key_field, "body", "extra"):
                continue
            value = getattr(self, name)
            if isinstance(value, datetime):
                value = format_timestamp(value)
            if name not in self.required_fields and value in (None, "", []):
                continue
            raw[name] = value
        for name, value in self.extra.items():
            raw.setdefault(name, value)
        raw["body"] = self.body
        return raw


class Article(ContentModel):
    """A blog article stored as ``articles/{slug}.md``."""

    author: str = ""
    published: bool = False
    published_at: datetime | None = None
    featured: bool = False
    excerpt: str = ""
    reading_time: int | None = None
    seo_title: str = ""
    seo_description: str = ""

    @field_validator("author", "excerpt", "seo_title", "seo_description", mode="before")
    @classmethod
    def _coerce_optional_text(cls, value: Any) -> Any:
        if value is None:
            return ""
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        return value

    @field_validator("published_at", mode="before")
    @classmethod
    def _coerce_published_at(cls, value: Any) -> Any:
        return parse_timestamp(value)

    @property
    def url(self) -> str:
        return f"/articles/{self.slug}"

    def is_published(self, now: datetime | None = None) -> bool:
        """True when published and the publish date is not in the future."""
        if not self.published:
            return False
        if self.published_at is None:
            return True
        return as_utc(self.published_at) <= as_utc(now or utcnow())

    def calculate_reading_time(self, words_per_minute: int = WORDS_PER_MINUTE) -> int:
        """Minutes to read the body, rounded up, never less than one."""
        words = len(plain_text(self.body).split())
        return max(1, math.ceil(words / words_per_minute))

    def get_reading_time(self, words_per_minute: int = WORDS_PER_MINUTE) -> int:
        if self.reading_time:
            return self.reading_time
        return self.calculate_reading_time(words_per_minute)

    def generate_excerpt(self, max_length: int = EXCERPT_LENGTH) -> str:
        """Truncate the plain-text body on a word boundary.

        Text longer than ``max_length`` is cut at the last space at or
        before ``max_length`` and gets ``...`` appended, so the result is
        never longer than ``max_length + 3``.
        """
        text = plain_text(self.body)
        if len(text) <= max_length:
            return text
        cut = text[:max_length]
        # A space right after the cut means the last word is already whole.
        if text[max_length] != " ":
            boundary = cut.rfind(" ")
            if boundary > 0:
                cut = cut[:boundary]
        return cut.rstrip() + ELLIPSIS

    def get_excerpt(self, max_length: int = EXCERPT_LENGTH) -> str:
        return self.excerpt or self.generate_excerpt(max_length)

    def prepare_for_save(
        self,
        now: datetime | None = None,
        words_per_minute: int = WORDS_PER_MINUTE,
    ) -> None:
        """Fill the fields that are derived at write time."""
        if not self.reading_time:
            self.reading_time = self.calculate_reading_time(words_per_minute)
        if self.published and self.published_at is None:
            self.published_at = as_utc(now or utcnow()).replace(microsecond=0)


class Documentation(ContentModel):
    """A documentation page stored as ``docs/{slug}.md``."""

    description: str = ""
    order: int = 0
    difficulty: str = ""
    version: str = ""

    @field_validator("description", "difficulty", "version", mode="before")
    @classmethod
    def _coerce_optional_text(cls, value: Any) -> Any:
        if value is None:
            return ""
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        return value

    @field_validator("order", mode="before")
    @classmethod
    def _coerce_order(cls, value: Any) -> Any:
        return 0 if value is None else value

    @property
    def url(self) -> str:
        return f"/docs/{self.slug}"
