"""Markdown driver: front-matter metadata plus a free-form body."""

from __future__ import annotations

from inkwell.paths import PathResolver
from inkwell.shared.errors import ParseError
from inkwell.storage import frontmatter
from inkwell.storage.base import FileDriver, RawRecord


class MarkdownDriver(FileDriver):
    """Stores records as ``.md`` files.

    The field named by ``content_column`` becomes the Markdown body; every
    other field is written to the front-matter block in record order.
    """

    extension = "md"

    def __init__(
        self,
        resolver: PathResolver,
        base: str,
        collection: str,
        *,
        content_column: str = "body",
    ) -> None:
        super().__init__(resolver, base, collection)
        self.content_column = content_column

    def decode(self, key: str, text: str) -> RawRecord:
        try:
            metadata, body = frontmatter.loads(text)
        except frontmatter.FrontMatterError as exc:
            raise ParseError(key, str(exc)) from exc
        if self.content_column in metadata:
            raise ParseError(key, f"front-matter must not define '{self.content_column}'")
        metadata[self.content_column] = body
        return metadata

    def encode(self, record: RawRecord) -> str:
        metadata = dict(record)
        body = metadata.pop(self.content_column, "") or ""
        return frontmatter.dumps(metadata, str(body))
