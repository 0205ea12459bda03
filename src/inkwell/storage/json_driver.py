"""JSON driver: whole-record serialization, one object per file."""

from __future__ import annotations

import json

from inkwell.shared.errors import ParseError
from inkwell.storage.base import FileDriver, RawRecord


class JsonDriver(FileDriver):
    """Stores records as pretty-printed ``.json`` objects."""

    extension = "json"

    def decode(self, key: str, text: str) -> RawRecord:
        try:
            data = json.loads(text)
        except json.JSONDecodeError as exc:
            raise ParseError(key, f"invalid JSON: {exc}") from exc
        if not isinstance(data, dict):
            raise ParseError(key, f"expected a JSON object, got {type(data).__name__}")
        return data

    def encode(self, record: RawRecord) -> str:
        return json.dumps(record, indent=2, ensure_ascii=False, default=str) + "\n"
