"""Front-matter codec for Markdown content files.

A file is a ``---`` delimited metadata block followed by a blank line and
free-form Markdown::

    ---
    title: "PHP: A Programming Guide"
    published: true
    tags: [php, programming]
    ---

    Body text...

Simple key-value parser -- handles scalars, flow lists (``[a, b]``) and
block lists (``key:`` followed by ``  - item`` lines) without requiring a
YAML dependency.  ``dumps`` always writes flow lists and quotes any string
that would otherwise read back as a different type, so a load/dump round
trip preserves every unmodified value.
"""

from __future__ import annotations

import re
from typing import Any

DELIMITER = "---"

_TRUE = {"true", "yes", "on"}
_FALSE = {"false", "no", "off"}
_NULL = {"null", "~", ""}
_NUMBER = re.compile(r"^[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?$")
_NEEDS_QUOTES = re.compile(r"[:\[\]{}|>#,\"'&*!%@`?]")
_KEY = re.compile(r"^[A-Za-z_][\w.-]*$")
_LEADING_BLANK_LINES = re.compile(r"\A(?:[ \t]*\r?\n)+")


class FrontMatterError(ValueError):
    """The metadata block is malformed."""


def split(text: str) -> tuple[str | None, str]:
    """Split ``text`` into (metadata block, body).

    Returns ``(None, text)`` when the file has no front-matter at all.
    Raises ``FrontMatterError`` when an opening delimiter is never closed.
    """
    lines = text.splitlines(keepends=True)
    if not lines or lines[0].rstrip() != DELIMITER:
        return None, text

    for idx in range(1, len(lines)):
        if lines[idx].rstrip() == DELIMITER:
            block = "".join(lines[1:idx])
            body = "".join(lines[idx + 1 :])
            return block, _trim_body(body)
    raise FrontMatterError("metadata block is not closed by '---'")


def _trim_body(body: str) -> str:
    """Drop the blank separator lines around the body, keeping its indentation."""
    return _LEADING_BLANK_LINES.sub("", body).rstrip()


def parse_block(block: str) -> dict[str, Any]:
    """Parse the lines between the delimiters into an ordered dict.

    Only flat ``key: value`` pairs and block lists are supported.  Indented
    lines other than list items (nested mappings) and repeated keys raise
    ``FrontMatterError`` instead of overwriting earlier values.
    """
    result: dict[str, Any] = {}
    list_key: str | None = None

    for lineno, raw in enumerate(block.splitlines(), start=1):
        stripped = raw.strip()
        if not stripped or stripped.startswith("#"):
            continue

        # List item under a key
        if stripped.startswith("- ") or stripped == "-":
            if list_key is None:
                raise FrontMatterError(f"line {lineno}: list item without a key")
            if result[list_key] is None:
                result[list_key] = []
            result[list_key].append(parse_value(stripped[1:].strip()))
            continue

        if raw[0] in (" ", "\t"):
            raise FrontMatterError(f"line {lineno}: nested values are not supported")

        if ":" not in stripped:
            raise FrontMatterError(f"line {lineno}: expected 'key: value', got {stripped!r}")

        key, _, value = stripped.partition(":")
        key = key.strip()
        if not _KEY.match(key):
            raise FrontMatterError(f"line {lineno}: invalid key {key!r}")
        if key in result:
            raise FrontMatterError(f"line {lineno}: duplicate key {key!r}")

        value = value.strip()
        if value:
            result[key] = parse_value(value)
            list_key = None
        else:
            # Might be a list header
            result[key] = None
            list_key = key

    return result


def parse_value(value: str) -> Any:
    """Convert a raw scalar or flow-list string to a Python value."""
    if len(value) >= 2 and value[0] == value[-1] and value[0] in ("'", '"'):
        return _unquote(value)

    lowered = value.lower()
    if lowered in _TRUE:
        return True
    if lowered in _FALSE:
        return False
    if lowered in _NULL:
        return None

    if _NUMBER.match(value):
        if re.match(r"^[+-]?\d+$", value):
            return int(value)
        return float(value)

    if value.startswith("["):
        if not value.endswith("]"):
            raise FrontMatterError(f"unterminated list: {value!r}")
        return [parse_value(item) for item in _split_flow(value[1:-1])]

    if value[0] in ("'", '"'):
        raise FrontMatterError(f"unterminated quoted string: {value!r}")
    return value


def _unquote(value: str) -> str:
    quote, inner = value[0], value[1:-1]
    if quote == "'":
        return inner.replace("''", "'")
    out: list[str] = []
    escaped = False
    for ch in inner:
        if escaped:
            out.append({"n": "\n", "t": "\t"}.get(ch, ch))
            escaped = False
        elif ch == "\\":
            escaped = True
        else:
            out.append(ch)
    return "".join(out)


def _split_flow(inner: str) -> list[str]:
    """Split flow-list contents on commas that are not inside quotes."""
    if not inner.strip():
        return []
    items: list[str] = []
    current: list[str] = []
    quote: str | None = None
    escaped = False
    for ch in inner:
        if quote is not None:
            current.append(ch)
            if escaped:
                escaped = False
            elif ch == "\\" and quote == '"':
                escaped = True
            elif ch == quote:
                quote = None
            continue
        if ch in ("'", '"'):
            quote = ch
            current.append(ch)
        elif ch == ",":
            items.append("".join(current).strip())
            current = []
        else:
            current.append(ch)
    if quote is not None:
        raise FrontMatterError(f"unterminated quoted string in list: [{inner}]")
    items.append("".join(current).strip())
    return items


def dump_value(value: Any) -> str:
    """Render a Python value as a front-matter scalar or flow list."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return repr(value)
    if isinstance(value, (list, tuple, set, frozenset)):
        return "[" + ", ".join(dump_value(item) for item in value) + "]"
    text = str(value)
    if _needs_quotes(text):
        escaped = text.replace("\\", "\\\\").replace('"', '\\"').replace("\n", "\\n")
        return f'"{escaped}"'
    return text


def _needs_quotes(text: str) -> bool:
    if text != text.strip() or not text:
        return True
    lowered = text.lower()
    if lowered in _TRUE or lowered in _FALSE or lowered in _NULL:
        return True
    if _NUMBER.match(text) or text.startswith("-"):
        return True
    return bool(_NEEDS_QUOTES.search(text)) or "\n" in text


def dump_block(metadata: dict[str, Any]) -> str:
    return "".join(f"{key}: {dump_value(value)}\n" for key, value in metadata.items())


def loads(text: str) -> tuple[dict[str, Any], str]:
    """Parse a whole file into (metadata, body)."""
    block, body = split(text)
    if block is None:
        return {}, _trim_body(body)
    return parse_block(block), body


def dumps(metadata: dict[str, Any], body: str) -> str:
    """Serialize metadata and body back into the on-disk format."""
    if not metadata:
        return body if body.endswith("\n") or not body else body + "\n"
    text = f"{DELIMITER}\n{dump_block(metadata)}{DELIMITER}\n\n{body}"
    return text if text.endswith("\n") else text + "\n"
