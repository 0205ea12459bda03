"""Secure path resolution.

Every filesystem location the storage layer touches is produced here.
``PathResolver.resolve`` maps a symbolic base directory plus a caller
supplied relative path onto a ``PathToken``: a canonical absolute path that
is guaranteed to lie inside the named base directory.  Anything that looks
like a traversal attempt raises ``PathTraversalError``; there is no
fallback to plain concatenation.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterator, Mapping
from pathlib import Path
from urllib.parse import unquote

from inkwell.shared.errors import PathTraversalError

logger = logging.getLogger(__name__)

# Checked case-insensitively against the raw path and every decoded form.
TRAVERSAL_PATTERNS: tuple[str, ...] = (
    "../",
    "..\\",
    "..../",
    "....\\",
    "%2e%2e%2f",
    "%2e%2e%5c",
    "%2e%2e/",
    "%2e%2e\\",
    "..%2f",
    "..%5c",
    "%252e%252e%252f",
    "%252e%252e%255c",
    "%c0%ae%c0%ae",
)

# Upper bound on nested percent-decoding passes.
_MAX_DECODE_PASSES = 3

# Rooted POSIX/UNC paths and Windows drive prefixes.
_ABSOLUTE = re.compile(r"^([/\\]|[A-Za-z]:)")

_TOKEN_GUARD = object()


class PathToken:
    """A validated absolute path inside one allow-listed base directory.

    Only ``PathResolver`` can create tokens.  Tokens behave like paths for
    ``open()`` and ``os`` functions via ``__fspath__``.
    """

    __slots__ = ("_base", "_path")

    def __init__(self, base: str, path: Path, *, _guard: object = None) -> None:
        if _guard is not _TOKEN_GUARD:
            raise TypeError("PathToken instances are created by PathResolver.resolve()")
        self._base = base
        self._path = path

    @property
    def base(self) -> str:
        return self._base

    @property
    def path(self) -> Path:
        return self._path

    @property
    def name(self) -> str:
        return self._path.name

    def __fspath__(self) -> str:
        return str(self._path)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, PathToken):
            return NotImplemented
        return self._base == other._base and self._path == other._path

    def __hash__(self) -> int:
        return hash((self._base, self._path))

    def __repr__(self) -> str:
        return f"PathToken({self._base!r}, {str(self._path)!r})"


class PathResolver:
    """Resolves relative paths against a fixed allow-list of base directories."""

    def __init__(
        self,
        directories: Mapping[str, str | Path],
        *,
        forbidden_prefixes: list[str] | None = None,
    ) -> None:
        self._bases: dict[str, Path] = {
            name: Path(directory).expanduser().resolve()
            for name, directory in directories.items()
        }
        self._forbidden = [p.replace("\\", "/").lstrip("/") for p in forbidden_prefixes or []]

    @property
    def bases(self) -> list[str]:
        """Names of the allow-listed base directories."""
        return list(self._bases)

    def base_path(self, base: str) -> Path:
        """Return the canonical directory registered under ``base``."""
        if base not in self._bases:
            raise PathTraversalError(
                f"Base directory '{base}' is not allowed", base=base
            )
        return self._bases[base]

    def resolve(self, base: str, relative_path: str) -> PathToken:
        """Validate ``relative_path`` and return a token inside ``base``.

        Raises:
            PathTraversalError: unknown base, absolute path, traversal sequence,
                forbidden prefix, or a canonical result outside the base directory.
        """
        base_dir = self.base_path(base)

        if "\x00" in relative_path:
            raise PathTraversalError(
                "Null byte in path", base=base, relative_path=relative_path
            )

        if _ABSOLUTE.match(relative_path):
            raise PathTraversalError(
                f"Absolute path '{relative_path}' is not allowed",
                base=base,
                relative_path=relative_path,
            )

        self._reject_traversal(base, relative_path)

        normalized = relative_path.replace("\\", "/")
        for prefix in self._forbidden:
            if normalized == prefix or normalized.startswith(prefix.rstrip("/") + "/"):
                raise PathTraversalError(
                    f"Access to '{relative_path}' is forbidden",
                    base=base,
                    relative_path=relative_path,
                )

        candidate = (base_dir / normalized).resolve()
        if candidate != base_dir and not candidate.is_relative_to(base_dir):
            logger.warning(
                "Rejected path %r: resolves to %s outside base %r", relative_path, candidate, base
            )
            raise PathTraversalError(
                f"Path '{relative_path}' resolves outside the allowed directory '{base}'",
                base=base,
                relative_path=relative_path,
            )

        return PathToken(base, candidate, _guard=_TOKEN_GUARD)

    def base_token(self, base: str) -> PathToken:
        """Return a token for the base directory itself."""
        return PathToken(base, self.base_path(base), _guard=_TOKEN_GUARD)

    def child(self, parent: PathToken, name: str) -> PathToken:
        """Resolve a single entry ``name`` inside the directory ``parent``."""
        if "/" in name or "\\" in name:
            raise PathTraversalError(
                f"'{name}' is not a single path segment", base=parent.base, relative_path=name
            )
        base_dir = self.base_path(parent.base)
        relative = parent.path.relative_to(base_dir) / name
        return self.resolve(parent.base, relative.as_posix())

    def iter_dir(self, directory: PathToken, suffix: str = "") -> Iterator[PathToken]:
        """Yield tokens for files in ``directory`` ending in ``suffix``, sorted by name."""
        if not directory.path.is_dir():
            return
        for entry in sorted(directory.path.iterdir()):
            if entry.is_file() and entry.name.endswith(suffix):
                yield self.child(directory, entry.name)

    @staticmethod
    def _reject_traversal(base: str, relative_path: str) -> None:
        candidate = relative_path
        for _ in range(_MAX_DECODE_PASSES + 1):
            lowered = candidate.lower()
            for pattern in TRAVERSAL_PATTERNS:
                if pattern in lowered:
                    raise PathTraversalError(
                        f"Path traversal detected in '{relative_path}'",
                        base=base,
                        relative_path=relative_path,
                    )
            if ".." in re.split(r"[/\\]", lowered):
                raise PathTraversalError(
                    f"Path traversal detected in '{relative_path}'",
                    base=base,
                    relative_path=relative_path,
                )
            decoded = unquote(candidate)
            if decoded == candidate:
                break
            candidate = decoded
