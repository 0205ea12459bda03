"""Storage driver contract and the shared file-driver implementation."""

from __future__ import annotations

import logging
import os
from abc import ABC, abstractmethod
from collections.abc import Iterator
from typing import Any

from inkwell.paths import PathResolver, PathToken
from inkwell.shared.errors import ParseError, PathTraversalError, StorageUnavailableError

logger = logging.getLogger(__name__)

RawRecord = dict[str, Any]


class StorageDriver(ABC):
    """Reads and writes whole records addressed by a string key."""

    @abstractmethod
    def load(self, key: str) -> RawRecord | None:
        """Return the record stored under ``key``, or ``None`` if absent.

        Raises ``ParseError`` if the stored record cannot be decoded.
        """

    @abstractmethod
    def save(self, key: str, record: RawRecord) -> None:
        """Replace the record stored under ``key`` with ``record``."""

    @abstractmethod
    def delete(self, key: str) -> bool:
        """Remove ``key``.  Returns ``False`` if nothing was stored."""

    @abstractmethod
    def list(self) -> Iterator[str]:
        """Lazily yield every stored key."""

    def exists(self, key: str) -> bool:
        return self.load(key) is not None

    def modified_at(self, key: str) -> float | None:
        """Modification time of the stored record, if the backend tracks one."""
        return None


class FileDriver(StorageDriver):
    """One file per record at ``{base}/{collection}/{key}.{extension}``.

    Every path goes through the ``PathResolver``.  Writes replace the file
    in place; concurrent writers to one key are not serialized.
    """

    extension: str = ""

    def __init__(self, resolver: PathResolver, base: str, collection: str) -> None:
        self._resolver = resolver
        self._base = base
        self._collection = collection.strip("/")

    @property
    def collection(self) -> str:
        return self._collection

    @abstractmethod
    def decode(self, key: str, text: str) -> RawRecord:
        """Turn file contents into a record; raise ``ParseError`` on bad input."""

    @abstractmethod
    def encode(self, record: RawRecord) -> str:
        """Turn a record into file contents."""

    # -- Paths ----------------------------------------------------------------

    def path_for(self, key: str) -> PathToken:
        if not key or "/" in key or "\\" in key or key.startswith("."):
            raise PathTraversalError(
                f"Invalid record key: {key!r}", base=self._base, relative_path=key
            )
        return self._resolver.resolve(self._base, f"{self._collection}/{key}.{self.extension}")

    def directory(self) -> PathToken:
        return self._resolver.resolve(self._base, self._collection)

    # -- StorageDriver ----------------------------------------------------------

    def load(self, key: str) -> RawRecord | None:
        token = self.path_for(key)
        if not token.path.exists():
            return None
        try:
            text = token.path.read_text(encoding="utf-8")
        except UnicodeDecodeError as exc:
            raise ParseError(key, f"not valid UTF-8: {exc}") from exc
        except OSError as exc:
            raise _unavailable(f"Cannot read record '{key}'", token, exc) from exc
        return self.decode(key, text)

    def save(self, key: str, record: RawRecord) -> None:
        token = self.path_for(key)
        content = self.encode(record)
        try:
            token.path.parent.mkdir(parents=True, exist_ok=True)
            token.path.write_text(content, encoding="utf-8")
        except OSError as exc:
            raise _unavailable(f"Cannot write record '{key}'", token, exc) from exc
        logger.debug("Saved %s/%s to %s", self._collection, key, token.path)

    def delete(self, key: str) -> bool:
        token = self.path_for(key)
        try:
            token.path.unlink()
        except FileNotFoundError:
            return False
        except OSError as exc:
            raise _unavailable(f"Cannot delete record '{key}'", token, exc) from exc
        return True

    def list(self) -> Iterator[str]:
        suffix = f".{self.extension}"
        for token in self._resolver.iter_dir(self.directory(), suffix):
            if not token.name.startswith("."):
                yield token.name[: -len(suffix)]

    def exists(self, key: str) -> bool:
        return self.path_for(key).path.is_file()

    def modified_at(self, key: str) -> float | None:
        token = self.path_for(key)
        try:
            return token.path.stat().st_mtime
        except FileNotFoundError:
            return None


def _unavailable(message: str, token: PathToken, exc: OSError) -> StorageUnavailableError:
    path = token.path
    err = StorageUnavailableError(
        f"{message}: {exc.strerror or exc}",
        path=str(path),
        dir_exists=path.parent.is_dir(),
        file_exists=path.exists(),
        writable=os.access(path.parent, os.W_OK) if path.parent.exists() else False,
    )
    logger.error("%s", err)
    return err
