"""Configuration loaded from .inkwell.toml and env vars.

Loading order: defaults → TOML file → env vars.
"""

from __future__ import annotations

import logging
import os
import tomllib
from pathlib import Path

from pydantic import BaseModel, Field

from inkwell.content.index import ArticleIndex
from inkwell.content.repository import ArticleRepository, DocumentationRepository
from inkwell.db.registry import DatabaseRegistry, DatabaseSpec
from inkwell.db.schemas import ACCOUNTS, AUDIT, CONTENT_INDEX, SCHEMAS
from inkwell.paths import PathResolver
from inkwell.storage import create_file_driver

logger = logging.getLogger(__name__)

CONFIG_FILENAME = ".inkwell.toml"
CONFIG_SEARCH_PATHS = [
    Path("."),
]
GLOBAL_CONFIG = Path.home() / ".config" / "inkwell" / "config.toml"


def _default_directories() -> dict[str, str]:
    return {"content": "content", "var": "var", "databases": "var/orbit"}


class PathsConfig(BaseModel):
    """[paths] section: the allow-list of base directories."""

    root: str = "."
    directories: dict[str, str] = Field(default_factory=_default_directories)
    forbidden_prefixes: list[str] = Field(default_factory=lambda: [".env"])

    def resolved_directories(self) -> dict[str, Path]:
        """Directories with relative entries anchored at ``root``."""
        root = Path(self.root).expanduser()
        resolved: dict[str, Path] = {}
        for name, directory in self.directories.items():
            path = Path(directory).expanduser()
            resolved[name] = path if path.is_absolute() else root / path
        return resolved


class DatabaseEntryConfig(BaseModel):
    """A single database entry (e.g. [databases.accounts])."""

    filename: str
    description: str = ""


def _default_databases() -> dict[str, DatabaseEntryConfig]:
    return {
        CONTENT_INDEX: DatabaseEntryConfig(
            filename="content-index.db", description="Metadata index for file-backed content"
        ),
        ACCOUNTS: DatabaseEntryConfig(filename="accounts.db", description="User accounts"),
        AUDIT: DatabaseEntryConfig(
            filename="audit.db", description="Audit trail of administrative actions"
        ),
    }


class ContentSectionConfig(BaseModel):
    """[content] section."""

    words_per_minute: int = 200
    excerpt_length: int = 160
    driver: str = "markdown"
    articles_collection: str = "articles"
    docs_collection: str = "docs"


class InkwellConfig(BaseModel):
    """Top-level configuration model."""

    paths: PathsConfig = Field(default_factory=PathsConfig)
    databases: dict[str, DatabaseEntryConfig] = Field(default_factory=_default_databases)
    content: ContentSectionConfig = Field(default_factory=ContentSectionConfig)

    def build_resolver(self) -> PathResolver:
        """PathResolver over the configured base directories."""
        return PathResolver(
            self.paths.resolved_directories(),
            forbidden_prefixes=list(self.paths.forbidden_prefixes),
        )

    def database_specs(self) -> dict[str, DatabaseSpec]:
        """Registry specs; known databases get their schema attached."""
        return {
            name: DatabaseSpec(
                filename=entry.filename,
                description=entry.description,
                schema_sql=SCHEMAS.get(name, ""),
            )
            for name, entry in self.databases.items()
        }

    def create_registry(self, resolver: PathResolver | None = None) -> DatabaseRegistry:
        return DatabaseRegistry(resolver or self.build_resolver(), self.database_specs())

    def article_repository(
        self, resolver: PathResolver, registry: DatabaseRegistry | None = None
    ) -> ArticleRepository:
        """Articles repository; indexed into ``content-index`` when a registry is given."""
        return ArticleRepository(
            create_file_driver(self.content.driver, resolver, self.content.articles_collection),
            index=ArticleIndex(registry) if registry is not None else None,
            words_per_minute=self.content.words_per_minute,
            excerpt_length=self.content.excerpt_length,
        )

    def documentation_repository(self, resolver: PathResolver) -> DocumentationRepository:
        return DocumentationRepository(
            create_file_driver(self.content.driver, resolver, self.content.docs_collection)
        )


def load_config(path: str | Path | None = None) -> InkwellConfig:
    """Load configuration from a TOML file.

    Search order:
    1. Explicit path (if provided)
    2. .inkwell.toml in CWD
    3. ~/.config/inkwell/config.toml

    Then overlay environment variables.

    Args:
        path: Explicit path to a TOML file.

    Returns:
        Merged InkwellConfig.
    """
    data: dict[str, object] = {}

    if path is not None:
        toml_path = Path(path)
        if toml_path.exists():
            data = _load_toml(toml_path)
        else:
            logger.warning("Config file not found: %s", toml_path)
    else:
        for search_dir in CONFIG_SEARCH_PATHS:
            candidate = search_dir / CONFIG_FILENAME
            if candidate.exists():
                data = _load_toml(candidate)
                logger.info("Loaded config from %s", candidate)
                break
        if not data and GLOBAL_CONFIG.exists():
            data = _load_toml(GLOBAL_CONFIG)
            logger.info("Loaded config from %s", GLOBAL_CONFIG)

    config = InkwellConfig.model_validate(data) if data else InkwellConfig()

    return _apply_env_vars(config)


def _load_toml(path: Path) -> dict[str, object]:
    """Load a TOML file and return the data dict."""
    try:
        with open(path, "rb") as f:
            return tomllib.load(f)
    except (tomllib.TOMLDecodeError, OSError) as exc:
        logger.warning("Failed to parse %s: %s", path, exc)
        return {}


def _apply_env_vars(config: InkwellConfig) -> InkwellConfig:
    """Apply environment variable overrides to config."""
    data = config.model_dump()

    root = os.environ.get("INKWELL_ROOT")
    if root is not None:
        data["paths"]["root"] = root

    dir_mapping: dict[str, str] = {
        "INKWELL_CONTENT_DIR": "content",
        "INKWELL_VAR_DIR": "var",
        "INKWELL_DATABASE_DIR": "databases",
    }
    for env_var, name in dir_mapping.items():
        value = os.environ.get(env_var)
        if value is not None:
            data["paths"]["directories"][name] = value

    wpm_raw = os.environ.get("INKWELL_WORDS_PER_MINUTE")
    if wpm_raw is not None:
        data["content"]["words_per_minute"] = int(wpm_raw)

    return InkwellConfig.model_validate(data)
