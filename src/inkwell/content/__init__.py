"""File-backed content: models, repositories, query engine and index."""

from inkwell.content.index import ArticleIndex
from inkwell.content.models import Article, ContentModel, Documentation, slugify
from inkwell.content.query import Query
from inkwell.content.repository import (
    ArticleRepository,
    DocumentationRepository,
    FileRepository,
)

__all__ = [
    "Article",
    "ArticleIndex",
    "ArticleRepository",
    "ContentModel",
    "Documentation",
    "DocumentationRepository",
    "FileRepository",
    "Query",
    "slugify",
]
