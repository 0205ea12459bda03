"""In-memory query engine over materialized content records.

Filtering, ordering and relevance scoring operate on plain sequences of
models, so repositories stay thin and the same logic can run over any
snapshot of a collection.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping, Sequence
from datetime import datetime
from typing import Any, Generic, TypeVar

from inkwell.content.models import Article, ContentModel, as_utc, utcnow

M = TypeVar("M", bound=ContentModel)

# Additive weight per query token that matches the field (substring match).
SEARCH_WEIGHTS: dict[str, int] = {
    "title": 10,
    "category": 8,
    "tags": 6,
    "excerpt": 4,
    "author": 3,
    "body": 1,
}

DOC_SEARCH_WEIGHTS: dict[str, int] = {
    "title": 10,
    "category": 8,
    "tags": 6,
    "description": 4,
    "body": 1,
}


def tokenize(query: str) -> list[str]:
    """Lowercase, whitespace-separated query tokens (duplicates dropped)."""
    return list(dict.fromkeys(query.lower().split()))


def score_record(
    record: ContentModel,
    tokens: Sequence[str],
    weights: Mapping[str, int] = SEARCH_WEIGHTS,
) -> int:
    """Relevance of ``record`` for ``tokens`` under ``weights``; 0 means no match.

    List fields score per matching item, every other field scores once per
    token.
    """
    fields: list[tuple[list[str], int]] = []
    for name, weight in weights.items():
        value = _field_value(record, name)
        items = value if isinstance(value, list) else [value]
        fields.append(([str(item).lower() for item in items if item], weight))

    score = 0
    for token in tokens:
        for texts, weight in fields:
            score += weight * sum(1 for text in texts if token in text)
    return score


def score_article(article: Article, tokens: Sequence[str]) -> int:
    return score_record(article, tokens, SEARCH_WEIGHTS)


def rank(
    records: Iterable[M],
    query: str,
    weights: Mapping[str, int] = SEARCH_WEIGHTS,
) -> list[tuple[M, int]]:
    """Score ``records`` against ``query``, highest first.

    Records scoring 0 are dropped.  The sort is stable, so equal scores keep
    the order the records were given in.
    """
    tokens = tokenize(query)
    if not tokens:
        return []
    scored = [(record, score_record(record, tokens, weights)) for record in records]
    matches = [(record, score) for record, score in scored if score > 0]
    matches.sort(key=lambda pair: pair[1], reverse=True)
    return matches


def search(
    records: Iterable[M],
    query: str,
    weights: Mapping[str, int] = SEARCH_WEIGHTS,
) -> list[M]:
    return [record for record, _ in rank(records, query, weights)]


def published(articles: Iterable[Article], now: datetime | None = None) -> list[Article]:
    """Articles visible at ``now``; future-dated ones are held back."""
    moment = as_utc(now or utcnow())
    return [article for article in articles if article.is_published(moment)]


def newest_first(articles: Iterable[Article]) -> list[Article]:
    """Sort by ``published_at`` descending; undated articles go last."""
    return Query(articles).order_by("published_at", descending=True).get()


def collect_categories(records: Iterable[ContentModel]) -> list[str]:
    """Distinct non-empty categories, sorted."""
    return sorted({record.category for record in records if record.category})


def collect_tags(records: Iterable[ContentModel]) -> list[str]:
    """Distinct tags across ``records``, sorted."""
    return sorted({tag for record in records for tag in record.tags})


class Query(Generic[M]):
    """Chainable equality filter over a snapshot of records.

    Example::

        Query(articles).where("category", "php").where("featured", True).first()
    """

    def __init__(self, records: Iterable[M]) -> None:
        self._records = list(records)
        self._predicates: list[Callable[[M], bool]] = []

    def where(self, field: str, value: Any) -> Query[M]:
        """Keep records whose ``field`` equals ``value``.

        List fields (``tags``) match when they contain ``value``; names the
        model does not declare are looked up in ``extra``.
        """

        def predicate(record: M) -> bool:
            actual = _field_value(record, field)
            if isinstance(actual, list) and not isinstance(value, list):
                return value in actual
            return actual == value

        self._predicates.append(predicate)
        return self

    def filter(self, predicate: Callable[[M], bool]) -> Query[M]:
        self._predicates.append(predicate)
        return self

    def order_by(self, field: str, *, descending: bool = False) -> Query[M]:
        """Sort the snapshot on ``field``; records missing it sort last."""
        present = [r for r in self._records if _field_value(r, field) is not None]
        missing = [r for r in self._records if _field_value(r, field) is None]
        present.sort(key=lambda r: _field_value(r, field), reverse=descending)
        self._records = present + missing
        return self

    def get(self) -> list[M]:
        return [r for r in self._records if all(p(r) for p in self._predicates)]

    def first(self) -> M | None:
        for record in self._records:
            if all(p(record) for p in self._predicates):
                return record
        return None

    def count(self) -> int:
        return len(self.get())

    def limit(self, n: int) -> list[M]:
        return self.get()[: max(n, 0)]


def _field_value(record: ContentModel, field: str) -> Any:
    if field in type(record).model_fields:
        return getattr(record, field)
    return record.extra.get(field)
