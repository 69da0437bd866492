"""
Gallery search (stub).

Semantic search over image/text embeddings is not wired up yet. Until it is,
results are ranked by keyword overlap: the fraction of query terms found in
an image's title, keywords or filename. The SearchResult shape is the one the
embedding search will return, so the UI does not change when it lands.
"""

import re
from typing import Iterable, Optional

from core.models import ImageItem, SearchResult

_TERM_RE = re.compile(r"[\w-]+")


def tokenize(text: str) -> list[str]:
    return [t.lower() for t in _TERM_RE.findall(text or "")]


def _haystack(item: ImageItem) -> set[str]:
    terms = set(tokenize(item.title or ""))
    terms.update(tokenize(item.filename))
    for keyword in item.keywords:
        terms.update(tokenize(keyword))
    return terms


def search_items(items: Iterable[ImageItem], query: str, limit: Optional[int] = None) -> list[SearchResult]:
    """
    Rank items by how many query terms they match.

    Args:
        items: Images to search
        query: Free text; split into lowercase terms
        limit: Maximum number of results (None = all)

    Returns:
        Matches with similarity in (0, 1], best first. Ties keep gallery order.
    """
    terms = list(dict.fromkeys(tokenize(query)))
    if not terms:
        return []

    results = []
    for item in items:
        haystack = _haystack(item)
        matched = sum(1 for term in terms if term in haystack)
        if matched:
            results.append(SearchResult(item=item, similarity=matched / len(terms)))

    results.sort(key=lambda r: r.similarity, reverse=True)
    if limit is not None:
        results = results[:limit]
    return results
