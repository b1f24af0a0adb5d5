"""
Multi-token substring search over the normalized address index.
"""
from __future__ import annotations

from itertools import islice
from typing import Iterable, List

from domain.models import MAX_SEARCH_RESULTS, AddressEntry, SearchResult
from services.normalize import normalize_text

MIN_QUERY_LENGTH = 2


def is_query_too_short(raw_query: str | None) -> bool:
    return raw_query is None or len(raw_query.strip()) < MIN_QUERY_LENGTH


def query_tokens(raw_query: str) -> List[str]:
    return [t for t in normalize_text(raw_query).split(" ") if t]


def search_addresses(
    index: Iterable[AddressEntry],
    raw_query: str | None,
    limit: int = MAX_SEARCH_RESULTS,
) -> List[SearchResult]:
    """Return the first ``limit`` entries, in index order, containing every query token.

    Tokens match anywhere in the normalized field, including inside longer
    words ("flo" matches "flores").
    """
    if is_query_too_short(raw_query):
        return []
    # A punctuation-only query has no tokens and matches every entry.
    tokens = query_tokens(raw_query)
    limit = min(limit, MAX_SEARCH_RESULTS)
    matches = (
        entry for entry in index
        if all(token in entry.normalized for token in tokens)
    )
    return [entry.to_result() for entry in islice(matches, limit)]
