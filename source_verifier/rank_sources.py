"""
Order verified sources and guarantee a non-empty result.
"""

from typing import List
from urllib.parse import quote

from source_verifier.models import MATCH_PRECEDENCE, VerifiedSource

FALLBACK_LABEL = "Search official sources"
FALLBACK_SNIPPET = (
    "No direct official source could be verified. "
    "Use this search to locate the official page."
)
FALLBACK_SEARCH_URL = "https://www.google.com/search?q={query}"
FALLBACK_SITE_FILTER = "site:.gov OR site:.us OR courts"


def _rank_key(source: VerifiedSource):
    return (
        0 if source.kind == "official" else 1,
        MATCH_PRECEDENCE.get(source.matched_on, len(MATCH_PRECEDENCE)),
    )


def rank_sources(sources: List[VerifiedSource], max_results: int = 5) -> List[VerifiedSource]:
    """
    Sort official before secondary, then quote < keyword < title, and truncate.

    ``sorted`` is stable, so sources that tie on both keys keep the order
    they were passed in.

    Args:
        sources: Verified sources in candidate order
        max_results: Result cap (default: 5)

    Returns:
        At most ``max_results`` sources
    """
    return sorted(sources, key=_rank_key)[:max_results]


def build_fallback_source(query_topic: str) -> VerifiedSource:
    """
    Build the single search entry returned when nothing could be verified.

    Args:
        query_topic: Topic string used for the search query

    Returns:
        Secondary VerifiedSource pointing at an official-site search
    """
    search_query = f"{query_topic} {FALLBACK_SITE_FILTER}".strip()
    return VerifiedSource(
        label=FALLBACK_LABEL,
        url=FALLBACK_SEARCH_URL.format(query=quote(search_query, safe="")),
        kind="secondary",
        verified=True,
        matched_on="keyword",
        match_snippet=FALLBACK_SNIPPET,
    )


def select_sources(
    sources: List[VerifiedSource], query_topic: str, max_results: int = 5
) -> List[VerifiedSource]:
    """Rank and truncate, falling back to a search entry when empty."""
    selected = rank_sources(sources, max_results)
    if not selected:
        selected = [build_fallback_source(query_topic)]
    return selected
