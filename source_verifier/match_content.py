"""
Decide whether fetched content substantiates a citation using deterministic
text matching.

Three strategies are tried in order and the first that succeeds wins:

1. Quote match   - the first 12 words of the quote appear verbatim
2. Keyword match - at least two distinct key terms appear in the body
3. Title match   - the page title covers the topic and the body has a key term

All comparisons run on ``normalize_text`` output. There is no fuzzy or
semantic matching; a page that paraphrases the claim will not verify.
"""

import logging
from typing import Iterable, List, Optional

from source_verifier.errors import NoMatch
from source_verifier.models import ExtractedContent, MatchResult
from source_verifier.utils.text_helpers import normalize_text, normalized_words

logger = logging.getLogger(__name__)

MIN_QUOTE_WORDS = 5
QUOTE_PHRASE_WORDS = 12
MIN_KEY_TERM_MATCHES = 2
MIN_KEY_TERM_CHARS = 2
MIN_TOPIC_WORD_CHARS = 4  # topic words must be longer than 3 chars

SNIPPET_BEFORE = 40
SNIPPET_AFTER = 120


def _normalized_terms(key_terms: Iterable[str]) -> List[str]:
    """Normalize key terms, dropping short ones and duplicates (order kept)."""
    terms = []
    for term in key_terms:
        normalized = normalize_text(term)
        if len(normalized) < MIN_KEY_TERM_CHARS or normalized in terms:
            continue
        terms.append(normalized)
    return terms


def check_quote_match(normalized_text: str, quote: Optional[str]) -> Optional[MatchResult]:
    """
    Look for the opening words of a quote in the normalized text.

    Args:
        normalized_text: Normalized body text
        quote: Quoted passage the citation should contain

    Returns:
        MatchResult if the phrase is present, None otherwise (including
        quotes shorter than five words)
    """
    if not quote:
        return None

    words = normalized_words(quote)
    if len(words) < MIN_QUOTE_WORDS:
        return None

    search_phrase = " ".join(words[:QUOTE_PHRASE_WORDS])
    index = normalized_text.find(search_phrase)
    if index == -1:
        return None

    return MatchResult(matched_on="quote", index=index)


def check_key_terms(normalized_text: str, key_terms: Iterable[str]) -> Optional[MatchResult]:
    """
    Require at least two distinct key terms in the normalized text.

    Args:
        normalized_text: Normalized body text
        key_terms: Raw key terms

    Returns:
        MatchResult at the first matching term, or None
    """
    match_count = 0
    first_index = -1

    for term in _normalized_terms(key_terms):
        index = normalized_text.find(term)
        if index != -1:
            match_count += 1
            if first_index == -1:
                first_index = index

    if match_count < MIN_KEY_TERM_MATCHES:
        return None

    return MatchResult(matched_on="keyword", index=first_index)


def check_title_match(
    title: str, query_topic: str, normalized_text: str, key_terms: Iterable[str]
) -> Optional[MatchResult]:
    """
    Accept a page whose title covers the topic and whose body has a key term.

    Args:
        title: Raw page title
        query_topic: Topic string
        normalized_text: Normalized body text
        key_terms: Raw key terms

    Returns:
        MatchResult at the first key term found in the body, or None
    """
    normalized_title = normalize_text(title)
    topic_words = [w for w in normalized_words(query_topic) if len(w) >= MIN_TOPIC_WORD_CHARS]

    title_matches = sum(1 for word in topic_words if word in normalized_title)
    if title_matches < min(2, len(topic_words)):
        return None

    for term in _normalized_terms(key_terms):
        index = normalized_text.find(term)
        if index != -1:
            return MatchResult(matched_on="title", index=index)

    return None


def match_content(
    url: str,
    content: ExtractedContent,
    query_topic: str,
    key_terms: List[str],
    quote: Optional[str] = None,
) -> MatchResult:
    """
    Run the three strategies in order against extracted content.

    Args:
        url: Candidate URL (for error reporting)
        content: Extracted text and title
        query_topic: Topic string
        key_terms: Raw key terms
        quote: Optional quoted passage

    Returns:
        MatchResult from the first strategy that succeeds

    Raises:
        NoMatch: If none of the strategies succeed
    """
    normalized_text = normalize_text(content.text)

    result = (
        check_quote_match(normalized_text, quote)
        or check_key_terms(normalized_text, key_terms)
        or check_title_match(content.title, query_topic, normalized_text, key_terms)
    )

    if result is None:
        raise NoMatch(url)

    logger.debug(f"Matched {url} on {result.matched_on} at {result.index}")
    return result


def extract_snippet(
    text: str,
    normalized_index: int,
    normalized_length: Optional[int] = None,
    before: int = SNIPPET_BEFORE,
    after: int = SNIPPET_AFTER,
) -> str:
    """
    Cut a short excerpt of the original text around a match.

    The match index comes from normalized text, which can be shorter than the
    original. The offset is scaled by the length ratio, so the window lands
    near the match rather than exactly on it.

    Args:
        text: Original (non-normalized) extracted text
        normalized_index: Match offset in normalized text
        normalized_length: Length of the normalized text (computed if omitted)
        before: Characters kept before the match
        after: Characters kept after the match

    Returns:
        Excerpt with leading/trailing '...' where clipped
    """
    if not text:
        return ""

    if normalized_length is None:
        normalized_length = len(normalize_text(text))

    if normalized_length > 0:
        approx_index = int(normalized_index * len(text) / normalized_length)
    else:
        approx_index = normalized_index
    approx_index = max(0, min(approx_index, len(text) - 1))

    start = max(0, approx_index - before)
    end = min(len(text), approx_index + after)

    snippet = text[start:end].strip()
    if start > 0:
        snippet = "..." + snippet
    if end < len(text):
        snippet = snippet + "..."
    return snippet
