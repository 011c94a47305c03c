"""
Canonical text form used for every comparison in the match engine.
"""

import re
from typing import List

_NON_WORD_RE = re.compile(r"[^\w\s]")
_WHITESPACE_RE = re.compile(r"\s+")


def collapse_whitespace(text: str) -> str:
    """Collapse whitespace runs to single spaces and trim."""
    return _WHITESPACE_RE.sub(" ", text).strip()


def normalize_text(text: str) -> str:
    """
    Lowercase, turn punctuation into spaces, collapse whitespace, trim.

    Args:
        text: Raw text (body, title, quote, key term or topic)

    Returns:
        Normalized text
    """
    if not text:
        return ""
    return collapse_whitespace(_NON_WORD_RE.sub(" ", text.lower()))


def normalized_words(text: str) -> List[str]:
    """Split the normalized form of text into words."""
    normalized = normalize_text(text)
    return normalized.split(" ") if normalized else []
