"""
Helpers on either side of verification: harvesting candidate URLs from model
output, and rendering verified sources back into an answer.
"""

import re
from typing import List, Optional
from urllib.parse import urlparse

from source_verifier.models import VerifiedSource

MAX_LABEL_CHARS = 50

URL_RE = re.compile(r"https?://[^\s\)\"\]>]+", re.IGNORECASE)
TRAILING_PUNCTUATION_RE = re.compile(r"[.,;:!?\)]+$")
PLACEHOLDER_MARKERS = ("example.com", "placeholder")

NO_SOURCES_FOUND_MESSAGE = """I did not find an official source for that yet. To verify this information, I recommend checking:

- Your state's judiciary website (usually [state]courts.gov or courts.[state].gov)
- Your state legislature's website for statutes
- Your local court clerk's office

Would you like me to help you identify the specific website for your state?"""


def label_from_url(url: str) -> str:
    """
    Build a short human-readable label: host without www. plus two path segments.

    Args:
        url: Normalized URL

    Returns:
        Label of at most 50 characters
    """
    try:
        parsed = urlparse(url)
        hostname = parsed.hostname or ""
    except ValueError:
        return url[:MAX_LABEL_CHARS]

    if not hostname:
        return url[:MAX_LABEL_CHARS]

    label = re.sub(r"^www\.", "", hostname)
    path_part = "/".join([p for p in parsed.path.split("/") if p][:2])
    if path_part:
        label += "/" + path_part

    if len(label) > MAX_LABEL_CHARS:
        label = label[: MAX_LABEL_CHARS - 3] + "..."
    return label


def clean_broken_url(url: Optional[str]) -> Optional[str]:
    """
    Strip trailing sentence punctuation and reject placeholder URLs.

    Args:
        url: URL as it appeared in model output

    Returns:
        Cleaned http(s) URL, or None
    """
    if not url:
        return None

    cleaned = TRAILING_PUNCTUATION_RE.sub("", url.strip())

    if any(marker in cleaned for marker in PLACEHOLDER_MARKERS):
        return None

    try:
        parsed = urlparse(cleaned)
    except ValueError:
        return None

    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        return None
    return cleaned


def extract_urls_from_text(text: str) -> List[str]:
    """
    Harvest candidate URLs from a model answer, in order, without duplicates.

    Args:
        text: Free text that may contain URLs

    Returns:
        Cleaned http(s) URLs
    """
    urls = []
    for match in URL_RE.findall(text or ""):
        cleaned = clean_broken_url(match)
        if cleaned and cleaned not in urls:
            urls.append(cleaned)
    return urls


def format_sources(sources: List[VerifiedSource]) -> str:
    """
    Render the Sources block appended to an answer.

    Args:
        sources: Verified sources in display order

    Returns:
        Block starting with a blank line, or '' when there are no sources
    """
    if not sources:
        return ""

    lines = [f"- {source.label} - {source.url}" for source in sources]
    return "\n\nSources:\n" + "\n".join(lines)
