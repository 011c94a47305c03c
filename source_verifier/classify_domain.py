"""
Classify verified sources as official or secondary by hostname.

The pattern list is a versioned, injectable value. The default set covers
government, judiciary and legislative hosts plus a short allowlist of legal
reference sites. Deployments can replace it with a JSON file of the form::

    {"version": "2025.2", "patterns": ["\\\\.gov$", "courts?\\\\."]}
"""

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Optional, Tuple
from urllib.parse import urlparse

from source_verifier.utils.file_helpers import safe_read_json


@dataclass(frozen=True)
class DomainPatternSet:
    """Named, versioned list of hostname regexes that mark a source as official."""

    version: str
    patterns: Tuple[str, ...]
    compiled: Tuple[re.Pattern, ...] = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        try:
            compiled = tuple(re.compile(p, re.IGNORECASE) for p in self.patterns)
        except re.error as e:
            raise ValueError(f"Invalid domain pattern in set {self.version}: {e}") from e
        object.__setattr__(self, "compiled", compiled)

    def matches(self, hostname: str) -> bool:
        return any(p.search(hostname) for p in self.compiled)

    def extend(self, patterns: Iterable[str], version: Optional[str] = None) -> "DomainPatternSet":
        """Return a new set with extra patterns appended."""
        extra = tuple(p for p in patterns if p not in self.patterns)
        return DomainPatternSet(version=version or self.version, patterns=self.patterns + extra)


DEFAULT_DOMAIN_PATTERNS = DomainPatternSet(
    version="2024.1",
    patterns=(
        r"\.gov$",
        r"\.us$",
        r"courts?\.",
        r"judiciary",
        r"supreme",
        r"legislature",
        r"uscourts\.gov",
        r"law\.cornell\.edu",
    ),
)


def load_domain_patterns(path: Path) -> DomainPatternSet:
    """
    Load a pattern set from a JSON file.

    Args:
        path: JSON file with ``version`` and ``patterns`` keys

    Returns:
        DomainPatternSet

    Raises:
        FileNotFoundError: If the file doesn't exist
        ValueError: If the file is malformed or a pattern doesn't compile
    """
    data = safe_read_json(path)

    version = data.get("version")
    patterns = data.get("patterns")

    if not isinstance(version, str) or not version:
        raise ValueError(f"Domain pattern file {path} needs a non-empty 'version' string")
    if not isinstance(patterns, list) or not all(isinstance(p, str) for p in patterns):
        raise ValueError(f"Domain pattern file {path} needs a 'patterns' list of strings")

    return DomainPatternSet(version=version, patterns=tuple(patterns))


def is_official_domain(url: str, patterns: DomainPatternSet = DEFAULT_DOMAIN_PATTERNS) -> bool:
    """
    Check whether a URL's hostname matches the official pattern set.

    Args:
        url: Normalized https URL
        patterns: Pattern set to match against

    Returns:
        True if the host looks like a government, court or legislative source
    """
    try:
        hostname = (urlparse(url).hostname or "").lower()
    except ValueError:
        return False

    if not hostname:
        return False

    return patterns.matches(hostname)


def classify_source(url: str, patterns: DomainPatternSet = DEFAULT_DOMAIN_PATTERNS) -> str:
    """Return ``"official"`` or ``"secondary"`` for a verified URL."""
    return "official" if is_official_domain(url, patterns) else "secondary"
