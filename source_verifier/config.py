"""
Settings for the source verifier.

Defaults match production behavior. ``VerifierSettings.from_env()`` lets a
deployment override them with ``SOURCE_VERIFIER_*`` environment variables:

    SOURCE_VERIFIER_FETCH_TIMEOUT_MS      per-candidate fetch deadline (8000)
    SOURCE_VERIFIER_MAX_CANDIDATES        candidates fetched per request (8)
    SOURCE_VERIFIER_MAX_RESULTS           verified sources returned (5)
    SOURCE_VERIFIER_MIN_CONTENT_CHARS     minimum normalized text length (100)
    SOURCE_VERIFIER_MAX_CONTENT_BYTES     largest body downloaded (5000000)
    SOURCE_VERIFIER_USER_AGENT            client identifier sent with fetches
    SOURCE_VERIFIER_ALLOW_PRIVATE_HOSTS   "true" to skip the internal address guard
    SOURCE_VERIFIER_DOMAIN_PATTERNS_FILE  JSON file replacing the official domain list
    APP_ENV                               "production" silences candidate logging
"""

import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Mapping, Optional

from source_verifier.classify_domain import (
    DEFAULT_DOMAIN_PATTERNS,
    DomainPatternSet,
    load_domain_patterns,
)

DEFAULT_USER_AGENT = "Mozilla/5.0 (compatible; CivillaBot/1.0)"
DEFAULT_ACCEPT = "text/html,text/plain,application/pdf,*/*"


@dataclass(frozen=True)
class VerifierSettings:
    fetch_timeout_ms: int = 8000
    max_candidates: int = 8
    max_results: int = 5
    min_content_chars: int = 100
    max_content_bytes: int = 5_000_000
    user_agent: str = DEFAULT_USER_AGENT
    accept: str = DEFAULT_ACCEPT
    allow_private_hosts: bool = False
    environment: str = "development"
    domain_patterns: DomainPatternSet = DEFAULT_DOMAIN_PATTERNS

    @property
    def fetch_timeout_sec(self) -> float:
        return self.fetch_timeout_ms / 1000

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"

    def with_overrides(self, **changes) -> "VerifierSettings":
        return replace(self, **changes)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "VerifierSettings":
        """
        Build settings from environment variables.

        Args:
            environ: Mapping to read instead of ``os.environ`` (for tests)

        Returns:
            VerifierSettings

        Raises:
            ValueError: If a numeric variable isn't a positive integer or the
                pattern file is malformed
        """
        env = os.environ if environ is None else environ

        domain_patterns = DEFAULT_DOMAIN_PATTERNS
        patterns_file = env.get("SOURCE_VERIFIER_DOMAIN_PATTERNS_FILE")
        if patterns_file:
            domain_patterns = load_domain_patterns(Path(patterns_file))

        return cls(
            fetch_timeout_ms=_positive_int(env, "SOURCE_VERIFIER_FETCH_TIMEOUT_MS", cls.fetch_timeout_ms),
            max_candidates=_positive_int(env, "SOURCE_VERIFIER_MAX_CANDIDATES", cls.max_candidates),
            max_results=_positive_int(env, "SOURCE_VERIFIER_MAX_RESULTS", cls.max_results),
            min_content_chars=_positive_int(env, "SOURCE_VERIFIER_MIN_CONTENT_CHARS", cls.min_content_chars),
            max_content_bytes=_positive_int(env, "SOURCE_VERIFIER_MAX_CONTENT_BYTES", cls.max_content_bytes),
            user_agent=env.get("SOURCE_VERIFIER_USER_AGENT", DEFAULT_USER_AGENT),
            allow_private_hosts=env.get("SOURCE_VERIFIER_ALLOW_PRIVATE_HOSTS", "false").lower() == "true",
            environment=env.get("APP_ENV", "development"),
            domain_patterns=domain_patterns,
        )


def _positive_int(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name)
    if raw is None or raw == "":
        return default
    try:
        value = int(raw)
    except ValueError as e:
        raise ValueError(f"{name} must be an integer, got: {raw}") from e
    if value <= 0:
        raise ValueError(f"{name} must be positive, got: {value}")
    return value
