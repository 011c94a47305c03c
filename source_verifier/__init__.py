"""
Source verifier - confirm model-proposed citations by fetching and matching
their content before they are shown as sources.
"""

__version__ = "0.1.0"

from source_verifier.config import VerifierSettings
from source_verifier.classify_domain import DEFAULT_DOMAIN_PATTERNS, DomainPatternSet
from source_verifier.format_sources import (
    NO_SOURCES_FOUND_MESSAGE,
    clean_broken_url,
    extract_urls_from_text,
    format_sources,
)
from source_verifier.key_terms import extract_key_terms_from_text, extract_topic_from_context
from source_verifier.models import VerificationRequest, VerifiedSource
from source_verifier.verify_sources import verify_sources, verify_sources_async

__all__ = [
    "DEFAULT_DOMAIN_PATTERNS",
    "DomainPatternSet",
    "NO_SOURCES_FOUND_MESSAGE",
    "VerificationRequest",
    "VerifiedSource",
    "VerifierSettings",
    "clean_broken_url",
    "extract_key_terms_from_text",
    "extract_topic_from_context",
    "extract_urls_from_text",
    "format_sources",
    "verify_sources",
    "verify_sources_async",
]
