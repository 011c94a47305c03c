"""
Candidate-scoped rejection errors.

Every stage of the verification pipeline raises one of these when a candidate
cannot be confirmed. They never escape ``verify_sources``: the orchestrator
catches them per candidate and drops that candidate.
"""

from typing import Optional


class CandidateRejected(Exception):
    """Base class for anything that drops a single candidate."""

    reason = "rejected"

    def __init__(self, url: str, detail: Optional[str] = None):
        self.url = url
        self.detail = detail
        message = f"{self.reason}: {url}"
        if detail:
            message += f" ({detail})"
        super().__init__(message)


class InvalidUrl(CandidateRejected):
    reason = "invalid_url"


class BlockedHost(CandidateRejected):
    reason = "blocked_host"


class FetchTimeout(CandidateRejected):
    reason = "fetch_timeout"


class FetchNetworkError(CandidateRejected):
    reason = "fetch_network_error"


class FetchNonOkStatus(CandidateRejected):
    reason = "fetch_non_ok_status"

    def __init__(self, url: str, status_code: int):
        self.status_code = status_code
        super().__init__(url, f"HTTP {status_code}")


class ContentTooLarge(CandidateRejected):
    reason = "content_too_large"


class UnsupportedContentKind(CandidateRejected):
    reason = "unsupported_content_kind"


class ExtractionFailure(CandidateRejected):
    reason = "extraction_failure"


class InsufficientContent(CandidateRejected):
    reason = "insufficient_content"


class NoMatch(CandidateRejected):
    reason = "no_match"
