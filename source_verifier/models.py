"""
Request, output and per-candidate pipeline models.
"""

from dataclasses import dataclass
from typing import List, Literal, Optional

from pydantic import BaseModel, Field

SourceKind = Literal["official", "secondary"]
MatchType = Literal["quote", "keyword", "title"]

# Lower sorts first
MATCH_PRECEDENCE = {"quote": 0, "keyword": 1, "title": 2}


# ===== Input / Output =====

class VerificationRequest(BaseModel):
    query_topic: str
    key_terms: List[str] = Field(default_factory=list)
    quote: Optional[str] = None
    candidates: List[str] = Field(default_factory=list)


class VerifiedSource(BaseModel):
    """A citation whose content was fetched and matched."""
    label: str
    url: str
    kind: SourceKind
    verified: Literal[True] = True
    matched_on: MatchType
    match_snippet: Optional[str] = None


# ===== Pipeline state =====

@dataclass
class ContentPayload:
    """Body and headers of a successful fetch."""

    url: str
    content: bytes
    content_type: str
    content_kind: str  # 'html', 'text' or 'pdf'
    charset: Optional[str] = None


@dataclass
class ExtractedContent:
    text: str
    title: str


@dataclass
class MatchResult:
    matched_on: MatchType
    index: int  # offset into the normalized text


@dataclass
class Candidate:
    """One candidate URL and the state its own pipeline branch accumulates."""

    position: int
    url: str
    content_kind: Optional[str] = None
    text: str = ""
    title: str = ""
    matched_on: Optional[MatchType] = None
    match_index: int = -1
    snippet: Optional[str] = None
    rejection: Optional[str] = None
