#!/usr/bin/env python3
"""
Verify model-proposed citation URLs by fetching and inspecting their content.

Pipeline per candidate (run concurrently, one worker each):
    normalize URL -> fetch -> extract text -> match -> classify domain
followed by a global rank/truncate step and a search fallback when nothing
verified.

Usage:
    verify-sources --topic TOPIC --key-term TERM [--key-term TERM ...]
                   [--quote TEXT] --candidate URL [--candidate URL ...]
                   [--candidates-file PATH] [--output PATH]

Output:
    Summary on stdout; JSON list of verified sources at --output if given
"""

import argparse
import asyncio
import functools
import logging
import sys
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Any, Iterable, List, Optional

from source_verifier.classify_domain import classify_source
from source_verifier.config import VerifierSettings
from source_verifier.errors import CandidateRejected
from source_verifier.extract_text import extract_content
from source_verifier.fetch_url import fetch_content
from source_verifier.format_sources import label_from_url
from source_verifier.match_content import extract_snippet, match_content
from source_verifier.models import Candidate, VerificationRequest, VerifiedSource
from source_verifier.rank_sources import FALLBACK_LABEL, select_sources
from source_verifier.utils.file_helpers import safe_write_json
from source_verifier.utils.text_helpers import normalize_text
from source_verifier.utils.validation import normalize_candidates

logger = logging.getLogger(__name__)


def verify_candidate(
    candidate: Candidate, request: VerificationRequest, settings: VerifierSettings
) -> Optional[VerifiedSource]:
    """
    Run one candidate through fetch, extract and match.

    Any failure is terminal for this candidate only and is recorded on
    ``candidate.rejection``.

    Args:
        candidate: Pipeline state owned by this worker
        request: The verification request
        settings: Verifier settings

    Returns:
        VerifiedSource, or None if the candidate was dropped
    """
    try:
        payload = fetch_content(candidate.url, settings)
        candidate.content_kind = payload.content_kind

        extracted = extract_content(payload, settings.min_content_chars)
        candidate.text = extracted.text
        candidate.title = extracted.title

        match = match_content(
            candidate.url, extracted, request.query_topic, request.key_terms, request.quote
        )
        candidate.matched_on = match.matched_on
        candidate.match_index = match.index
        candidate.snippet = extract_snippet(
            extracted.text, match.index, len(normalize_text(extracted.text))
        )

    except CandidateRejected as e:
        candidate.rejection = e.reason
        logger.debug(f"Dropped candidate {candidate.position}: {e}")
        return None

    except Exception as e:
        candidate.rejection = "unexpected_error"
        logger.warning(f"Unexpected error verifying {candidate.url}: {e}")
        return None

    return VerifiedSource(
        label=label_from_url(candidate.url),
        url=candidate.url,
        kind=classify_source(candidate.url, settings.domain_patterns),
        verified=True,
        matched_on=candidate.matched_on,
        match_snippet=candidate.snippet or None,
    )


def verify_sources(
    query_topic: str,
    key_terms: Iterable[str],
    quote: Optional[str] = None,
    candidates: Iterable[Any] = (),
    settings: Optional[VerifierSettings] = None,
) -> List[VerifiedSource]:
    """
    Return 1-5 ranked sources confirmed by content inspection.

    Never raises for candidate failures. If no candidate verifies, the single
    entry returned is a clearly labeled search for official sources.

    Args:
        query_topic: Topic string (title matching and fallback search)
        key_terms: Terms expected in relevant content
        quote: Optional passage the source should contain verbatim
        candidates: Raw candidate URLs in model order
        settings: Verifier settings (default: read from environment)

    Returns:
        Verified sources, official first, strongest match first
    """
    if settings is None:
        settings = VerifierSettings.from_env()

    raw_candidates = list(candidates or [])
    if not settings.is_production:
        logger.info(f"Source candidates: {raw_candidates}")

    request = VerificationRequest(
        query_topic=query_topic or "",
        key_terms=[t for t in (key_terms or []) if isinstance(t, str)],
        quote=quote if isinstance(quote, str) else None,
        candidates=normalize_candidates(raw_candidates, settings.max_candidates),
    )

    pipeline = [Candidate(position=i, url=url) for i, url in enumerate(request.candidates)]
    verified: List[VerifiedSource] = []

    if pipeline:
        worker = functools.partial(verify_candidate, request=request, settings=settings)
        with ThreadPoolExecutor(max_workers=len(pipeline)) as executor:
            # map() yields in submission order, which keeps ranking deterministic
            results = list(executor.map(worker, pipeline))
        verified = [source for source in results if source is not None]

        rejected = [c for c in pipeline if c.rejection]
        if rejected:
            reasons = ", ".join(f"{c.url}={c.rejection}" for c in rejected)
            logger.debug(f"Rejected candidates: {reasons}")

    result = select_sources(verified, request.query_topic, settings.max_results)

    if not settings.is_production:
        logger.info(f"Verified sources: {[s.model_dump() for s in result]}")

    return result


async def verify_sources_async(
    query_topic: str,
    key_terms: Iterable[str],
    quote: Optional[str] = None,
    candidates: Iterable[Any] = (),
    settings: Optional[VerifierSettings] = None,
) -> List[VerifiedSource]:
    """Run ``verify_sources`` in the event loop's executor."""
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(
        None,
        functools.partial(
            verify_sources,
            query_topic,
            list(key_terms or []),
            quote,
            list(candidates or []),
            settings,
        ),
    )


def _read_candidates_file(path: Path) -> List[str]:
    with open(path, "r", encoding="utf-8") as f:
        return [line.strip() for line in f if line.strip() and not line.startswith("#")]


def main() -> int:
    """
    CLI entry point.

    Returns:
        Exit code (0=success, 1=configuration or input error)
    """
    parser = argparse.ArgumentParser(
        description="Verify candidate citation URLs by fetching and matching their content"
    )
    parser.add_argument("--topic", required=True, help="Topic of the question being answered")
    parser.add_argument(
        "--key-term", action="append", default=[], dest="key_terms", help="Key term (repeatable)"
    )
    parser.add_argument("--quote", help="Passage the source should contain verbatim")
    parser.add_argument(
        "--candidate", action="append", default=[], dest="candidates", help="Candidate URL (repeatable)"
    )
    parser.add_argument("--candidates-file", help="File with one candidate URL per line")
    parser.add_argument("--output", help="Write verified sources as JSON to this path")
    parser.add_argument("--verbose", action="store_true", help="Log per-candidate rejections")

    args = parser.parse_args()

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO)

    try:
        settings = VerifierSettings.from_env()
        candidates = list(args.candidates)
        if args.candidates_file:
            candidates.extend(_read_candidates_file(Path(args.candidates_file)))
    except (ValueError, FileNotFoundError) as e:
        print(f"[ERROR] Configuration error: {e}", file=sys.stderr)
        return 1

    result = verify_sources(
        query_topic=args.topic,
        key_terms=args.key_terms,
        quote=args.quote,
        candidates=candidates,
        settings=settings,
    )

    if len(result) == 1 and result[0].label == FALLBACK_LABEL:
        print("[WARN] No candidate could be verified; returning search fallback")
    else:
        print(f"[OK] Verified {len(result)} source(s)")

    for source in result:
        print(f"  - [{source.kind}/{source.matched_on}] {source.label} - {source.url}")

    if args.output:
        safe_write_json(Path(args.output), [s.model_dump() for s in result])
        print(f"  Output: {args.output}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
