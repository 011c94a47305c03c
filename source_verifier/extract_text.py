"""
Extract plain text and a title from fetched PDF, HTML and plain text payloads.

Every path returns the same contract, ``ExtractedContent(text, title)``, with
whitespace collapsed so snippets read cleanly.
"""

import logging
from typing import Optional

# PyMuPDF for PDF extraction
try:
    import fitz  # PyMuPDF
except ImportError:
    fitz = None

# BeautifulSoup for HTML extraction
try:
    from bs4 import BeautifulSoup
except ImportError:
    BeautifulSoup = None

from source_verifier.errors import ExtractionFailure, InsufficientContent, UnsupportedContentKind
from source_verifier.models import ContentPayload, ExtractedContent
from source_verifier.utils.text_helpers import collapse_whitespace, normalize_text

logger = logging.getLogger(__name__)


def extract_text_from_pdf(content: bytes, url: str = "") -> ExtractedContent:
    """
    Extract text and the embedded title from PDF bytes using PyMuPDF.

    Args:
        content: Raw PDF bytes
        url: Source URL (for error reporting)

    Returns:
        ExtractedContent

    Raises:
        ImportError: If PyMuPDF not installed
        ExtractionFailure: If the payload can't be opened or read
    """
    if fitz is None:
        raise ImportError("PyMuPDF (fitz) not installed. Install with: pip install PyMuPDF")

    try:
        doc = fitz.open(stream=content, filetype="pdf")
    except Exception as e:
        raise ExtractionFailure(url, f"PDF open failed: {e}") from e

    try:
        text_parts = []
        for page in doc:
            page_text = page.get_text()
            if page_text.strip():
                text_parts.append(page_text)
        title = (doc.metadata or {}).get("title") or ""
    except Exception as e:
        raise ExtractionFailure(url, f"PDF extraction failed: {e}") from e
    finally:
        doc.close()

    return ExtractedContent(
        text=collapse_whitespace("\n\n".join(text_parts)),
        title=collapse_whitespace(title),
    )


def extract_text_from_html(content: bytes, charset: Optional[str] = None, url: str = "") -> ExtractedContent:
    """
    Extract visible text and the <title> from HTML using BeautifulSoup.

    Script and style blocks are dropped entirely; entities are decoded by
    the parser.

    Args:
        content: Raw HTML bytes
        charset: Charset declared in the Content-Type header, if any
        url: Source URL (for error reporting)

    Returns:
        ExtractedContent

    Raises:
        ImportError: If BeautifulSoup not installed
        ExtractionFailure: If parsing fails
    """
    if BeautifulSoup is None:
        raise ImportError(
            "BeautifulSoup not installed. Install with: pip install beautifulsoup4 lxml"
        )

    try:
        soup = BeautifulSoup(content, "lxml", from_encoding=charset)

        title = ""
        if soup.title is not None:
            title = collapse_whitespace(soup.title.get_text(" "))

        # Remove script and style elements
        for element in soup(["script", "style"]):
            element.decompose()

        text = collapse_whitespace(soup.get_text(separator=" "))
    except Exception as e:
        raise ExtractionFailure(url, f"HTML extraction failed: {e}") from e

    return ExtractedContent(text=text, title=title)


def extract_content(payload: ContentPayload, min_content_chars: int = 100) -> ExtractedContent:
    """
    Extract text from a fetched payload and check there is enough to match.

    Args:
        payload: Successful fetch result
        min_content_chars: Minimum normalized text length (default: 100)

    Returns:
        ExtractedContent

    Raises:
        UnsupportedContentKind: If the content kind has no extractor
        ExtractionFailure: If the extractor fails
        InsufficientContent: If the normalized text is too short
    """
    if payload.content_kind == "pdf":
        extracted = extract_text_from_pdf(payload.content, url=payload.url)
    elif payload.content_kind in ("html", "text"):
        # text/plain is parsed as HTML too: tags stripped, <title> honored
        extracted = extract_text_from_html(payload.content, payload.charset, url=payload.url)
    else:
        raise UnsupportedContentKind(payload.url, payload.content_kind)

    normalized_length = len(normalize_text(extracted.text))
    if normalized_length < min_content_chars:
        raise InsufficientContent(payload.url, f"{normalized_length} chars")

    logger.debug(f"Extracted {payload.url} ({len(extracted.text)} chars, title={extracted.title!r})")

    return extracted
