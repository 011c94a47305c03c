"""
Fetch one candidate URL and classify the response by declared content kind.

Each call is single-shot: no retries, no cache, no shared state. One
monotonic deadline of ``fetch_timeout_ms`` covers the whole fetch: DNS
lookups for the address guard, every redirect hop, connect, headers and the
body download. The body is read one socket read at a time with the socket
timeout set to whatever is left, so a slow-dripping server is cut off at the
deadline.

Redirects are followed here rather than by requests so that every hop passes
the internal-address guard before a request is sent to it.
"""

import logging
import socket
import time
from typing import Optional
from urllib.parse import urljoin, urlparse

import requests
import urllib3

from source_verifier.config import VerifierSettings
from source_verifier.errors import (
    BlockedHost,
    ContentTooLarge,
    FetchNetworkError,
    FetchNonOkStatus,
    FetchTimeout,
    UnsupportedContentKind,
)
from source_verifier.models import ContentPayload
from source_verifier.utils.validation import check_fetch_target

logger = logging.getLogger(__name__)

CHUNK_SIZE = 65536  # 64KB
MAX_REDIRECTS = 5


def classify_content_type(url: str, content_type: str) -> str:
    """
    Map a Content-Type header to the extractor that handles it.

    Args:
        url: URL being fetched (for error reporting)
        content_type: Raw Content-Type header value

    Returns:
        'pdf', 'html' or 'text'

    Raises:
        UnsupportedContentKind: For any other declared type
    """
    lowered = (content_type or "").lower()

    if "application/pdf" in lowered:
        return "pdf"
    if "text/html" in lowered or "application/xhtml+xml" in lowered:
        return "html"
    if "text/plain" in lowered:
        return "text"

    raise UnsupportedContentKind(url, content_type or "missing Content-Type")


def parse_charset(content_type: str) -> Optional[str]:
    """Return the charset parameter of a Content-Type header, if declared."""
    for param in (content_type or "").split(";")[1:]:
        key, _, value = param.strip().partition("=")
        if key.lower() == "charset" and value:
            return value.strip().strip('"').strip("'") or None
    return None


def _remaining(url: str, deadline: float) -> float:
    remaining = deadline - time.monotonic()
    if remaining <= 0:
        raise FetchTimeout(url, "deadline exceeded")
    return remaining


def _check_target(url: str, target: str, settings: VerifierSettings, deadline: float) -> None:
    guard = check_fetch_target(
        target, settings.allow_private_hosts, timeout=_remaining(url, deadline)
    )
    if not guard:
        detail = "; ".join(guard.errors)
        if target != url:
            detail = f"redirected to {target}: {detail}"
        raise BlockedHost(url, detail)


def _send(url: str, target: str, settings: VerifierSettings, deadline: float) -> requests.Response:
    remaining = _remaining(url, deadline)
    try:
        return requests.get(
            target,
            timeout=(remaining, remaining),
            headers={"User-Agent": settings.user_agent, "Accept": settings.accept},
            allow_redirects=False,
            stream=True,
        )
    except requests.Timeout as e:
        raise FetchTimeout(url, str(e)) from e
    except requests.RequestException as e:
        raise FetchNetworkError(url, str(e)) from e


def _redirect_target(url: str, current: str, location: str) -> str:
    target = urljoin(current, location.strip())
    parsed = urlparse(target)
    if parsed.scheme not in ("http", "https") or not parsed.hostname:
        raise FetchNetworkError(url, f"redirect to unsupported location {location!r}")
    return target


def _set_read_timeout(response, timeout: float) -> None:
    connection = getattr(response.raw, "connection", None)
    sock = getattr(connection, "sock", None)
    if sock is not None:
        sock.settimeout(timeout)


def _read_body(response, url: str, deadline: float, max_bytes: int) -> bytes:
    declared_length = response.headers.get("Content-Length")
    if declared_length and declared_length.isdigit() and int(declared_length) > max_bytes:
        raise ContentTooLarge(url, f"{declared_length} bytes declared")

    chunks = []
    received = 0
    try:
        while True:
            _set_read_timeout(response, _remaining(url, deadline))
            # read1 returns after a single socket read instead of waiting to fill the chunk
            chunk = response.raw.read1(CHUNK_SIZE, decode_content=True)
            if not chunk:
                break
            received += len(chunk)
            if received > max_bytes:
                raise ContentTooLarge(url, f"more than {max_bytes} bytes")
            chunks.append(chunk)
    except (urllib3.exceptions.ReadTimeoutError, socket.timeout) as e:
        raise FetchTimeout(url, str(e)) from e
    except (urllib3.exceptions.HTTPError, OSError) as e:
        raise FetchNetworkError(url, str(e)) from e

    return b"".join(chunks)


def fetch_content(url: str, settings: Optional[VerifierSettings] = None) -> ContentPayload:
    """
    Fetch a normalized https URL and return its body.

    Args:
        url: Normalized https URL
        settings: Verifier settings (default: built-in defaults)

    Returns:
        ContentPayload with body bytes and content kind

    Raises:
        BlockedHost: If the host, or any redirect hop, is internal/loopback
        FetchTimeout: If the fetch as a whole passes the deadline
        FetchNetworkError: On connection and protocol errors, bad or too many redirects
        FetchNonOkStatus: If the final status is not exactly 200
        UnsupportedContentKind: If the body is not HTML, plain text or PDF
        ContentTooLarge: If the body exceeds max_content_bytes
    """
    if settings is None:
        settings = VerifierSettings()

    deadline = time.monotonic() + settings.fetch_timeout_sec

    target = url
    for _ in range(MAX_REDIRECTS + 1):
        _check_target(url, target, settings, deadline)
        response = _send(url, target, settings, deadline)
        if not response.is_redirect:
            break
        location = response.headers.get("Location", "")
        response.close()
        logger.debug(f"Redirect {target} -> {location}")
        target = _redirect_target(url, target, location)
    else:
        raise FetchNetworkError(url, f"more than {MAX_REDIRECTS} redirects")

    try:
        if response.status_code != 200:
            raise FetchNonOkStatus(url, response.status_code)

        content_type = response.headers.get("Content-Type", "")
        content_kind = classify_content_type(url, content_type)
        content = _read_body(response, url, deadline, settings.max_content_bytes)
    finally:
        response.close()

    logger.debug(f"Fetched {url} ({content_kind}, {len(content)} bytes)")

    return ContentPayload(
        url=url,
        content=content,
        content_type=content_type,
        content_kind=content_kind,
        charset=parse_charset(content_type),
    )
