"""
Candidate URL normalization and fetch target checks.
"""

import ipaddress
import logging
import socket
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeout
from dataclasses import dataclass
from typing import Any, Iterable, List, Optional
from urllib.parse import urlparse

from source_verifier.errors import FetchTimeout, InvalidUrl

logger = logging.getLogger(__name__)

BLOCKED_HOSTNAMES = {"localhost", "localhost.localdomain", "ip6-localhost", "ip6-loopback"}

# getaddrinfo has no timeout of its own, so lookups run here and are waited on
_RESOLVER = ThreadPoolExecutor(max_workers=16, thread_name_prefix="resolve-host")


@dataclass
class ValidationResult:
    """Result of validation check."""

    valid: bool
    errors: List[str]

    def __bool__(self) -> bool:
        """Allow using as boolean."""
        return self.valid


def _parse_https(url: str) -> str:
    try:
        parsed = urlparse(url)
        # Accessing .port raises ValueError for malformed ports
        parsed.port
    except ValueError as e:
        raise InvalidUrl(url, str(e)) from e

    if parsed.scheme != "https" or not parsed.hostname:
        raise InvalidUrl(url, "missing hostname")
    if any(ch.isspace() for ch in url):
        raise InvalidUrl(url, "whitespace in URL")

    return url


def normalize_url_to_https(raw: Any) -> str:
    """
    Normalize one candidate string to a well-formed https URL.

    ``https://`` URLs are kept as-is, ``http://`` URLs are upgraded, and
    every other scheme (or no scheme) is rejected.

    Args:
        raw: Candidate value proposed by the model

    Returns:
        Normalized https URL

    Raises:
        InvalidUrl: If the candidate is malformed or uses another scheme
    """
    if not isinstance(raw, str):
        raise InvalidUrl(repr(raw), "not a string")

    trimmed = raw.strip()

    if trimmed.startswith("https://"):
        return _parse_https(trimmed)

    if trimmed.startswith("http://"):
        return _parse_https("https://" + trimmed[len("http://"):])

    raise InvalidUrl(trimmed, "unsupported scheme")


def normalize_candidates(candidates: Iterable[Any], limit: int = 8) -> List[str]:
    """
    Normalize candidates, silently dropping invalid ones, and keep the first ``limit``.

    Args:
        candidates: Raw candidate strings in model order
        limit: Maximum number of surviving URLs (default: 8)

    Returns:
        Normalized https URLs in original order
    """
    valid_urls = []
    for raw in candidates:
        try:
            valid_urls.append(normalize_url_to_https(raw))
        except InvalidUrl as e:
            logger.debug(f"Dropping candidate: {e}")
            continue
        if len(valid_urls) >= limit:
            break
    return valid_urls


def _is_blocked_ip(ip_value: str) -> bool:
    ip = ipaddress.ip_address(ip_value)
    return (
        ip.is_private
        or ip.is_loopback
        or ip.is_link_local
        or ip.is_multicast
        or ip.is_reserved
        or ip.is_unspecified
    )


def _getaddrinfo(hostname: str) -> list:
    try:
        return socket.getaddrinfo(hostname, None)
    except (socket.gaierror, UnicodeError):
        return []


def _resolve_host_ips(hostname: str, timeout: Optional[float] = None) -> List[str]:
    """
    Resolve a hostname to its addresses, waiting at most ``timeout`` seconds.

    Raises:
        FutureTimeout: If the lookup is still running after ``timeout``
    """
    addrinfo = _RESOLVER.submit(_getaddrinfo, hostname).result(timeout=timeout)
    ips = set()
    for item in addrinfo:
        sockaddr = item[4]
        if sockaddr:
            ips.add(sockaddr[0])
    return sorted(ips)


def check_fetch_target(
    url: str, allow_private_hosts: bool = False, timeout: Optional[float] = None
) -> ValidationResult:
    """
    Check that a URL does not point at an internal or loopback address.

    Hosts that fail to resolve are allowed here; the fetch itself will fail.

    Args:
        url: Normalized https URL
        allow_private_hosts: Skip the address checks entirely
        timeout: Seconds to wait for the DNS lookup (default: no limit)

    Returns:
        ValidationResult with the blocking reason if invalid

    Raises:
        FetchTimeout: If the DNS lookup takes longer than ``timeout``
    """
    if allow_private_hosts:
        return ValidationResult(valid=True, errors=[])

    hostname = (urlparse(url).hostname or "").lower()
    if not hostname:
        return ValidationResult(valid=False, errors=["missing hostname"])

    if hostname in BLOCKED_HOSTNAMES or hostname.endswith(".localhost"):
        return ValidationResult(valid=False, errors=[f"blocked hostname: {hostname}"])

    try:
        ipaddress.ip_address(hostname)
        addresses = [hostname]
    except ValueError:
        try:
            addresses = _resolve_host_ips(hostname, timeout=timeout)
        except FutureTimeout as e:
            raise FetchTimeout(url, f"DNS lookup for {hostname} exceeded deadline") from e

    errors = [f"blocked address: {ip}" for ip in addresses if _is_blocked_ip(ip)]
    return ValidationResult(valid=len(errors) == 0, errors=errors)
