"""
Tests for source_verifier/fetch_url.py
"""

import socket
import threading
import time

import pytest
import requests
import urllib3

from source_verifier import fetch_url
from source_verifier.config import VerifierSettings
from source_verifier.errors import (
    BlockedHost,
    ContentTooLarge,
    FetchNetworkError,
    FetchNonOkStatus,
    FetchTimeout,
    UnsupportedContentKind,
)
from source_verifier.fetch_url import (
    MAX_REDIRECTS,
    classify_content_type,
    fetch_content,
    parse_charset,
)
from source_verifier.utils import validation
from tests.conftest import MockResponse

URL = "https://isc.idaho.gov/child-support"
REAL_RESOLVE_HOST_IPS = validation._resolve_host_ips


def _redirect(status_code: int, location: str) -> MockResponse:
    return MockResponse(b"", status_code=status_code, headers={"Location": location})


@pytest.mark.unit
@pytest.mark.parametrize(
    "content_type,expected",
    [
        ("text/html; charset=utf-8", "html"),
        ("application/xhtml+xml", "html"),
        ("TEXT/PLAIN", "text"),
        ("application/pdf", "pdf"),
    ],
)
def test_classify_content_type(content_type, expected):
    """Test mapping of declared content types to extractors."""
    assert classify_content_type(URL, content_type) == expected


@pytest.mark.unit
@pytest.mark.parametrize("content_type", ["application/json", "image/png", ""])
def test_classify_content_type_unsupported(content_type):
    """Test that other content types are rejected."""
    with pytest.raises(UnsupportedContentKind):
        classify_content_type(URL, content_type)


@pytest.mark.unit
def test_parse_charset():
    """Test charset extraction from Content-Type."""
    assert parse_charset('text/html; charset="ISO-8859-1"') == "ISO-8859-1"
    assert parse_charset("text/html") is None


@pytest.mark.unit
def test_fetch_success_sends_headers(fake_web, settings, sample_html):
    """Test a successful single GET with client identifier and Accept header."""
    fake_web.add(URL, MockResponse(sample_html))

    payload = fetch_content(URL, settings)

    assert payload.content == sample_html
    assert payload.content_kind == "html"
    assert payload.charset == "utf-8"

    call = fake_web.calls[0]
    assert call["headers"]["User-Agent"] == settings.user_agent
    assert "application/pdf" in call["headers"]["Accept"]
    assert call["allow_redirects"] is False
    assert call["stream"] is True
    connect_timeout, read_timeout = call["timeout"]
    assert 0 < connect_timeout <= settings.fetch_timeout_sec
    assert 0 < read_timeout <= settings.fetch_timeout_sec


@pytest.mark.unit
@pytest.mark.parametrize("status_code", [201, 204, 301, 404, 500])
def test_fetch_requires_status_200(fake_web, settings, status_code):
    """Test that any status other than exactly 200 drops the candidate."""
    response = MockResponse(b"<html></html>", status_code=status_code)
    fake_web.add(URL, response)

    with pytest.raises(FetchNonOkStatus) as excinfo:
        fetch_content(URL, settings)

    assert excinfo.value.status_code == status_code
    assert response.closed


@pytest.mark.unit
def test_fetch_timeout(fake_web, settings):
    """Test that a request timeout maps to FetchTimeout without retrying."""
    fake_web.add(URL, requests.Timeout("read timed out"))

    with pytest.raises(FetchTimeout):
        fetch_content(URL, settings)

    assert len(fake_web.calls) == 1


@pytest.mark.unit
def test_fetch_network_error(fake_web, settings):
    """Test that connection errors map to FetchNetworkError."""
    fake_web.add(URL, requests.ConnectionError("connection refused"))

    with pytest.raises(FetchNetworkError):
        fetch_content(URL, settings)


@pytest.mark.unit
def test_fetch_error_while_streaming(fake_web, settings):
    """Test that a broken body stream maps to FetchNetworkError."""
    fake_web.add(
        URL,
        MockResponse(b"partial", chunk_error=urllib3.exceptions.ProtocolError("connection reset")),
    )

    with pytest.raises(FetchNetworkError):
        fetch_content(URL, settings)


@pytest.mark.unit
def test_fetch_body_deadline(fake_web, settings, monkeypatch):
    """Test that a download running past the deadline is abandoned between reads."""
    clock = {"now": 0.0}
    monkeypatch.setattr(fetch_url.time, "monotonic", lambda: clock["now"])

    def one_second_per_read():
        clock["now"] += 1.0

    response = MockResponse(b"x" * 200000, on_read=one_second_per_read)
    fake_web.add(URL, response)

    with pytest.raises(FetchTimeout):
        fetch_content(URL, settings)

    # 2s deadline: two reads fit, the third is never attempted
    assert response.raw.position == 2 * fetch_url.CHUNK_SIZE
    assert response.closed


@pytest.mark.unit
def test_fetch_content_too_large(fake_web, settings):
    """Test the body size cap, both declared and streamed."""
    small = settings.with_overrides(max_content_bytes=1000)

    fake_web.add(URL, MockResponse(b"x" * 10, headers={"Content-Length": "5000"}))
    with pytest.raises(ContentTooLarge):
        fetch_content(URL, small)

    fake_web.add(URL, MockResponse(b"x" * 200000))
    with pytest.raises(ContentTooLarge):
        fetch_content(URL, small)


@pytest.mark.unit
def test_fetch_unsupported_content_type(fake_web, settings):
    """Test that JSON responses are dropped."""
    fake_web.add(URL, MockResponse(b"{}", content_type="application/json"))

    with pytest.raises(UnsupportedContentKind):
        fetch_content(URL, settings)


@pytest.mark.unit
def test_fetch_blocks_internal_host_without_request(fake_web, settings):
    """Test that internal targets are refused before any request is made."""
    with pytest.raises(BlockedHost):
        fetch_content("https://127.0.0.1/admin", settings)

    assert fake_web.calls == []


@pytest.mark.unit
def test_fetch_follows_redirect_chain(fake_web, settings, sample_html):
    """Test a relative and an absolute redirect, each hop requested once."""
    first = _redirect(302, "/child-support/current")
    second = _redirect(301, "https://courts.utah.gov/support")
    fake_web.add(URL, first)
    fake_web.add("https://isc.idaho.gov/child-support/current", second)
    fake_web.add("https://courts.utah.gov/support", MockResponse(sample_html))

    payload = fetch_content(URL, settings)

    assert fake_web.fetched_urls == [
        URL,
        "https://isc.idaho.gov/child-support/current",
        "https://courts.utah.gov/support",
    ]
    assert payload.url == URL
    assert payload.content == sample_html
    assert first.closed and second.closed


@pytest.mark.unit
def test_fetch_redirect_to_internal_host_never_requested(fake_web, settings):
    """Test that a redirect hop to an internal address is refused before it is sent."""
    metadata_url = "http://169.254.169.254/latest/meta-data/"
    fake_web.add(URL, _redirect(302, "https://cdn.courts.gov/hop"))
    fake_web.add("https://cdn.courts.gov/hop", _redirect(301, metadata_url))
    fake_web.add_html(metadata_url, "secret")

    with pytest.raises(BlockedHost) as excinfo:
        fetch_content(URL, settings)

    assert fake_web.fetched_urls == [URL, "https://cdn.courts.gov/hop"]
    assert "169.254.169.254" in str(excinfo.value)


@pytest.mark.unit
def test_fetch_redirect_to_hostname_resolving_internally(fake_web, settings, monkeypatch):
    """Test that redirect hops go through the DNS check too."""

    def resolve(hostname, timeout=None):
        return ["10.0.0.5"] if hostname == "intranet.courts.gov" else ["93.184.216.34"]

    monkeypatch.setattr(validation, "_resolve_host_ips", resolve)
    fake_web.add(URL, _redirect(307, "https://intranet.courts.gov/"))

    with pytest.raises(BlockedHost):
        fetch_content(URL, settings)

    assert fake_web.fetched_urls == [URL]


@pytest.mark.unit
def test_fetch_too_many_redirects(fake_web, settings):
    """Test that a redirect loop stops after the hop limit."""
    fake_web.add(URL, _redirect(302, URL))

    with pytest.raises(FetchNetworkError):
        fetch_content(URL, settings)

    assert len(fake_web.calls) == MAX_REDIRECTS + 1


@pytest.mark.unit
def test_fetch_redirect_to_unsupported_scheme(fake_web, settings):
    """Test that a redirect to a non-web location drops the candidate."""
    fake_web.add(URL, _redirect(302, "javascript:alert(1)"))

    with pytest.raises(FetchNetworkError):
        fetch_content(URL, settings)

    assert fake_web.fetched_urls == [URL]


@pytest.mark.unit
def test_fetch_dns_lookup_counts_against_deadline(fake_web, monkeypatch):
    """Test that a hanging DNS lookup ends the fetch at the deadline without a request."""
    release = threading.Event()

    def hanging_getaddrinfo(hostname):
        release.wait(5)
        return []

    monkeypatch.setattr(validation, "_resolve_host_ips", REAL_RESOLVE_HOST_IPS)
    monkeypatch.setattr(validation, "_getaddrinfo", hanging_getaddrinfo)
    settings = VerifierSettings(fetch_timeout_ms=300, environment="test")

    started = time.monotonic()
    try:
        with pytest.raises(FetchTimeout):
            fetch_content(URL, settings)
    finally:
        release.set()

    assert time.monotonic() - started < 2.0
    assert fake_web.calls == []


class SlowBodyServer:
    """Local HTTP server that sends headers at once, then dribbles the body."""

    HEADERS = (
        b"HTTP/1.1 200 OK\r\n"
        b"Content-Type: text/html\r\n"
        b"Content-Length: 100000\r\n"
        b"Connection: close\r\n\r\n"
    )

    def __init__(self, interval: float, writes: int):
        self.interval = interval
        self.writes = writes
        self.stop = threading.Event()
        self.sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        self.sock.bind(("127.0.0.1", 0))
        self.sock.listen(1)
        self.thread = threading.Thread(target=self._serve, daemon=True)

    @property
    def url(self) -> str:
        return f"http://127.0.0.1:{self.sock.getsockname()[1]}/guidelines"

    def _serve(self):
        try:
            conn, _ = self.sock.accept()
        except OSError:
            return
        with conn:
            try:
                conn.recv(65536)
                conn.sendall(self.HEADERS)
                for _ in range(self.writes):
                    if self.stop.wait(self.interval):
                        break
                    conn.sendall(b"a ")
                self.stop.wait(10)
            except OSError:
                # Client hung up
                pass

    def __enter__(self):
        self.thread.start()
        return self

    def __exit__(self, *exc_info):
        self.stop.set()
        self.sock.close()
        self.thread.join(timeout=5)


@pytest.mark.integration
@pytest.mark.slow
@pytest.mark.parametrize(
    "interval,writes",
    [
        (0.2, 30),  # two bytes every 200ms, 6s in total
        (0.0, 1),  # two bytes, then silence
    ],
)
def test_fetch_slow_server_cut_off_at_deadline(monkeypatch, interval, writes):
    """Test against a real socket that a dribbling or stalled body ends at the deadline."""
    for name in ("http_proxy", "HTTP_PROXY", "all_proxy", "ALL_PROXY"):
        monkeypatch.delenv(name, raising=False)
    settings = VerifierSettings(fetch_timeout_ms=1000, allow_private_hosts=True, environment="test")

    with SlowBodyServer(interval, writes) as server:
        started = time.monotonic()
        with pytest.raises(FetchTimeout):
            fetch_content(server.url, settings)
        elapsed = time.monotonic() - started

    assert elapsed < 2.0
