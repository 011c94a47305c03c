"""
Shared pytest fixtures for source verifier tests.

No test touches the network: ``requests.get`` inside the fetcher is replaced
by a registry of canned responses, and DNS lookups for the internal address
guard return a public address.
"""

import pytest
import requests
from typing import Any, Dict, List, Optional

from source_verifier.config import VerifierSettings
from source_verifier.utils import validation


LONG_BODY = (
    "Idaho courts calculate child support under the income shares model. "
    "Each parent's guideline income is combined and the worksheet allocates "
    "the basic support obligation in proportion to income. "
    "The court shall consider the best interests of the child when deviating "
    "from the guidelines, and any modification requires a substantial and "
    "material change of circumstances."
)


class MockRaw:
    """Stand-in for the urllib3 response behind ``requests.Response.raw``."""

    connection = None

    def __init__(self, content: bytes, chunk_error: Optional[Exception] = None, on_read=None):
        self.content = content
        self.chunk_error = chunk_error
        self.on_read = on_read
        self.position = 0

    def read1(self, amt=None, decode_content=True):
        if self.on_read is not None:
            self.on_read()
        if self.position >= len(self.content):
            if self.chunk_error is not None:
                raise self.chunk_error
            return b""
        end = len(self.content) if amt is None else self.position + amt
        chunk = self.content[self.position:end]
        self.position += len(chunk)
        return chunk


class MockResponse:
    """Stand-in for a streamed ``requests.Response``."""

    def __init__(
        self,
        content: bytes = b"",
        status_code: int = 200,
        content_type: str = "text/html; charset=utf-8",
        url: Optional[str] = None,
        headers: Optional[Dict[str, str]] = None,
        chunk_error: Optional[Exception] = None,
        on_read=None,
    ):
        self.content = content
        self.status_code = status_code
        self.headers = {"Content-Type": content_type} if content_type else {}
        if headers:
            self.headers.update(headers)
        self.url = url
        self.raw = MockRaw(content, chunk_error, on_read)
        self.closed = False

    @property
    def is_redirect(self) -> bool:
        return "Location" in self.headers and self.status_code in (301, 302, 303, 307, 308)

    def close(self):
        self.closed = True


class FakeWeb:
    """Registry of canned responses keyed by URL; records every request."""

    def __init__(self):
        self.routes: Dict[str, Any] = {}
        self.calls: List[Dict[str, Any]] = []

    def add(self, url: str, response: Any) -> None:
        self.routes[url] = response

    def add_html(self, url: str, body: str, title: str = "", status_code: int = 200) -> None:
        html = f"<html><head><title>{title}</title></head><body><p>{body}</p></body></html>"
        self.add(url, MockResponse(html.encode("utf-8"), status_code=status_code, url=url))

    def get(self, url, **kwargs):
        self.calls.append({"url": url, **kwargs})
        response = self.routes.get(url)
        if response is None:
            raise requests.ConnectionError(f"No route to {url}")
        if isinstance(response, Exception):
            raise response
        if response.url is None:
            response.url = url
        # Each request reads the canned body from the start
        response.raw.position = 0
        response.closed = False
        return response

    @property
    def fetched_urls(self) -> List[str]:
        return [call["url"] for call in self.calls]


@pytest.fixture
def fake_web(monkeypatch) -> FakeWeb:
    """
    Replace network fetches with canned responses.

    Returns:
        FakeWeb: register responses with ``add`` / ``add_html``
    """
    web = FakeWeb()
    monkeypatch.setattr("source_verifier.fetch_url.requests.get", web.get)
    return web


@pytest.fixture(autouse=True)
def public_dns(monkeypatch):
    """Resolve every hostname to a public address so tests never hit DNS."""
    monkeypatch.setattr(
        validation, "_resolve_host_ips", lambda hostname, timeout=None: ["93.184.216.34"]
    )


@pytest.fixture
def settings() -> VerifierSettings:
    """Default settings with a short fetch deadline."""
    return VerifierSettings(fetch_timeout_ms=2000, environment="test")


@pytest.fixture
def long_body() -> str:
    return LONG_BODY


@pytest.fixture
def sample_html() -> bytes:
    """
    Sample court self-help page.

    Returns:
        bytes: HTML content with script/style noise and entities
    """
    return f"""
    <html>
    <head>
      <title>Child Support Guidelines | Idaho Judicial Branch</title>
      <style>body {{ color: red; }}</style>
      <script>var tracking = "child support tracking";</script>
    </head>
    <body>
      <h1>Child Support &amp; Custody</h1>
      <p>{LONG_BODY}</p>
      <p>Forms are available at the clerk&#39;s office &nbsp; during business hours.</p>
    </body>
    </html>
    """.encode("utf-8")


@pytest.fixture
def make_pdf():
    """
    Build a small PDF in memory with PyMuPDF.

    Returns:
        callable(lines, title) -> bytes
    """
    fitz = pytest.importorskip("fitz")

    def _make(lines: List[str], title: str = "") -> bytes:
        doc = fitz.open()
        page = doc.new_page()
        y = 72
        for line in lines:
            page.insert_text((72, y), line, fontsize=10)
            y += 14
        if title:
            doc.set_metadata({"title": title})
        data = doc.tobytes()
        doc.close()
        return data

    return _make


# Markers for test organization
def pytest_configure(config):
    """Configure custom pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests for individual functions")
    config.addinivalue_line(
        "markers", "integration: Integration tests for multiple components"
    )
    config.addinivalue_line("markers", "slow: Slow tests (network, large files)")
