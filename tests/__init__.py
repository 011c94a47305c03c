"""
Source Verifier Test Suite

Test organization:
- test_<module>.py: Unit tests for one pipeline stage
- test_verify_sources.py: End-to-end tests against a fake web
- conftest.py: Fake web, DNS stub, settings and sample documents
"""

__version__ = "0.1.0"
