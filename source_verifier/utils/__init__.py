"""
Shared utilities for the source verifier.

Modules:
- validation: Candidate URL normalization and fetch target checks
- text_helpers: Text normalization used by all matching
- file_helpers: JSON file I/O for pattern files and CLI output
"""
