"""
Must-gather shipper test suite.

This package contains:
- unit/: Unit tests (no network, temporary directories only)
- integration/: Full pipeline runs against a mocked issuer and fake storage
"""
