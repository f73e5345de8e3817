"""
SeqDoc SDK Test Suite.

This package contains:
- unit/: Unit tests (no external dependencies)
- integration/: Client tests over the in-memory stores
- e2e/: End-to-end tests (live Elasticsearch and Redis)
"""
