"""
CouchDB SDK Test Suite.

This package contains:
- unit/: Unit tests (no external dependencies)
- integration/: Integration tests (in-memory server over httpx.MockTransport)
- e2e/: End-to-end tests (real CouchDB, opt-in with COUCHDB_E2E_TESTS=1)
"""
