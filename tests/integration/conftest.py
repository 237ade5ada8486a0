"""
Integration test fixtures for the CouchDB SDK.

Every test gets a fresh FakeCouch with an empty "testdb" and a client
talking to it through httpx.MockTransport.
"""

import pytest

from couchdb_sdk import ClientConfig, CouchClient

from fake_couch import ENDPOINT, FakeCouch


@pytest.fixture
def fake_couch() -> FakeCouch:
    """Fresh fake server with an empty "testdb"."""
    couch = FakeCouch()
    couch.create_db("testdb")
    return couch


@pytest.fixture
def client(fake_couch: FakeCouch) -> CouchClient:
    """Client bound to the fake server."""
    return CouchClient(ClientConfig(endpoint=ENDPOINT), transport=fake_couch.transport())


@pytest.fixture
def db(client: CouchClient):
    """Untyped collection on "testdb"."""
    return client.collection("testdb")
