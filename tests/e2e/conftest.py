"""
E2E test fixtures for the CouchDB SDK.

These tests require a running CouchDB server, e.g.:

    docker run -d -p 5984:5984 -e COUCHDB_USER=admin -e COUCHDB_PASSWORD=secret couchdb:3

Connection settings come from the COUCHDB_* environment variables.
Set COUCHDB_E2E_TESTS=1 to enable.
"""

import uuid

import pytest_asyncio

from couchdb_sdk import CouchClient, CouchSettings


@pytest_asyncio.fixture
async def client():
    """Client configured from the environment."""
    async with CouchClient.from_settings(CouchSettings()) as couch:
        yield couch


@pytest_asyncio.fixture
async def database(client):
    """A fresh database, dropped after the test."""
    name = f"sdk-e2e-{uuid.uuid4().hex[:12]}"
    await client.create_database(name)
    try:
        yield name
    finally:
        await client.delete_database(name)
