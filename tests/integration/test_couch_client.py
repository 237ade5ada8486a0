"""
Integration tests for CouchClient against the in-memory fake server.

Tests cover:
- Server metadata
- Database existence, info, creation and deletion
- Error mapping for 4xx and 5xx responses
- Basic auth on every request
"""

import httpx
import pytest

from couchdb_sdk import (
    AuthorizationError,
    ClientConfig,
    ClientError,
    Collection,
    ConflictError,
    CouchClient,
    CreateDatabaseOptions,
    NotFoundError,
    ProtocolError,
)

from fake_couch import ENDPOINT, FakeCouch


class TestServer:
    """Tests for server-level operations."""

    @pytest.mark.asyncio
    async def test_metadata(self, client):
        """metadata() decodes the welcome document."""
        meta = await client.metadata()

        assert meta.couchdb == "Welcome"
        assert meta.version == "3.3.3"
        assert meta.vendor.name == "The Apache Software Foundation"
        assert "partitioned" in meta.features

    @pytest.mark.asyncio
    async def test_metadata_server_error(self):
        """Non-200 on metadata raises ProtocolError with the raw body."""
        transport = httpx.MockTransport(lambda request: httpx.Response(500, text="boom"))
        client = CouchClient(ENDPOINT, transport=transport)

        with pytest.raises(ProtocolError) as exc_info:
            await client.metadata()

        assert exc_info.value.status == 500
        assert exc_info.value.error == "boom"
        assert exc_info.value.reason is None

    @pytest.mark.asyncio
    async def test_all_databases(self, client, fake_couch):
        """all_databases() lists database names."""
        fake_couch.create_db("another")

        assert await client.all_databases() == ["another", "testdb"]


class TestDatabases:
    """Tests for database administration."""

    @pytest.mark.asyncio
    async def test_database_exists(self, client):
        """HEAD 200 is True, 404 is False."""
        assert await client.database_exists("testdb") is True
        assert await client.database_exists("nodb") is False

    @pytest.mark.asyncio
    async def test_database_exists_propagates_401(self):
        """Unauthorized is an error, not False."""
        couch = FakeCouch(username="admin", password="secret")
        client = CouchClient(ENDPOINT, transport=couch.transport())

        with pytest.raises(AuthorizationError) as exc_info:
            await client.database_exists("testdb")

        assert exc_info.value.status == 401

    @pytest.mark.asyncio
    async def test_create_database(self, client, fake_couch):
        """create_database() returns ok and the database then exists."""
        ok = await client.create_database("testdb1")

        assert ok is True
        assert await client.database_exists("testdb1") is True
        assert "testdb1" in fake_couch.databases

    @pytest.mark.asyncio
    async def test_create_database_sends_shards_and_replicas(self, client, fake_couch):
        """shard_count and replica_count become q and n."""
        await client.create_database(
            "sharded", CreateDatabaseOptions(shard_count=8, replica_count=3)
        )

        params = fake_couch.last_request.url.params
        assert params["q"] == "8"
        assert params["n"] == "3"

    @pytest.mark.asyncio
    async def test_create_database_without_options_sends_no_params(self, client, fake_couch):
        """Absent options are not sent."""
        await client.create_database("plain")

        assert fake_couch.last_request.url.query == b""

    @pytest.mark.asyncio
    async def test_create_existing_database_conflicts(self, client):
        """412 file_exists decodes error and reason."""
        with pytest.raises(ConflictError) as exc_info:
            await client.create_database("testdb")

        err = exc_info.value
        assert err.status == 412
        assert err.error == "file_exists"
        assert "already exists" in err.reason

    @pytest.mark.asyncio
    async def test_create_database_illegal_name(self, client):
        """Other 4xx map to ClientError."""
        with pytest.raises(ClientError) as exc_info:
            await client.create_database("Bad")

        assert exc_info.value.status == 400
        assert exc_info.value.error == "illegal_database_name"

    @pytest.mark.asyncio
    async def test_get_database_info(self, client, db):
        """get_database_info() decodes counters and cluster settings."""
        await db.insert({"name": "a"})

        info = await client.get_database_info("testdb")

        assert info.db_name == "testdb"
        assert info.doc_count == 1
        assert info.doc_del_count == 0
        assert info.cluster.q == 2
        assert info.sizes.file == 4096

    @pytest.mark.asyncio
    async def test_get_database_info_missing(self, client):
        """Missing database raises NotFoundError."""
        with pytest.raises(NotFoundError):
            await client.get_database_info("nodb")

    @pytest.mark.asyncio
    async def test_delete_database(self, client):
        """delete_database() removes the database."""
        assert await client.delete_database("testdb") is True
        assert await client.database_exists("testdb") is False

    @pytest.mark.asyncio
    async def test_delete_missing_database(self, client):
        """404 on delete decodes the error body."""
        with pytest.raises(NotFoundError) as exc_info:
            await client.delete_database("nodb")

        assert exc_info.value.error == "not_found"
        assert exc_info.value.reason == "Database does not exist."

    def test_collection_is_pure(self, client, fake_couch):
        """collection() performs no I/O."""
        handle = client.collection("whatever")

        assert isinstance(handle, Collection)
        assert handle.name == "whatever"
        assert fake_couch.requests == []


class TestAuthentication:
    """Tests for basic auth injection."""

    @pytest.fixture
    def secured(self):
        couch = FakeCouch(username="admin", password="secret")
        couch.create_db("testdb")
        return couch

    @pytest.mark.asyncio
    async def test_every_request_is_authenticated(self, secured):
        """All call sites carry the Authorization header."""
        client = CouchClient(
            ClientConfig(endpoint=ENDPOINT, username="admin", password="secret"),
            transport=secured.transport(),
        )
        db = client.collection("testdb")

        await client.metadata()
        await client.database_exists("testdb")
        created = await db.insert({"name": "a"})
        await db.head_info(created.id)
        await db.put_attachment(created.id, "a.txt", b"hi", "text/plain", revision=created.revision)

        assert len(secured.requests) == 5
        for request in secured.requests:
            assert request.headers["authorization"] == "Basic YWRtaW46c2VjcmV0"

    @pytest.mark.asyncio
    async def test_wrong_password(self, secured):
        """Bad credentials surface as AuthorizationError."""
        client = CouchClient(
            ClientConfig(endpoint=ENDPOINT, username="admin", password="wrong"),
            transport=secured.transport(),
        )

        with pytest.raises(AuthorizationError) as exc_info:
            await client.metadata()

        assert exc_info.value.error == "unauthorized"
