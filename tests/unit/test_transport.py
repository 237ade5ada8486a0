"""
Unit tests for the internal HTTP transport.

Tests cover:
- Path segment encoding
- Basic auth injection
- Network failures and timeouts mapped to TransportError
- Cancellation passed through untouched
- Caller-owned httpx clients
"""

import asyncio

import httpx
import pytest

from couchdb_sdk import (
    ClientConfig,
    CouchClient,
    RequestTimeoutError,
    TransportError,
    WriteOptions,
    WriteResult,
)
from couchdb_sdk._http_transport import HttpTransport, quote_attachment, quote_segment

ENDPOINT = "http://couch.test:5984"


class TestQuoting:
    """Tests for path encoding helpers."""

    @pytest.mark.parametrize(
        "value,expected",
        [
            ("plain", "plain"),
            ("a/b", "a%2Fb"),
            ("with space", "with%20space"),
            ("q?x=1#f", "q%3Fx%3D1%23f"),
            ("_design/app", "_design/app"),
            ("_local/ckpt/1", "_local/ckpt%2F1"),
            ("ünï", "%C3%BCn%C3%AF"),
        ],
    )
    def test_quote_segment(self, value, expected):
        assert quote_segment(value) == expected

    def test_quote_attachment_keeps_slashes(self):
        assert quote_attachment("dir/a b.txt") == "dir/a%20b.txt"


class TestHttpTransport:
    """Tests for HttpTransport."""

    @pytest.mark.asyncio
    async def test_basic_auth_header(self):
        """Credentials are sent on every request."""
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request.headers.get("authorization"))
            return httpx.Response(200, json={})

        transport = HttpTransport(
            ClientConfig(ENDPOINT, username="admin", password="secret"),
            transport=httpx.MockTransport(handler),
        )

        await transport.request("GET", "/")
        await transport.request("HEAD", "/db")

        assert seen == ["Basic YWRtaW46c2VjcmV0"] * 2
        await transport.close()

    @pytest.mark.asyncio
    async def test_no_credentials_no_header(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert "authorization" not in request.headers
            return httpx.Response(200)

        transport = HttpTransport(ClientConfig(ENDPOINT), transport=httpx.MockTransport(handler))

        response = await transport.request("GET", "/")

        assert response.status_code == 200

    @pytest.mark.asyncio
    async def test_endpoint_prefix(self):
        """Paths are joined under the endpoint's path prefix."""
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, text=request.url.path)

        transport = HttpTransport(
            ClientConfig("http://proxy.test/couch"), transport=httpx.MockTransport(handler)
        )

        response = await transport.request("GET", "/db/doc")

        assert response.text == "/couch/db/doc"

    @pytest.mark.asyncio
    async def test_connect_error(self):
        """Connection failures become TransportError."""
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        client = CouchClient(ENDPOINT, transport=httpx.MockTransport(handler))

        with pytest.raises(TransportError) as exc_info:
            await client.metadata()

        assert exc_info.value.endpoint == ENDPOINT
        assert isinstance(exc_info.value.__cause__, httpx.ConnectError)

    @pytest.mark.asyncio
    async def test_timeout(self):
        """Timeouts become RequestTimeoutError."""
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("timed out", request=request)

        client = CouchClient(ENDPOINT, transport=httpx.MockTransport(handler))

        with pytest.raises(RequestTimeoutError):
            await client.database_exists("db")

    @pytest.mark.asyncio
    async def test_stream_errors(self):
        """Streaming requests map failures the same way."""
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        client = CouchClient(ENDPOINT, transport=httpx.MockTransport(handler))

        with pytest.raises(TransportError):
            async for _ in client.collection("db").stream_attachment("doc", "a.txt"):
                pass

    @pytest.mark.asyncio
    async def test_caller_owned_client_not_closed(self):
        """close() leaves a client passed in by the caller open."""
        http_client = httpx.AsyncClient(
            base_url=ENDPOINT,
            transport=httpx.MockTransport(lambda request: httpx.Response(200, json={})),
        )
        client = CouchClient(ENDPOINT, http_client=http_client)

        await client.close()

        assert http_client.is_closed is False
        await http_client.aclose()

    @pytest.mark.asyncio
    async def test_context_manager_closes(self):
        """Leaving the async context closes the pool."""
        transport = httpx.MockTransport(lambda request: httpx.Response(200, json={}))

        async with CouchClient(ENDPOINT, transport=transport) as client:
            pass

        assert client._transport._client.is_closed is True

    @pytest.mark.asyncio
    async def test_cancellation_propagates(self):
        """Cancelling an in-flight request is not mapped to TransportError."""
        started = asyncio.Event()
        release = asyncio.Event()

        async def handler(request: httpx.Request) -> httpx.Response:
            started.set()
            await release.wait()
            return httpx.Response(200)

        transport = HttpTransport(ClientConfig(ENDPOINT), transport=httpx.MockTransport(handler))
        task = asyncio.create_task(transport.request("GET", "/"))
        await started.wait()

        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task
        assert task.cancelled() is True
        await transport.close()

    @pytest.mark.asyncio
    async def test_batched_write_ack_without_revision(self):
        """A 202 batch acknowledgement has no rev and still succeeds."""
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.params["batch"] == "ok"
            return httpx.Response(202, json={"ok": True, "id": "x"})

        client = CouchClient(ENDPOINT, transport=httpx.MockTransport(handler))

        result = await client.collection("db").insert({"a": 1}, WriteOptions(batch=True))

        assert result == WriteResult(id="x", ok=True, revision=None)
