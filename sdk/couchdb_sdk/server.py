"""
CouchDB client for the Python SDK.

This module provides the main client interface:
- CouchClient: Connection to one CouchDB server
- Collection handles: obtained with CouchClient.collection()

Example:
    >>> async with CouchClient(ClientConfig("http://127.0.0.1:5984", "admin", "secret")) as couch:
    ...     if not await couch.database_exists("tasks"):
    ...         await couch.create_database("tasks")
    ...     tasks = couch.collection("tasks")
    ...     created = await tasks.insert({"title": "My Task"})

Invariants:
    - The client holds only immutable configuration and the HTTP pool
    - Each operation sends exactly one request
    - Safe to share between concurrent tasks
"""

from __future__ import annotations

import logging
from typing import Any, TypeVar

import httpx

from ._http_transport import HttpTransport, quote_segment
from .collection import Collection
from .config import ClientConfig, CouchSettings
from .errors import error_from_response
from .models import DatabaseInfo, ServerMetadata
from .options import CreateDatabaseOptions

logger = logging.getLogger(__name__)

T = TypeVar("T")


class CouchClient:
    """Client for one CouchDB server.

    Provides server metadata, database administration, and per-database
    Collection handles sharing this client's connection pool and
    credentials.
    """

    def __init__(
        self,
        config: ClientConfig | str | None = None,
        *,
        http_client: httpx.AsyncClient | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize client.

        Args:
            config: ClientConfig, or a bare endpoint URL (no credentials)
            http_client: Optional pre-built httpx client; the caller owns it
                and its base_url/auth take precedence over config
            transport: Optional httpx transport (e.g. httpx.MockTransport)
        """
        if config is None:
            config = ClientConfig()
        elif isinstance(config, str):
            config = ClientConfig(endpoint=config)

        self.config = config
        self._transport = HttpTransport(config, client=http_client, transport=transport)

    @classmethod
    def from_settings(cls, settings: CouchSettings | None = None, **kwargs: Any) -> CouchClient:
        """Build a client from environment settings (COUCHDB_*)."""
        settings = settings or CouchSettings()
        return cls(settings.to_config(), **kwargs)

    async def close(self) -> None:
        """Close the connection pool."""
        await self._transport.close()

    async def __aenter__(self) -> CouchClient:
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    def __repr__(self) -> str:
        return f"CouchClient({self.config.endpoint!r})"

    async def metadata(self) -> ServerMetadata:
        """Get server identity and version.

        Returns:
            ServerMetadata

        Raises:
            CouchError: Any status other than 200
        """
        response = await self._transport.request("GET", "/", headers={"Accept": "application/json"})
        if response.status_code != 200:
            raise error_from_response(response)
        return ServerMetadata.from_json(response.json())

    async def all_databases(self) -> list[str]:
        """List database names visible to the current credentials."""
        response = await self._transport.request(
            "GET", "/_all_dbs", headers={"Accept": "application/json"}
        )
        if response.status_code != 200:
            raise error_from_response(response)
        return list(response.json())

    async def database_exists(self, name: str) -> bool:
        """Check whether a database exists.

        Returns:
            True on 200, False on 404

        Raises:
            CouchError: Any other status, e.g. 401 for bad credentials
        """
        response = await self._transport.request("HEAD", "/" + quote_segment(name))
        if response.status_code == 200:
            return True
        if response.status_code == 404:
            return False
        raise error_from_response(response)

    async def get_database_info(self, name: str) -> DatabaseInfo:
        """Get a database's counters and cluster settings.

        Raises:
            NotFoundError: Database does not exist
        """
        response = await self._transport.request(
            "GET", "/" + quote_segment(name), headers={"Accept": "application/json"}
        )
        if response.status_code != 200:
            raise error_from_response(response)
        return DatabaseInfo.from_json(response.json())

    async def create_database(
        self,
        name: str,
        options: CreateDatabaseOptions | None = None,
    ) -> bool:
        """Create a database.

        Args:
            name: Database name
            options: shard_count (q), replica_count (n), partitioned

        Returns:
            The server's ok flag

        Raises:
            ConflictError: Database already exists (412)
            ClientError: Invalid name or missing permission
        """
        options = options or CreateDatabaseOptions()
        response = await self._transport.request(
            "PUT",
            "/" + quote_segment(name),
            params=options.to_params(),
            headers={"Accept": "application/json"},
        )
        if response.status_code not in (201, 202):
            raise error_from_response(response)
        logger.info("Created database %s", name)
        return bool(response.json().get("ok", False))

    async def delete_database(self, name: str) -> bool:
        """Delete a database and all its documents.

        Returns:
            The server's ok flag

        Raises:
            NotFoundError: Database does not exist
        """
        response = await self._transport.request(
            "DELETE", "/" + quote_segment(name), headers={"Accept": "application/json"}
        )
        if response.status_code not in (200, 202):
            raise error_from_response(response)
        logger.info("Deleted database %s", name)
        return bool(response.json().get("ok", False))

    def collection(self, name: str, document_type: type[T] | Any = dict) -> Collection[T]:
        """Get a handle on one database. No I/O is performed.

        Args:
            name: Database name
            document_type: Payload type for decoded documents

        Returns:
            Collection bound to this client's endpoint and credentials
        """
        return Collection(self._transport, name, document_type)
