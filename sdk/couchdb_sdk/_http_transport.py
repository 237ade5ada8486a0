"""
Internal HTTP transport for the CouchDB SDK.

This module provides the low-level HTTP communication layer on top of
httpx.AsyncClient. It sends exactly one request per call, injects basic
auth, and never interprets status codes.

It is internal to the SDK and should not be used directly by users.
Users should use CouchClient and Collection instead.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Mapping
from urllib.parse import quote

import httpx

from .config import ClientConfig
from .errors import RequestTimeoutError, TransportError

logger = logging.getLogger(__name__)

# Request bodies accepted by httpx: raw bytes/str or (async) byte iterators.
RequestContent = Any

_RESERVED_PREFIXES = ("_design/", "_local/")


def quote_segment(value: str) -> str:
    """Percent-encode a single path segment (database name or document id).

    Design and local document ids keep their prefix slash.
    """
    for prefix in _RESERVED_PREFIXES:
        if value.startswith(prefix):
            return prefix + quote(value[len(prefix):], safe="")
    return quote(value, safe="")


def quote_attachment(name: str) -> str:
    """Percent-encode an attachment name; slashes are part of the name."""
    return quote(name, safe="/")


class HttpTransport:
    """Internal HTTP transport.

    Wraps one httpx.AsyncClient bound to the configured endpoint. Basic
    auth is set on the client so it applies to every request.

    This is an internal class - users should use CouchClient instead.
    """

    def __init__(
        self,
        config: ClientConfig,
        *,
        client: httpx.AsyncClient | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the transport.

        Args:
            config: Connection configuration
            client: Optional pre-built httpx client (not closed by us)
            transport: Optional httpx transport, e.g. httpx.MockTransport
        """
        self._config = config
        self._owns_client = client is None
        if client is None:
            auth = None
            if config.has_credentials:
                auth = httpx.BasicAuth(config.username, config.password)
            client = httpx.AsyncClient(
                base_url=config.endpoint,
                auth=auth,
                timeout=config.timeout,
                transport=transport,
            )
        self._client = client

    async def close(self) -> None:
        """Close the underlying client if this transport created it."""
        if self._owns_client and not self._client.is_closed:
            await self._client.aclose()
            logger.debug("Closed HTTP client for %s", self._config.endpoint)

    async def __aenter__(self) -> HttpTransport:
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    def _build(
        self,
        method: str,
        path: str,
        params: Mapping[str, str] | None,
        headers: Mapping[str, str] | None,
        content: RequestContent,
        json: Any,
    ) -> httpx.Request:
        return self._client.build_request(
            method,
            path,
            params=params,
            headers=headers,
            content=content,
            json=json,
        )

    async def request(
        self,
        method: str,
        path: str,
        *,
        params: Mapping[str, str] | None = None,
        headers: Mapping[str, str] | None = None,
        content: RequestContent = None,
        json: Any = None,
    ) -> httpx.Response:
        """Send one request and return the response with its body read.

        Args:
            method: HTTP method
            path: Path relative to the endpoint, starting with "/"
            params: Query parameters
            headers: Extra request headers
            content: Raw body (bytes, str or byte iterator)
            json: JSON body (mutually exclusive with content)

        Returns:
            The response, whatever its status

        Raises:
            TransportError: Network failure
            RequestTimeoutError: Timeout expired
        """
        request = self._build(method, path, params, headers, content, json)
        try:
            response = await self._client.send(request)
        except httpx.TimeoutException as e:
            raise RequestTimeoutError(
                f"{method} {path} timed out: {e}",
                endpoint=self._config.endpoint,
            ) from e
        except httpx.TransportError as e:
            raise TransportError(
                f"{method} {path} failed: {e}",
                endpoint=self._config.endpoint,
            ) from e

        logger.debug("%s %s -> %d", method, request.url.raw_path.decode(), response.status_code)
        return response

    @asynccontextmanager
    async def stream(
        self,
        method: str,
        path: str,
        *,
        params: Mapping[str, str] | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> AsyncIterator[httpx.Response]:
        """Send one request and yield the response with its body unread.

        The caller iterates the body incrementally; the connection is
        released when the context exits.
        """
        request = self._build(method, path, params, headers, None, None)
        try:
            response = await self._client.send(request, stream=True)
        except httpx.TimeoutException as e:
            raise RequestTimeoutError(
                f"{method} {path} timed out: {e}",
                endpoint=self._config.endpoint,
            ) from e
        except httpx.TransportError as e:
            raise TransportError(
                f"{method} {path} failed: {e}",
                endpoint=self._config.endpoint,
            ) from e

        logger.debug("%s %s -> %d (stream)", method, request.url.raw_path.decode(), response.status_code)
        try:
            yield response
        finally:
            await response.aclose()
