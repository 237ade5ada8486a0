"""
Per-database document and attachment operations.

Collection is the handle returned by CouchClient.collection(). It is
generic over the caller's document type: payloads are encoded and decoded
with a DocumentSchema, while protocol fields (_id, _rev, _attachments, ...)
travel in the Document envelope.

Example:
    >>> tasks = client.collection("tasks", Task)
    >>> created = await tasks.insert(Task(title="write docs"))
    >>> result = await tasks.get(created.id)
    >>> doc = result.value
    >>> await tasks.put(doc.id, Task(title="write docs", done=True),
    ...                 PutOptions(revision=doc.revision))

Invariants:
    - Each method sends exactly one request and never retries
    - Every mutation except first creation needs the current revision;
      a stale revision raises ConflictError
    - 404 on a probe returns ABSENT, 304 returns NOT_MODIFIED; everything
      else outside the accepted statuses raises
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Any, AsyncIterable, AsyncIterator, Generic, Iterable, Iterator, TypeVar, Union

import httpx

from ._http_transport import HttpTransport, quote_attachment, quote_segment
from .errors import MultipartError, error_from_response
from .models import (
    Attachment,
    AttachmentInfo,
    DatabaseInfo,
    Document,
    DocumentInfo,
    MultipartDocument,
    WriteResult,
)
from .multipart import parse_mixed, parse_related
from .options import (
    CopyOptions,
    GetOptions,
    PutOptions,
    WriteOptions,
    quote_etag,
    unquote_etag,
)
from .query import FindQuery, FindResult, QueryEngine
from .results import ABSENT, NOT_MODIFIED, Conditional, Found, NotModifiedType, Probe
from .schema import DocumentSchema

logger = logging.getLogger(__name__)

T = TypeVar("T")

JSON_TYPE = "application/json"
UPLOAD_CHUNK_SIZE = 64 * 1024

# Anything that produces the attachment bytes.
AttachmentData = Union[bytes, bytearray, Iterable[bytes], AsyncIterable[bytes]]


def _ok(response: httpx.Response, *statuses: int) -> None:
    if response.status_code not in statuses:
        raise error_from_response(response)


def _body_source(data: AttachmentData) -> bytes | AsyncIterator[bytes]:
    """Adapt an attachment source to something httpx sends incrementally.

    AsyncClient only streams async iterators, so files and sync iterables
    are wrapped. Binary file objects are read in chunks.
    """
    if isinstance(data, (bytes, bytearray, memoryview)):
        return bytes(data)
    if hasattr(data, "__aiter__"):
        return data.__aiter__()
    if hasattr(data, "read"):
        return _aiter_chunks(_read_chunks(data))
    return _aiter_chunks(iter(data))


def _read_chunks(fileobj: Any) -> Iterator[bytes]:
    while True:
        chunk = fileobj.read(UPLOAD_CHUNK_SIZE)
        if not chunk:
            return
        yield chunk


async def _aiter_chunks(chunks: Iterator[bytes]) -> AsyncIterator[bytes]:
    for chunk in chunks:
        yield chunk


class Collection(Generic[T]):
    """Document and attachment operations on one database.

    Obtain instances with CouchClient.collection(); creating one performs
    no I/O.
    """

    def __init__(
        self,
        transport: HttpTransport,
        name: str,
        document_type: Any = dict,
    ) -> None:
        """Initialize a collection handle.

        Args:
            transport: Shared HTTP transport
            name: Database name
            document_type: Payload type (dict, TypedDict, dataclass, BaseModel)
        """
        self._transport = transport
        self.name = name
        self.schema: DocumentSchema[T] = DocumentSchema(document_type)
        self._path = "/" + quote_segment(name)
        self._query = QueryEngine(transport, self._path, self.schema)

    def __repr__(self) -> str:
        return f"Collection({self.name!r}, {self.schema!r})"

    def _doc_path(self, doc_id: str) -> str:
        return f"{self._path}/{quote_segment(doc_id)}"

    def _attachment_path(self, doc_id: str, name: str) -> str:
        return f"{self._doc_path(doc_id)}/{quote_attachment(name)}"

    async def info(self) -> DatabaseInfo:
        """Get this database's description."""
        response = await self._transport.request(
            "GET", self._path, headers={"Accept": JSON_TYPE}
        )
        _ok(response, 200)
        return DatabaseInfo.from_json(response.json())

    # =====================
    # Documents
    # =====================

    async def insert(
        self,
        document: T,
        options: WriteOptions | None = None,
    ) -> WriteResult:
        """Create a document with a server-assigned ID.

        Args:
            document: Payload
            options: batch / full_commit

        Returns:
            WriteResult with the new ID and first revision (no revision
            when the write was batched)

        Raises:
            ValidationError: Payload cannot be serialized
            CouchError: Status other than 201/202
        """
        options = options or WriteOptions()
        response = await self._transport.request(
            "POST",
            self._path,
            params=options.to_params(),
            headers={"Accept": JSON_TYPE, **options.to_headers()},
            json=self.schema.dump(document),
        )
        _ok(response, 201, 202)
        return WriteResult.from_json(response.json())

    async def head_info(
        self,
        doc_id: str,
        if_none_match: str | None = None,
    ) -> Probe[DocumentInfo]:
        """Probe a document without fetching its body.

        Args:
            doc_id: Document ID
            if_none_match: Revision already held; a match yields modified=False

        Returns:
            DocumentInfo, or ABSENT when the document does not exist
            (including deleted documents)
        """
        headers = {}
        if if_none_match is not None:
            headers["If-None-Match"] = quote_etag(if_none_match)

        response = await self._transport.request("HEAD", self._doc_path(doc_id), headers=headers)
        if response.status_code in (200, 304):
            revision = unquote_etag(response.headers.get("etag"))
            if revision is None and if_none_match is not None:
                revision = unquote_etag(if_none_match)
            return DocumentInfo(
                size=int(response.headers.get("content-length", 0)),
                revision=revision or "",
                modified=response.status_code == 200,
            )
        if response.status_code == 404:
            return ABSENT
        raise error_from_response(response)

    async def get(
        self,
        doc_id: str,
        options: GetOptions | None = None,
    ) -> Conditional[Document[T]]:
        """Fetch a document as JSON.

        Args:
            doc_id: Document ID
            options: Query options and the conditional revision

        Returns:
            Found(Document), or NOT_MODIFIED when if_none_match matched

        Raises:
            NotFoundError: Missing or deleted document
            CouchError: Any other failing status
        """
        options = options or GetOptions()
        response = await self._transport.request(
            "GET",
            self._doc_path(doc_id),
            params=options.to_params(),
            headers={"Accept": JSON_TYPE, **options.to_headers()},
        )
        if response.status_code == 304:
            return NOT_MODIFIED
        _ok(response, 200)
        return Found(Document.from_json(response.json(), self.schema))

    async def get_multipart(
        self,
        doc_id: str,
        options: GetOptions | None = None,
    ) -> Conditional[MultipartDocument[T]]:
        """Fetch a document with its attachment bodies as multipart/related.

        Attachments are only sent as parts when requested, e.g. with
        GetOptions(attachments=True) or atts_since. The server may still
        answer with plain JSON; that is decoded with no parts.

        With open_revs the first returned revision is decoded; use
        get_revisions() for all of them.
        """
        options = options or GetOptions()
        if options.open_revs is not None:
            revisions = await self.get_revisions(doc_id, options)
            if isinstance(revisions, NotModifiedType):
                return revisions
            if not revisions:
                raise MultipartError("No revisions returned")
            return Found(revisions[0])

        response = await self._transport.request(
            "GET",
            self._doc_path(doc_id),
            params=options.to_params(),
            headers={"Accept": f"multipart/related, {JSON_TYPE}", **options.to_headers()},
        )
        if response.status_code == 304:
            return NOT_MODIFIED
        _ok(response, 200)

        content_type = response.headers.get("content-type", JSON_TYPE)
        if content_type.startswith(JSON_TYPE):
            document = Document.from_json(response.json(), self.schema)
            return Found(MultipartDocument(document, (), response.content, content_type))

        data, parts = parse_related(content_type, response.content)
        document = Document.from_json(data, self.schema)
        return Found(MultipartDocument(document, parts, response.content, content_type))

    async def get_revisions(
        self,
        doc_id: str,
        options: GetOptions,
    ) -> list[MultipartDocument[T]] | NotModifiedType:
        """Fetch several leaf revisions (open_revs) as multipart/mixed.

        Revisions the server reports as missing are skipped.
        """
        if options.open_revs is None:
            options = replace(options, open_revs="all")

        response = await self._transport.request(
            "GET",
            self._doc_path(doc_id),
            params=options.to_params(),
            headers={"Accept": f"multipart/mixed, {JSON_TYPE}", **options.to_headers()},
        )
        if response.status_code == 304:
            return NOT_MODIFIED
        _ok(response, 200)

        content_type = response.headers.get("content-type", JSON_TYPE)
        if content_type.startswith(JSON_TYPE):
            # [{"ok": doc} | {"missing": rev}, ...]
            return [
                MultipartDocument(
                    Document.from_json(entry["ok"], self.schema), (), response.content, content_type
                )
                for entry in response.json()
                if "ok" in entry
            ]

        return [
            MultipartDocument(Document.from_json(data, self.schema), parts, response.content, content_type)
            for data, parts in parse_mixed(content_type, response.content)
            if "missing" not in data
        ]

    async def put(
        self,
        doc_id: str,
        document: T,
        options: PutOptions | None = None,
    ) -> WriteResult:
        """Create or update a document at a chosen ID.

        Args:
            doc_id: Document ID
            document: New payload (replaces the stored body)
            options: revision (required to update), batch, full_commit,
                new_edits

        Returns:
            WriteResult with the new revision

        Raises:
            ConflictError: Missing or stale revision for an existing document
            CouchError: Any other status than 201/202
        """
        options = options or PutOptions()
        response = await self._transport.request(
            "PUT",
            self._doc_path(doc_id),
            params=options.to_params(),
            headers={"Accept": JSON_TYPE, **options.to_headers()},
            json=self.schema.dump(document),
        )
        if response.status_code == 409:
            logger.debug("Conflict writing %s/%s at rev %s", self.name, doc_id, options.revision)
        _ok(response, 201, 202)
        return WriteResult.from_json(response.json())

    async def copy(
        self,
        doc_id: str,
        destination_id: str,
        options: CopyOptions | None = None,
    ) -> WriteResult:
        """Copy a document server-side to a new ID.

        The server splits the Destination header on "?" and percent-decodes
        the ID, so it is encoded like a path segment.

        Returns:
            WriteResult of the destination document
        """
        options = options or CopyOptions()
        destination = quote_segment(destination_id)
        if options.destination_revision:
            destination += f"?rev={options.destination_revision}"

        response = await self._transport.request(
            "COPY",
            self._doc_path(doc_id),
            params=options.to_params(),
            headers={"Accept": JSON_TYPE, "Destination": destination, **options.to_headers()},
        )
        _ok(response, 201, 202)
        return WriteResult.from_json(response.json())

    async def delete(
        self,
        doc_id: str,
        revision: str,
        options: WriteOptions | None = None,
    ) -> WriteResult:
        """Delete a document, leaving a tombstone.

        Returns:
            WriteResult with the tombstone revision

        Raises:
            ConflictError: Stale revision
        """
        options = options or WriteOptions()
        response = await self._transport.request(
            "DELETE",
            self._doc_path(doc_id),
            params={"rev": revision, **options.to_params()},
            headers={"Accept": JSON_TYPE, **options.to_headers()},
        )
        _ok(response, 200, 202)
        return WriteResult.from_json(response.json())

    # =====================
    # Attachments
    # =====================

    async def attachment_info(
        self,
        doc_id: str,
        name: str,
        revision: str | None = None,
    ) -> Probe[AttachmentInfo]:
        """Probe one attachment.

        Returns:
            AttachmentInfo, or ABSENT when the document or attachment
            does not exist
        """
        params = {"rev": revision} if revision else None
        response = await self._transport.request(
            "HEAD", self._attachment_path(doc_id, name), params=params
        )
        if response.status_code == 200:
            length = response.headers.get("content-length")
            return AttachmentInfo(
                content_type=response.headers.get("content-type", "application/octet-stream"),
                length=int(length) if length is not None else None,
                digest=response.headers.get("content-md5") or unquote_etag(response.headers.get("etag")),
                encoding=response.headers.get("content-encoding"),
            )
        if response.status_code == 404:
            return ABSENT
        raise error_from_response(response)

    async def get_attachment(
        self,
        doc_id: str,
        name: str,
        revision: str | None = None,
    ) -> Attachment:
        """Fetch an attachment's content in one piece.

        Use stream_attachment() for large attachments.
        """
        params = {"rev": revision} if revision else None
        response = await self._transport.request(
            "GET", self._attachment_path(doc_id, name), params=params
        )
        _ok(response, 200)
        return Attachment(
            content_type=response.headers.get("content-type", "application/octet-stream"),
            data=response.content,
            digest=response.headers.get("content-md5"),
        )

    async def stream_attachment(
        self,
        doc_id: str,
        name: str,
        revision: str | None = None,
        chunk_size: int | None = None,
    ) -> AsyncIterator[bytes]:
        """Yield an attachment's content incrementally.

        The status is checked before the first chunk is yielded.
        """
        params = {"rev": revision} if revision else None
        async with self._transport.stream(
            "GET", self._attachment_path(doc_id, name), params=params
        ) as response:
            if response.status_code != 200:
                await response.aread()
                raise error_from_response(response)
            async for chunk in response.aiter_bytes(chunk_size):
                yield chunk

    async def put_attachment(
        self,
        doc_id: str,
        name: str,
        data: AttachmentData,
        content_type: str,
        revision: str | None = None,
    ) -> WriteResult:
        """Upload an attachment, creating the document if needed.

        Args:
            doc_id: Document ID
            name: Attachment name (may contain "/")
            data: bytes, a binary file object, or a sync/async iterable of
                byte chunks; iterables and files are streamed
            content_type: MIME type stored with the attachment
            revision: Current document revision; required if the document exists

        Returns:
            WriteResult with the document's new revision

        Raises:
            ConflictError: Missing or stale revision
        """
        params = {"rev": revision} if revision else None
        response = await self._transport.request(
            "PUT",
            self._attachment_path(doc_id, name),
            params=params,
            headers={"Accept": JSON_TYPE, "Content-Type": content_type},
            content=_body_source(data),
        )
        _ok(response, 201, 202)
        return WriteResult.from_json(response.json())

    async def delete_attachment(
        self,
        doc_id: str,
        name: str,
        revision: str,
        options: WriteOptions | None = None,
    ) -> WriteResult:
        """Remove one attachment; the document gets a new revision."""
        options = options or WriteOptions()
        response = await self._transport.request(
            "DELETE",
            self._attachment_path(doc_id, name),
            params={"rev": revision, **options.to_params()},
            headers={"Accept": JSON_TYPE, **options.to_headers()},
        )
        _ok(response, 200, 202)
        return WriteResult.from_json(response.json())

    # =====================
    # Queries
    # =====================

    async def find(self, query: FindQuery | dict[str, Any]) -> FindResult[T]:
        """Run a selector query on this database.

        Args:
            query: FindQuery, or a bare selector dict
        """
        return await self._query.find(query)

