"""
Value types returned by the CouchDB SDK.

Every value is an immutable snapshot decoded from one response:
- ServerMetadata, DatabaseInfo: server and database descriptions
- WriteResult: outcome of any accepted mutation
- DocumentInfo, AttachmentInfo: metadata probes
- Document: protocol envelope wrapping the caller's payload
- AttachmentStub, Attachment: attachment metadata and content
- MultipartDocument: document with its inline attachment parts

Decoders take the JSON object returned by the server. Unknown keys are
ignored so newer server versions do not break older clients.
"""

from __future__ import annotations

import base64
from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

from .schema import DocumentSchema, split_reserved

T = TypeVar("T")


@dataclass(frozen=True)
class Vendor:
    name: str
    version: str | None = None


@dataclass(frozen=True)
class ServerMetadata:
    """Server identity returned by GET /.

    Attributes:
        couchdb: Welcome string ("Welcome")
        version: Server version
        uuid: Server instance UUID
        vendor: Distribution vendor
        features: Enabled feature flags
        git_sha: Build revision
    """

    couchdb: str
    version: str
    uuid: str | None = None
    vendor: Vendor | None = None
    features: tuple[str, ...] = ()
    git_sha: str | None = None

    @classmethod
    def from_json(cls, data: dict[str, Any]) -> ServerMetadata:
        vendor = data.get("vendor")
        return cls(
            couchdb=data.get("couchdb", ""),
            version=data.get("version", ""),
            uuid=data.get("uuid"),
            vendor=Vendor(vendor.get("name", ""), vendor.get("version")) if vendor else None,
            features=tuple(data.get("features", ())),
            git_sha=data.get("git_sha"),
        )


@dataclass(frozen=True)
class ClusterInfo:
    """Cluster parameters: replicas n, shards q, read/write quorum r/w."""

    n: int
    q: int
    r: int
    w: int


@dataclass(frozen=True)
class DatabaseSizes:
    active: int = 0
    external: int = 0
    file: int = 0


@dataclass(frozen=True)
class DatabaseInfo:
    """Database description returned by GET /{db}.

    Attributes:
        db_name: Database name
        doc_count: Live documents
        doc_del_count: Deleted documents (tombstones)
        update_seq: Current update sequence (opaque)
        purge_seq: Purge sequence (opaque)
        compact_running: Whether compaction is in progress
        sizes: Active/external/file sizes in bytes
        cluster: Replication factors, absent on single-node 1.x servers
    """

    db_name: str
    doc_count: int
    doc_del_count: int
    update_seq: Any = None
    purge_seq: Any = None
    compact_running: bool = False
    disk_format_version: int | None = None
    instance_start_time: str | None = None
    sizes: DatabaseSizes = field(default_factory=DatabaseSizes)
    cluster: ClusterInfo | None = None
    data_size: int | None = None
    disk_size: int | None = None

    @classmethod
    def from_json(cls, data: dict[str, Any]) -> DatabaseInfo:
        sizes = data.get("sizes") or {}
        cluster = data.get("cluster")
        return cls(
            db_name=data["db_name"],
            doc_count=data.get("doc_count", 0),
            doc_del_count=data.get("doc_del_count", 0),
            update_seq=data.get("update_seq"),
            purge_seq=data.get("purge_seq"),
            compact_running=data.get("compact_running", False),
            disk_format_version=data.get("disk_format_version"),
            instance_start_time=data.get("instance_start_time"),
            sizes=DatabaseSizes(
                active=sizes.get("active", 0),
                external=sizes.get("external", 0),
                file=sizes.get("file", 0),
            ),
            cluster=ClusterInfo(
                n=cluster.get("n", 0),
                q=cluster.get("q", 0),
                r=cluster.get("r", 0),
                w=cluster.get("w", 0),
            ) if cluster else None,
            data_size=data.get("data_size"),
            disk_size=data.get("disk_size"),
        )


@dataclass(frozen=True)
class WriteResult:
    """Outcome of an accepted mutation.

    Attributes:
        id: Document ID
        ok: Server acknowledgement
        revision: New revision (the tombstone revision after a delete);
            None for batch=ok acknowledgements, which carry no revision
    """

    id: str
    ok: bool
    revision: str | None = None

    @classmethod
    def from_json(cls, data: dict[str, Any]) -> WriteResult:
        return cls(id=data["id"], ok=data.get("ok", False), revision=data.get("rev"))


@dataclass(frozen=True)
class DocumentInfo:
    """Result of a HEAD probe on a document.

    Attributes:
        size: Content-Length of the JSON representation
        revision: Current revision, from the ETag
        modified: True on 200, False on 304
    """

    size: int
    revision: str
    modified: bool


@dataclass(frozen=True)
class AttachmentStub:
    """Attachment metadata inside a document's _attachments map.

    Attributes:
        content_type: MIME type
        digest: Content digest ("md5-...")
        length: Size in bytes (decoded)
        revpos: Revision generation at which it was attached
        stub: True when content is not inlined
        data: Inline content, when requested with attachments=true
        encoding: Storage compression, with att_encoding_info=true
        encoded_length: Compressed size, with att_encoding_info=true
        follows: True when content follows in a multipart body
    """

    content_type: str
    digest: str | None = None
    length: int | None = None
    revpos: int | None = None
    stub: bool = False
    data: bytes | None = None
    encoding: str | None = None
    encoded_length: int | None = None
    follows: bool = False

    @classmethod
    def from_json(cls, data: dict[str, Any]) -> AttachmentStub:
        inline = data.get("data")
        return cls(
            content_type=data.get("content_type", "application/octet-stream"),
            digest=data.get("digest"),
            length=data.get("length"),
            revpos=data.get("revpos"),
            stub=data.get("stub", False),
            data=base64.b64decode(inline) if inline is not None else None,
            encoding=data.get("encoding"),
            encoded_length=data.get("encoded_length"),
            follows=data.get("follows", False),
        )


@dataclass(frozen=True)
class AttachmentInfo:
    """Result of a HEAD probe on an attachment."""

    content_type: str
    length: int | None
    digest: str | None = None
    encoding: str | None = None


@dataclass(frozen=True)
class Attachment:
    """Attachment content fetched in one piece."""

    content_type: str
    data: bytes
    digest: str | None = None


@dataclass(frozen=True)
class Document(Generic[T]):
    """A document: protocol envelope around the caller's payload.

    Attributes:
        id: Document ID (_id)
        revision: Current revision (_rev)
        body: Caller payload, decoded with the collection's schema
        deleted: Tombstone marker (_deleted)
        attachments: Attachment stubs by name
        conflicts: Conflicting leaf revisions, with conflicts=true
        deleted_conflicts: Deleted conflicting revisions
        local_seq: Local update sequence, with local_seq=true
        revs_info: Revision availability, with revs_info=true
        revisions: Revision history {start, ids}, with revs=true
    """

    id: str
    revision: str | None
    body: T
    deleted: bool = False
    attachments: dict[str, AttachmentStub] = field(default_factory=dict)
    conflicts: tuple[str, ...] = ()
    deleted_conflicts: tuple[str, ...] = ()
    local_seq: Any = None
    revs_info: tuple[dict[str, Any], ...] = ()
    revisions: dict[str, Any] | None = None

    @classmethod
    def from_json(cls, data: dict[str, Any], schema: DocumentSchema[T]) -> Document[T]:
        reserved, payload = split_reserved(data)
        attachments = reserved.get("_attachments") or {}
        return cls(
            id=reserved.get("_id", ""),
            revision=reserved.get("_rev"),
            body=schema.load(payload),
            deleted=reserved.get("_deleted", False),
            attachments={
                name: AttachmentStub.from_json(stub) for name, stub in attachments.items()
            },
            conflicts=tuple(reserved.get("_conflicts", ())),
            deleted_conflicts=tuple(reserved.get("_deleted_conflicts", ())),
            local_seq=reserved.get("_local_seq"),
            revs_info=tuple(reserved.get("_revs_info", ())),
            revisions=reserved.get("_revisions"),
        )


@dataclass(frozen=True)
class MultipartPart:
    """One body part of a multipart document response."""

    headers: dict[str, str]
    content: bytes

    @property
    def content_type(self) -> str:
        return self.headers.get("content-type", "application/octet-stream")

    @property
    def filename(self) -> str | None:
        """Attachment name from Content-Disposition, if present."""
        disposition = self.headers.get("content-disposition", "")
        for item in disposition.split(";"):
            key, _, value = item.strip().partition("=")
            if key.lower() == "filename":
                return value.strip('"')
        return None


@dataclass(frozen=True)
class MultipartDocument(Generic[T]):
    """A document fetched as multipart/related.

    The first part is the JSON document; the remaining parts carry the
    attachment bodies marked "follows" in its _attachments map, in order.

    Attributes:
        document: Decoded JSON part
        parts: Attachment parts in body order
        raw: Undecoded response payload
        content_type: Response content type (with boundary)
    """

    document: Document[T]
    parts: tuple[MultipartPart, ...]
    raw: bytes
    content_type: str

    def attachment(self, name: str) -> bytes | None:
        """Content of the named attachment, inline or as a following part."""
        for part in self.parts:
            if part.filename == name:
                return part.content

        # Parts without Content-Disposition follow the _attachments order.
        following = [n for n, stub in self.document.attachments.items() if stub.follows]
        if name in following:
            index = following.index(name)
            if index < len(self.parts) and self.parts[index].filename is None:
                return self.parts[index].content

        stub = self.document.attachments.get(name)
        if stub is not None:
            return stub.data
        return None
