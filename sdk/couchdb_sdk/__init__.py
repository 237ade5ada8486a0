"""
CouchDB Python SDK - asyncio client library for CouchDB.

This SDK provides a typed interface to the CouchDB HTTP API:
- CouchClient for server metadata and database administration
- Collection for revision-aware documents, attachments and queries
- Option structs per operation (GetOptions, PutOptions, ...)
- Tagged results: Found, NOT_MODIFIED, ABSENT

Example:
    >>> from couchdb_sdk import ClientConfig, CouchClient, PutOptions
    >>>
    >>> async with CouchClient(ClientConfig("http://127.0.0.1:5984", "admin", "secret")) as couch:
    ...     users = couch.collection("users")
    ...     created = await users.put("alice", {"name": "Alice"})
    ...     await users.put("alice", {"name": "Alice B."}, PutOptions(revision=created.revision))

Invariants:
    - Every mutation except first creation requires the current revision
    - The client never retries; conflicts surface as ConflictError
    - Absence and NotModified are return values, not exceptions

Version: 0.1.0
"""

__version__ = "0.1.0"

from .collection import Collection
from .config import ClientConfig, CouchSettings
from .errors import (
    AuthorizationError,
    ClientError,
    ConflictError,
    CouchError,
    HttpError,
    MultipartError,
    NotFoundError,
    ProtocolError,
    RequestTimeoutError,
    TransportError,
    ValidationError,
)
from .models import (
    Attachment,
    AttachmentInfo,
    AttachmentStub,
    ClusterInfo,
    DatabaseInfo,
    DatabaseSizes,
    Document,
    DocumentInfo,
    MultipartDocument,
    MultipartPart,
    ServerMetadata,
    Vendor,
    WriteResult,
)
from .options import (
    CopyOptions,
    CreateDatabaseOptions,
    GetOptions,
    PutOptions,
    WriteOptions,
)
from .query import ExecutionStats, FindQuery, FindResult
from .results import ABSENT, NOT_MODIFIED, AbsentType, Found, NotModifiedType
from .schema import DocumentSchema
from .server import CouchClient

__all__ = [
    # Version
    "__version__",
    # Client
    "CouchClient",
    "Collection",
    "ClientConfig",
    "CouchSettings",
    # Options
    "WriteOptions",
    "PutOptions",
    "CopyOptions",
    "GetOptions",
    "CreateDatabaseOptions",
    "FindQuery",
    # Results
    "Found",
    "NOT_MODIFIED",
    "NotModifiedType",
    "ABSENT",
    "AbsentType",
    # Models
    "ServerMetadata",
    "Vendor",
    "DatabaseInfo",
    "DatabaseSizes",
    "ClusterInfo",
    "WriteResult",
    "DocumentInfo",
    "Document",
    "AttachmentStub",
    "AttachmentInfo",
    "Attachment",
    "MultipartDocument",
    "MultipartPart",
    "FindResult",
    "ExecutionStats",
    "DocumentSchema",
    # Errors
    "CouchError",
    "HttpError",
    "ClientError",
    "NotFoundError",
    "ConflictError",
    "AuthorizationError",
    "ProtocolError",
    "TransportError",
    "RequestTimeoutError",
    "ValidationError",
    "MultipartError",
]
