"""
Per-operation option structs.

Each struct documents its defaults; a field left at None is not sent, so
the server default applies. Booleans serialize as "true"/"false" and lists
as JSON arrays, matching the query-string conventions of the server.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Sequence

from .errors import ValidationError

FULL_COMMIT_HEADER = "X-Couch-Full-Commit"


def _bool(value: bool) -> str:
    return "true" if value else "false"


@dataclass(frozen=True)
class WriteOptions:
    """Durability options shared by insert, delete and delete_attachment.

    Attributes:
        batch: Send batch=ok; the server may acknowledge (202) before the
            write is durable. Default off.
        full_commit: Set X-Couch-Full-Commit to force (True) or defer (False)
            fsync. Default: header not sent.
    """

    batch: bool = False
    full_commit: bool | None = None

    def to_params(self) -> dict[str, str]:
        return {"batch": "ok"} if self.batch else {}

    def to_headers(self) -> dict[str, str]:
        if self.full_commit is None:
            return {}
        return {FULL_COMMIT_HEADER: _bool(self.full_commit)}


@dataclass(frozen=True)
class PutOptions(WriteOptions):
    """Options for put.

    Attributes:
        revision: Current revision; required to update an existing document
        new_edits: False stores the given revision as-is, skipping conflict
            detection (replication-style injection). Default: not sent.
    """

    revision: str | None = None
    new_edits: bool | None = None

    def to_params(self) -> dict[str, str]:
        params: dict[str, str] = {}
        if self.revision:
            params["rev"] = self.revision
        params.update(super().to_params())
        if self.new_edits is not None:
            params["new_edits"] = _bool(self.new_edits)
        return params


@dataclass(frozen=True)
class CopyOptions(WriteOptions):
    """Options for copy.

    Attributes:
        revision: Source revision to copy. Default: current
        destination_revision: Current revision of an existing destination
            document, required to overwrite it
    """

    revision: str | None = None
    destination_revision: str | None = None

    def to_params(self) -> dict[str, str]:
        params: dict[str, str] = {}
        if self.revision:
            params["rev"] = self.revision
        params.update(super().to_params())
        return params


@dataclass(frozen=True)
class GetOptions:
    """Options for get and get_multipart.

    Every field defaults to None (not sent).

    Attributes:
        attachments: Inline attachment bodies
        att_encoding_info: Include attachment encoding metadata
        atts_since: Revisions whose attachments the caller already holds
        conflicts: Include _conflicts
        deleted_conflicts: Include _deleted_conflicts
        latest: Return the latest leaf of the requested revision
        local_seq: Include _local_seq
        meta: Shorthand for conflicts, deleted_conflicts and revs_info
        open_revs: Leaf revisions to fetch, or "all"
        rev: Fetch this specific revision
        revs: Include _revisions
        revs_info: Include _revs_info
        if_none_match: Revision already held; a match returns NotModified
    """

    attachments: bool | None = None
    att_encoding_info: bool | None = None
    atts_since: Sequence[str] | None = None
    conflicts: bool | None = None
    deleted_conflicts: bool | None = None
    latest: bool | None = None
    local_seq: bool | None = None
    meta: bool | None = None
    open_revs: Sequence[str] | str | None = None
    rev: str | None = None
    revs: bool | None = None
    revs_info: bool | None = None
    if_none_match: str | None = None

    _BOOLEANS = (
        "attachments",
        "att_encoding_info",
        "conflicts",
        "deleted_conflicts",
        "latest",
        "local_seq",
        "meta",
        "revs",
        "revs_info",
    )

    def __post_init__(self) -> None:
        if isinstance(self.open_revs, str) and self.open_revs != "all":
            raise ValidationError(
                f"open_revs must be a list of revisions or 'all', got {self.open_revs!r}",
                field_name="open_revs",
            )

    def to_params(self) -> dict[str, str]:
        params: dict[str, str] = {}
        for name in self._BOOLEANS:
            value = getattr(self, name)
            if value is not None:
                params[name] = _bool(value)
        if self.atts_since is not None:
            params["atts_since"] = json.dumps(list(self.atts_since))
        if self.open_revs is not None:
            if isinstance(self.open_revs, str):
                params["open_revs"] = self.open_revs
            else:
                params["open_revs"] = json.dumps(list(self.open_revs))
        if self.rev is not None:
            params["rev"] = self.rev
        return params

    def to_headers(self) -> dict[str, str]:
        if self.if_none_match is None:
            return {}
        return {"If-None-Match": quote_etag(self.if_none_match)}


@dataclass(frozen=True)
class CreateDatabaseOptions:
    """Options for create_database.

    Attributes:
        shard_count: Number of shards (q). Default: server setting
        replica_count: Number of replicas (n). Default: server setting
        partitioned: Create a partitioned database. Default: not sent
    """

    shard_count: int | None = None
    replica_count: int | None = None
    partitioned: bool | None = None

    def __post_init__(self) -> None:
        for name in ("shard_count", "replica_count"):
            value = getattr(self, name)
            if value is not None and value < 1:
                raise ValidationError(f"{name} must be >= 1, got {value}", field_name=name)

    def to_params(self) -> dict[str, str]:
        params: dict[str, str] = {}
        if self.shard_count is not None:
            params["q"] = str(self.shard_count)
        if self.replica_count is not None:
            params["n"] = str(self.replica_count)
        if self.partitioned is not None:
            params["partitioned"] = _bool(self.partitioned)
        return params


def quote_etag(revision: str) -> str:
    """Wrap a revision in double quotes, as ETags are sent."""
    if revision.startswith('"') and revision.endswith('"'):
        return revision
    return f'"{revision}"'


def unquote_etag(etag: str | None) -> str | None:
    """Strip the quotes (and weak prefix) from an ETag header value."""
    if etag is None:
        return None
    value = etag.strip()
    if value.startswith("W/"):
        value = value[2:]
    if len(value) >= 2 and value.startswith('"') and value.endswith('"'):
        return value[1:-1]
    return value

