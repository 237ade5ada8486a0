"""
Selector queries (POST /{db}/_find).

This module provides:
- FindQuery: selector plus sort/projection/pagination options
- FindResult: matching documents, bookmark, warning and execution stats
- QueryEngine: submits a FindQuery for one database

Fields left at None are omitted from the request body entirely, so the
server defaults apply.

Example:
    >>> query = FindQuery(
    ...     selector={"type": "task", "done": False},
    ...     sort=[{"created_at": "desc"}],
    ...     limit=20,
    ...     execution_stats=True,
    ... )
    >>> result = await tasks.find(query)
    >>> next_page = query.next_page(result.bookmark)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import TYPE_CHECKING, Any, Generic, Mapping, Sequence, TypeVar, Union

from .errors import ValidationError, error_from_response
from .models import Document
from .schema import DocumentSchema

if TYPE_CHECKING:
    from ._http_transport import HttpTransport

logger = logging.getLogger(__name__)

T = TypeVar("T")

SortEntry = Union[str, Mapping[str, str]]

_DIRECTIONS = ("asc", "desc")
_UPDATE_VALUES = (True, False, "lazy")


@dataclass(frozen=True)
class FindQuery:
    """A selector query.

    Attributes:
        selector: Mango selector expression
        limit: Maximum documents to return
        skip: Documents to skip
        sort: Field names or {field: "asc"|"desc"} entries, in order
        fields: Projection; only these fields are returned
        use_index: Design document name, or [design document, index name]
        r: Read quorum
        bookmark: Continuation token from a previous result
        update: Update the index before returning (True, False or "lazy")
        stable: Use the same shard replicas for every request
        stale: Legacy "ok" to skip index updates
        execution_stats: Include execution statistics in the result
    """

    selector: Mapping[str, Any]
    limit: int | None = None
    skip: int | None = None
    sort: Sequence[SortEntry] | None = None
    fields: Sequence[str] | None = None
    use_index: str | Sequence[str] | None = None
    r: int | None = None
    bookmark: str | None = None
    update: bool | str | None = None
    stable: bool | None = None
    stale: str | None = None
    execution_stats: bool | None = None

    def __post_init__(self) -> None:
        """Validate the query before anything is sent."""
        errors: list[str] = []
        if not isinstance(self.selector, Mapping):
            errors.append("selector must be a JSON object")
        for name in ("limit", "skip"):
            value = getattr(self, name)
            if value is not None and value < 0:
                errors.append(f"{name} must be >= 0, got {value}")
        if self.r is not None and self.r < 1:
            errors.append(f"r must be >= 1, got {self.r}")
        for entry in self.sort or ():
            if isinstance(entry, str):
                continue
            if not isinstance(entry, Mapping) or len(entry) != 1:
                errors.append(f"sort entry must be a field name or {{field: direction}}, got {entry!r}")
                continue
            direction = next(iter(entry.values()))
            if direction not in _DIRECTIONS:
                errors.append(f"sort direction must be 'asc' or 'desc', got {direction!r}")
        if self.update is not None and self.update not in _UPDATE_VALUES:
            errors.append(f"update must be true, false or 'lazy', got {self.update!r}")
        if self.stale is not None and self.stale != "ok":
            errors.append(f"stale only accepts 'ok', got {self.stale!r}")

        if errors:
            raise ValidationError("; ".join(errors), errors=errors)

    def to_body(self) -> dict[str, Any]:
        """Request body with unset fields omitted."""
        body: dict[str, Any] = {"selector": dict(self.selector)}
        if self.limit is not None:
            body["limit"] = self.limit
        if self.skip is not None:
            body["skip"] = self.skip
        if self.sort is not None:
            body["sort"] = [e if isinstance(e, str) else dict(e) for e in self.sort]
        if self.fields is not None:
            body["fields"] = list(self.fields)
        if self.use_index is not None:
            body["use_index"] = (
                self.use_index if isinstance(self.use_index, str) else list(self.use_index)
            )
        if self.r is not None:
            body["r"] = self.r
        if self.bookmark is not None:
            body["bookmark"] = self.bookmark
        if self.update is not None:
            body["update"] = self.update
        if self.stable is not None:
            body["stable"] = self.stable
        if self.stale is not None:
            body["stale"] = self.stale
        if self.execution_stats is not None:
            body["execution_stats"] = self.execution_stats
        return body

    def next_page(self, bookmark: str) -> FindQuery:
        """The same query continuing from a bookmark."""
        return replace(self, bookmark=bookmark)


@dataclass(frozen=True)
class ExecutionStats:
    """Server-side cost of a find request."""

    total_keys_examined: int = 0
    total_docs_examined: int = 0
    total_quorum_docs_examined: int = 0
    results_returned: int = 0
    execution_time_ms: float = 0.0

    @classmethod
    def from_json(cls, data: Mapping[str, Any]) -> ExecutionStats:
        return cls(
            total_keys_examined=data.get("total_keys_examined", 0),
            total_docs_examined=data.get("total_docs_examined", 0),
            total_quorum_docs_examined=data.get("total_quorum_docs_examined", 0),
            results_returned=data.get("results_returned", 0),
            execution_time_ms=data.get("execution_time_ms", 0.0),
        )


@dataclass(frozen=True)
class FindResult(Generic[T]):
    """Result envelope of a find request.

    Attributes:
        documents: Matching documents, in server order
        warning: Server warning, e.g. no matching index
        execution_stats: Present when requested
        bookmark: Token for the next page
    """

    documents: tuple[Document[T], ...]
    warning: str | None = None
    execution_stats: ExecutionStats | None = None
    bookmark: str | None = None

    @classmethod
    def from_json(cls, data: Mapping[str, Any], schema: DocumentSchema[T]) -> FindResult[T]:
        stats = data.get("execution_stats")
        return cls(
            documents=tuple(Document.from_json(doc, schema) for doc in data.get("docs", ())),
            warning=data.get("warning"),
            execution_stats=ExecutionStats.from_json(stats) if stats else None,
            bookmark=data.get("bookmark"),
        )


class QueryEngine(Generic[T]):
    """Submits selector queries for one database."""

    def __init__(
        self,
        transport: HttpTransport,
        database_path: str,
        schema: DocumentSchema[T],
    ) -> None:
        self._transport = transport
        self._path = f"{database_path}/_find"
        self._schema = schema

    async def find(self, query: FindQuery | Mapping[str, Any]) -> FindResult[T]:
        """Run a query.

        Args:
            query: A FindQuery, or a bare selector mapping

        Returns:
            FindResult with decoded documents

        Raises:
            ValidationError: Invalid query, or a document that does not
                match the schema
            CouchError: Any non-200 response
        """
        if not isinstance(query, FindQuery):
            query = FindQuery(selector=query)

        response = await self._transport.request(
            "POST",
            self._path,
            json=query.to_body(),
            headers={"Accept": "application/json"},
        )
        if response.status_code != 200:
            raise error_from_response(response)

        result = FindResult.from_json(response.json(), self._schema)
        if result.warning:
            logger.debug("find on %s: %s", self._path, result.warning)
        return result
