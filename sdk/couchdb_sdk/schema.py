"""
Document schema binding for the CouchDB SDK.

A Collection is generic over the caller's document type. DocumentSchema
converts between that type and the JSON object stored on the server, using
pydantic's TypeAdapter so any type pydantic understands works: dict,
TypedDict, dataclasses, or BaseModel subclasses.

Protocol-reserved fields (every key starting with "_") never belong to the
payload. They are split off into the Document envelope on decode and are
rejected on encode, where the envelope is passed through options instead.

Example:
    >>> class Task(BaseModel):
    ...     title: str
    ...     done: bool = False
    >>> schema = DocumentSchema(Task)
    >>> schema.dump(Task(title="write docs"))
    {'title': 'write docs', 'done': False}
"""

from __future__ import annotations

from typing import Any, Generic, TypeVar

from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from .errors import ValidationError

T = TypeVar("T")

RESERVED_PREFIX = "_"


def split_reserved(raw: dict[str, Any]) -> tuple[dict[str, Any], dict[str, Any]]:
    """Split a server JSON object into (reserved fields, payload fields)."""
    reserved: dict[str, Any] = {}
    payload: dict[str, Any] = {}
    for key, value in raw.items():
        if key.startswith(RESERVED_PREFIX):
            reserved[key] = value
        else:
            payload[key] = value
    return reserved, payload


class DocumentSchema(Generic[T]):
    """Codec between a user document type and its JSON payload."""

    def __init__(self, document_type: Any = dict) -> None:
        self.document_type = document_type
        self._adapter: TypeAdapter[T] = TypeAdapter(document_type)

    def __repr__(self) -> str:
        name = getattr(self.document_type, "__name__", repr(self.document_type))
        return f"DocumentSchema({name})"

    def load(self, payload: dict[str, Any]) -> T:
        """Validate a payload (reserved fields already removed)."""
        try:
            return self._adapter.validate_python(payload)
        except PydanticValidationError as e:
            errors = [
                f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}"
                for err in e.errors()
            ]
            raise ValidationError(
                f"Document does not match {self!r}: {'; '.join(errors)}",
                errors=errors,
            ) from e

    def dump(self, document: T) -> dict[str, Any]:
        """Serialize a document to a JSON-compatible payload."""
        try:
            data = self._adapter.dump_python(document, mode="json")
        except PydanticValidationError as e:
            raise ValidationError(f"Cannot serialize document with {self!r}: {e}") from e

        if not isinstance(data, dict):
            raise ValidationError(
                f"Documents must serialize to a JSON object, got {type(data).__name__}"
            )
        reserved = sorted(k for k in data if k.startswith(RESERVED_PREFIX))
        if reserved:
            raise ValidationError(
                f"Reserved fields are not allowed in the document body: {', '.join(reserved)}",
                field_name=reserved[0],
                errors=[f"{k}: reserved" for k in reserved],
            )
        return data
