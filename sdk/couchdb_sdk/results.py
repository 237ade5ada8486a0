"""
Tagged result variants.

Reads can end three ways besides an error:
- Found(value): the server returned a body
- NOT_MODIFIED: a conditional request matched, nothing new (304)
- ABSENT: a probe found nothing (404)

NOT_MODIFIED and ABSENT are singletons, so callers branch with ``is`` or a
match statement:

    >>> result = await users.get("alice", GetOptions(if_none_match=rev))
    >>> if result is NOT_MODIFIED:
    ...     ...
    >>> elif isinstance(result, Found):
    ...     doc = result.value
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Generic, TypeVar, Union

T = TypeVar("T")


@dataclass(frozen=True)
class Found(Generic[T]):
    """A read that returned data."""

    value: T


class NotModifiedType(Enum):
    """Conditional request matched the current revision."""

    NOT_MODIFIED = "not_modified"

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "NOT_MODIFIED"


class AbsentType(Enum):
    """The probed resource does not exist."""

    ABSENT = "absent"

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "ABSENT"


NOT_MODIFIED = NotModifiedType.NOT_MODIFIED
ABSENT = AbsentType.ABSENT

# Return type of conditional reads.
Conditional = Union[Found[T], NotModifiedType]

# Return type of existence probes.
Probe = Union[T, AbsentType]
